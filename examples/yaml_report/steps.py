"""Work functions referenced by dag.yml."""


def split_words(args):
    return args.root_input.split()


def shout(args):
    return [w.upper() for w in args.input["words"]]


def lengths(args):
    return {w: len(w) for w in args.input.get("words", [])}
