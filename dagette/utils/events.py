from __future__ import annotations
"""Structured run events and helpers for event callbacks.

Every runner of a run receives the same ``event_cb`` and calls it with one of
the dataclasses below.

Example
-------
```python
from dagette.utils.events import NodeFinished, fan_out

def _on_event(evt):
    if isinstance(evt, NodeFinished):
        print(f"{evt.dag_name}/{evt.node} done")

executor.run_sync(inputs, event_cb=fan_out(_on_event, reporter))
```
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging import getLogger
from typing import Any, Callable, Dict, Optional

__all__ = [
    "Event",
    "NodeStarted",
    "NodeFinished",
    "NodeFailed",
    "NodeCancelled",
    "NodeCached",
    "NodeWaiting",
    "EventCallback",
    "fan_out",
    "safe_emit",
]

log = getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True, kw_only=True)
class Event:  # noqa: D101 – base event
    dag_name: str
    node: str
    run_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    ts: datetime = field(default_factory=_now)


# --------------------------------------------------------------------------- #
# Concrete events
# --------------------------------------------------------------------------- #
@dataclass(slots=True, kw_only=True)
class NodeStarted(Event):
    pass


@dataclass(slots=True, kw_only=True)
class NodeFinished(Event):
    output: Any = None


@dataclass(slots=True, kw_only=True)
class NodeFailed(Event):
    error: BaseException


@dataclass(slots=True, kw_only=True)
class NodeCancelled(Event):
    failed_parents: tuple = ()


@dataclass(slots=True, kw_only=True)
class NodeCached(Event):
    output: Any = None


@dataclass(slots=True, kw_only=True)
class NodeWaiting(Event):  # autorun declined, waiting for trigger()
    pass


EventCallback = Callable[[Event], None]


# --------------------------------------------------------------------------- #
# Callback helpers
# --------------------------------------------------------------------------- #

def safe_emit(cb: Optional[EventCallback], evt: Event) -> None:
    """Call *cb* with *evt*; a failing handler is logged, never raised."""
    if cb is None:
        return
    try:
        cb(evt)
    except Exception as e:  # noqa: BLE001
        # Failure to handle an event must never crash the run.
        log.warning("event handler %s failed: %s", getattr(cb, "__name__", cb), e)


def fan_out(*callbacks: Optional[EventCallback]) -> EventCallback:  # noqa: D401
    """Return one callback forwarding every event to each of *callbacks*."""
    active = [cb for cb in callbacks if cb is not None]

    def _emit(evt: Event) -> None:
        for cb in active:
            safe_emit(cb, evt)

    return _emit
