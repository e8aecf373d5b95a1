# This file makes the 'utils' directory a Python package.

"""Dagette utilities."""

from .events import Event, EventCallback, fan_out

__all__ = [
    "Event",
    "EventCallback",
    "fan_out",
]
