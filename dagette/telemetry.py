from __future__ import annotations

"""Per-run telemetry settings shared by every runner of a run."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict

__all__ = ["TelemetryConfig", "new_run_id"]


def new_run_id() -> str:
    """Return ``YYYYMMDD-HHMMSS-xxxxxxxx`` (timestamp plus 8 hex chars)."""
    return f"{datetime.now():%Y%m%d-%H%M%S}-{uuid.uuid4().hex[:8]}"


@dataclass(frozen=True)
class TelemetryConfig:
    """Identifies a run in emitted events.

    *metadata* is copied verbatim onto every event, e.g. ``{"user": "bob"}``.
    """

    run_id: str = field(default_factory=new_run_id)
    metadata: Dict[str, Any] = field(default_factory=dict)
