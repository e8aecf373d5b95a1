from __future__ import annotations
"""Outcome of a single node runner (value or error, plus final state)."""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

__all__ = ["NodeState", "NodeResult"]


class NodeState(str, Enum):  # noqa: D101
    PENDING = "pending"
    WAITING = "waiting"  # parents done, autorun declined; needs trigger()
    RUNNING = "running"
    FINISHED = "finished"
    ERROR = "error"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (NodeState.FINISHED, NodeState.ERROR, NodeState.CANCELLED)


@dataclass(slots=True)
class NodeResult:  # noqa: D101
    name: str
    state: NodeState
    value: Any = None
    error: Optional[BaseException] = None

    # ------------------------------------------------------------------ #
    @property
    def ok(self) -> bool:  # noqa: D401
        """Return True when the node finished without error."""
        return self.state is NodeState.FINISHED

    def unwrap(self) -> Any:  # noqa: D401
        """Return *value* or raise the stored error."""
        if self.error is not None:
            raise self.error
        if self.state is not NodeState.FINISHED:
            raise RuntimeError(f"Node '{self.name}' has not finished ({self.state.value})")
        return self.value
