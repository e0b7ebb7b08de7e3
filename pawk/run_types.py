"""Run pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Phase(str, Enum):
    """AVM lifecycle: INIT → BEGIN → MAIN_LOOP → END → DONE, or ERROR."""

    INIT = "init"
    BEGIN = "begin"
    MAIN_LOOP = "main_loop"
    END = "end"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class ExitRequest:
    """Returned by the ``exit`` handler; ``status`` is None for a bare exit."""

    status: Optional[int] = None


@dataclass(frozen=True)
class ExitSignal:
    """Final outcome of a run: the process exit status."""

    status: int = 0


@dataclass
class ExecutionStats:
    """Counters reported when a run ends."""

    tuples_executed: int = 0
    records_read: int = 0
    function_calls: int = 0
    extension_calls: int = 0
