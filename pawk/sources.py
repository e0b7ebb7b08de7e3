"""Script sources handed to the compiler."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

from .constants import INLINE_SCRIPT_DESCRIPTION


@dataclass(frozen=True)
class ScriptSource:
    """One named piece of AWK program text.

    ``intermediate`` marks a source that is already in tuple form; the
    compile-from-source entry point refuses such sources.
    """

    description: str
    text: str
    intermediate: bool = False

    @classmethod
    def inline(cls, text: str) -> ScriptSource:
        return cls(description=INLINE_SCRIPT_DESCRIPTION, text=text)

    @classmethod
    def from_file(cls, path: str | Path, encoding: str = "utf-8") -> ScriptSource:
        """Read a program file; ``OSError`` propagates on read failures."""
        path = Path(path)
        if str(path) == "-":
            return cls(description="<stdin>", text=sys.stdin.read())
        return cls(description=str(path), text=path.read_text(encoding=encoding))
