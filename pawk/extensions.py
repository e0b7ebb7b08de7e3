"""Host-provided extension functions callable from AWK programs."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Callable, Iterator, Optional

logger = logging.getLogger(__name__)

# Receives the evaluated arguments (AwkValue or AssocArray), returns any
# Python value; the AVM converts the result with AwkValue.from_python.
ExtensionFunction = Callable[[list[Any]], Any]


class ExtensionTable(Mapping):
    """Read-only name → extension function mapping, fixed at construction."""

    def __init__(self, functions: Optional[Mapping[str, ExtensionFunction]] = None, **kwargs):
        merged = dict(functions or {})
        merged.update(kwargs)
        for name, fn in merged.items():
            if not callable(fn):
                raise TypeError(f"extension '{name}' is not callable")
        self._functions: dict[str, ExtensionFunction] = merged
        logger.debug("Registered %d extension functions", len(merged))

    def __getitem__(self, name: str) -> ExtensionFunction:
        return self._functions[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._functions)

    def __len__(self) -> int:
        return len(self._functions)

    def __repr__(self) -> str:
        return f"ExtensionTable({sorted(self._functions)})"
