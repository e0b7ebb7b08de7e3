"""AVM: runtime data types (pure data, no dispatch logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from .fields import split_fields
from .values import UNINITIALIZED, AwkValue, to_string

# ── Associative arrays ───────────────────────────────────────────


class AssocArray:
    """AWK array: canonical string key → AwkValue, insertion ordered.

    Callers convert subscripts with ``values.subscript_key`` first, so the
    array never sees anything but strings.
    """

    def __init__(self, name: str = ""):
        self.name = name
        self._items: dict[str, AwkValue] = {}

    def get(self, key: str) -> AwkValue:
        """Reference an element; a missing one is created uninitialized."""
        if key not in self._items:
            self._items[key] = UNINITIALIZED
        return self._items[key]

    def set(self, key: str, value: AwkValue) -> None:
        self._items[key] = value

    def delete(self, key: str) -> None:
        self._items.pop(key, None)

    def clear(self) -> None:
        self._items.clear()

    def keys(self) -> list[str]:
        return list(self._items)

    def items(self) -> Iterator[tuple[str, AwkValue]]:
        return iter(list(self._items.items()))

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return f"AssocArray({self.name!r}, {len(self._items)} elements)"


Slot = Union[AwkValue, AssocArray]


@dataclass
class KeyIterator:
    """Snapshot of array keys taken when a for-in loop starts."""

    keys: list[str]
    position: int = 0

    def advance(self) -> Optional[str]:
        if self.position >= len(self.keys):
            return None
        key = self.keys[self.position]
        self.position += 1
        return key


# ── Call frames ──────────────────────────────────────────────────


@dataclass
class CallFrame:
    function_name: str
    locals: list[Slot] = field(default_factory=list)
    return_address: int = -1
    stack_depth: int = 0  # operand stack depth with the arguments popped


# ── Current record ───────────────────────────────────────────────


@dataclass
class RecordState:
    """``$0`` and its fields. Input fields are strnums."""

    text: str = ""
    fields: list[AwkValue] = field(default_factory=list)

    @property
    def nf(self) -> int:
        return len(self.fields)

    def load(self, text: str, fs: str, paragraph: bool = False) -> None:
        self.text = text
        self.fields = [AwkValue.from_input(f) for f in split_fields(text, fs, paragraph)]

    def get(self, index: int) -> AwkValue:
        if index == 0:
            return AwkValue.from_input(self.text)
        if index <= len(self.fields):
            return self.fields[index - 1]
        return UNINITIALIZED

    def set(self, index: int, value: AwkValue, ofs: str, convfmt: str) -> None:
        """Assign ``$index`` (index >= 1), growing the record and rebuilding ``$0``."""
        while len(self.fields) < index:
            self.fields.append(UNINITIALIZED)
        self.fields[index - 1] = value
        self.rebuild(ofs, convfmt)

    def set_nf(self, nf: int, ofs: str, convfmt: str) -> None:
        if nf < len(self.fields):
            del self.fields[nf:]
        while len(self.fields) < nf:
            self.fields.append(UNINITIALIZED)
        self.rebuild(ofs, convfmt)

    def rebuild(self, ofs: str, convfmt: str) -> None:
        self.text = ofs.join(to_string(f, convfmt) for f in self.fields)
