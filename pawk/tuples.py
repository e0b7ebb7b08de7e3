"""AwkTuples: the instruction arena produced by tuple generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from .constants import NO_ADDRESS
from .ir import Address, AwkTuple, Opcode


@dataclass
class GlobalVariableLayout:
    """Global variable name → storage offset, in first-encounter order."""

    offsets: dict[str, int] = field(default_factory=dict)
    arrays: set[str] = field(default_factory=set)

    def offset_of(self, name: str) -> int:
        """Return the offset for *name*, allocating the next free one if new."""
        if name not in self.offsets:
            self.offsets[name] = len(self.offsets)
        return self.offsets[name]

    def __contains__(self, name: str) -> bool:
        return name in self.offsets

    def __len__(self) -> int:
        return len(self.offsets)


class AwkTuples:
    """Ordered tuple queue, addressed by position.

    Tuple generation appends; the linker is the only component that writes
    addresses back into the tuples. The AVM treats the queue as read-only.
    """

    def __init__(self):
        self._queue: list[AwkTuple] = []
        self._addresses: list[Address] = []
        self._range_count = 0
        self.begin_entry: Address | None = None
        self.main_entry: Address | None = None
        self.end_entry: Address | None = None
        self.global_layout = GlobalVariableLayout()
        self.function_entries: dict[str, Address] = {}
        self.linked = False

    # ── generation ───────────────────────────────────────────────

    def emit(self, opcode: Opcode, *operands: Any, line: int = 0) -> AwkTuple:
        tup = AwkTuple(opcode=opcode, operands=list(operands), line=line)
        self._queue.append(tup)
        return tup

    def new_address(self, label: str) -> Address:
        address = Address(label=f"{label}_{len(self._addresses)}")
        self._addresses.append(address)
        return address

    def place(self, address: Address) -> None:
        """Bind *address* to the next tuple to be emitted."""
        address.index = len(self._queue)

    def next_range_id(self) -> int:
        rid = self._range_count
        self._range_count += 1
        return rid

    # ── queries ──────────────────────────────────────────────────

    @property
    def range_count(self) -> int:
        return self._range_count

    @property
    def addresses(self) -> list[Address]:
        return list(self._addresses)

    def entry_address(self, entry: Address | None) -> int:
        return entry.index if entry is not None else NO_ADDRESS

    @property
    def begin_address(self) -> int:
        return self.entry_address(self.begin_entry)

    @property
    def main_address(self) -> int:
        return self.entry_address(self.main_entry)

    @property
    def end_address(self) -> int:
        return self.entry_address(self.end_entry)

    def __getitem__(self, address: int) -> AwkTuple:
        return self._queue[address]

    def __len__(self) -> int:
        return len(self._queue)

    def __iter__(self) -> Iterator[AwkTuple]:
        return iter(self._queue)

    def dump(self) -> str:
        lines = [
            f"; begin={self.begin_address} main={self.main_address} end={self.end_address}"
        ]
        lines.extend(str(tup) for tup in self._queue)
        if self.global_layout.offsets:
            lines.append("; globals")
            lines.extend(
                f";   {name} = {offset}"
                for name, offset in self.global_layout.offsets.items()
            )
        return "\n".join(lines)

    def opcode_counts(self) -> dict[str, int]:
        """Opcode name → number of tuples using it, in first-use order."""
        counts: dict[str, int] = {}
        for tup in self._queue:
            counts[tup.opcode.value] = counts.get(tup.opcode.value, 0) + 1
        return counts
