"""Address linking: the post-processing pass over a generated tuple queue.

Linking is the single point at which tuples are mutated: each tuple is
touched exactly once to receive its address, its fall-through ``next``
address and, for jumps and calls, the resolved ``target``. The same walk
assigns storage offsets to global variables in first-encounter order.
Linking an unchanged queue again yields identical results.
"""

from __future__ import annotations

import logging

from .constants import NO_ADDRESS
from .errors import LinkError
from .ir import Address, AwkTuple, Opcode, Scope, VariableRef
from .tuples import AwkTuples, GlobalVariableLayout

logger = logging.getLogger(__name__)

_ARRAY_OPCODES: frozenset[Opcode] = frozenset(
    {
        Opcode.PUSH_ARRAY,
        Opcode.PUSH_ELEM,
        Opcode.ASSIGN_ELEM,
        Opcode.INC_ELEM,
        Opcode.SUB_ELEM,
        Opcode.IN_ARRAY,
        Opcode.DELETE_ELEM,
        Opcode.DELETE_ARRAY,
    }
)


def _resolve(address: Address, count: int, where: str) -> int:
    if not address.is_placed:
        raise LinkError(f"{where}: address {address.label} was never placed")
    if not 0 <= address.index < count:
        raise LinkError(
            f"{where}: address {address.label} resolves to {address.index}, "
            f"outside the queue (size {count})"
        )
    return address.index


def _is_array_use(tup: AwkTuple) -> bool:
    if tup.opcode in _ARRAY_OPCODES:
        return True
    return tup.opcode == Opcode.PUSH_ARG and bool(tup.operands[1])


def _touch(
    tup: AwkTuple, index: int, count: int, layout: GlobalVariableLayout
) -> None:
    tup.address = index
    tup.next = index + 1 if index + 1 < count else NO_ADDRESS
    jump = tup.jump_operand
    tup.target = (
        _resolve(jump, count, f"tuple {index} ({tup.opcode.value})")
        if jump is not None
        else NO_ADDRESS
    )
    for op in tup.operands:
        if isinstance(op, VariableRef) and op.scope == Scope.GLOBAL:
            op.offset = layout.offset_of(op.name)
            if _is_array_use(tup):
                layout.arrays.add(op.name)


def link_tuples(tuples: AwkTuples) -> GlobalVariableLayout:
    """Assign addresses, resolve jump targets and lay out global variables."""
    count = len(tuples)
    for name, entry in (
        ("BEGIN", tuples.begin_entry),
        ("main loop", tuples.main_entry),
        ("END", tuples.end_entry),
    ):
        if entry is not None:
            _resolve(entry, count, f"{name} entry")

    layout = tuples.global_layout
    for index, tup in enumerate(tuples):
        _touch(tup, index, count, layout)

    tuples.linked = True
    logger.info(
        "Linked %d tuples, %d global variables (%d arrays)",
        count,
        len(layout),
        len(layout.arrays),
    )
    return layout
