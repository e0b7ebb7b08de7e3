"""Stack-machine tuples executed by the AVM."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict

from .constants import NO_ADDRESS
from .values import AwkValue, ValueKind


class Opcode(str, Enum):
    # Value producers
    PUSH_LITERAL = "PUSH_LITERAL"
    PUSH_VAR = "PUSH_VAR"
    PUSH_ARRAY = "PUSH_ARRAY"
    PUSH_ARG = "PUSH_ARG"
    PUSH_FIELD = "PUSH_FIELD"
    PUSH_ELEM = "PUSH_ELEM"
    PUSH_INPUT_LINE = "PUSH_INPUT_LINE"
    # Stack housekeeping
    POP = "POP"
    DUP = "DUP"
    # Stores (leave the stored value on the stack)
    ASSIGN_VAR = "ASSIGN_VAR"
    ASSIGN_ELEM = "ASSIGN_ELEM"
    ASSIGN_FIELD = "ASSIGN_FIELD"
    INC_VAR = "INC_VAR"
    INC_ELEM = "INC_ELEM"
    INC_FIELD = "INC_FIELD"
    SUB_VAR = "SUB_VAR"
    SUB_ELEM = "SUB_ELEM"
    SUB_FIELD = "SUB_FIELD"
    # Operators
    BINOP = "BINOP"
    NEGATE = "NEGATE"
    TO_NUMBER = "TO_NUMBER"
    NOT = "NOT"
    CONCAT = "CONCAT"
    COMPARE = "COMPARE"
    MATCH = "MATCH"
    MATCH_RECORD = "MATCH_RECORD"
    IN_ARRAY = "IN_ARRAY"
    SUBSCRIPT = "SUBSCRIPT"
    # Control flow
    GOTO = "GOTO"
    IF_FALSE = "IF_FALSE"
    IF_TRUE = "IF_TRUE"
    CALL_FUNCTION = "CALL_FUNCTION"
    RETURN = "RETURN"
    CALL_BUILTIN = "CALL_BUILTIN"
    CALL_EXTENSION = "CALL_EXTENSION"
    NEXT = "NEXT"
    NEXTFILE = "NEXTFILE"
    EXIT = "EXIT"
    HALT = "HALT"
    # Arrays
    DELETE_ELEM = "DELETE_ELEM"
    DELETE_ARRAY = "DELETE_ARRAY"
    KEYLIST = "KEYLIST"
    ITER_NEXT = "ITER_NEXT"
    # Records and I/O
    GET_RECORD = "GET_RECORD"
    GETLINE = "GETLINE"
    PRINT = "PRINT"
    PRINTF = "PRINTF"
    # Range patterns
    RANGE_TEST = "RANGE_TEST"
    RANGE_SET = "RANGE_SET"


JUMP_OPCODES: frozenset[Opcode] = frozenset(
    {
        Opcode.GOTO,
        Opcode.IF_FALSE,
        Opcode.IF_TRUE,
        Opcode.CALL_FUNCTION,
        Opcode.NEXT,
        Opcode.NEXTFILE,
        Opcode.ITER_NEXT,
        Opcode.GET_RECORD,
    }
)


class Scope(str, Enum):
    GLOBAL = "global"
    LOCAL = "local"
    SPECIAL = "special"


@dataclass(eq=False)
class Address:
    """A jump/call target that is placed during generation and resolved by the linker."""

    label: str
    index: int = NO_ADDRESS

    @property
    def is_placed(self) -> bool:
        return self.index != NO_ADDRESS

    def __str__(self) -> str:
        return f"@{self.label}" if not self.is_placed else f"@{self.label}({self.index})"


@dataclass(eq=False)
class VariableRef:
    name: str
    scope: Scope
    offset: int = NO_ADDRESS

    def __str__(self) -> str:
        if self.scope == Scope.LOCAL:
            return f"{self.name}[local {self.offset}]"
        if self.scope == Scope.SPECIAL:
            return f"{self.name}[special]"
        return f"{self.name}[global {self.offset}]"


def _format_operand(op: Any) -> str:
    if isinstance(op, AwkValue):
        if op.kind == ValueKind.NUMBER:
            return repr(op.number)
        if op.kind == ValueKind.UNINIT:
            return "<uninit>"
        return repr(op.text)
    return str(op)


class AwkTuple(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    opcode: Opcode
    operands: list[Any] = []
    line: int = 0
    address: int = NO_ADDRESS
    next: int = NO_ADDRESS
    target: int = NO_ADDRESS  # resolved jump/call destination

    @property
    def jump_operand(self) -> Address | None:
        return next((op for op in self.operands if isinstance(op, Address)), None)

    def __str__(self) -> str:
        parts = [f"{self.address:5d}", self.opcode.value.lower()]
        parts.extend(_format_operand(op) for op in self.operands)
        base = " ".join(parts)
        if self.target != NO_ADDRESS:
            base += f" -> {self.target}"
        if self.line:
            return f"{base}  # line {self.line}"
        return base
