"""AWK scalar values: an explicit tagged union and its coercion rules.

Every scalar the AVM touches is an ``AwkValue`` in one of four states:

* ``UNINIT`` : never assigned; behaves as 0 *and* "" at the same time
* ``NUMBER`` : a double produced by arithmetic or a numeric literal
* ``STRING`` : produced by a string literal, concatenation or a string builtin
* ``STRNUM`` : text that came from input (fields, getline, split, ARGV,
  ENVIRON, command-line assignments); it compares numerically iff it looks
  numeric

The "looks numeric" grammar is::

    [blanks] [+-] (digits [. [digits]] | . digits) [(e|E) [+-] digits] [blanks]

with blanks being space, tab and newline. Hexadecimal and the words
``inf``/``nan`` are not numeric.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any

_LOOKS_NUMERIC_RE = re.compile(
    r"[ \t\n]*[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?[ \t\n]*\Z"
)
_LEADING_NUMBER_RE = re.compile(
    r"[ \t\n\r\f\v]*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)"
)


class ValueKind(str, Enum):
    UNINIT = "unassigned"
    NUMBER = "number"
    STRING = "string"
    STRNUM = "strnum"


@dataclass(frozen=True)
class AwkValue:
    kind: ValueKind
    number: float = 0.0
    text: str = ""
    numeric: bool = False  # STRNUM only: text passed the looks-numeric test

    @classmethod
    def from_number(cls, number: float) -> AwkValue:
        return cls(ValueKind.NUMBER, number=float(number))

    @classmethod
    def from_string(cls, text: str) -> AwkValue:
        return cls(ValueKind.STRING, text=text)

    @classmethod
    def from_input(cls, text: str) -> AwkValue:
        """Build a strnum from text that originated outside the program."""
        return cls(
            ValueKind.STRNUM,
            number=string_to_number(text),
            text=text,
            numeric=looks_numeric(text),
        )

    @classmethod
    def from_bool(cls, flag: bool) -> AwkValue:
        return TRUE if flag else FALSE

    @classmethod
    def from_python(cls, obj: Any) -> AwkValue:
        """Convert an arbitrary Python object (e.g. an extension result)."""
        if obj is None:
            return UNINITIALIZED
        if isinstance(obj, AwkValue):
            return obj
        if isinstance(obj, bool):
            return cls.from_bool(obj)
        if isinstance(obj, (int, float)):
            return cls.from_number(obj)
        return cls.from_string(str(obj))

    @property
    def is_numeric(self) -> bool:
        """True when this value takes part in comparisons as a number."""
        if self.kind == ValueKind.STRNUM:
            return self.numeric
        return self.kind in (ValueKind.NUMBER, ValueKind.UNINIT)

    def __repr__(self) -> str:
        if self.kind == ValueKind.UNINIT:
            return "AwkValue(<uninit>)"
        if self.kind == ValueKind.NUMBER:
            return f"AwkValue({self.number!r})"
        return f"AwkValue({self.kind.value}:{self.text!r})"


UNINITIALIZED = AwkValue(ValueKind.UNINIT)
TRUE = AwkValue(ValueKind.NUMBER, number=1.0)
FALSE = AwkValue(ValueKind.NUMBER, number=0.0)


def looks_numeric(text: str) -> bool:
    return _LOOKS_NUMERIC_RE.match(text) is not None


def string_to_number(text: str) -> float:
    """Numeric value of the longest numeric prefix of *text*, 0 if none."""
    m = _LEADING_NUMBER_RE.match(text)
    if m is None:
        return 0.0
    return float(m.group(1))


def format_number(number: float, fmt: str) -> str:
    """Render a number the way AWK does: integers exactly, the rest through *fmt*."""
    if math.isnan(number):
        return "nan"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    if number.is_integer():
        return str(int(number))
    try:
        return fmt % number
    except (TypeError, ValueError):
        return "%.6g" % number


def to_number(value: AwkValue) -> float:
    if value.kind in (ValueKind.NUMBER, ValueKind.STRNUM):
        return value.number
    if value.kind == ValueKind.STRING:
        return string_to_number(value.text)
    return 0.0


def to_string(value: AwkValue, convfmt: str) -> str:
    if value.kind == ValueKind.NUMBER:
        return format_number(value.number, convfmt)
    return value.text


def to_output_string(value: AwkValue, ofmt: str) -> str:
    """String form used by ``print`` (numbers go through OFMT)."""
    return to_string(value, ofmt)


def to_bool(value: AwkValue) -> bool:
    if value.kind == ValueKind.NUMBER:
        return value.number != 0
    if value.kind == ValueKind.STRING:
        return value.text != ""
    if value.kind == ValueKind.STRNUM:
        return value.number != 0 if value.numeric else value.text != ""
    return False


def compare_values(lhs: AwkValue, rhs: AwkValue, convfmt: str) -> int:
    """Three-way comparison: numeric when both sides are numeric, else lexical."""
    if lhs.is_numeric and rhs.is_numeric:
        a, b = to_number(lhs), to_number(rhs)
    else:
        a, b = to_string(lhs, convfmt), to_string(rhs, convfmt)
    return (a > b) - (a < b)


def subscript_key(value: AwkValue, convfmt: str) -> str:
    """Canonical array key: ``1``, ``1.0`` and ``"1"`` all map to ``"1"``."""
    return to_string(value, convfmt)
