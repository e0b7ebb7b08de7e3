"""printf-style formatting for ``printf`` and ``sprintf()``."""

from __future__ import annotations

import math
import re

from .errors import AwkRuntimeError
from .values import UNINITIALIZED, AwkValue, ValueKind, to_number, to_string

_SPEC_RE = re.compile(r"%([-+ #0]*)(\*|\d+)?(?:\.(\*|\d*))?([a-zA-Z%])")

_INTEGER_CONVERSIONS = frozenset("dioxXuc")
_FLOAT_CONVERSIONS = frozenset("eEfFgG")


class _Arguments:
    def __init__(self, args: list[AwkValue]):
        self._args = args
        self._next = 0

    def take(self) -> AwkValue:
        if self._next >= len(self._args):
            return UNINITIALIZED
        value = self._args[self._next]
        self._next += 1
        return value


def _format_char(value: AwkValue, convfmt: str) -> str:
    if value.kind == ValueKind.NUMBER or (value.kind == ValueKind.STRNUM and value.numeric):
        number = to_number(value)
        if not 0 <= number < 0x110000:
            return ""
        return chr(int(number))
    text = to_string(value, convfmt)
    return text[:1]


def _star_value(value: AwkValue) -> int:
    number = to_number(value)
    if math.isnan(number) or math.isinf(number):
        raise AwkRuntimeError(f"invalid '*' width or precision: {number}")
    return int(number)


def _format_integer(spec: str, conversion: str, number: float) -> str:
    if math.isnan(number) or math.isinf(number):
        text = "nan" if math.isnan(number) else ("inf" if number > 0 else "-inf")
        return (spec + "s") % text
    n = int(number)
    if conversion in "oxX" and n < 0:
        n &= 0xFFFFFFFFFFFFFFFF
    py_conversion = "d" if conversion in "iu" else conversion
    return (spec + py_conversion) % n


def format_string(fmt: str, args: list[AwkValue], convfmt: str) -> str:
    """Apply an AWK format string; missing arguments act as uninitialized values."""
    arguments = _Arguments(args)
    out: list[str] = []
    pos = 0
    for m in _SPEC_RE.finditer(fmt):
        out.append(fmt[pos : m.start()])
        pos = m.end()
        flags, width, precision, conversion = m.groups()
        if conversion == "%":
            out.append("%")
            continue
        if conversion not in _INTEGER_CONVERSIONS | _FLOAT_CONVERSIONS | {"s"}:
            out.append(m.group(0))
            continue

        if width == "*":
            w = _star_value(arguments.take())
            if w < 0:
                flags += "-"
                w = -w
            width = str(w)
        if precision == "*":
            p = _star_value(arguments.take())
            precision = str(p) if p >= 0 else None
        spec = "%" + flags + (width or "")
        if precision is not None:
            spec += "." + (precision or "0")

        value = arguments.take()
        if conversion == "c":
            out.append((spec.split(".")[0] + "s") % _format_char(value, convfmt))
        elif conversion in _INTEGER_CONVERSIONS:
            out.append(_format_integer(spec, conversion, to_number(value)))
        elif conversion in _FLOAT_CONVERSIONS:
            out.append((spec + conversion) % to_number(value))
        else:
            out.append((spec + "s") % to_string(value, convfmt))
    out.append(fmt[pos:])
    return "".join(out)
