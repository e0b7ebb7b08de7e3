"""Built-in function implementations for the AVM."""

from __future__ import annotations

import math
import re
import time
from typing import TYPE_CHECKING, Any

from .fields import split_fields
from .formatting import format_string
from .values import (
    AwkValue,
    ValueKind,
    format_number,
    to_number,
    to_string,
)
from .vm_types import AssocArray

if TYPE_CHECKING:
    from .vm import AVM

_VARIADIC = 1 << 16


def _number(value: float) -> AwkValue:
    return AwkValue.from_number(value)


def _scalar(args: list[Any], index: int, vm: AVM) -> AwkValue:
    value = args[index]
    if isinstance(value, AssocArray):
        vm.fail(f"array {value.name} used in scalar context")
    return value


def _text(args: list[Any], index: int, vm: AVM) -> str:
    return to_string(_scalar(args, index, vm), vm.convfmt)


def _num(args: list[Any], index: int, vm: AVM) -> float:
    return to_number(_scalar(args, index, vm))


# ── substitution (shared with the SUB_* opcodes) ─────────────────


def _expand_replacement(replacement: str, matched: str) -> str:
    out: list[str] = []
    i, n = 0, len(replacement)
    while i < n:
        ch = replacement[i]
        if ch == "\\" and i + 1 < n and replacement[i + 1] in "&\\":
            out.append(replacement[i + 1])
            i += 2
        elif ch == "&":
            out.append(matched)
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


def substitute(
    text: str, regex: re.Pattern, replacement: str, global_: bool
) -> tuple[str, int]:
    """sub/gsub core: returns (new text, number of replacements).

    An empty match directly after the previous match is not replaced, so
    ``gsub(/x*/, "-", "abxd")`` yields ``-a-b-d-``.
    """
    out: list[str] = []
    pos = 0
    count = 0
    previous_end = -1
    while pos <= len(text):
        m = regex.search(text, pos)
        if m is None:
            break
        start, end = m.span()
        if start == end and start == previous_end:
            if start < len(text):
                out.append(text[pos : start + 1])
            pos = start + 1
            continue
        out.append(text[pos:start])
        out.append(_expand_replacement(replacement, m.group()))
        count += 1
        previous_end = end
        if start == end:
            if start < len(text):
                out.append(text[start])
            pos = end + 1
        else:
            pos = end
        if not global_:
            break
    out.append(text[pos:])
    return "".join(out), count


# ── string functions ─────────────────────────────────────────────


def _builtin_length(args: list[Any], vm: AVM) -> AwkValue:
    value = args[0]
    if isinstance(value, AssocArray):
        return _number(len(value))
    return _number(len(to_string(value, vm.convfmt)))


def _builtin_substr(args: list[Any], vm: AVM) -> AwkValue:
    text = _text(args, 0, vm)
    start = _num(args, 1, vm)
    if math.isnan(start):
        return AwkValue.from_string("")
    if len(args) > 2:
        length = _num(args, 2, vm)
        if math.isnan(length) or length <= 0:
            return AwkValue.from_string("")
        stop = start + length
        if math.isnan(stop):
            return AwkValue.from_string("")
        if math.isinf(stop):
            end = len(text) + 1 if stop > 0 else 1
        else:
            end = round(stop)
    else:
        end = len(text) + 1
    if math.isinf(start):
        first = 1 if start < 0 else len(text) + 1
    else:
        first = max(round(start), 1)
    end = min(end, len(text) + 1)
    return AwkValue.from_string(text[first - 1 : end - 1] if end > first else "")


def _builtin_index(args: list[Any], vm: AVM) -> AwkValue:
    return _number(_text(args, 0, vm).find(_text(args, 1, vm)) + 1)


def _builtin_split(args: list[Any], vm: AVM) -> AwkValue:
    text = _text(args, 0, vm)
    array = args[1]
    if not isinstance(array, AssocArray):
        vm.fail("split: second argument is not an array")
    if len(args) > 2:
        separator = _text(args, 2, vm)
        paragraph = False
    else:
        separator = vm.field_separator
        paragraph = vm.paragraph_mode
    try:
        parts = split_fields(text, separator, paragraph)
    except re.error as exc:
        vm.fail(f"split: invalid regular expression {separator!r}: {exc}")
    array.clear()
    for index, part in enumerate(parts, start=1):
        array.set(str(index), AwkValue.from_input(part))
    return _number(len(parts))


def _builtin_match(args: list[Any], vm: AVM) -> AwkValue:
    text = _text(args, 0, vm)
    m = vm.dynamic_regex(_scalar(args, 1, vm)).search(text)
    if m is None:
        vm.set_special("RSTART", _number(0))
        vm.set_special("RLENGTH", _number(-1))
        return _number(0)
    vm.set_special("RSTART", _number(m.start() + 1))
    vm.set_special("RLENGTH", _number(m.end() - m.start()))
    return _number(m.start() + 1)


def _builtin_sprintf(args: list[Any], vm: AVM) -> AwkValue:
    fmt = _text(args, 0, vm)
    values = [_scalar(args, i, vm) for i in range(1, len(args))]
    return AwkValue.from_string(format_string(fmt, values, vm.convfmt))


def _builtin_tolower(args: list[Any], vm: AVM) -> AwkValue:
    return AwkValue.from_string(_text(args, 0, vm).lower())


def _builtin_toupper(args: list[Any], vm: AVM) -> AwkValue:
    return AwkValue.from_string(_text(args, 0, vm).upper())


# ── arithmetic ───────────────────────────────────────────────────


def _math(fn):
    def apply(args: list[Any], vm: AVM) -> AwkValue:
        try:
            return _number(fn(*(_num(args, i, vm) for i in range(len(args)))))
        except ValueError:
            return _number(math.nan)
        except OverflowError:
            return _number(math.inf)

    return apply


def _log(x: float) -> float:
    if x == 0:
        return -math.inf
    return math.log(x)


def _builtin_int(args: list[Any], vm: AVM) -> AwkValue:
    x = _num(args, 0, vm)
    if math.isnan(x) or math.isinf(x):
        return _number(x)
    return _number(math.trunc(x))


def _builtin_rand(args: list[Any], vm: AVM) -> AwkValue:
    return _number(vm.random.random())


def _builtin_srand(args: list[Any], vm: AVM) -> AwkValue:
    seed = _num(args, 0, vm) if args else float(int(time.time()))
    return _number(vm.reseed(seed))


# ── I/O ──────────────────────────────────────────────────────────


def _builtin_system(args: list[Any], vm: AVM) -> AwkValue:
    return _number(vm.outputs.system(_text(args, 0, vm)))


def _builtin_close(args: list[Any], vm: AVM) -> AwkValue:
    name = _text(args, 0, vm)
    status = vm.outputs.close(name)
    if status is None:
        status = vm.inputs.close(name)
    return _number(-1 if status is None else status)


def _builtin_fflush(args: list[Any], vm: AVM) -> AwkValue:
    if not args:
        return _number(vm.outputs.flush())
    return _number(vm.outputs.flush(_text(args, 0, vm)))


# ── extended set ─────────────────────────────────────────────────


def _builtin_sleep(args: list[Any], vm: AVM) -> AwkValue:
    time.sleep(max(_num(args, 0, vm), 0.0))
    return _number(0)


def _format_element(value: AwkValue, vm: AVM) -> str:
    if value.kind == ValueKind.NUMBER:
        return format_number(value.number, vm.convfmt)
    return value.text


def _builtin_dump(args: list[Any], vm: AVM) -> AwkValue:
    if not args:
        lines = [f"{name} = {text}" for name, text in vm.describe_globals()]
    else:
        lines = []
        for arg in args:
            if not isinstance(arg, AssocArray):
                vm.fail("_dump: argument is not an array")
            body = ", ".join(f"{k}={_format_element(v, vm)}" for k, v in arg.items())
            lines.append("{" + body + "}")
    vm.outputs.stdout.write("".join(line + "\n" for line in lines))
    return _number(0)


def _builtin_systime(args: list[Any], vm: AVM) -> AwkValue:
    return _number(int(time.time()))


# ── type introspection ───────────────────────────────────────────


def _builtin_typeof(args: list[Any], vm: AVM) -> AwkValue:
    value = args[0]
    if isinstance(value, AssocArray):
        return AwkValue.from_string("array")
    return AwkValue.from_string(value.kind.value)


def _builtin_isarray(args: list[Any], vm: AVM) -> AwkValue:
    return AwkValue.from_bool(isinstance(args[0], AssocArray))


def _builtin_integer(args: list[Any], vm: AVM) -> AwkValue:
    return _builtin_int(args, vm)


def _builtin_double(args: list[Any], vm: AVM) -> AwkValue:
    return _number(_num(args, 0, vm))


def _builtin_string(args: list[Any], vm: AVM) -> AwkValue:
    return AwkValue.from_string(_text(args, 0, vm))


class Builtins:
    """Table of built-in function implementations and their arities."""

    TABLE: dict[str, Any] = {
        "length": _builtin_length,
        "substr": _builtin_substr,
        "index": _builtin_index,
        "split": _builtin_split,
        "match": _builtin_match,
        "sprintf": _builtin_sprintf,
        "sin": _math(math.sin),
        "cos": _math(math.cos),
        "atan2": _math(math.atan2),
        "exp": _math(math.exp),
        "log": _math(_log),
        "sqrt": _math(math.sqrt),
        "int": _builtin_int,
        "rand": _builtin_rand,
        "srand": _builtin_srand,
        "tolower": _builtin_tolower,
        "toupper": _builtin_toupper,
        "system": _builtin_system,
        "close": _builtin_close,
        "fflush": _builtin_fflush,
        "_sleep": _builtin_sleep,
        "_dump": _builtin_dump,
        "systime": _builtin_systime,
        "typeof": _builtin_typeof,
        "isarray": _builtin_isarray,
        "_INTEGER": _builtin_integer,
        "_DOUBLE": _builtin_double,
        "_STRING": _builtin_string,
    }

    # (min, max) argument counts; sub and gsub are lowered to SUB_* opcodes.
    ARITY: dict[str, tuple[int, int]] = {
        "length": (0, 1),
        "substr": (2, 3),
        "index": (2, 2),
        "split": (2, 3),
        "sub": (2, 3),
        "gsub": (2, 3),
        "match": (2, 2),
        "sprintf": (1, _VARIADIC),
        "sin": (1, 1),
        "cos": (1, 1),
        "atan2": (2, 2),
        "exp": (1, 1),
        "log": (1, 1),
        "sqrt": (1, 1),
        "int": (1, 1),
        "rand": (0, 0),
        "srand": (0, 1),
        "tolower": (1, 1),
        "toupper": (1, 1),
        "system": (1, 1),
        "close": (1, 1),
        "fflush": (0, 1),
        "_sleep": (1, 1),
        "_dump": (0, _VARIADIC),
        "systime": (0, 0),
        "typeof": (1, 1),
        "isarray": (1, 1),
        "_INTEGER": (1, 1),
        "_DOUBLE": (1, 1),
        "_STRING": (1, 1),
    }
