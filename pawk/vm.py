"""AVM: the stack machine that executes linked AwkTuples.

The queue is executed section by section (BEGIN, main loop, END). Each
opcode has a handler in ``_DISPATCH``; a handler returns ``None`` to fall
through to the tuple's linked ``next`` address, an ``int`` to jump, an
``ExitRequest`` for ``exit``, or ``_HALT`` to end the current section.
"""

from __future__ import annotations

import logging
import math
import os
import random
import re
from collections.abc import Mapping
from typing import Any, Callable, NoReturn, Optional

from .builtins import Builtins, substitute
from .constants import (
    DEFAULT_CONVFMT,
    DEFAULT_OFMT,
    DEFAULT_SUBSEP,
    GETLINE_COMMAND,
    GETLINE_FILE,
    NO_ADDRESS,
    REDIRECT_NONE,
    SPECIAL_SCALARS,
)
from .errors import AwkError, AwkRuntimeError, UnresolvedExtensionError
from .formatting import format_string
from .ir import AwkTuple, Opcode, Scope, VariableRef
from .lexer import process_escapes
from .linker import link_tuples
from .regex import compile_regex
from .run_types import ExecutionStats, ExitRequest, ExitSignal, Phase
from .settings import AwkSettings
from .streams import InputManager, MainInput, OutputManager
from .tuples import AwkTuples
from .values import (
    UNINITIALIZED,
    AwkValue,
    ValueKind,
    compare_values,
    format_number,
    subscript_key,
    to_bool,
    to_number,
    to_output_string,
    to_string,
)
from .vm_types import AssocArray, CallFrame, KeyIterator, RecordState, Slot

logger = logging.getLogger(__name__)


class _Halt:
    def __repr__(self) -> str:
        return "<halt>"


_HALT = _Halt()

_COMPARISONS: dict[str, Callable[[int], bool]] = {
    "<": lambda c: c < 0,
    "<=": lambda c: c <= 0,
    "==": lambda c: c == 0,
    "!=": lambda c: c != 0,
    ">": lambda c: c > 0,
    ">=": lambda c: c >= 0,
}


def _power(base: float, exponent: float) -> float:
    try:
        return math.pow(base, exponent)
    except ValueError:
        return math.nan
    except OverflowError:
        return math.inf


class AVM:
    """Executes a linked tuple queue against an ``AwkSettings`` environment."""

    def __init__(
        self,
        settings: Optional[AwkSettings] = None,
        extensions: Optional[Mapping[str, Callable[[list[Any]], Any]]] = None,
    ):
        self.settings = settings or AwkSettings()
        self.extensions: Mapping = extensions or {}
        self.phase = Phase.INIT
        self.stats = ExecutionStats()
        self.outputs = OutputManager(self.settings.output, self.settings.error)
        self.inputs = InputManager(self.settings.input)
        self.random = random.Random(0)
        self._seed = 0.0
        self._tuples: Optional[AwkTuples] = None
        self._stack: list[Any] = []
        self._frames: list[CallFrame] = []
        self._globals: list[Slot] = []
        self._special: dict[str, AwkValue] = {}
        self._argv = AssocArray("ARGV")
        self._environ = AssocArray("ENVIRON")
        self._record = RecordState()
        self._ranges: list[bool] = []
        self._input_line: AwkValue = UNINITIALIZED
        self._main_input: Optional[MainInput] = None
        self._files_seen = 0
        self._exit_status = 0
        self._DISPATCH: dict[Opcode, Callable[[AwkTuple], Any]] = {
            Opcode.PUSH_LITERAL: self._op_push_literal,
            Opcode.PUSH_VAR: self._op_push_var,
            Opcode.PUSH_ARRAY: self._op_push_array,
            Opcode.PUSH_ARG: self._op_push_arg,
            Opcode.PUSH_FIELD: self._op_push_field,
            Opcode.PUSH_ELEM: self._op_push_elem,
            Opcode.PUSH_INPUT_LINE: self._op_push_input_line,
            Opcode.POP: self._op_pop,
            Opcode.DUP: self._op_dup,
            Opcode.ASSIGN_VAR: self._op_assign_var,
            Opcode.ASSIGN_ELEM: self._op_assign_elem,
            Opcode.ASSIGN_FIELD: self._op_assign_field,
            Opcode.INC_VAR: self._op_inc_var,
            Opcode.INC_ELEM: self._op_inc_elem,
            Opcode.INC_FIELD: self._op_inc_field,
            Opcode.SUB_VAR: self._op_sub_var,
            Opcode.SUB_ELEM: self._op_sub_elem,
            Opcode.SUB_FIELD: self._op_sub_field,
            Opcode.BINOP: self._op_binop,
            Opcode.NEGATE: self._op_negate,
            Opcode.TO_NUMBER: self._op_to_number,
            Opcode.NOT: self._op_not,
            Opcode.CONCAT: self._op_concat,
            Opcode.COMPARE: self._op_compare,
            Opcode.MATCH: self._op_match,
            Opcode.MATCH_RECORD: self._op_match_record,
            Opcode.IN_ARRAY: self._op_in_array,
            Opcode.SUBSCRIPT: self._op_subscript,
            Opcode.GOTO: self._op_goto,
            Opcode.IF_FALSE: self._op_if_false,
            Opcode.IF_TRUE: self._op_if_true,
            Opcode.CALL_FUNCTION: self._op_call_function,
            Opcode.RETURN: self._op_return,
            Opcode.CALL_BUILTIN: self._op_call_builtin,
            Opcode.CALL_EXTENSION: self._op_call_extension,
            Opcode.NEXT: self._op_next,
            Opcode.NEXTFILE: self._op_nextfile,
            Opcode.EXIT: self._op_exit,
            Opcode.HALT: self._op_halt,
            Opcode.DELETE_ELEM: self._op_delete_elem,
            Opcode.DELETE_ARRAY: self._op_delete_array,
            Opcode.KEYLIST: self._op_keylist,
            Opcode.ITER_NEXT: self._op_iter_next,
            Opcode.GET_RECORD: self._op_get_record,
            Opcode.GETLINE: self._op_getline,
            Opcode.PRINT: self._op_print,
            Opcode.PRINTF: self._op_printf,
            Opcode.RANGE_TEST: self._op_range_test,
            Opcode.RANGE_SET: self._op_range_set,
        }

    # ── entry point ──────────────────────────────────────────────

    def interpret(self, tuples: AwkTuples) -> ExitSignal:
        """Run BEGIN, the main loop and END; returns the exit status."""
        if not tuples.linked:
            link_tuples(tuples)
        self._tuples = tuples
        try:
            self._initialise(tuples)
            request = None
            if tuples.begin_address != NO_ADDRESS:
                request = self._run_section(Phase.BEGIN, tuples.begin_address)
            if request is None and tuples.main_address != NO_ADDRESS:
                request = self._run_section(Phase.MAIN_LOOP, tuples.main_address)
            if tuples.end_address != NO_ADDRESS:
                self._run_section(Phase.END, tuples.end_address)
            self._enter(Phase.DONE)
        except (AwkError, OSError):
            self._enter(Phase.ERROR)
            raise
        finally:
            self._shutdown()
        logger.debug(
            "Executed %d tuples, %d records, %d function calls, %d extension calls",
            self.stats.tuples_executed,
            self.stats.records_read,
            self.stats.function_calls,
            self.stats.extension_calls,
        )
        return ExitSignal(self._exit_status)

    def _enter(self, phase: Phase) -> None:
        logger.info("AVM phase %s -> %s", self.phase.value, phase.value)
        self.phase = phase

    def _initialise(self, tuples: AwkTuples) -> None:
        settings = self.settings
        layout = tuples.global_layout
        self._globals = [
            AssocArray(name) if name in layout.arrays else UNINITIALIZED
            for name in layout.offsets
        ]
        self._ranges = [False] * tuples.range_count
        self._special = {
            "NR": AwkValue.from_number(0),
            "FNR": AwkValue.from_number(0),
            "FS": AwkValue.from_string(settings.field_separator),
            "OFS": AwkValue.from_string(settings.output_field_separator),
            "ORS": AwkValue.from_string(settings.output_record_separator),
            "RS": AwkValue.from_string(settings.record_separator),
            "SUBSEP": AwkValue.from_string(DEFAULT_SUBSEP),
            "FILENAME": AwkValue.from_string(""),
            "RSTART": AwkValue.from_number(0),
            "RLENGTH": AwkValue.from_number(-1),
            "CONVFMT": AwkValue.from_string(DEFAULT_CONVFMT),
            "OFMT": AwkValue.from_string(DEFAULT_OFMT),
            "ARGC": AwkValue.from_number(len(settings.operands) + 1),
        }
        self._argv.set("0", AwkValue.from_string(settings.program_name))
        for index, operand in enumerate(settings.operands, start=1):
            self._argv.set(str(index), AwkValue.from_input(operand))
        for key, value in os.environ.items():
            self._environ.set(key, AwkValue.from_input(value))
        for name, value in settings.variables.items():
            self.assign_variable(name, value)
        logger.debug(
            "AVM initialised: %d globals, %d operands", len(self._globals), len(settings.operands)
        )

    def _run_section(self, phase: Phase, address: int) -> Optional[ExitRequest]:
        self._enter(phase)
        request = self._execute(address)
        if request is not None and request.status is not None:
            self._exit_status = request.status
        return request

    def _execute(self, address: int) -> Optional[ExitRequest]:
        tuples = self._tuples
        dispatch = self._DISPATCH
        stats = self.stats
        pc = address
        while pc != NO_ADDRESS:
            tup = tuples[pc]
            stats.tuples_executed += 1
            try:
                result = dispatch[tup.opcode](tup)
            except AwkRuntimeError as exc:
                if not exc.line:
                    exc.line = tup.line
                raise
            if result is None:
                pc = tup.next
            elif result is _HALT:
                return None
            elif isinstance(result, ExitRequest):
                self._frames.clear()
                self._stack.clear()
                return result
            else:
                pc = result
        return None

    def _shutdown(self) -> None:
        if self._main_input is not None:
            self._main_input.close()
        self.inputs.close_all()
        self.outputs.close_all()

    # ── helpers used by builtins ─────────────────────────────────

    def fail(self, message: str) -> NoReturn:
        raise AwkRuntimeError(message)

    def to_int(self, value: AwkValue, what: str) -> int:
        number = to_number(value)
        if math.isnan(number) or math.isinf(number):
            self.fail(f"{what}: {format_number(number, self.convfmt)} is not a valid integer")
        return int(number)

    @property
    def convfmt(self) -> str:
        return to_string(self._special["CONVFMT"], DEFAULT_CONVFMT)

    @property
    def ofmt(self) -> str:
        return to_string(self._special["OFMT"], DEFAULT_OFMT)

    @property
    def field_separator(self) -> str:
        return to_string(self._special["FS"], self.convfmt)

    @property
    def record_separator(self) -> str:
        return to_string(self._special["RS"], self.convfmt)

    @property
    def paragraph_mode(self) -> bool:
        return self.record_separator == ""

    def dynamic_regex(self, value: Slot) -> re.Pattern:
        if isinstance(value, AssocArray):
            self.fail(f"array {value.name} used as a regular expression")
        pattern = to_string(value, self.convfmt)
        try:
            return compile_regex(pattern)
        except re.error as exc:
            self.fail(f"invalid regular expression {pattern!r}: {exc}")

    def reseed(self, seed: float) -> float:
        previous = self._seed
        self._seed = seed
        self.random.seed(seed)
        return previous

    def describe_globals(self) -> list[tuple[str, str]]:
        described = []
        for name, offset in self._tuples.global_layout.offsets.items():
            slot = self._globals[offset]
            if isinstance(slot, AssocArray):
                described.append((name, f"<array of {len(slot)} elements>"))
            else:
                described.append((name, to_string(slot, self.convfmt)))
        return described

    # ── special variables ────────────────────────────────────────

    def get_special(self, name: str) -> AwkValue:
        if name == "NF":
            return AwkValue.from_number(self._record.nf)
        return self._special[name]

    def set_special(self, name: str, value: AwkValue) -> None:
        if name == "NF":
            nf = self.to_int(value, "NF")
            if nf < 0:
                self.fail(f"NF set to negative value {nf}")
            self._record.set_nf(nf, self._ofs(), self.convfmt)
            return
        self._special[name] = value
        if name == "FS":
            self._record.load(self._record.text, self.field_separator, self.paragraph_mode)

    def _ofs(self) -> str:
        return to_string(self._special["OFS"], self.convfmt)

    def _bump(self, name: str) -> None:
        self._special[name] = AwkValue.from_number(to_number(self._special[name]) + 1)

    def assign_variable(self, name: str, text: str) -> None:
        """Apply a ``-v`` or command-line ``var=value`` assignment."""
        value = AwkValue.from_input(process_escapes(text))
        if name in SPECIAL_SCALARS or name == "NF":
            self.set_special(name, value)
            return
        layout = self._tuples.global_layout
        if name not in layout:
            logger.debug("Ignoring assignment to %s: not used by the program", name)
            return
        offset = layout.offsets[name]
        if isinstance(self._globals[offset], AssocArray):
            self.fail(f"cannot assign to array {name} from the command line")
        self._globals[offset] = value

    # ── variable storage ─────────────────────────────────────────

    def _load(self, ref: VariableRef) -> Slot:
        if ref.scope == Scope.LOCAL:
            return self._frames[-1].locals[ref.offset]
        if ref.scope == Scope.GLOBAL:
            return self._globals[ref.offset]
        if ref.name == "ARGV":
            return self._argv
        if ref.name == "ENVIRON":
            return self._environ
        return self.get_special(ref.name)

    def _put(self, ref: VariableRef, slot: Slot) -> None:
        if ref.scope == Scope.LOCAL:
            self._frames[-1].locals[ref.offset] = slot
        else:
            self._globals[ref.offset] = slot

    def _scalar(self, ref: VariableRef) -> AwkValue:
        slot = self._load(ref)
        if isinstance(slot, AssocArray):
            self.fail(f"attempt to use array {ref.name} in a scalar context")
        return slot

    def _store(self, ref: VariableRef, value: AwkValue) -> None:
        if ref.scope == Scope.SPECIAL:
            if ref.name in ("ARGV", "ENVIRON"):
                self.fail(f"attempt to use array {ref.name} in a scalar context")
            self.set_special(ref.name, value)
            return
        if isinstance(self._load(ref), AssocArray):
            self.fail(f"attempt to use array {ref.name} in a scalar context")
        self._put(ref, value)

    def _array(self, ref: VariableRef) -> AssocArray:
        slot = self._load(ref)
        if isinstance(slot, AssocArray):
            return slot
        if ref.scope != Scope.SPECIAL and slot.kind == ValueKind.UNINIT:
            array = AssocArray(ref.name)
            self._put(ref, array)
            return array
        self.fail(f"attempt to use scalar {ref.name} as an array")

    def _key(self, value: AwkValue) -> str:
        return subscript_key(value, self.convfmt)

    # ── stack ────────────────────────────────────────────────────

    def _pop(self) -> Any:
        return self._stack.pop()

    def _pop_n(self, count: int) -> list[Any]:
        if count == 0:
            return []
        values = self._stack[-count:]
        del self._stack[-count:]
        return values

    def _push(self, value: Any) -> None:
        self._stack.append(value)

    # ── fields ───────────────────────────────────────────────────

    def _field_index(self, value: AwkValue) -> int:
        number = to_number(value)
        if number < 0 or math.isnan(number) or math.isinf(number):
            self.fail(f"attempt to access field {format_number(number, self.convfmt)}")
        return int(number)

    def _set_field(self, index: int, value: AwkValue) -> None:
        if index == 0:
            self._record.load(
                to_string(value, self.convfmt), self.field_separator, self.paragraph_mode
            )
        else:
            self._record.set(index, value, self._ofs(), self.convfmt)

    def _load_record(self, text: str) -> None:
        self._record.load(text, self.field_separator, self.paragraph_mode)

    # ── handlers: values ─────────────────────────────────────────

    def _op_push_literal(self, tup: AwkTuple) -> None:
        self._push(tup.operands[0])

    def _op_push_var(self, tup: AwkTuple) -> None:
        self._push(self._scalar(tup.operands[0]))

    def _op_push_array(self, tup: AwkTuple) -> None:
        self._push(self._array(tup.operands[0]))

    def _op_push_arg(self, tup: AwkTuple) -> None:
        ref, formal_is_array = tup.operands
        slot = self._load(ref)
        if isinstance(slot, AssocArray):
            self._push(slot)
        elif formal_is_array and slot.kind == ValueKind.UNINIT:
            self._push(self._array(ref))
        else:
            self._push(slot)

    def _op_push_field(self, tup: AwkTuple) -> None:
        self._push(self._record.get(self._field_index(self._pop())))

    def _op_push_elem(self, tup: AwkTuple) -> None:
        key = self._key(self._pop())
        self._push(self._array(tup.operands[0]).get(key))

    def _op_push_input_line(self, tup: AwkTuple) -> None:
        self._push(self._input_line)

    def _op_pop(self, tup: AwkTuple) -> None:
        self._pop()

    def _op_dup(self, tup: AwkTuple) -> None:
        self._push(self._stack[-1])

    # ── handlers: stores ─────────────────────────────────────────

    def _op_assign_var(self, tup: AwkTuple) -> None:
        value = self._stack[-1]
        self._store(tup.operands[0], value)

    def _op_assign_elem(self, tup: AwkTuple) -> None:
        value = self._pop()
        key = self._key(self._pop())
        self._array(tup.operands[0]).set(key, value)
        self._push(value)

    def _op_assign_field(self, tup: AwkTuple) -> None:
        value = self._pop()
        self._set_field(self._field_index(self._pop()), value)
        self._push(value)

    def _incremented(self, old: AwkValue, tup: AwkTuple) -> tuple[AwkValue, AwkValue]:
        """(stored value, pushed value) for an increment/decrement tuple."""
        delta, postfix = tup.operands[-2], tup.operands[-1]
        before = to_number(old)
        after = AwkValue.from_number(before + delta)
        return after, (AwkValue.from_number(before) if postfix else after)

    def _op_inc_var(self, tup: AwkTuple) -> None:
        ref = tup.operands[0]
        stored, pushed = self._incremented(self._scalar(ref), tup)
        self._store(ref, stored)
        self._push(pushed)

    def _op_inc_elem(self, tup: AwkTuple) -> None:
        array = self._array(tup.operands[0])
        key = self._key(self._pop())
        stored, pushed = self._incremented(array.get(key), tup)
        array.set(key, stored)
        self._push(pushed)

    def _op_inc_field(self, tup: AwkTuple) -> None:
        index = self._field_index(self._pop())
        stored, pushed = self._incremented(self._record.get(index), tup)
        self._set_field(index, stored)
        self._push(pushed)

    def _substitute(self, current: AwkValue, global_: bool) -> tuple[Optional[AwkValue], int]:
        replacement = to_string(self._pop(), self.convfmt)
        regex = self.dynamic_regex(self._pop())
        text, count = substitute(to_string(current, self.convfmt), regex, replacement, global_)
        return (AwkValue.from_string(text) if count else None), count

    def _op_sub_var(self, tup: AwkTuple) -> None:
        ref, global_ = tup.operands
        value, count = self._substitute(self._scalar(ref), global_)
        if value is not None:
            self._store(ref, value)
        self._push(AwkValue.from_number(count))

    def _op_sub_elem(self, tup: AwkTuple) -> None:
        ref, global_ = tup.operands
        key = self._key(self._pop())
        array = self._array(ref)
        value, count = self._substitute(array.get(key), global_)
        if value is not None:
            array.set(key, value)
        self._push(AwkValue.from_number(count))

    def _op_sub_field(self, tup: AwkTuple) -> None:
        index = self._field_index(self._pop())
        value, count = self._substitute(self._record.get(index), tup.operands[0])
        if value is not None:
            self._set_field(index, value)
        self._push(AwkValue.from_number(count))

    # ── handlers: operators ──────────────────────────────────────

    def _op_binop(self, tup: AwkTuple) -> None:
        right = to_number(self._pop())
        left = to_number(self._pop())
        op = tup.operands[0]
        if op == "+":
            result = left + right
        elif op == "-":
            result = left - right
        elif op == "*":
            result = left * right
        elif op == "/":
            if right == 0:
                self.fail("division by zero")
            result = left / right
        elif op == "%":
            if right == 0:
                self.fail("division by zero in %")
            result = math.fmod(left, right)
        elif op == "^":
            result = _power(left, right)
        else:
            self.fail(f"unknown operator {op!r}")
        self._push(AwkValue.from_number(result))

    def _op_negate(self, tup: AwkTuple) -> None:
        self._push(AwkValue.from_number(-to_number(self._pop())))

    def _op_to_number(self, tup: AwkTuple) -> None:
        self._push(AwkValue.from_number(to_number(self._pop())))

    def _op_not(self, tup: AwkTuple) -> None:
        self._push(AwkValue.from_bool(not to_bool(self._pop())))

    def _op_concat(self, tup: AwkTuple) -> None:
        right = to_string(self._pop(), self.convfmt)
        left = to_string(self._pop(), self.convfmt)
        self._push(AwkValue.from_string(left + right))

    def _op_compare(self, tup: AwkTuple) -> None:
        right = self._pop()
        left = self._pop()
        outcome = compare_values(left, right, self.convfmt)
        self._push(AwkValue.from_bool(_COMPARISONS[tup.operands[0]](outcome)))

    def _op_match(self, tup: AwkTuple) -> None:
        regex = self.dynamic_regex(self._pop())
        text = to_string(self._pop(), self.convfmt)
        found = regex.search(text) is not None
        self._push(AwkValue.from_bool(found != tup.operands[0]))

    def _op_match_record(self, tup: AwkTuple) -> None:
        found = compile_regex(tup.operands[0]).search(self._record.text) is not None
        self._push(AwkValue.from_bool(found))

    def _op_in_array(self, tup: AwkTuple) -> None:
        key = self._key(self._pop())
        self._push(AwkValue.from_bool(key in self._array(tup.operands[0])))

    def _op_subscript(self, tup: AwkTuple) -> None:
        parts = self._pop_n(tup.operands[0])
        subsep = to_string(self._special["SUBSEP"], self.convfmt)
        self._push(AwkValue.from_string(subsep.join(self._key(p) for p in parts)))

    # ── handlers: control flow ───────────────────────────────────

    def _op_goto(self, tup: AwkTuple) -> int:
        return tup.target

    def _op_if_false(self, tup: AwkTuple) -> Optional[int]:
        return None if to_bool(self._pop()) else tup.target

    def _op_if_true(self, tup: AwkTuple) -> Optional[int]:
        return tup.target if to_bool(self._pop()) else None

    def _op_call_function(self, tup: AwkTuple) -> int:
        name, _, num_formals, num_args = tup.operands
        args = self._pop_n(num_args)
        local_slots: list[Slot] = list(args) + [UNINITIALIZED] * (num_formals - num_args)
        self._frames.append(
            CallFrame(
                function_name=name,
                locals=local_slots,
                return_address=tup.next,
                stack_depth=len(self._stack),
            )
        )
        self.stats.function_calls += 1
        return tup.target

    def _op_return(self, tup: AwkTuple) -> int:
        if not self._frames:
            self.fail("return outside a function call")
        value = self._pop()
        if isinstance(value, AssocArray):
            self.fail(f"attempt to return array {value.name}")
        frame = self._frames.pop()
        del self._stack[frame.stack_depth :]
        self._push(value)
        return frame.return_address

    def _op_call_builtin(self, tup: AwkTuple) -> None:
        name, num_args = tup.operands
        args = self._pop_n(num_args)
        self._push(Builtins.TABLE[name](args, self))

    def _op_call_extension(self, tup: AwkTuple) -> None:
        name, num_args = tup.operands
        args = self._pop_n(num_args)
        function = self.extensions.get(name)
        if function is None:
            raise UnresolvedExtensionError(name, tup.line)
        self.stats.extension_calls += 1
        self._push(AwkValue.from_python(function(args)))

    def _op_next(self, tup: AwkTuple) -> int:
        if self.phase != Phase.MAIN_LOOP:
            self.fail(f"next used in {self.phase.value}")
        self._frames.clear()
        self._stack.clear()
        return tup.target

    def _op_nextfile(self, tup: AwkTuple) -> int:
        target = self._op_next(tup)
        self._ensure_main_input().skip_file()
        return target

    def _op_exit(self, tup: AwkTuple) -> ExitRequest:
        if tup.operands[0]:
            return ExitRequest(self.to_int(self._pop(), "exit status"))
        return ExitRequest()

    def _op_halt(self, tup: AwkTuple) -> _Halt:
        return _HALT

    # ── handlers: arrays ─────────────────────────────────────────

    def _op_delete_elem(self, tup: AwkTuple) -> None:
        key = self._key(self._pop())
        self._array(tup.operands[0]).delete(key)

    def _op_delete_array(self, tup: AwkTuple) -> None:
        self._array(tup.operands[0]).clear()

    def _op_keylist(self, tup: AwkTuple) -> None:
        array = self._pop()
        self._push(KeyIterator(array.keys()))

    def _op_iter_next(self, tup: AwkTuple) -> Optional[int]:
        key = self._stack[-1].advance()
        if key is None:
            return tup.target
        self._push(AwkValue.from_input(key))
        return None

    # ── handlers: input ──────────────────────────────────────────

    def _main_operands(self) -> list[str]:
        argc = self.to_int(self._special["ARGC"], "ARGC")
        operands = []
        for index in range(1, argc):
            key = str(index)
            if key in self._argv:
                operands.append(to_string(self._argv.get(key), self.convfmt))
        return operands

    def _ensure_main_input(self) -> MainInput:
        if self._main_input is None:
            self._main_input = MainInput(
                self.settings.input, self._main_operands, self.assign_variable
            )
        return self._main_input

    def _read_main_record(self) -> Optional[str]:
        main_input = self._ensure_main_input()
        text = main_input.read_record(self.record_separator)
        if main_input.files_opened != self._files_seen:
            self._files_seen = main_input.files_opened
            self._special["FNR"] = AwkValue.from_number(0)
            self._special["FILENAME"] = AwkValue.from_string(main_input.filename)
        if text is not None:
            self.stats.records_read += 1
        return text

    def _op_get_record(self, tup: AwkTuple) -> Optional[int]:
        text = self._read_main_record()
        if text is None:
            return tup.target
        self._load_record(text)
        self._bump("NR")
        self._bump("FNR")
        return None

    def _op_getline(self, tup: AwkTuple) -> None:
        kind, has_target = tup.operands
        if kind == GETLINE_FILE:
            name = to_string(self._pop(), self.convfmt)
            reader = self.inputs.file_reader(name)
            if reader is None:
                self._push(AwkValue.from_number(-1))
                return
            text = reader.read_record(self.record_separator)
        elif kind == GETLINE_COMMAND:
            command = to_string(self._pop(), self.convfmt)
            text = self.inputs.command_reader(command).read_record(self.record_separator)
        else:
            text = self._read_main_record()
        if text is None:
            self._push(AwkValue.from_number(0))
            return
        if has_target:
            self._input_line = AwkValue.from_input(text)
        else:
            self._load_record(text)
        if kind != GETLINE_FILE:
            self._bump("NR")
        if kind not in (GETLINE_FILE, GETLINE_COMMAND):
            self._bump("FNR")
        self._push(AwkValue.from_number(1))

    # ── handlers: output ─────────────────────────────────────────

    def _destination(self, redirect: str) -> str:
        if redirect == REDIRECT_NONE:
            return ""
        return to_string(self._pop(), self.convfmt)

    def _op_print(self, tup: AwkTuple) -> None:
        num_args, redirect = tup.operands
        destination = self._destination(redirect)
        args = self._pop_n(num_args)
        if num_args == 0:
            text = self._record.text
        else:
            ofmt = self.ofmt
            text = self._ofs().join(to_output_string(arg, ofmt) for arg in args)
        ors = to_string(self._special["ORS"], self.convfmt)
        self.outputs.write(redirect, destination, text + ors)

    def _op_printf(self, tup: AwkTuple) -> None:
        num_args, redirect = tup.operands
        destination = self._destination(redirect)
        args = self._pop_n(num_args)
        fmt = to_string(args[0], self.convfmt)
        self.outputs.write(redirect, destination, format_string(fmt, args[1:], self.convfmt))

    # ── handlers: range patterns ─────────────────────────────────

    def _op_range_test(self, tup: AwkTuple) -> None:
        self._push(AwkValue.from_bool(self._ranges[tup.operands[0]]))

    def _op_range_set(self, tup: AwkTuple) -> None:
        range_id, active = tup.operands
        self._ranges[range_id] = active
