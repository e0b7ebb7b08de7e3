"""Tests for address linking and global variable layout."""

import pytest

from pawk.compiler import AwkIntermediateCompiler, ScriptSource
from pawk.constants import NO_ADDRESS
from pawk.errors import LinkError
from pawk.ir import JUMP_OPCODES, Opcode
from pawk.linker import link_tuples
from pawk.tuples import AwkTuples

PROGRAM = """\
function add(a, b) { return a + b }
BEGIN { total = 0 }
{ total = add(total, $1); seen[$2] = 1 }
END { for (k in seen) n++; print total, n }
"""


def _compile(text: str) -> AwkTuples:
    return AwkIntermediateCompiler().compile(ScriptSource.inline(text))


def _snapshot(tuples: AwkTuples) -> list[tuple]:
    return [(t.address, t.next, t.target) for t in tuples]


class TestAddresses:
    def test_every_tuple_gets_its_position(self):
        tuples = _compile(PROGRAM)
        assert [t.address for t in tuples] == list(range(len(tuples)))

    def test_next_is_following_tuple(self):
        tuples = _compile(PROGRAM)
        assert all(t.next == t.address + 1 for t in list(tuples)[:-1])
        assert tuples[len(tuples) - 1].next == NO_ADDRESS

    def test_jumps_have_targets_inside_queue(self):
        tuples = _compile(PROGRAM)
        for tup in tuples:
            if tup.opcode in JUMP_OPCODES:
                assert 0 <= tup.target < len(tuples)
            else:
                assert tup.target == NO_ADDRESS

    def test_call_target_is_function_entry(self):
        tuples = _compile(PROGRAM)
        call = next(t for t in tuples if t.opcode == Opcode.CALL_FUNCTION)
        assert call.target == tuples.function_entries["add"].index

    def test_linking_twice_is_identical(self):
        tuples = _compile(PROGRAM)
        before = _snapshot(tuples)
        offsets = dict(tuples.global_layout.offsets)
        link_tuples(tuples)
        assert _snapshot(tuples) == before
        assert tuples.global_layout.offsets == offsets

    def test_compilation_is_deterministic(self):
        assert _compile(PROGRAM).dump() == _compile(PROGRAM).dump()


class TestGlobalLayout:
    def test_offsets_follow_first_encounter(self):
        tuples = _compile(PROGRAM)
        assert list(tuples.global_layout.offsets) == ["total", "seen", "k", "n"]

    def test_arrays_are_recorded(self):
        tuples = _compile(PROGRAM)
        assert tuples.global_layout.arrays == {"seen"}

    def test_locals_and_specials_get_no_global_offset(self):
        tuples = _compile(PROGRAM)
        assert "a" not in tuples.global_layout
        assert "NR" not in tuples.global_layout


class TestLinkErrors:
    def test_unplaced_address(self):
        tuples = AwkTuples()
        dangling = tuples.new_address("nowhere")
        tuples.emit(Opcode.GOTO, dangling)
        with pytest.raises(LinkError):
            link_tuples(tuples)

    def test_address_past_end(self):
        tuples = AwkTuples()
        target = tuples.new_address("end")
        tuples.emit(Opcode.GOTO, target)
        tuples.place(target)
        with pytest.raises(LinkError):
            link_tuples(tuples)
