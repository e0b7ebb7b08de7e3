"""Tests for tuple generation."""

import pytest

from pawk.compiler import AwkIntermediateCompiler, ScriptSource
from pawk.constants import NO_ADDRESS
from pawk.errors import AwkSemanticError
from pawk.ir import Opcode
from pawk.lowering import TupleGenerator, stack_effect
from pawk.parser import AwkParser
from pawk.semantic import SemanticAnalyzer
from pawk.tuples import AwkTuples


def _compile(text: str, **kwargs) -> AwkTuples:
    return AwkIntermediateCompiler(**kwargs).compile(ScriptSource.inline(text))


def _opcodes(text: str, **kwargs) -> list[Opcode]:
    return [t.opcode for t in _compile(text, **kwargs)]


def _generate(text: str) -> tuple[int, AwkTuples]:
    tree = AwkParser().parse(ScriptSource.inline(text))
    analyzer = SemanticAnalyzer(tree)
    analyzer.analyze()
    analyzer.analyze()
    generator = TupleGenerator(tree)
    return generator.generate(), generator.tuples


class TestSections:
    def test_begin_only_has_no_main_loop(self):
        tuples = _compile('BEGIN { print "x" }')
        assert tuples.begin_address == 0
        assert tuples.main_address == NO_ADDRESS
        assert tuples.end_address == NO_ADDRESS
        assert Opcode.GET_RECORD not in [t.opcode for t in tuples]

    def test_end_block_forces_main_loop(self):
        tuples = _compile("END { print NR }")
        assert tuples.main_address != NO_ADDRESS
        assert tuples[tuples.main_address].opcode == Opcode.GET_RECORD

    def test_use_stdin_forces_main_loop(self):
        tuples = _compile('BEGIN { print "x" }', use_stdin=True)
        assert tuples.main_address != NO_ADDRESS

    def test_sections_end_with_halt(self):
        tuples = _compile("BEGIN { } { } END { }")
        halts = [t.address for t in tuples if t.opcode == Opcode.HALT]
        assert len(halts) == 3

    def test_function_body_ends_with_default_return(self):
        opcodes = _opcodes("function f() { } BEGIN { f() }")
        assert opcodes[-2:] == [Opcode.PUSH_LITERAL, Opcode.RETURN]


class TestStackBalance:
    @pytest.mark.parametrize(
        "program",
        [
            "BEGIN { x = 1; y[1] = 2; $3 = 4 }",
            "BEGIN { a = b ? c : d; e = f && g || h }",
            "BEGIN { for (k in arr) { if (k) break; else continue } }",
            '{ n = split($0, parts, ","); gsub(/a/, "b"); sub(/x/, "y", parts[1]) }',
            '{ while ((getline line < "f") > 0) count[line]++ }',
            'BEGIN { print 1, 2 > "out"; printf "%d\\n", 3 | "cat" }',
            "function f(a, b) { return a[b] } BEGIN { z[1]; print f(z, 1) }",
            "BEGIN { x += 1; y[1] *= 2; $2 ^= 3; ++x; y[2]--; $1++ }",
        ],
    )
    def test_generation_leaves_no_residue(self, program):
        residual, _ = _generate(program)
        assert residual == 0

    def test_stack_effect_of_variadic_opcodes(self):
        assert stack_effect(Opcode.CALL_BUILTIN, ["substr", 3]) == -2
        assert stack_effect(Opcode.PRINT, [2, ">"]) == -3
        assert stack_effect(Opcode.PRINT, [0, ""]) == 0
        assert stack_effect(Opcode.SUBSCRIPT, [3]) == -2
        assert stack_effect(Opcode.EXIT, [True]) == -1


class TestLoweringChoices:
    def test_regex_pattern_matches_record(self):
        assert Opcode.MATCH_RECORD in _opcodes("/x/ { print }")

    def test_regex_in_match_operator_is_a_pattern(self):
        opcodes = _opcodes('{ if ($1 ~ /x/) print }')
        assert Opcode.MATCH in opcodes
        assert Opcode.MATCH_RECORD not in opcodes

    def test_gsub_on_record_uses_sub_field(self):
        tuples = _compile('{ gsub(/a/, "b") }')
        sub = next(t for t in tuples if t.opcode == Opcode.SUB_FIELD)
        assert sub.operands == [True]

    def test_sub_on_variable(self):
        tuples = _compile('{ sub(/a/, "b", s) }')
        sub = next(t for t in tuples if t.opcode == Opcode.SUB_VAR)
        assert sub.operands[1] is False

    def test_negative_literal_is_folded(self):
        tuples = _compile("BEGIN { x = -3 }")
        assert Opcode.NEGATE not in [t.opcode for t in tuples]

    def test_multiple_subscripts_join_with_subscript(self):
        tuples = _compile("BEGIN { a[1, 2, 3] = 0 }")
        subscript = next(t for t in tuples if t.opcode == Opcode.SUBSCRIPT)
        assert subscript.operands == [3]

    def test_length_without_arguments_measures_record(self):
        opcodes = _opcodes("{ print length }")
        index = opcodes.index(Opcode.CALL_BUILTIN)
        assert opcodes[index - 1] == Opcode.PUSH_FIELD

    def test_range_pattern_allocates_a_flag(self):
        tuples = _compile("/a/, /b/ { print } /c/, /d/")
        assert tuples.range_count == 2


class TestLoweringErrors:
    def test_break_outside_loop(self):
        with pytest.raises(AwkSemanticError):
            _compile("BEGIN { break }")

    def test_continue_outside_loop(self):
        with pytest.raises(AwkSemanticError):
            _compile("{ continue }")

    def test_next_in_begin(self):
        with pytest.raises(AwkSemanticError):
            _compile("BEGIN { next }")

    def test_next_in_end(self):
        with pytest.raises(AwkSemanticError):
            _compile("END { next }")

    def test_next_in_function_without_main_loop(self):
        with pytest.raises(AwkSemanticError):
            _compile("function f() { next } BEGIN { f() }")

    def test_next_in_function_with_main_loop(self):
        _compile("function f() { next } { f() }")

    def test_builtin_arity(self):
        with pytest.raises(AwkSemanticError):
            _compile('BEGIN { substr("abc") }')

    def test_assigning_to_array_name(self):
        with pytest.raises(AwkSemanticError):
            _compile("function f(a) { a[1] = 1 } BEGIN { x = 1; f(x) }")

    def test_unresolved_call_fails_compilation(self):
        with pytest.raises(AwkSemanticError):
            _compile("BEGIN { missing() }")

    def test_intermediate_sources_are_refused(self):
        with pytest.raises(ValueError):
            AwkIntermediateCompiler().compile(ScriptSource("x.ai", "", intermediate=True))

    def test_plain_text_is_compiled_as_inline_program(self):
        tuples = AwkIntermediateCompiler().compile('BEGIN { print "x" }')
        assert tuples.begin_address == 0
        assert Opcode.PRINT in [t.opcode for t in tuples]
