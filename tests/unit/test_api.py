"""Tests for the composable API functions in pawk.api."""

import pytest

from pawk.api import compile_source, dump_ast, dump_tuples, ir_stats, parse_source, run_source
from pawk.ast_nodes import AwkSyntaxTree, BeginBlock, FunctionDef
from pawk.constants import NO_ADDRESS
from pawk.errors import AwkSyntaxError
from pawk.ir import Opcode
from pawk.tuples import AwkTuples

SIMPLE_SOURCE = 'BEGIN { print "hello" }'

FUNCTION_SOURCE = """\
function greet(name) { return "hi " name }
{ print greet($1) }
"""


class TestCompileSource:
    def test_returns_linked_tuples(self):
        tuples = compile_source(SIMPLE_SOURCE)
        assert isinstance(tuples, AwkTuples)
        assert tuples.linked

    def test_options_reach_the_compiler(self):
        assert compile_source(SIMPLE_SOURCE).main_address == NO_ADDRESS
        assert compile_source(SIMPLE_SOURCE, use_stdin=True).main_address != NO_ADDRESS

    def test_syntax_error_propagates(self):
        with pytest.raises(AwkSyntaxError):
            compile_source("BEGIN { print ( }")


class TestParseSource:
    def test_items_keep_source_order(self):
        tree = parse_source(FUNCTION_SOURCE + SIMPLE_SOURCE)
        assert isinstance(tree, AwkSyntaxTree)
        assert isinstance(tree.items[0], FunctionDef)
        assert isinstance(tree.items[-1], BeginBlock)


class TestDumps:
    def test_dump_tuples_lists_sections_and_globals(self):
        text = dump_tuples('BEGIN { x = 1; print x }')
        assert text.startswith("; begin=0")
        assert "print" in text
        assert ";   x = 0" in text

    def test_dump_ast_has_one_entry_per_item(self):
        text = dump_ast(FUNCTION_SOURCE)
        assert "FunctionDef" in text
        assert "greet" in text


class TestRunSource:
    def test_output_and_status(self):
        assert run_source(SIMPLE_SOURCE) == ("hello\n", 0)

    def test_input_and_function(self):
        output, _ = run_source(FUNCTION_SOURCE, "bob\namy\n")
        assert output == "hi bob\nhi amy\n"

    def test_exit_status(self):
        assert run_source("BEGIN { exit 4 }") == ("", 4)

    def test_field_separator_and_variables(self):
        output, _ = run_source("{ print $2 sep }", "a:b\n", field_separator=":", variables={"sep": "!"})
        assert output == "b!\n"


class TestOpcodeStatistics:
    def test_empty_queue_has_no_counts(self):
        assert AwkTuples().opcode_counts() == {}

    def test_repeated_opcodes_are_summed(self):
        tuples = AwkTuples()
        tuples.emit(Opcode.PUSH_LITERAL, 1)
        tuples.emit(Opcode.PUSH_LITERAL, 2)
        tuples.emit(Opcode.PRINT, 2, "")
        assert tuples.opcode_counts() == {"PUSH_LITERAL": 2, "PRINT": 1}

    def test_ir_stats_counts_compiled_program(self):
        stats = ir_stats(FUNCTION_SOURCE + SIMPLE_SOURCE)
        assert stats["CALL_FUNCTION"] == 1
        assert stats["PRINT"] == 2
        assert sum(stats.values()) == len(compile_source(FUNCTION_SOURCE + SIMPLE_SOURCE))
