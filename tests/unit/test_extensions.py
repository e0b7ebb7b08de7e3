"""Tests for host extension functions."""

import io

import pytest

from pawk.api import compile_source, run_source
from pawk.errors import UnresolvedExtensionError
from pawk.extensions import ExtensionTable
from pawk.ir import Opcode
from pawk.settings import AwkSettings
from pawk.values import to_number, to_string
from pawk.vm import AVM


def _double(args):
    return to_number(args[0]) * 2


def _shout(args):
    return to_string(args[0], "%.6g").upper()


EXTENSIONS = ExtensionTable({"double": _double}, shout=_shout)


class TestExtensionTable:
    def test_positional_and_keyword_functions_merge(self):
        assert sorted(EXTENSIONS) == ["double", "shout"]
        assert len(EXTENSIONS) == 2

    def test_non_callable_is_rejected(self):
        with pytest.raises(TypeError):
            ExtensionTable(bad=3)

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            EXTENSIONS["other"] = _double

    def test_repr_lists_names(self):
        assert repr(EXTENSIONS) == "ExtensionTable(['double', 'shout'])"


class TestExtensionCalls:
    def test_call_returns_converted_value(self):
        output, _ = run_source('BEGIN { print double(21), shout("hey") }', extensions=EXTENSIONS)
        assert output == "42 HEY\n"

    def test_call_lowers_to_call_extension(self):
        tuples = compile_source("BEGIN { double(1) }", extensions=EXTENSIONS)
        assert Opcode.CALL_EXTENSION in [t.opcode for t in tuples]

    def test_array_arguments_are_passed_whole(self):
        table = ExtensionTable(count=lambda args: len(args[0]))
        output, _ = run_source("BEGIN { a[1]; a[2]; print count(a) }", extensions=table)
        assert output == "2\n"

    def test_none_result_is_uninitialized(self):
        table = ExtensionTable(nothing=lambda args: None)
        output, _ = run_source('BEGIN { print "[" nothing() "]" }', extensions=table)
        assert output == "[]\n"

    def test_user_function_shadows_extension(self):
        program = 'function double(x) { return "user" } BEGIN { print double(1) }'
        output, _ = run_source(program, extensions=EXTENSIONS)
        assert output == "user\n"

    def test_missing_extension_at_runtime(self):
        tuples = compile_source("BEGIN { double(1) }", extensions=EXTENSIONS)
        settings = AwkSettings(input=io.StringIO(""), output=io.StringIO(), error=io.StringIO())
        with pytest.raises(UnresolvedExtensionError):
            AVM(settings).interpret(tuples)
