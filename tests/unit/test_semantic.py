"""Tests for call resolution and array-ness propagation."""

import pytest

from pawk import ast_nodes as ast
from pawk.errors import AwkSemanticError, UnresolvedSymbolError
from pawk.parser import AwkParser
from pawk.semantic import SemanticAnalyzer, iter_calls
from pawk.sources import ScriptSource


def _tree(text: str) -> ast.AwkSyntaxTree:
    return AwkParser().parse(ScriptSource.inline(text))


def _calls(tree: ast.AwkSyntaxTree) -> list[ast.FunctionCall]:
    return [call for _, call in iter_calls(tree)]


class TestResolutionPasses:
    def test_backward_reference_binds_in_first_pass(self):
        tree = _tree("function f() { return 1 } BEGIN { f() }")
        analyzer = SemanticAnalyzer(tree)
        assert analyzer.analyze() == 1
        assert _calls(tree)[0].resolution.is_resolved

    def test_forward_reference_binds_in_second_pass(self):
        tree = _tree("BEGIN { f() } function f() { return 1 }")
        analyzer = SemanticAnalyzer(tree)
        assert analyzer.analyze() == 0
        assert not _calls(tree)[0].resolution.is_resolved
        assert analyzer.analyze() == 1
        assert _calls(tree)[0].resolution.function is tree.functions[0]

    def test_recursive_call_binds_in_first_pass(self):
        tree = _tree("function f(n) { return n ? f(n - 1) : 0 }")
        analyzer = SemanticAnalyzer(tree)
        assert analyzer.analyze() == 1

    def test_verify_reports_undefined_function(self):
        tree = _tree("BEGIN {\n g() }")
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        analyzer.analyze()
        with pytest.raises(UnresolvedSymbolError) as excinfo:
            analyzer.verify()
        assert excinfo.value.function_name == "g"
        assert excinfo.value.line == 2

    def test_verify_rejects_too_many_arguments(self):
        tree = _tree("function f(a) { } BEGIN { f(1, 2) }")
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        with pytest.raises(AwkSemanticError):
            analyzer.verify()

    def test_fewer_arguments_are_allowed(self):
        tree = _tree("function f(a, b) { } BEGIN { f(1) }")
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        analyzer.verify()


class TestArrayPropagation:
    def test_array_formal_marks_global_actual(self):
        tree = _tree("function fill(a) { a[1] = 1 } BEGIN { fill(data) }")
        SemanticAnalyzer(tree).analyze()
        assert "data" in tree.global_arrays

    def test_array_actual_marks_formal(self):
        tree = _tree("function show(a) { return length(a) } BEGIN { x[1]; show(x) }")
        SemanticAnalyzer(tree).analyze()
        assert tree.functions[0].array_params == {"a"}

    def test_propagation_through_call_chain(self):
        tree = _tree(
            "function inner(q) { q[1] = 1 } "
            "function outer(p) { inner(p) } "
            "BEGIN { outer(top) }"
        )
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        analyzer.analyze()
        assert "p" in tree.functions[1].array_params
        assert "top" in tree.global_arrays

    def test_forward_call_propagates_after_second_pass(self):
        tree = _tree("BEGIN { fill(data) } function fill(a) { a[1] = 1 }")
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        assert "data" not in tree.global_arrays
        analyzer.analyze()
        assert "data" in tree.global_arrays
