"""Tests for the recursive-descent parser."""

import pytest

from pawk import ast_nodes as ast
from pawk.errors import AwkSyntaxError
from pawk.ir import Scope
from pawk.parser import AwkParser
from pawk.sources import ScriptSource


def _parse(text: str, **kwargs) -> ast.AwkSyntaxTree:
    return AwkParser(**kwargs).parse(ScriptSource.inline(text))


def _begin_statements(text: str) -> list[ast.Statement]:
    return _parse(text).begin_blocks[0].body.statements


def _first_expression(text: str) -> ast.Expression:
    statement = _begin_statements(f"BEGIN {{ {text} }}")[0]
    assert isinstance(statement, ast.ExpressionStatement)
    return statement.expression


class TestProgramStructure:
    def test_items_keep_source_order(self):
        tree = _parse("END { } function f(a) { } BEGIN { } /x/")
        kinds = [type(item).__name__ for item in tree.items]
        assert kinds == ["EndBlock", "FunctionDef", "BeginBlock", "Rule"]

    def test_rule_without_action(self):
        rule = _parse("/x/").rules[0]
        assert rule.action is None
        assert isinstance(rule.pattern, ast.ExpressionPattern)

    def test_range_pattern(self):
        rule = _parse("NR == 1, NR == 3 { print }").rules[0]
        assert isinstance(rule.pattern, ast.RangePattern)

    def test_multiple_sources_share_one_tree(self):
        tree = AwkParser().parse(
            [ScriptSource("a.awk", "function f() { return 1 }"), ScriptSource("b.awk", "BEGIN { f() }")]
        )
        assert len(tree.functions) == 1
        assert len(tree.begin_blocks) == 1

    def test_use_stdin_is_recorded(self):
        assert _parse("BEGIN { }", use_stdin=True).use_stdin


class TestExpressions:
    def test_multiplication_binds_tighter_than_addition(self):
        expr = _first_expression("x = 1 + 2 * 3")
        assert isinstance(expr.value, ast.BinaryOp)
        assert expr.value.operator == "+"
        assert expr.value.right.operator == "*"

    def test_power_is_right_associative(self):
        expr = _first_expression("x = 2 ^ 3 ^ 2")
        assert expr.value.operator == "^"
        assert isinstance(expr.value.right, ast.BinaryOp)

    def test_unary_minus_applies_to_power(self):
        expr = _first_expression("x = -2 ^ 2")
        assert isinstance(expr.value, ast.UnaryOp)
        assert isinstance(expr.value.operand, ast.BinaryOp)

    def test_concatenation(self):
        expr = _first_expression('x = "a" y 1')
        assert isinstance(expr.value, ast.Concatenation)

    def test_assignment_is_right_associative(self):
        expr = _first_expression("a = b = 3")
        assert isinstance(expr.value, ast.Assignment)

    def test_grouped_list_before_in(self):
        expr = _first_expression("x = ((1, 2) in arr)")
        inner = expr.value.expression
        assert isinstance(inner, ast.InArray)
        assert len(inner.subscripts) == 2

    def test_grouped_list_without_in_is_error(self):
        with pytest.raises(AwkSyntaxError):
            _parse("BEGIN { x = (1, 2) }")

    def test_command_getline(self):
        expr = _first_expression('"date" | getline now')
        assert isinstance(expr, ast.Getline)
        assert expr.source == "command"
        assert isinstance(expr.target, ast.Name)

    def test_file_getline(self):
        expr = _first_expression('getline line < "f"')
        assert expr.source == "file"

    def test_regex_literal_validated(self):
        with pytest.raises(AwkSyntaxError):
            _parse("/a(/")


class TestPrint:
    def test_greater_than_is_redirect(self):
        statement = _begin_statements('BEGIN { print 1 > "out" }')[0]
        assert isinstance(statement, ast.Print)
        assert statement.redirect == ">"
        assert len(statement.args) == 1

    def test_parenthesized_comparison_is_argument(self):
        statement = _begin_statements("BEGIN { print (1 > 2) }")[0]
        assert statement.redirect == ""
        assert isinstance(statement.args[0], ast.Comparison)

    def test_grouped_argument_list(self):
        statement = _begin_statements('BEGIN { print ("a", "b") > "f" }')[0]
        assert len(statement.args) == 2
        assert statement.redirect == ">"

    def test_pipe_and_append(self):
        statements = _begin_statements('BEGIN { print "x" | "cat"; print "y" >> "log" }')
        assert [s.redirect for s in statements] == ["|", ">>"]

    def test_printf_needs_format(self):
        with pytest.raises(AwkSyntaxError):
            _parse("BEGIN { printf }")


class TestStatements:
    def test_if_else_across_semicolon(self):
        statement = _begin_statements("BEGIN { if (x) y = 1; else y = 2 }")[0]
        assert isinstance(statement, ast.If)
        assert statement.else_branch is not None

    def test_for_in(self):
        statement = _begin_statements("BEGIN { for (k in a) print k }")[0]
        assert isinstance(statement, ast.ForIn)

    def test_for_with_empty_clauses(self):
        statement = _begin_statements("BEGIN { for (;;) break }")[0]
        assert isinstance(statement, ast.For)
        assert statement.condition is None

    def test_delete_whole_array(self):
        statement = _begin_statements("BEGIN { delete a }")[0]
        assert isinstance(statement, ast.Delete)
        assert statement.subscripts is None

    def test_return_outside_function(self):
        with pytest.raises(AwkSyntaxError):
            _parse("BEGIN { return 1 }")


class TestNames:
    def test_parameters_are_local(self):
        function = _parse("function f(a, b) { b = a }").functions[0]
        assignment = function.body.statements[0].expression
        assert assignment.target.scope == Scope.LOCAL
        assert assignment.target.index == 1

    def test_special_variables(self):
        expr = _first_expression("NR = 1")
        assert expr.target.scope == Scope.SPECIAL

    def test_subscripted_names_become_arrays(self):
        tree = _parse("BEGIN { a[1] = 1; split(s, parts) }")
        assert tree.global_arrays == {"a", "parts"}

    def test_subscripted_parameter_becomes_array_param(self):
        function = _parse("function f(arr, n) { arr[n] = 1 }").functions[0]
        assert function.array_params == {"arr"}

    def test_special_scalar_as_array_is_error(self):
        with pytest.raises(AwkSyntaxError):
            _parse("BEGIN { NR[1] = 2 }")

    def test_duplicate_function(self):
        with pytest.raises(AwkSyntaxError):
            _parse("function f() { } function f() { }")

    def test_duplicate_parameter(self):
        with pytest.raises(AwkSyntaxError):
            _parse("function f(a, a) { }")

    def test_split_needs_array_name(self):
        with pytest.raises(AwkSyntaxError):
            _parse('BEGIN { split("a b", 3) }')

    def test_sub_target_must_be_assignable(self):
        with pytest.raises(AwkSyntaxError):
            _parse('BEGIN { sub(/a/, "b", "literal") }')


class TestFeatureFlags:
    def test_additional_functions_are_builtins_when_enabled(self):
        tree = _parse("BEGIN { systime() }", additional_functions=True)
        expr = tree.begin_blocks[0].body.statements[0].expression
        assert isinstance(expr, ast.BuiltinCall)

    def test_additional_functions_are_user_calls_when_disabled(self):
        tree = _parse("BEGIN { systime() }")
        expr = tree.begin_blocks[0].body.statements[0].expression
        assert isinstance(expr, ast.FunctionCall)

    def test_extension_names_become_extension_calls(self):
        tree = _parse("BEGIN { hello(1) }", extensions=["hello"])
        expr = tree.begin_blocks[0].body.statements[0].expression
        assert isinstance(expr, ast.ExtensionCall)

    def test_defined_function_shadows_extension(self):
        tree = _parse("function hello() { } BEGIN { hello() }", extensions=["hello"])
        expr = tree.begin_blocks[0].body.statements[0].expression
        assert isinstance(expr, ast.FunctionCall)
