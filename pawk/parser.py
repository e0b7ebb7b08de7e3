"""Recursive-descent parser: AWK tokens → AwkSyntaxTree.

Precedence, lowest first::

    ?:  ||  &&  in  ~ !~  < <= != == > >=  (non-associative)
    cmd | getline   concatenation   + -   * / %   unary ! + -   ^   ++ --   $   grouping

Inside an unparenthesized ``print``/``printf`` argument list ``>`` is the
output redirection, never a comparison.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, Mapping, Optional

from . import ast_nodes as ast
from .constants import (
    ADDITIONAL_BUILTINS,
    GETLINE_COMMAND,
    GETLINE_FILE,
    GETLINE_MAIN,
    REDIRECT_APPEND,
    REDIRECT_NONE,
    REDIRECT_PIPE,
    REDIRECT_WRITE,
    SPECIAL_ARRAYS,
    SPECIAL_SCALARS,
    STANDARD_BUILTINS,
    TYPE_BUILTINS,
)
from .errors import AwkSyntaxError
from .ir import Scope
from .lexer import Lexer, Token, TokenType
from .regex import compile_regex
from .sources import ScriptSource

logger = logging.getLogger(__name__)

T = TokenType

_ASSIGN_OPS: dict[TokenType, str] = {
    T.ASSIGN: "=",
    T.ADD_ASSIGN: "+=",
    T.SUB_ASSIGN: "-=",
    T.MUL_ASSIGN: "*=",
    T.DIV_ASSIGN: "/=",
    T.MOD_ASSIGN: "%=",
    T.POW_ASSIGN: "^=",
}

_RELATIONAL_OPS: frozenset[TokenType] = frozenset({T.LT, T.LE, T.NE, T.EQ, T.GE, T.GT})

_REDIRECT_OPS: dict[TokenType, str] = {
    T.GT: REDIRECT_WRITE,
    T.APPEND: REDIRECT_APPEND,
    T.PIPE: REDIRECT_PIPE,
}

_TERMINATORS: frozenset[TokenType] = frozenset({T.SEMICOLON, T.NEWLINE, T.RBRACE, T.EOF})

# Tokens that may begin the right operand of an implicit concatenation.
_CONCAT_START: frozenset[TokenType] = frozenset(
    {
        T.NUMBER,
        T.STRING,
        T.ERE,
        T.NAME,
        T.FUNC_NAME,
        T.BUILTIN,
        T.DOLLAR,
        T.NOT,
        T.LPAREN,
        T.INCR,
        T.DECR,
    }
)

# Builtins whose argument at the given position must be an array name.
_ARRAY_ARGUMENTS: dict[str, int] = {"split": 1}


def _is_lvalue(expr: ast.Expression) -> bool:
    return isinstance(expr, (ast.Name, ast.FieldRef, ast.IndexRef))


class AwkParser:
    """Parses one or more script sources into a single syntax tree."""

    def __init__(
        self,
        additional_functions: bool = False,
        additional_type_functions: bool = False,
        use_stdin: bool = False,
        extensions: Optional[Mapping | Iterable[str]] = None,
    ):
        builtins = set(STANDARD_BUILTINS)
        if additional_functions:
            builtins |= ADDITIONAL_BUILTINS
        if additional_type_functions:
            builtins |= TYPE_BUILTINS
        self.builtins: frozenset[str] = frozenset(builtins)
        self.use_stdin = use_stdin
        self.extension_names: frozenset[str] = frozenset(extensions or ())
        self._tokens: list[Token] = []
        self._pos = 0
        self._source = ""
        self._function: Optional[ast.FunctionDef] = None
        self._defined_functions: set[str] = set()
        self._tree = ast.AwkSyntaxTree()

    # ── entry point ──────────────────────────────────────────────

    def parse(self, sources: ScriptSource | Iterable[ScriptSource]) -> ast.AwkSyntaxTree:
        if isinstance(sources, ScriptSource):
            sources = [sources]
        self._tree = ast.AwkSyntaxTree(use_stdin=self.use_stdin)
        self._function = None
        for source in sources:
            self._source = source.description
            self._tokens = Lexer(source.text, source.description, self.builtins).tokenize()
            self._pos = 0
            self._defined_functions |= self._scan_function_names()
            self._parse_program()
        logger.info(
            "Parsed %d items (%d functions, %d rules)",
            len(self._tree.items),
            len(self._tree.functions),
            len(self._tree.rules),
        )
        return self._tree

    def _scan_function_names(self) -> set[str]:
        names = set()
        for i, tok in enumerate(self._tokens[:-1]):
            nxt = self._tokens[i + 1]
            if tok.type == T.FUNCTION and nxt.type in (T.NAME, T.FUNC_NAME):
                names.add(nxt.value)
        return names

    # ── token helpers ────────────────────────────────────────────

    def _peek(self, offset: int = 0) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _at(self, *types: TokenType) -> bool:
        return self._peek().type in types

    def _advance(self) -> Token:
        tok = self._peek()
        if tok.type != T.EOF:
            self._pos += 1
        return tok

    def _expect(self, token_type: TokenType, what: str = "") -> Token:
        if not self._at(token_type):
            raise self._error(f"expected {what or token_type.value}")
        return self._advance()

    def _error(self, message: str, token: Optional[Token] = None) -> AwkSyntaxError:
        tok = token or self._peek()
        found = "end of input" if tok.type == T.EOF else repr(tok.value)
        return AwkSyntaxError(f"{message}, found {found}", tok.line, self._source)

    def _skip_newlines(self) -> None:
        while self._at(T.NEWLINE):
            self._advance()

    def _skip_terminators(self) -> None:
        while self._at(T.NEWLINE, T.SEMICOLON):
            self._advance()

    def _at_terminator(self) -> bool:
        return self._peek().type in _TERMINATORS

    # ── names ────────────────────────────────────────────────────

    def _make_name(self, token: Token) -> ast.Name:
        name = token.value
        if self._function is not None and name in self._function.params:
            return ast.Name(
                token.line, name, Scope.LOCAL, self._function.params.index(name)
            )
        if name in SPECIAL_SCALARS or name in SPECIAL_ARRAYS:
            return ast.Name(token.line, name, Scope.SPECIAL)
        return ast.Name(token.line, name, Scope.GLOBAL)

    def _mark_array(self, name: ast.Name) -> None:
        if name.scope == Scope.LOCAL:
            self._function.array_params.add(name.name)
        elif name.scope == Scope.GLOBAL:
            self._tree.global_arrays.add(name.name)
        elif name.name in SPECIAL_SCALARS:
            raise AwkSyntaxError(
                f"special variable {name.name} used as an array", name.line, self._source
            )

    def _parse_array_name(self) -> ast.Name:
        tok = self._peek()
        if tok.type != T.NAME:
            raise self._error("expected array name")
        self._advance()
        name = self._make_name(tok)
        self._mark_array(name)
        return name

    # ── program structure ────────────────────────────────────────

    def _parse_program(self) -> None:
        self._skip_terminators()
        while not self._at(T.EOF):
            self._tree.items.append(self._parse_item())
            self._skip_terminators()

    def _parse_item(self) -> ast.Item:
        tok = self._peek()
        if tok.type == T.BEGIN:
            self._advance()
            self._skip_newlines()
            return ast.BeginBlock(tok.line, self._parse_block())
        if tok.type == T.END:
            self._advance()
            self._skip_newlines()
            return ast.EndBlock(tok.line, self._parse_block())
        if tok.type == T.FUNCTION:
            return self._parse_function()
        return self._parse_rule()

    def _parse_function(self) -> ast.FunctionDef:
        keyword = self._advance()
        name_tok = self._peek()
        if name_tok.type == T.BUILTIN:
            raise self._error("cannot redefine builtin function")
        if name_tok.type not in (T.NAME, T.FUNC_NAME):
            raise self._error("expected function name")
        self._advance()
        name = name_tok.value
        if name in SPECIAL_SCALARS or name in SPECIAL_ARRAYS:
            raise self._error("special variable used as function name", name_tok)
        if any(isinstance(i, ast.FunctionDef) and i.name == name for i in self._tree.items):
            raise AwkSyntaxError(
                f"function '{name}' defined twice", name_tok.line, self._source
            )
        self._expect(T.LPAREN)
        params: list[str] = []
        while not self._at(T.RPAREN):
            param = self._expect(T.NAME, "parameter name")
            if param.value in params or param.value == name:
                raise AwkSyntaxError(
                    f"duplicate parameter '{param.value}'", param.line, self._source
                )
            if param.value in SPECIAL_SCALARS or param.value in SPECIAL_ARRAYS:
                raise AwkSyntaxError(
                    f"special variable '{param.value}' used as parameter",
                    param.line,
                    self._source,
                )
            params.append(param.value)
            if not self._at(T.RPAREN):
                self._expect(T.COMMA, "',' or ')'")
                self._skip_newlines()
        self._advance()
        self._skip_newlines()
        function = ast.FunctionDef(keyword.line, name, params, ast.Block(keyword.line, []))
        self._function = function
        try:
            function.body = self._parse_block()
        finally:
            self._function = None
        return function

    def _parse_rule(self) -> ast.Rule:
        line = self._peek().line
        pattern: Optional[ast.Pattern] = None
        if not self._at(T.LBRACE):
            start = self._parse_expression()
            if self._at(T.COMMA):
                self._advance()
                self._skip_newlines()
                end = self._parse_expression()
                pattern = ast.RangePattern(line, start, end)
            else:
                pattern = ast.ExpressionPattern(line, start)
        action = self._parse_block() if self._at(T.LBRACE) else None
        if action is None and not self._at_terminator():
            raise self._error("expected newline or ';' after pattern")
        return ast.Rule(line, pattern, action)

    # ── statements ───────────────────────────────────────────────

    def _parse_block(self) -> ast.Block:
        open_tok = self._expect(T.LBRACE)
        statements: list[ast.Statement] = []
        self._skip_terminators()
        while not self._at(T.RBRACE):
            if self._at(T.EOF):
                raise self._error("unterminated block, expected '}'")
            statements.append(self._parse_statement())
            self._skip_terminators()
        self._advance()
        return ast.Block(open_tok.line, statements)

    def _parse_body(self) -> ast.Statement:
        """Loop or branch body: a lone ';' is the empty statement."""
        self._skip_newlines()
        if self._at(T.SEMICOLON):
            tok = self._advance()
            return ast.Block(tok.line, [])
        return self._parse_statement()

    def _parse_statement(self) -> ast.Statement:
        tok = self._peek()
        kind = tok.type
        if kind == T.LBRACE:
            return self._parse_block()
        if kind == T.IF:
            return self._parse_if()
        if kind == T.WHILE:
            self._advance()
            condition = self._parse_condition()
            return ast.While(tok.line, condition, self._parse_body())
        if kind == T.DO:
            return self._parse_do()
        if kind == T.FOR:
            return self._parse_for()
        if kind == T.SEMICOLON:
            self._advance()
            return ast.Block(tok.line, [])
        statement = self._parse_simple_statement()
        self._end_simple_statement()
        return statement

    def _end_simple_statement(self) -> None:
        if self._at(T.SEMICOLON, T.NEWLINE):
            self._advance()
        elif not self._at(T.RBRACE, T.EOF):
            raise self._error("expected newline or ';'")

    def _parse_condition(self) -> ast.Expression:
        self._expect(T.LPAREN)
        condition = self._parse_expression()
        self._expect(T.RPAREN)
        return condition

    def _parse_if(self) -> ast.If:
        tok = self._advance()
        condition = self._parse_condition()
        then_branch = self._parse_body()
        saved = self._pos
        self._skip_terminators()
        if self._at(T.ELSE):
            self._advance()
            return ast.If(tok.line, condition, then_branch, self._parse_body())
        self._pos = saved
        return ast.If(tok.line, condition, then_branch)

    def _parse_do(self) -> ast.DoWhile:
        tok = self._advance()
        body = self._parse_body()
        self._skip_terminators()
        self._expect(T.WHILE, "'while' after do body")
        condition = self._parse_condition()
        self._end_simple_statement()
        return ast.DoWhile(tok.line, body, condition)

    def _parse_for(self) -> ast.Statement:
        tok = self._advance()
        self._expect(T.LPAREN)
        if (
            self._peek().type == T.NAME
            and self._peek(1).type == T.IN
            and self._peek(2).type == T.NAME
            and self._peek(3).type == T.RPAREN
        ):
            variable = self._make_name(self._advance())
            self._advance()
            array = self._parse_array_name()
            self._advance()
            return ast.ForIn(tok.line, variable, array, self._parse_body())

        init = None if self._at(T.SEMICOLON) else self._parse_expression()
        self._expect(T.SEMICOLON)
        self._skip_newlines()
        condition = None if self._at(T.SEMICOLON) else self._parse_expression()
        self._expect(T.SEMICOLON)
        self._skip_newlines()
        update = None if self._at(T.RPAREN) else self._parse_expression()
        self._expect(T.RPAREN)
        return ast.For(tok.line, init, condition, update, self._parse_body())

    def _parse_simple_statement(self) -> ast.Statement:
        tok = self._peek()
        kind = tok.type
        if kind in (T.PRINT, T.PRINTF):
            return self._parse_print()
        if kind == T.NEXT:
            self._advance()
            return ast.Next(tok.line)
        if kind == T.NEXTFILE:
            self._advance()
            return ast.NextFile(tok.line)
        if kind == T.BREAK:
            self._advance()
            return ast.Break(tok.line)
        if kind == T.CONTINUE:
            self._advance()
            return ast.Continue(tok.line)
        if kind == T.EXIT:
            self._advance()
            status = None if self._at_terminator() else self._parse_expression()
            return ast.Exit(tok.line, status)
        if kind == T.RETURN:
            self._advance()
            if self._function is None:
                raise AwkSyntaxError("return outside a function", tok.line, self._source)
            value = None if self._at_terminator() else self._parse_expression()
            return ast.Return(tok.line, value)
        if kind == T.DELETE:
            self._advance()
            array = self._parse_array_name()
            if self._at(T.LBRACKET):
                return ast.Delete(tok.line, array, self._parse_subscripts())
            return ast.Delete(tok.line, array)
        return ast.ExpressionStatement(tok.line, self._parse_expression())

    def _parse_print(self) -> ast.Statement:
        keyword = self._advance()
        args: list[ast.Expression] = []
        if not self._at_terminator() and self._peek().type not in _REDIRECT_OPS:
            args = self._try_grouped_print_list()
            if args is None:
                args = self._parse_print_list()
        redirect, destination = REDIRECT_NONE, None
        if self._peek().type in _REDIRECT_OPS:
            redirect = _REDIRECT_OPS[self._advance().type]
            destination = self._parse_concatenation(no_gt=True)
        if keyword.type == T.PRINTF:
            if not args:
                raise AwkSyntaxError("printf needs a format", keyword.line, self._source)
            return ast.Printf(keyword.line, args, redirect, destination)
        return ast.Print(keyword.line, args, redirect, destination)

    def _try_grouped_print_list(self) -> Optional[list[ast.Expression]]:
        """``print (a, b) > "f"``: a parenthesized list that is the whole argument."""
        if not self._at(T.LPAREN):
            return None
        saved = self._pos
        try:
            self._advance()
            items = self._parse_expression_list(T.RPAREN)
            self._expect(T.RPAREN)
        except AwkSyntaxError:
            self._pos = saved
            return None
        if items and (self._at_terminator() or self._peek().type in _REDIRECT_OPS):
            return items
        self._pos = saved
        return None

    def _parse_print_list(self) -> list[ast.Expression]:
        items = [self._parse_expression(no_gt=True)]
        while self._at(T.COMMA):
            self._advance()
            self._skip_newlines()
            items.append(self._parse_expression(no_gt=True))
        return items

    def _parse_expression_list(self, closer: TokenType) -> list[ast.Expression]:
        items: list[ast.Expression] = []
        self._skip_newlines()
        if self._at(closer):
            return items
        items.append(self._parse_expression())
        while self._at(T.COMMA):
            self._advance()
            self._skip_newlines()
            items.append(self._parse_expression())
        self._skip_newlines()
        return items

    def _parse_subscripts(self) -> list[ast.Expression]:
        self._expect(T.LBRACKET)
        subscripts = self._parse_expression_list(T.RBRACKET)
        if not subscripts:
            raise self._error("empty subscript")
        self._expect(T.RBRACKET)
        return subscripts

    # ── expressions ──────────────────────────────────────────────

    def _parse_expression(self, no_gt: bool = False) -> ast.Expression:
        left = self._parse_ternary(no_gt)
        op_type = self._peek().type
        if op_type in _ASSIGN_OPS and _is_lvalue(left):
            tok = self._advance()
            self._skip_newlines()
            value = self._parse_expression(no_gt)
            return ast.Assignment(tok.line, left, _ASSIGN_OPS[op_type], value)
        return left

    def _parse_ternary(self, no_gt: bool) -> ast.Expression:
        condition = self._parse_or(no_gt)
        if not self._at(T.QUESTION):
            return condition
        tok = self._advance()
        self._skip_newlines()
        if_true = self._parse_expression(no_gt)
        self._skip_newlines()
        self._expect(T.COLON, "':' in conditional expression")
        self._skip_newlines()
        if_false = self._parse_expression(no_gt)
        return ast.Conditional(tok.line, condition, if_true, if_false)

    def _parse_or(self, no_gt: bool) -> ast.Expression:
        left = self._parse_and(no_gt)
        while self._at(T.OR):
            tok = self._advance()
            self._skip_newlines()
            left = ast.LogicalOp(tok.line, "||", left, self._parse_and(no_gt))
        return left

    def _parse_and(self, no_gt: bool) -> ast.Expression:
        left = self._parse_in(no_gt)
        while self._at(T.AND):
            tok = self._advance()
            self._skip_newlines()
            left = ast.LogicalOp(tok.line, "&&", left, self._parse_in(no_gt))
        return left

    def _parse_in(self, no_gt: bool) -> ast.Expression:
        left = self._parse_match(no_gt)
        while self._at(T.IN):
            tok = self._advance()
            array = self._parse_array_name()
            subscripts = left.items if isinstance(left, ast.ExpressionList) else [left]
            left = ast.InArray(tok.line, subscripts, array)
        if isinstance(left, ast.ExpressionList):
            raise AwkSyntaxError(
                "parenthesized list is only valid before 'in'", left.line, self._source
            )
        return left

    def _parse_match(self, no_gt: bool) -> ast.Expression:
        left = self._parse_relational(no_gt)
        while self._at(T.TILDE, T.NO_MATCH):
            tok = self._advance()
            right = self._parse_relational(no_gt)
            left = ast.MatchOp(tok.line, tok.type == T.NO_MATCH, left, right)
        return left

    def _parse_relational(self, no_gt: bool) -> ast.Expression:
        left = self._parse_pipe_getline(no_gt)
        op_type = self._peek().type
        if op_type in _RELATIONAL_OPS and not (no_gt and op_type == T.GT):
            tok = self._advance()
            right = self._parse_pipe_getline(no_gt)
            return ast.Comparison(tok.line, tok.value, left, right)
        return left

    def _parse_pipe_getline(self, no_gt: bool) -> ast.Expression:
        left = self._parse_concatenation(no_gt)
        while self._at(T.PIPE) and self._peek(1).type == T.GETLINE:
            tok = self._advance()
            self._advance()
            target = self._parse_optional_lvalue()
            left = ast.Getline(tok.line, GETLINE_COMMAND, target, left)
        return left

    def _parse_concatenation(self, no_gt: bool = False) -> ast.Expression:
        left = self._parse_additive()
        while self._peek().type in _CONCAT_START:
            # "a (b, c) in arr" is not a concatenation operand
            if self._at(T.LPAREN) and self._grouped_list_ahead():
                break
            right = self._parse_additive()
            left = ast.Concatenation(left.line, left, right)
        return left

    def _grouped_list_ahead(self) -> bool:
        depth = 0
        for tok in self._tokens[self._pos :]:
            if tok.type in (T.LPAREN, T.LBRACKET):
                depth += 1
            elif tok.type in (T.RPAREN, T.RBRACKET):
                depth -= 1
                if depth == 0:
                    return False
            elif tok.type == T.COMMA and depth == 1:
                return True
            elif tok.type in (T.NEWLINE, T.EOF, T.LBRACE, T.RBRACE):
                return False
        return False

    def _parse_additive(self) -> ast.Expression:
        left = self._parse_multiplicative()
        while self._at(T.PLUS, T.MINUS):
            tok = self._advance()
            left = ast.BinaryOp(tok.line, tok.value, left, self._parse_multiplicative())
        return left

    def _parse_multiplicative(self) -> ast.Expression:
        left = self._parse_unary()
        while self._at(T.STAR, T.SLASH, T.PERCENT):
            tok = self._advance()
            left = ast.BinaryOp(tok.line, tok.value, left, self._parse_unary())
        return left

    def _parse_unary(self) -> ast.Expression:
        if self._at(T.NOT, T.MINUS, T.PLUS):
            tok = self._advance()
            return ast.UnaryOp(tok.line, tok.value, self._parse_unary())
        return self._parse_power()

    def _parse_power(self) -> ast.Expression:
        base = self._parse_incdec()
        if not self._at(T.CARET):
            return base
        tok = self._advance()
        return ast.BinaryOp(tok.line, "^", base, self._parse_exponent())

    def _parse_exponent(self) -> ast.Expression:
        if self._at(T.MINUS, T.PLUS, T.NOT):
            tok = self._advance()
            return ast.UnaryOp(tok.line, tok.value, self._parse_exponent())
        return self._parse_power()

    def _parse_incdec(self) -> ast.Expression:
        if self._at(T.INCR, T.DECR):
            tok = self._advance()
            target = self._parse_primary()
            if not _is_lvalue(target):
                raise self._error(f"'{tok.value}' needs a variable", tok)
            return ast.IncDec(tok.line, target, 1 if tok.type == T.INCR else -1, False)
        expr = self._parse_primary()
        if self._at(T.INCR, T.DECR) and _is_lvalue(expr):
            tok = self._advance()
            return ast.IncDec(tok.line, expr, 1 if tok.type == T.INCR else -1, True)
        return expr

    def _parse_primary(self) -> ast.Expression:
        tok = self._peek()
        kind = tok.type
        if kind == T.NUMBER:
            self._advance()
            return ast.NumberLiteral(tok.line, float(tok.value))
        if kind == T.STRING:
            self._advance()
            return ast.StringLiteral(tok.line, tok.value)
        if kind == T.ERE:
            self._advance()
            try:
                compile_regex(tok.value)
            except re.error as exc:
                raise AwkSyntaxError(
                    f"invalid regular expression /{tok.value}/: {exc}",
                    tok.line,
                    self._source,
                ) from exc
            return ast.RegexLiteral(tok.line, tok.value)
        if kind == T.DOLLAR:
            self._advance()
            return ast.FieldRef(tok.line, self._parse_field_index())
        if kind == T.LPAREN:
            return self._parse_grouping()
        if kind == T.NAME:
            self._advance()
            name = self._make_name(tok)
            if self._at(T.LBRACKET):
                self._mark_array(name)
                return ast.IndexRef(tok.line, name, self._parse_subscripts())
            return name
        if kind == T.FUNC_NAME:
            return self._parse_call()
        if kind == T.BUILTIN:
            return self._parse_builtin()
        if kind == T.GETLINE:
            return self._parse_simple_getline()
        if kind in (T.MINUS, T.PLUS, T.NOT):
            self._advance()
            return ast.UnaryOp(tok.line, tok.value, self._parse_unary())
        raise self._error("syntax error")

    def _parse_field_index(self) -> ast.Expression:
        if self._at(T.INCR, T.DECR):
            return self._parse_incdec()
        if self._at(T.MINUS, T.PLUS, T.NOT):
            tok = self._advance()
            return ast.UnaryOp(tok.line, tok.value, self._parse_field_index())
        return self._parse_primary()

    def _parse_grouping(self) -> ast.Expression:
        open_tok = self._advance()
        self._skip_newlines()
        first = self._parse_expression()
        self._skip_newlines()
        if self._at(T.COMMA):
            items = [first]
            while self._at(T.COMMA):
                self._advance()
                self._skip_newlines()
                items.append(self._parse_expression())
                self._skip_newlines()
            self._expect(T.RPAREN)
            if not self._at(T.IN):
                raise self._error("parenthesized list must be followed by 'in'")
            return ast.ExpressionList(open_tok.line, items)
        self._expect(T.RPAREN)
        return ast.Grouping(open_tok.line, first)

    def _parse_call(self) -> ast.Expression:
        tok = self._advance()
        self._expect(T.LPAREN)
        args = self._parse_expression_list(T.RPAREN)
        self._expect(T.RPAREN)
        name = tok.value
        if name not in self._defined_functions and name in self.extension_names:
            return ast.ExtensionCall(tok.line, name, args)
        return ast.FunctionCall(tok.line, name, args)

    def _parse_builtin(self) -> ast.Expression:
        tok = self._advance()
        name = tok.value
        if not self._at(T.LPAREN):
            if name == "length":
                return ast.BuiltinCall(tok.line, name, [])
            raise self._error(f"'{name}' needs an argument list")
        self._advance()
        args = self._parse_expression_list(T.RPAREN)
        self._expect(T.RPAREN)
        position = _ARRAY_ARGUMENTS.get(name)
        if position is not None and len(args) > position:
            target = args[position]
            if not isinstance(target, ast.Name):
                raise AwkSyntaxError(
                    f"{name}: argument {position + 1} must be an array",
                    tok.line,
                    self._source,
                )
            self._mark_array(target)
        if name in ("sub", "gsub") and len(args) == 3 and not _is_lvalue(args[2]):
            raise AwkSyntaxError(
                f"{name}: third argument must be a variable, field or element",
                tok.line,
                self._source,
            )
        return ast.BuiltinCall(tok.line, name, args)

    def _parse_optional_lvalue(self) -> Optional[ast.Expression]:
        tok = self._peek()
        if tok.type == T.DOLLAR:
            self._advance()
            return ast.FieldRef(tok.line, self._parse_field_index())
        if tok.type == T.NAME:
            self._advance()
            name = self._make_name(tok)
            if self._at(T.LBRACKET):
                self._mark_array(name)
                return ast.IndexRef(tok.line, name, self._parse_subscripts())
            return name
        return None

    def _parse_simple_getline(self) -> ast.Getline:
        tok = self._advance()
        target = self._parse_optional_lvalue()
        if self._at(T.LT):
            self._advance()
            source = self._parse_incdec()
            return ast.Getline(tok.line, GETLINE_FILE, target, source)
        return ast.Getline(tok.line, GETLINE_MAIN, target)
