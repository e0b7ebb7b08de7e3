"""Tests for the AWK tokenizer."""

import pytest

from pawk.constants import STANDARD_BUILTINS
from pawk.errors import AwkSyntaxError
from pawk.lexer import Lexer, TokenType, process_escapes


def _tokens(text: str) -> list[tuple[TokenType, str]]:
    tokens = Lexer(text, "<test>", STANDARD_BUILTINS).tokenize()
    return [(tok.type, tok.value) for tok in tokens]


def _types(text: str) -> list[TokenType]:
    return [kind for kind, _ in _tokens(text)]


class TestRegexVersusDivision:
    def test_slash_after_operand_is_division(self):
        assert _types("a / b") == [
            TokenType.NAME,
            TokenType.SLASH,
            TokenType.NAME,
            TokenType.EOF,
        ]

    def test_slash_at_start_is_regex(self):
        assert _tokens("/ab+c/")[0] == (TokenType.ERE, "ab+c")

    def test_slash_inside_bracket_does_not_end_regex(self):
        assert _tokens("/[/]x/")[0] == (TokenType.ERE, "[/]x")

    def test_escaped_slash_in_regex(self):
        assert _tokens(r"/a\/b/")[0] == (TokenType.ERE, "a/b")

    def test_divide_assign_after_name(self):
        assert _types("x /= 2")[1] == TokenType.DIV_ASSIGN

    def test_unterminated_regex(self):
        with pytest.raises(AwkSyntaxError):
            _tokens("/abc")


class TestNames:
    def test_function_name_needs_adjacent_paren(self):
        assert _types("f(x)")[0] == TokenType.FUNC_NAME
        assert _types("f (x)")[0] == TokenType.NAME

    def test_builtins_and_keywords(self):
        assert _types("length while func") == [
            TokenType.BUILTIN,
            TokenType.WHILE,
            TokenType.FUNCTION,
            TokenType.EOF,
        ]


class TestLiterals:
    def test_string_escapes_are_processed(self):
        assert _tokens(r'"a\tb\"c"')[0] == (TokenType.STRING, 'a\tb"c')

    def test_octal_escape(self):
        assert _tokens(r'"Don\47t"')[0] == (TokenType.STRING, "Don't")

    def test_hex_number(self):
        assert _tokens("0x1F")[0] == (TokenType.NUMBER, "31")

    def test_exponent_number(self):
        assert _tokens("1.5e-3")[0] == (TokenType.NUMBER, "1.5e-3")

    def test_newline_in_string_is_error(self):
        with pytest.raises(AwkSyntaxError) as excinfo:
            _tokens('"abc\n"')
        assert excinfo.value.line == 1


class TestLayout:
    def test_comments_are_skipped(self):
        assert _types("x # comment\ny") == [
            TokenType.NAME,
            TokenType.NEWLINE,
            TokenType.NAME,
            TokenType.EOF,
        ]

    def test_backslash_newline_continues_line(self):
        tokens = Lexer("a \\\n b").tokenize()
        assert [tok.type for tok in tokens] == [TokenType.NAME, TokenType.NAME, TokenType.EOF]
        assert tokens[1].line == 2

    def test_longest_operator_wins(self):
        assert _types("a **= 2 >> b")[1:4] == [
            TokenType.POW_ASSIGN,
            TokenType.NUMBER,
            TokenType.APPEND,
        ]

    def test_unexpected_character(self):
        with pytest.raises(AwkSyntaxError):
            _tokens("a @ b")


class TestProcessEscapes:
    def test_simple_escapes(self):
        assert process_escapes(r"a\nb\\c") == "a\nb\\c"

    def test_hex_escape(self):
        assert process_escapes(r"\x41") == "A"

    def test_unknown_escape_keeps_character(self):
        assert process_escapes(r"\q") == "q"

    def test_trailing_backslash_is_literal(self):
        assert process_escapes("a\\") == "a\\"
