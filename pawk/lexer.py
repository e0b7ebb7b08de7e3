"""AWK tokenizer.

Turns AWK source into a flat token list. Two pieces of AWK's lexical
grammar need context:

* ``/`` starts a regular expression literal unless the previous token can
  end an operand (then it is division);
* a name immediately followed by ``(`` is a function-call name, which is
  what separates ``f(x)`` from the concatenation ``f (x)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .errors import AwkSyntaxError


class TokenType(str, Enum):
    # Literals and names
    NUMBER = "NUMBER"
    STRING = "STRING"
    ERE = "ERE"
    NAME = "NAME"
    FUNC_NAME = "FUNC_NAME"
    BUILTIN = "BUILTIN"

    # Keywords
    BEGIN = "BEGIN"
    END = "END"
    FUNCTION = "FUNCTION"
    IF = "IF"
    ELSE = "ELSE"
    WHILE = "WHILE"
    FOR = "FOR"
    DO = "DO"
    BREAK = "BREAK"
    CONTINUE = "CONTINUE"
    NEXT = "NEXT"
    NEXTFILE = "NEXTFILE"
    EXIT = "EXIT"
    RETURN = "RETURN"
    DELETE = "DELETE"
    GETLINE = "GETLINE"
    PRINT = "PRINT"
    PRINTF = "PRINTF"
    IN = "IN"

    # Punctuation
    LBRACE = "{"
    RBRACE = "}"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    SEMICOLON = ";"
    COMMA = ","

    # Operators
    PLUS = "+"
    MINUS = "-"
    STAR = "*"
    SLASH = "/"
    PERCENT = "%"
    CARET = "^"
    NOT = "!"
    GT = ">"
    LT = "<"
    PIPE = "|"
    QUESTION = "?"
    COLON = ":"
    TILDE = "~"
    NO_MATCH = "!~"
    DOLLAR = "$"
    ASSIGN = "="
    ADD_ASSIGN = "+="
    SUB_ASSIGN = "-="
    MUL_ASSIGN = "*="
    DIV_ASSIGN = "/="
    MOD_ASSIGN = "%="
    POW_ASSIGN = "^="
    EQ = "=="
    NE = "!="
    LE = "<="
    GE = ">="
    INCR = "++"
    DECR = "--"
    AND = "&&"
    OR = "||"
    APPEND = ">>"

    NEWLINE = "NEWLINE"
    EOF = "EOF"


@dataclass
class Token:
    type: TokenType
    value: str
    line: int


KEYWORDS: dict[str, TokenType] = {
    "BEGIN": TokenType.BEGIN,
    "END": TokenType.END,
    "function": TokenType.FUNCTION,
    "func": TokenType.FUNCTION,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "while": TokenType.WHILE,
    "for": TokenType.FOR,
    "do": TokenType.DO,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "next": TokenType.NEXT,
    "nextfile": TokenType.NEXTFILE,
    "exit": TokenType.EXIT,
    "return": TokenType.RETURN,
    "delete": TokenType.DELETE,
    "getline": TokenType.GETLINE,
    "print": TokenType.PRINT,
    "printf": TokenType.PRINTF,
    "in": TokenType.IN,
}

# Longest operators first so that "**=" wins over "**" and "*".
OPERATORS: list[tuple[str, TokenType]] = [
    ("**=", TokenType.POW_ASSIGN),
    ("**", TokenType.CARET),
    ("+=", TokenType.ADD_ASSIGN),
    ("-=", TokenType.SUB_ASSIGN),
    ("*=", TokenType.MUL_ASSIGN),
    ("/=", TokenType.DIV_ASSIGN),
    ("%=", TokenType.MOD_ASSIGN),
    ("^=", TokenType.POW_ASSIGN),
    ("==", TokenType.EQ),
    ("!=", TokenType.NE),
    ("<=", TokenType.LE),
    (">=", TokenType.GE),
    ("!~", TokenType.NO_MATCH),
    ("++", TokenType.INCR),
    ("--", TokenType.DECR),
    ("&&", TokenType.AND),
    ("||", TokenType.OR),
    (">>", TokenType.APPEND),
    ("{", TokenType.LBRACE),
    ("}", TokenType.RBRACE),
    ("(", TokenType.LPAREN),
    (")", TokenType.RPAREN),
    ("[", TokenType.LBRACKET),
    ("]", TokenType.RBRACKET),
    (";", TokenType.SEMICOLON),
    (",", TokenType.COMMA),
    ("+", TokenType.PLUS),
    ("-", TokenType.MINUS),
    ("*", TokenType.STAR),
    ("/", TokenType.SLASH),
    ("%", TokenType.PERCENT),
    ("^", TokenType.CARET),
    ("!", TokenType.NOT),
    (">", TokenType.GT),
    ("<", TokenType.LT),
    ("|", TokenType.PIPE),
    ("?", TokenType.QUESTION),
    (":", TokenType.COLON),
    ("~", TokenType.TILDE),
    ("$", TokenType.DOLLAR),
    ("=", TokenType.ASSIGN),
]

# After one of these a "/" means division.
_OPERAND_END: frozenset[TokenType] = frozenset(
    {
        TokenType.NUMBER,
        TokenType.STRING,
        TokenType.ERE,
        TokenType.NAME,
        TokenType.BUILTIN,
        TokenType.RPAREN,
        TokenType.RBRACKET,
        TokenType.INCR,
        TokenType.DECR,
    }
)

SIMPLE_ESCAPES: dict[str, str] = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "\\": "\\",
    '"': '"',
    "/": "/",
    "a": "\a",
    "b": "\b",
    "f": "\f",
    "v": "\v",
}

_OCTAL_DIGITS = "01234567"
_HEX_DIGITS = "0123456789abcdefABCDEF"


def process_escapes(text: str) -> str:
    """Interpret AWK string escapes (used for literals and command-line values)."""
    out: list[str] = []
    i, n = 0, len(text)
    while i < n:
        ch = text[i]
        if ch != "\\" or i + 1 >= n:
            out.append(ch)
            i += 1
            continue
        nxt = text[i + 1]
        if nxt in SIMPLE_ESCAPES:
            out.append(SIMPLE_ESCAPES[nxt])
            i += 2
        elif nxt in _OCTAL_DIGITS:
            j = i + 1
            while j < n and j < i + 4 and text[j] in _OCTAL_DIGITS:
                j += 1
            out.append(chr(int(text[i + 1 : j], 8)))
            i = j
        elif nxt == "x" and i + 2 < n and text[i + 2] in _HEX_DIGITS:
            j = i + 2
            while j < n and j < i + 4 and text[j] in _HEX_DIGITS:
                j += 1
            out.append(chr(int(text[i + 2 : j], 16)))
            i = j
        else:
            out.append(nxt)
            i += 2
    return "".join(out)


class Lexer:
    def __init__(self, text: str, source: str = "", builtins: frozenset[str] = frozenset()):
        self.text = text
        self.source = source
        self.builtins = builtins
        self.index = 0
        self.line = 1
        self.tokens: list[Token] = []

    def _error(self, message: str) -> AwkSyntaxError:
        return AwkSyntaxError(message, self.line, self.source)

    def _peek_char(self, offset: int = 0) -> str:
        pos = self.index + offset
        return self.text[pos] if pos < len(self.text) else ""

    def _regex_allowed(self) -> bool:
        return not self.tokens or self.tokens[-1].type not in _OPERAND_END

    def _add(self, token_type: TokenType, value: str) -> None:
        self.tokens.append(Token(token_type, value, self.line))

    def tokenize(self) -> list[Token]:
        text = self.text
        n = len(text)
        while self.index < n:
            ch = text[self.index]
            if ch in " \t\r":
                self.index += 1
            elif ch == "\\" and self._peek_char(1) == "\n":
                self.index += 2
                self.line += 1
            elif ch == "\\" and self._peek_char(1) == "\r" and self._peek_char(2) == "\n":
                self.index += 3
                self.line += 1
            elif ch == "\n":
                self._add(TokenType.NEWLINE, "\n")
                self.index += 1
                self.line += 1
            elif ch == "#":
                while self.index < n and text[self.index] != "\n":
                    self.index += 1
            elif ch == '"':
                self._read_string()
            elif ch == "/" and self._regex_allowed():
                self._read_regex()
            elif ch.isdigit() or (ch == "." and self._peek_char(1).isdigit()):
                self._read_number()
            elif ch.isalpha() or ch == "_":
                self._read_word()
            else:
                self._read_operator()
        self._add(TokenType.EOF, "")
        return self.tokens

    def _read_string(self) -> None:
        start_line = self.line
        self.index += 1
        chars: list[str] = []
        text = self.text
        while True:
            if self.index >= len(text):
                raise AwkSyntaxError("unterminated string", start_line, self.source)
            ch = text[self.index]
            if ch == '"':
                self.index += 1
                break
            if ch == "\n":
                raise AwkSyntaxError("newline in string", start_line, self.source)
            if ch == "\\" and self.index + 1 < len(text):
                if text[self.index + 1] == "\n":
                    self.index += 2
                    self.line += 1
                    continue
                chars.append(text[self.index : self.index + 2])
                self.index += 2
                continue
            chars.append(ch)
            self.index += 1
        self.tokens.append(
            Token(TokenType.STRING, process_escapes("".join(chars)), start_line)
        )

    def _read_regex(self) -> None:
        self.index += 1
        chars: list[str] = []
        text = self.text
        in_bracket = False
        while True:
            if self.index >= len(text) or text[self.index] == "\n":
                raise self._error("unterminated regular expression")
            ch = text[self.index]
            if ch == "\\" and self.index + 1 < len(text):
                nxt = text[self.index + 1]
                chars.append("/" if nxt == "/" else ch + nxt)
                self.index += 2
                continue
            if in_bracket:
                if ch == "]" and not self._bracket_start(chars):
                    in_bracket = False
            elif ch == "[":
                in_bracket = True
            elif ch == "/":
                self.index += 1
                break
            chars.append(ch)
            self.index += 1
        self._add(TokenType.ERE, "".join(chars))

    @staticmethod
    def _bracket_start(chars: list[str]) -> bool:
        """True when the last char opened a bracket expression (``[`` or ``[^``)."""
        if chars and chars[-1] == "[":
            return True
        return len(chars) >= 2 and chars[-1] == "^" and chars[-2] == "["

    def _read_number(self) -> None:
        text = self.text
        start = self.index
        if text[start] == "0" and self._peek_char(1) in ("x", "X"):
            j = start + 2
            while j < len(text) and text[j] in _HEX_DIGITS:
                j += 1
            if j > start + 2:
                self.index = j
                self._add(TokenType.NUMBER, str(int(text[start + 2 : j], 16)))
                return
        j = start
        while j < len(text) and text[j].isdigit():
            j += 1
        if j < len(text) and text[j] == ".":
            j += 1
            while j < len(text) and text[j].isdigit():
                j += 1
        if j < len(text) and text[j] in "eE":
            k = j + 1
            if k < len(text) and text[k] in "+-":
                k += 1
            if k < len(text) and text[k].isdigit():
                while k < len(text) and text[k].isdigit():
                    k += 1
                j = k
        self.index = j
        self._add(TokenType.NUMBER, text[start:j])

    def _read_word(self) -> None:
        text = self.text
        start = self.index
        j = start
        while j < len(text) and (text[j].isalnum() or text[j] == "_"):
            j += 1
        word = text[start:j]
        self.index = j
        if word in KEYWORDS:
            self._add(KEYWORDS[word], word)
        elif word in self.builtins:
            self._add(TokenType.BUILTIN, word)
        elif self._peek_char() == "(":
            self._add(TokenType.FUNC_NAME, word)
        else:
            self._add(TokenType.NAME, word)

    def _read_operator(self) -> None:
        text = self.text
        for symbol, token_type in OPERATORS:
            if text.startswith(symbol, self.index):
                self.index += len(symbol)
                self._add(token_type, symbol)
                return
        raise self._error(f"unexpected character {text[self.index]!r}")
