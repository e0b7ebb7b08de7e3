"""AWK extended regular expressions on top of Python's ``re``."""

from __future__ import annotations

import functools
import re

_POSIX_CLASSES: dict[str, str] = {
    "alpha": "a-zA-Z",
    "digit": "0-9",
    "alnum": "a-zA-Z0-9",
    "upper": "A-Z",
    "lower": "a-z",
    "space": " \\t\\n\\r\\f\\v",
    "blank": " \\t",
    "punct": re.escape("!\"#$%&'()*+,-./:;<=>?@[\\]^_`{|}~"),
    "print": "\\x20-\\x7e",
    "graph": "\\x21-\\x7e",
    "cntrl": "\\x00-\\x1f\\x7f",
    "xdigit": "0-9A-Fa-f",
    "word": "a-zA-Z0-9_",
}

# Escapes that mean the same thing to AWK and to ``re``.
_SHARED_ESCAPES = frozenset("ntrfvsSwWB")

_GAWK_ESCAPES: dict[str, str] = {
    "y": r"\b",
    "<": r"\b",
    ">": r"\b",
    "`": r"\A",
    "'": r"\Z",
    "b": r"\x08",
    "a": r"\x07",
    "/": "/",
    '"': '"',
}

_OCTAL = "01234567"


def _escape(pattern: str, i: int) -> tuple[str, int]:
    """Translate the escape at pattern[i] (a backslash); return (text, next index)."""
    if i + 1 >= len(pattern):
        return r"\\", i + 1
    ch = pattern[i + 1]
    if ch in _SHARED_ESCAPES:
        return "\\" + ch, i + 2
    if ch in _GAWK_ESCAPES:
        return _GAWK_ESCAPES[ch], i + 2
    if ch in _OCTAL:
        j = i + 1
        while j < len(pattern) and j < i + 4 and pattern[j] in _OCTAL:
            j += 1
        return re.escape(chr(int(pattern[i + 1 : j], 8))), j
    return re.escape(ch), i + 2


def _bracket(pattern: str, i: int) -> tuple[str, int]:
    """Translate the bracket expression opening at pattern[i]."""
    out = ["["]
    j = i + 1
    if j < len(pattern) and pattern[j] == "^":
        out.append("^")
        j += 1
    if j < len(pattern) and pattern[j] == "]":
        out.append(r"\]")
        j += 1
    while j < len(pattern):
        ch = pattern[j]
        if ch == "]":
            out.append("]")
            return "".join(out), j + 1
        if ch == "[" and pattern.startswith("[:", j):
            end = pattern.find(":]", j + 2)
            name = pattern[j + 2 : end] if end != -1 else ""
            if name in _POSIX_CLASSES:
                out.append(_POSIX_CLASSES[name])
                j = end + 2
                continue
        if ch == "\\" and j + 1 < len(pattern):
            nxt = pattern[j + 1]
            out.append("\\" + nxt if nxt in _SHARED_ESCAPES else re.escape(nxt))
            j += 2
            continue
        if ch in "[&~|":
            out.append("\\" + ch)
        else:
            out.append(ch)
        j += 1
    raise re.error("unterminated bracket expression", pattern, i)


def translate_ere(pattern: str) -> str:
    """Rewrite an AWK ERE into equivalent Python ``re`` syntax."""
    out: list[str] = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        at_start = not out or out[-1] in ("(", "|", "^")
        if ch == "\\":
            text, i = _escape(pattern, i)
            out.append(text)
        elif ch == "[":
            text, i = _bracket(pattern, i)
            out.append(text)
        elif ch == "$":
            out.append(r"\Z")
            i += 1
        elif ch in "*+?" and at_start:
            out.append("\\" + ch)
            i += 1
        elif ch == "{" and at_start:
            out.append(r"\{")
            i += 1
        else:
            out.append(ch)
            i += 1
    return "".join(out)


@functools.lru_cache(maxsize=512)
def compile_regex(pattern: str) -> re.Pattern:
    """Compile an AWK ERE; raises ``re.error`` when it is invalid."""
    return re.compile(translate_ere(pattern), re.DOTALL)
