"""Field splitting shared by record loading and ``split()``."""

from __future__ import annotations

import re

from .regex import compile_regex

_BLANKS_RE = re.compile(r"[ \t\n]+")


def _split_regex(text: str, pattern: re.Pattern) -> list[str]:
    parts: list[str] = []
    pos = 0
    for m in pattern.finditer(text):
        if m.end() == m.start():
            continue
        parts.append(text[pos : m.start()])
        pos = m.end()
    parts.append(text[pos:])
    return parts


def split_fields(text: str, fs: str, paragraph: bool = False) -> list[str]:
    """Split *text* by the field separator *fs*.

    ``" "`` splits on runs of blanks and ignores leading/trailing ones, ``""``
    yields one field per character, any other single character (except
    backslash) is literal, and everything else is a regular expression.
    In paragraph mode newline always separates fields as well.
    """
    if fs == " ":
        stripped = text.strip(" \t\n")
        return _BLANKS_RE.split(stripped) if stripped else []
    if text == "":
        return []
    if paragraph:
        fields: list[str] = []
        for line in text.split("\n"):
            fields.extend(split_fields(line, fs) if line else [""])
        return fields
    if fs == "":
        return list(text)
    if len(fs) == 1 and fs != "\\":
        return text.split(fs)
    return _split_regex(text, compile_regex(fs))
