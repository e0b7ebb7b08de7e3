"""Tests for AWK ERE translation."""

import re

import pytest

from pawk.regex import compile_regex, translate_ere


def _matches(pattern: str, text: str) -> bool:
    return compile_regex(pattern).search(text) is not None


class TestTranslation:
    def test_posix_class(self):
        assert _matches("^[[:digit:]]+$", "123")
        assert not _matches("^[[:digit:]]+$", "12a")

    def test_negated_posix_class(self):
        assert _matches("[^[:alpha:]]", "ab1")
        assert not _matches("[^[:alpha:]]", "abc")

    def test_dollar_anchors_at_very_end(self):
        assert not _matches("a$", "a\n")
        assert translate_ere("a$") == r"a\Z"

    def test_leading_star_is_literal(self):
        assert _matches("*x", "a*x")

    def test_leading_brace_is_literal(self):
        assert _matches("{1}", "{1}")

    def test_word_boundary_escapes(self):
        assert _matches(r"\yfoo\y", "a foo b")
        assert not _matches(r"\<foo\>", "afoob")

    def test_backslash_b_is_backspace(self):
        assert _matches(r"a\bb", "a\bb")

    def test_octal_escape(self):
        assert _matches(r"\101", "A")

    def test_bracket_with_leading_close(self):
        assert _matches("[]a]", "]")

    def test_ampersand_in_bracket(self):
        assert _matches("[&]", "&")

    def test_dot_matches_newline(self):
        assert _matches("a.b", "a\nb")


class TestCompile:
    def test_invalid_pattern_raises(self):
        with pytest.raises(re.error):
            compile_regex("a(")

    def test_unterminated_bracket_raises(self):
        with pytest.raises(re.error):
            compile_regex("[abc")

    def test_results_are_cached(self):
        assert compile_regex("ab+") is compile_regex("ab+")
