"""Tests for AwkValue and its coercion rules."""

import math

import pytest

from pawk.values import (
    UNINITIALIZED,
    AwkValue,
    ValueKind,
    compare_values,
    format_number,
    looks_numeric,
    string_to_number,
    subscript_key,
    to_bool,
    to_number,
    to_string,
)

CONVFMT = "%.6g"


class TestLooksNumeric:
    @pytest.mark.parametrize("text", ["1", " 1 ", "-2.5", "+.5", "1e3", "3.", "\t7\n"])
    def test_numeric_texts(self, text):
        assert looks_numeric(text)

    @pytest.mark.parametrize("text", ["", " ", "abc", "1x", "0x1A", "inf", "nan", "."])
    def test_non_numeric_texts(self, text):
        assert not looks_numeric(text)


class TestStringToNumber:
    def test_leading_prefix(self):
        assert string_to_number("12abc") == 12.0

    def test_leading_blanks_skipped(self):
        assert string_to_number("  -3.5e1x") == -35.0

    def test_no_prefix_is_zero(self):
        assert string_to_number("abc") == 0.0

    def test_hex_is_not_recognised(self):
        assert string_to_number("0x10") == 0.0


class TestFormatNumber:
    def test_integers_print_exactly(self):
        assert format_number(42.0, CONVFMT) == "42"
        assert format_number(-7.0, CONVFMT) == "-7"

    def test_fractions_use_format(self):
        assert format_number(0.1, CONVFMT) == "0.1"
        assert format_number(1 / 3, "%.2f") == "0.33"

    def test_special_values(self):
        assert format_number(math.nan, CONVFMT) == "nan"
        assert format_number(math.inf, CONVFMT) == "inf"
        assert format_number(-math.inf, CONVFMT) == "-inf"


class TestConversions:
    def test_uninitialized_is_zero_and_empty(self):
        assert to_number(UNINITIALIZED) == 0.0
        assert to_string(UNINITIALIZED, CONVFMT) == ""
        assert not to_bool(UNINITIALIZED)

    def test_strnum_keeps_original_text(self):
        value = AwkValue.from_input("1.0")
        assert value.kind == ValueKind.STRNUM
        assert to_string(value, CONVFMT) == "1.0"
        assert to_number(value) == 1.0

    def test_truth_of_strings(self):
        assert to_bool(AwkValue.from_string("0"))
        assert not to_bool(AwkValue.from_string(""))

    def test_truth_of_strnums(self):
        assert not to_bool(AwkValue.from_input("0"))
        assert not to_bool(AwkValue.from_input(" 0.0 "))
        assert to_bool(AwkValue.from_input("abc"))

    def test_from_python(self):
        assert AwkValue.from_python(None) is UNINITIALIZED
        assert AwkValue.from_python(True) == AwkValue.from_number(1)
        assert AwkValue.from_python(3) == AwkValue.from_number(3)
        assert AwkValue.from_python("x") == AwkValue.from_string("x")


class TestCompareValues:
    def test_numeric_strnums_compare_as_numbers(self):
        lhs = AwkValue.from_input("10")
        rhs = AwkValue.from_input("9")
        assert compare_values(lhs, rhs, CONVFMT) > 0

    def test_string_operand_forces_string_comparison(self):
        lhs = AwkValue.from_input("10")
        rhs = AwkValue.from_string("9")
        assert compare_values(lhs, rhs, CONVFMT) < 0

    def test_uninitialized_equals_zero_and_empty(self):
        assert compare_values(UNINITIALIZED, AwkValue.from_number(0), CONVFMT) == 0
        assert compare_values(UNINITIALIZED, AwkValue.from_string(""), CONVFMT) == 0

    def test_non_numeric_strnum_compares_as_string(self):
        lhs = AwkValue.from_input("abc")
        rhs = AwkValue.from_number(1)
        assert compare_values(lhs, rhs, CONVFMT) > 0


class TestSubscriptKey:
    def test_integral_number_and_string_agree(self):
        assert subscript_key(AwkValue.from_number(1), CONVFMT) == "1"
        assert subscript_key(AwkValue.from_string("1"), CONVFMT) == "1"

    def test_fraction_uses_convfmt(self):
        assert subscript_key(AwkValue.from_number(0.5), CONVFMT) == "0.5"
