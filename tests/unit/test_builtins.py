"""Tests for built-in functions."""

import math
import re

import pytest

from pawk.api import run_source
from pawk.builtins import Builtins, substitute
from pawk.constants import ADDITIONAL_BUILTINS, STANDARD_BUILTINS, TYPE_BUILTINS
from pawk.errors import AwkSemanticError


def _print(expression: str, **kwargs) -> str:
    output, _ = run_source(f"BEGIN {{ print {expression} }}", **kwargs)
    return output.rstrip("\n")


class TestSubstitute:
    def test_global_empty_matches_between_characters(self):
        assert substitute("abxd", re.compile("x*"), "-", True) == ("-a-b-d-", 4)

    def test_first_match_only(self):
        assert substitute("aaa", re.compile("a"), "b", False) == ("baa", 1)

    def test_ampersand_inserts_match(self):
        assert substitute("cat", re.compile("a"), "[&]", True) == ("c[a]t", 1)

    def test_escaped_ampersand_is_literal(self):
        assert substitute("cat", re.compile("a"), "\\&", True) == ("c&t", 1)

    def test_no_match(self):
        assert substitute("abc", re.compile("z"), "y", True) == ("abc", 0)


class TestStringFunctions:
    def test_length_substr_index(self):
        program = 's = "hello world"; print length(s), substr(s, 1, 5), substr(s, 7), index(s, "wor")'
        output, _ = run_source(f"BEGIN {{ {program} }}")
        assert output == "11 hello world 7\n"

    @pytest.mark.parametrize(
        "call, expected",
        [
            ('substr("hello", 0)', "hello"),
            ('substr("hello", -1, 3)', "h"),
            ('substr("hello", 2, 100)', "ello"),
            ('substr("hello", 1.5, 2)', "el"),
            ('substr("hello", 3, -1)', ""),
            ('substr("hello", 2, 2 ^ 1024)', "ello"),
            ('substr("hello", -2 ^ 1024, 2 ^ 1024)', ""),
            ('substr("hello", 2 ^ 1024)', ""),
            ('substr("hello", -2 ^ 1024)', "hello"),
        ],
    )
    def test_substr_edges(self, call, expected):
        assert _print(call) == expected

    def test_case_conversion(self):
        assert _print('toupper("abc") tolower("DEF")') == "ABCdef"

    def test_split_with_string_separator(self):
        output, _ = run_source('BEGIN { n = split("a:b:c", p, ":"); print n, p[1], p[3] }')
        assert output == "3 a c\n"

    def test_split_with_regex(self):
        output, _ = run_source('BEGIN { n = split("a1b22c", p, /[0-9]+/); print n, p[1] p[2] p[3] }')
        assert output == "3 abc\n"

    def test_split_single_character_regex_is_not_literal(self):
        output, _ = run_source('BEGIN { n = split("a.b", p, /./); print n }')
        assert output == "4\n"

    def test_split_clears_array(self):
        output, _ = run_source('BEGIN { p[9] = 1; split("x", p); print length(p), (9 in p) }')
        assert output == "1 0\n"

    def test_match_sets_rstart_and_rlength(self):
        assert _print('match("foobar", /ob/), RSTART, RLENGTH') == "3 3 2"

    def test_failed_match(self):
        assert _print('match("foobar", /z/), RSTART, RLENGTH') == "0 0 -1"

    def test_sprintf(self):
        call = 'sprintf("%5.2f|%-4d|%s|%c|%x", 3.14159, 7, "str", 65, 255)'
        assert _print(call) == " 3.14|7   |str|A|ff"

    def test_gsub_returns_count(self):
        output, _ = run_source('BEGIN { s = "aaa"; n = gsub(/a/, "b", s); print n, s }')
        assert output == "3 bbb\n"

    def test_sub_on_record_rebuilds_fields(self):
        output, _ = run_source('{ sub(/o/, "0"); print; print $1 }', "foo bar\n")
        assert output == "f0o bar\nf0o\n"

    def test_gsub_dynamic_regex_from_string(self):
        output, _ = run_source('BEGIN { s = "a.b.c"; gsub(".", "-", s); print s }')
        assert output == "-----\n"


class TestArithmetic:
    def test_int_truncates(self):
        assert _print("int(3.9), int(-3.9)") == "3 -3"

    def test_math_functions(self):
        assert _print("sqrt(16), exp(0), log(1), sin(0), cos(0), atan2(0, 1)") == "4 1 0 0 1 0"

    def test_log_of_negative_is_nan(self):
        assert _print("log(-1)") == "nan"

    def test_srand_is_reproducible(self):
        output, _ = run_source(
            "BEGIN { srand(1); a = rand(); srand(1); b = rand(); print (a == b) }"
        )
        assert output == "1\n"

    def test_srand_returns_previous_seed(self):
        output, _ = run_source("BEGIN { srand(5); print srand(7) }")
        assert output == "5\n"

    def test_rand_is_in_unit_interval(self):
        output, _ = run_source("BEGIN { for (i = 0; i < 50; i++) if (rand() < 0 || rand() >= 1) bad++; print bad + 0 }")
        assert output == "0\n"


class TestExtendedFunctions:
    def test_dump_array(self):
        output, _ = run_source('BEGIN { a["k"] = 1; a["j"] = "x"; _dump(a) }', additional_functions=True)
        assert output == "{k=1, j=x}\n"

    def test_dump_globals(self):
        output, _ = run_source('BEGIN { x = 3; _dump() }', additional_functions=True)
        assert output == "x = 3\n"

    def test_systime_is_positive(self):
        assert int(_print("systime()", additional_functions=True)) > 0

    def test_typeof(self):
        program = 'BEGIN { a[1]; x = 1; print typeof(a), typeof(x), typeof(y), typeof("s") }'
        output, _ = run_source(program, additional_type_functions=True)
        assert output == "array number unassigned string\n"

    def test_typeof_field_is_strnum(self):
        output, _ = run_source("{ print typeof($1) }", "12\n", additional_type_functions=True)
        assert output == "strnum\n"

    def test_isarray_and_casts(self):
        program = 'BEGIN { a[1]; print isarray(a), isarray(b), _INTEGER(2.7), _DOUBLE("1.5x"), _STRING(3) "!" }'
        output, _ = run_source(program, additional_type_functions=True)
        assert output == "1 0 2 1.5 3!\n"

    def test_type_functions_need_flag(self):
        with pytest.raises(AwkSemanticError):
            run_source("BEGIN { print typeof(x) }")


class TestTables:
    def test_every_builtin_has_an_arity(self):
        names = STANDARD_BUILTINS | ADDITIONAL_BUILTINS | TYPE_BUILTINS
        assert names == set(Builtins.ARITY)

    def test_every_non_substitution_builtin_is_implemented(self):
        names = STANDARD_BUILTINS | ADDITIONAL_BUILTINS | TYPE_BUILTINS
        assert names - {"sub", "gsub"} == set(Builtins.TABLE)

    def test_math_wrapper_maps_overflow_to_infinity(self):
        assert _print("exp(1000)") == "inf"
        assert math.isinf(float(_print("-log(0)")))
