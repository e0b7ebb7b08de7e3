"""Shared names and defaults for the compiler and the AVM."""

from __future__ import annotations

NO_ADDRESS = -1

DEFAULT_FS = " "
DEFAULT_RS = "\n"
DEFAULT_OFS = " "
DEFAULT_ORS = "\n"
DEFAULT_SUBSEP = "\034"
DEFAULT_CONVFMT = "%.6g"
DEFAULT_OFMT = "%.6g"

DEFAULT_PROGRAM_NAME = "pawk"
INLINE_SCRIPT_DESCRIPTION = "<inline-script>"

SPECIAL_SCALARS: frozenset[str] = frozenset(
    {
        "NR",
        "FNR",
        "NF",
        "FS",
        "OFS",
        "ORS",
        "RS",
        "SUBSEP",
        "FILENAME",
        "RSTART",
        "RLENGTH",
        "CONVFMT",
        "OFMT",
        "ARGC",
    }
)

SPECIAL_ARRAYS: frozenset[str] = frozenset({"ARGV", "ENVIRON"})

STANDARD_BUILTINS: frozenset[str] = frozenset(
    {
        "length",
        "substr",
        "index",
        "split",
        "sub",
        "gsub",
        "match",
        "sprintf",
        "sin",
        "cos",
        "atan2",
        "exp",
        "log",
        "sqrt",
        "int",
        "rand",
        "srand",
        "tolower",
        "toupper",
        "system",
        "close",
        "fflush",
    }
)

ADDITIONAL_BUILTINS: frozenset[str] = frozenset({"_sleep", "_dump", "systime"})

TYPE_BUILTINS: frozenset[str] = frozenset(
    {"typeof", "isarray", "_INTEGER", "_DOUBLE", "_STRING"}
)

# Output/input names that never open a real file.
STDOUT_NAMES: frozenset[str] = frozenset({"/dev/stdout", "-"})
STDERR_NAMES: frozenset[str] = frozenset({"/dev/stderr"})
STDIN_NAMES: frozenset[str] = frozenset({"/dev/stdin", "-"})

REDIRECT_NONE = ""
REDIRECT_WRITE = ">"
REDIRECT_APPEND = ">>"
REDIRECT_PIPE = "|"

GETLINE_MAIN = "main"
GETLINE_FILE = "file"
GETLINE_COMMAND = "command"
