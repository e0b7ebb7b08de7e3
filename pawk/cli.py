"""Command-line entry point: ``pawk [options] 'program' [file | var=value]...``."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Optional

from .compiler import AwkIntermediateCompiler
from .constants import DEFAULT_PROGRAM_NAME
from .errors import AwkError
from .lexer import process_escapes
from .settings import AwkSettings
from .sources import ScriptSource
from .streams import parse_assignment
from .vm import AVM

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=DEFAULT_PROGRAM_NAME, description="AWK language processor"
    )
    parser.add_argument("-F", dest="field_separator", default=None,
                        help="Field separator (FS)")
    parser.add_argument("-v", dest="assignments", action="append", default=[],
                        metavar="VAR=VALUE",
                        help="Assign a variable before BEGIN (repeatable)")
    parser.add_argument("-f", dest="program_files", action="append", default=[],
                        metavar="PROGFILE",
                        help="Read the program from a file (repeatable)")
    parser.add_argument("-y", "--additional-functions", action="store_true",
                        help="Enable _sleep, _dump and systime")
    parser.add_argument("-t", "--additional-type-functions", action="store_true",
                        help="Enable typeof, isarray, _INTEGER, _DOUBLE and _STRING")
    parser.add_argument("--stdin", action="store_true",
                        help="Always run the main input loop")
    parser.add_argument("--dump-tuples", action="store_true",
                        help="Only print the linked tuple queue")
    parser.add_argument("--dump-ast", action="store_true",
                        help="Only print the syntax tree")
    parser.add_argument("--stats", action="store_true",
                        help="Only print opcode counts as JSON")
    parser.add_argument("--verbose", action="store_true",
                        help="Enable debug logging")
    parser.add_argument("arguments", nargs=argparse.REMAINDER,
                        help="Program text (unless -f is given), then operands")
    return parser


def _field_separator(value: str) -> str:
    # POSIX: -Ft means a tab
    return "\t" if value == "t" else process_escapes(value)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    operands = list(args.arguments)
    if not args.program_files and not operands:
        parser.error("no program given")

    variables: dict[str, str] = {}
    for assignment in args.assignments:
        parsed = parse_assignment(assignment)
        if parsed is None:
            parser.error(f"invalid -v argument: {assignment!r}")
        variables[parsed[0]] = parsed[1]

    compiler = AwkIntermediateCompiler(
        additional_functions=args.additional_functions,
        additional_type_functions=args.additional_type_functions,
        use_stdin=args.stdin,
    )
    try:
        if args.program_files:
            sources = [ScriptSource.from_file(path) for path in args.program_files]
        else:
            sources = [ScriptSource.inline(operands.pop(0))]
        if args.dump_ast:
            for item in compiler.parse_ast(sources).items:
                print(item)
            return 0
        tuples = compiler.compile(sources)
        if args.dump_tuples:
            print(tuples.dump())
            return 0
        if args.stats:
            print(json.dumps(tuples.opcode_counts(), indent=2, sort_keys=True))
            return 0
        settings = AwkSettings(
            field_separator=_field_separator(args.field_separator)
            if args.field_separator is not None
            else " ",
            variables=variables,
            operands=operands,
        )
        return AVM(settings).interpret(tuples).status
    except (AwkError, OSError) as exc:
        print(f"{DEFAULT_PROGRAM_NAME}: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
