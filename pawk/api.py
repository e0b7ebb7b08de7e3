"""Composable API functions for the pawk pipeline.

Each function corresponds to a CLI workflow (--dump-tuples, --dump-ast,
--stats, plain execution) but is callable programmatically without argparse.
"""

from __future__ import annotations

import io
import logging
import pprint
from collections.abc import Mapping
from typing import Optional

from .ast_nodes import AwkSyntaxTree
from .compiler import AwkIntermediateCompiler
from .settings import AwkSettings
from .sources import ScriptSource
from .tuples import AwkTuples
from .vm import AVM

logger = logging.getLogger(__name__)


def _compiler(
    extensions: Optional[Mapping] = None,
    additional_functions: bool = False,
    additional_type_functions: bool = False,
    use_stdin: bool = False,
) -> AwkIntermediateCompiler:
    return AwkIntermediateCompiler(
        extensions=extensions,
        additional_functions=additional_functions,
        additional_type_functions=additional_type_functions,
        use_stdin=use_stdin,
    )


def compile_source(program: str, **options) -> AwkTuples:
    """Compile AWK program text to a linked tuple queue.

    Args:
        program: The AWK program text.
        **options: ``extensions``, ``additional_functions``,
            ``additional_type_functions`` and ``use_stdin``, as accepted by
            :class:`AwkIntermediateCompiler`.

    Returns:
        The linked ``AwkTuples``.
    """
    logger.info("Compiling program (%d characters)", len(program))
    return _compiler(**options).compile(ScriptSource.inline(program))


def parse_source(program: str, **options) -> AwkSyntaxTree:
    """Parse and resolve AWK program text without generating tuples."""
    return _compiler(**options).parse_ast(ScriptSource.inline(program))


def dump_tuples(program: str, **options) -> str:
    """Compile program text and return the tuple listing."""
    return compile_source(program, **options).dump()


def dump_ast(program: str, **options) -> str:
    tree = parse_source(program, **options)
    return "\n".join(pprint.pformat(item, width=100) for item in tree.items)


def ir_stats(program: str, **options) -> dict[str, int]:
    """Compile program text and count the opcodes of the resulting queue."""
    return compile_source(program, **options).opcode_counts()


def run_source(
    program: str,
    input_text: str = "",
    operands: Optional[list[str]] = None,
    variables: Optional[dict[str, str]] = None,
    field_separator: str = " ",
    extensions: Optional[Mapping] = None,
    additional_functions: bool = False,
    additional_type_functions: bool = False,
    use_stdin: bool = False,
) -> tuple[str, int]:
    """Compile and run a program against in-memory input.

    Args:
        program: The AWK program text.
        input_text: Text served as standard input.
        operands: ARGV[1..] (file names and ``var=value`` assignments).
        variables: ``-v`` assignments applied before BEGIN.
        field_separator: Initial ``FS``.
        extensions: Extension functions available to the program.

    Returns:
        A tuple of (everything written to standard output, exit status).
    """
    tuples = compile_source(
        program,
        extensions=extensions,
        additional_functions=additional_functions,
        additional_type_functions=additional_type_functions,
        use_stdin=use_stdin,
    )
    output = io.StringIO()
    settings = AwkSettings(
        input=io.StringIO(input_text),
        output=output,
        error=io.StringIO(),
        field_separator=field_separator,
        variables=dict(variables or {}),
        operands=list(operands or []),
    )
    signal = AVM(settings, extensions).interpret(tuples)
    return output.getvalue(), signal.status
