"""AwkIntermediateCompiler: source text to linked AwkTuples."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Iterable, Optional

from .ast_nodes import AwkSyntaxTree
from .linker import link_tuples
from .lowering import TupleGenerator
from .parser import AwkParser
from .semantic import SemanticAnalyzer
from .sources import ScriptSource
from .tuples import AwkTuples

logger = logging.getLogger(__name__)

__all__ = ["AwkIntermediateCompiler", "ScriptSource"]


def _as_list(sources: str | ScriptSource | Iterable[ScriptSource]) -> list[ScriptSource]:
    # plain text is an inline program, never a sequence of sources
    if isinstance(sources, str):
        return [ScriptSource.inline(sources)]
    if isinstance(sources, ScriptSource):
        return [sources]
    return list(sources)


class AwkIntermediateCompiler:
    """Runs the front half of the pipeline: parse, analyse, generate, link."""

    def __init__(
        self,
        extensions: Optional[Mapping] = None,
        additional_functions: bool = False,
        additional_type_functions: bool = False,
        use_stdin: bool = False,
    ):
        self.extensions = extensions or {}
        self.additional_functions = additional_functions
        self.additional_type_functions = additional_type_functions
        self.use_stdin = use_stdin

    def _parser(self) -> AwkParser:
        return AwkParser(
            additional_functions=self.additional_functions,
            additional_type_functions=self.additional_type_functions,
            use_stdin=self.use_stdin,
            extensions=self.extensions,
        )

    def parse_ast(self, sources: str | ScriptSource | Iterable[ScriptSource]) -> AwkSyntaxTree:
        """Parse and resolve *sources* without generating tuples."""
        tree = self._parser().parse(_as_list(sources))
        analyzer = SemanticAnalyzer(tree)
        analyzer.analyze()
        analyzer.analyze()
        analyzer.verify()
        return tree

    def compile(self, sources: str | ScriptSource | Iterable[ScriptSource]) -> AwkTuples:
        source_list = _as_list(sources)
        for source in source_list:
            if source.intermediate:
                raise ValueError(
                    f"{source.description}: intermediate sources cannot be compiled"
                )
        tree = self.parse_ast(source_list)
        tuples = AwkTuples()
        residual = TupleGenerator(tree, tuples).generate()
        assert residual == 0, f"operand stack not empty after generation ({residual})"
        link_tuples(tuples)
        logger.info(
            "Compiled %s into %d tuples",
            ", ".join(s.description for s in source_list),
            len(tuples),
        )
        return tuples
