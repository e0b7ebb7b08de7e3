"""AWK syntax tree produced by the parser and consumed by tuple generation."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from .ir import Scope


@dataclass
class Node:
    line: int


# ── Expressions ──────────────────────────────────────────────────


class Expression(Node):
    pass


@dataclass
class NumberLiteral(Expression):
    value: float


@dataclass
class StringLiteral(Expression):
    value: str


@dataclass
class RegexLiteral(Expression):
    """``/re/``: matches against $0 unless it is the operand of ~, split, sub…"""

    pattern: str


@dataclass
class Name(Expression):
    name: str
    scope: Scope = Scope.GLOBAL
    index: int = -1  # parameter position for locals


@dataclass
class FieldRef(Expression):
    index: Expression


@dataclass
class IndexRef(Expression):
    array: Name
    subscripts: list[Expression]


LValue = Union[Name, FieldRef, IndexRef]


@dataclass
class Grouping(Expression):
    """Parenthesized expression; keeps ``(a) > b`` apart from print redirection."""

    expression: Expression


@dataclass
class Assignment(Expression):
    target: Expression
    operator: str  # "=", "+=", "-=", "*=", "/=", "%=", "^="
    value: Expression


@dataclass
class Conditional(Expression):
    condition: Expression
    if_true: Expression
    if_false: Expression


@dataclass
class LogicalOp(Expression):
    operator: str  # "&&" | "||"
    left: Expression
    right: Expression


@dataclass
class BinaryOp(Expression):
    operator: str  # + - * / % ^
    left: Expression
    right: Expression


@dataclass
class Comparison(Expression):
    operator: str  # < <= == != > >=
    left: Expression
    right: Expression


@dataclass
class MatchOp(Expression):
    negated: bool
    left: Expression
    right: Expression


@dataclass
class Concatenation(Expression):
    left: Expression
    right: Expression


@dataclass
class UnaryOp(Expression):
    operator: str  # "-" | "+" | "!"
    operand: Expression


@dataclass
class IncDec(Expression):
    target: Expression
    delta: int
    postfix: bool


@dataclass
class InArray(Expression):
    subscripts: list[Expression]
    array: Name


@dataclass
class BuiltinCall(Expression):
    name: str
    args: list[Expression]


@dataclass
class ExtensionCall(Expression):
    name: str
    args: list[Expression]


class ResolutionState(str, Enum):
    UNRESOLVED = "unresolved"
    RESOLVED = "resolved"


@dataclass
class CallResolution:
    """Explicit binding state of a user-function call site."""

    state: ResolutionState = ResolutionState.UNRESOLVED
    function: Optional["FunctionDef"] = None

    @property
    def is_resolved(self) -> bool:
        return self.state == ResolutionState.RESOLVED

    def bind(self, function: "FunctionDef") -> None:
        self.state = ResolutionState.RESOLVED
        self.function = function


@dataclass
class FunctionCall(Expression):
    name: str
    args: list[Expression]
    resolution: CallResolution = field(default_factory=CallResolution)


@dataclass
class Getline(Expression):
    source: str  # GETLINE_MAIN | GETLINE_FILE | GETLINE_COMMAND
    target: Optional[Expression] = None
    source_expr: Optional[Expression] = None


@dataclass
class ExpressionList(Expression):
    """``(a, b)``: only meaningful before ``in`` or as a print list."""

    items: list[Expression]


# ── Statements ───────────────────────────────────────────────────


class Statement(Node):
    pass


@dataclass
class Block(Statement):
    statements: list[Statement]


@dataclass
class ExpressionStatement(Statement):
    expression: Expression


@dataclass
class Print(Statement):
    args: list[Expression]
    redirect: str = ""
    destination: Optional[Expression] = None


@dataclass
class Printf(Statement):
    args: list[Expression]
    redirect: str = ""
    destination: Optional[Expression] = None


@dataclass
class If(Statement):
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


@dataclass
class While(Statement):
    condition: Expression
    body: Statement


@dataclass
class DoWhile(Statement):
    body: Statement
    condition: Expression


@dataclass
class For(Statement):
    init: Optional[Expression]
    condition: Optional[Expression]
    update: Optional[Expression]
    body: Statement


@dataclass
class ForIn(Statement):
    variable: Expression
    array: Name
    body: Statement


@dataclass
class Break(Statement):
    pass


@dataclass
class Continue(Statement):
    pass


@dataclass
class Next(Statement):
    pass


@dataclass
class NextFile(Statement):
    pass


@dataclass
class Exit(Statement):
    status: Optional[Expression] = None


@dataclass
class Return(Statement):
    value: Optional[Expression] = None


@dataclass
class Delete(Statement):
    array: Name
    subscripts: Optional[list[Expression]] = None


# ── Top level ────────────────────────────────────────────────────


@dataclass
class ExpressionPattern(Node):
    expression: Expression


@dataclass
class RangePattern(Node):
    start: Expression
    end: Expression


Pattern = Union[ExpressionPattern, RangePattern]


@dataclass
class BeginBlock(Node):
    body: Block


@dataclass
class EndBlock(Node):
    body: Block


@dataclass
class Rule(Node):
    pattern: Optional[Pattern]
    action: Optional[Block]


@dataclass
class FunctionDef(Node):
    name: str
    params: list[str]
    body: Block
    array_params: set[str] = field(default_factory=set)

    @property
    def arity(self) -> int:
        return len(self.params)

    def is_array_param(self, position: int) -> bool:
        return position < len(self.params) and self.params[position] in self.array_params


Item = Union[BeginBlock, EndBlock, Rule, FunctionDef]


@dataclass
class AwkSyntaxTree:
    """A parsed program; ``items`` keeps source order for call resolution."""

    items: list[Item] = field(default_factory=list)
    global_arrays: set[str] = field(default_factory=set)
    use_stdin: bool = False

    @property
    def begin_blocks(self) -> list[BeginBlock]:
        return [item for item in self.items if isinstance(item, BeginBlock)]

    @property
    def end_blocks(self) -> list[EndBlock]:
        return [item for item in self.items if isinstance(item, EndBlock)]

    @property
    def rules(self) -> list[Rule]:
        return [item for item in self.items if isinstance(item, Rule)]

    @property
    def functions(self) -> list[FunctionDef]:
        return [item for item in self.items if isinstance(item, FunctionDef)]
