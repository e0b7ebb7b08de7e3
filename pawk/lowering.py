"""TupleGenerator: AwkSyntaxTree → AwkTuples lowering.

Queue layout::

    begin:      BEGIN blocks ... HALT
    main_loop:  GET_RECORD @main_exit
                rules ...
                GOTO @main_loop
    main_exit:  HALT
    end:        END blocks ... HALT
    functions:  body ... PUSH_LITERAL <uninit>; RETURN

Every expression pushes exactly one value and every statement leaves the
operand stack as it found it. The generator tracks the static stack depth
so that :meth:`TupleGenerator.generate` can report what is left over.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

from . import ast_nodes as ast
from .builtins import Builtins
from .constants import GETLINE_COMMAND, GETLINE_FILE, REDIRECT_NONE
from .errors import AwkSemanticError
from .ir import Address, Opcode, Scope, VariableRef
from .tuples import AwkTuples
from .values import UNINITIALIZED, AwkValue

logger = logging.getLogger(__name__)


class Section(str, Enum):
    BEGIN = "BEGIN"
    MAIN = "main"
    END = "END"
    FUNCTION = "function"


# Builtin name -> argument positions where a regex literal is a pattern, not $0 ~ re.
_PATTERN_ARGS: dict[str, frozenset[int]] = {
    "split": frozenset({2}),
    "match": frozenset({1}),
    "sub": frozenset({0}),
    "gsub": frozenset({0}),
}

# Builtins that inspect a bare name without forcing it to be a scalar.
_NAME_INSPECTING_BUILTINS = frozenset({"length", "typeof", "isarray", "_dump"})

_FIXED_EFFECTS: dict[Opcode, int] = {
    Opcode.PUSH_LITERAL: 1,
    Opcode.PUSH_VAR: 1,
    Opcode.PUSH_ARRAY: 1,
    Opcode.PUSH_ARG: 1,
    Opcode.PUSH_INPUT_LINE: 1,
    Opcode.PUSH_FIELD: 0,
    Opcode.PUSH_ELEM: 0,
    Opcode.POP: -1,
    Opcode.DUP: 1,
    Opcode.ASSIGN_VAR: 0,
    Opcode.ASSIGN_ELEM: -1,
    Opcode.ASSIGN_FIELD: -1,
    Opcode.INC_VAR: 1,
    Opcode.INC_ELEM: 0,
    Opcode.INC_FIELD: 0,
    Opcode.SUB_VAR: -1,
    Opcode.SUB_ELEM: -2,
    Opcode.SUB_FIELD: -2,
    Opcode.BINOP: -1,
    Opcode.NEGATE: 0,
    Opcode.TO_NUMBER: 0,
    Opcode.NOT: 0,
    Opcode.CONCAT: -1,
    Opcode.COMPARE: -1,
    Opcode.MATCH: -1,
    Opcode.MATCH_RECORD: 1,
    Opcode.IN_ARRAY: 0,
    Opcode.GOTO: 0,
    Opcode.IF_FALSE: -1,
    Opcode.IF_TRUE: -1,
    Opcode.RETURN: -1,
    Opcode.NEXT: 0,
    Opcode.NEXTFILE: 0,
    Opcode.HALT: 0,
    Opcode.DELETE_ELEM: -1,
    Opcode.DELETE_ARRAY: 0,
    Opcode.KEYLIST: 0,
    Opcode.ITER_NEXT: 1,
    Opcode.GET_RECORD: 0,
    Opcode.RANGE_TEST: 1,
    Opcode.RANGE_SET: 0,
}


def stack_effect(opcode: Opcode, operands: list[Any]) -> int:
    """Net operand-stack change of one tuple on its fall-through path."""
    if opcode in _FIXED_EFFECTS:
        return _FIXED_EFFECTS[opcode]
    if opcode == Opcode.SUBSCRIPT:
        return 1 - operands[0]
    if opcode == Opcode.CALL_FUNCTION:
        return 1 - operands[3]
    if opcode in (Opcode.CALL_BUILTIN, Opcode.CALL_EXTENSION):
        return 1 - operands[1]
    if opcode == Opcode.EXIT:
        return -1 if operands[0] else 0
    if opcode == Opcode.GETLINE:
        return 0 if operands[0] in (GETLINE_FILE, GETLINE_COMMAND) else 1
    if opcode in (Opcode.PRINT, Opcode.PRINTF):
        return -(operands[0] + (1 if operands[1] != REDIRECT_NONE else 0))
    raise ValueError(f"no stack effect for {opcode}")


class TupleGenerator:
    def __init__(self, tree: ast.AwkSyntaxTree, tuples: Optional[AwkTuples] = None):
        self.tree = tree
        self.tuples = tuples if tuples is not None else AwkTuples()
        self.depth = 0
        self._line = 0
        self._section = Section.BEGIN
        self._function: Optional[ast.FunctionDef] = None
        self._loop_stack: list[tuple[Address, Address]] = []
        self._main_loop: Optional[Address] = None
        self._STMT_DISPATCH: dict[type, Callable] = {
            ast.Block: self._lower_block,
            ast.ExpressionStatement: self._lower_expression_statement,
            ast.Print: self._lower_print,
            ast.Printf: self._lower_print,
            ast.If: self._lower_if,
            ast.While: self._lower_while,
            ast.DoWhile: self._lower_do_while,
            ast.For: self._lower_for,
            ast.ForIn: self._lower_for_in,
            ast.Break: self._lower_break,
            ast.Continue: self._lower_continue,
            ast.Next: self._lower_next,
            ast.NextFile: self._lower_next,
            ast.Exit: self._lower_exit,
            ast.Return: self._lower_return,
            ast.Delete: self._lower_delete,
        }
        self._EXPR_DISPATCH: dict[type, Callable] = {
            ast.NumberLiteral: self._lower_number,
            ast.StringLiteral: self._lower_string,
            ast.RegexLiteral: self._lower_regex,
            ast.Name: self._lower_name,
            ast.FieldRef: self._lower_field,
            ast.IndexRef: self._lower_index,
            ast.Grouping: self._lower_grouping,
            ast.Assignment: self._lower_assignment,
            ast.Conditional: self._lower_conditional,
            ast.LogicalOp: self._lower_logical,
            ast.BinaryOp: self._lower_binary,
            ast.Comparison: self._lower_comparison,
            ast.MatchOp: self._lower_match,
            ast.Concatenation: self._lower_concatenation,
            ast.UnaryOp: self._lower_unary,
            ast.IncDec: self._lower_incdec,
            ast.InArray: self._lower_in_array,
            ast.BuiltinCall: self._lower_builtin,
            ast.ExtensionCall: self._lower_extension,
            ast.FunctionCall: self._lower_call,
            ast.Getline: self._lower_getline,
        }

    # ── helpers ──────────────────────────────────────────────────

    def _emit(self, opcode: Opcode, *operands: Any) -> None:
        self.tuples.emit(opcode, *operands, line=self._line)
        self.depth += stack_effect(opcode, list(operands))

    def _place(self, address: Address) -> None:
        self.tuples.place(address)

    def _error(self, message: str, node: ast.Node) -> AwkSemanticError:
        return AwkSemanticError(f"line {node.line}: {message}")

    def _ref(self, name: ast.Name) -> VariableRef:
        if name.scope == Scope.LOCAL:
            return VariableRef(name.name, Scope.LOCAL, name.index)
        return VariableRef(name.name, name.scope)

    def _is_array_name(self, name: ast.Name) -> bool:
        if name.scope == Scope.LOCAL:
            return self._function is not None and name.name in self._function.array_params
        if name.scope == Scope.SPECIAL:
            return name.name in ("ARGV", "ENVIRON")
        return name.name in self.tree.global_arrays

    def _function_address(self, name: str) -> Address:
        entries = self.tuples.function_entries
        if name not in entries:
            entries[name] = self.tuples.new_address(f"function_{name}")
        return entries[name]

    # ── entry point ──────────────────────────────────────────────

    def generate(self) -> int:
        """Lower the whole tree; returns the residual operand-stack depth."""
        tree = self.tree
        tuples = self.tuples
        self._main_loop = tuples.new_address("main_loop")

        if tree.begin_blocks:
            self._section = Section.BEGIN
            tuples.begin_entry = tuples.new_address("begin")
            self._place(tuples.begin_entry)
            for block in tree.begin_blocks:
                self._lower_stmt(block.body)
            self._emit(Opcode.HALT)

        has_main = bool(tree.rules or tree.end_blocks or tree.use_stdin)
        if has_main:
            self._section = Section.MAIN
            tuples.main_entry = self._main_loop
            main_exit = tuples.new_address("main_exit")
            self._place(self._main_loop)
            self._emit(Opcode.GET_RECORD, main_exit)
            for rule in tree.rules:
                self._lower_rule(rule)
            self._emit(Opcode.GOTO, self._main_loop)
            self._place(main_exit)
            self._emit(Opcode.HALT)
        else:
            self._main_loop = None

        if tree.end_blocks:
            self._section = Section.END
            tuples.end_entry = tuples.new_address("end")
            self._place(tuples.end_entry)
            for block in tree.end_blocks:
                self._lower_stmt(block.body)
            self._emit(Opcode.HALT)

        self._section = Section.FUNCTION
        for function in tree.functions:
            self._function = function
            self._line = function.line
            self._place(self._function_address(function.name))
            self._lower_stmt(function.body)
            self._emit(Opcode.PUSH_LITERAL, UNINITIALIZED)
            self._emit(Opcode.RETURN)
        self._function = None

        logger.info(
            "Generated %d tuples (main loop %s)",
            len(tuples),
            "present" if has_main else "absent",
        )
        return self.depth

    # ── rules ────────────────────────────────────────────────────

    def _lower_rule(self, rule: ast.Rule) -> None:
        self._line = rule.line
        skip = self.tuples.new_address("rule_skip")
        pattern = rule.pattern
        if isinstance(pattern, ast.ExpressionPattern):
            self._lower_expr(pattern.expression)
            self._emit(Opcode.IF_FALSE, skip)
        elif isinstance(pattern, ast.RangePattern):
            self._lower_range(pattern, skip)
        if rule.action is None:
            self._line = rule.line
            self._emit(Opcode.PRINT, 0, REDIRECT_NONE)
        else:
            self._lower_stmt(rule.action)
        self._place(skip)

    def _lower_range(self, pattern: ast.RangePattern, skip: Address) -> None:
        range_id = self.tuples.next_range_id()
        in_range = self.tuples.new_address("range_in")
        act = self.tuples.new_address("range_act")
        self._emit(Opcode.RANGE_TEST, range_id)
        self._emit(Opcode.IF_TRUE, in_range)
        self._lower_expr(pattern.start)
        self._emit(Opcode.IF_FALSE, skip)
        self._emit(Opcode.RANGE_SET, range_id, True)
        self._place(in_range)
        self._lower_expr(pattern.end)
        self._emit(Opcode.IF_FALSE, act)
        self._emit(Opcode.RANGE_SET, range_id, False)
        self._place(act)

    # ── statements ───────────────────────────────────────────────

    def _lower_stmt(self, node: ast.Statement) -> None:
        self._line = node.line
        handler = self._STMT_DISPATCH.get(type(node))
        if handler is None:
            raise self._error(f"unsupported statement {type(node).__name__}", node)
        before = self.depth
        handler(node)
        assert self.depth == before, f"line {node.line}: statement left the stack unbalanced"

    def _lower_block(self, node: ast.Block) -> None:
        for statement in node.statements:
            self._lower_stmt(statement)

    def _lower_expression_statement(self, node: ast.ExpressionStatement) -> None:
        self._lower_expr(node.expression)
        self._emit(Opcode.POP)

    def _lower_print(self, node: ast.Print | ast.Printf) -> None:
        for arg in node.args:
            self._lower_expr(arg)
        if node.redirect != REDIRECT_NONE:
            self._lower_expr(node.destination)
        self._line = node.line
        opcode = Opcode.PRINTF if isinstance(node, ast.Printf) else Opcode.PRINT
        self._emit(opcode, len(node.args), node.redirect)

    def _lower_if(self, node: ast.If) -> None:
        else_label = self.tuples.new_address("if_else")
        self._lower_expr(node.condition)
        self._emit(Opcode.IF_FALSE, else_label)
        self._lower_stmt(node.then_branch)
        if node.else_branch is None:
            self._place(else_label)
            return
        end_label = self.tuples.new_address("if_end")
        self._emit(Opcode.GOTO, end_label)
        self._place(else_label)
        self._lower_stmt(node.else_branch)
        self._place(end_label)

    def _lower_loop_body(self, body: ast.Statement, cont: Address, done: Address) -> None:
        self._loop_stack.append((cont, done))
        try:
            self._lower_stmt(body)
        finally:
            self._loop_stack.pop()

    def _lower_while(self, node: ast.While) -> None:
        loop = self.tuples.new_address("while_cond")
        done = self.tuples.new_address("while_end")
        self._place(loop)
        self._lower_expr(node.condition)
        self._emit(Opcode.IF_FALSE, done)
        self._lower_loop_body(node.body, loop, done)
        self._emit(Opcode.GOTO, loop)
        self._place(done)

    def _lower_do_while(self, node: ast.DoWhile) -> None:
        top = self.tuples.new_address("do_body")
        cond = self.tuples.new_address("do_cond")
        done = self.tuples.new_address("do_end")
        self._place(top)
        self._lower_loop_body(node.body, cond, done)
        self._place(cond)
        self._line = node.line
        self._lower_expr(node.condition)
        self._emit(Opcode.IF_TRUE, top)
        self._place(done)

    def _lower_for(self, node: ast.For) -> None:
        loop = self.tuples.new_address("for_cond")
        cont = self.tuples.new_address("for_update")
        done = self.tuples.new_address("for_end")
        if node.init is not None:
            self._lower_expr(node.init)
            self._emit(Opcode.POP)
        self._place(loop)
        if node.condition is not None:
            self._lower_expr(node.condition)
            self._emit(Opcode.IF_FALSE, done)
        self._lower_loop_body(node.body, cont, done)
        self._place(cont)
        self._line = node.line
        if node.update is not None:
            self._lower_expr(node.update)
            self._emit(Opcode.POP)
        self._emit(Opcode.GOTO, loop)
        self._place(done)

    def _lower_for_in(self, node: ast.ForIn) -> None:
        loop = self.tuples.new_address("forin_next")
        done = self.tuples.new_address("forin_end")
        self._emit(Opcode.PUSH_ARRAY, self._ref(node.array))
        self._emit(Opcode.KEYLIST)
        self._place(loop)
        self._emit(Opcode.ITER_NEXT, done)
        self._emit(Opcode.ASSIGN_VAR, self._ref(node.variable))
        self._emit(Opcode.POP)
        self._lower_loop_body(node.body, loop, done)
        self._emit(Opcode.GOTO, loop)
        # ITER_NEXT jumps here with only the iterator left to discard
        self._place(done)
        self._emit(Opcode.POP)

    def _lower_break(self, node: ast.Break) -> None:
        if not self._loop_stack:
            raise self._error("break outside a loop", node)
        self._emit(Opcode.GOTO, self._loop_stack[-1][1])

    def _lower_continue(self, node: ast.Continue) -> None:
        if not self._loop_stack:
            raise self._error("continue outside a loop", node)
        self._emit(Opcode.GOTO, self._loop_stack[-1][0])

    def _lower_next(self, node: ast.Next | ast.NextFile) -> None:
        keyword = "next" if isinstance(node, ast.Next) else "nextfile"
        if self._section in (Section.BEGIN, Section.END):
            raise self._error(f"{keyword} used in {self._section.value}", node)
        if self._main_loop is None:
            raise self._error(f"{keyword} used but the program reads no input", node)
        opcode = Opcode.NEXT if isinstance(node, ast.Next) else Opcode.NEXTFILE
        self._emit(opcode, self._main_loop)

    def _lower_exit(self, node: ast.Exit) -> None:
        if node.status is not None:
            self._lower_expr(node.status)
        self._emit(Opcode.EXIT, node.status is not None)

    def _lower_return(self, node: ast.Return) -> None:
        if self._function is None:
            raise self._error("return outside a function", node)
        if node.value is None:
            self._emit(Opcode.PUSH_LITERAL, UNINITIALIZED)
        else:
            self._lower_expr(node.value)
        self._emit(Opcode.RETURN)

    def _lower_delete(self, node: ast.Delete) -> None:
        if node.subscripts is None:
            self._emit(Opcode.DELETE_ARRAY, self._ref(node.array))
            return
        self._lower_subscript(node.subscripts)
        self._emit(Opcode.DELETE_ELEM, self._ref(node.array))

    # ── expressions ──────────────────────────────────────────────

    def _lower_expr(self, node: ast.Expression) -> None:
        handler = self._EXPR_DISPATCH.get(type(node))
        if handler is None:
            raise self._error(f"unsupported expression {type(node).__name__}", node)
        self._line = node.line
        before = self.depth
        handler(node)
        assert self.depth == before + 1, f"line {node.line}: expression must push one value"

    def _lower_number(self, node: ast.NumberLiteral) -> None:
        self._emit(Opcode.PUSH_LITERAL, AwkValue.from_number(node.value))

    def _lower_string(self, node: ast.StringLiteral) -> None:
        self._emit(Opcode.PUSH_LITERAL, AwkValue.from_string(node.value))

    def _lower_regex(self, node: ast.RegexLiteral) -> None:
        self._emit(Opcode.MATCH_RECORD, node.pattern)

    def _lower_pattern_operand(self, node: ast.Expression, literal_group: bool = False) -> None:
        """A regex operand: a literal pushes its source text, anything else its value."""
        if isinstance(node, ast.RegexLiteral):
            pattern = node.pattern
            # a one-character regex literal must not read as a literal separator
            if literal_group and len(pattern) == 1:
                pattern = f"({pattern})"
            self._emit(Opcode.PUSH_LITERAL, AwkValue.from_string(pattern))
        else:
            self._lower_expr(node)

    def _lower_name(self, node: ast.Name) -> None:
        self._emit(Opcode.PUSH_VAR, self._ref(node))

    def _lower_field(self, node: ast.FieldRef) -> None:
        self._lower_expr(node.index)
        self._emit(Opcode.PUSH_FIELD)

    def _lower_subscript(self, subscripts: list[ast.Expression]) -> None:
        for subscript in subscripts:
            self._lower_expr(subscript)
        if len(subscripts) > 1:
            self._emit(Opcode.SUBSCRIPT, len(subscripts))

    def _lower_index(self, node: ast.IndexRef) -> None:
        self._lower_subscript(node.subscripts)
        self._emit(Opcode.PUSH_ELEM, self._ref(node.array))

    def _lower_grouping(self, node: ast.Grouping) -> None:
        self._lower_expr(node.expression)

    def _store(self, target: ast.Expression, push_value: Callable[[], None]) -> None:
        """Store the value produced by *push_value* into *target*, leaving it pushed."""
        if isinstance(target, ast.Name):
            if self._is_array_name(target):
                raise self._error(f"cannot assign to array {target.name}", target)
            push_value()
            self._emit(Opcode.ASSIGN_VAR, self._ref(target))
        elif isinstance(target, ast.IndexRef):
            self._lower_subscript(target.subscripts)
            push_value()
            self._emit(Opcode.ASSIGN_ELEM, self._ref(target.array))
        elif isinstance(target, ast.FieldRef):
            self._lower_expr(target.index)
            push_value()
            self._emit(Opcode.ASSIGN_FIELD)
        else:
            raise self._error("assignment to a non-variable", target)

    def _lower_assignment(self, node: ast.Assignment) -> None:
        if node.operator == "=":
            self._store(node.target, lambda: self._lower_expr(node.value))
            return
        op = node.operator[:-1]
        target = node.target
        if isinstance(target, ast.Name):
            self._emit(Opcode.PUSH_VAR, self._ref(target))
            self._lower_expr(node.value)
            self._emit(Opcode.BINOP, op)
            self._emit(Opcode.ASSIGN_VAR, self._ref(target))
        elif isinstance(target, ast.IndexRef):
            self._lower_subscript(target.subscripts)
            self._emit(Opcode.DUP)
            self._emit(Opcode.PUSH_ELEM, self._ref(target.array))
            self._lower_expr(node.value)
            self._emit(Opcode.BINOP, op)
            self._emit(Opcode.ASSIGN_ELEM, self._ref(target.array))
        else:
            self._lower_expr(target.index)
            self._emit(Opcode.DUP)
            self._emit(Opcode.PUSH_FIELD)
            self._lower_expr(node.value)
            self._emit(Opcode.BINOP, op)
            self._emit(Opcode.ASSIGN_FIELD)

    def _lower_conditional(self, node: ast.Conditional) -> None:
        else_label = self.tuples.new_address("cond_else")
        end_label = self.tuples.new_address("cond_end")
        self._lower_expr(node.condition)
        self._emit(Opcode.IF_FALSE, else_label)
        self._lower_expr(node.if_true)
        self._emit(Opcode.GOTO, end_label)
        self.depth -= 1
        self._place(else_label)
        self._lower_expr(node.if_false)
        self._place(end_label)

    def _lower_logical(self, node: ast.LogicalOp) -> None:
        short = self.tuples.new_address("logic_short")
        end_label = self.tuples.new_address("logic_end")
        jump = Opcode.IF_FALSE if node.operator == "&&" else Opcode.IF_TRUE
        self._lower_expr(node.left)
        self._emit(jump, short)
        self._lower_expr(node.right)
        self._emit(jump, short)
        self._emit(Opcode.PUSH_LITERAL, AwkValue.from_bool(node.operator == "&&"))
        self._emit(Opcode.GOTO, end_label)
        self.depth -= 1
        self._place(short)
        self._emit(Opcode.PUSH_LITERAL, AwkValue.from_bool(node.operator == "||"))
        self._place(end_label)

    def _lower_binary(self, node: ast.BinaryOp) -> None:
        self._lower_expr(node.left)
        self._lower_expr(node.right)
        self._line = node.line
        self._emit(Opcode.BINOP, node.operator)

    def _lower_comparison(self, node: ast.Comparison) -> None:
        self._lower_expr(node.left)
        self._lower_expr(node.right)
        self._emit(Opcode.COMPARE, node.operator)

    def _lower_match(self, node: ast.MatchOp) -> None:
        self._lower_expr(node.left)
        self._lower_pattern_operand(node.right)
        self._line = node.line
        self._emit(Opcode.MATCH, node.negated)

    def _lower_concatenation(self, node: ast.Concatenation) -> None:
        self._lower_expr(node.left)
        self._lower_expr(node.right)
        self._emit(Opcode.CONCAT)

    def _lower_unary(self, node: ast.UnaryOp) -> None:
        if node.operator == "-" and isinstance(node.operand, ast.NumberLiteral):
            self._emit(Opcode.PUSH_LITERAL, AwkValue.from_number(-node.operand.value))
            return
        self._lower_expr(node.operand)
        opcode = {"-": Opcode.NEGATE, "+": Opcode.TO_NUMBER, "!": Opcode.NOT}[node.operator]
        self._emit(opcode)

    def _lower_incdec(self, node: ast.IncDec) -> None:
        target = node.target
        if isinstance(target, ast.Name):
            self._emit(Opcode.INC_VAR, self._ref(target), node.delta, node.postfix)
        elif isinstance(target, ast.IndexRef):
            self._lower_subscript(target.subscripts)
            self._emit(Opcode.INC_ELEM, self._ref(target.array), node.delta, node.postfix)
        else:
            self._lower_expr(target.index)
            self._emit(Opcode.INC_FIELD, node.delta, node.postfix)

    def _lower_in_array(self, node: ast.InArray) -> None:
        self._lower_subscript(node.subscripts)
        self._emit(Opcode.IN_ARRAY, self._ref(node.array))

    def _lower_call_argument(self, arg: ast.Expression, array_formal: bool) -> None:
        if isinstance(arg, ast.Name):
            self._emit(Opcode.PUSH_ARG, self._ref(arg), array_formal)
        else:
            self._lower_expr(arg)

    def _lower_call(self, node: ast.FunctionCall) -> None:
        callee = node.resolution.function
        if callee is None:
            raise self._error(f"function '{node.name}' never defined", node)
        for position, arg in enumerate(node.args):
            self._lower_call_argument(arg, callee.is_array_param(position))
        self._line = node.line
        self._emit(
            Opcode.CALL_FUNCTION,
            node.name,
            self._function_address(node.name),
            callee.arity,
            len(node.args),
        )

    def _lower_extension(self, node: ast.ExtensionCall) -> None:
        for arg in node.args:
            self._lower_call_argument(arg, False)
        self._line = node.line
        self._emit(Opcode.CALL_EXTENSION, node.name, len(node.args))

    def _lower_builtin(self, node: ast.BuiltinCall) -> None:
        name = node.name
        low, high = Builtins.ARITY[name]
        if not low <= len(node.args) <= high:
            raise self._error(f"{name}: wrong number of arguments ({len(node.args)})", node)
        if name in ("sub", "gsub"):
            self._lower_substitute(node)
            return
        if name == "length" and not node.args:
            self._emit(Opcode.PUSH_LITERAL, AwkValue.from_number(0))
            self._emit(Opcode.PUSH_FIELD)
            self._emit(Opcode.CALL_BUILTIN, name, 1)
            return
        pattern_positions = _PATTERN_ARGS.get(name, frozenset())
        for position, arg in enumerate(node.args):
            if name == "split" and position == 1:
                self._emit(Opcode.PUSH_ARRAY, self._ref(arg))
            elif position in pattern_positions:
                self._lower_pattern_operand(arg, literal_group=name == "split")
            elif name in _NAME_INSPECTING_BUILTINS and isinstance(arg, ast.Name):
                self._emit(Opcode.PUSH_ARG, self._ref(arg), False)
            else:
                self._lower_expr(arg)
        self._line = node.line
        self._emit(Opcode.CALL_BUILTIN, name, len(node.args))

    def _lower_substitute(self, node: ast.BuiltinCall) -> None:
        is_global = node.name == "gsub"
        self._lower_pattern_operand(node.args[0])
        self._lower_expr(node.args[1])
        target = node.args[2] if len(node.args) == 3 else None
        self._line = node.line
        if target is None:
            self._emit(Opcode.PUSH_LITERAL, AwkValue.from_number(0))
            self._emit(Opcode.SUB_FIELD, is_global)
        elif isinstance(target, ast.Name):
            self._emit(Opcode.SUB_VAR, self._ref(target), is_global)
        elif isinstance(target, ast.IndexRef):
            self._lower_subscript(target.subscripts)
            self._emit(Opcode.SUB_ELEM, self._ref(target.array), is_global)
        elif isinstance(target, ast.FieldRef):
            self._lower_expr(target.index)
            self._emit(Opcode.SUB_FIELD, is_global)
        else:
            raise self._error(f"{node.name}: third argument is not assignable", node)

    def _lower_getline(self, node: ast.Getline) -> None:
        if node.source_expr is not None:
            self._lower_expr(node.source_expr)
        self._line = node.line
        self._emit(Opcode.GETLINE, node.source, node.target is not None)
        if node.target is None:
            return
        skip = self.tuples.new_address("getline_skip")
        self._emit(Opcode.DUP)
        self._emit(Opcode.PUSH_LITERAL, AwkValue.from_number(0))
        self._emit(Opcode.COMPARE, ">")
        self._emit(Opcode.IF_FALSE, skip)
        self._store(node.target, lambda: self._emit(Opcode.PUSH_INPUT_LINE))
        self._emit(Opcode.POP)
        self._place(skip)
