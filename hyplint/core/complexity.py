"""
Complexity Analyzer — Cyclomatic complexity via control-flow reconstruction.

Each function-like unit is walked once, left to right, building a small
control-flow graph. Every decision point (if, non-final match arm, loop head,
&& / ||, early exit) adds exactly one independent path, so for this
structured construction E - N + 2 == 1 + decision points.

Closures and nested functions are separate units: the walk stops at them and
they are scored on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterator

from hyplint.core.errors import MalformedSyntaxError
from hyplint.core.syntax import FUNCTION_KINDS, FunctionUnit, iter_function_units
from hyplint.models.syntax_models import SyntaxNode


class EdgeKind(str, Enum):
    FALLTHROUGH = "fallthrough"
    BRANCH_TAKEN = "branch_taken"
    BRANCH_NOT_TAKEN = "branch_not_taken"
    LOOP_BACK = "loop_back"
    EARLY_EXIT = "early_exit"
    MATCH_ARM = "match_arm"
    SHORT_CIRCUIT = "short_circuit"


@dataclass(frozen=True)
class BasicBlock:
    id: int
    label: str
    line: int


@dataclass
class ControlFlowGraph:
    """Blocks and typed edges of one function. Ephemeral."""

    blocks: list[BasicBlock] = field(default_factory=list)
    edges: list[tuple[int, int, EdgeKind]] = field(default_factory=list)
    decision_points: int = 0
    entry: int = 0
    exit: int = 1

    def add_block(self, label: str, line: int) -> int:
        block = BasicBlock(id=len(self.blocks), label=label, line=line)
        self.blocks.append(block)
        return block.id

    def add_edge(self, source: int, target: int, kind: EdgeKind) -> None:
        self.edges.append((source, target, kind))

    def cyclomatic_number(self) -> int:
        """E - N + 2P with a single connected component."""
        return len(self.edges) - len(self.blocks) + 2

    @property
    def score(self) -> int:
        return 1 + self.decision_points


@dataclass
class _LoopFrame:
    head: int
    after: int
    label: str | None


_LOOP_KINDS = {"while_expression", "while_let_expression", "for_expression", "loop_expression"}
_EXIT_KINDS = {"return_expression", "break_expression", "continue_expression", "try_expression"}


def _label_of(node: SyntaxNode) -> str | None:
    for child in node.children:
        if child.kind == "label":
            return child.text
    return None


def _tail_return(body: SyntaxNode | None) -> SyntaxNode | None:
    """The ``return`` that ends a block body, which is not an early exit."""
    if body is None or body.kind != "block":
        return None
    statements = body.named_children
    if not statements:
        return None
    last = statements[-1]
    if last.kind == "expression_statement" and last.named_children:
        last = last.named_children[0]
    return last if last.kind == "return_expression" else None


class CfgBuilder:
    """Builds the control-flow graph of one function unit."""

    def __init__(self, unit: FunctionUnit) -> None:
        self._unit = unit
        self._graph = ControlFlowGraph()
        self._loops: list[_LoopFrame] = []
        self._tail = _tail_return(unit.body)
        self._current = 0
        self._handlers: dict[str, Callable[[SyntaxNode], None]] = {
            "if_expression": self._visit_if,
            "if_let_expression": self._visit_if,
            "match_expression": self._visit_match,
            "binary_expression": self._visit_binary,
            "let_chain": self._visit_let_chain,
        }
        for kind in _LOOP_KINDS:
            self._handlers[kind] = self._visit_loop
        for kind in _EXIT_KINDS:
            self._handlers[kind] = self._visit_exit

    def build(self) -> ControlFlowGraph:
        node = self._unit.node
        body = self._unit.body
        if body is None:
            raise MalformedSyntaxError(node.kind, node.span.start_line, "function without a body")

        line = node.span.start_line
        self._graph.entry = self._graph.add_block("entry", line)
        self._graph.exit = self._graph.add_block("exit", node.span.end_line)
        self._current = self._graph.entry

        self._visit(body)
        self._graph.add_edge(self._current, self._graph.exit, EdgeKind.FALLTHROUGH)
        return self._graph

    # ── graph primitives ──

    def _block(self, label: str, node: SyntaxNode) -> int:
        return self._graph.add_block(label, node.span.start_line)

    def _edge(self, source: int, target: int, kind: EdgeKind) -> None:
        self._graph.add_edge(source, target, kind)

    @staticmethod
    def _malformed(node: SyntaxNode, detail: str) -> MalformedSyntaxError:
        return MalformedSyntaxError(node.kind, node.span.start_line, detail)

    # ── traversal ──

    def _visit(self, node: SyntaxNode) -> None:
        if node.kind in FUNCTION_KINDS:
            return
        handler = self._handlers.get(node.kind)
        if handler is not None:
            handler(node)
            return
        for child in node.children:
            self._visit(child)

    def _visit_if(self, node: SyntaxNode) -> None:
        condition = node.field("condition") or node.field("value")
        consequence = node.field("consequence")
        if condition is None or consequence is None:
            raise self._malformed(node, "branch without a condition or body")

        self._visit(condition)
        decision = self._current
        then_block = self._block("then", consequence)
        join = self._block("endif", node)
        self._edge(decision, then_block, EdgeKind.BRANCH_TAKEN)
        self._current = then_block
        self._visit(consequence)
        self._edge(self._current, join, EdgeKind.FALLTHROUGH)

        alternative = node.field("alternative")
        if alternative is not None:
            else_block = self._block("else", alternative)
            self._edge(decision, else_block, EdgeKind.BRANCH_NOT_TAKEN)
            self._current = else_block
            self._visit(alternative)
            self._edge(self._current, join, EdgeKind.FALLTHROUGH)
        else:
            self._edge(decision, join, EdgeKind.BRANCH_NOT_TAKEN)

        self._current = join
        self._graph.decision_points += 1

    def _visit_match(self, node: SyntaxNode) -> None:
        body = node.field("body")
        if body is None:
            raise self._malformed(node, "match without arms block")
        value = node.field("value")
        if value is not None:
            self._visit(value)

        arms = body.children_of_kind("match_arm", "last_match_arm")
        scrutinee = self._current
        join = self._block("endmatch", node)
        if not arms:
            self._edge(scrutinee, join, EdgeKind.FALLTHROUGH)
        for arm in arms:
            arm_block = self._block("arm", arm)
            self._edge(scrutinee, arm_block, EdgeKind.MATCH_ARM)
            self._current = arm_block
            self._visit(arm)
            self._edge(self._current, join, EdgeKind.FALLTHROUGH)

        self._current = join
        self._graph.decision_points += max(len(arms) - 1, 0)

    def _visit_loop(self, node: SyntaxNode) -> None:
        body = node.field("body")
        if body is None:
            raise self._malformed(node, "loop without a body")

        # The iterator of a for loop is evaluated once, before the head
        if node.kind == "for_expression":
            iterable = node.field("value")
            if iterable is not None:
                self._visit(iterable)

        head = self._block("loop", node)
        after = self._block("endloop", node)
        self._edge(self._current, head, EdgeKind.FALLTHROUGH)
        self._current = head
        condition = node.field("condition")
        if condition is None and node.kind == "while_let_expression":
            condition = node.field("value")
        if condition is not None:
            self._visit(condition)

        body_block = self._block("body", body)
        self._edge(self._current, body_block, EdgeKind.BRANCH_TAKEN)
        self._edge(self._current, after, EdgeKind.BRANCH_NOT_TAKEN)

        self._loops.append(_LoopFrame(head=head, after=after, label=_label_of(node)))
        self._current = body_block
        self._visit(body)
        self._edge(self._current, head, EdgeKind.LOOP_BACK)
        self._loops.pop()

        self._current = after
        self._graph.decision_points += 1

    def _visit_binary(self, node: SyntaxNode) -> None:
        operator = node.field("operator")
        if operator is None or operator.kind not in ("&&", "||"):
            for child in node.children:
                self._visit(child)
            return
        left, right = node.field("left"), node.field("right")
        if left is None or right is None:
            raise self._malformed(node, f"'{operator.kind}' without two operands")
        self._visit(left)
        self._short_circuit(right)

    def _visit_let_chain(self, node: SyntaxNode) -> None:
        # `if let A = a && b` keeps its && tokens directly in the chain
        operands = node.named_children
        if not operands:
            return
        self._visit(operands[0])
        for operand in operands[1:]:
            self._short_circuit(operand)

    def _short_circuit(self, right: SyntaxNode) -> None:
        decision = self._current
        right_block = self._block("rhs", right)
        join = self._block("endcond", right)
        self._edge(decision, right_block, EdgeKind.BRANCH_TAKEN)
        self._edge(decision, join, EdgeKind.SHORT_CIRCUIT)
        self._current = right_block
        self._visit(right)
        self._edge(self._current, join, EdgeKind.FALLTHROUGH)
        self._current = join
        self._graph.decision_points += 1

    def _visit_exit(self, node: SyntaxNode) -> None:
        for child in node.children:
            self._visit(child)
        if node is self._tail:
            return

        target = self._graph.exit
        if node.kind in ("break_expression", "continue_expression"):
            frame = self._find_loop(_label_of(node))
            if frame is not None:
                target = frame.after if node.kind == "break_expression" else frame.head

        continuation = self._block("after_exit", node)
        self._edge(self._current, target, EdgeKind.EARLY_EXIT)
        self._edge(self._current, continuation, EdgeKind.FALLTHROUGH)
        self._current = continuation
        self._graph.decision_points += 1

    def _find_loop(self, label: str | None) -> _LoopFrame | None:
        if not self._loops:
            return None
        if label is None:
            return self._loops[-1]
        for frame in reversed(self._loops):
            if frame.label == label:
                return frame
        return None


def build_cfg(unit: FunctionUnit) -> ControlFlowGraph:
    """Build the control-flow graph of one unit. Raises MalformedSyntaxError."""
    return CfgBuilder(unit).build()


@dataclass(frozen=True)
class ComplexityScore:
    unit: FunctionUnit
    score: int


@dataclass(frozen=True)
class ComplexityFailure:
    unit: FunctionUnit
    error: MalformedSyntaxError


def analyze_complexity(
    root: SyntaxNode, check_tests: bool = False
) -> Iterator[ComplexityScore | ComplexityFailure]:
    """Score every function unit of a file; a malformed unit does not stop the rest."""
    for unit in iter_function_units(root, check_tests=check_tests):
        try:
            graph = build_cfg(unit)
        except MalformedSyntaxError as e:
            yield ComplexityFailure(unit=unit, error=e)
            continue
        yield ComplexityScore(unit=unit, score=graph.score)
