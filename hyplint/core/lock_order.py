"""
Lock Order Analyzer — Cross-function lock-acquisition-order cycle detection.

Phase 1 (per function, parallel-safe): walk the body in source order with a
scope stack and record a (held, acquired) pair for every lock taken while
others are held. Block frames hold `let`-bound guards until the block ends;
statement frames hold temporaries until the statement ends. Match arms get
a frame of their own, so a guard taken in one arm never meets another arm.

Phase 2 (once per run): merge all pairs into a LockOrderGraph and enumerate
its simple cycles. Each cycle is one inconsistent ordering, a necessary
condition for deadlock.

Lock identity is the receiver expression text. There is no alias analysis:
different expressions naming one lock are missed, and equal expressions on
different instances are merged.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from hyplint.core.syntax import (
    FUNCTION_KINDS,
    FunctionUnit,
    compact_text,
    iter_function_units,
    location_of,
)
from hyplint.models.lock_models import LockCycle, LockOrderPair, Witness
from hyplint.models.syntax_models import SyntaxNode


LOCK_METHODS = frozenset({"lock", "try_lock", "read", "write", "try_read", "try_write"})

# Calls that pass the guard through, so `let g = m.lock().unwrap();` binds it
_GUARD_ADAPTERS = frozenset({"unwrap", "expect", "unwrap_or_else"})

_DROP_FUNCTIONS = frozenset({"drop", "mem::drop", "std::mem::drop"})

# Conditions whose temporaries live for the whole if/while body
_LET_CONDITIONS = {"let_condition", "let_chain"}


def lock_identity(call: SyntaxNode) -> str | None:
    """Identity of the lock taken by ``call``, or None if it is not an acquisition.

    An acquisition is a zero-argument ``lock``/``read``/``write`` style method
    call; ``file.read(&mut buf)`` does not qualify.
    """
    if call.kind != "call_expression":
        return None
    function = call.field("function")
    if function is None or function.kind != "field_expression":
        return None
    method = function.field("field")
    if method is None or method.text not in LOCK_METHODS:
        return None
    arguments = call.field("arguments")
    if arguments is not None and arguments.named_children:
        return None
    receiver = function.field("value")
    if receiver is None:
        return None
    return compact_text(receiver)


def _guard_source(value: SyntaxNode) -> SyntaxNode | None:
    """The lock call whose guard ends up bound by a `let`, if any."""
    node = value
    while True:
        if node.kind in ("try_expression", "await_expression", "parenthesized_expression"):
            inner = node.named_children
            if not inner:
                return None
            node = inner[0]
            continue
        if node.kind != "call_expression":
            return None
        if lock_identity(node) is not None:
            return node
        function = node.field("function")
        if function is None or function.kind != "field_expression":
            return None
        method = function.field("field")
        if method is None or method.text not in _GUARD_ADAPTERS:
            return None
        receiver = function.field("value")
        if receiver is None:
            return None
        node = receiver


@dataclass
class _Held:
    identity: str
    binding: str | None


@dataclass
class _PendingBind:
    call: SyntaxNode
    binding: str | None
    frame: list[_Held]


class LockChainExtractor:
    """Phase 1 for one function unit."""

    def __init__(self, unit: FunctionUnit) -> None:
        self._unit = unit
        self._frames: list[list[_Held]] = []
        self._pairs: list[LockOrderPair] = []
        self._pending: _PendingBind | None = None

    def extract(self) -> list[LockOrderPair]:
        body = self._unit.body
        if body is None:
            return []
        self._frames.append([])
        self._visit(body)
        self._frames.pop()
        return self._pairs

    def _visit(self, node: SyntaxNode) -> None:
        if node.kind in FUNCTION_KINDS:
            return
        # Each match arm is its own temporary scope
        if node.kind in ("block", "match_arm", "last_match_arm"):
            self._frames.append([])
            self._visit_children(node)
            self._frames.pop()
        elif node.kind in ("let_declaration", "expression_statement"):
            self._visit_statement(node)
        elif node.kind in ("if_expression", "while_expression"):
            self._visit_conditional(node)
        elif node.kind == "call_expression":
            self._visit_call(node)
        else:
            self._visit_children(node)

    def _visit_children(self, node: SyntaxNode) -> None:
        for child in node.children:
            self._visit(child)

    def _visit_statement(self, node: SyntaxNode) -> None:
        block_frame = self._frames[-1]
        pending = None
        if node.kind == "let_declaration":
            value = node.field("value")
            pattern = node.field("pattern")
            call = _guard_source(value) if value is not None else None
            # `let _ = m.lock()` drops the guard at once
            if call is not None and pattern is not None and pattern.text != "_":
                binding = pattern.text if pattern.kind == "identifier" else None
                pending = _PendingBind(call=call, binding=binding, frame=block_frame)

        previous, self._pending = self._pending, pending or self._pending
        self._frames.append([])
        self._visit_children(node)
        self._frames.pop()
        self._pending = previous

    def _visit_conditional(self, node: SyntaxNode) -> None:
        # Temporaries of a plain `if`/`while` condition die before the body runs
        condition = node.field("condition")
        for child in node.children:
            if child is condition and condition.kind not in _LET_CONDITIONS:
                self._frames.append([])
                self._visit(child)
                self._frames.pop()
            else:
                self._visit(child)

    def _visit_call(self, node: SyntaxNode) -> None:
        # Receiver and arguments are evaluated before the call itself
        self._visit_children(node)
        identity = lock_identity(node)
        if identity is not None:
            self._acquire(node, identity)
        else:
            self._maybe_release(node)

    def _acquire(self, call: SyntaxNode, identity: str) -> None:
        function = self._unit.qualified_name
        seen: set[str] = set()
        for frame in self._frames:
            for held in frame:
                if held.identity in seen:
                    continue
                seen.add(held.identity)
                witness = Witness(
                    function=function,
                    location=location_of(
                        call, label=f"'{identity}' acquired while holding '{held.identity}' in {function}"
                    ),
                )
                self._pairs.append(
                    LockOrderPair(held=held.identity, acquired=identity, witness=witness)
                )

        if self._pending is not None and self._pending.call is call:
            self._pending.frame.append(_Held(identity=identity, binding=self._pending.binding))
        else:
            self._frames[-1].append(_Held(identity=identity, binding=None))

    def _maybe_release(self, call: SyntaxNode) -> None:
        """``drop(guard)`` releases a bound guard early."""
        function = call.field("function")
        if function is None or compact_text(function) not in _DROP_FUNCTIONS:
            return
        arguments = call.field("arguments")
        args = arguments.named_children if arguments is not None else []
        if len(args) != 1 or args[0].kind != "identifier":
            return
        name = args[0].text
        for frame in reversed(self._frames):
            for index in range(len(frame) - 1, -1, -1):
                if frame[index].binding == name:
                    del frame[index]
                    return


def extract_lock_pairs(root: SyntaxNode, check_tests: bool = False) -> tuple[LockOrderPair, ...]:
    """Phase 1 for a whole file: pairs of every function unit, in source order."""
    pairs: list[LockOrderPair] = []
    for unit in iter_function_units(root, check_tests=check_tests):
        pairs.extend(LockChainExtractor(unit).extract())
    return tuple(pairs)


class LockOrderGraph:
    """Run-scoped lock-order graph. Only grows; witnesses accumulate per edge."""

    def __init__(self) -> None:
        self._nodes: set[str] = set()
        self._edges: dict[str, dict[str, set[Witness]]] = {}

    def add_pair(self, pair: LockOrderPair) -> None:
        self._nodes.update((pair.held, pair.acquired))
        self._edges.setdefault(pair.held, {}).setdefault(pair.acquired, set()).add(pair.witness)

    def add_pairs(self, pairs: Iterable[LockOrderPair]) -> None:
        for pair in pairs:
            self.add_pair(pair)

    @property
    def nodes(self) -> list[str]:
        return sorted(self._nodes)

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self._edges.values())

    def has_edge(self, source: str, target: str) -> bool:
        return target in self._edges.get(source, {})

    def successors(self, node: str) -> list[str]:
        return sorted(self._edges.get(node, {}))

    def witnesses(self, source: str, target: str) -> tuple[Witness, ...]:
        found = self._edges.get(source, {}).get(target, set())
        return tuple(sorted(found, key=Witness.sort_key))

    def self_loops(self) -> list[str]:
        return [node for node in self.nodes if self.has_edge(node, node)]

    def simple_cycles(self) -> list[tuple[str, ...]]:
        """
        Every simple cycle of length >= 2, each starting at its smallest lock.

        Depth-first search from each start node with a recursion stack, only
        descending into nodes greater than the start, so every cycle is found
        exactly once in its canonical rotation.
        """
        cycles: list[tuple[str, ...]] = []
        for start in self.nodes:
            self._search(start, start, [start], {start}, cycles)
        return cycles

    def _search(
        self,
        start: str,
        node: str,
        path: list[str],
        on_path: set[str],
        cycles: list[tuple[str, ...]],
    ) -> None:
        for successor in self.successors(node):
            if successor == start:
                if len(path) > 1:
                    cycles.append(tuple(path))
            elif successor > start and successor not in on_path:
                path.append(successor)
                on_path.add(successor)
                self._search(start, successor, path, on_path, cycles)
                path.pop()
                on_path.discard(successor)

    def find_cycles(self) -> list[LockCycle]:
        """Self-loops first, then longer cycles, all with per-edge witnesses."""
        found = [(node,) for node in self.self_loops()]
        found.extend(self.simple_cycles())
        cycles: list[LockCycle] = []
        for locks in found:
            n = len(locks)
            witnesses = tuple(
                self.witnesses(locks[i], locks[(i + 1) % n]) for i in range(n)
            )
            cycles.append(LockCycle(locks=locks, witnesses=witnesses))
        return cycles
