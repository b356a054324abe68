"""
Syntax Models — Frontend-neutral, immutable syntax tree.

The parsing frontend produces these; checkers only read them. Nodes keep the
grammar field name of every child so analyses can ask for ``condition``,
``body`` or ``operator`` without knowing the frontend's API.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator


@dataclass(frozen=True)
class Span:
    """Source range of a node. Lines and columns are 1-based."""

    file: str
    start_byte: int
    end_byte: int
    start_line: int
    start_column: int
    end_line: int
    end_column: int

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1


@dataclass(frozen=True, eq=False)
class SyntaxNode:
    """A single node of a parsed file.

    ``eq=False`` keeps identity semantics, so nodes can be used as dict keys
    and compared with ``is`` while walking.
    """

    kind: str
    span: Span
    children: tuple[SyntaxNode, ...] = ()
    field_names: tuple[str | None, ...] = ()
    named: bool = True
    source: bytes = field(default=b"", repr=False)

    @property
    def text(self) -> str:
        """Raw source text covered by this node."""
        return self.source[self.span.start_byte:self.span.end_byte].decode(
            "utf-8", errors="replace"
        )

    @property
    def named_children(self) -> list[SyntaxNode]:
        return [c for c in self.children if c.named]

    def field(self, name: str) -> SyntaxNode | None:
        """First child stored under grammar field ``name``."""
        for child, child_field in zip(self.children, self.field_names):
            if child_field == name:
                return child
        return None

    def children_of_kind(self, *kinds: str) -> list[SyntaxNode]:
        return [c for c in self.children if c.kind in kinds]

    def walk(self) -> Iterator[SyntaxNode]:
        """Pre-order, left-to-right depth-first traversal (self included)."""
        stack: list[SyntaxNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))


@dataclass(frozen=True)
class SyntaxTree:
    """A successfully parsed file."""

    path: str
    root: SyntaxNode


@dataclass(frozen=True)
class UnparsableFile:
    """Frontend event: the file could not be turned into a tree."""

    path: str
    reason: str
    line: int = 1


@dataclass(frozen=True)
class SourceFile:
    """Raw source submitted for analysis."""

    path: str
    content: str
