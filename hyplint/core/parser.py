"""
hyplint — Rust source frontend using tree-sitter.

Turns tree-sitter parse trees into immutable SyntaxNode trees. Files that do
not parse cleanly are reported as UnparsableFile events, never as trees.
"""

from __future__ import annotations

import threading

import tree_sitter_rust as tsrust
from tree_sitter import Language, Node, Parser, TreeCursor

from hyplint.core.errors import ParseFailure
from hyplint.models.syntax_models import (
    SourceFile,
    Span,
    SyntaxNode,
    SyntaxTree,
    UnparsableFile,
)


RUST_LANGUAGE = Language(tsrust.language())

# Extras that may appear between any two children; analyses never need them
_DROPPED_KINDS = {"line_comment", "block_comment"}

_local = threading.local()


def _thread_parser() -> Parser:
    # tree-sitter parsers are not safe to share between threads
    parser = getattr(_local, "parser", None)
    if parser is None:
        parser = Parser(RUST_LANGUAGE)
        _local.parser = parser
    return parser


def _span(node: Node, path: str) -> Span:
    return Span(
        file=path,
        start_byte=node.start_byte,
        end_byte=node.end_byte,
        start_line=node.start_point[0] + 1,
        start_column=node.start_point[1] + 1,
        end_line=node.end_point[0] + 1,
        end_column=node.end_point[1] + 1,
    )


def _convert(cursor: TreeCursor, source: bytes, path: str) -> SyntaxNode:
    """Convert the node under ``cursor`` (and its subtree) into a SyntaxNode."""
    node = cursor.node
    children: list[SyntaxNode] = []
    field_names: list[str | None] = []

    if cursor.goto_first_child():
        while True:
            if cursor.node.type not in _DROPPED_KINDS:
                field_name = cursor.field_name
                children.append(_convert(cursor, source, path))
                field_names.append(field_name)
            if not cursor.goto_next_sibling():
                break
        cursor.goto_parent()

    return SyntaxNode(
        kind=node.type,
        span=_span(node, path),
        children=tuple(children),
        field_names=tuple(field_names),
        named=node.is_named,
        source=source,
    )


def _first_error_line(node: Node) -> int:
    """Line of the first ERROR or MISSING node, 1-based."""
    stack = [node]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            return current.start_point[0] + 1
        stack.extend(reversed(current.children))
    return 1


class RustParser:
    """Thin wrapper around tree-sitter for Rust source code."""

    def parse(self, code: str, path: str) -> SyntaxTree:
        """Parse Rust source into a SyntaxTree.

        Raises ParseFailure if tree-sitter had to recover from syntax errors.
        """
        source_bytes = code.encode("utf-8")
        tree = _thread_parser().parse(source_bytes)
        if tree.root_node.has_error:
            raise ParseFailure(
                path,
                "Failed to parse Rust source code",
                line=_first_error_line(tree.root_node),
            )
        root = _convert(tree.walk(), source_bytes, path)
        return SyntaxTree(path=path, root=root)

    def parse_file(self, source: SourceFile) -> SyntaxTree | UnparsableFile:
        """Parse a submitted file, turning failures into frontend events."""
        try:
            return self.parse(source.content, source.path)
        except ParseFailure as e:
            return UnparsableFile(path=e.path, reason=e.reason, line=e.line)
