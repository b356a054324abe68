"""
Syntax helpers shared by checkers: function-unit discovery, qualified names,
test-item detection, and node locations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from hyplint.models.diagnostic_models import Location
from hyplint.models.syntax_models import SyntaxNode


FUNCTION_KINDS = {"function_item", "closure_expression"}

_SCOPE_KINDS = {"mod_item", "trait_item", "impl_item"}


@dataclass(frozen=True)
class FunctionUnit:
    """A function-like subtree analyzed on its own (function item or closure)."""

    node: SyntaxNode
    qualified_name: str
    is_closure: bool = False

    @property
    def body(self) -> SyntaxNode | None:
        return self.node.field("body")

    @property
    def name_node(self) -> SyntaxNode:
        return self.node.field("name") or self.node

    @property
    def location(self) -> Location:
        return location_of(self.name_node)


def location_of(node: SyntaxNode, label: str = "") -> Location:
    span = node.span
    return Location(
        file=span.file,
        line=span.start_line,
        column=span.start_column,
        end_line=span.end_line,
        end_column=span.end_column,
        label=label,
    )


def compact_text(node: SyntaxNode) -> str:
    """Node text with all whitespace removed."""
    return "".join(node.text.split())


def _attribute_path(attr: SyntaxNode) -> str:
    text = compact_text(attr)
    if text.startswith("#!["):
        text = text[3:]
    elif text.startswith("#["):
        text = text[2:]
    return text.rstrip("]")


def is_test_attribute(attr: SyntaxNode) -> bool:
    """``#[test]``, ``#[tokio::test]`` or ``#[cfg(test)]``-style attributes."""
    path = _attribute_path(attr)
    if path == "test" or path.endswith("::test"):
        return True
    return path.startswith("cfg(") and "test" in path


def is_test_file(root: SyntaxNode) -> bool:
    """A file carrying an inner ``#![cfg(test)]`` attribute."""
    return any(
        child.kind == "inner_attribute_item" and is_test_attribute(child)
        for child in root.children
    )


def _scope_name(node: SyntaxNode) -> str:
    if node.kind == "impl_item":
        type_node = node.field("type")
        name = compact_text(type_node) if type_node is not None else "impl"
        return name.split("<", 1)[0]
    name_node = node.field("name")
    return name_node.text if name_node is not None else node.kind


def iter_function_units(root: SyntaxNode, check_tests: bool = False) -> Iterator[FunctionUnit]:
    """Yield every function item and closure in source order.

    Nested functions and closures are yielded as units of their own. Items
    annotated as tests are skipped unless ``check_tests`` is set.
    """
    if not check_tests and is_test_file(root):
        return
    yield from _collect(root, (), check_tests)


def _collect(
    node: SyntaxNode, scope: tuple[str, ...], check_tests: bool
) -> Iterator[FunctionUnit]:
    pending_attrs: list[SyntaxNode] = []
    for child in node.children:
        if child.kind == "attribute_item":
            pending_attrs.append(child)
            continue
        attrs, pending_attrs = pending_attrs, []
        if not check_tests and any(is_test_attribute(a) for a in attrs):
            continue

        if child.kind == "function_item":
            name_node = child.field("name")
            name = name_node.text if name_node is not None else "<anonymous>"
            inner = (*scope, name)
            yield FunctionUnit(node=child, qualified_name="::".join(inner))
            yield from _collect(child, inner, check_tests)
        elif child.kind == "closure_expression":
            label = f"{{closure@{child.span.start_line}:{child.span.start_column}}}"
            inner = (*scope, label)
            yield FunctionUnit(node=child, qualified_name="::".join(inner), is_closure=True)
            yield from _collect(child, inner, check_tests)
        elif child.kind in _SCOPE_KINDS:
            yield from _collect(child, (*scope, _scope_name(child)), check_tests)
        else:
            yield from _collect(child, scope, check_tests)


def walk_unit(node: SyntaxNode) -> Iterator[SyntaxNode]:
    """Pre-order walk that does not descend into nested functions or closures."""
    stack = list(reversed(node.children))
    while stack:
        current = stack.pop()
        yield current
        if current.kind in FUNCTION_KINDS:
            continue
        stack.extend(reversed(current.children))
