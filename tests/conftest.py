"""
Test fixtures shared across all hyplint tests.
"""

import pytest

from hyplint.core.checker import CheckContext
from hyplint.core.parser import RustParser
from hyplint.core.registry import Registry, build_default_registry
from hyplint.models.syntax_models import SyntaxNode


@pytest.fixture
def parser():
    return RustParser()


@pytest.fixture
def parse(parser):
    """Parse a snippet and return its root node."""

    def _parse(code: str, path: str = "test.rs") -> SyntaxNode:
        return parser.parse(code, path).root

    return _parse


@pytest.fixture
def registry() -> Registry:
    return build_default_registry()


@pytest.fixture
def make_context(registry):
    """CheckContext with default configuration for every built-in rule."""

    def _make(path: str = "test.rs", check_tests: bool = False) -> CheckContext:
        resolved = registry.resolve()
        return CheckContext(path, resolved.config, check_tests=check_tests)

    return _make


@pytest.fixture
def branchy():
    """Builds a function with exactly ``ifs`` sequential if-statements (complexity 1 + ifs)."""

    def _build(name: str, ifs: int) -> str:
        body = "\n".join(f"    if x == {i} {{ y += {i}; }}" for i in range(ifs))
        return f"fn {name}(x: i32) -> i32 {{\n    let mut y = 0;\n{body}\n    y\n}}\n"

    return _build


@pytest.fixture
def bank_transfer_code():
    """Bank::transfer takes a then b."""
    return '''
use std::sync::Mutex;

struct Bank {
    a: Mutex<i64>,
    b: Mutex<i64>,
    c: Mutex<i64>,
}

impl Bank {
    fn transfer(&self) {
        let from = self.a.lock().unwrap();
        let to = self.b.lock().unwrap();
        println!("{} {}", *from, *to);
    }
}
'''


@pytest.fixture
def bank_refund_code():
    """Bank::refund takes b then a (inverse of transfer)."""
    return '''
impl Bank {
    fn refund(&self) {
        let to = self.b.lock().unwrap();
        let from = self.a.lock().unwrap();
        println!("{} {}", *from, *to);
    }
}
'''


@pytest.fixture
def bank_audit_code():
    """Bank::audit takes a then c, consistent with transfer."""
    return '''
impl Bank {
    fn audit(&self) {
        let first = self.a.lock().unwrap();
        let third = self.c.lock().unwrap();
        println!("{} {}", *first, *third);
    }
}
'''


@pytest.fixture
def sample_rust_code():
    """A file that triggers every per-file rule once."""
    return '''
fn parse_port(raw: &str) -> u16 {
    raw.parse().unwrap()
}

fn fail_hard() {
    panic!("unrecoverable");
}

fn wide(a: i32, b: i32, c: i32, d: i32, e: i32, f: i32) -> i32 {
    a + b + c + d + e + f
}
'''


@pytest.fixture
def clean_rust_code():
    return '''
pub fn add(a: i32, b: i32) -> i32 {
    a + b
}

pub fn sign(x: i32) -> i32 {
    if x < 0 {
        -1
    } else {
        1
    }
}
'''


@pytest.fixture
def broken_rust_code():
    return "fn broken( {\n    let x = ;\n"
