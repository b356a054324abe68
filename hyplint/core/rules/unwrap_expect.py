"""
Direct Unwrap/Expect Rule — Detects .unwrap() and .expect() calls.

Both panic on None/Err. Unwrapping a lock result is singled out: a poisoned
mutex then spreads one thread's panic to every other user of the lock.
"""

from __future__ import annotations

from hyplint.core.checker import CheckContext, Checker
from hyplint.core.lock_order import lock_identity
from hyplint.core.syntax import iter_function_units, location_of, walk_unit
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1002"

MESSAGES = {
    "unwrap": "Using unwrap() crashes the program on None/Err. Return errors to callers instead.",
    "expect": "Using expect() still crashes the program, it only adds a message. Return errors to callers instead.",
}

LOCK_UNWRAP_MESSAGE = (
    "Using unwrap() on a lock causes panic cascades: if any thread panicked while "
    "holding it, this code panics too."
)


class DirectUnwrapExpect(Checker):
    rule_id = RULE_ID
    name = "Direct unwrap()/expect() call"
    suggestion = (
        "Return the error with ?, handle it with if let/match, or use a combinator "
        "such as unwrap_or_default()."
    )
    default_severity = Severity.HIGH

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        rule_config = context.rule(self.rule_id)
        diagnostics: list[Diagnostic] = []

        for unit in iter_function_units(root, check_tests=context.check_tests):
            for node in walk_unit(unit.node):
                if node.kind != "call_expression":
                    continue
                function = node.field("function")
                if function is None or function.kind != "field_expression":
                    continue
                method = function.field("field")
                if method is None or method.text not in MESSAGES:
                    continue

                message = MESSAGES[method.text]
                receiver = function.field("value")
                if method.text == "unwrap" and receiver is not None and lock_identity(receiver):
                    message = LOCK_UNWRAP_MESSAGE
                diagnostics.append(self.finding(rule_config, message, location_of(method)))

        return diagnostics
