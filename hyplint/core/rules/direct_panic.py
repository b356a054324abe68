"""
Direct Panic Rule — Detects panic!() invocations inside functions.

A panic tears down the thread (or the whole process with panic=abort) and
cannot be handled by the caller the way a returned Result can.
"""

from __future__ import annotations

from hyplint.core.checker import CheckContext, Checker
from hyplint.core.syntax import compact_text, iter_function_units, location_of, walk_unit
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1001"


class DirectPanic(Checker):
    rule_id = RULE_ID
    name = "Direct panic() call"
    suggestion = "Return Result<T, E> instead of panicking"
    default_severity = Severity.HIGH

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        rule_config = context.rule(self.rule_id)
        diagnostics: list[Diagnostic] = []

        for unit in iter_function_units(root, check_tests=context.check_tests):
            for node in walk_unit(unit.node):
                if node.kind != "macro_invocation" or not _is_panic(node):
                    continue
                diagnostics.append(
                    self.finding(
                        rule_config,
                        f"Direct call to panic!() in '{unit.qualified_name}' crashes the "
                        "program. Use Result<T, E> to let callers handle the error.",
                        location_of(node),
                    )
                )

        return diagnostics


def _is_panic(node: SyntaxNode) -> bool:
    macro = node.field("macro")
    if macro is None:
        return False
    # `panic!` and `std::panic!` alike
    return compact_text(macro).rsplit("::", 1)[-1] == "panic"
