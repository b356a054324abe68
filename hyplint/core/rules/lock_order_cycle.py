"""
Lock Order Cycle Rule — Detects locks acquired in inconsistent orders across functions.

If one function takes A then B while another takes B then A, two threads can
each hold one lock and wait forever on the other. Pairs are extracted per
file; cycles are searched once over the whole run.
"""

from __future__ import annotations

from typing import Sequence

from hyplint.core.checker import CheckContext, ProgramChecker
from hyplint.core.lock_order import LockOrderGraph, extract_lock_pairs
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.lock_models import LockCycle, LockOrderPair
from hyplint.models.rule_models import CheckerCategory, RuleConfig
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1506"


class LockOrderCycle(ProgramChecker):
    rule_id = RULE_ID
    name = "Potential deadlock from lock ordering"
    suggestion = (
        "Acquire locks in one global order everywhere, merge the protected data "
        "under a single lock, or release the first guard before taking the second."
    )
    default_severity = Severity.HIGH
    categories = (CheckerCategory.OPERATIONS,)

    def extract(self, root: SyntaxNode, context: CheckContext) -> tuple[LockOrderPair, ...]:
        return extract_lock_pairs(root, check_tests=context.check_tests)

    def reduce(
        self, facts: Sequence[tuple[LockOrderPair, ...]], rule_config: RuleConfig
    ) -> list[Diagnostic]:
        graph = LockOrderGraph()
        for file_pairs in facts:
            graph.add_pairs(file_pairs)
        return [self._report(cycle, rule_config) for cycle in graph.find_cycles()]

    def _report(self, cycle: LockCycle, rule_config: RuleConfig) -> Diagnostic:
        sites = [w.location for edge_witnesses in cycle.witnesses for w in edge_witnesses]
        functions = sorted({w.function for edge in cycle.witnesses for w in edge})

        if len(cycle.locks) == 1:
            message = (
                f"Lock '{cycle.locks[0]}' acquired while already held "
                f"in {', '.join(functions)}"
            )
        else:
            message = (
                f"Inconsistent lock order: {cycle.describe()} "
                f"(in {', '.join(functions)})"
            )
        return self.finding(rule_config, message, sites[0], secondary_locations=sites)
