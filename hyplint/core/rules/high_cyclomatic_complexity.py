"""
High Cyclomatic Complexity Rule — Flags functions with too many independent paths.

Complexity is 1 + decision points, counted on a control-flow graph rebuilt
from the syntax tree. Closures and nested functions are scored on their own.
A function whose subtree is malformed yields an internal-error diagnostic and
the remaining functions are still scored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hyplint.core.checker import CheckContext, Checker
from hyplint.core.complexity import ComplexityFailure, analyze_complexity
from hyplint.core.errors import CheckerInternalError
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.rule_models import CheckerCategory
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1101"


class ComplexityParams(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    max_complexity: int = Field(10, ge=1, description="Highest score that is still accepted")


class HighCyclomaticComplexity(Checker):
    rule_id = RULE_ID
    name = "High cyclomatic complexity"
    suggestion = (
        "Extract branches into helper functions, replace nested conditionals "
        "with early returns, or use lookup tables instead of long match chains."
    )
    default_severity = Severity.HIGH
    categories = (CheckerCategory.COMPLEXITY,)
    params_model = ComplexityParams

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        rule_config = context.rule(self.rule_id)
        threshold = self.params(rule_config).max_complexity
        diagnostics: list[Diagnostic] = []

        for result in analyze_complexity(root, check_tests=context.check_tests):
            unit = result.unit
            if isinstance(result, ComplexityFailure):
                error = CheckerInternalError(
                    self.rule_id, f"{context.path}::{unit.qualified_name}", result.error
                )
                diagnostics.append(self.internal_error(error, unit.location))
                continue

            if result.score > threshold:
                kind = "Closure" if unit.is_closure else "Function"
                diagnostics.append(
                    self.finding(
                        rule_config,
                        f"{kind} '{unit.qualified_name}' has cyclomatic complexity "
                        f"{result.score} (threshold: {threshold})",
                        unit.location,
                    )
                )

        return diagnostics
