"""
Long Function Rule — Flags functions whose body spans too many lines.

Lines are counted from the opening to the closing brace of the body, so
doc comments and attributes do not count.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hyplint.core.checker import CheckContext, Checker
from hyplint.core.syntax import iter_function_units
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.rule_models import CheckerCategory
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1106"


class LengthParams(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    max_lines: int = Field(250, ge=1)


class LongFunction(Checker):
    rule_id = RULE_ID
    name = "Long function"
    suggestion = "Extract logical sections into separate helper functions"
    default_severity = Severity.LOW
    categories = (CheckerCategory.COMPLEXITY,)
    params_model = LengthParams

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        rule_config = context.rule(self.rule_id)
        limit = self.params(rule_config).max_lines
        diagnostics: list[Diagnostic] = []

        for unit in iter_function_units(root, check_tests=context.check_tests):
            body = unit.body
            if unit.is_closure or body is None:
                continue
            lines = body.span.line_count
            if lines > limit:
                diagnostics.append(
                    self.finding(
                        rule_config,
                        f"Function '{unit.qualified_name}' has {lines} lines, "
                        f"exceeding the limit of {limit}",
                        unit.location,
                    )
                )

        return diagnostics
