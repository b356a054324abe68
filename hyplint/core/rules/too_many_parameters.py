"""
Too Many Parameters Rule — Flags functions with long parameter lists.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from hyplint.core.checker import CheckContext, Checker
from hyplint.core.syntax import iter_function_units
from hyplint.models.diagnostic_models import Diagnostic, Severity
from hyplint.models.rule_models import CheckerCategory
from hyplint.models.syntax_models import SyntaxNode


RULE_ID = "E1103"

_PARAMETER_KINDS = ("parameter", "self_parameter", "variadic_parameter")


class ParameterParams(BaseModel):
    model_config = ConfigDict(extra="forbid", strict=True)

    max_parameters: int = Field(5, ge=0)


class TooManyParameters(Checker):
    rule_id = RULE_ID
    name = "Too many parameters"
    suggestion = "Group related parameters into a struct, or use the builder pattern."
    default_severity = Severity.LOW
    categories = (CheckerCategory.COMPLEXITY,)
    params_model = ParameterParams

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        rule_config = context.rule(self.rule_id)
        limit = self.params(rule_config).max_parameters
        diagnostics: list[Diagnostic] = []

        for unit in iter_function_units(root, check_tests=context.check_tests):
            if unit.is_closure:
                continue
            parameters = unit.node.field("parameters")
            count = len(parameters.children_of_kind(*_PARAMETER_KINDS)) if parameters else 0
            if count > limit:
                diagnostics.append(
                    self.finding(
                        rule_config,
                        f"Function '{unit.qualified_name}' has {count} parameters, "
                        f"exceeding the limit of {limit}",
                        unit.location,
                    )
                )

        return diagnostics
