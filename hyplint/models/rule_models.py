"""
Rule Data Models — Checker metadata, per-rule configuration, and run filters.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from hyplint.models.diagnostic_models import Severity

ParamValue = int | float | bool


class CheckerCategory(str, Enum):
    """Category of a checker."""

    OPERATIONS = "operations"  # not safe for production or performance
    COMPLEXITY = "complexity"  # cognitive or structural complexity
    COMPLIANCE = "compliance"  # project-specific requirements


class RuleConfig(BaseModel):
    """Authoritative configuration for one rule, resolved once per run."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    severity: Severity
    parameters: dict[str, ParamValue] = Field(default_factory=dict)

    def param(self, name: str) -> Any:
        return self.parameters[name]


class RuleOverride(BaseModel):
    """A project-level override as delivered by the configuration loader."""

    model_config = ConfigDict(extra="forbid")

    enabled: bool | None = None
    severity: Severity | None = None
    parameters: dict[str, Any] = Field(default_factory=dict)


class ResolvedConfig(BaseModel):
    """Configuration snapshot for a whole run."""

    model_config = ConfigDict(frozen=True)

    rules: dict[str, RuleConfig] = Field(default_factory=dict)
    warnings: tuple[str, ...] = ()

    def fingerprint(self) -> str:
        """Stable text used to key caches on the effective configuration."""
        return self.model_dump_json(include={"rules"})


class RunFilters(BaseModel):
    """Run-wide checker selection on top of per-rule configuration."""

    min_severity: Severity | None = None
    categories: set[CheckerCategory] | None = None
    include: list[str] | None = Field(
        default=None, description="Rule-id prefixes to keep, e.g. ['e11', 'E1506']"
    )
    exclude: list[str] | None = Field(
        default=None, description="Rule-id prefixes to drop; wins over include"
    )


class CheckerInfo(BaseModel):
    """Display metadata for a registered checker."""

    rule_id: str
    name: str
    family: str
    severity: Severity
    categories: list[CheckerCategory]
    suggestion: str
    default_parameters: dict[str, ParamValue] = Field(default_factory=dict)
