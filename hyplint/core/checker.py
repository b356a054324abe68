"""
Checker Abstraction — The interface every rule implements.

A checker is static metadata (id, name, family, categories, default severity,
default parameters) plus ``analyze(root, context)``. Whole-program rules derive
from ProgramChecker and split their work into a per-file ``extract`` and a
once-per-run ``reduce``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, ClassVar, Sequence

from pydantic import BaseModel, ConfigDict

from hyplint.models.diagnostic_models import Diagnostic, Location, Severity
from hyplint.models.rule_models import (
    CheckerCategory,
    CheckerInfo,
    ResolvedConfig,
    RuleConfig,
)
from hyplint.models.syntax_models import SyntaxNode


class NoParams(BaseModel):
    """Parameter model for checkers without tunable thresholds."""

    model_config = ConfigDict(extra="forbid", strict=True)


class CheckContext:
    """Per-file bundle: file identity, configuration snapshot, diagnostic sink."""

    def __init__(self, path: str, config: ResolvedConfig, check_tests: bool = False) -> None:
        self.path = path
        self.config = config
        self.check_tests = check_tests
        self.diagnostics: list[Diagnostic] = []

    def rule(self, rule_id: str) -> RuleConfig:
        return self.config.rules[rule_id]

    def report(self, diagnostics: Sequence[Diagnostic]) -> None:
        self.diagnostics.extend(diagnostics)


class Checker(ABC):
    """Base class for all rules."""

    rule_id: ClassVar[str]
    name: ClassVar[str]
    suggestion: ClassVar[str] = ""
    default_severity: ClassVar[Severity] = Severity.MEDIUM
    categories: ClassVar[tuple[CheckerCategory, ...]] = (CheckerCategory.OPERATIONS,)
    params_model: ClassVar[type[BaseModel]] = NoParams

    @property
    def family(self) -> str:
        """Problem family, e.g. 'E11' for 'E1101'."""
        return self.rule_id[:3].upper()

    def default_parameters(self) -> dict[str, Any]:
        return self.params_model().model_dump()

    def default_config(self) -> RuleConfig:
        return RuleConfig(
            enabled=True,
            severity=self.default_severity,
            parameters=self.default_parameters(),
        )

    def params(self, rule_config: RuleConfig) -> Any:
        """Typed view of the resolved parameters."""
        return self.params_model.model_validate(rule_config.parameters)

    @abstractmethod
    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        """Check one file and return its findings."""

    def finding(
        self,
        rule_config: RuleConfig,
        message: str,
        location: Location,
        secondary_locations: Sequence[Location] = (),
    ) -> Diagnostic:
        return Diagnostic(
            rule_id=self.rule_id,
            rule_name=self.name,
            severity=rule_config.severity,
            message=message,
            location=location,
            secondary_locations=tuple(secondary_locations),
            suggestion=self.suggestion or None,
        )

    def internal_error(self, error: BaseException, location: Location) -> Diagnostic:
        return Diagnostic(
            rule_id=self.rule_id,
            rule_name=self.name,
            severity=Severity.LOW,
            kind="internal_error",
            message=f"Internal error: {error}",
            location=location,
        )

    def describe(self) -> CheckerInfo:
        return CheckerInfo(
            rule_id=self.rule_id,
            name=self.name,
            family=self.family,
            severity=self.default_severity,
            categories=list(self.categories),
            suggestion=self.suggestion,
            default_parameters=self.default_parameters(),
        )


class ProgramChecker(Checker):
    """A rule whose findings need facts from every file of the run.

    ``extract`` runs once per file and must return immutable facts; ``reduce``
    runs once, after all files, over the facts in input order.
    """

    def analyze(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        return []

    @abstractmethod
    def extract(self, root: SyntaxNode, context: CheckContext) -> tuple[Any, ...]:
        """Per-file phase. Safe to run concurrently."""

    @abstractmethod
    def reduce(
        self, facts: Sequence[tuple[Any, ...]], rule_config: RuleConfig
    ) -> list[Diagnostic]:
        """Whole-run phase. Runs sequentially after every file was extracted."""
