"""
Checker Registry — Ordered catalog of checkers keyed by rule id.

Built once at startup and read-only afterwards. ``resolve`` produces the set
of enabled checkers for one run together with its configuration snapshot.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Iterator, Mapping, Sequence

from hyplint.core.checker import CheckContext, Checker, ProgramChecker
from hyplint.core.errors import CheckerInternalError, RegistrationError
from hyplint.core.rule_config import resolve_config
from hyplint.core.rules.direct_panic import DirectPanic
from hyplint.core.rules.high_cyclomatic_complexity import HighCyclomaticComplexity
from hyplint.core.rules.lock_order_cycle import LockOrderCycle
from hyplint.core.rules.long_function import LongFunction
from hyplint.core.rules.too_many_parameters import TooManyParameters
from hyplint.core.rules.unwrap_expect import DirectUnwrapExpect
from hyplint.models.diagnostic_models import Diagnostic, Location, sort_diagnostics
from hyplint.models.rule_models import (
    CheckerInfo,
    ResolvedConfig,
    RuleConfig,
    RuleOverride,
    RunFilters,
)
from hyplint.models.syntax_models import SyntaxNode

logger = logging.getLogger("hyplint.registry")


class Registry:
    """Insertion-ordered collection of checkers with duplicate-id detection."""

    def __init__(self, checkers: Iterable[Checker] = ()) -> None:
        self._checkers: dict[str, Checker] = {}
        for checker in checkers:
            self.register(checker)

    def register(self, checker: Checker) -> None:
        """Add a checker. Raises RegistrationError if its id is taken."""
        if checker.rule_id in self._checkers:
            raise RegistrationError(checker.rule_id)
        self._checkers[checker.rule_id] = checker

    def __len__(self) -> int:
        return len(self._checkers)

    def __iter__(self) -> Iterator[Checker]:
        return iter(self._checkers.values())

    def __contains__(self, rule_id: str) -> bool:
        return rule_id in self._checkers

    def get(self, rule_id: str) -> Checker | None:
        return self._checkers.get(rule_id)

    @property
    def checkers(self) -> list[Checker]:
        return list(self._checkers.values())

    def describe(self) -> list[CheckerInfo]:
        """Metadata for every registered checker, regardless of configuration."""
        return [checker.describe() for checker in self]

    def resolve(
        self,
        overrides: Mapping[str, RuleOverride] | None = None,
        filters: RunFilters | None = None,
        request_overrides: Mapping[str, RuleOverride] | None = None,
    ) -> ResolvedRegistry:
        """
        Merge defaults with overrides and select the checkers for this run.

        ``request_overrides`` are layered over ``overrides`` field by field.
        Raises ConfigurationError on malformed parameters.
        """
        config = resolve_config(self.checkers, overrides or {}, request_overrides or {})
        filters = filters or RunFilters()
        enabled = [
            checker
            for checker in self
            if config.rules[checker.rule_id].enabled
            and _passes_filters(checker, config.rules[checker.rule_id], filters)
        ]
        logger.debug(f"Resolved {len(enabled)}/{len(self)} checkers for this run")
        return ResolvedRegistry(enabled, config)


def _matches_prefix(rule_id: str, patterns: Sequence[str]) -> bool:
    code = rule_id.lower()
    return any(code.startswith(p.lower()) for p in patterns)


def _passes_filters(checker: Checker, rule_config: RuleConfig, filters: RunFilters) -> bool:
    if filters.min_severity is not None and rule_config.severity.rank < filters.min_severity.rank:
        return False
    if filters.categories is not None and not set(checker.categories) & filters.categories:
        return False
    if filters.include is not None and not _matches_prefix(checker.rule_id, filters.include):
        return False
    if filters.exclude is not None and _matches_prefix(checker.rule_id, filters.exclude):
        return False
    return True


class ResolvedRegistry:
    """The enabled checkers of one run plus their configuration snapshot."""

    def __init__(self, checkers: Sequence[Checker], config: ResolvedConfig) -> None:
        self.checkers = tuple(checkers)
        self.config = config

    @property
    def rule_ids(self) -> list[str]:
        return [checker.rule_id for checker in self.checkers]

    @property
    def program_checkers(self) -> list[ProgramChecker]:
        return [c for c in self.checkers if isinstance(c, ProgramChecker)]

    def run_all(self, root: SyntaxNode, context: CheckContext) -> list[Diagnostic]:
        """
        Run every enabled per-file checker on one tree.

        A checker that raises contributes a single internal-error diagnostic
        and dispatch moves on to the next checker.
        """
        for checker in self.checkers:
            if isinstance(checker, ProgramChecker):
                continue
            try:
                diagnostics = checker.analyze(root, context)
            except Exception as e:
                error = CheckerInternalError(checker.rule_id, context.path, e)
                logger.warning(str(error), exc_info=True)
                diagnostics = [checker.internal_error(error, Location(file=context.path, line=0))]
            context.report(diagnostics)
        return sort_diagnostics(context.diagnostics)

    def extract_all(self, root: SyntaxNode, context: CheckContext) -> dict[str, tuple[Any, ...]]:
        """Per-file phase of every program checker; failures become diagnostics."""
        facts: dict[str, tuple[Any, ...]] = {}
        for checker in self.program_checkers:
            try:
                facts[checker.rule_id] = tuple(checker.extract(root, context))
            except Exception as e:
                error = CheckerInternalError(checker.rule_id, context.path, e)
                logger.warning(str(error), exc_info=True)
                context.report([checker.internal_error(error, Location(file=context.path, line=0))])
                facts[checker.rule_id] = ()
        return facts

    def reduce_all(self, facts: Mapping[str, Sequence[tuple[Any, ...]]]) -> list[Diagnostic]:
        """Whole-run phase of every program checker, in registration order."""
        diagnostics: list[Diagnostic] = []
        for checker in self.program_checkers:
            try:
                diagnostics.extend(
                    checker.reduce(facts.get(checker.rule_id, []), self.config.rules[checker.rule_id])
                )
            except Exception as e:
                error = CheckerInternalError(checker.rule_id, "<run>", e)
                logger.warning(str(error), exc_info=True)
                diagnostics.append(checker.internal_error(error, Location(file="<run>", line=0)))
        return diagnostics


# Every built-in checker, in registration (and dispatch) order
CHECKER_CLASSES: list[type[Checker]] = [
    DirectPanic,
    DirectUnwrapExpect,
    HighCyclomaticComplexity,
    TooManyParameters,
    LongFunction,
    LockOrderCycle,
]


def build_default_registry() -> Registry:
    """Registry with every built-in checker. Raises RegistrationError on id clashes."""
    registry = Registry(cls() for cls in CHECKER_CLASSES)
    logger.info(f"Registered {len(registry)} checkers: {', '.join(c.rule_id for c in registry)}")
    return registry
