"""
Traversal Engine — Runs the resolved checkers over every file of a run.

Per-file work (parse, per-file checkers, fact extraction for whole-program
rules) is independent and may run on a thread pool. Outcomes are collected in
input order, then program checkers reduce and everything is sorted, so the
report does not depend on the worker count.

Configuration errors are raised by the constructor, before any file is read.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence, TypeVar

from hyplint.core.checker import CheckContext
from hyplint.core.parser import RustParser
from hyplint.core.registry import Registry
from hyplint.models.diagnostic_models import (
    PARSE_ERROR_RULE_ID,
    AnalysisReport,
    Diagnostic,
    Location,
    Severity,
    SeveritySummary,
    sort_diagnostics,
)
from hyplint.models.rule_models import ResolvedConfig, RuleOverride, RunFilters
from hyplint.models.syntax_models import SourceFile, SyntaxTree, UnparsableFile

logger = logging.getLogger("hyplint.engine")

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class FileOutcome:
    """Everything one file contributes to a run. Safe to cache."""

    path: str
    diagnostics: tuple[Diagnostic, ...] = ()
    facts: Mapping[str, tuple[Any, ...]] = field(default_factory=dict)
    parsed: bool = True


def parse_error_diagnostic(unparsable: UnparsableFile) -> Diagnostic:
    return Diagnostic(
        rule_id=PARSE_ERROR_RULE_ID,
        rule_name="Parse error",
        severity=Severity.MEDIUM,
        kind="parse_error",
        message=f"Failed to parse file: {unparsable.reason}",
        location=Location(file=unparsable.path, line=unparsable.line),
    )


class Analyzer:
    """
    One configured analysis run.

    Args:
        registry: All registered checkers.
        overrides: Project overrides keyed by rule id or family.
        filters: Run-wide checker selection.
        check_tests: Also analyze #[test] items and #[cfg(test)] modules.
        max_workers: Threads for per-file work; 1 runs inline.
        request_overrides: Per-run overrides layered over ``overrides``.

    Raises:
        ConfigurationError: malformed overrides, before any analysis.
    """

    def __init__(
        self,
        registry: Registry,
        overrides: Mapping[str, RuleOverride] | None = None,
        filters: RunFilters | None = None,
        check_tests: bool = False,
        max_workers: int = 1,
        parser: RustParser | None = None,
        request_overrides: Mapping[str, RuleOverride] | None = None,
    ) -> None:
        self.resolved = registry.resolve(overrides, filters, request_overrides)
        self.check_tests = check_tests
        self.max_workers = max(1, max_workers)
        self.parser = parser or RustParser()

    @property
    def config(self) -> ResolvedConfig:
        return self.resolved.config

    # ── per file ──

    def analyze_file(self, item: SyntaxTree | UnparsableFile) -> FileOutcome:
        """Run every enabled checker on one file."""
        if isinstance(item, UnparsableFile):
            logger.info(f"Skipping unparsable file {item.path}:{item.line}: {item.reason}")
            return FileOutcome(
                path=item.path,
                diagnostics=(parse_error_diagnostic(item),),
                parsed=False,
            )

        context = CheckContext(item.path, self.config, check_tests=self.check_tests)
        facts = self.resolved.extract_all(item.root, context)
        diagnostics = self.resolved.run_all(item.root, context)
        return FileOutcome(path=item.path, diagnostics=tuple(diagnostics), facts=facts)

    def analyze_source(self, source: SourceFile) -> FileOutcome:
        """Parse with the built-in frontend, then analyze."""
        return self.analyze_file(self.parser.parse_file(source))

    # ── whole run ──

    def finalize(
        self, outcomes: Sequence[FileOutcome], started: float | None = None
    ) -> AnalysisReport:
        """Reduce whole-program facts in input order and assemble the sorted report."""
        facts: dict[str, list[tuple[Any, ...]]] = {}
        diagnostics: list[Diagnostic] = []
        for outcome in outcomes:
            diagnostics.extend(outcome.diagnostics)
            for rule_id, file_facts in outcome.facts.items():
                facts.setdefault(rule_id, []).append(file_facts)

        diagnostics.extend(self.resolved.reduce_all(facts))
        diagnostics = sort_diagnostics(diagnostics)

        elapsed = (time.monotonic() - started) * 1000 if started is not None else 0.0
        return AnalysisReport(
            diagnostics=diagnostics,
            summary=SeveritySummary.from_diagnostics(diagnostics),
            highest_severity=diagnostics[0].severity if diagnostics else None,
            files_analyzed=len(outcomes),
            files_unparsable=sum(1 for o in outcomes if not o.parsed),
            rules_executed=self.resolved.rule_ids,
            config_warnings=list(self.config.warnings),
            duration_ms=round(elapsed, 2),
        )

    def analyze_trees(self, items: Sequence[SyntaxTree | UnparsableFile]) -> AnalysisReport:
        """Analyze already-parsed files (or parse failures) as one run."""
        start = time.monotonic()
        outcomes = self._map(self.analyze_file, items)
        report = self.finalize(outcomes, start)
        self._log_summary(report)
        return report

    def analyze_sources(self, sources: Sequence[SourceFile]) -> AnalysisReport:
        """Parse and analyze raw source files as one run."""
        start = time.monotonic()
        report = self.finalize(self.source_outcomes(sources), start)
        self._log_summary(report)
        return report

    def source_outcomes(self, sources: Sequence[SourceFile]) -> list[FileOutcome]:
        """Per-file phase only, in input order. Callers finish with ``finalize``."""
        return self._map(self.analyze_source, sources)

    def fingerprint(self) -> str:
        """Identifies everything that shapes a FileOutcome besides file content."""
        return f"{self.config.fingerprint()}|{','.join(self.resolved.rule_ids)}|tests={self.check_tests}"

    def _map(self, fn: Callable[[T], R], items: Sequence[T]) -> list[R]:
        # pool.map yields in input order, which keeps the run deterministic
        if self.max_workers == 1 or len(items) <= 1:
            return [fn(item) for item in items]
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(fn, items))

    @staticmethod
    def _log_summary(report: AnalysisReport) -> None:
        logger.info(
            f"Analyzed {report.files_analyzed} files "
            f"({report.files_unparsable} unparsable): "
            f"{report.summary.total} diagnostics in {report.duration_ms:.1f}ms"
        )
