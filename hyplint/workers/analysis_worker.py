"""
Analysis Worker — Async orchestrator around the synchronous engine.

Pipeline:
1. Resolve configuration (project overrides + request overrides + filters)
2. Serve unchanged files from the cache
3. Parse and check the rest (optionally on a thread pool)
4. Reduce whole-program facts and sort
5. Write an audit entry
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Mapping

from hyplint.audit.logger import AuditLogger
from hyplint.cache.file_cache import FileCache
from hyplint.config import settings
from hyplint.core.engine import Analyzer, FileOutcome
from hyplint.core.registry import Registry
from hyplint.models.diagnostic_models import AnalysisReport
from hyplint.models.rule_models import RuleOverride, RunFilters
from hyplint.models.scan_models import FileInput, ScanRequest, ScanResponse
from hyplint.models.syntax_models import SourceFile

logger = logging.getLogger("hyplint.worker")


class AnalysisWorker:
    """Runs scan requests against a shared registry, cache and audit log."""

    def __init__(
        self,
        registry: Registry,
        cache: FileCache | None = None,
        audit_logger: AuditLogger | None = None,
        project_overrides: Mapping[str, RuleOverride] | None = None,
    ) -> None:
        self.registry = registry
        self.cache = cache or FileCache()
        self.audit_logger = audit_logger
        self.project_overrides = dict(project_overrides or {})

    def build_analyzer(self, request: ScanRequest) -> Analyzer:
        """Raises ConfigurationError before any file is touched."""
        filters = RunFilters(
            min_severity=request.min_severity or settings.min_severity,
            categories=set(request.categories) if request.categories else None,
            include=request.include,
            exclude=request.exclude,
        )
        check_tests = settings.check_tests if request.check_tests is None else request.check_tests
        return Analyzer(
            self.registry,
            overrides=self.project_overrides,
            request_overrides=request.overrides,
            filters=filters,
            check_tests=check_tests,
            max_workers=settings.max_workers,
        )

    async def run_scan(self, request: ScanRequest) -> ScanResponse:
        scan_id = str(uuid.uuid4())[:8]
        start_time = time.monotonic()
        logger.info(f"[{scan_id}] Starting scan of {len(request.files)} files")

        analyzer = self.build_analyzer(request)
        report, cache_hits = await asyncio.to_thread(self._analyze, analyzer, request.files)
        duration_ms = round((time.monotonic() - start_time) * 1000, 2)
        report.duration_ms = duration_ms

        logger.info(
            f"[{scan_id}] {report.summary.total} diagnostics, "
            f"highest={report.highest_severity.value if report.highest_severity else 'none'}, "
            f"cache hits {cache_hits}/{len(request.files)} ({duration_ms:.1f}ms)"
        )

        if self.audit_logger is not None:
            self.audit_logger.record_scan(scan_id, report, cache_hits)

        return ScanResponse(scan_id=scan_id, report=report)

    def _analyze(self, analyzer: Analyzer, files: list[FileInput]) -> tuple[AnalysisReport, int]:
        fingerprint = analyzer.fingerprint()
        outcomes: list[FileOutcome | None] = []
        misses: list[tuple[int, FileInput]] = []

        for index, f in enumerate(files):
            cached = self.cache.get(f.path, f.content, fingerprint)
            if cached is None:
                misses.append((index, f))
            else:
                logger.debug(f"Cache hit: {f.path}")
            outcomes.append(cached)

        fresh = analyzer.source_outcomes(
            [SourceFile(path=f.path, content=f.content) for _, f in misses]
        )
        for (index, f), outcome in zip(misses, fresh):
            self.cache.put(f.path, f.content, outcome, fingerprint)
            outcomes[index] = outcome

        report = analyzer.finalize([o for o in outcomes if o is not None])
        return report, len(files) - len(misses)
