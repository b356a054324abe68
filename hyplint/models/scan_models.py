"""
Scan Request/Response Models — API contract schemas.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from hyplint.models.diagnostic_models import AnalysisReport, Severity
from hyplint.models.rule_models import CheckerCategory, RuleOverride


class FileInput(BaseModel):
    """A single file submitted for scanning."""

    path: str = Field(..., description="File path (absolute or relative)")
    content: str = Field(..., description="File source content")


class ScanRequest(BaseModel):
    """Request body for /scan."""

    files: list[FileInput] = Field(default_factory=list)
    overrides: dict[str, RuleOverride] = Field(
        default_factory=dict,
        description="Per-rule overrides layered on top of the project configuration",
    )
    min_severity: Severity | None = None
    categories: list[CheckerCategory] | None = None
    include: list[str] | None = None
    exclude: list[str] | None = None
    check_tests: bool | None = None


class AuditEntry(BaseModel):
    """One line of the audit trail, condensed from a scan's report."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    scan_id: str
    files_scanned: int
    files_unparsable: int = 0
    diagnostics_found: int
    highest_severity: Severity | None = None
    severity_counts: dict[Severity, int] = Field(default_factory=dict)
    rule_counts: dict[str, int] = Field(
        default_factory=dict, description="Diagnostics per rule id, only rules that fired"
    )
    rules_executed: list[str] = Field(default_factory=list)
    config_warnings: list[str] = Field(default_factory=list)
    cache_hits: int = 0
    duration_ms: float = 0.0

    @classmethod
    def from_report(cls, scan_id: str, report: AnalysisReport, cache_hits: int = 0) -> AuditEntry:
        rule_counts: dict[str, int] = {}
        for diagnostic in report.diagnostics:
            rule_counts[diagnostic.rule_id] = rule_counts.get(diagnostic.rule_id, 0) + 1
        return cls(
            scan_id=scan_id,
            files_scanned=report.files_analyzed,
            files_unparsable=report.files_unparsable,
            diagnostics_found=report.summary.total,
            highest_severity=report.highest_severity,
            severity_counts={s: n for s, n in report.summary.counts.items() if n},
            rule_counts=dict(sorted(rule_counts.items())),
            rules_executed=list(report.rules_executed),
            config_warnings=list(report.config_warnings),
            cache_hits=cache_hits,
            duration_ms=report.duration_ms,
        )


class ScanResponse(BaseModel):
    """Top-level response for the scan endpoint."""

    message: str = "scan_complete"
    scan_id: str = ""
    report: AnalysisReport | None = None
