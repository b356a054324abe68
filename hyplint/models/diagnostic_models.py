"""
Diagnostic Data Models — Findings, severities, and run reports.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class Severity(str, Enum):
    INFO = "info"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return SEVERITY_RANKS[self]


SEVERITY_RANKS: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

# Reserved rule id for files the frontend could not parse
PARSE_ERROR_RULE_ID = "E0001"

DiagnosticKind = Literal["finding", "internal_error", "parse_error"]


class Location(BaseModel):
    """A position in a source file."""

    model_config = ConfigDict(frozen=True)

    file: str
    line: int = Field(..., ge=0, description="1-based line, 0 when unknown")
    column: int = Field(default=0, ge=0)
    end_line: int | None = None
    end_column: int | None = None
    label: str = Field(default="", description="Short note for multi-site findings")

    def sort_key(self) -> tuple[str, int, int]:
        return (self.file, self.line, self.column)


class Diagnostic(BaseModel):
    """A single reported finding. Immutable once created."""

    model_config = ConfigDict(frozen=True)

    rule_id: str = Field(..., description="Stable rule identifier, e.g. 'E1101'")
    rule_name: str = ""
    severity: Severity
    kind: DiagnosticKind = "finding"
    message: str
    location: Location
    secondary_locations: tuple[Location, ...] = Field(
        default=(),
        description="Additional sites, e.g. every witness of a lock-order cycle",
    )
    suggestion: str | None = Field(default=None, description="Optional fix hint")

    def sort_key(self) -> tuple:
        return (
            -self.severity.rank,
            self.location.sort_key(),
            self.rule_id,
            self.message,
        )


def sort_diagnostics(diagnostics: list[Diagnostic]) -> list[Diagnostic]:
    """Severity descending, then location, then rule id."""
    return sorted(diagnostics, key=Diagnostic.sort_key)


class SeveritySummary(BaseModel):
    """Per-severity counts for a run."""

    counts: dict[Severity, int] = Field(
        default_factory=lambda: {s: 0 for s in Severity}
    )
    total: int = 0

    @classmethod
    def from_diagnostics(cls, diagnostics: list[Diagnostic]) -> SeveritySummary:
        counts = {s: 0 for s in Severity}
        for diagnostic in diagnostics:
            counts[diagnostic.severity] += 1
        return cls(counts=counts, total=len(diagnostics))


class AnalysisReport(BaseModel):
    """Final, ordered output of one analysis run."""

    diagnostics: list[Diagnostic] = Field(default_factory=list)
    summary: SeveritySummary = Field(default_factory=SeveritySummary)
    highest_severity: Severity | None = None
    files_analyzed: int = 0
    files_unparsable: int = 0
    rules_executed: list[str] = Field(default_factory=list)
    config_warnings: list[str] = Field(default_factory=list)
    duration_ms: float = 0.0
