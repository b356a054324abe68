"""
Audit Logger — Per-scan audit trail in JSON lines.

Each scan appends one AuditEntry condensed from its AnalysisReport: counts
per severity and per rule, the rules that ran, configuration warnings and
cache hits. Lines are read back as validated AuditEntry records.
"""

from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from hyplint.config import settings
from hyplint.models.diagnostic_models import AnalysisReport
from hyplint.models.scan_models import AuditEntry

logger = logging.getLogger("hyplint.audit")


class AuditLogger:
    """Appends scan summaries to a JSON-lines file and reads them back."""

    def __init__(self, log_path: str | None = None) -> None:
        self.log_path = Path(log_path or settings.audit_log_path)

    def record_scan(self, scan_id: str, report: AnalysisReport, cache_hits: int = 0) -> AuditEntry:
        """Condense ``report`` into an entry and append it. Write failures are logged, not raised."""
        entry = AuditEntry.from_report(scan_id, report, cache_hits)
        if entry.config_warnings:
            logger.info(f"[{scan_id}] {len(entry.config_warnings)} configuration warnings recorded")

        try:
            with open(self.log_path, "a") as f:
                f.write(entry.model_dump_json() + "\n")
        except OSError as e:
            logger.error(f"Failed to write audit log: {e}")
        return entry

    def history(self, count: int = 50, scan_id: str | None = None) -> list[AuditEntry]:
        """The most recent ``count`` entries, oldest first, optionally for one scan id."""
        if not self.log_path.exists():
            return []

        entries: list[AuditEntry] = []
        try:
            with open(self.log_path) as f:
                for number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        entry = AuditEntry.model_validate_json(line)
                    except ValidationError:
                        logger.warning(f"Skipping malformed audit line {number} in {self.log_path}")
                        continue
                    if scan_id is None or entry.scan_id == scan_id:
                        entries.append(entry)
        except OSError as e:
            logger.error(f"Failed to read audit log: {e}")
            return []

        return entries[-count:]
