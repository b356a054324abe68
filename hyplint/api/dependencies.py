"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from hyplint.audit.logger import AuditLogger
from hyplint.cache.file_cache import FileCache
from hyplint.config import settings
from hyplint.core.registry import Registry, build_default_registry
from hyplint.core.rule_config import load_rule_overrides
from hyplint.models.rule_models import RuleOverride
from hyplint.workers.analysis_worker import AnalysisWorker


@lru_cache
def get_registry() -> Registry:
    """Checker registry, built once at startup."""
    return build_default_registry()


@lru_cache
def get_project_overrides() -> dict[str, RuleOverride]:
    """Rule overrides from the project TOML file."""
    return load_rule_overrides(settings.rules_config_path)


@lru_cache
def get_file_cache() -> FileCache:
    """Shared file cache singleton."""
    return FileCache()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_analysis_worker() -> AnalysisWorker:
    """Shared analysis worker singleton."""
    return AnalysisWorker(
        registry=get_registry(),
        cache=get_file_cache(),
        audit_logger=get_audit_logger(),
        project_overrides=get_project_overrides(),
    )
