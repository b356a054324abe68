"""
Hyplint Configuration — pydantic-settings based.

Service settings are read from HYPLINT_* environment variables or a .env
file. Per-rule settings live in a separate TOML file (rules_config_path).
"""

from pydantic_settings import BaseSettings
from pydantic import Field

from hyplint.models.diagnostic_models import Severity


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Rules ──
    rules_config_path: str = Field(
        default="Hyp.toml", description="TOML file with a [checkers] table of rule overrides"
    )
    check_tests: bool = Field(
        default=False, description="Also analyze #[test] functions and #[cfg(test)] modules"
    )
    min_severity: Severity | None = Field(
        default=None, description="Skip checkers whose effective severity is below this"
    )

    # ── Scanning ──
    max_workers: int = Field(default=1, ge=1, description="Threads for per-file analysis")
    max_file_size_bytes: int = Field(
        default=500_000, description="Max file size to accept (bytes)"
    )

    # ── Cache ──
    cache_ttl_seconds: int = Field(
        default=3600, description="Time-to-live for file-level cache entries"
    )

    # ── Server ──
    port: int = Field(default=5001, description="Server port")
    host: str = Field(default="0.0.0.0", description="Server bind host")
    cors_origins: list[str] = Field(
        default=["*"], description="Allowed CORS origins"
    )
    log_level: str = Field(default="INFO", description="Root logging level")

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    model_config = {
        "env_prefix": "HYPLINT_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


VERSION = "0.1.0"

# Singleton instance, imported by other modules
settings = Settings()
