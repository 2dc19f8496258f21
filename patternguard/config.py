"""
PatternGuard Configuration — pydantic-settings based.

All settings are read from environment variables (prefix PATTERNGUARD_) or a
.env file. Every value has a default, so the engine runs without any setup.
"""

from pydantic_settings import BaseSettings
from pydantic import Field

from patternguard.models.patch_models import FixPolicy


class Settings(BaseSettings):
    """Application-wide settings sourced from environment variables."""

    # ── Analysis ──
    max_source_bytes: int = Field(
        default=500_000, description="Max source size accepted per file (bytes)"
    )
    fix_policy: FixPolicy = Field(
        default=FixPolicy.LEFTMOST_GREEDY,
        description="Conflict policy used when no per-request policy is given",
    )
    suppression_marker: str = Field(
        default="patternguard",
        description="Comment marker for inline suppressions (# <marker>: disable=...)",
    )

    # ── Workers ──
    max_workers: int = Field(
        default=4, description="Max files analysed concurrently by the worker"
    )

    # ── Cache ──
    cache_ttl_seconds: int = Field(
        default=3600, description="Time-to-live for file-level cache entries"
    )

    # ── Audit ──
    audit_log_path: str = Field(
        default="audit.jsonl", description="Path to JSON-lines audit log file"
    )

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Root log level")

    model_config = {
        "env_prefix": "PATTERNGUARD_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Shared settings instance
settings = Settings()
