"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from patternguard.audit.logger import AuditLogger
from patternguard.cache.file_cache import FileCache
from patternguard.core.registry import RuleRegistry, default_registry
from patternguard.workers.analysis_worker import AnalysisWorker


@lru_cache
def get_file_cache() -> FileCache:
    """Shared file cache singleton."""
    return FileCache()


@lru_cache
def get_audit_logger() -> AuditLogger:
    """Shared audit logger singleton."""
    return AuditLogger()


@lru_cache
def get_registry() -> RuleRegistry:
    """Bundled rule catalogue with default configuration."""
    return default_registry()


@lru_cache
def get_analysis_worker() -> AnalysisWorker:
    """Shared analysis worker singleton."""
    return AnalysisWorker(
        cache=get_file_cache(),
        audit_logger=get_audit_logger(),
        registry=get_registry(),
    )
