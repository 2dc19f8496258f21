"""
File Cache — SHA-256 hash-based incremental caching.

Caches analysis results per file, keyed by content hash and by the fingerprint
of the rule configuration that produced them. Unchanged files analysed with an
unchanged configuration skip the pass entirely.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any

from patternguard.config import settings
from patternguard.models.analysis_models import AnalysisResult


@dataclass
class CacheEntry:
    """A cached analysis result for a single file."""

    content_hash: str
    config_fingerprint: str
    result: AnalysisResult
    ttl_seconds: int = field(default_factory=lambda: settings.cache_ttl_seconds)
    timestamp: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        return (time.time() - self.timestamp) > self.ttl_seconds


class FileCache:
    """
    In-memory file-level cache keyed by SHA-256 of file content.

    Results are immutable, so entries are shared without copying.
    """

    def __init__(self, ttl_seconds: int | None = None) -> None:
        self._store: dict[str, CacheEntry] = {}
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self.hits = 0
        self.misses = 0

    @staticmethod
    def hash_content(content: str) -> str:
        """Compute SHA-256 hash of file content."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @classmethod
    def _key(cls, file_path: str, content: str, fingerprint: str) -> str:
        return f"{file_path}:{cls.hash_content(content)}:{fingerprint}"

    def get(self, file_path: str, content: str, fingerprint: str) -> CacheEntry | None:
        """
        Look up cached result for a file.

        Returns None if not cached, expired, or content/configuration changed.
        """
        key = self._key(file_path, content, fingerprint)
        entry = self._store.get(key)

        if entry is None:
            self.misses += 1
            return None

        if entry.is_expired:
            self._store.pop(key, None)
            self.misses += 1
            return None

        self.hits += 1
        return entry

    def put(
        self,
        file_path: str,
        content: str,
        fingerprint: str,
        result: AnalysisResult,
    ) -> None:
        """Cache the analysis result for a file."""
        self._store[self._key(file_path, content, fingerprint)] = CacheEntry(
            content_hash=self.hash_content(content),
            config_fingerprint=fingerprint,
            result=result,
            ttl_seconds=self.ttl_seconds,
        )

    def invalidate(self, file_path: str) -> int:
        """Remove all cached entries for a file path. Returns count removed."""
        keys_to_remove = [k for k in list(self._store) if k.startswith(f"{file_path}:")]
        for key in keys_to_remove:
            self._store.pop(key, None)
        return len(keys_to_remove)

    def clear(self) -> None:
        """Clear all cached entries."""
        self._store.clear()

    @property
    def size(self) -> int:
        """Number of cached entries."""
        return len(self._store)

    def stats(self) -> dict[str, Any]:
        """Cache statistics."""
        expired = sum(1 for e in list(self._store.values()) if e.is_expired)
        return {
            "total_entries": len(self._store),
            "expired_entries": expired,
            "active_entries": len(self._store) - expired,
            "hits": self.hits,
            "misses": self.misses,
        }
