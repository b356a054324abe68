"""
File Cache — SHA-256 hash-based incremental caching.

Caches per-file analysis outcomes (diagnostics plus whole-program facts),
keyed by content hash and by the effective rule configuration. Unchanged
files under an unchanged configuration skip parsing and checking entirely.
"""

from __future__ import annotations

import hashlib
import time
from dataclasses import dataclass, field
from typing import Any

from hyplint.config import settings
from hyplint.core.engine import FileOutcome


@dataclass
class CacheEntry:
    """A cached analysis outcome for a single file."""

    content_hash: str
    outcome: FileOutcome
    ttl_seconds: float
    timestamp: float = field(default_factory=time.time)

    @property
    def is_expired(self) -> bool:
        return (time.time() - self.timestamp) > self.ttl_seconds


class FileCache:
    """
    In-memory file-level cache keyed by SHA-256 of file content.

    The key also carries a fingerprint of the resolved rule configuration, so
    changing a threshold never serves stale diagnostics.
    """

    def __init__(self, ttl_seconds: float | None = None) -> None:
        self._store: dict[str, CacheEntry] = {}
        self.ttl_seconds = settings.cache_ttl_seconds if ttl_seconds is None else ttl_seconds

    @staticmethod
    def hash_content(content: str) -> str:
        """Compute SHA-256 hash of file content."""
        return hashlib.sha256(content.encode("utf-8")).hexdigest()

    @staticmethod
    def _key(file_path: str, content_hash: str, fingerprint: str) -> str:
        config_hash = hashlib.sha256(fingerprint.encode("utf-8")).hexdigest()[:16]
        return f"{file_path}:{content_hash}:{config_hash}"

    def get(self, file_path: str, content: str, fingerprint: str = "") -> FileOutcome | None:
        """
        Look up the cached outcome for a file.

        Returns None if not cached, expired, or content/configuration changed.
        """
        key = self._key(file_path, self.hash_content(content), fingerprint)
        entry = self._store.get(key)

        if entry is None:
            return None

        if entry.is_expired:
            del self._store[key]
            return None

        return entry.outcome

    def put(self, file_path: str, content: str, outcome: FileOutcome, fingerprint: str = "") -> None:
        """Cache the analysis outcome for a file."""
        content_hash = self.hash_content(content)
        self._store[self._key(file_path, content_hash, fingerprint)] = CacheEntry(
            content_hash=content_hash,
            outcome=outcome,
            ttl_seconds=self.ttl_seconds,
        )

    def invalidate(self, file_path: str) -> int:
        """Remove all cached entries for a file path. Returns count removed."""
        keys_to_remove = [k for k in self._store if k.startswith(f"{file_path}:")]
        for key in keys_to_remove:
            del self._store[key]
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
        expired = sum(1 for e in self._store.values() if e.is_expired)
        return {
            "total_entries": len(self._store),
            "expired_entries": expired,
            "active_entries": len(self._store) - expired,
        }
