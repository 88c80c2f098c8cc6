"""Disk-based, TTL-bound response cache.

Uses :mod:`diskcache` to persist raw response bodies on the filesystem.
Entries are keyed by :meth:`~papers.client.request.RequestDescriptor.cache_key`
-- a SHA-256 fingerprint of the request's semantic content -- and stored as
a plain dict (body, ``stored_at``, ``ttl``, selected response headers) that
is rebuilt into a :class:`CacheEntry` on read, so no project class is ever
pickled.

Expiry is purely time based and evaluated against an injectable clock rather
than diskcache's own expiry, so tests can move time forward. Expired entries
are dropped lazily on read or eagerly by :meth:`ResponseCache.sweep`.

:mod:`diskcache` commits every value inside an SQLite transaction (large
values are written to a file first and then referenced), so a reader never
observes a half-written entry and concurrent writers to one key leave the
last complete value. Any I/O failure is logged as a warning and treated as
a miss: the cache must never fail a request that would otherwise succeed.
"""

from __future__ import annotations

import logging
import pickle
import sqlite3
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import diskcache

from papers.exceptions import CacheError
from papers.models import CacheConfig

logger = logging.getLogger(__name__)

_CACHE_FAILURES = (OSError, sqlite3.Error, diskcache.Timeout, pickle.UnpicklingError, EOFError)
_RECORD_FIELDS = ("body", "stored_at", "ttl", "headers")


@dataclass(frozen=True)
class CacheEntry:
    """A stored response body and its metadata.

    Attributes:
        body: Raw response bytes.
        stored_at: Clock reading (epoch seconds) when the entry was written.
        ttl: Lifetime in seconds.
        headers: Response headers kept alongside the body (lower-cased names).
    """

    body: bytes
    stored_at: float
    ttl: float
    headers: dict[str, str] = field(default_factory=dict)

    def is_expired(self, now: float) -> bool:
        return now - self.stored_at >= self.ttl

    def to_record(self) -> dict[str, Any]:
        """Plain-builtin form written to disk, independent of this class."""
        return {
            "body": self.body,
            "stored_at": self.stored_at,
            "ttl": self.ttl,
            "headers": dict(self.headers),
        }

    @classmethod
    def from_record(cls, record: Any) -> CacheEntry:
        """Rebuild an entry from :meth:`to_record` output.

        Raises:
            CacheError: If *record* does not have the expected shape.
        """
        if not isinstance(record, dict) or any(name not in record for name in _RECORD_FIELDS):
            raise CacheError(f"unexpected cache record type {type(record).__name__}")
        body, headers = record["body"], record["headers"]
        if not isinstance(body, bytes) or not isinstance(headers, dict):
            raise CacheError("malformed cache record")
        try:
            return cls(body, float(record["stored_at"]), float(record["ttl"]), dict(headers))
        except (TypeError, ValueError) as exc:
            raise CacheError(f"malformed cache record: {exc}") from exc


class ResponseCache:
    """Disk-backed cache for raw response bodies.

    Args:
        cache_dir: Root directory for the cache. A ``responses/``
            subdirectory is created inside it.
        config: Cache configuration (``enabled`` flag and ``ttl_seconds``).
        clock: Returns the current time in epoch seconds.

    Example::

        from papers.cache import ResponseCache
        from papers.models import CacheConfig

        cache = ResponseCache("/tmp/papers-cache", CacheConfig(ttl_seconds=300))
        cache.put(descriptor.cache_key(), b'{"id": "W1"}')
        body = cache.get(descriptor.cache_key())
    """

    def __init__(
        self,
        cache_dir: str | Path,
        config: CacheConfig,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._config = config
        self._clock = clock
        self._cache_dir = Path(cache_dir)
        self._cache: Optional[diskcache.Cache] = None
        if config.enabled:
            try:
                self._cache = diskcache.Cache(str(self._cache_dir / "responses"))
            except _CACHE_FAILURES as exc:
                logger.warning("Response cache unavailable at %s: %s", self._cache_dir, exc)

    @property
    def enabled(self) -> bool:
        return self._cache is not None

    @property
    def default_ttl(self) -> float:
        return float(self._config.ttl_seconds)

    def get(self, key: str) -> Optional[bytes]:
        """Return the cached body for *key*, or ``None`` on a miss or expiry."""
        entry = self.get_entry(key)
        return entry.body if entry is not None else None

    def get_entry(self, key: str) -> Optional[CacheEntry]:
        """Return the unexpired :class:`CacheEntry` for *key*, or ``None``.

        Expired entries are removed on the way out. Read failures are logged
        and reported as a miss.
        """
        if self._cache is None:
            return None
        try:
            entry = self._read(key)
        except CacheError as exc:
            logger.warning("Cache read failed for %s: %s", key[:12], exc)
            return None
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self.invalidate(key)
            return None
        return entry

    def put(
        self,
        key: str,
        body: bytes,
        ttl: Optional[float] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """Store *body* under *key*, replacing any previous entry.

        Args:
            key: Cache key from :meth:`RequestDescriptor.cache_key`.
            body: Raw response bytes.
            ttl: Lifetime in seconds; defaults to ``config.ttl_seconds``.
            headers: Response headers to keep with the body.
        """
        if self._cache is None:
            return
        entry = CacheEntry(
            body=bytes(body),
            stored_at=self._clock(),
            ttl=self.default_ttl if ttl is None else float(ttl),
            headers=dict(headers or {}),
        )
        try:
            self._cache.set(key, entry.to_record())
        except _CACHE_FAILURES as exc:
            logger.warning("Cache write failed for %s: %s", key[:12], exc)

    def invalidate(self, key: str) -> None:
        """Remove the entry for *key*, if any."""
        if self._cache is None:
            return
        try:
            self._cache.delete(key)
        except _CACHE_FAILURES as exc:
            logger.warning("Cache delete failed for %s: %s", key[:12], exc)

    def sweep(self) -> int:
        """Eagerly delete every expired entry.

        Returns:
            The number of entries removed.
        """
        if self._cache is None:
            return 0
        now = self._clock()
        removed = 0
        try:
            keys = list(self._cache.iterkeys())
        except _CACHE_FAILURES as exc:
            logger.warning("Cache sweep failed: %s", exc)
            return 0
        for key in keys:
            try:
                entry = self._read(key)
            except CacheError:
                entry = None
            if entry is None or entry.is_expired(now):
                self.invalidate(key)
                removed += 1
        return removed

    def clear(self) -> None:
        """Remove all entries from the cache."""
        if self._cache is None:
            return
        try:
            self._cache.clear()
        except _CACHE_FAILURES as exc:
            logger.warning("Cache clear failed: %s", exc)

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``enabled`` (bool), and when enabled:
            ``size`` (number of entries), ``volume_bytes``, ``directory``
            (str path), and ``ttl_seconds`` (int).
        """
        if self._cache is None:
            return {"enabled": False}
        try:
            size, volume = len(self._cache), self._cache.volume()
        except _CACHE_FAILURES as exc:
            logger.warning("Cache stats unavailable: %s", exc)
            size, volume = None, None
        return {
            "enabled": True,
            "size": size,
            "volume_bytes": volume,
            "directory": str(self._cache_dir / "responses"),
            "ttl_seconds": self._config.ttl_seconds,
        }

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        if self._cache is not None:
            self._cache.close()

    def _read(self, key: str) -> Optional[CacheEntry]:
        assert self._cache is not None
        try:
            value = self._cache.get(key)
        except Exception as exc:  # unpickling a stale record can raise anything
            raise CacheError(f"{exc.__class__.__name__}: {exc}") from exc
        if value is None:
            return None
        return CacheEntry.from_record(value)
