"""Disk-based response caching for papers.

This package provides :class:`ResponseCache`, a content-addressed store for
raw response bodies with per-entry TTL, built on :mod:`diskcache`. The
clients consult it before every request when one is configured; a client
without a cache behaves exactly like one whose cache always misses.
"""

from papers.cache.cache import CacheEntry, ResponseCache

__all__ = ["CacheEntry", "ResponseCache"]
