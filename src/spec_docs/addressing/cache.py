"""Batch-scoped cache of parsed addresses.

Address parsing is cheap and idempotent, so the cache never evicts
selectively: after an idle window the whole batch is dropped on the next
access. Callers that own a request scope should prefer `batch_scope()`, which
installs a private cache for the scope and clears it deterministically on
exit.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, TypeVar

from spec_docs.config import AddressingConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


class AddressCache:
    """Mutex-guarded map of cache key to parsed address.

    Each entry remembers the document path it belongs to so that
    `invalidate_document` can drop a document together with all of its
    section and task addresses.
    """

    def __init__(
        self,
        config: AddressingConfig | None = None,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or AddressingConfig()
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[str, Any]] = {}
        self._last_access = clock()

    def get_or_create(self, key: str, document_path: str, factory: Callable[[], T]) -> T:
        with self._lock:
            self._expire_if_idle()
            hit = self._entries.get(key)
            if hit is not None:
                return hit[1]

        value = factory()

        with self._lock:
            if len(self._entries) >= self.config.max_cache_entries:
                logger.debug(f"Address cache full ({len(self._entries)} entries), clearing batch")
                self._entries.clear()
            existing = self._entries.setdefault(key, (document_path, value))
            return existing[1]

    def get(self, key: str) -> Any | None:
        with self._lock:
            self._expire_if_idle()
            hit = self._entries.get(key)
            return hit[1] if hit is not None else None

    def invalidate_document(self, document_path: str) -> int:
        """Drop every entry belonging to `document_path`; returns the count."""

        with self._lock:
            stale = [key for key, (path, _) in self._entries.items() if path == document_path]
            for key in stale:
                del self._entries[key]
            return len(stale)

    def clear_batch(self) -> None:
        with self._lock:
            self._entries.clear()
            self._last_access = self._clock()

    def get_batch_stats(self) -> dict[str, Any]:
        with self._lock:
            self._expire_if_idle()
            return {"size": len(self._entries), "keys": list(self._entries)}

    def _expire_if_idle(self) -> None:
        now = self._clock()
        if self._entries and now - self._last_access > self.config.batch_timeout_seconds:
            logger.debug(f"Address batch idle for {now - self._last_access:.2f}s, clearing")
            self._entries.clear()
        self._last_access = now


_default_cache = AddressCache()
_CURRENT_CACHE: ContextVar[AddressCache | None] = ContextVar(
    "spec_docs_address_cache",
    default=None,
)


def get_address_cache() -> AddressCache:
    """Return the cache of the active `batch_scope`, or the process default."""

    return _CURRENT_CACHE.get() or _default_cache


@contextmanager
def batch_scope(config: AddressingConfig | None = None) -> Iterator[AddressCache]:
    cache = AddressCache(config)
    token = _CURRENT_CACHE.set(cache)
    try:
        yield cache
    finally:
        _CURRENT_CACHE.reset(token)
        cache.clear_batch()
