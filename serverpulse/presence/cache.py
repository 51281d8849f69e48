"""
Recently seen players cache

Single-slot TTL memoization over PresenceStore.query_recently_seen.
While the slot is fresh it is served as-is, even if the online set passed
in has changed since the last refresh.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable

from ..models import PresenceRecord
from .store import PresenceStore, utc_now

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60.0


@dataclass
class RecentlySeenCacheEntry:
    value: list[PresenceRecord]
    refreshed_at: float  # clock() reading


class RecentlySeenCache:
    """
    Process-wide cache of the "recently seen" view.

    Usage:
        cache = RecentlySeenCache(store)
        players = cache.get_recently_seen(online_names, timedelta(days=7))
    """

    def __init__(
        self,
        store: PresenceStore,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._now = now
        self._entry: RecentlySeenCacheEntry | None = None

    def get_recently_seen(self, excluding: Iterable[str], window: timedelta) -> list[PresenceRecord]:
        current = self._clock()
        entry = self._entry
        if entry is not None and (current - entry.refreshed_at) <= self.ttl_seconds:
            logger.debug("Recently seen cache hit")
            return entry.value

        value = self.store.query_recently_seen(excluding, window, self._now())
        self._entry = RecentlySeenCacheEntry(value=value, refreshed_at=current)
        logger.debug(f"Recently seen cache refreshed ({len(value)} players)")
        return value

    def invalidate(self) -> None:
        self._entry = None
