"""
TTL memoization for report producers.

ReportCache.fetch(key, producer, ttl, force) returns the stored value while
``now - stored_at < ttl``; otherwise it awaits ``producer``, stores the
result with the current time and returns it. A failing producer leaves the
cache exactly as it was.

Concurrent fetches that both miss each await their own producer call; there
is no single-flight sharing of in-progress work.

Also provided:
- bounded size, evicting the oldest stored entry when full
- invalidate / invalidate_pattern / clear / cleanup / stats
- CacheKeys and CacheTTL for the reports served by this engine
- invalidate_reporting_cache(): scope-based invalidation after data changes
"""

import json
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Pattern, TypeVar, Union

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.models.enums import CacheScope, ExportKind


logger = logging.getLogger(__name__)

T = TypeVar("T")

Clock = Callable[[], float]


@dataclass
class CacheEntry:
    value: Any
    stored_at: float
    ttl: float

    def is_fresh(self, now: float) -> bool:
        return now - self.stored_at < self.ttl


class ReportCache:
    """
    In-process TTL cache keyed by report parameters.

    Args:
        max_entries: Entry limit; storing a new key when full evicts the
            oldest stored entry.
        clock: Monotonic time source in seconds.
    """

    def __init__(self, max_entries: int = 50, clock: Clock = time.monotonic):
        self.max_entries = max_entries
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock())

    def get(self, key: str, default: Any = None) -> Any:
        """Return the fresh value for ``key``, dropping it if it has expired."""
        entry = self._entries.get(key)
        if entry is None:
            return default
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return default
        return entry.value

    def set(self, key: str, value: Any, ttl: float) -> None:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self.max_entries:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            logger.debug(f"Report cache full, evicted {oldest}")

        self._entries[key] = CacheEntry(value=value, stored_at=self._clock(), ttl=ttl)

    async def fetch(
        self,
        key: str,
        producer: Callable[[], Awaitable[T]],
        ttl: float,
        force: bool = False,
    ) -> T:
        """
        Return the cached value for ``key`` or compute it with ``producer``.

        Args:
            key: Cache key.
            producer: Zero-argument coroutine function computing the value.
            ttl: Freshness window in seconds.
            force: Skip the cached value and recompute.

        Raises:
            Whatever ``producer`` raises; nothing is stored in that case.
        """
        if not force:
            entry = self._entries.get(key)
            if entry is not None and entry.is_fresh(self._clock()):
                logger.debug(f"Report cache hit: {key}")
                return entry.value

        logger.debug(f"Report cache miss: {key}")
        value = await producer()
        self.set(key, value, ttl)
        return value

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_pattern(self, pattern: Union[str, Pattern[str]]) -> int:
        """Drop every key matching ``pattern`` (re.search). Returns the count."""
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern
        keys = [key for key in self._entries if regex.search(key)]
        for key in keys:
            del self._entries[key]
        return len(keys)

    def clear(self) -> None:
        self._entries.clear()

    def cleanup(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if not entry.is_fresh(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        now = self._clock()
        valid = sum(1 for entry in self._entries.values() if entry.is_fresh(now))
        total = len(self._entries)
        return {
            "totalEntries": total,
            "validEntries": valid,
            "expiredEntries": total - valid,
            "hitRate": valid / total if total else 0.0,
        }


# =============================================================================
# KEYS & TTLS
# =============================================================================

def _encode(params: Optional[Mapping[str, Any]]) -> str:
    if not params:
        return ""
    return json.dumps(dict(params), sort_keys=True, default=str)


class CacheKeys:
    """Cache key builders for each report."""

    DASHBOARD = "dashboard-summary"
    NEEDS_VISIT = "organizations-needs-visit"
    INTERACTIONS_PREFIX = "interactions-"
    EXPORT_PREFIX = "export-"

    @staticmethod
    def dashboard() -> str:
        return CacheKeys.DASHBOARD

    @staticmethod
    def interactions(params: Optional[Mapping[str, Any]] = None) -> str:
        return CacheKeys.INTERACTIONS_PREFIX + _encode(params)

    @staticmethod
    def needs_visit() -> str:
        return CacheKeys.NEEDS_VISIT

    @staticmethod
    def export(kind: ExportKind, filters: Optional[Mapping[str, Any]] = None) -> str:
        return f"{CacheKeys.EXPORT_PREFIX}{kind.value}-{_encode(filters)}"


@dataclass(frozen=True)
class CacheTTL:
    """Per-report freshness windows in seconds."""
    dashboard: float = 300
    interactions: float = 600
    needs_visit: float = 900
    export: float = 60

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CacheTTL":
        settings = settings or get_settings()
        return cls(
            dashboard=settings.dashboard_cache_ttl,
            interactions=settings.interactions_cache_ttl,
            needs_visit=settings.needs_visit_cache_ttl,
            export=settings.export_cache_ttl,
        )


def invalidate_reporting_cache(cache: ReportCache, scope: CacheScope = CacheScope.ALL) -> None:
    """
    Drop the reports affected by a change to ``scope``.

    - all: everything
    - dashboard: dashboard, interaction reports and needs-visit
    - interactions: interaction reports and dashboard
    - organizations: needs-visit and dashboard
    """
    interactions_pattern = "^" + re.escape(CacheKeys.INTERACTIONS_PREFIX)

    if scope == CacheScope.ALL:
        cache.clear()
    elif scope == CacheScope.DASHBOARD:
        cache.invalidate(CacheKeys.dashboard())
        cache.invalidate_pattern(interactions_pattern)
        cache.invalidate(CacheKeys.needs_visit())
    elif scope == CacheScope.INTERACTIONS:
        cache.invalidate_pattern(interactions_pattern)
        cache.invalidate(CacheKeys.dashboard())
    elif scope == CacheScope.ORGANIZATIONS:
        cache.invalidate(CacheKeys.needs_visit())
        cache.invalidate(CacheKeys.dashboard())

    logger.info(f"Invalidated reporting cache scope={scope.value}")
