"""
Organization name duplicate check with latest-request-wins semantics.

Each call to DuplicateNameChecker.check() bumps a generation counter and
cancels the lookup still in flight from the previous call. A call whose
generation has been superseded by the time its lookup settles returns None,
so only the most recent check produces a verdict.
"""

import asyncio
import logging
import re
from typing import Optional

from crm_reporting.core.gateway import DataAccessGateway, fetch_collection
from crm_reporting.models.enums import Resource, SortOrder


logger = logging.getLogger(__name__)


MIN_NAME_LENGTH: int = 2
LOOKUP_PAGE_SIZE: int = 25

_LIKE_SPECIAL = re.compile(r"([\\%_])")


def escape_like(value: str) -> str:
    """Escape LIKE metacharacters so ``value`` only matches itself."""
    return _LIKE_SPECIAL.sub(r"\\\1", value)


class DuplicateNameChecker:
    """
    Checks whether an organization name is already taken.

    ``check()`` returns True when the name is free, False when another
    organization has exactly this name (case-insensitive), and None when a
    newer check superseded this one.

    Args:
        gateway: Data Access Gateway used for the lookup.
        min_length: Names shorter than this (after trimming) are accepted
            without a lookup.
    """

    def __init__(self, gateway: DataAccessGateway, min_length: int = MIN_NAME_LENGTH):
        self.gateway = gateway
        self.min_length = min_length
        self._generation = 0
        self._inflight: Optional[asyncio.Task] = None

    @property
    def generation(self) -> int:
        return self._generation

    def _cancel_inflight(self) -> None:
        if self._inflight is not None and not self._inflight.done():
            self._inflight.cancel()
        self._inflight = None

    async def _lookup(self, name: str, exclude_id: Optional[int]) -> bool:
        filters = {"name": {"ilike": escape_like(name)}}
        if exclude_id is not None:
            filters["id"] = {"neq": exclude_id}

        candidates = await fetch_collection(
            self.gateway,
            Resource.ORGANIZATIONS.value,
            sort_field="id",
            order=SortOrder.DESC,
            filters=filters,
            per_page=LOOKUP_PAGE_SIZE,
        )
        wanted = name.lower()
        return not any(
            (candidate.get("name") or "").strip().lower() == wanted
            for candidate in candidates
        )

    async def check(self, name: Optional[str], exclude_id: Optional[int] = None) -> Optional[bool]:
        """
        Check ``name`` for duplicates, superseding any earlier check.

        Args:
            name: Candidate organization name.
            exclude_id: Organization id to ignore (the record being edited).

        Returns:
            True if unique, False if taken, None if superseded.
        """
        self._generation += 1
        generation = self._generation
        self._cancel_inflight()

        normalized = (name or "").strip()
        if len(normalized) < self.min_length:
            return True

        task = asyncio.ensure_future(self._lookup(normalized, exclude_id))
        self._inflight = task

        try:
            is_unique = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                return None
            raise
        except Exception as e:
            logger.warning(f"Duplicate check failed for {normalized!r}: {e}")
            is_unique = True
        finally:
            if self._inflight is task:
                self._inflight = None

        if generation != self._generation:
            return None
        return is_unique
