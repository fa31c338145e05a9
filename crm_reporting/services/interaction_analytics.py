"""
Interaction analytics service.

Computes the interaction report: per-type breakdown, per-principal and
per-segment breakdowns, and a fixed 30-day daily timeline.

Filtering:
- createdAt >= start_date and createdAt <= end_date, both inclusive and both
  optional; interactions without createdAt are dropped when a bound is given
- Equality filters on organizationId, typeId and contactId, applied after the
  date filter

Breakdowns:
- byType: one row per interaction_type setting; percentage of the filtered
  set, rounded to 2 decimals, 0 when the filtered set is empty
- byPrincipal: one row per principal setting; deals tagged with the principal
  and their won percentage
- bySegment: one row per segment setting; filtered interactions with an
  organization in the segment and the average amount of that segment's deals

Timeline:
- Exactly TIMELINE_DAYS entries, one per UTC calendar day from 29 days ago up
  to today, whatever the requested date window. Each day buckets the filtered
  interactions by the calendar date of createdAt.
"""

import asyncio
import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.exceptions import InteractionReportError
from crm_reporting.core.gateway import DataAccessGateway, fetch_collection
from crm_reporting.models.enums import Resource, SettingCategory
from crm_reporting.models.schemas import (
    Deal,
    Interaction,
    InteractionMetrics,
    InteractionReportParams,
    Organization,
    PrincipalBreakdown,
    SegmentBreakdown,
    Setting,
    TimelineEntry,
    TypeBreakdown,
    ensure_utc,
    parse_records,
)
from crm_reporting.services.metrics import WON_DEAL_STAGES


logger = logging.getLogger(__name__)


TIMELINE_DAYS: int = 30

# Interaction fields accepted as equality filters
FILTER_FIELDS = ("organizationId", "typeId", "contactId")


def _percentage(part: int, whole: int) -> float:
    if whole == 0:
        return 0.0
    return round(part / whole * 100, 2)


def _settings_in(settings: Sequence[Setting], category: SettingCategory) -> List[Setting]:
    return [setting for setting in settings if setting.category == category.value]


# =============================================================================
# FILTERING
# =============================================================================

def filter_interactions(
    interactions: Sequence[Interaction],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    extra_filters: Optional[Mapping[str, Any]] = None,
) -> List[Interaction]:
    """
    Apply the inclusive date window, then the equality filters.

    Filter values of None are ignored.
    """
    filtered = list(interactions)
    start_date = ensure_utc(start_date)
    end_date = ensure_utc(end_date)

    if start_date is not None:
        filtered = [i for i in filtered if i.createdAt is not None and i.createdAt >= start_date]
    if end_date is not None:
        filtered = [i for i in filtered if i.createdAt is not None and i.createdAt <= end_date]

    for field_name, value in (extra_filters or {}).items():
        if value is None:
            continue
        if field_name not in FILTER_FIELDS:
            raise ValueError(f"Unsupported interaction filter: {field_name}")
        filtered = [i for i in filtered if getattr(i, field_name) == value]

    return filtered


# =============================================================================
# BREAKDOWNS
# =============================================================================

def build_type_breakdown(
    filtered: Sequence[Interaction],
    settings: Sequence[Setting],
) -> List[TypeBreakdown]:
    counts = Counter(interaction.typeId for interaction in filtered)
    total = len(filtered)

    return [
        TypeBreakdown(
            type=setting.label,
            count=counts.get(setting.id, 0),
            percentage=_percentage(counts.get(setting.id, 0), total),
        )
        for setting in _settings_in(settings, SettingCategory.INTERACTION_TYPE)
    ]


def build_principal_breakdown(
    deals: Sequence[Deal],
    settings: Sequence[Setting],
) -> List[PrincipalBreakdown]:
    rows: List[PrincipalBreakdown] = []

    for principal in _settings_in(settings, SettingCategory.PRINCIPAL):
        principal_deals = [deal for deal in deals if deal.principalId == principal.id]
        won = sum(1 for deal in principal_deals if deal.stage in WON_DEAL_STAGES)
        rows.append(PrincipalBreakdown(
            principal=principal.label,
            count=len(principal_deals),
            conversionRate=_percentage(won, len(principal_deals)),
        ))

    return rows


def build_segment_breakdown(
    filtered: Sequence[Interaction],
    organizations: Sequence[Organization],
    deals: Sequence[Deal],
    settings: Sequence[Setting],
) -> List[SegmentBreakdown]:
    segment_by_org: Dict[int, Optional[int]] = {org.id: org.segmentId for org in organizations}
    rows: List[SegmentBreakdown] = []

    for segment in _settings_in(settings, SettingCategory.SEGMENT):
        count = sum(
            1 for interaction in filtered
            if segment_by_org.get(interaction.organizationId) == segment.id
        )
        amounts = [
            deal.amount or 0
            for deal in deals
            if segment_by_org.get(deal.organizationId) == segment.id
        ]
        average = round(sum(amounts) / len(amounts), 2) if amounts else 0.0
        rows.append(SegmentBreakdown(segment=segment.label, count=count, averageValue=average))

    return rows


def build_timeline(
    interactions: Sequence[Interaction],
    now: Optional[datetime] = None,
    days: int = TIMELINE_DAYS,
) -> List[TimelineEntry]:
    """
    Bucket interactions into one entry per calendar day, oldest first.

    Always returns ``days`` entries, ending with today's (UTC) date.
    """
    today = ensure_utc(now or datetime.now(timezone.utc)).date()

    counts: Counter = Counter()
    completed: Counter = Counter()
    for interaction in interactions:
        if interaction.createdAt is None:
            continue
        day = interaction.createdAt.date()
        counts[day] += 1
        if interaction.isCompleted:
            completed[day] += 1

    timeline: List[TimelineEntry] = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        timeline.append(TimelineEntry(date=day, count=counts[day], completed=completed[day]))
    return timeline


# =============================================================================
# REPORT
# =============================================================================

def compute_interaction_metrics(
    interactions: Optional[Sequence[Any]],
    settings: Optional[Sequence[Any]],
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    extra_filters: Optional[Mapping[str, Any]] = None,
    organizations: Optional[Sequence[Any]] = None,
    deals: Optional[Sequence[Any]] = None,
    now: Optional[datetime] = None,
) -> InteractionMetrics:
    """
    Compute the interaction report from already-fetched collections.

    Args:
        interactions: Interaction records.
        settings: Settings lookup records (all categories).
        start_date: Inclusive lower bound on createdAt.
        end_date: Inclusive upper bound on createdAt.
        extra_filters: Equality filters on organizationId/typeId/contactId.
        organizations: Organization records, used for the segment join.
        deals: Deal records, used for the principal and segment joins.
        now: Reference time for the timeline (defaults to current UTC).

    Returns:
        InteractionMetrics whose timeline always has TIMELINE_DAYS entries.
    """
    interactions = parse_records(Interaction, interactions)
    settings = parse_records(Setting, settings)
    organizations = parse_records(Organization, organizations)
    deals = parse_records(Deal, deals)

    filtered = filter_interactions(interactions, start_date, end_date, extra_filters)

    return InteractionMetrics(
        byType=build_type_breakdown(filtered, settings),
        byPrincipal=build_principal_breakdown(deals, settings),
        bySegment=build_segment_breakdown(filtered, organizations, deals, settings),
        timeline=build_timeline(filtered, now=now),
    )


async def generate_interaction_report(
    gateway: DataAccessGateway,
    params: Optional[InteractionReportParams] = None,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> InteractionMetrics:
    """
    Fetch interactions, settings, organizations and deals concurrently and
    compute the interaction report.

    Raises:
        InteractionReportError: If any of the reads fails or a record cannot
            be parsed.
    """
    params = params or InteractionReportParams()
    settings = settings or get_settings()
    cap = settings.list_page_cap

    try:
        interactions, lookups, organizations, deals = await asyncio.gather(
            fetch_collection(gateway, Resource.INTERACTIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.SETTINGS.value, per_page=settings.settings_page_cap),
            fetch_collection(gateway, Resource.ORGANIZATIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.DEALS.value, per_page=cap),
        )
    except Exception as e:
        logger.exception(f"Error generating interaction report: {e}")
        raise InteractionReportError() from e

    try:
        metrics = compute_interaction_metrics(
            interactions,
            lookups,
            start_date=params.start_date,
            end_date=params.end_date,
            extra_filters=params.extra_filters(),
            organizations=organizations,
            deals=deals,
            now=now,
        )
    except ValidationError as e:
        logger.exception(f"Invalid record in interaction report: {e}")
        raise InteractionReportError() from e

    logger.info(
        f"Interaction report over {len(interactions)} interactions "
        f"({len(metrics.byType)} types, {len(metrics.bySegment)} segments)"
    )
    return metrics
