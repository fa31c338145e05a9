"""
Dashboard metrics aggregation service.

Reduces the four CRM entity collections into the dashboard summary: total
counts, pipeline value, deal conversion rate and interaction trend counts.

Key Functions:
- compute_dashboard_summary: Pure reduction over already-fetched collections
- generate_dashboard_report: Fan-out gateway reads + reduction
- calculate_pipeline_value: Sum of deal amounts (missing amount counts as 0)
- calculate_conversion_rate: Won / total * 100, 0 when there are no deals
- count_interactions_since: Inclusive trend-window count

Won Stages:
- Exactly "won" and "closed-won" (case-sensitive)

Trend Windows (relative to "now" at call time, thresholds inclusive):
- daily:   createdAt >= now - 24h
- weekly:  createdAt >= now - 7d
- monthly: createdAt >= now - 30d
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, FrozenSet, Optional, Sequence

from pydantic import ValidationError

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.exceptions import DashboardReportError
from crm_reporting.core.gateway import DataAccessGateway, fetch_collection
from crm_reporting.models.enums import Resource
from crm_reporting.models.schemas import (
    Contact,
    DashboardSummary,
    Deal,
    Interaction,
    Organization,
    TrendCounts,
    ensure_utc,
    parse_records,
)


logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

WON_DEAL_STAGES: FrozenSet[str] = frozenset({"won", "closed-won"})

DAILY_WINDOW = timedelta(days=1)
WEEKLY_WINDOW = timedelta(days=7)
MONTHLY_WINDOW = timedelta(days=30)


# =============================================================================
# PURE COMPUTATIONS
# =============================================================================

def calculate_pipeline_value(deals: Sequence[Deal]) -> float:
    return float(sum(deal.amount or 0 for deal in deals))


def count_won_deals(deals: Sequence[Deal]) -> int:
    return sum(1 for deal in deals if deal.stage in WON_DEAL_STAGES)


def calculate_conversion_rate(won_count: int, total_count: int) -> float:
    """
    Percentage of won deals.

    Returns:
        won_count / total_count * 100, or 0.0 when total_count is 0.
    """
    if total_count == 0:
        return 0.0
    return won_count / total_count * 100


def count_interactions_since(interactions: Sequence[Interaction], since: datetime) -> int:
    """Count interactions created at or after ``since``."""
    return sum(
        1 for interaction in interactions
        if interaction.createdAt is not None and interaction.createdAt >= since
    )


def compute_dashboard_summary(
    organizations: Optional[Sequence[Any]],
    contacts: Optional[Sequence[Any]],
    interactions: Optional[Sequence[Any]],
    deals: Optional[Sequence[Any]],
    now: Optional[datetime] = None,
) -> DashboardSummary:
    """
    Compute the dashboard summary from the four entity collections.

    Each collection may hold raw records or validated models; ``None`` is
    treated as empty.

    Args:
        organizations: Organization records.
        contacts: Contact records.
        interactions: Interaction records.
        deals: Deal records.
        now: Reference time for the trend windows (defaults to current UTC).

    Returns:
        DashboardSummary with counts, pipeline value, conversion rate and trends.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))

    organizations = parse_records(Organization, organizations)
    contacts = parse_records(Contact, contacts)
    interactions = parse_records(Interaction, interactions)
    deals = parse_records(Deal, deals)

    won_count = count_won_deals(deals)

    return DashboardSummary(
        totalInteractions=len(interactions),
        totalOrganizations=len(organizations),
        totalContacts=len(contacts),
        totalOpportunities=len(deals),
        pipelineValue=calculate_pipeline_value(deals),
        conversionRate=calculate_conversion_rate(won_count, len(deals)),
        trends=TrendCounts(
            daily=count_interactions_since(interactions, now - DAILY_WINDOW),
            weekly=count_interactions_since(interactions, now - WEEKLY_WINDOW),
            monthly=count_interactions_since(interactions, now - MONTHLY_WINDOW),
        ),
    )


# =============================================================================
# GATEWAY ENTRY POINT
# =============================================================================

async def generate_dashboard_report(
    gateway: DataAccessGateway,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> DashboardSummary:
    """
    Fetch organizations, contacts, interactions and deals concurrently and
    reduce them to the dashboard summary.

    Raises:
        DashboardReportError: If any of the reads fails or a record cannot
            be parsed. The original failure is chained as ``__cause__``.
    """
    settings = settings or get_settings()
    cap = settings.list_page_cap

    try:
        organizations, contacts, interactions, deals = await asyncio.gather(
            fetch_collection(gateway, Resource.ORGANIZATIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.CONTACTS.value, per_page=cap),
            fetch_collection(gateway, Resource.INTERACTIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.DEALS.value, per_page=cap),
        )
    except Exception as e:
        logger.exception(f"Error generating dashboard report: {e}")
        raise DashboardReportError() from e

    try:
        summary = compute_dashboard_summary(organizations, contacts, interactions, deals, now=now)
    except ValidationError as e:
        logger.exception(f"Invalid record in dashboard report: {e}")
        raise DashboardReportError() from e

    logger.info(
        f"Dashboard report: {summary.totalOrganizations} organizations, "
        f"{summary.totalInteractions} interactions, {summary.totalOpportunities} deals"
    )
    return summary
