"""
Visit urgency scoring service.

Ranks organizations that have gone without contact for too long.

Algorithm (per organization):
1. lastContactDate = createdAt of its most recent interaction
2. daysSinceContact = floor((now - lastContactDate) / 1 day), or the
   never-contacted sentinel (999) when it has no dated interaction
3. Included only when daysSinceContact >= threshold (30)
4. contactCount = contacts referencing the organization
5. priority / segment labels resolved through the settings lookup,
   "Unknown" when unresolved
6. urgencyScore = daysSinceContact + priority bonus + contactCount * 5
   (bonus: high +50, medium +25, otherwise 0)

Ordering:
- urgencyScore descending, then organization id ascending
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.exceptions import NeedsVisitReportError
from crm_reporting.core.gateway import DataAccessGateway, fetch_collection
from crm_reporting.models.enums import PriorityKey, Resource, SettingCategory
from crm_reporting.models.schemas import (
    Contact,
    Interaction,
    Organization,
    OrganizationNeedsVisit,
    Setting,
    ensure_utc,
    parse_records,
)


logger = logging.getLogger(__name__)


UNKNOWN_LABEL: str = "Unknown"


@dataclass
class UrgencyWeights:
    """
    Scoring parameters for the needs-visit report.

    Example:
        weights = UrgencyWeights.from_settings(get_settings())
    """
    threshold_days: int = 30
    never_contacted_days: int = 999
    high_priority_bonus: int = 50
    medium_priority_bonus: int = 25
    contact_weight: int = 5

    @classmethod
    def from_settings(cls, settings: Settings) -> "UrgencyWeights":
        return cls(
            threshold_days=settings.needs_visit_threshold_days,
            never_contacted_days=settings.never_contacted_days,
            high_priority_bonus=settings.high_priority_bonus,
            medium_priority_bonus=settings.medium_priority_bonus,
            contact_weight=settings.contact_weight,
        )

    def priority_bonus(self, priority_key: Optional[str]) -> int:
        if priority_key == PriorityKey.HIGH.value:
            return self.high_priority_bonus
        if priority_key == PriorityKey.MEDIUM.value:
            return self.medium_priority_bonus
        return 0


def days_since(last_contact: datetime, now: datetime) -> int:
    """Whole days elapsed from ``last_contact`` to ``now``, rounded down."""
    return (now - last_contact) // timedelta(days=1)


def calculate_urgency_score(
    days_since_contact: int,
    priority_key: Optional[str],
    contact_count: int,
    weights: Optional[UrgencyWeights] = None,
) -> int:
    """
    Composite urgency: days + priority bonus + contacts * weight.

    Example:
        >>> calculate_urgency_score(400, "high", 2)
        460
    """
    weights = weights or UrgencyWeights()
    return (
        days_since_contact
        + weights.priority_bonus(priority_key)
        + contact_count * weights.contact_weight
    )


def compute_needs_visit(
    organizations: Optional[Sequence[Any]],
    contacts: Optional[Sequence[Any]],
    interactions: Optional[Sequence[Any]],
    settings: Optional[Sequence[Any]],
    now: Optional[datetime] = None,
    weights: Optional[UrgencyWeights] = None,
) -> List[OrganizationNeedsVisit]:
    """
    Build the ranked needs-visit list from already-fetched collections.

    Args:
        organizations: Organization records.
        contacts: Contact records.
        interactions: Interaction records.
        settings: Settings lookup records (priority and segment are used).
        now: Reference time (defaults to current UTC).
        weights: Scoring parameters (defaults to the standard weights).

    Returns:
        Organizations with daysSinceContact >= threshold, most urgent first.
    """
    now = ensure_utc(now or datetime.now(timezone.utc))
    weights = weights or UrgencyWeights()

    organizations = parse_records(Organization, organizations)
    contacts = parse_records(Contact, contacts)
    interactions = parse_records(Interaction, interactions)
    settings = parse_records(Setting, settings)

    priorities: Dict[int, Setting] = {
        s.id: s for s in settings if s.category == SettingCategory.PRIORITY.value
    }
    segments: Dict[int, Setting] = {
        s.id: s for s in settings if s.category == SettingCategory.SEGMENT.value
    }

    contact_counts = Counter(contact.organizationId for contact in contacts)

    last_contact: Dict[int, datetime] = {}
    for interaction in interactions:
        if interaction.createdAt is None or interaction.organizationId is None:
            continue
        current = last_contact.get(interaction.organizationId)
        if current is None or interaction.createdAt > current:
            last_contact[interaction.organizationId] = interaction.createdAt

    results: List[OrganizationNeedsVisit] = []

    for org in organizations:
        last_contact_date = last_contact.get(org.id)
        if last_contact_date is None:
            days_since_contact = weights.never_contacted_days
        else:
            days_since_contact = days_since(last_contact_date, now)

        if days_since_contact < weights.threshold_days:
            continue

        priority = priorities.get(org.priorityId)
        segment = segments.get(org.segmentId)
        contact_count = contact_counts.get(org.id, 0)

        results.append(OrganizationNeedsVisit(
            id=org.id,
            name=org.name,
            segment=segment.label if segment else UNKNOWN_LABEL,
            priority=priority.label if priority else UNKNOWN_LABEL,
            lastContactDate=last_contact_date,
            daysSinceContact=days_since_contact,
            urgencyScore=calculate_urgency_score(
                days_since_contact,
                priority.key if priority else None,
                contact_count,
                weights,
            ),
            contactCount=contact_count,
            accountManager=org.accountManager,
        ))

    results.sort(key=lambda row: (-row.urgencyScore, row.id))
    return results


async def find_organizations_needing_visit(
    gateway: DataAccessGateway,
    settings: Optional[Settings] = None,
    now: Optional[datetime] = None,
) -> List[OrganizationNeedsVisit]:
    """
    Fetch organizations, contacts, interactions and settings concurrently and
    rank the organizations needing a visit.

    Raises:
        NeedsVisitReportError: If any of the reads fails or a record cannot
            be parsed.
    """
    settings = settings or get_settings()
    cap = settings.list_page_cap

    try:
        organizations, contacts, interactions, lookups = await asyncio.gather(
            fetch_collection(gateway, Resource.ORGANIZATIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.CONTACTS.value, per_page=cap),
            fetch_collection(gateway, Resource.INTERACTIONS.value, per_page=cap),
            fetch_collection(gateway, Resource.SETTINGS.value, per_page=settings.settings_page_cap),
        )
    except Exception as e:
        logger.exception(f"Error finding organizations needing visits: {e}")
        raise NeedsVisitReportError() from e

    try:
        results = compute_needs_visit(
            organizations,
            contacts,
            interactions,
            lookups,
            now=now,
            weights=UrgencyWeights.from_settings(settings),
        )
    except ValidationError as e:
        logger.exception(f"Invalid record in needs-visit report: {e}")
        raise NeedsVisitReportError() from e

    logger.info(f"{len(results)} of {len(organizations)} organizations need a visit")
    return results
