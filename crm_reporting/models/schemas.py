"""
Pydantic models for the CRM reporting engine.

This module provides type-safe validation for the read-only CRM entities
consumed from the Data Access Gateway (organizations, contacts, interactions,
deals, settings), the gateway request/response envelopes, and every derived
report payload (dashboard summary, interaction metrics, needs-visit rows,
CSV export data).

Conventions:
- Field names are camelCase, matching the records served by the gateway.
- Entity models allow extra fields so that columns unknown to the engine
  (address lines, notes, custom attributes) survive into CSV exports.
- Every timestamp is normalized to a timezone-aware UTC datetime; naive
  values are interpreted as UTC.

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType, datetime, timezone
from typing import Annotated, Any, Dict, List, Optional, Sequence

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field

from crm_reporting.models.enums import SortOrder


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(ensure_utc)]


def _null_as(default: Any) -> BeforeValidator:
    return BeforeValidator(lambda value: default if value is None else value)


# Nullable store columns read back as the field default
NullableStr = Annotated[str, _null_as("")]
NullableInt = Annotated[int, _null_as(0)]
NullableBool = Annotated[bool, _null_as(False)]


# =============================================================================
# CRM Entities (read-only inputs)
# =============================================================================


class CRMRecord(BaseModel):
    """Base class for records served by the Data Access Gateway."""
    model_config = ConfigDict(extra='allow', populate_by_name=True)

    id: int


class Setting(CRMRecord):
    """
    Generic lookup-table record.

    Referenced by id from organizations (priority, segment, distributor),
    interactions (interaction_type) and deals (principal).
    """
    model_config = ConfigDict(
        extra='allow',
        json_schema_extra={
            "example": {
                "id": 1,
                "category": "priority",
                "key": "high",
                "label": "High Priority",
                "color": "#ff0000",
                "sortOrder": 1,
                "active": True,
            }
        }
    )

    category: NullableStr
    key: NullableStr = ""
    label: NullableStr = ""
    color: Optional[str] = None
    sortOrder: NullableInt = 0
    active: Annotated[bool, _null_as(True)] = True


class Organization(CRMRecord):
    name: NullableStr = ""
    priorityId: Optional[int] = None
    segmentId: Optional[int] = None
    distributorId: Optional[int] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zipCode: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    accountManager: Optional[str] = None
    revenue: Optional[float] = None
    createdAt: Optional[UTCDateTime] = None
    updatedAt: Optional[UTCDateTime] = None


class Contact(CRMRecord):
    organizationId: Optional[int] = None
    firstName: NullableStr = ""
    lastName: NullableStr = ""
    email: Optional[str] = None
    isPrimary: NullableBool = False
    createdAt: Optional[UTCDateTime] = None


class Interaction(CRMRecord):
    """
    A touch point with an organization (visit, call, email, ...).

    ``createdAt`` drives every time-window computation; an interaction
    without one never falls inside a window.
    """
    organizationId: Optional[int] = None
    contactId: Optional[int] = None
    typeId: Optional[int] = None
    subject: Optional[str] = None
    createdAt: Optional[UTCDateTime] = None
    isCompleted: NullableBool = False
    completedDate: Optional[UTCDateTime] = None


class Deal(CRMRecord):
    """
    An opportunity. ``stage`` is a free-form label; "won" and "closed-won"
    count as successful.
    """
    organizationId: Optional[int] = None
    principalId: Optional[int] = None
    amount: Optional[float] = None
    stage: Optional[str] = None
    createdAt: Optional[UTCDateTime] = None


# =============================================================================
# Data Access Gateway Envelopes
# =============================================================================


class Pagination(BaseModel):
    page: int = Field(default=1, ge=1)
    perPage: int = Field(default=10000, ge=1)


class Sort(BaseModel):
    field: str = "id"
    order: SortOrder = SortOrder.ASC


class ListParams(BaseModel):
    """
    Parameters of a gateway ``getList`` read.

    ``filter`` values are either scalars (equality) or single-key operator
    mappings such as ``{"ilike": "%bistro%"}`` or ``{"neq": 5}``.
    """
    pagination: Pagination = Field(default_factory=Pagination)
    sort: Sort = Field(default_factory=Sort)
    filter: Dict[str, Any] = Field(default_factory=dict)


class ListResult(BaseModel):
    """Gateway read result. ``data`` may be missing and is treated as empty."""
    data: Optional[List[Dict[str, Any]]] = None
    total: int = 0


# =============================================================================
# Dashboard Summary
# =============================================================================


class TrendCounts(BaseModel):
    """Interaction counts over the trailing 1/7/30-day windows."""
    daily: int = Field(default=0, ge=0)
    weekly: int = Field(default=0, ge=0)
    monthly: int = Field(default=0, ge=0)


class DashboardSummary(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "totalInteractions": 120,
                "totalOrganizations": 40,
                "totalContacts": 85,
                "totalOpportunities": 12,
                "pipelineValue": 154000.0,
                "conversionRate": 25.0,
                "trends": {"daily": 3, "weekly": 17, "monthly": 61},
            }
        }
    )

    totalInteractions: int = Field(..., ge=0)
    totalOrganizations: int = Field(..., ge=0)
    totalContacts: int = Field(..., ge=0)
    totalOpportunities: int = Field(..., ge=0)
    pipelineValue: float = 0.0
    conversionRate: float = Field(
        ...,
        ge=0.0,
        le=100.0,
        description="Won deals / total deals * 100, 0 when there are no deals"
    )
    trends: TrendCounts


# =============================================================================
# Interaction Metrics
# =============================================================================


class TypeBreakdown(BaseModel):
    type: str
    count: int = Field(..., ge=0)
    percentage: float = Field(..., ge=0.0, le=100.0)


class PrincipalBreakdown(BaseModel):
    principal: str
    count: int = Field(..., ge=0)
    conversionRate: float = Field(..., ge=0.0, le=100.0)


class SegmentBreakdown(BaseModel):
    segment: str
    count: int = Field(..., ge=0)
    averageValue: float = 0.0


class TimelineEntry(BaseModel):
    date: DateType
    count: int = Field(..., ge=0)
    completed: int = Field(..., ge=0)


class InteractionMetrics(BaseModel):
    byType: List[TypeBreakdown] = Field(default_factory=list)
    byPrincipal: List[PrincipalBreakdown] = Field(default_factory=list)
    bySegment: List[SegmentBreakdown] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(
        ...,
        min_length=30,
        max_length=30,
        description="One entry per calendar day, oldest (29 days ago) first"
    )


class InteractionReportParams(BaseModel):
    """Query parameters of the interaction analytics report."""
    start_date: Optional[UTCDateTime] = None
    end_date: Optional[UTCDateTime] = None
    organizationId: Optional[int] = None
    typeId: Optional[int] = None
    contactId: Optional[int] = None

    def extra_filters(self) -> Dict[str, int]:
        filters = {
            "organizationId": self.organizationId,
            "typeId": self.typeId,
            "contactId": self.contactId,
        }
        return {key: value for key, value in filters.items() if value is not None}


# =============================================================================
# Needs-Visit
# =============================================================================


class OrganizationNeedsVisit(BaseModel):
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "name": "Bistro Central",
                "segment": "Fine Dining",
                "priority": "High Priority",
                "lastContactDate": "2025-01-04T15:30:00Z",
                "daysSinceContact": 400,
                "urgencyScore": 460,
                "contactCount": 2,
                "accountManager": "jane@example.com",
            }
        }
    )

    id: int
    name: str
    segment: str = "Unknown"
    priority: str = "Unknown"
    lastContactDate: Optional[datetime] = None
    daysSinceContact: int = Field(..., ge=0)
    urgencyScore: int = Field(..., ge=0)
    contactCount: int = Field(..., ge=0)
    accountManager: Optional[str] = None


# =============================================================================
# CSV Export
# =============================================================================


class CSVExportData(BaseModel):
    """Serialized export handed to a Download Sink."""
    data: str
    filename: str
    mimeType: str = "text/csv"


# =============================================================================
# API Envelope
# =============================================================================


class ApiResponse(BaseModel):
    success: bool
    data: Any = None
    message: str
    timestamp: datetime
    error: Optional[str] = None


# =============================================================================
# Helpers
# =============================================================================


def parse_records(model: type, rows: Optional[Sequence[Any]]) -> List[Any]:
    """
    Validate raw gateway records into ``model`` instances.

    ``None`` is treated as an empty collection; rows that are already
    instances of ``model`` pass through untouched.
    """
    return [
        row if isinstance(row, model) else model.model_validate(row)
        for row in rows or []
    ]
