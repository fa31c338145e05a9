"""
Package initialization file for reporting models.

Re-exports every Pydantic schema and enumeration so other modules can import
them from ``crm_reporting.models`` directly.

Usage:
    from crm_reporting.models import (
        Organization,
        DashboardSummary,
        SettingCategory,
    )
"""

# =============================================================================
# Enums
# =============================================================================

from crm_reporting.models.enums import (
    Resource,
    SettingCategory,
    PriorityKey,
    SortOrder,
    ExportKind,
    CacheScope,
)


# =============================================================================
# Schemas
# =============================================================================

from crm_reporting.models.schemas import (
    # -------------------------------------------------------------------------
    # CRM entities
    # -------------------------------------------------------------------------
    CRMRecord,
    Setting,
    Organization,
    Contact,
    Interaction,
    Deal,

    # -------------------------------------------------------------------------
    # Gateway envelopes
    # -------------------------------------------------------------------------
    Pagination,
    Sort,
    ListParams,
    ListResult,

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------
    TrendCounts,
    DashboardSummary,
    TypeBreakdown,
    PrincipalBreakdown,
    SegmentBreakdown,
    TimelineEntry,
    InteractionMetrics,
    InteractionReportParams,
    OrganizationNeedsVisit,
    CSVExportData,
    ApiResponse,

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------
    UTCDateTime,
    ensure_utc,
    parse_records,
)


__all__ = [
    # Enums
    "Resource",
    "SettingCategory",
    "PriorityKey",
    "SortOrder",
    "ExportKind",
    "CacheScope",

    # CRM entities
    "CRMRecord",
    "Setting",
    "Organization",
    "Contact",
    "Interaction",
    "Deal",

    # Gateway envelopes
    "Pagination",
    "Sort",
    "ListParams",
    "ListResult",

    # Reports
    "TrendCounts",
    "DashboardSummary",
    "TypeBreakdown",
    "PrincipalBreakdown",
    "SegmentBreakdown",
    "TimelineEntry",
    "InteractionMetrics",
    "InteractionReportParams",
    "OrganizationNeedsVisit",
    "CSVExportData",
    "ApiResponse",

    # Helpers
    "UTCDateTime",
    "ensure_utc",
    "parse_records",
]
