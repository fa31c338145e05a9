"""
Reporting Services Module

This module contains the business logic of the CRM reporting engine. Report
computations are pure functions over already-fetched collections; each has a
thin async entry point that fans out gateway reads and converts failures into
the matching domain error.

Services:
- csv_serializer: CSV text encoding, chunked variant, column configurations
- metrics: Dashboard summary (counts, pipeline, conversion, trends)
- interaction_analytics: Type/principal/segment breakdowns and 30-day timeline
- needs_visit: Visit urgency scoring and ranking
- export: Enrichment + CSV export orchestration, Download Sinks
- report_cache: TTL memoization of report producers
- duplicate_check: Latest-request-wins organization name check
- reporting: Facade wiring gateway + cache for the API layer

All services are designed to be consumed by the API layer (crm_reporting/api/).
"""

# =============================================================================
# CSV Serializer Exports
# =============================================================================

from crm_reporting.services.csv_serializer import (
    CSVColumn,
    serialize,
    serialize_chunked,
    iter_csv_chunks,
    escape_csv_field,
    generate_csv_filename,
    with_bom,
    CSV_COLUMN_CONFIGS,
    ORGANIZATION_COLUMNS,
    CONTACT_COLUMNS,
    INTERACTION_COLUMNS,
)

# =============================================================================
# Report Computation Exports
# =============================================================================

from crm_reporting.services.metrics import (
    compute_dashboard_summary,
    generate_dashboard_report,
    calculate_conversion_rate,
    WON_DEAL_STAGES,
)

from crm_reporting.services.interaction_analytics import (
    compute_interaction_metrics,
    generate_interaction_report,
    filter_interactions,
    build_timeline,
    TIMELINE_DAYS,
)

from crm_reporting.services.needs_visit import (
    compute_needs_visit,
    find_organizations_needing_visit,
    calculate_urgency_score,
    UrgencyWeights,
)

# =============================================================================
# Export, Cache & Facade Exports
# =============================================================================

from crm_reporting.services.export import (
    ExportOrchestrator,
    PreparedExport,
    DownloadSink,
    FileDownloadSink,
)

from crm_reporting.services.report_cache import (
    ReportCache,
    CacheKeys,
    CacheTTL,
    invalidate_reporting_cache,
)

from crm_reporting.services.duplicate_check import DuplicateNameChecker

from crm_reporting.services.reporting import ReportingService


__all__ = [
    # CSV serializer
    "CSVColumn",
    "serialize",
    "serialize_chunked",
    "iter_csv_chunks",
    "escape_csv_field",
    "generate_csv_filename",
    "with_bom",
    "CSV_COLUMN_CONFIGS",
    "ORGANIZATION_COLUMNS",
    "CONTACT_COLUMNS",
    "INTERACTION_COLUMNS",
    # Metrics
    "compute_dashboard_summary",
    "generate_dashboard_report",
    "calculate_conversion_rate",
    "WON_DEAL_STAGES",
    # Interaction analytics
    "compute_interaction_metrics",
    "generate_interaction_report",
    "filter_interactions",
    "build_timeline",
    "TIMELINE_DAYS",
    # Needs-visit
    "compute_needs_visit",
    "find_organizations_needing_visit",
    "calculate_urgency_score",
    "UrgencyWeights",
    # Export
    "ExportOrchestrator",
    "PreparedExport",
    "DownloadSink",
    "FileDownloadSink",
    # Cache
    "ReportCache",
    "CacheKeys",
    "CacheTTL",
    "invalidate_reporting_cache",
    # Duplicate check
    "DuplicateNameChecker",
    # Facade
    "ReportingService",
]
