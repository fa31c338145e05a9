"""
FastAPI router module for report endpoints.

Key Endpoints:
- GET /reports/dashboard: Dashboard summary (counts, pipeline, conversion, trends)
- GET /reports/interactions: Interaction analytics, filterable by date range,
  organization, interaction type and contact
- GET /reports/organizations/needs-visit: Organizations ranked by visit urgency

Every endpoint answers with the standard response envelope. Reports are served
through the report cache; ``force=true`` recomputes them.

Dependencies:
- crm_reporting/core/dependencies.py: ReportingServiceDep
- crm_reporting/services/reporting.py: ReportingService facade
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, HTTPException, Query

from crm_reporting.api.responses import format_api_response, handle_api_error
from crm_reporting.core.dependencies import ReportingServiceDep
from crm_reporting.core.exceptions import ReportingError
from crm_reporting.models.schemas import ApiResponse, InteractionReportParams


logger = logging.getLogger(__name__)

router = APIRouter()


def _failure(error: ReportingError) -> HTTPException:
    return HTTPException(
        status_code=500,
        detail=handle_api_error(error).model_dump(mode="json"),
    )


# =============================================================================
# GET /reports/dashboard
# =============================================================================

@router.get("/dashboard", response_model=ApiResponse)
async def get_dashboard_report(
    service: ReportingServiceDep,
    force: bool = Query(False, description="Bypass the report cache"),
) -> ApiResponse:
    """
    Get the dashboard summary.

    Example Response:
        {
            "success": true,
            "data": {
                "totalInteractions": 120,
                "totalOrganizations": 40,
                "totalContacts": 85,
                "totalOpportunities": 12,
                "pipelineValue": 154000.0,
                "conversionRate": 25.0,
                "trends": {"daily": 3, "weekly": 17, "monthly": 61}
            },
            "message": "Dashboard report generated",
            "timestamp": "2026-10-18T09:00:00Z"
        }
    """
    try:
        summary = await service.dashboard(force=force)
    except ReportingError as e:
        raise _failure(e) from e

    return format_api_response(summary, "Dashboard report generated")


# =============================================================================
# GET /reports/interactions
# =============================================================================

@router.get("/interactions", response_model=ApiResponse)
async def get_interaction_report(
    service: ReportingServiceDep,
    start_date: Optional[datetime] = Query(None, description="Inclusive lower bound on createdAt"),
    end_date: Optional[datetime] = Query(None, description="Inclusive upper bound on createdAt"),
    organizationId: Optional[int] = Query(None),
    typeId: Optional[int] = Query(None),
    contactId: Optional[int] = Query(None),
    force: bool = Query(False, description="Bypass the report cache"),
) -> ApiResponse:
    """Get interaction analytics for the requested window and filters."""
    params = InteractionReportParams(
        start_date=start_date,
        end_date=end_date,
        organizationId=organizationId,
        typeId=typeId,
        contactId=contactId,
    )

    try:
        metrics = await service.interactions(params, force=force)
    except ReportingError as e:
        raise _failure(e) from e

    return format_api_response(metrics, "Interaction report generated")


# =============================================================================
# GET /reports/organizations/needs-visit
# =============================================================================

@router.get("/organizations/needs-visit", response_model=ApiResponse)
async def get_organizations_needing_visit(
    service: ReportingServiceDep,
    force: bool = Query(False, description="Bypass the report cache"),
) -> ApiResponse:
    """Get organizations not contacted for 30+ days, most urgent first."""
    try:
        organizations = await service.organizations_needing_visit(force=force)
    except ReportingError as e:
        raise _failure(e) from e

    return format_api_response(
        organizations,
        f"{len(organizations)} organizations need a visit",
    )
