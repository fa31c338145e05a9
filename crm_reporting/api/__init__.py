"""
API package initialization.

This package contains FastAPI router modules for the CRM reporting engine:
- reports: Dashboard summary, interaction analytics, needs-visit ranking
- exports: CSV exports of organizations, interactions and contacts
- responses: Success/failure response envelope helpers
"""

from fastapi import APIRouter

from crm_reporting.api.reports import router as reports_router
from crm_reporting.api.exports import router as exports_router
from crm_reporting.api.responses import format_api_response, handle_api_error

# Create main API router
api_router = APIRouter()

api_router.include_router(reports_router, prefix="/reports", tags=["reports"])
api_router.include_router(exports_router, prefix="/exports", tags=["exports"])

__all__ = [
    "api_router",
    "reports_router",
    "exports_router",
    "format_api_response",
    "handle_api_error",
]
