"""
Response envelope helpers shared by the API routers.

Success:  {"success": true,  "data": ..., "message": ..., "timestamp": ...}
Failure:  {"success": false, "data": null, "message": "Request failed",
           "error": ..., "timestamp": ...}
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from crm_reporting.core.exceptions import ReportingError
from crm_reporting.models.schemas import ApiResponse


logger = logging.getLogger(__name__)


def format_api_response(data: Any, message: Optional[str] = None) -> ApiResponse:
    return ApiResponse(
        success=True,
        data=data,
        message=message or "Request successful",
        timestamp=datetime.now(timezone.utc),
    )


def handle_api_error(error: Exception) -> ApiResponse:
    """
    Build the failure envelope for ``error``.

    Domain errors expose their fixed message; anything else falls back to
    its string form.
    """
    logger.error(f"API error: {error}")

    if isinstance(error, ReportingError):
        detail = error.message
    else:
        detail = str(error) or "Unknown error occurred"

    return ApiResponse(
        success=False,
        data=None,
        message="Request failed",
        error=detail,
        timestamp=datetime.now(timezone.utc),
    )
