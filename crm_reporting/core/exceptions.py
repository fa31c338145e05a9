"""
Domain error taxonomy for the reporting engine.

Every public report/export operation catches gateway failures at its own
boundary and re-raises one of the ReportingError subclasses below with a
fixed, human-readable message. The original failure stays reachable through
``__cause__`` for diagnostics.
"""

from typing import Optional


class GatewayError(Exception):
    """Raised by a Data Access Gateway when a read cannot be served."""


class ReportingError(Exception):
    """Base class for caller-facing report and export failures."""

    default_message = "Reporting operation failed"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class DashboardReportError(ReportingError):
    default_message = "Failed to generate dashboard report"


class InteractionReportError(ReportingError):
    default_message = "Failed to generate interaction report"


class NeedsVisitReportError(ReportingError):
    default_message = "Failed to find organizations needing visits"


class ExportError(ReportingError):
    """Raised when the data for a CSV export cannot be fetched."""

    default_message = "Failed to export data"

    @classmethod
    def for_resource(cls, resource: str) -> "ExportError":
        return cls(f"Failed to export {resource}")
