"""
Core infrastructure package for the CRM reporting engine.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- The Data Access Gateway interface and its asyncpg implementation
- The domain error taxonomy

FastAPI dependency providers live in ``crm_reporting.core.dependencies`` and
are imported from there directly, since they wire in the service layer.

Usage Examples:
    from crm_reporting.core import get_settings, PostgresGateway

    settings = get_settings()
    gateway = PostgresGateway()
"""

# =============================================================================
# Re-exports from crm_reporting.core.config
# =============================================================================
from crm_reporting.core.config import Settings, get_settings

# =============================================================================
# Re-exports from crm_reporting.core.database
# =============================================================================
from crm_reporting.core.database import init_db, close_db, get_db_pool

# =============================================================================
# Re-exports from crm_reporting.core.exceptions
# =============================================================================
from crm_reporting.core.exceptions import (
    GatewayError,
    ReportingError,
    DashboardReportError,
    InteractionReportError,
    NeedsVisitReportError,
    ExportError,
)

# =============================================================================
# Re-exports from crm_reporting.core.gateway
# =============================================================================
from crm_reporting.core.gateway import (
    DataAccessGateway,
    PostgresGateway,
    fetch_collection,
)

__all__ = [
    # Configuration management
    'Settings',
    'get_settings',
    # Database pool lifecycle
    'init_db',
    'close_db',
    'get_db_pool',
    # Errors
    'GatewayError',
    'ReportingError',
    'DashboardReportError',
    'InteractionReportError',
    'NeedsVisitReportError',
    'ExportError',
    # Gateway
    'DataAccessGateway',
    'PostgresGateway',
    'fetch_collection',
]
