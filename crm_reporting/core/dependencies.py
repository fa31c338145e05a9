"""
FastAPI dependency injection module for the CRM reporting engine.

Endpoint handlers never construct gateways or caches themselves: they declare
the dependencies below and FastAPI resolves them per request. Tests replace
any of them through ``app.dependency_overrides``.

Key Dependencies Provided:
- get_settings_dependency: Returns the cached Settings singleton
- get_gateway: Returns the process-wide asyncpg-backed Data Access Gateway
- get_report_cache: Returns the process-wide ReportCache
- get_reporting_service: Builds a ReportingService from the three above
- SettingsDep / GatewayDep / ReportingServiceDep: Annotated type aliases

Usage Examples:
    @router.get("/dashboard")
    async def dashboard(service: ReportingServiceDep) -> DashboardSummary:
        return await service.dashboard()

    # In tests
    app.dependency_overrides[get_gateway] = lambda: mock_gateway
"""

from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.gateway import DataAccessGateway, PostgresGateway
from crm_reporting.services.report_cache import ReportCache
from crm_reporting.services.reporting import ReportingService


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so that tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


# =============================================================================
# Gateway & Cache Dependencies
# =============================================================================

@lru_cache()
def get_gateway() -> DataAccessGateway:
    """Return the shared PostgresGateway (uses the pool opened at startup)."""
    return PostgresGateway()


@lru_cache()
def get_report_cache() -> ReportCache:
    """Return the shared ReportCache sized from settings."""
    return ReportCache(max_entries=get_settings().cache_max_entries)


def get_reporting_service(
    gateway: Annotated[DataAccessGateway, Depends(get_gateway)],
    cache: Annotated[ReportCache, Depends(get_report_cache)],
    settings: Annotated[Settings, Depends(get_settings_dependency)],
) -> ReportingService:
    return ReportingService(gateway, cache=cache, settings=settings)


# =============================================================================
# Type Aliases for Dependency Injection
# =============================================================================

# Usage: async def endpoint(settings: SettingsDep)
SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]

# Usage: async def endpoint(gateway: GatewayDep)
GatewayDep = Annotated[DataAccessGateway, Depends(get_gateway)]

# Usage: async def endpoint(service: ReportingServiceDep)
ReportingServiceDep = Annotated[ReportingService, Depends(get_reporting_service)]
