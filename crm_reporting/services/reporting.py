"""
Reporting facade.

Wires one Data Access Gateway and one ReportCache into the report and
export operations so that the API layer receives a single injected object.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.gateway import DataAccessGateway
from crm_reporting.models.enums import CacheScope, ExportKind
from crm_reporting.models.schemas import (
    CSVExportData,
    DashboardSummary,
    InteractionMetrics,
    InteractionReportParams,
    OrganizationNeedsVisit,
)
from crm_reporting.services.csv_serializer import ProgressCallback
from crm_reporting.services.export import ExportOrchestrator, PreparedExport
from crm_reporting.services.interaction_analytics import generate_interaction_report
from crm_reporting.services.metrics import generate_dashboard_report
from crm_reporting.services.needs_visit import find_organizations_needing_visit
from crm_reporting.services.report_cache import (
    CacheKeys,
    CacheTTL,
    ReportCache,
    invalidate_reporting_cache,
)


class ReportingService:
    """
    Report and export operations over an injected gateway.

    When ``cache`` is None every call goes straight to the gateway.

    Example:
        service = ReportingService(PostgresGateway(), ReportCache())
        summary = await service.dashboard()
    """

    def __init__(
        self,
        gateway: DataAccessGateway,
        cache: Optional[ReportCache] = None,
        settings: Optional[Settings] = None,
    ):
        self.gateway = gateway
        self.cache = cache
        self.settings = settings or get_settings()
        self.ttl = CacheTTL.from_settings(self.settings)
        self.exporter = ExportOrchestrator(gateway, self.settings)

    async def _cached(self, key: str, producer, ttl: float, force: bool) -> Any:
        if self.cache is None:
            return await producer()
        return await self.cache.fetch(key, producer, ttl, force=force)

    async def dashboard(self, force: bool = False, now: Optional[datetime] = None) -> DashboardSummary:
        return await self._cached(
            CacheKeys.dashboard(),
            lambda: generate_dashboard_report(self.gateway, self.settings, now=now),
            self.ttl.dashboard,
            force,
        )

    async def interactions(
        self,
        params: Optional[InteractionReportParams] = None,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> InteractionMetrics:
        params = params or InteractionReportParams()
        return await self._cached(
            CacheKeys.interactions(params.model_dump(exclude_none=True)),
            lambda: generate_interaction_report(self.gateway, params, self.settings, now=now),
            self.ttl.interactions,
            force,
        )

    async def organizations_needing_visit(
        self,
        force: bool = False,
        now: Optional[datetime] = None,
    ) -> List[OrganizationNeedsVisit]:
        return await self._cached(
            CacheKeys.needs_visit(),
            lambda: find_organizations_needing_visit(self.gateway, self.settings, now=now),
            self.ttl.needs_visit,
            force,
        )

    async def export(
        self,
        kind: ExportKind,
        filters: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        force: bool = False,
    ) -> CSVExportData:
        # Progress callbacks only fire on a real serialization
        if on_progress is not None:
            force = True
        return await self._cached(
            CacheKeys.export(kind, filters),
            lambda: self.exporter.export(kind, filters, on_progress),
            self.ttl.export,
            force,
        )

    async def export_organizations(self, filters=None, on_progress=None, force: bool = False) -> CSVExportData:
        return await self.export(ExportKind.ORGANIZATIONS, filters, on_progress, force)

    async def export_interactions(self, filters=None, on_progress=None, force: bool = False) -> CSVExportData:
        return await self.export(ExportKind.INTERACTIONS, filters, on_progress, force)

    async def export_contacts(self, filters=None, on_progress=None, force: bool = False) -> CSVExportData:
        return await self.export(ExportKind.CONTACTS, filters, on_progress, force)

    async def prepare_export(
        self,
        kind: ExportKind,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> PreparedExport:
        """Fetch and enrich export records without serializing them (for streaming)."""
        return await self.exporter.load_export(kind, filters)

    def invalidate(self, scope: CacheScope = CacheScope.ALL) -> None:
        if self.cache is not None:
            invalidate_reporting_cache(self.cache, scope)
