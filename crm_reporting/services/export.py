"""
Export orchestration service.

Joins raw entity records with their related lookup objects and drives the
CSV serializer with the fixed column configuration of each export kind.

Key Components:
- ExportOrchestrator: export_organizations / export_interactions /
  export_contacts, plus load_export() for callers that stream the CSV
- enrich_organizations / enrich_interactions / enrich_contacts: pure joins
- DownloadSink / FileDownloadSink: delivery of a finished CSVExportData

Enrichment:
- organizations: priority, segment, distributor settings attached by id
- interactions: organization, contact and interaction_type setting
- contacts: organization, role setting, interaction count and last
  interaction date

Failure handling:
- A failed gateway read raises ExportError ("Failed to export <kind>")
- Errors raised by a column transform propagate unmodified
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from crm_reporting.core.config import Settings, get_settings
from crm_reporting.core.exceptions import ExportError
from crm_reporting.core.gateway import DataAccessGateway, fetch_collection
from crm_reporting.models.enums import ExportKind, Resource, SettingCategory, SortOrder
from crm_reporting.models.schemas import (
    Contact,
    CSVExportData,
    Interaction,
    Organization,
    Setting,
    parse_records,
)
from crm_reporting.services.csv_serializer import (
    CSV_COLUMN_CONFIGS,
    CSV_MIME_TYPE,
    CSVColumn,
    ProgressCallback,
    generate_csv_filename,
    serialize,
    serialize_chunked,
    with_bom,
)


logger = logging.getLogger(__name__)


# =============================================================================
# ENRICHMENT
# =============================================================================

def _lookup(settings: Sequence[Setting], category: SettingCategory) -> Dict[int, Setting]:
    return {s.id: s for s in settings if s.category == category.value}


def enrich_organizations(
    organizations: Sequence[Organization],
    settings: Sequence[Setting],
) -> List[Dict[str, Any]]:
    priorities = _lookup(settings, SettingCategory.PRIORITY)
    segments = _lookup(settings, SettingCategory.SEGMENT)
    distributors = _lookup(settings, SettingCategory.DISTRIBUTOR)

    return [
        {
            **org.model_dump(),
            "priority": priorities.get(org.priorityId),
            "segment": segments.get(org.segmentId),
            "distributor": distributors.get(org.distributorId),
        }
        for org in organizations
    ]


def enrich_interactions(
    interactions: Sequence[Interaction],
    organizations: Sequence[Organization],
    contacts: Sequence[Contact],
    settings: Sequence[Setting],
) -> List[Dict[str, Any]]:
    organizations_by_id = {org.id: org for org in organizations}
    contacts_by_id = {contact.id: contact for contact in contacts}
    types = _lookup(settings, SettingCategory.INTERACTION_TYPE)

    return [
        {
            **interaction.model_dump(),
            "organization": organizations_by_id.get(interaction.organizationId),
            "contact": contacts_by_id.get(interaction.contactId),
            "type": types.get(interaction.typeId),
        }
        for interaction in interactions
    ]


def enrich_contacts(
    contacts: Sequence[Contact],
    organizations: Sequence[Organization],
    interactions: Sequence[Interaction],
    settings: Sequence[Setting],
) -> List[Dict[str, Any]]:
    organizations_by_id = {org.id: org for org in organizations}
    roles = _lookup(settings, SettingCategory.ROLE)

    interaction_counts: Counter = Counter()
    last_interaction: Dict[int, datetime] = {}
    for interaction in interactions:
        if interaction.contactId is None:
            continue
        interaction_counts[interaction.contactId] += 1
        if interaction.createdAt is None:
            continue
        current = last_interaction.get(interaction.contactId)
        if current is None or interaction.createdAt > current:
            last_interaction[interaction.contactId] = interaction.createdAt

    enriched = []
    for contact in contacts:
        record = contact.model_dump()
        record.update({
            "organization": organizations_by_id.get(contact.organizationId),
            "role": roles.get(record.get("roleId")),
            "interactionCount": interaction_counts.get(contact.id, 0),
            "lastInteractionDate": last_interaction.get(contact.id),
        })
        enriched.append(record)
    return enriched


# =============================================================================
# ORCHESTRATOR
# =============================================================================

@dataclass
class PreparedExport:
    """Enriched records ready for serialization."""
    kind: ExportKind
    records: List[Dict[str, Any]]
    columns: List[CSVColumn]
    filename: str


class ExportOrchestrator:
    """
    Produces CSVExportData for each export kind.

    Args:
        gateway: Data Access Gateway the records are read from.
        settings: Application settings (read caps, chunk size).

    Example:
        orchestrator = ExportOrchestrator(gateway)
        export = await orchestrator.export_organizations({"segmentId": 3})
    """

    def __init__(self, gateway: DataAccessGateway, settings: Optional[Settings] = None):
        self.gateway = gateway
        self.settings = settings or get_settings()

    async def _read(
        self,
        resource: Resource,
        sort_field: str = "id",
        order: SortOrder = SortOrder.ASC,
        filters: Optional[Mapping[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        per_page = (
            self.settings.settings_page_cap
            if resource == Resource.SETTINGS
            else self.settings.list_page_cap
        )
        return await fetch_collection(
            self.gateway,
            resource.value,
            sort_field=sort_field,
            order=order,
            filters=filters,
            per_page=per_page,
        )

    async def _load_organizations(self, filters: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        organizations, settings = await asyncio.gather(
            self._read(Resource.ORGANIZATIONS, sort_field="name", filters=filters),
            self._read(Resource.SETTINGS),
        )
        return enrich_organizations(
            parse_records(Organization, organizations),
            parse_records(Setting, settings),
        )

    async def _load_interactions(self, filters: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        interactions, organizations, contacts, settings = await asyncio.gather(
            self._read(Resource.INTERACTIONS, sort_field="createdAt", order=SortOrder.DESC, filters=filters),
            self._read(Resource.ORGANIZATIONS),
            self._read(Resource.CONTACTS),
            self._read(Resource.SETTINGS),
        )
        return enrich_interactions(
            parse_records(Interaction, interactions),
            parse_records(Organization, organizations),
            parse_records(Contact, contacts),
            parse_records(Setting, settings),
        )

    async def _load_contacts(self, filters: Optional[Mapping[str, Any]]) -> List[Dict[str, Any]]:
        contacts, organizations, interactions, settings = await asyncio.gather(
            self._read(Resource.CONTACTS, sort_field="lastName", filters=filters),
            self._read(Resource.ORGANIZATIONS),
            self._read(Resource.INTERACTIONS),
            self._read(Resource.SETTINGS),
        )
        return enrich_contacts(
            parse_records(Contact, contacts),
            parse_records(Organization, organizations),
            parse_records(Interaction, interactions),
            parse_records(Setting, settings),
        )

    async def load_export(
        self,
        kind: ExportKind,
        filters: Optional[Mapping[str, Any]] = None,
        today: Optional[date] = None,
    ) -> PreparedExport:
        """
        Fetch and enrich the records of one export kind.

        Raises:
            ExportError: If any of the gateway reads fails.
        """
        loaders = {
            ExportKind.ORGANIZATIONS: self._load_organizations,
            ExportKind.INTERACTIONS: self._load_interactions,
            ExportKind.CONTACTS: self._load_contacts,
        }

        try:
            records = await loaders[kind](filters)
        except Exception as e:
            logger.exception(f"Error exporting {kind.value}: {e}")
            raise ExportError.for_resource(kind.value) from e

        logger.info(f"Loaded {len(records)} {kind.value} for export")
        return PreparedExport(
            kind=kind,
            records=records,
            columns=CSV_COLUMN_CONFIGS[kind],
            filename=generate_csv_filename(f"{kind.value}-export", today=today),
        )

    async def export(
        self,
        kind: ExportKind,
        filters: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
        today: Optional[date] = None,
    ) -> CSVExportData:
        """
        Build the CSV export of one kind.

        Inputs larger than one chunk, or any call with a progress callback,
        take the chunked path; both paths produce identical text.
        """
        prepared = await self.load_export(kind, filters, today=today)
        chunk_size = self.settings.export_chunk_size

        if on_progress is not None or len(prepared.records) > chunk_size:
            data = await serialize_chunked(
                prepared.records,
                prepared.columns,
                chunk_size=chunk_size,
                on_progress=on_progress,
            )
        else:
            data = serialize(prepared.records, prepared.columns)

        return CSVExportData(data=data, filename=prepared.filename, mimeType=CSV_MIME_TYPE)

    async def export_organizations(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CSVExportData:
        return await self.export(ExportKind.ORGANIZATIONS, filters, on_progress)

    async def export_interactions(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CSVExportData:
        return await self.export(ExportKind.INTERACTIONS, filters, on_progress)

    async def export_contacts(
        self,
        filters: Optional[Mapping[str, Any]] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> CSVExportData:
        return await self.export(ExportKind.CONTACTS, filters, on_progress)


# =============================================================================
# DOWNLOAD SINKS
# =============================================================================

class DownloadSink(ABC):
    """Delivers a finished export to its destination."""

    @abstractmethod
    async def deliver(self, export: CSVExportData) -> Any:
        """Persist or offer ``export`` to the end user."""


class FileDownloadSink(DownloadSink):
    """
    Writes exports into a directory as UTF-8 files with a byte-order mark.

    Returns the written path from ``deliver``.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    async def deliver(self, export: CSVExportData) -> Path:
        self.directory.mkdir(parents=True, exist_ok=True)
        path = self.directory / export.filename
        await asyncio.to_thread(path.write_text, with_bom(export.data), encoding="utf-8", newline="")

        logger.info(f"Wrote export {export.filename} to {self.directory}")
        return path
