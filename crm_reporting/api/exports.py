"""
FastAPI router module for CSV export endpoints.

Key Endpoints:
- GET /exports/organizations
- GET /exports/interactions
- GET /exports/contacts

Query parameters:
- filters: JSON object of gateway filters, e.g. ``{"segmentId": 3}``
- stream: when true, the CSV is produced by the chunked serializer and sent
  as a streaming response instead of being built (and cached) in one piece
- force: bypass the report cache on the non-streaming path

The body is UTF-8 CSV prefixed with a byte-order mark and served as an
attachment named ``<kind>-export-<YYYY-MM-DD>.csv``.
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.responses import Response, StreamingResponse

from crm_reporting.api.responses import handle_api_error
from crm_reporting.core.dependencies import ReportingServiceDep, SettingsDep
from crm_reporting.core.exceptions import ReportingError
from crm_reporting.models.enums import ExportKind
from crm_reporting.services.csv_serializer import UTF8_BOM, iter_csv_chunks, with_bom


logger = logging.getLogger(__name__)

router = APIRouter()

CSV_MEDIA_TYPE = "text/csv; charset=utf-8"


def _parse_filters(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        filters = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning(f"Export rejected: malformed filters {raw!r}")
        raise HTTPException(status_code=400, detail="filters must be a JSON object")
    if not isinstance(filters, dict):
        raise HTTPException(status_code=400, detail="filters must be a JSON object")
    return filters


def _attachment(filename: str) -> Dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.get("/{kind}")
async def export_csv(
    kind: ExportKind,
    service: ReportingServiceDep,
    settings: SettingsDep,
    filters: Optional[str] = Query(None, description="JSON object of gateway filters"),
    stream: bool = Query(False, description="Stream the CSV in chunks"),
    force: bool = Query(False, description="Bypass the report cache"),
) -> Response:
    """
    Export one entity kind as a CSV attachment.

    Raises:
        HTTPException 400: If ``filters`` is not a JSON object.
        HTTPException 500: If the export data cannot be fetched.
    """
    parsed = _parse_filters(filters)

    try:
        if stream:
            prepared = await service.prepare_export(kind, parsed)
        else:
            export = await service.export(kind, parsed, force=force)
    except ReportingError as e:
        raise HTTPException(
            status_code=500,
            detail=handle_api_error(e).model_dump(mode="json"),
        ) from e

    if not stream:
        logger.info(f"Exported {kind.value} as {export.filename}")
        return Response(
            content=with_bom(export.data),
            media_type=CSV_MEDIA_TYPE,
            headers=_attachment(export.filename),
        )

    async def body() -> AsyncIterator[str]:
        yield UTF8_BOM
        async for piece in iter_csv_chunks(
            prepared.records,
            prepared.columns,
            chunk_size=settings.export_chunk_size,
        ):
            yield piece

    logger.info(f"Streaming {len(prepared.records)} {kind.value} as {prepared.filename}")
    return StreamingResponse(
        body(),
        media_type=CSV_MEDIA_TYPE,
        headers=_attachment(prepared.filename),
    )
