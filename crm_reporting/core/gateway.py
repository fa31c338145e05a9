"""
Data Access Gateway interface and its asyncpg implementation.

The reporting services never reach into global state for their data: each one
is handed a DataAccessGateway and issues bounded ``get_list`` reads against it.
The gateway owns timeouts and storage concerns; the services own joins and
aggregation.

Key Components:
- DataAccessGateway: abstract read interface (``get_list``)
- PostgresGateway: implementation over the shared asyncpg pool
- fetch_collection(): bounded read that normalizes a missing ``data`` to []
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

import asyncpg

from crm_reporting.core.database import execute_query
from crm_reporting.core.exceptions import GatewayError
from crm_reporting.models.enums import SortOrder
from crm_reporting.models.schemas import ListParams, ListResult, Pagination, Sort
from crm_reporting.sql.list_queries import TOTAL_COLUMN, get_list_query, row_to_record


logger = logging.getLogger(__name__)


class DataAccessGateway(ABC):
    """Read-only access to the CRM entity collections."""

    @abstractmethod
    async def get_list(self, resource: str, params: ListParams) -> ListResult:
        """
        Return one page of a resource collection.

        Args:
            resource: Resource name, e.g. ``"organizations"``.
            params: Pagination, sort and filter parameters.

        Returns:
            ListResult whose ``data`` may be None when the store has nothing
            to report.
        """


class PostgresGateway(DataAccessGateway):
    """
    Data Access Gateway backed by the asyncpg connection pool.

    Driver failures are re-raised as GatewayError so callers only need to
    know about one failure type.
    """

    async def get_list(self, resource: str, params: ListParams) -> ListResult:
        query, args = get_list_query(resource, params)

        try:
            rows = await execute_query(query, *args)
        except (asyncpg.PostgresError, OSError) as e:
            logger.error(f"getList failed for {resource}: {e}")
            raise GatewayError(f"Failed to read {resource}") from e

        total = int(rows[0][TOTAL_COLUMN]) if rows else 0
        return ListResult(data=[row_to_record(row) for row in rows], total=total)


async def fetch_collection(
    gateway: DataAccessGateway,
    resource: str,
    sort_field: str = "id",
    order: SortOrder = SortOrder.ASC,
    filters: Optional[Mapping[str, Any]] = None,
    per_page: int = 10000,
) -> List[Dict[str, Any]]:
    """
    Issue a bounded first-page read and return its records.

    A missing or null ``data`` field is treated as an empty collection.
    """
    params = ListParams(
        pagination=Pagination(page=1, perPage=per_page),
        sort=Sort(field=sort_field, order=order),
        filter=dict(filters or {}),
    )
    result = await gateway.get_list(resource, params)
    return list(result.data or [])
