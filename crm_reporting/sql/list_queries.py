"""
List Queries Module for the CRM reporting engine.

Provides parameterized PostgreSQL queries implementing the gateway ``getList``
contract (pagination, single-field sort, filter mapping) over the CRM entity
tables.

Field names arrive in camelCase (as used by the records and the report
services) and are translated to snake_case column names. Every identifier is
validated against a strict pattern before it is interpolated; values are
always passed as $n parameters.

Supported filter forms:
    {"segmentId": 3}                  -> segment_id = $1
    {"stage": None}                   -> stage IS NULL
    {"name": {"ilike": "%bistro%"}}   -> name ILIKE $1
    {"id": {"neq": 5}}                -> id <> $1
    {"createdAt": {"gte": dt}}        -> created_at >= $1
    {"typeId": {"in": [1, 2]}}        -> type_id = ANY($1)
"""

import re
from typing import Any, Dict, List, Mapping, Tuple

from crm_reporting.core.exceptions import GatewayError
from crm_reporting.models.enums import Resource, SortOrder
from crm_reporting.models.schemas import ListParams


# =============================================================================
# CONSTANTS
# =============================================================================

RESOURCE_TABLES: Dict[str, str] = {
    Resource.ORGANIZATIONS.value: "organizations",
    Resource.CONTACTS.value: "contacts",
    Resource.INTERACTIONS.value: "interactions",
    Resource.DEALS.value: "deals",
    Resource.SETTINGS.value: "settings",
}

FILTER_OPERATORS: Dict[str, str] = {
    "eq": "=",
    "neq": "<>",
    "ilike": "ILIKE",
    "gte": ">=",
    "lte": "<=",
    "gt": ">",
    "lt": "<",
}

# Window column carrying the unpaginated match count
TOTAL_COLUMN: str = "_total_count"

_IDENTIFIER = re.compile(r"^[a-z_][a-z0-9_]*$")
_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


# =============================================================================
# NAME MAPPING
# =============================================================================

def to_column(field: str) -> str:
    """
    Translate a camelCase field name into a validated snake_case column.

    Raises:
        GatewayError: If the result is not a plain SQL identifier.
    """
    column = _CAMEL_BOUNDARY.sub("_", field).lower()
    if not _IDENTIFIER.match(column):
        raise GatewayError(f"Invalid field name: {field!r}")
    return column


def to_field(column: str) -> str:
    """Translate a snake_case column name back into a camelCase field."""
    head, *rest = column.split("_")
    return head + "".join(part.capitalize() for part in rest)


def row_to_record(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Convert a database row into a camelCase record, dropping the total column."""
    return {
        to_field(column): value
        for column, value in row.items()
        if column != TOTAL_COLUMN
    }


# =============================================================================
# LIST QUERY
# =============================================================================

def _build_where(filters: Mapping[str, Any]) -> Tuple[str, List[Any]]:
    clauses: List[str] = []
    args: List[Any] = []

    for field, condition in filters.items():
        column = to_column(field)

        if isinstance(condition, Mapping):
            for op, value in condition.items():
                if op == "in":
                    args.append(list(value))
                    clauses.append(f"{column} = ANY(${len(args)})")
                elif op in FILTER_OPERATORS:
                    args.append(value)
                    clauses.append(f"{column} {FILTER_OPERATORS[op]} ${len(args)}")
                else:
                    raise GatewayError(f"Unsupported filter operator: {op!r}")
        elif condition is None:
            clauses.append(f"{column} IS NULL")
        else:
            args.append(condition)
            clauses.append(f"{column} = ${len(args)}")

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    return where, args


def get_list_query(resource: str, params: ListParams) -> Tuple[str, List[Any]]:
    """
    Generate the SQL query and arguments for a gateway ``getList`` read.

    Args:
        resource: Resource name (organizations, contacts, interactions, deals, settings).
        params: Pagination, sort and filter parameters.

    Returns:
        Tuple of (query, args). Each row carries the total match count in
        the ``_total_count`` column.

    Raises:
        GatewayError: For unknown resources, invalid field names or
            unsupported filter operators.
    """
    table = RESOURCE_TABLES.get(resource)
    if table is None:
        raise GatewayError(f"Unknown resource: {resource!r}")

    where, args = _build_where(params.filter)

    sort_column = to_column(params.sort.field)
    direction = "DESC" if params.sort.order == SortOrder.DESC else "ASC"

    per_page = params.pagination.perPage
    offset = (params.pagination.page - 1) * per_page
    args.extend([per_page, offset])

    query = f"""
        SELECT
            *,
            COUNT(*) OVER() AS {TOTAL_COLUMN}
        FROM {table}
        {where}
        ORDER BY {sort_column} {direction}, id ASC
        LIMIT ${len(args) - 1} OFFSET ${len(args)}
    """
    return query, args
