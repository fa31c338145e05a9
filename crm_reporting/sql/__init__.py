"""
SQL Query Module for the CRM reporting engine.

Provides the parameterized ``getList`` query used by the asyncpg-backed
Data Access Gateway, keeping SQL text out of the gateway itself.

Example usage:
    from crm_reporting.sql import get_list_query, row_to_record

    query, args = get_list_query("organizations", ListParams())
"""

from crm_reporting.sql.list_queries import (
    get_list_query,
    row_to_record,
    to_column,
    to_field,
    RESOURCE_TABLES,
    FILTER_OPERATORS,
    TOTAL_COLUMN,
)

__all__ = [
    'get_list_query',
    'row_to_record',
    'to_column',
    'to_field',
    'RESOURCE_TABLES',
    'FILTER_OPERATORS',
    'TOTAL_COLUMN',
]
