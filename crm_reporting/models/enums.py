"""
Enumeration definitions for the CRM reporting engine.

All enums inherit from both `str` and `Enum` so they serialize transparently in
Pydantic models and compare equal to the raw strings stored by the record store.
"""

from enum import Enum


class Resource(str, Enum):
    """
    Entity collections served by the Data Access Gateway.

    The value is the resource name passed to ``getList``.
    """
    ORGANIZATIONS = "organizations"
    CONTACTS = "contacts"
    INTERACTIONS = "interactions"
    DEALS = "deals"
    SETTINGS = "settings"


class SettingCategory(str, Enum):
    """
    Categories of the generic settings lookup table.

    Organizations reference priority/segment/distributor settings by id,
    interactions reference interaction_type, deals may reference a principal.
    """
    PRIORITY = "priority"
    SEGMENT = "segment"
    DISTRIBUTOR = "distributor"
    INTERACTION_TYPE = "interaction_type"
    PRINCIPAL = "principal"
    STAGE = "stage"
    ROLE = "role"


class PriorityKey(str, Enum):
    """
    Priority setting keys that carry an urgency bonus.

    - high: +50 urgency
    - medium: +25 urgency
    - low: no bonus
    """
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class SortOrder(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class ExportKind(str, Enum):
    """
    Entity kinds with a fixed CSV column configuration.

    The value doubles as the filename base: ``<value>-export-<YYYY-MM-DD>.csv``.
    """
    ORGANIZATIONS = "organizations"
    CONTACTS = "contacts"
    INTERACTIONS = "interactions"


class CacheScope(str, Enum):
    """Invalidation scopes for the report cache."""
    ALL = "all"
    DASHBOARD = "dashboard"
    INTERACTIONS = "interactions"
    ORGANIZATIONS = "organizations"
