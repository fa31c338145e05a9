"""
Pytest Configuration and Shared Fixtures for the CRM Reporting Engine Tests.

This module provides:
- A fixed reference time (``NOW``) so that time-window tests are deterministic
- Sample settings, organizations, contacts, interactions and deals
- A mock Data Access Gateway whose ``get_list`` dispatches by resource name
- A failing gateway for error-wrapping tests
- Test Settings with small, explicit values

Async tests run under pytest-asyncio (``asyncio_mode = "auto"``).
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Mapping, Optional
from unittest.mock import AsyncMock

import pytest

from crm_reporting.core.config import Settings
from crm_reporting.core.exceptions import GatewayError
from crm_reporting.models.schemas import ListParams, ListResult


# ============================================================
# CONSTANTS
# ============================================================

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)


def days_ago(days: float, now: datetime = NOW) -> datetime:
    return now - timedelta(days=days)


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """Register custom markers."""
    config.addinivalue_line(
        'markers',
        'slow: marks tests as slow (deselect with -m "not slow")'
    )


# ============================================================
# GATEWAY HELPERS
# ============================================================

def make_gateway(collections: Mapping[str, Optional[List[Dict[str, Any]]]]) -> AsyncMock:
    """
    Build a mock Data Access Gateway serving ``collections`` by resource.

    Resources missing from ``collections`` answer with ``data=None`` so that
    callers exercise their empty-collection normalization.
    """
    gateway = AsyncMock()

    async def get_list(resource: str, params: ListParams) -> ListResult:
        data = collections.get(resource)
        return ListResult(data=data, total=len(data or []))

    gateway.get_list = AsyncMock(side_effect=get_list)
    return gateway


def make_failing_gateway(failing_resource: Optional[str] = None) -> AsyncMock:
    """Gateway whose reads fail (all of them, or only ``failing_resource``)."""
    gateway = AsyncMock()

    async def get_list(resource: str, params: ListParams) -> ListResult:
        if failing_resource is None or resource == failing_resource:
            raise GatewayError(f"connection reset while reading {resource}")
        return ListResult(data=[], total=0)

    gateway.get_list = AsyncMock(side_effect=get_list)
    return gateway


# ============================================================
# SETTINGS FIXTURES
# ============================================================

@pytest.fixture
def test_settings() -> Settings:
    """Settings isolated from the environment and any .env file."""
    return Settings(_env_file=None, database_url=None, export_chunk_size=1000)


# ============================================================
# SAMPLE DATA FIXTURES
# ============================================================

@pytest.fixture
def sample_settings() -> List[Dict[str, Any]]:
    return [
        {"id": 1, "category": "priority", "key": "high", "label": "High Priority"},
        {"id": 2, "category": "priority", "key": "medium", "label": "Medium Priority"},
        {"id": 3, "category": "priority", "key": "low", "label": "Low Priority"},
        {"id": 10, "category": "segment", "key": "fine_dining", "label": "Fine Dining"},
        {"id": 11, "category": "segment", "key": "casual", "label": "Casual Dining"},
        {"id": 20, "category": "distributor", "key": "sysco", "label": "Sysco"},
        {"id": 30, "category": "interaction_type", "key": "visit", "label": "Visit"},
        {"id": 31, "category": "interaction_type", "key": "call", "label": "Call"},
        {"id": 32, "category": "interaction_type", "key": "email", "label": "Email"},
        {"id": 40, "category": "principal", "key": "acme", "label": "Acme Foods"},
        {"id": 41, "category": "principal", "key": "globex", "label": "Globex"},
        {"id": 50, "category": "role", "key": "chef", "label": "Chef"},
    ]


@pytest.fixture
def sample_organizations() -> List[Dict[str, Any]]:
    return [
        {
            "id": 1,
            "name": "Bistro Central",
            "priorityId": 1,
            "segmentId": 10,
            "distributorId": 20,
            "city": "Springfield",
            "accountManager": "jane@example.com",
            "createdAt": "2025-03-01T10:00:00Z",
        },
        {
            "id": 2,
            "name": "Corner Cafe",
            "priorityId": 2,
            "segmentId": 11,
            "accountManager": "sam@example.com",
            "createdAt": "2025-04-01T10:00:00Z",
        },
        {
            "id": 3,
            "name": "Harbor Grill",
            "priorityId": 3,
            "segmentId": 10,
            "createdAt": "2025-05-01T10:00:00Z",
        },
        {
            "id": 4,
            "name": "New Place",
            "priorityId": None,
            "segmentId": None,
            "createdAt": "2026-10-01T10:00:00Z",
        },
    ]


@pytest.fixture
def sample_contacts() -> List[Dict[str, Any]]:
    return [
        {"id": 100, "organizationId": 1, "firstName": "Ann", "lastName": "Lee", "isPrimary": True, "roleId": 50},
        {"id": 101, "organizationId": 1, "firstName": "Bob", "lastName": "Ray"},
        {"id": 102, "organizationId": 2, "firstName": "Cy", "lastName": "Doe"},
    ]


@pytest.fixture
def sample_interactions() -> List[Dict[str, Any]]:
    return [
        # Bistro Central: last contact 45 days ago
        {"id": 1000, "organizationId": 1, "contactId": 100, "typeId": 30,
         "createdAt": days_ago(45), "isCompleted": True},
        {"id": 1001, "organizationId": 1, "contactId": 101, "typeId": 31,
         "createdAt": days_ago(90), "isCompleted": False},
        # Corner Cafe: contacted 2 days ago
        {"id": 1002, "organizationId": 2, "contactId": 102, "typeId": 31,
         "createdAt": days_ago(2), "isCompleted": True},
        {"id": 1003, "organizationId": 2, "typeId": 32,
         "createdAt": days_ago(0.5), "isCompleted": False},
        # Harbor Grill: last contact exactly 30 days ago
        {"id": 1004, "organizationId": 3, "typeId": 30,
         "createdAt": days_ago(30), "isCompleted": True},
        # New Place: never contacted
    ]


@pytest.fixture
def sample_deals() -> List[Dict[str, Any]]:
    return [
        {"id": 500, "organizationId": 1, "principalId": 40, "amount": 1000, "stage": "won"},
        {"id": 501, "organizationId": 1, "principalId": 40, "amount": 3000, "stage": "proposal"},
        {"id": 502, "organizationId": 2, "principalId": 41, "amount": 500, "stage": "closed-won"},
        {"id": 503, "organizationId": 3, "principalId": None, "amount": None, "stage": "Won"},
    ]


@pytest.fixture
def sample_collections(
    sample_settings,
    sample_organizations,
    sample_contacts,
    sample_interactions,
    sample_deals,
) -> Dict[str, List[Dict[str, Any]]]:
    return {
        "settings": sample_settings,
        "organizations": sample_organizations,
        "contacts": sample_contacts,
        "interactions": sample_interactions,
        "deals": sample_deals,
    }


@pytest.fixture
def mock_gateway(sample_collections) -> AsyncMock:
    """Mock gateway serving the sample collections."""
    return make_gateway(sample_collections)
