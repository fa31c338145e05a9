"""
CRM Reporting Engine.

Reporting and export layer over CRM data (organizations, contacts,
interactions, deals and configurable settings). Computes dashboard metrics,
interaction analytics and visit urgency rankings, and produces CSV exports.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database pool, Data Access Gateway, dependencies
    - models: Pydantic schemas and enums
    - services: Report computation, export, caching and duplicate checks
    - sql: Parameterized list queries
"""

__version__ = "1.0.0"
