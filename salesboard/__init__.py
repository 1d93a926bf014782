"""
Sales Conversion Dashboard Backend Package.

FastAPI service layer for the per-branch sales conversion dashboard. Pulls the
branch transaction logs from Google Sheets, rebuilds each customer's visit
history and computes the P2 -> P1 / UP P2 conversion funnel with revenue and a
pending follow-up list.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Funnel engine, sheet source and notes store
    - sql: Parameterized SQL for the notes store
"""

__version__ = "1.0.0"
