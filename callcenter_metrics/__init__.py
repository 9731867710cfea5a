"""
Call Center Metrics Backend Package.

Computes lead recovery metrics per call center from raw lead and call
records: how many in-hours leads reached a live call, how many after-hours
leads were recovered by a callback, and how many were missed.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, database, and dependencies
    - models: Pydantic schemas and enums
    - services: Business logic services
    - sql: Parameterized SQL queries
"""

__version__ = "1.0.0"
