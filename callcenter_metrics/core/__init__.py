"""
Core infrastructure package for the FastAPI backend.

Provides:
- Configuration management via pydantic-settings
- Async PostgreSQL connectivity via asyncpg
- FastAPI dependency injection utilities (core.dependencies)

Configuration and pool lifecycle are re-exported here:

    from callcenter_metrics.core import get_settings, init_db, close_db

FastAPI dependencies are imported from core.dependencies directly; they build
on the services layer, which itself imports core.config.
"""

# =============================================================================
# Re-exports from callcenter_metrics.core.config
# =============================================================================
from callcenter_metrics.core.config import Settings, get_settings

# =============================================================================
# Re-exports from callcenter_metrics.core.database
# =============================================================================
from callcenter_metrics.core.database import init_db, close_db, get_db_pool, execute_query

__all__ = [
    # Configuration management (from config.py)
    'Settings',
    'get_settings',
    # Database pool lifecycle (from database.py)
    'init_db',
    'close_db',
    'get_db_pool',
    'execute_query',
]
