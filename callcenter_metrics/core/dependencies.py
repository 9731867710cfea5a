"""
FastAPI dependency injection module for the call center metrics backend.

Endpoints never reach for settings, the call center table or the database
directly; they declare what they need and FastAPI provides it. Tests swap any
of these through `app.dependency_overrides`.

Key Dependencies Provided:
- get_settings_dependency / SettingsDep: the cached Settings singleton
- get_registry_dependency / RegistryDep: the Operating-Hours Registry built
  from CALL_CENTERS_FILE (or the built-in table)
- get_policy_dependency / PolicyDep: the MetricsPolicy built from settings
- get_record_source / RecordSourceDep: asyncpg-backed record source

Usage Examples:
    @router.get("/metrics")
    async def get_metrics(
        registry: RegistryDep,
        policy: PolicyDep,
        source: RecordSourceDep,
    ) -> AggregatedMetrics:
        ...

    # In tests
    app.dependency_overrides[get_record_source] = lambda: FakeRecordSource(rows)
"""

from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends

from callcenter_metrics.core.config import Settings, get_settings
from callcenter_metrics.models.schemas import MetricsPolicy
from callcenter_metrics.services.aggregation import build_policy
from callcenter_metrics.services.data_source import PostgresRecordSource, RecordSource
from callcenter_metrics.services.operating_hours import OperatingHoursRegistry, load_registry


# =============================================================================
# Settings Dependency
# =============================================================================

def get_settings_dependency() -> Settings:
    """
    Return the Settings singleton instance.

    Thin wrapper around get_settings() so tests can override it:

        app.dependency_overrides[get_settings_dependency] = lambda: test_settings
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_settings_dependency)]


# =============================================================================
# Configuration Dependencies
# =============================================================================

@lru_cache()
def _registry_for(path: Optional[str]) -> OperatingHoursRegistry:
    return load_registry(path)


def get_registry_dependency(settings: SettingsDep) -> OperatingHoursRegistry:
    """
    Return the Operating-Hours Registry for the configured call center file.

    The registry is immutable, so one instance per file path is shared by all
    requests.

    Raises:
        ConfigurationError: If configured centers collide.
        pydantic.ValidationError: If the file content is malformed.
    """
    return _registry_for(settings.call_centers_file)


def get_policy_dependency(settings: SettingsDep) -> MetricsPolicy:
    """Return the metrics policy described by the settings."""
    return build_policy(settings)


RegistryDep = Annotated[OperatingHoursRegistry, Depends(get_registry_dependency)]
PolicyDep = Annotated[MetricsPolicy, Depends(get_policy_dependency)]


# =============================================================================
# Record Source Dependency
# =============================================================================

def get_record_source(settings: SettingsDep) -> RecordSource:
    """Return a record source reading from the application connection pool."""
    return PostgresRecordSource(key_column=settings.record_key_column)


RecordSourceDep = Annotated[RecordSource, Depends(get_record_source)]
