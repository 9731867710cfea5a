"""
FastAPI router module for call center metrics.

Implements GET /metrics (lead recovery metrics for a date range),
GET /metrics/call-centers (configured centers with their hours) and
GET /metrics/daily-breakdown (trailing-days diagnostics).

Every request drains the lead and call tables for its range before computing;
nothing is cached between requests.

Error mapping:
- end_date before start_date, or days < 1: 400
- record store read failure (SourceFetchError): 502
- anything else: 500, logged with traceback
"""

import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query

from callcenter_metrics.core.dependencies import (
    PolicyDep,
    RecordSourceDep,
    RegistryDep,
    SettingsDep,
)
from callcenter_metrics.models.schemas import (
    AggregatedMetrics,
    CallCenterSummary,
    DailyBreakdown,
)
from callcenter_metrics.services.aggregation import compute_metrics, filter_metrics
from callcenter_metrics.services.daily_breakdown import (
    breakdown_range,
    build_daily_breakdown,
    log_daily_breakdown,
)
from callcenter_metrics.services.data_source import (
    SourceFetchError,
    day_bounds,
    fetch_all_data,
)
from callcenter_metrics.services.normalization import normalize_calls, normalize_leads


logger = logging.getLogger(__name__)

router = APIRouter()


def _source_unavailable(error: SourceFetchError) -> HTTPException:
    return HTTPException(
        status_code=502,
        detail=f"Record store unavailable: {error}",
    )


# =============================================================================
# Endpoints
# =============================================================================

@router.get("", response_model=AggregatedMetrics)
async def get_metrics(
    settings: SettingsDep,
    registry: RegistryDep,
    policy: PolicyDep,
    source: RecordSourceDep,
    start_date: date = Query(..., description="First day of the range (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day of the range, inclusive (YYYY-MM-DD)"),
    call_center: Optional[str] = Query(
        default=None,
        description="Restrict to one call center; 'all' or empty for every center"
    ),
) -> AggregatedMetrics:
    """
    Compute lead recovery metrics for a date range.

    Args:
        start_date: First day of the range
        end_date: Last day of the range (inclusive)
        call_center: Optional call center filter (e.g. "CC14" or "CC_14")

    Returns:
        AggregatedMetrics with overall totals and per-center rows

    Raises:
        HTTPException(400) if end_date is before start_date
        HTTPException(502) if the record store cannot be read
    """
    try:
        start, end = day_bounds(start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        leads, calls = await fetch_all_data(source, start, end, settings)
        metrics = compute_metrics(leads, calls, registry, policy, (start, end))
        return filter_metrics(metrics, call_center, policy, registry)

    except SourceFetchError as e:
        raise _source_unavailable(e)
    except Exception as e:
        logger.exception(f"Error computing metrics for {start_date}..{end_date}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to compute metrics: {str(e)}"
        )


@router.get("/call-centers", response_model=List[CallCenterSummary])
async def list_call_centers(registry: RegistryDep) -> List[CallCenterSummary]:
    """List configured call centers with their formatted operating hours."""
    return registry.summaries()


@router.get("/daily-breakdown", response_model=DailyBreakdown)
async def get_daily_breakdown(
    settings: SettingsDep,
    registry: RegistryDep,
    policy: PolicyDep,
    source: RecordSourceDep,
    end_date: Optional[date] = Query(
        default=None,
        description="Last day of the breakdown (defaults to today, UTC)"
    ),
    days: Optional[int] = Query(
        default=None,
        description="Number of trailing days (defaults to DAILY_BREAKDOWN_DAYS)"
    ),
) -> DailyBreakdown:
    """
    Per-day lead and call counts over the trailing days ending at end_date.

    The breakdown is also written to the application log.
    """
    end_date = end_date or datetime.now(timezone.utc).date()
    days = days if days is not None else settings.daily_breakdown_days

    try:
        first_day, last_day = breakdown_range(end_date, days)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        start, end = day_bounds(first_day, last_day)
        raw_leads, raw_calls = await fetch_all_data(source, start, end, settings)

        leads = normalize_leads(raw_leads, registry)
        calls = normalize_calls(raw_calls, registry, policy)

        breakdown = build_daily_breakdown(leads.leads, calls.calls, registry, end_date, days)
        log_daily_breakdown(breakdown)
        return breakdown

    except SourceFetchError as e:
        raise _source_unavailable(e)
    except Exception as e:
        logger.exception(f"Error building daily breakdown ending {end_date}")
        raise HTTPException(
            status_code=500,
            detail=f"Failed to build daily breakdown: {str(e)}"
        )
