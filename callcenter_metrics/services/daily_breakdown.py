"""
Daily Breakdown Diagnostics

Per-day counts of normalized leads and calls over the trailing N days ending at
a reference date, overall and per call center. Used to eyeball data feeds
(a day with zero calls usually means a broken import, not a quiet day).

Each record is bucketed on the wall-clock date of its call center's timezone.
In-hours calls are IN_HOURS_CALL and RECOVERY calls; the two after-hours
classes count as after-hours calls. Days without any record are kept with
zero counts.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Sequence, Tuple

import pandas as pd

from callcenter_metrics.models.enums import CallClassification
from callcenter_metrics.models.schemas import (
    DailyBreakdown,
    DailyCallCenterStats,
    DailyStats,
    DailyTotals,
    NormalizedCall,
    NormalizedLead,
)
from callcenter_metrics.services.aggregation import natural_sort_key
from callcenter_metrics.services.operating_hours import OperatingHoursRegistry, to_local

logger = logging.getLogger(__name__)

DEFAULT_BREAKDOWN_DAYS: int = 4

COUNT_COLUMNS: List[str] = [
    "leads",
    "inHoursLeads",
    "afterHoursLeads",
    "calls",
    "inHoursCalls",
    "afterHoursCalls",
]

IN_HOURS_CALL_CLASSES = (CallClassification.IN_HOURS_CALL, CallClassification.RECOVERY)


def breakdown_range(end_date: date, days: int = DEFAULT_BREAKDOWN_DAYS) -> Tuple[date, date]:
    """
    First and last day of a trailing window of `days` days ending at end_date.

    Raises:
        ValueError: If days is less than 1, or reaches past the first
            representable date.
    """
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")
    try:
        return end_date - timedelta(days=days - 1), end_date
    except OverflowError as e:
        raise ValueError(f"days={days} reaches before {date.min}") from e


def _local_date(record: Any, registry: OperatingHoursRegistry) -> date:
    window = registry.window_for(record.raw_call_center)
    label = window.timezone if window is not None else "UTC"
    return to_local(record.timestamp, label).date()


def _build_frame(
    leads: Sequence[NormalizedLead],
    calls: Sequence[NormalizedCall],
    registry: OperatingHoursRegistry,
) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []

    for lead in leads:
        rows.append({
            "date": _local_date(lead, registry),
            "callCenter": registry.display_name(lead.call_center),
            "leads": 1,
            "inHoursLeads": 0 if lead.is_after_hours else 1,
            "afterHoursLeads": 1 if lead.is_after_hours else 0,
            "calls": 0,
            "inHoursCalls": 0,
            "afterHoursCalls": 0,
        })

    for call in calls:
        in_hours = call.classification in IN_HOURS_CALL_CLASSES
        rows.append({
            "date": _local_date(call, registry),
            "callCenter": registry.display_name(call.call_center),
            "leads": 0,
            "inHoursLeads": 0,
            "afterHoursLeads": 0,
            "calls": 1,
            "inHoursCalls": 1 if in_hours else 0,
            "afterHoursCalls": 0 if in_hours else 1,
        })

    return pd.DataFrame(rows, columns=["date", "callCenter"] + COUNT_COLUMNS)


def build_daily_breakdown(
    leads: Sequence[NormalizedLead],
    calls: Sequence[NormalizedCall],
    registry: OperatingHoursRegistry,
    end_date: date,
    days: int = DEFAULT_BREAKDOWN_DAYS,
) -> DailyBreakdown:
    """
    Build the per-day breakdown for the trailing `days` days ending at end_date.

    Args:
        leads: Normalized leads
        calls: Normalized calls
        registry: Operating-hours registry (timezones and display names)
        end_date: Last day of the window (inclusive)
        days: Number of days in the window

    Returns:
        DailyBreakdown with one entry per day, oldest first
    """
    first_day, last_day = breakdown_range(end_date, days)
    day_range = [first_day + timedelta(days=offset) for offset in range(days)]

    df = _build_frame(leads, calls, registry)
    df = df[(df["date"] >= first_day) & (df["date"] <= last_day)]

    per_center = df.groupby(["date", "callCenter"], as_index=False)[COUNT_COLUMNS].sum()
    per_day = df.groupby("date")[COUNT_COLUMNS].sum().reindex(day_range, fill_value=0)

    result_days: List[DailyStats] = []
    for day in day_range:
        totals = per_day.loc[day]
        centers = per_center[per_center["date"] == day]

        by_center = [
            DailyCallCenterStats(
                callCenter=row["callCenter"],
                **{column: int(row[column]) for column in COUNT_COLUMNS},
            )
            for row in centers.to_dict("records")
        ]
        by_center.sort(key=lambda stats: natural_sort_key(stats.callCenter))

        result_days.append(DailyStats(
            date=day,
            totalLeads=int(totals["leads"]),
            inHoursLeads=int(totals["inHoursLeads"]),
            afterHoursLeads=int(totals["afterHoursLeads"]),
            totalCalls=int(totals["calls"]),
            inHoursCalls=int(totals["inHoursCalls"]),
            afterHoursCalls=int(totals["afterHoursCalls"]),
            byCallCenter=by_center,
        ))

    aggregated = DailyTotals(
        totalLeads=sum(stats.totalLeads for stats in result_days),
        inHoursLeads=sum(stats.inHoursLeads for stats in result_days),
        afterHoursLeads=sum(stats.afterHoursLeads for stats in result_days),
        totalCalls=sum(stats.totalCalls for stats in result_days),
        inHoursCalls=sum(stats.inHoursCalls for stats in result_days),
        afterHoursCalls=sum(stats.afterHoursCalls for stats in result_days),
    )

    return DailyBreakdown(days=result_days, aggregated=aggregated)


def log_daily_breakdown(breakdown: DailyBreakdown) -> None:
    """Write the breakdown to the module logger, one line per day and per center."""
    for stats in breakdown.days:
        logger.info(
            f"{stats.date.isoformat()}: {stats.totalLeads} leads "
            f"({stats.inHoursLeads} in-hours, {stats.afterHoursLeads} after-hours), "
            f"{stats.totalCalls} calls "
            f"({stats.inHoursCalls} in-hours, {stats.afterHoursCalls} after-hours)"
        )
        for center in stats.byCallCenter:
            logger.info(
                f"  {center.callCenter}: {center.leads} leads, {center.calls} calls"
            )

    totals = breakdown.aggregated
    logger.info(
        f"Last {len(breakdown.days)} days: {totals.totalLeads} leads, {totals.totalCalls} calls"
    )
