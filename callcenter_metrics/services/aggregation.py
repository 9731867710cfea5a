"""
Metrics Aggregation Service

Turns matched lead/call associations into per-call-center and overall metrics.

Per call center:
- totalLeads: normalized leads for the center (one match entry per lead)
- totalCalls: normalized calls for the center
- inHours.totalLeads / afterHours.totalLeads: leads split by classification
- inHours.totalCalls: live calls landing in operating hours
- inHours.uniqueCalls: in-hours leads matched to at least one in-hours live call
- inHours.callRate: uniqueCalls / inHours.totalLeads * 100 (capped at 100 when
  the policy says so)
- afterHours.callbacks: recovered after-hours leads, counted per the policy's
  RecoveryCounting rule
- afterHours.callbackRate: callbacks / afterHours.totalLeads * 100
- totalCallsMissedAfterHours: max(0, afterHours.totalLeads - callbacks)
- operatingHours: the registry's formatted hours

Every rate is 0.0 when its denominator is 0. Rows are ordered by a natural
sort on the display name (CC1, CC2, CC10, CC10B), not lexicographically.

compute_metrics() is the single pure entry point: raw records in, metrics out.
"""

import logging
import re
from collections import defaultdict
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from callcenter_metrics.core.config import Settings
from callcenter_metrics.models.enums import CallClassification, RecoveryCounting
from callcenter_metrics.models.schemas import (
    AfterHoursMetrics,
    AggregatedMetrics,
    CallCenterMetrics,
    InHoursMetrics,
    LeadCallMatch,
    MetricsPolicy,
    NormalizedCall,
    RawCallRecord,
    RawLeadRecord,
)
from callcenter_metrics.services.matching import LeadKey, match_leads_with_calls
from callcenter_metrics.services.normalization import normalize_calls, normalize_leads
from callcenter_metrics.services.operating_hours import (
    OperatingHoursRegistry,
    strip_separators,
    to_local,
)

logger = logging.getLogger(__name__)

MAX_CALL_RATE: float = 100.0

# Inclusive bounds of the query, used to build in-hours windows
DateRange = Tuple[Union[date, datetime], Union[date, datetime]]

_NAME_PARTS = re.compile(r"^([A-Za-z_]+?)(\d+)([A-Za-z]*)$")


# =============================================================================
# HELPERS
# =============================================================================

def natural_sort_key(name: str) -> Tuple[str, int, str, str]:
    """
    Sort key splitting a display name into prefix, number and suffix.

    Examples:
        >>> sorted(["CC2", "CC10", "CC10B", "CC1"], key=natural_sort_key)
        ['CC1', 'CC2', 'CC10', 'CC10B']
    """
    match = _NAME_PARTS.match(name)
    if match:
        prefix = match.group(1).replace("_", "")
        return (prefix.casefold(), int(match.group(2)), match.group(3).casefold(), name)
    return (name.casefold(), 0, "", name)


def calculate_rate(numerator: int, denominator: int) -> float:
    """numerator / denominator * 100, or 0.0 when the denominator is 0."""
    if denominator <= 0:
        return 0.0
    return numerator / denominator * 100


def build_policy(settings: Settings) -> MetricsPolicy:
    """Build the metrics policy from application settings."""
    return MetricsPolicy(
        cap_call_rate=settings.call_rate_cap_enabled,
        recovery_counting=settings.recovery_counting,
        exclude_off_hours_calls=settings.exclude_off_hours_calls,
        did_recovery_enabled=settings.did_recovery_enabled,
    )


def contact_key(call: NormalizedCall) -> Any:
    """Identity of a recovery contact: its source row id, or the call itself."""
    return call.source_id if call.source_id is not None else call


def count_in_window_contacts(
    calls: Sequence[NormalizedCall],
    call_center: str,
    registry: OperatingHoursRegistry,
    date_range: DateRange,
) -> int:
    """
    Distinct recovery contacts landing inside the center's in-hours windows
    over the date range.
    """
    window = registry.window_for(call_center)
    label = window.timezone if window is not None else "UTC"
    in_hours = registry.daily_windows(call_center, date_range[0], date_range[1]).in_hours_windows

    contacts = set()
    for call in calls:
        if not call.is_recovery_contact:
            continue
        local = to_local(call.timestamp, label)
        if any(span.contains(local) for span in in_hours):
            contacts.add(contact_key(call))
    return len(contacts)


# =============================================================================
# PER-CENTER METRICS
# =============================================================================

def calculate_call_center_metrics(
    call_center: str,
    matches: Sequence[LeadCallMatch],
    calls: Sequence[NormalizedCall],
    registry: OperatingHoursRegistry,
    policy: MetricsPolicy,
    date_range: Optional[DateRange] = None,
) -> CallCenterMetrics:
    """
    Calculate the metrics row for one call center.

    Args:
        call_center: Separator-stripped call center key
        matches: Match entries of the center's leads
        calls: Normalized calls of the center
        registry: Operating-hours registry
        policy: Active metrics policy
        date_range: Query bounds; when given, the in_hours_contacts rule
            checks contacts against generated in-hours windows

    Returns:
        CallCenterMetrics for the center
    """
    in_hours_matches = [match for match in matches if not match.lead.is_after_hours]
    after_hours_matches = [match for match in matches if match.lead.is_after_hours]

    unique_calls = sum(1 for match in in_hours_matches if match.has_in_hours_call)
    in_hours_calls = sum(
        1 for call in calls if call.classification == CallClassification.IN_HOURS_CALL
    )

    if policy.recovery_counting == RecoveryCounting.IN_HOURS_CONTACTS:
        if date_range is not None:
            callbacks = count_in_window_contacts(calls, call_center, registry, date_range)
        else:
            callbacks = len({
                contact_key(call) for call in calls
                if call.classification == CallClassification.RECOVERY
            })
    else:
        callbacks = sum(1 for match in after_hours_matches if match.has_recovery_call)

    call_rate = calculate_rate(unique_calls, len(in_hours_matches))
    if policy.cap_call_rate:
        call_rate = min(call_rate, MAX_CALL_RATE)

    return CallCenterMetrics(
        callCenter=registry.display_name(call_center),
        operatingHours=registry.format_window(call_center),
        totalLeads=len(matches),
        totalCalls=len(calls),
        inHours=InHoursMetrics(
            totalLeads=len(in_hours_matches),
            totalCalls=in_hours_calls,
            uniqueCalls=unique_calls,
            callRate=call_rate,
        ),
        afterHours=AfterHoursMetrics(
            totalLeads=len(after_hours_matches),
            callbacks=callbacks,
            callbackRate=calculate_rate(callbacks, len(after_hours_matches)),
        ),
        totalCallsMissedAfterHours=max(0, len(after_hours_matches) - callbacks),
    )


# =============================================================================
# TOTALS
# =============================================================================

def summarize(rows: Iterable[CallCenterMetrics], cap_call_rate: bool = True) -> AggregatedMetrics:
    """Sum per-center rows into overall totals, keeping rows in natural order."""
    ordered = sorted(rows, key=lambda row: natural_sort_key(row.callCenter))

    total_in_hours_leads = sum(row.inHours.totalLeads for row in ordered)
    total_after_hours_leads = sum(row.afterHours.totalLeads for row in ordered)
    total_unique_calls = sum(row.inHours.uniqueCalls for row in ordered)
    total_callbacks = sum(row.afterHours.callbacks for row in ordered)

    overall_call_rate = calculate_rate(total_unique_calls, total_in_hours_leads)
    if cap_call_rate:
        overall_call_rate = min(overall_call_rate, MAX_CALL_RATE)

    return AggregatedMetrics(
        totalLeads=sum(row.totalLeads for row in ordered),
        totalCalls=sum(row.totalCalls for row in ordered),
        totalInHoursLeads=total_in_hours_leads,
        totalAfterHoursLeads=total_after_hours_leads,
        totalUniqueCalls=total_unique_calls,
        totalCallbacks=total_callbacks,
        totalCallsMissedAfterHours=sum(row.totalCallsMissedAfterHours for row in ordered),
        overallCallRate=overall_call_rate,
        overallCallbackRate=calculate_rate(total_callbacks, total_after_hours_leads),
        byCallCenter=ordered,
    )


def aggregate(
    matches: Mapping[LeadKey, LeadCallMatch],
    calls: Sequence[NormalizedCall],
    registry: OperatingHoursRegistry,
    policy: MetricsPolicy,
    date_range: Optional[DateRange] = None,
) -> AggregatedMetrics:
    """
    Aggregate matches and calls into per-center and overall metrics.

    Centers are the union of those observed on leads and on calls, so a
    center that only received calls still gets a row.
    """
    matches_by_center: Dict[str, List[LeadCallMatch]] = defaultdict(list)
    for match in matches.values():
        matches_by_center[match.lead.call_center].append(match)

    calls_by_center: Dict[str, List[NormalizedCall]] = defaultdict(list)
    for call in calls:
        calls_by_center[call.call_center].append(call)

    centers = set(matches_by_center) | set(calls_by_center)
    rows = [
        calculate_call_center_metrics(
            center,
            matches_by_center.get(center, []),
            calls_by_center.get(center, []),
            registry,
            policy,
            date_range,
        )
        for center in centers
    ]

    metrics = summarize(rows, policy.cap_call_rate)
    logger.info(
        f"Aggregated {len(matches)} leads and {len(calls)} calls across {len(rows)} call centers: "
        f"{metrics.totalInHoursLeads} in-hours, {metrics.totalAfterHoursLeads} after-hours, "
        f"{metrics.totalCallbacks} callbacks"
    )
    return metrics


def filter_metrics(
    metrics: AggregatedMetrics,
    call_center: Optional[str],
    policy: Optional[MetricsPolicy] = None,
    registry: Optional[OperatingHoursRegistry] = None,
) -> AggregatedMetrics:
    """
    Restrict metrics to one call center and recompute the totals.

    The query may be a center id or name in any separator form; with a
    registry it is resolved to the display name the rows carry. None or
    "all" returns the metrics unchanged.
    """
    if not call_center or call_center.lower() == "all":
        return metrics

    if registry is not None:
        wanted = registry.display_name(call_center)
    else:
        wanted = strip_separators(call_center)
    rows = [row for row in metrics.byCallCenter if row.callCenter == wanted]
    cap = policy.cap_call_rate if policy is not None else True
    return summarize(rows, cap)


# =============================================================================
# ENTRY POINT
# =============================================================================

def compute_metrics(
    raw_leads: Iterable[Union[RawLeadRecord, Mapping[str, Any]]],
    raw_calls: Iterable[Union[RawCallRecord, Mapping[str, Any]]],
    registry: Optional[OperatingHoursRegistry] = None,
    policy: Optional[MetricsPolicy] = None,
    date_range: Optional[DateRange] = None,
) -> AggregatedMetrics:
    """
    Compute call center metrics from already-fetched raw records.

    Normalizes both streams, matches leads to calls and aggregates. Input
    order does not matter. Nothing is kept between calls.

    Args:
        raw_leads: Raw lead rows (models or mappings)
        raw_calls: Raw call rows (models or mappings)
        registry: Operating-hours registry (built-in table when omitted)
        policy: Metrics policy (canonical rules when omitted)
        date_range: Query bounds, used by the in_hours_contacts rule

    Returns:
        AggregatedMetrics
    """
    registry = registry if registry is not None else OperatingHoursRegistry()
    policy = policy if policy is not None else MetricsPolicy()

    leads = normalize_leads(raw_leads, registry)
    calls = normalize_calls(raw_calls, registry, policy)
    matches = match_leads_with_calls(leads.leads, calls.calls)

    return aggregate(matches, calls.calls, registry, policy, date_range)
