"""
After-Hours Classification Service

State-free classification of already-normalized timestamps against the
Operating-Hours Registry.

Leads are classified purely by window:
- in_hours: inside the center's operating window (or no window configured)
- after_hours: outside the window, or on a non-operating day

Calls are classified by window AND call type:
- recovery: a recovery contact (SMS/text campaign, DID callback) landing in
  operating hours; the follow-up received after an earlier missed lead
- in_hours_call: a live call landing in operating hours
- after_hours_contact: a recovery contact landing outside operating hours
- after_hours_call: a live call landing outside operating hours; under the
  strict policy these calls carry no business meaning and are excluded
"""

from datetime import datetime
from typing import Optional

from callcenter_metrics.models.enums import CallClassification, LeadClassification
from callcenter_metrics.models.schemas import MetricsPolicy
from callcenter_metrics.services.operating_hours import OperatingHoursRegistry


def classify_lead(
    timestamp: datetime,
    call_center: Optional[str],
    registry: OperatingHoursRegistry,
) -> LeadClassification:
    """
    Classify a lead timestamp as in-hours or after-hours.

    Args:
        timestamp: Resolved lead timestamp
        call_center: Call center key (raw or separator-stripped)
        registry: Operating-hours registry

    Returns:
        LeadClassification.AFTER_HOURS when the registry reports after-hours,
        LeadClassification.IN_HOURS otherwise
    """
    if registry.is_after_hours(timestamp, call_center):
        return LeadClassification.AFTER_HOURS
    return LeadClassification.IN_HOURS


def classify_call(
    timestamp: datetime,
    call_center: Optional[str],
    is_recovery_contact: bool,
    registry: OperatingHoursRegistry,
) -> CallClassification:
    """
    Classify a call by operating window and call type.

    Args:
        timestamp: Resolved call timestamp
        call_center: Call center key (raw or separator-stripped)
        is_recovery_contact: Whether the call is a recovery contact
        registry: Operating-hours registry

    Returns:
        CallClassification for the call
    """
    after_hours = registry.is_after_hours(timestamp, call_center)

    if is_recovery_contact:
        if after_hours:
            return CallClassification.AFTER_HOURS_CONTACT
        return CallClassification.RECOVERY

    if after_hours:
        return CallClassification.AFTER_HOURS_CALL
    return CallClassification.IN_HOURS_CALL


def is_counted_call(classification: CallClassification, policy: MetricsPolicy) -> bool:
    """
    Whether a classified call belongs in the normalized set.

    Only live calls outside operating hours are ever excluded, and only when
    the policy enables strict exclusion.
    """
    if classification == CallClassification.AFTER_HOURS_CALL:
        return not policy.exclude_off_hours_calls
    return True
