"""
Record Normalization Service

Converts raw lead and call rows into the canonical NormalizedLead and
NormalizedCall shapes. This is the only place that knows about the sources'
optional and alternate-named fields; everything downstream works on the
canonical records.

Per-record functions return either the normalized record or a DropReason:
- Timestamps resolve primary field first, then the fallback field. A record
  with neither is dropped, never zero-defaulted.
- Call center keys are separator-stripped for grouping; the raw key is kept
  for config lookups.
- Phones are reduced to digits and the last 10 digits, so "+1-555-123-4567"
  and "5551234567" share a key. An empty result is None.
- A call is a recovery contact when its publisher label contains a recovery
  keyword (sms, text, txt, message, messaging), or when its destination
  number is one of the configured DIDs.
- Under strict exclusion, a live call landing outside operating hours is
  dropped.
"""

import logging
import re
from collections import Counter
from datetime import date, datetime, time, timezone
from typing import Any, FrozenSet, Iterable, Mapping, Optional, Sequence, Type, TypeVar, Union

from pydantic import BaseModel

from callcenter_metrics.models.enums import DropReason
from callcenter_metrics.models.schemas import (
    CallNormalizationResult,
    LeadNormalizationResult,
    MetricsPolicy,
    NormalizedCall,
    NormalizedLead,
    RawCallRecord,
    RawLeadRecord,
)
from callcenter_metrics.services.classification import (
    classify_call,
    classify_lead,
    is_counted_call,
)
from callcenter_metrics.services.operating_hours import (
    OperatingHoursRegistry,
    strip_separators,
)

logger = logging.getLogger(__name__)

RecordT = TypeVar("RecordT", bound=BaseModel)

_NON_DIGITS = re.compile(r"\D")

PHONE_KEY_LENGTH: int = 10

# Epoch values at or above this are milliseconds
EPOCH_MILLIS_THRESHOLD: float = 1e11


# =============================================================================
# FIELD NORMALIZERS
# =============================================================================

def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a timestamp field.

    Accepts datetime/date objects, epoch numbers (seconds, or milliseconds
    when too large to be seconds) and ISO-8601 strings (a trailing "Z" is
    read as UTC). Empty, missing or unparsable values return None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, (int, float)):
        seconds = value / 1000 if abs(value) >= EPOCH_MILLIS_THRESHOLD else value
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        return None


def normalize_call_center_id(call_center: Optional[str]) -> str:
    """CC_14 -> CC14"""
    return strip_separators((call_center or "").strip())


def normalize_phone_number(phone: Optional[str]) -> Optional[str]:
    """
    Reduce a phone number to its last 10 digits.

    Examples:
        >>> normalize_phone_number("+1-555-123-4567")
        '5551234567'
        >>> normalize_phone_number("n/a") is None
        True
    """
    if not phone:
        return None
    digits = _NON_DIGITS.sub("", phone)
    if len(digits) > PHONE_KEY_LENGTH:
        digits = digits[-PHONE_KEY_LENGTH:]
    return digits or None


def normalize_did(number: Optional[str]) -> Optional[str]:
    """Digits of a destination number, with the leading 1 dropped from 11-digit forms."""
    if not number:
        return None
    digits = _NON_DIGITS.sub("", number)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    return digits or None


def is_recovery_label(label: Optional[str], keywords: Sequence[str]) -> bool:
    """Case-insensitive substring match of a publisher label against recovery keywords."""
    if not label:
        return False
    lowered = label.lower()
    return any(keyword in lowered for keyword in keywords)


def recovery_dids(registry: OperatingHoursRegistry) -> FrozenSet[str]:
    """Normalized DIDs of every configured call center."""
    return frozenset(
        did for did in (normalize_did(raw) for raw in registry.configured_dids()) if did
    )


def _first_present(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def _resolve_timestamp(primary: Any, fallback: Any) -> Optional[datetime]:
    timestamp = parse_timestamp(primary)
    if timestamp is None:
        timestamp = parse_timestamp(fallback)
    return timestamp


def _coerce(raw: Union[RecordT, Mapping[str, Any]], model: Type[RecordT]) -> RecordT:
    if isinstance(raw, model):
        return raw
    return model.model_validate(dict(raw))


# =============================================================================
# RECORD NORMALIZERS
# =============================================================================

def normalize_lead(
    raw: Union[RawLeadRecord, Mapping[str, Any]],
    registry: OperatingHoursRegistry,
) -> Union[NormalizedLead, DropReason]:
    """
    Normalize one raw lead.

    Args:
        raw: RawLeadRecord or a mapping with lead table columns
        registry: Operating-hours registry used for classification

    Returns:
        NormalizedLead, or the DropReason if the lead cannot be normalized
    """
    record = _coerce(raw, RawLeadRecord)

    timestamp = _resolve_timestamp(record.timestampz, record.created_at)
    if timestamp is None:
        return DropReason.MISSING_TIMESTAMP

    raw_call_center = (record.utm_source or "").strip()
    call_center = normalize_call_center_id(raw_call_center)
    if not call_center:
        return DropReason.MISSING_CALL_CENTER

    phone_key = None
    for candidate in (record.phone_number_norm, record.phone_number):
        phone_key = normalize_phone_number(candidate)
        if phone_key:
            break

    return NormalizedLead(
        call_center=call_center,
        raw_call_center=raw_call_center,
        timestamp=timestamp,
        correlation_key=_first_present(record.cid, record.click_id),
        phone_key=phone_key,
        classification=classify_lead(timestamp, raw_call_center, registry),
    )


def normalize_call(
    raw: Union[RawCallRecord, Mapping[str, Any]],
    registry: OperatingHoursRegistry,
    policy: MetricsPolicy,
    dids: Optional[FrozenSet[str]] = None,
) -> Union[NormalizedCall, DropReason]:
    """
    Normalize one raw call.

    Args:
        raw: RawCallRecord or a mapping with call table columns
        registry: Operating-hours registry used for classification
        policy: Active metrics policy
        dids: Normalized recovery DIDs; computed from the registry when omitted

    Returns:
        NormalizedCall, or the DropReason if the call is excluded
    """
    record = _coerce(raw, RawCallRecord)

    timestamp = _resolve_timestamp(record.call_date, record.created_at)
    if timestamp is None:
        return DropReason.MISSING_TIMESTAMP

    raw_call_center = (record.call_center or "").strip()
    call_center = normalize_call_center_id(raw_call_center)
    if not call_center:
        return DropReason.MISSING_CALL_CENTER

    is_recovery = is_recovery_label(record.publisher_name, policy.recovery_keywords)
    if not is_recovery and policy.did_recovery_enabled:
        if dids is None:
            dids = recovery_dids(registry)
        did = normalize_did(record.CC_Number)
        is_recovery = did is not None and did in dids

    classification = classify_call(timestamp, raw_call_center, is_recovery, registry)
    if not is_counted_call(classification, policy):
        return DropReason.OFF_HOURS_CALL

    return NormalizedCall(
        source_id=str(record.id) if record.id is not None else None,
        call_center=call_center,
        raw_call_center=raw_call_center,
        timestamp=timestamp,
        correlation_key=_first_present(record.click_id),
        phone_key=normalize_phone_number(record.caller_phone),
        is_recovery_contact=is_recovery,
        classification=classification,
        raw_label=record.publisher_name,
    )


# =============================================================================
# BATCH NORMALIZERS
# =============================================================================

def normalize_leads(
    raws: Iterable[Union[RawLeadRecord, Mapping[str, Any]]],
    registry: OperatingHoursRegistry,
) -> LeadNormalizationResult:
    """Normalize a batch of leads, counting drops per reason."""
    leads = []
    dropped: Counter = Counter()

    for raw in raws:
        outcome = normalize_lead(raw, registry)
        if isinstance(outcome, DropReason):
            dropped[outcome] += 1
        else:
            leads.append(outcome)

    logger.info(
        f"Normalized {len(leads)} leads, dropped {sum(dropped.values())} "
        f"({_describe(dropped)})"
    )
    return LeadNormalizationResult(leads=leads, dropped=dict(dropped))


def normalize_calls(
    raws: Iterable[Union[RawCallRecord, Mapping[str, Any]]],
    registry: OperatingHoursRegistry,
    policy: MetricsPolicy,
) -> CallNormalizationResult:
    """Normalize a batch of calls, counting drops per reason."""
    dids = recovery_dids(registry)
    calls = []
    dropped: Counter = Counter()

    for raw in raws:
        outcome = normalize_call(raw, registry, policy, dids)
        if isinstance(outcome, DropReason):
            dropped[outcome] += 1
        else:
            calls.append(outcome)

    logger.info(
        f"Normalized {len(calls)} calls, dropped {sum(dropped.values())} "
        f"({_describe(dropped)})"
    )
    return CallNormalizationResult(calls=calls, dropped=dict(dropped))


def _describe(dropped: Counter) -> str:
    if not dropped:
        return "none"
    return ", ".join(f"{reason.value}={count}" for reason, count in sorted(dropped.items()))
