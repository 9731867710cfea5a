"""
Pydantic models for the call center metrics backend.

This module provides type-safe validation and serialization for every shape the
metrics pipeline moves around:

- Operating-hours configuration (OperatingWindow, CallCenterConfig)
- Raw records as read from the lead and call tables (RawLeadRecord, RawCallRecord)
- Canonical records after normalization (NormalizedLead, NormalizedCall)
- Lead-to-call associations (LeadCallMatch)
- Output metrics consumed by the presentation layer (CallCenterMetrics,
  AggregatedMetrics)
- Diagnostics (DailyStats, DailyBreakdown)
- The named rule set the pipeline runs under (MetricsPolicy)

Output models use camelCase field names because they are serialized unchanged
to the dashboard and its CSV/JSON exports. Raw record models use the column
names of the source tables.

All models use Pydantic v2 syntax.
"""

from datetime import date as DateType, datetime
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from callcenter_metrics.models.enums import (
    CallClassification,
    DropReason,
    LeadClassification,
    RecoveryCounting,
)


# Keywords in a call's publisher label that mark it as a recovery contact
DEFAULT_RECOVERY_KEYWORDS: Tuple[str, ...] = ("sms", "text", "txt", "message", "messaging")


# =============================================================================
# Operating-Hours Configuration
# =============================================================================


class OperatingWindow(BaseModel):
    """
    Daily operating window of a call center.

    Hours are wall-clock hours in the center's timezone; fractional values
    carry minutes (8.5 = 8:30am). Days use 0=Sunday through 6=Saturday.
    A window never wraps past midnight: overnight closures are expressed by
    the after-hours windows generated between operating days.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "startHour": 8,
                "endHour": 17.5,
                "operatingDaysOfWeek": [1, 2, 3, 4, 5],
                "timezoneLabel": "PST",
            }
        }
    )

    start_hour: float = Field(..., ge=0.0, le=24.0, alias="startHour")
    end_hour: float = Field(..., ge=0.0, le=24.0, alias="endHour")
    days_of_week: FrozenSet[int] = Field(..., alias="operatingDaysOfWeek")
    timezone: str = Field(default="PST", alias="timezoneLabel")

    @field_validator("days_of_week")
    @classmethod
    def _check_weekdays(cls, value: FrozenSet[int]) -> FrozenSet[int]:
        invalid = sorted(day for day in value if day < 0 or day > 6)
        if invalid:
            raise ValueError(f"weekdays must be within 0..6, got {invalid}")
        return value

    @model_validator(mode="after")
    def _check_hours(self) -> "OperatingWindow":
        if self.start_hour >= self.end_hour:
            raise ValueError(
                f"start_hour ({self.start_hour}) must be before end_hour ({self.end_hour})"
            )
        return self


class CallCenterConfig(BaseModel):
    """
    Static configuration of one call center.

    `id` may carry separator artifacts (e.g. "CC_14"); lookups compare both the
    raw and the separator-stripped form. `window` is None for centers without
    configured hours, which are always treated as in-hours.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, alias="displayName")
    did: Optional[str] = Field(
        default=None,
        description="Destination number dialed for recovery callbacks"
    )
    window: Optional[OperatingWindow] = Field(default=None, alias="operatingWindow")


class CallCenterSummary(BaseModel):
    """Configured call center as listed by the API."""
    id: str
    name: str
    did: Optional[str] = None
    hasHours: bool
    operatingHours: str


class TimeWindow(BaseModel):
    """Half-open wall-clock interval [start, end)."""
    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class DailyWindows(BaseModel):
    """In-hours and after-hours windows generated for a date range."""
    in_hours_windows: List[TimeWindow] = Field(default_factory=list)
    after_hours_windows: List[TimeWindow] = Field(default_factory=list)


# =============================================================================
# Raw Records (lead and call tables)
# =============================================================================


class RawLeadRecord(BaseModel):
    """
    Lead row as stored in the lead table.

    Every field is optional: rows from the lead feed are sparse and several
    fields have alternates (timestampz/created_at, cid/click_id,
    phone_number_norm/phone_number). Unknown columns are ignored.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[Any] = None
    utm_source: Optional[str] = Field(default=None, description="Call center key")
    timestampz: Optional[Any] = Field(default=None, description="Primary lead timestamp")
    created_at: Optional[Any] = Field(default=None, description="Fallback timestamp")
    cid: Optional[str] = Field(default=None, description="Explicit correlation id")
    click_id: Optional[str] = Field(default=None, description="Click identifier")
    phone_number_norm: Optional[str] = None
    phone_number: Optional[str] = None


class RawCallRecord(BaseModel):
    """
    Call row as stored in the call table.

    `publisher_name` is free text; keywords such as "SMS" in it mark a
    recovery contact. `CC_Number` is the destination number (DID) dialed.
    """
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[Any] = None
    call_center: Optional[str] = None
    call_date: Optional[Any] = Field(default=None, description="Primary call timestamp")
    created_at: Optional[Any] = Field(default=None, description="Fallback timestamp")
    caller_phone: Optional[str] = None
    click_id: Optional[str] = None
    publisher_name: Optional[str] = None
    CC_Number: Optional[str] = None


# =============================================================================
# Normalized Records
# =============================================================================


class NormalizedLead(BaseModel):
    """Canonical lead: resolved timestamp, keys and operating-hours bucket."""
    model_config = ConfigDict(frozen=True)

    call_center: str = Field(..., description="Call center key with separators stripped")
    raw_call_center: str = Field(..., description="Call center key as it appeared in the source")
    timestamp: datetime
    correlation_key: Optional[str] = None
    phone_key: Optional[str] = None
    classification: LeadClassification

    @property
    def is_after_hours(self) -> bool:
        return self.classification == LeadClassification.AFTER_HOURS


class NormalizedCall(BaseModel):
    """Canonical call: resolved timestamp, keys and call-type bucket."""
    model_config = ConfigDict(frozen=True)

    source_id: Optional[str] = Field(default=None, description="id of the call table row")
    call_center: str
    raw_call_center: str
    timestamp: datetime
    correlation_key: Optional[str] = None
    phone_key: Optional[str] = None
    is_recovery_contact: bool = False
    classification: CallClassification
    raw_label: Optional[str] = None


class LeadNormalizationResult(BaseModel):
    """Normalized leads plus per-reason drop counts."""
    leads: List[NormalizedLead] = Field(default_factory=list)
    dropped: Dict[DropReason, int] = Field(default_factory=dict)

    @property
    def total_dropped(self) -> int:
        return sum(self.dropped.values())


class CallNormalizationResult(BaseModel):
    """Normalized calls plus per-reason drop counts."""
    calls: List[NormalizedCall] = Field(default_factory=list)
    dropped: Dict[DropReason, int] = Field(default_factory=dict)

    @property
    def total_dropped(self) -> int:
        return sum(self.dropped.values())


class LeadCallMatch(BaseModel):
    """
    One lead with every call attributed to it.

    The association is many-to-many: the same call may appear in the match
    set of several leads sharing a phone number.
    """
    lead: NormalizedLead
    calls: List[NormalizedCall] = Field(default_factory=list)

    @property
    def has_match(self) -> bool:
        return len(self.calls) > 0

    @property
    def has_in_hours_call(self) -> bool:
        return any(call.classification == CallClassification.IN_HOURS_CALL for call in self.calls)

    @property
    def has_recovery_call(self) -> bool:
        return any(call.classification == CallClassification.RECOVERY for call in self.calls)


# =============================================================================
# Policy
# =============================================================================


class MetricsPolicy(BaseModel):
    """
    Named rule set the pipeline runs under.

    The defaults are the canonical rules: keyword or DID recovery detection,
    strict exclusion of live calls outside hours, recoveries counted through
    lead matching, and a 100% ceiling on the in-hours call rate.
    """
    model_config = ConfigDict(frozen=True)

    cap_call_rate: bool = True
    recovery_counting: RecoveryCounting = RecoveryCounting.MATCHED_LEADS
    exclude_off_hours_calls: bool = True
    did_recovery_enabled: bool = True
    recovery_keywords: Tuple[str, ...] = DEFAULT_RECOVERY_KEYWORDS


# =============================================================================
# Output Metrics
# =============================================================================


class InHoursMetrics(BaseModel):
    """In-hours lead and call figures for one call center."""
    totalLeads: int = Field(default=0, ge=0)
    totalCalls: int = Field(default=0, ge=0, description="Live calls landing in operating hours")
    uniqueCalls: int = Field(
        default=0,
        ge=0,
        description="In-hours leads matched to at least one in-hours live call"
    )
    callRate: float = Field(default=0.0, ge=0.0, description="uniqueCalls / totalLeads * 100")


class AfterHoursMetrics(BaseModel):
    """After-hours lead and recovery figures for one call center."""
    totalLeads: int = Field(default=0, ge=0)
    callbacks: int = Field(default=0, ge=0, description="Recovered after-hours leads")
    callbackRate: float = Field(default=0.0, ge=0.0, description="callbacks / totalLeads * 100")


class CallCenterMetrics(BaseModel):
    """
    Metrics row for one observed call center.

    Example:
        {
            "callCenter": "CC14",
            "operatingHours": "8am-6pm PST (Mon-Fri)",
            "totalLeads": 120,
            "totalCalls": 80,
            "inHours": {"totalLeads": 90, "totalCalls": 70, "uniqueCalls": 60, "callRate": 66.67},
            "afterHours": {"totalLeads": 30, "callbacks": 12, "callbackRate": 40.0},
            "totalCallsMissedAfterHours": 18
        }
    """
    callCenter: str
    operatingHours: str
    totalLeads: int = Field(default=0, ge=0)
    totalCalls: int = Field(default=0, ge=0)
    inHours: InHoursMetrics = Field(default_factory=InHoursMetrics)
    afterHours: AfterHoursMetrics = Field(default_factory=AfterHoursMetrics)
    totalCallsMissedAfterHours: int = Field(default=0, ge=0)


class AggregatedMetrics(BaseModel):
    """Overall totals plus the per-call-center breakdown, naturally sorted."""
    totalLeads: int = 0
    totalCalls: int = 0
    totalInHoursLeads: int = 0
    totalAfterHoursLeads: int = 0
    totalUniqueCalls: int = 0
    totalCallbacks: int = 0
    totalCallsMissedAfterHours: int = 0
    overallCallRate: float = 0.0
    overallCallbackRate: float = 0.0
    byCallCenter: List[CallCenterMetrics] = Field(default_factory=list)


# =============================================================================
# Diagnostics
# =============================================================================


class DailyTotals(BaseModel):
    """Lead and call counts over a span of days."""
    totalLeads: int = 0
    inHoursLeads: int = 0
    afterHoursLeads: int = 0
    totalCalls: int = 0
    inHoursCalls: int = 0
    afterHoursCalls: int = 0


class DailyCallCenterStats(BaseModel):
    """Counts for one call center on one day."""
    callCenter: str
    leads: int = 0
    inHoursLeads: int = 0
    afterHoursLeads: int = 0
    calls: int = 0
    inHoursCalls: int = 0
    afterHoursCalls: int = 0


class DailyStats(DailyTotals):
    """Counts for one calendar day, with a per-center breakdown."""
    date: DateType
    byCallCenter: List[DailyCallCenterStats] = Field(default_factory=list)


class DailyBreakdown(BaseModel):
    """Trailing-days diagnostic report."""
    days: List[DailyStats] = Field(default_factory=list)
    aggregated: DailyTotals = Field(default_factory=DailyTotals)
