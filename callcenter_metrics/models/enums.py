"""
Enumeration definitions for the call center metrics backend.

All enums inherit from both `str` and `Enum` so that they serialize cleanly
through Pydantic models and FastAPI responses.

Enums:
- LeadClassification: in-hours vs after-hours bucket of a lead
- CallClassification: call-type-aware bucket of a call
- RecoveryCounting: which rule counts after-hours recoveries
- DropReason: why a raw record was left out of the normalized set
"""

from enum import Enum


class LeadClassification(str, Enum):
    """
    Operating-hours bucket of a lead.

    - in_hours: the lead arrived while its call center was open, or the
      center has no operating hours configured
    - after_hours: the lead arrived outside the configured window or on a
      non-operating day
    """
    IN_HOURS = "in_hours"
    AFTER_HOURS = "after_hours"


class CallClassification(str, Enum):
    """
    Call-type-aware bucket of a call.

    - in_hours_call: live inbound call landing inside operating hours
    - recovery: recovery contact (SMS/text campaign or DID callback) landing
      inside operating hours, i.e. the follow-up after a missed lead
    - after_hours_contact: recovery contact landing outside operating hours
    - after_hours_call: live call landing outside operating hours; excluded
      from the normalized set when strict exclusion is enabled
    """
    IN_HOURS_CALL = "in_hours_call"
    RECOVERY = "recovery"
    AFTER_HOURS_CONTACT = "after_hours_contact"
    AFTER_HOURS_CALL = "after_hours_call"


class RecoveryCounting(str, Enum):
    """
    Rule used to count after-hours recoveries (callbacks).

    - matched_leads: after-hours leads whose matched calls include at least
      one recovery call
    - in_hours_contacts: recovery calls landing in the center's in-hours
      windows, counted independently of lead matching
    """
    MATCHED_LEADS = "matched_leads"
    IN_HOURS_CONTACTS = "in_hours_contacts"


class DropReason(str, Enum):
    """Reason a raw record does not reach the normalized set."""
    MISSING_TIMESTAMP = "missing_timestamp"
    MISSING_CALL_CENTER = "missing_call_center"
    OFF_HOURS_CALL = "off_hours_call"
