"""
Lead-to-Call Identity Matching Service

Joins normalized leads to normalized calls within a call center using a tiered
key strategy:

1. Phone key (primary): every call sharing the lead's phone key at the same
   call center. Correlation identifiers are frequently missing on one side, so
   the phone is the most reliable signal.
2. Correlation key (fallback): only when the phone step found nothing, every
   call at the same center whose click id equals the lead's correlation key.
3. Otherwise the lead has an empty match set.

The join is many-to-many, not a bipartite assignment: one call may satisfy
several leads sharing a phone number (repeat submissions), and a lead "has a
match" whenever its call list is non-empty, shared or not.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from callcenter_metrics.models.schemas import LeadCallMatch, NormalizedCall, NormalizedLead

logger = logging.getLogger(__name__)

# (call center, correlation key or phone key or timestamp)
LeadKey = Tuple[str, str]


class CallIndex:
    """
    Multimap from a key to every call carrying it.

    Buckets keep insertion order and are never deduplicated: two calls with
    the same key are both kept, and one call may sit in several indexes.
    """

    def __init__(self) -> None:
        self._buckets: Dict[str, List[NormalizedCall]] = defaultdict(list)

    def add(self, key: Optional[str], call: NormalizedCall) -> None:
        if key:
            self._buckets[key].append(call)

    def get(self, key: Optional[str]) -> List[NormalizedCall]:
        if not key:
            return []
        return list(self._buckets.get(key, ()))

    def at_center(self, key: Optional[str], call_center: str) -> List[NormalizedCall]:
        return [call for call in self.get(key) if call.call_center == call_center]

    def __len__(self) -> int:
        return len(self._buckets)


def build_lead_key(lead: NormalizedLead) -> LeadKey:
    """Key a lead by its center and its best identifier, falling back to its timestamp."""
    return (
        lead.call_center,
        lead.correlation_key or lead.phone_key or lead.timestamp.isoformat(),
    )


def _unique_key(key: LeadKey, taken: Dict[LeadKey, LeadCallMatch]) -> LeadKey:
    if key not in taken:
        return key
    suffix = 2
    while (key[0], f"{key[1]}#{suffix}") in taken:
        suffix += 1
    return (key[0], f"{key[1]}#{suffix}")


def find_matching_calls(
    lead: NormalizedLead,
    by_phone: CallIndex,
    by_correlation: CallIndex,
) -> List[NormalizedCall]:
    """Calls attributable to one lead: phone match first, correlation key as fallback."""
    matched: List[NormalizedCall] = []

    if lead.phone_key:
        matched = by_phone.at_center(lead.phone_key, lead.call_center)

    if not matched and lead.correlation_key:
        matched = by_correlation.at_center(lead.correlation_key, lead.call_center)

    return matched


def match_leads_with_calls(
    leads: Iterable[NormalizedLead],
    calls: Iterable[NormalizedCall],
) -> Dict[LeadKey, LeadCallMatch]:
    """
    Associate every lead with the calls attributable to it.

    Args:
        leads: Normalized leads
        calls: Normalized calls

    Returns:
        Dict keyed by lead key. Every lead gets its own entry, even with no
        identifier: colliding keys get a "#n" suffix so leads are never
        merged or overwritten.
    """
    by_phone = CallIndex()
    by_correlation = CallIndex()

    for call in calls:
        by_phone.add(call.phone_key, call)
        by_correlation.add(call.correlation_key, call)

    matches: Dict[LeadKey, LeadCallMatch] = {}
    matched_leads = 0

    for lead in leads:
        matched = find_matching_calls(lead, by_phone, by_correlation)
        if matched:
            matched_leads += 1
        matches[_unique_key(build_lead_key(lead), matches)] = LeadCallMatch(lead=lead, calls=matched)

    logger.info(
        f"Matched {matched_leads} of {len(matches)} leads "
        f"({len(by_phone)} phone keys, {len(by_correlation)} click ids indexed)"
    )
    return matches
