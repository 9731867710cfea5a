"""
Operating-Hours Registry

This module holds the per-call-center operating-hours configuration and answers
every question the pipeline asks about it:

- lookup: resolve a call center key (raw or separator-stripped) to its config
- is_after_hours: classify a timestamp against the center's operating window
- daily_windows: generate in-hours and after-hours windows over a date range
- format_window: human-readable hours summary for display

Rules:
- A center without a config or without an operating window is always in-hours.
- A timestamp on a non-operating weekday is after-hours.
- On an operating day, [start_hour, end_hour) is in-hours, the rest is after-hours.
- Hours are fixed wall-clock hours per center. Timezone labels map to fixed
  standard-time offsets; there is no DST adjustment.

The registry is immutable once built and safe to share across requests. Distinct
centers whose keys collapse to the same separator-stripped form are rejected at
construction time rather than merged.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple, Union

from pydantic import TypeAdapter

from callcenter_metrics.models.schemas import (
    CallCenterConfig,
    CallCenterSummary,
    DailyWindows,
    OperatingWindow,
    TimeWindow,
)

logger = logging.getLogger(__name__)


class ConfigurationError(Exception):
    """Raised when the call center configuration is inconsistent."""


# =============================================================================
# CONSTANTS
# =============================================================================

NO_HOURS_CONFIGURED: str = "No hours configured"

# Forward search bound when looking for the next operating day
NEXT_OPENING_SEARCH_DAYS: int = 7

# Fixed standard-time offsets in hours; unknown labels are treated as UTC
TIMEZONE_OFFSETS: Dict[str, int] = {
    "PST": -8,
    "MST": -7,
    "CST": -6,
    "EST": -5,
    "UTC": 0,
}

_SEPARATORS = re.compile(r"[_\-\s]+")

# 0=Sunday .. 6=Saturday
MON_FRI: FrozenSet[int] = frozenset({1, 2, 3, 4, 5})
MON_SAT: FrozenSet[int] = frozenset({1, 2, 3, 4, 5, 6})
EVERY_DAY: FrozenSet[int] = frozenset(range(7))


def _center(
    center_id: str,
    did: Optional[str] = None,
    start: Optional[float] = None,
    end: Optional[float] = None,
    days: FrozenSet[int] = MON_FRI,
    tz: str = "PST",
) -> CallCenterConfig:
    window = None
    if start is not None and end is not None:
        window = OperatingWindow(start_hour=start, end_hour=end, days_of_week=days, timezone=tz)
    return CallCenterConfig(id=center_id, name=center_id, did=did, window=window)


DEFAULT_CALL_CENTERS: Tuple[CallCenterConfig, ...] = (
    _center("CC1", "18334411529", 8, 21, MON_SAT),
    _center("CC2", "18334362190", 8, 21, MON_SAT),
    _center("CC3", "18334310623"),
    _center("CC4", "18334410032"),
    _center("CC5", "18334310301"),
    _center("CC6", "18334320783"),
    _center("CC7", "18334370501", 8, 16),
    _center("CC8", "18334411630"),
    _center("CC9", "18334412492", 8, 17),
    _center("CC10", "18334412564", 7, 17),
    _center("CC12", "18334411593", 8, 18),
    _center("CC13", "18334411506", 9, 18, tz="MST"),
    _center("CC_14", "18334412568", 8, 18),
    _center("CC14A", None, 8, 18),
    _center("CC14B", "18334362221", 8, 18),
    _center("CC14C", "18334950158", 8, 17),
    _center("CC14D", "18557020153", 8, 17),
    _center("CC14E", "18339913927", 8, 17),
    _center("CC15", "18334410027", 8, 17),
    _center("CC16", "18334412573", 9, 18),
    _center("CC17", "18334300436", 9, 17),
    _center("CC18A", None, 8.5, 16),
    _center("CC18B", None, 8.5, 16),
    _center("CC19", "18339951463", 8, 17),
    _center("CC20", "18339923833", 9, 19),
    _center("CC21", "18339923731", 9, 19),
    _center("CC22", "18337018811", 8, 16),
    _center("CC23A", "18337731567", 9.5, 17.5),
    _center("CC23B", "18338360164", 9.5, 17.5),
    _center("CC24", "18339403006", 9, 18),
    _center("CC25", "18337564307", 9, 18),
    _center("CX", "18334412617"),
)


# =============================================================================
# HELPERS
# =============================================================================

def strip_separators(key: str) -> str:
    """Remove separator characters: "CC_14" -> "CC14"."""
    return _SEPARATORS.sub("", key)


def weekday_index(moment: Union[date, datetime]) -> int:
    """Weekday as 0=Sunday .. 6=Saturday."""
    return (moment.weekday() + 1) % 7


def to_local(timestamp: datetime, timezone_label: str) -> datetime:
    """
    Convert a timestamp to the naive wall-clock time of a timezone label.

    Naive timestamps are taken to be wall-clock already. Aware timestamps are
    shifted to the label's fixed offset.
    """
    if timestamp.tzinfo is None:
        return timestamp
    offset = TIMEZONE_OFFSETS.get(timezone_label.upper(), 0)
    return timestamp.astimezone(timezone(timedelta(hours=offset))).replace(tzinfo=None)


def fractional_hour(moment: datetime) -> float:
    return moment.hour + moment.minute / 60 + moment.second / 3600


def format_hour(hour: float) -> str:
    """
    Format a fractional hour for display.

    Examples:
        >>> format_hour(8)
        '8am'
        >>> format_hour(17.5)
        '5:30pm'
    """
    whole = int(hour)
    minutes = round((hour - whole) * 60)
    if minutes == 60:
        whole += 1
        minutes = 0
    whole %= 24
    period = "pm" if whole >= 12 else "am"
    display = whole - 12 if whole > 12 else (12 if whole == 0 else whole)
    if minutes > 0:
        return f"{display}:{minutes:02d}{period}"
    return f"{display}{period}"


def format_days(days: FrozenSet[int]) -> str:
    if days == EVERY_DAY:
        return "Every day"
    if days == MON_SAT:
        return "Mon-Sat"
    if days == MON_FRI:
        return "Mon-Fri"
    return "Custom"


def _as_day(bound: Union[date, datetime], timezone_label: str) -> date:
    if isinstance(bound, datetime):
        return to_local(bound, timezone_label).date()
    return bound


def _at_hour(day: date, hour: float) -> datetime:
    return datetime.combine(day, time.min) + timedelta(hours=hour)


# =============================================================================
# REGISTRY
# =============================================================================

class OperatingHoursRegistry:
    """
    Read-only registry of call center operating hours.

    Args:
        configs: Call center configurations. Defaults to DEFAULT_CALL_CENTERS.

    Raises:
        ConfigurationError: If two configs share a raw key, or if two distinct
            configs collapse to the same separator-stripped key.
    """

    def __init__(self, configs: Iterable[CallCenterConfig] = DEFAULT_CALL_CENTERS):
        self._configs: Tuple[CallCenterConfig, ...] = tuple(configs)
        self._by_raw: Dict[str, CallCenterConfig] = {}
        self._by_stripped: Dict[str, CallCenterConfig] = {}

        for config in self._configs:
            for raw_key in {config.id, config.name}:
                existing = self._by_raw.get(raw_key)
                if existing is not None and existing.id != config.id:
                    raise ConfigurationError(
                        f"Call center key '{raw_key}' is used by both "
                        f"'{existing.id}' and '{config.id}'"
                    )
                self._by_raw[raw_key] = config

                stripped = strip_separators(raw_key)
                existing = self._by_stripped.get(stripped)
                if existing is not None and existing.id != config.id:
                    raise ConfigurationError(
                        f"Call centers '{existing.id}' and '{config.id}' both "
                        f"normalize to '{stripped}'"
                    )
                self._by_stripped[stripped] = config

    @property
    def configs(self) -> Tuple[CallCenterConfig, ...]:
        return self._configs

    def lookup(self, call_center: Optional[str]) -> Optional[CallCenterConfig]:
        """
        Resolve a call center key to its config.

        Exact matches on the configured id or name win; the separator-stripped
        form is the fallback, so "CC14" resolves to the "CC_14" config.
        """
        if not call_center:
            return None
        config = self._by_raw.get(call_center)
        if config is not None:
            return config
        return self._by_stripped.get(strip_separators(call_center))

    def window_for(self, call_center: Optional[str]) -> Optional[OperatingWindow]:
        config = self.lookup(call_center)
        return config.window if config is not None else None

    def is_after_hours(self, timestamp: datetime, call_center: Optional[str]) -> bool:
        """
        Return True when the timestamp falls outside the center's operating hours.

        Centers with no config or no window are always in-hours (False).
        """
        window = self.window_for(call_center)
        if window is None:
            return False

        local = to_local(timestamp, window.timezone)
        if weekday_index(local) not in window.days_of_week:
            return True

        hour = fractional_hour(local)
        return not (window.start_hour <= hour < window.end_hour)

    def next_opening(self, day: date, window: OperatingWindow) -> Optional[datetime]:
        """Opening time of the first operating day after `day`, searching 7 days ahead."""
        for offset in range(1, NEXT_OPENING_SEARCH_DAYS + 1):
            candidate = day + timedelta(days=offset)
            if weekday_index(candidate) in window.days_of_week:
                return _at_hour(candidate, window.start_hour)
        return None

    def daily_windows(
        self,
        call_center: Optional[str],
        range_start: Union[date, datetime],
        range_end: Union[date, datetime],
    ) -> DailyWindows:
        """
        Generate in-hours and after-hours windows for every day in the range.

        For an operating day: one in-hours window [open, close) and one
        after-hours window from close to the next operating day's open. For a
        non-operating day: one after-hours window from midnight to the next
        operating day's open. When the first day of the range is an operating
        day, its early-morning span [midnight, open) is emitted as well so the
        windows cover the whole range. An after-hours window is omitted when
        no operating day exists within the 7-day search bound.

        Centers without hours get a single in-hours window per calendar day.
        """
        window = self.window_for(call_center)
        label = window.timezone if window is not None else "UTC"
        first_day = _as_day(range_start, label)
        last_day = _as_day(range_end, label)
        result = DailyWindows()

        day = first_day
        while day <= last_day:
            midnight = _at_hour(day, 0)

            if window is None:
                result.in_hours_windows.append(
                    TimeWindow(start=midnight, end=midnight + timedelta(days=1))
                )
                day += timedelta(days=1)
                continue

            next_open = self.next_opening(day, window)

            if weekday_index(day) in window.days_of_week:
                opening = _at_hour(day, window.start_hour)
                closing = _at_hour(day, window.end_hour)
                if day == first_day and opening > midnight:
                    result.after_hours_windows.append(TimeWindow(start=midnight, end=opening))
                result.in_hours_windows.append(TimeWindow(start=opening, end=closing))
                if next_open is not None:
                    result.after_hours_windows.append(TimeWindow(start=closing, end=next_open))
            elif next_open is not None:
                result.after_hours_windows.append(TimeWindow(start=midnight, end=next_open))

            day += timedelta(days=1)

        return result

    def format_window(self, call_center: Optional[str]) -> str:
        """Human-readable hours, e.g. "8:30am-4pm PST (Mon-Fri)"."""
        window = self.window_for(call_center)
        if window is None:
            return NO_HOURS_CONFIGURED
        return (
            f"{format_hour(window.start_hour)}-{format_hour(window.end_hour)} "
            f"{window.timezone} ({format_days(window.days_of_week)})"
        )

    def display_name(self, call_center: str) -> str:
        """Separator-free display name, taken from the config when one resolves."""
        config = self.lookup(call_center)
        return strip_separators(config.name if config is not None else call_center)

    def configured_dids(self) -> List[str]:
        return [config.did for config in self._configs if config.did]

    def summaries(self) -> List[CallCenterSummary]:
        return [
            CallCenterSummary(
                id=config.id,
                name=config.name,
                did=config.did,
                hasHours=config.window is not None,
                operatingHours=self.format_window(config.id),
            )
            for config in self._configs
        ]


# =============================================================================
# LOADING
# =============================================================================

_CONFIG_LIST = TypeAdapter(List[CallCenterConfig])


def load_registry(path: Optional[str] = None) -> OperatingHoursRegistry:
    """
    Build a registry from a JSON file, or from the built-in table when no path is given.

    The file holds a list of call center objects, e.g.:
        [{"id": "CC1", "displayName": "CC1", "did": "18334411529",
          "operatingWindow": {"startHour": 8, "endHour": 21,
                              "operatingDaysOfWeek": [1, 2, 3, 4, 5, 6],
                              "timezoneLabel": "PST"}}]

    Raises:
        ConfigurationError: If the file's centers collide.
        pydantic.ValidationError: If the file content is malformed.
        OSError: If the file cannot be read.
    """
    if path is None:
        return OperatingHoursRegistry(DEFAULT_CALL_CENTERS)

    configs = _CONFIG_LIST.validate_json(Path(path).read_text(encoding="utf-8"))
    logger.info(f"Loaded {len(configs)} call center configs from {path}")
    return OperatingHoursRegistry(configs)
