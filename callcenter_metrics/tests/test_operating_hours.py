"""
Operating-Hours Registry Test Module

Covers key resolution, after-hours classification, window generation and the
display helpers of services/operating_hours.py.

Test Coverage:
- Raw and separator-stripped lookups, collision detection
- After-hours rules: operating window, non-operating day, no configuration
- Fixed timezone offsets for aware timestamps
- Daily window generation: full coverage, no in/after overlap, search bound
- Hour/day formatting and JSON configuration loading
"""

import json
from datetime import date, datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from callcenter_metrics.models.schemas import CallCenterConfig, OperatingWindow
from callcenter_metrics.services.operating_hours import (
    DEFAULT_CALL_CENTERS,
    NO_HOURS_CONFIGURED,
    ConfigurationError,
    OperatingHoursRegistry,
    format_hour,
    load_registry,
    strip_separators,
    to_local,
    weekday_index,
)


def _config(center_id, start=None, end=None, days=frozenset({1, 2, 3, 4, 5})):
    window = None
    if start is not None:
        window = OperatingWindow(start_hour=start, end_hour=end, days_of_week=days)
    return CallCenterConfig(id=center_id, name=center_id, window=window)


# =============================================================================
# Helpers
# =============================================================================

class TestHelpers:
    """Tests for key, weekday and formatting helpers."""

    @pytest.mark.parametrize("raw, expected", [
        ("CC_14", "CC14"),
        ("CC-14B", "CC14B"),
        ("CC 23 A", "CC23A"),
        ("CX", "CX"),
    ])
    def test_strip_separators(self, raw, expected):
        assert strip_separators(raw) == expected

    def test_weekday_index_starts_on_sunday(self):
        assert weekday_index(date(2024, 3, 3)) == 0
        assert weekday_index(date(2024, 3, 5)) == 2
        assert weekday_index(datetime(2024, 3, 9, 12, 0)) == 6

    @pytest.mark.parametrize("hour, expected", [
        (8, "8am"),
        (8.5, "8:30am"),
        (17.5, "5:30pm"),
        (12, "12pm"),
        (0, "12am"),
        (21, "9pm"),
    ])
    def test_format_hour(self, hour, expected):
        assert format_hour(hour) == expected

    def test_to_local_keeps_naive_timestamps(self):
        moment = datetime(2024, 3, 5, 10, 0)
        assert to_local(moment, "PST") == moment

    def test_to_local_applies_fixed_offset(self):
        moment = datetime(2024, 3, 5, 18, 0, tzinfo=timezone.utc)
        assert to_local(moment, "PST") == datetime(2024, 3, 5, 10, 0)
        assert to_local(moment, "EST") == datetime(2024, 3, 5, 13, 0)

    def test_to_local_treats_unknown_label_as_utc(self):
        moment = datetime(2024, 3, 5, 18, 0, tzinfo=timezone.utc)
        assert to_local(moment, "XYZ") == datetime(2024, 3, 5, 18, 0)


# =============================================================================
# Configuration
# =============================================================================

class TestConfiguration:
    """Tests for registry construction and lookups."""

    def test_default_table_builds(self, default_registry):
        assert len(default_registry.configs) == len(DEFAULT_CALL_CENTERS)

    def test_lookup_by_raw_key(self, registry):
        assert registry.lookup("CC_14").id == "CC_14"

    def test_lookup_by_stripped_key(self, registry):
        assert registry.lookup("CC14").id == "CC_14"
        assert registry.lookup("CC-14").id == "CC_14"

    def test_lookup_unknown_or_empty(self, registry):
        assert registry.lookup("CC99") is None
        assert registry.lookup("") is None
        assert registry.lookup(None) is None

    def test_default_table_keeps_similar_centers_apart(self, default_registry):
        assert default_registry.lookup("CC14").id == "CC_14"
        assert default_registry.lookup("CC14B").id == "CC14B"

    def test_stripped_collision_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            OperatingHoursRegistry([_config("CC_14"), _config("CC14")])

    def test_duplicate_raw_key_is_configuration_error(self):
        first = CallCenterConfig(id="CC1", name="Main")
        second = CallCenterConfig(id="CC2", name="Main")
        with pytest.raises(ConfigurationError):
            OperatingHoursRegistry([first, second])

    def test_window_rejects_inverted_hours(self):
        with pytest.raises(ValidationError):
            OperatingWindow(start_hour=17, end_hour=8, days_of_week={1, 2})

    def test_window_rejects_unknown_weekday(self):
        with pytest.raises(ValidationError):
            OperatingWindow(start_hour=8, end_hour=17, days_of_week={1, 7})

    def test_display_name(self, registry):
        assert registry.display_name("CC_14") == "CC14"
        assert registry.display_name("CC14") == "CC14"
        assert registry.display_name("NEW_CENTER") == "NEWCENTER"

    def test_configured_dids(self, registry):
        assert registry.configured_dids() == ["18005550100"]


# =============================================================================
# After-Hours Classification
# =============================================================================

class TestIsAfterHours:
    """Tests for OperatingHoursRegistry.is_after_hours."""

    def test_operating_day_inside_window(self, registry):
        # Tuesday 10:00
        assert registry.is_after_hours(datetime(2024, 3, 5, 10, 0), "CC1") is False

    def test_non_operating_day(self, registry):
        # Saturday 10:00
        assert registry.is_after_hours(datetime(2024, 3, 9, 10, 0), "CC1") is True

    def test_saturday_center(self, registry):
        assert registry.is_after_hours(datetime(2024, 3, 9, 10, 0), "CC3") is False
        assert registry.is_after_hours(datetime(2024, 3, 10, 10, 0), "CC3") is True

    @pytest.mark.parametrize("hour, minute, expected", [
        (7, 59, True),
        (8, 0, False),
        (16, 59, False),
        (17, 0, True),
        (23, 30, True),
    ])
    def test_window_bounds(self, registry, hour, minute, expected):
        assert registry.is_after_hours(datetime(2024, 3, 5, hour, minute), "CC1") is expected

    def test_stripped_key_uses_same_window(self, registry):
        moment = datetime(2024, 3, 5, 17, 30)
        assert registry.is_after_hours(moment, "CC14") is False
        assert registry.is_after_hours(moment, "CC_14") is False

    def test_aware_timestamp_is_converted(self, registry):
        # 18:00 UTC on Tuesday is 10:00 PST
        assert registry.is_after_hours(datetime(2024, 3, 5, 18, 0, tzinfo=timezone.utc), "CC1") is False
        # 02:00 UTC on Tuesday is 18:00 PST on Monday
        assert registry.is_after_hours(datetime(2024, 3, 5, 2, 0, tzinfo=timezone.utc), "CC1") is True

    @pytest.mark.property
    @pytest.mark.parametrize("center", ["CC2", "CC99", "", None])
    def test_unconfigured_center_is_never_after_hours(self, registry, center):
        start = datetime(2024, 3, 3, 0, 0)
        for step in range(7 * 24 * 2):
            moment = start + timedelta(minutes=30 * step)
            assert registry.is_after_hours(moment, center) is False


# =============================================================================
# Window Generation
# =============================================================================

class TestDailyWindows:
    """Tests for OperatingHoursRegistry.daily_windows."""

    def test_operating_day_windows(self, registry):
        windows = registry.daily_windows("CC1", date(2024, 3, 5), date(2024, 3, 5))

        assert [(w.start, w.end) for w in windows.in_hours_windows] == [
            (datetime(2024, 3, 5, 8), datetime(2024, 3, 5, 17)),
        ]
        assert [(w.start, w.end) for w in windows.after_hours_windows] == [
            (datetime(2024, 3, 5, 0), datetime(2024, 3, 5, 8)),
            (datetime(2024, 3, 5, 17), datetime(2024, 3, 6, 8)),
        ]

    def test_weekend_runs_to_next_opening(self, registry):
        windows = registry.daily_windows("CC1", date(2024, 3, 9), date(2024, 3, 9))

        assert windows.in_hours_windows == []
        assert [(w.start, w.end) for w in windows.after_hours_windows] == [
            (datetime(2024, 3, 9, 0), datetime(2024, 3, 11, 8)),
        ]

    def test_fractional_hours(self, default_registry):
        windows = default_registry.daily_windows("CC23A", date(2024, 3, 5), date(2024, 3, 5))
        assert windows.in_hours_windows[0].start == datetime(2024, 3, 5, 9, 30)
        assert windows.in_hours_windows[0].end == datetime(2024, 3, 5, 17, 30)

    def test_center_without_hours_is_in_hours_all_day(self, registry):
        windows = registry.daily_windows("CC2", date(2024, 3, 4), date(2024, 3, 6))

        assert len(windows.in_hours_windows) == 3
        assert windows.after_hours_windows == []
        assert windows.in_hours_windows[0].start == datetime(2024, 3, 4)
        assert windows.in_hours_windows[-1].end == datetime(2024, 3, 7)

    @pytest.mark.property
    @pytest.mark.parametrize("center", ["CC1", "CC14", "CC3"])
    def test_every_moment_is_in_exactly_one_kind_of_window(self, registry, center):
        windows = registry.daily_windows(center, date(2024, 3, 6), date(2024, 3, 12))

        start = datetime(2024, 3, 6, 0, 0)
        end = datetime(2024, 3, 13, 0, 0)
        moment = start
        while moment < end:
            in_hours = any(w.contains(moment) for w in windows.in_hours_windows)
            after_hours = any(w.contains(moment) for w in windows.after_hours_windows)

            assert in_hours != after_hours, moment
            assert after_hours == registry.is_after_hours(moment, center), moment
            moment += timedelta(minutes=15)

    def test_no_operating_day_within_search_bound(self):
        closed = OperatingHoursRegistry([_config("CC9", 8, 17, frozenset())])
        windows = closed.daily_windows("CC9", date(2024, 3, 4), date(2024, 3, 5))

        # Without a next opening there is nothing to close an after-hours window
        assert windows.in_hours_windows == []
        assert windows.after_hours_windows == []
        assert closed.is_after_hours(datetime(2024, 3, 4, 10), "CC9") is True


# =============================================================================
# Display and Loading
# =============================================================================

class TestFormatting:
    """Tests for format_window and summaries."""

    def test_format_window(self, registry, default_registry):
        assert registry.format_window("CC1") == "8am-5pm PST (Mon-Fri)"
        assert registry.format_window("CC3") == "8am-9pm PST (Mon-Sat)"
        assert default_registry.format_window("CC23A") == "9:30am-5:30pm PST (Mon-Fri)"
        assert default_registry.format_window("CC13") == "9am-6pm MST (Mon-Fri)"

    def test_format_window_without_hours(self, registry):
        assert registry.format_window("CC2") == NO_HOURS_CONFIGURED
        assert registry.format_window("CC99") == NO_HOURS_CONFIGURED

    def test_custom_days(self):
        custom = OperatingHoursRegistry([_config("CC9", 8, 17, frozenset({1, 3, 5}))])
        assert custom.format_window("CC9") == "8am-5pm PST (Custom)"

    def test_summaries(self, registry):
        summaries = {summary.id: summary for summary in registry.summaries()}

        assert summaries["CC1"].hasHours is True
        assert summaries["CC1"].did == "18005550100"
        assert summaries["CC2"].hasHours is False
        assert summaries["CC2"].operatingHours == NO_HOURS_CONFIGURED


class TestLoadRegistry:
    """Tests for load_registry."""

    def test_without_path_uses_built_in_table(self):
        assert len(load_registry(None).configs) == len(DEFAULT_CALL_CENTERS)

    def test_reads_json_file(self, tmp_path):
        path = tmp_path / "call_centers.json"
        path.write_text(json.dumps([
            {
                "id": "CC1",
                "displayName": "CC1",
                "did": "18334411529",
                "operatingWindow": {
                    "startHour": 8,
                    "endHour": 21,
                    "operatingDaysOfWeek": [1, 2, 3, 4, 5, 6],
                    "timezoneLabel": "PST",
                },
            },
            {"id": "CX", "displayName": "CX"},
        ]))

        loaded = load_registry(str(path))

        assert [config.id for config in loaded.configs] == ["CC1", "CX"]
        assert loaded.format_window("CC1") == "8am-9pm PST (Mon-Sat)"
        assert loaded.window_for("CX") is None

    def test_malformed_file_raises(self, tmp_path):
        path = tmp_path / "call_centers.json"
        path.write_text(json.dumps([
            {"id": "CC1", "displayName": "CC1",
             "operatingWindow": {"startHour": 18, "endHour": 8, "operatingDaysOfWeek": [1]}},
        ]))

        with pytest.raises(ValidationError):
            load_registry(str(path))
