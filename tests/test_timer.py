"""
Work timer tests.
"""
from datetime import datetime, timedelta, timezone

import pytest

from housing_desk.modules.requests.timer import (
    elapsed_seconds,
    format_duration,
    parse_utc,
    paused_interval,
)

START = datetime(2024, 3, 1, 9, 0, 0, tzinfo=timezone.utc)


class TestParseUtc:

    def test_naive_string_is_utc(self):
        assert parse_utc("2024-03-01 09:00:00") == START

    def test_z_suffix(self):
        assert parse_utc("2024-03-01T09:00:00Z") == START

    def test_offset_is_converted(self):
        assert parse_utc("2024-03-01T14:00:00+05:00") == START

    def test_naive_datetime_is_utc(self):
        assert parse_utc(datetime(2024, 3, 1, 9, 0, 0)) == START

    def test_empty_values(self):
        assert parse_utc(None) is None
        assert parse_utc("") is None


class TestElapsedSeconds:

    def test_not_started(self):
        assert elapsed_seconds(None) == 0

    def test_running(self):
        now = START + timedelta(minutes=5, seconds=30)
        assert elapsed_seconds(START, now=now) == 330

    def test_paused_time_is_subtracted(self):
        now = START + timedelta(minutes=20)
        assert elapsed_seconds(START, total_paused_seconds=300, now=now) == 900

    def test_clock_frozen_while_paused(self):
        paused_at = START + timedelta(minutes=10)
        later = START + timedelta(hours=2)
        assert elapsed_seconds(START, 0, True, paused_at, now=later) == 600

    def test_string_timestamps_from_backend(self):
        now = START + timedelta(seconds=61)
        assert elapsed_seconds("2024-03-01 09:00:00", 0, now=now) == 61

    def test_never_negative(self):
        now = START - timedelta(minutes=1)
        assert elapsed_seconds(START, now=now) == 0
        assert elapsed_seconds(START, total_paused_seconds=10_000, now=START + timedelta(seconds=5)) == 0

    def test_fractional_seconds_floor(self):
        now = START + timedelta(seconds=9, milliseconds=999)
        assert elapsed_seconds(START, now=now) == 9


def test_paused_interval():
    assert paused_interval(None) == 0
    assert paused_interval(START, START + timedelta(seconds=125)) == 125


@pytest.mark.parametrize(
    "seconds, expected",
    [
        (0, "0:00"),
        (59, "0:59"),
        (61, "1:01"),
        (3599, "59:59"),
        (3600, "1:00:00"),
        (3725, "1:02:05"),
        (None, "0:00"),
        (-5, "0:00"),
    ],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected
