"""Tests for attachment name templates and date formatting."""

from datetime import datetime, timedelta
from itertools import islice

import pytest

from attachkeeper.core.config import AttachmentsConfig
from attachkeeper.utils.naming import NameResolver, format_moment, virtual_timestamps

from conftest import FIXED_NOW, fixed_clock

MOMENT = datetime(2024, 3, 7, 14, 5, 9, 42000)


@pytest.mark.parametrize(
    "fmt,expected",
    [
        ("YYYYMMDDHHmmssSSS", "20240307140509042"),
        ("YYYY-MM-DD", "2024-03-07"),
        ("YY.M.D", "24.3.7"),
        ("hh:mm A", "02:05 PM"),
        ("h a", "2 pm"),
        ("H:m:s", "14:5:9"),
        ("[Day] D", "Day 7"),
    ],
)
def test_format_moment(fmt, expected):
    assert format_moment(MOMENT, fmt) == expected


def test_format_moment_midnight_is_twelve():
    assert format_moment(datetime(2024, 1, 1, 0, 30), "h:mm a") == "12:30 am"


def test_virtual_timestamps_advance_by_one_minute():
    stamps = list(islice(virtual_timestamps(FIXED_NOW), 3))
    assert stamps == [
        FIXED_NOW + timedelta(minutes=1),
        FIXED_NOW + timedelta(minutes=2),
        FIXED_NOW + timedelta(minutes=3),
    ]


def test_base_name_uses_clock_by_default():
    resolver = NameResolver(AttachmentsConfig(), clock=fixed_clock)
    assert resolver.base_name_for("Design") == "Design-20240101000000000"


def test_base_name_sanitizes_note_name_and_result():
    settings = AttachmentsConfig(name_format="{notename}: {date}", date_format="YYYY")
    resolver = NameResolver(settings, clock=fixed_clock)
    assert resolver.base_name_for("Topic #1") == "Topic 1 2024"


def test_batch_names_are_distinct_and_increasing():
    resolver = NameResolver(AttachmentsConfig(), clock=fixed_clock)
    stamps = resolver.batch_timestamps()
    names = [resolver.base_name_for("Design", next(stamps)) for _ in range(5)]
    assert names[0] == "Design-20240101000100000"
    assert len(set(names)) == 5
    assert names == sorted(names)
