from datetime import datetime, timedelta

import pytest

from wastewatch.formatting import display_name, due_label, relative_date, time_slot
from wastewatch.schemas import UserRecord

NOW = datetime(2024, 6, 15, 12, 0)


@pytest.mark.parametrize("days_ago, expected", [
    (0, "today"),
    (1, "yesterday"),
    (3, "3 days ago"),
    (14, "2 weeks ago"),
    (65, "2 months ago"),
])
def test_relative_date(days_ago, expected):
    assert relative_date(NOW - timedelta(days=days_ago), NOW) == expected


def test_relative_date_unknown():
    assert relative_date(None, NOW) == "unknown"


@pytest.mark.parametrize("priority, age, expected", [
    ("critical", timedelta(hours=1), "1 day"),
    ("critical", timedelta(days=1), "Today"),
    ("critical", timedelta(days=2), "Overdue"),
    ("high", timedelta(0), "3 days"),
    ("low", timedelta(days=2), "5 days"),
    (None, timedelta(0), "7 days"),
])
def test_due_label(priority, age, expected):
    assert due_label(NOW - age, priority, NOW) == expected


def test_due_label_unknown():
    assert due_label(None, "high", NOW) == "Unknown"


def test_time_slot():
    assert time_slot(0) == "09:00 - 10:30"
    assert time_slot(2) == "13:00 - 14:30"


def test_display_name():
    assert display_name(UserRecord(id="1", clerk_id="u", first_name="Asha", last_name="Rao")) == "Asha Rao"
    assert display_name(UserRecord(id="1", clerk_id="u", first_name="", last_name="", email="a@x.org")) == "a@x.org"
    assert display_name(UserRecord(id="1", clerk_id="u", first_name=None, last_name=None)) == "Unknown User"
    assert display_name(None, "Unknown") == "Unknown"
