from datetime import datetime, timedelta, timezone

import pytest

from utils.notification_rules import (
    dedupe_key, drop_expired, journal_reminder, merge_notifications, normalize, parse_reminder_time, realtime_key,
    should_toast, within_reminder_window,
)

NOW = datetime(2026, 3, 10, 20, 0)


def test_dedupe_key_ignores_whitespace_and_case():
    assert dedupe_key("Daily  Check-in", "How are\nyou?") == dedupe_key("daily check-in", "How are you?")
    assert dedupe_key("A", "b") == "a_b"


def test_drop_expired():
    items = [
        {"id": "1", "expires_at": None},
        {"id": "2", "expires_at": NOW - timedelta(seconds=1)},
        {"id": "3", "expires_at": NOW + timedelta(days=1)},
    ]
    assert [n["id"] for n in drop_expired(items, NOW)] == ["1", "3"]


def test_merge_replaces_by_id_and_sorts_newest_first():
    local = [
        {"id": "a", "read": False, "created_at": NOW - timedelta(hours=2)},
        {"id": "b", "read": False, "created_at": NOW - timedelta(hours=1)},
    ]
    remote = [
        {"id": "a", "read": True, "created_at": NOW - timedelta(hours=2)},
        {"id": "c", "read": False, "created_at": NOW},
    ]
    merged = merge_notifications(local, remote)
    assert [n["id"] for n in merged] == ["c", "b", "a"]
    assert merged[2]["read"] is True


def test_normalize_parses_client_timestamps():
    item = normalize({"id": "x", "created_at": "2026-03-10T18:00:00Z", "expires_at": None})
    assert item["created_at"] == datetime(2026, 3, 10, 18, 0)
    assert item["expires_at"] is None


def test_normalize_converts_aware_datetimes():
    aware = datetime(2026, 3, 10, 20, 0, tzinfo=timezone(timedelta(hours=2)))
    assert normalize({"id": 7, "created_at": aware})["created_at"] == datetime(2026, 3, 10, 18, 0)
    assert normalize({"id": 7, "created_at": aware})["id"] == "7"


@pytest.mark.parametrize("item", [
    {},
    {"created_at": "2026-03-10T18:00:00Z"},
    {"id": "x"},
    {"id": "x", "created_at": "yesterday"},
    {"id": "x", "created_at": 1741629600},
    {"id": "x", "created_at": "2026-03-10T18:00:00", "expires_at": "soon"},
])
def test_normalize_rejects_incomplete_client_copies(item):
    with pytest.raises(ValueError):
        normalize(item)


def test_reminder_window():
    assert parse_reminder_time(None).hour == 20
    assert within_reminder_window(NOW + timedelta(minutes=5), "20:00")
    assert within_reminder_window(NOW - timedelta(minutes=5), "20:00")
    assert not within_reminder_window(NOW + timedelta(minutes=6), "20:00")
    with pytest.raises(ValueError):
        parse_reminder_time("eight")


@pytest.mark.parametrize("days,title,priority", [
    (None, "Start Your Journal", "medium"),
    (2, "Journal Check-in", "medium"),
    (5, "Journal Check-in", "high"),
])
def test_journal_reminder(days, title, priority):
    reminder = journal_reminder(days)
    assert reminder["title"] == title
    assert reminder["priority"] == priority


def test_no_journal_reminder_when_recent():
    assert journal_reminder(0) is None
    assert journal_reminder(1) is None


def test_realtime_key_and_toast():
    item = {"id": "n1", "created_at": NOW, "priority": "high"}
    assert realtime_key(item) == "n1-2026-03-10T20:00:00"
    assert should_toast(item)
    assert not should_toast({"priority": "medium"})
