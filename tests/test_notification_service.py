import asyncio
from datetime import datetime, timedelta

import pytest

from services import notification_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import create_user
from utils.config import CONFIG

NOW = datetime(2026, 3, 10, 12, 0)


async def test_duplicate_content_is_suppressed_per_user(db):
    first = await notification_service.create_notification("u1", "Hello", "World", now=NOW)
    again = await notification_service.create_notification("u1", "hello", " World ", now=NOW)
    other_user = await notification_service.create_notification("u2", "Hello", "World", now=NOW)

    assert first is not None and first["read"] is False
    assert again is None
    assert other_user is not None
    assert await db["user_notifications"].count_documents({}) == 2


async def test_invalid_type_and_priority(db):
    with pytest.raises(ValidationError):
        await notification_service.create_notification("u1", "t", "m", type="spam")
    with pytest.raises(ValidationError):
        await notification_service.create_notification("u1", "t", "m", priority="urgent")


async def test_helpers_set_type_priority_and_expiry(db):
    achievement = await notification_service.create_achievement("u1", "Milestone", "7 days", now=NOW)
    alert = await notification_service.create_alert("u1", "Alert", "Check", now=NOW)
    reminder = await notification_service.create_reminder("u1", "Remind", "Journal", now=NOW)

    assert achievement["type"] == "achievement" and achievement["priority"] == "medium"
    assert achievement["expires_at"] == NOW + timedelta(days=30)
    assert alert["priority"] == "high"
    assert reminder["show_toast"] is True


async def test_listing_drops_expired_and_counts_unread(db):
    await notification_service.create_notification("u1", "Old", "gone", expires_in=1, now=NOW - timedelta(days=3))
    kept = await notification_service.create_notification("u1", "New", "here", now=NOW)

    listing = await notification_service.list_notifications("u1", now=NOW)
    assert [n["id"] for n in listing["notifications"]] == [kept["id"]]
    assert listing["unread_count"] == 1

    await notification_service.mark_read("u1", kept["id"])
    assert (await notification_service.list_notifications("u1", now=NOW))["unread_count"] == 0


async def test_mark_all_read_and_delete(db):
    a = await notification_service.create_notification("u1", "A", "a", now=NOW)
    await notification_service.create_notification("u1", "B", "b", now=NOW)
    assert await notification_service.mark_all_read("u1") == 2

    await notification_service.delete_notification("u1", a["id"])
    with pytest.raises(NotFoundError):
        await notification_service.delete_notification("u1", a["id"])
    with pytest.raises(NotFoundError):
        await notification_service.mark_read("u2", a["id"])


async def test_sync_merges_client_copies(db):
    stored = await notification_service.create_notification("u1", "Stored", "s", now=NOW)
    local = [
        {"id": stored["id"], "title": "Stored", "read": True, "created_at": NOW.isoformat(), "expires_at": None},
        {"id": "local-only", "title": "Local", "read": False,
         "created_at": (NOW - timedelta(hours=1)).isoformat() + "Z", "expires_at": None},
    ]
    synced = await notification_service.sync_notifications("u1", local, now=NOW)
    assert [n["id"] for n in synced["notifications"]] == [stored["id"], "local-only"]
    assert synced["unread_count"] == 2


async def test_scheduled_notifications_dispatch_once(db):
    await notification_service.schedule_notification("u1", NOW - timedelta(minutes=1), "Due", "now")
    await notification_service.schedule_notification("u1", NOW + timedelta(hours=1), "Later", "soon")

    assert await notification_service.dispatch_due(NOW) == 1
    assert await notification_service.dispatch_due(NOW) == 0
    titles = [n["title"] for n in (await notification_service.list_notifications("u1", NOW))["notifications"]]
    assert titles == ["Due"]


async def test_daily_reminders_once_per_day(db):
    created = await notification_service.generate_daily_reminders("u1", now=NOW)
    titles = {n["title"] for n in created}
    assert {"Start Your Journal", "Daily Wellness Chat", "Anxiety Management"} <= titles
    assert "Mark Your Clean Day" not in titles

    assert await notification_service.generate_daily_reminders("u1", now=NOW + timedelta(hours=1)) == []


async def test_daily_reminders_for_journal_gap_and_clean_day(db):
    await db["journal_entries"].insert_one({"user_id": "u1", "content": "x", "created_at": NOW - timedelta(days=6)})
    type_id = (await db["addiction_types"].insert_one({"name": "Nicotine", "category": "substance"})).inserted_id
    await db["user_addictions"].insert_one({
        "user_id": "u1", "addiction_type_id": str(type_id), "is_active": True,
        "last_clean_day_marked": "2026-03-09", "created_at": NOW,
    })
    await db["anxiety_sessions"].insert_one({"user_id": "u1", "created_at": NOW - timedelta(hours=1)})

    created = {n["title"]: n for n in await notification_service.generate_daily_reminders("u1", now=NOW)}
    assert created["Journal Check-in"]["priority"] == "high"
    assert "Nicotine" in created["Mark Your Clean Day"]["message"]
    assert "Anxiety Management" not in created


async def test_admin_gets_pending_therapist_alert(db, monkeypatch):
    monkeypatch.setattr(CONFIG, "admin_email", "admin@puremind.app")
    await db["therapist_profiles"].insert_one({"verification_status": "pending", "professional_title": "LCSW"})

    created = await notification_service.generate_daily_reminders("admin-1", "admin@puremind.app", now=NOW)
    alert = next(n for n in created if n["type"] == "alert")
    assert alert["title"] == "1 Pending Therapist Applications"
    assert alert["metadata"]["pending_count"] == 1


async def test_reminder_time_check(db):
    at_eight = datetime(2026, 3, 10, 20, 3)
    assert await notification_service.check_reminder_time("u1", NOW) is None

    reminder = await notification_service.check_reminder_time("u1", at_eight)
    assert reminder["title"] == "Daily Check-in"
    assert await notification_service.check_reminder_time("u1", at_eight) is None


async def test_settings_default_and_persist_on_the_user(db):
    assert await notification_service.get_settings("u1") == {"daily_reminders": True, "reminder_time": "20:00"}
    await notification_service.update_settings("u1", reminder_time="07:15")
    assert (await notification_service.get_settings("u1"))["reminder_time"] == "07:15"


async def test_reminder_time_respects_settings(db):
    await notification_service.update_settings("u1", daily_reminders=False)
    assert await notification_service.check_reminder_time("u1", datetime(2026, 3, 10, 20, 0)) is None

    settings = await notification_service.update_settings("u1", daily_reminders=True, reminder_time="08:30")
    assert settings == {"daily_reminders": True, "reminder_time": "08:30"}
    assert await notification_service.check_reminder_time("u1", datetime(2026, 3, 10, 8, 31)) is not None

    with pytest.raises(ValidationError):
        await notification_service.update_settings("u1", reminder_time="late")


async def test_admin_notification_requires_admin_user(db, monkeypatch):
    monkeypatch.setattr(CONFIG, "admin_email", "admin@puremind.app")
    assert await notification_service.send_admin_notification("New", "Application") is False

    await create_user("admin-1", "admin@puremind.app")
    assert await notification_service.send_admin_notification("New", "Application", type="alert") is True
    listing = await notification_service.list_notifications("admin-1")
    assert listing["notifications"][0]["type"] == "alert"

    with pytest.raises(ValidationError):
        await notification_service.send_admin_notification("New", "x", type="like")


async def test_poll_returns_each_notification_once(db):
    high = await notification_service.create_alert("u1", "Urgent", "now")
    await notification_service.create_notification("u1", "Info", "fyi")

    fresh = await notification_service.poll_new("u1")
    assert len(fresh) == 2
    assert next(n for n in fresh if n["id"] == high["id"])["toast"] is True
    assert await notification_service.poll_new("u1") == []


async def test_dedupe_window_expires(db, monkeypatch):
    monkeypatch.setattr(CONFIG, "notification_dedupe_seconds", 1)
    assert await notification_service.create_notification("u1", "Hydrate", "Water", now=NOW) is not None
    assert await notification_service.create_notification("u1", "Hydrate", "Water", now=NOW) is None

    await asyncio.sleep(1.2)
    assert await notification_service.create_notification("u1", "Hydrate", "Water", now=NOW) is not None
    assert await db["user_notifications"].count_documents({"user_id": "u1"}) == 2


async def test_sync_rejects_incomplete_client_copies(db):
    with pytest.raises(ValidationError):
        await notification_service.sync_notifications("u1", [{}], now=NOW)
    with pytest.raises(ValidationError):
        await notification_service.sync_notifications("u1", [{"id": "x", "created_at": "not a date"}], now=NOW)


async def test_scheduling_rejects_unknown_priority(db):
    with pytest.raises(ValidationError):
        await notification_service.schedule_notification("u1", NOW, "Bad", "urgent", priority="urgent")
    assert await db["scheduled_notifications"].count_documents({}) == 0


async def test_failed_scheduled_item_does_not_block_the_queue(db):
    await db["scheduled_notifications"].insert_one({
        "user_id": "u1", "scheduled_time": NOW - timedelta(hours=2), "title": "Bad", "message": "b",
        "type": "reminder", "priority": "urgent", "processed": False,
    })
    await notification_service.schedule_notification("u1", NOW - timedelta(hours=1), "Good", "g")

    assert await notification_service.dispatch_due(NOW) == 1
    assert await notification_service.dispatch_due(NOW) == 0

    titles = [n["title"] for n in (await notification_service.list_notifications("u1", NOW))["notifications"]]
    assert titles == ["Good"]
    bad = await db["scheduled_notifications"].find_one({"title": "Bad"})
    assert bad["processed"] is True
    assert "priority" in bad["error"]
    assert await db["scheduled_notifications"].count_documents({"processed": False}) == 0
