"""
services/notification_service.py
────────────────────────────
User notifications with a content dedupe window, scheduled delivery,
daily reminders, admin alerts and the realtime feed.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from aiocache import Cache

from services import journal_service
from services.daily_reset_service import get_daily_state, update_daily_state
from services.errors import NotFoundError, ValidationError
from services.puremind_db import (
    ADDICTION_TYPES, ANXIETY_SESSIONS, NOTIFICATIONS, SCHEDULED_NOTIFICATIONS, THERAPISTS, USER_ADDICTIONS, USERS,
    as_naive_utc, day_key, get_db, get_user, get_user_by_email, public, public_many, to_object_id, utcnow,
)
from utils.config import CONFIG
from utils.notification_rules import (
    ACHIEVEMENT_EXPIRY_DAYS, ADMIN_NOTIFICATION_TYPES, DEFAULT_REMINDER_TIME, NOTIFICATION_TYPES, PRIORITIES,
    dedupe_key, drop_expired, expires_at, journal_reminder, merge_notifications, normalize, parse_reminder_time,
    realtime_key, should_toast, within_reminder_window,
)

logger = logging.getLogger("puremind.notifications")

# Recently created content keys (dedupe window) and realtime keys already delivered
recent_cache = Cache(Cache.MEMORY, namespace="notification_dedupe")
processed_cache = Cache(Cache.MEMORY, namespace="notification_realtime")
PROCESSED_TTL = 24 * 60 * 60


async def reset_caches() -> None:
    await recent_cache.clear()
    await processed_cache.clear()


# ──────────────────────────────
# Create
# ──────────────────────────────
async def create_notification(
    user_id: str,
    title: str,
    message: str,
    type: str = "info",
    priority: str = "medium",
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    expires_in: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
    show_toast: bool = False,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """Insert a notification; ``None`` when identical content was created within the window."""
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"type must be one of {list(NOTIFICATION_TYPES)}")
    if priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of {list(PRIORITIES)}")

    key = f"{user_id}:{dedupe_key(title, message)}"
    try:
        await recent_cache.add(key, True, ttl=CONFIG.notification_dedupe_seconds)
    except ValueError:
        logger.info(f"🔁 Duplicate notification suppressed for {user_id}: {title}")
        return None

    now = now or utcnow()
    doc = {
        "user_id": user_id,
        "title": title,
        "message": message,
        "type": type,
        "priority": priority,
        "read": False,
        "action_url": action_url,
        "action_text": action_text,
        "created_at": now,
        "expires_at": expires_at(now, expires_in),
        "metadata": metadata or {},
        "show_toast": show_toast,
    }
    db = get_db()
    result = await db[NOTIFICATIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"🔔 Notification [{type}/{priority}] for {user_id}: {title}")
    return public(doc)


async def create_reminder(user_id: str, title: str, message: str, priority: str = "medium", **options):
    return await create_notification(user_id, title, message, "reminder", priority=priority, show_toast=True, **options)


async def create_achievement(user_id: str, title: str, message: str, **options):
    return await create_notification(
        user_id, title, message, "achievement",
        priority="medium", expires_in=ACHIEVEMENT_EXPIRY_DAYS, show_toast=True, **options,
    )


async def create_alert(user_id: str, title: str, message: str, priority: str = "high", **options):
    return await create_notification(user_id, title, message, "alert", priority=priority, show_toast=True, **options)


# ──────────────────────────────
# Read / update / delete
# ──────────────────────────────
async def list_notifications(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    now = now or utcnow()
    db = get_db()
    docs = await db[NOTIFICATIONS].find({"user_id": user_id}).sort("created_at", -1).to_list(length=None)
    notifications = drop_expired(public_many(docs), now)
    return {
        "notifications": notifications,
        "unread_count": sum(1 for n in notifications if not n["read"]),
    }


async def sync_notifications(user_id: str, local: List[Dict[str, Any]], now: Optional[datetime] = None) -> Dict[str, Any]:
    """Merge a client's cached list with the stored one; stored versions win."""
    now = now or utcnow()
    try:
        cached = [normalize(n) for n in local]
    except ValueError as e:
        raise ValidationError(f"Invalid client notification: {e}")
    remote = (await list_notifications(user_id, now))["notifications"]
    merged = drop_expired(merge_notifications(cached, remote), now)
    return {"notifications": merged, "unread_count": sum(1 for n in merged if not n.get("read"))}


async def unread_count(user_id: str) -> int:
    return (await list_notifications(user_id))["unread_count"]


async def mark_read(user_id: str, notification_id: str) -> None:
    db = get_db()
    result = await db[NOTIFICATIONS].update_one(
        {"_id": to_object_id(notification_id), "user_id": user_id}, {"$set": {"read": True}}
    )
    if not result.matched_count:
        raise NotFoundError(f"Notification {notification_id} not found")


async def mark_all_read(user_id: str) -> int:
    db = get_db()
    result = await db[NOTIFICATIONS].update_many({"user_id": user_id, "read": False}, {"$set": {"read": True}})
    return result.modified_count


async def delete_notification(user_id: str, notification_id: str) -> None:
    db = get_db()
    result = await db[NOTIFICATIONS].delete_one({"_id": to_object_id(notification_id), "user_id": user_id})
    if not result.deleted_count:
        raise NotFoundError(f"Notification {notification_id} not found")


# ──────────────────────────────
# Scheduled
# ──────────────────────────────
async def schedule_notification(
    user_id: str,
    scheduled_time: datetime,
    title: str,
    message: str,
    type: str = "reminder",
    priority: str = "medium",
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    expires_in: Optional[int] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if type not in NOTIFICATION_TYPES:
        raise ValidationError(f"type must be one of {list(NOTIFICATION_TYPES)}")
    if priority not in PRIORITIES:
        raise ValidationError(f"priority must be one of {list(PRIORITIES)}")
    doc = {
        "user_id": user_id,
        "scheduled_time": as_naive_utc(scheduled_time),
        "title": title,
        "message": message,
        "type": type,
        "priority": priority,
        "action_url": action_url,
        "action_text": action_text,
        "expires_in_days": expires_in,
        "metadata": metadata or {},
        "processed": False,
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[SCHEDULED_NOTIFICATIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return public(doc)  # type: ignore[return-value]


async def dispatch_due(now: Optional[datetime] = None) -> int:
    """Deliver every unprocessed scheduled notification whose time has come."""
    now = now or utcnow()
    db = get_db()
    due = await db[SCHEDULED_NOTIFICATIONS].find(
        {"processed": False, "scheduled_time": {"$lte": now}}
    ).sort("scheduled_time", 1).to_list(length=None)

    delivered = 0
    for item in due:
        outcome: Dict[str, Any] = {"processed": True, "processed_at": now}
        try:
            created = await create_notification(
                item["user_id"], item["title"], item["message"], item["type"],
                priority=item.get("priority", "medium"),
                action_url=item.get("action_url"),
                action_text=item.get("action_text"),
                expires_in=item.get("expires_in_days"),
                metadata=item.get("metadata"),
                now=now,
            )
        except Exception as e:
            logger.error(f"❌ Scheduled notification {item['_id']} failed: {e}")
            outcome["error"] = str(e)
            created = None
        await db[SCHEDULED_NOTIFICATIONS].update_one({"_id": item["_id"]}, {"$set": outcome})
        if created:
            delivered += 1
    if due:
        logger.info(f"📬 Dispatched {delivered}/{len(due)} scheduled notifications")
    return delivered


# ──────────────────────────────
# Daily reminders
# ──────────────────────────────
async def _pending_therapists() -> List[Dict[str, Any]]:
    db = get_db()
    return await db[THERAPISTS].find({"verification_status": "pending"}).to_list(length=None)


async def _latest_active_addiction(user_id: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    docs = await db[USER_ADDICTIONS].find({"user_id": user_id, "is_active": True}) \
        .sort("created_at", -1).limit(1).to_list(length=1)
    return docs[0] if docs else None


async def _addiction_name(addiction: Dict[str, Any]) -> str:
    db = get_db()
    try:
        addiction_type = await db[ADDICTION_TYPES].find_one({"_id": to_object_id(addiction["addiction_type_id"])})
    except NotFoundError:
        addiction_type = None
    return (addiction_type or {}).get("name", "addiction")


async def generate_daily_reminders(
    user_id: str, email: Optional[str] = None, now: Optional[datetime] = None
) -> List[Dict[str, Any]]:
    """Create the day's reminders once per user per day."""
    now = now or utcnow()
    today = day_key(now)
    state = await get_daily_state(user_id)
    if state["last_reminder_date"] == today:
        return []

    db = get_db()
    created: List[Optional[Dict[str, Any]]] = []

    if email and CONFIG.admin_email and email == CONFIG.admin_email:
        pending = await _pending_therapists()
        if pending:
            count = len(pending)
            created.append(await create_alert(
                user_id,
                f"{count} Pending Therapist Applications",
                f"You have {count} therapist application{'s' if count > 1 else ''} waiting for review.",
                action_url="/admin",
                action_text="Review Applications",
                metadata={
                    "pending_count": count,
                    "applications": [
                        {"id": str(t["_id"]), "title": t.get("professional_title"), "state": t.get("license_state")}
                        for t in pending
                    ],
                },
                now=now,
            ))

    last = await journal_service.last_entry(user_id)
    days_since = (now - last["created_at"]).days if last else None
    reminder = journal_reminder(days_since)
    if reminder:
        created.append(await create_reminder(user_id, now=now, **reminder))

    if state["last_chat_date"] != today:
        created.append(await create_reminder(
            user_id, "Daily Wellness Chat",
            "Your AI companion is ready to chat about your day and help track your emotional wellbeing.",
            action_url="/chat", action_text="Start Chat", now=now,
        ))

    addiction = await _latest_active_addiction(user_id)
    if addiction and addiction.get("last_clean_day_marked") != today:
        name = await _addiction_name(addiction)
        created.append(await create_reminder(
            user_id, "Mark Your Clean Day",
            f"Don't forget to mark today as clean for your {name} recovery tracking.",
            priority="high", action_url="/addiction-support", action_text="Mark Clean Day", now=now,
        ))

    start_of_day = datetime.combine(now.date(), datetime.min.time())
    if not await db[ANXIETY_SESSIONS].count_documents({"user_id": user_id, "created_at": {"$gte": start_of_day}}):
        created.append(await create_reminder(
            user_id, "Anxiety Management",
            "Take a few minutes for a breathing exercise or meditation session today.",
            action_url="/anxiety-support", action_text="Start Exercise", now=now,
        ))

    await update_daily_state(user_id, {"last_reminder_date": today})
    return [c for c in created if c]


async def check_reminder_time(user_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """Create the 'Daily Check-in' reminder inside the configured reminder window."""
    now = now or utcnow()
    settings = await get_settings(user_id)
    if not settings["daily_reminders"] or not within_reminder_window(now, settings["reminder_time"]):
        return None
    state = await get_daily_state(user_id)
    today = day_key(now)
    if state["last_reminder_check"] == today:
        return None
    reminder = await create_reminder(
        user_id, "Daily Check-in",
        "Time for your daily wellness check-in. How are you feeling today?",
        action_url="/chat", action_text="Start Check-in", now=now,
    )
    await update_daily_state(user_id, {"last_reminder_check": today})
    return reminder


# ──────────────────────────────
# Admin
# ──────────────────────────────
async def send_admin_notification(
    title: str,
    message: str,
    type: str = "info",
    priority: str = "medium",
    action_url: Optional[str] = None,
    action_text: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> bool:
    if type not in ADMIN_NOTIFICATION_TYPES:
        raise ValidationError(f"type must be one of {list(ADMIN_NOTIFICATION_TYPES)}")
    if not CONFIG.admin_email:
        logger.warning("⚠️ PUREMIND_ADMIN_EMAIL not configured; admin notification dropped")
        return False
    admin = await get_user_by_email(CONFIG.admin_email)
    if not admin:
        logger.warning(f"⚠️ Admin user {CONFIG.admin_email} not found; admin notification dropped")
        return False
    created = await create_notification(
        admin["user_id"], title, message, type, priority=priority,
        action_url=action_url, action_text=action_text, metadata=metadata,
    )
    return created is not None


# ──────────────────────────────
# Settings
# ──────────────────────────────
async def get_settings(user_id: str) -> Dict[str, Any]:
    user = await get_user(user_id) or {}
    settings = user.get("notification_settings") or {}
    return {
        "daily_reminders": settings.get("daily_reminders", True),
        "reminder_time": settings.get("reminder_time", DEFAULT_REMINDER_TIME),
    }


async def update_settings(user_id: str, daily_reminders: Optional[bool] = None,
                          reminder_time: Optional[str] = None) -> Dict[str, Any]:
    settings = await get_settings(user_id)
    if daily_reminders is not None:
        settings["daily_reminders"] = daily_reminders
    if reminder_time is not None:
        try:
            parse_reminder_time(reminder_time)
        except ValueError:
            raise ValidationError("reminder_time must be HH:MM")
        settings["reminder_time"] = reminder_time
    db = get_db()
    await db[USERS].update_one({"user_id": user_id}, {"$set": {"notification_settings": settings}}, upsert=True)
    return settings


# ──────────────────────────────
# Realtime feed
# ──────────────────────────────
async def poll_new(user_id: str, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Notifications not yet delivered to this process, flagged for toast display."""
    since = as_naive_utc(since) or utcnow() - timedelta(minutes=5)
    db = get_db()
    docs = await db[NOTIFICATIONS].find(
        {"user_id": user_id, "created_at": {"$gte": since}}
    ).sort("created_at", 1).to_list(length=None)

    fresh = []
    for notification in public_many(docs):
        try:
            await processed_cache.add(realtime_key(notification), True, ttl=PROCESSED_TTL)
        except ValueError:
            continue
        notification["toast"] = should_toast(notification)
        fresh.append(notification)
    return fresh
