"""
utils/notification_rules.py
---------------------------
Pure notification rules: content dedupe keys, expiry, merge ordering,
reminder windows and the realtime feed key.
"""
import re
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

NOTIFICATION_TYPES = ("reminder", "achievement", "alert", "info", "follow", "like", "comment", "message")
PRIORITIES = ("high", "medium", "low")
ADMIN_NOTIFICATION_TYPES = ("info", "alert", "reminder")

DEFAULT_REMINDER_TIME = "20:00"
REMINDER_WINDOW = timedelta(minutes=5)
ACHIEVEMENT_EXPIRY_DAYS = 30

_WHITESPACE = re.compile(r"\s+")


def dedupe_key(title: str, message: str) -> str:
    """``title_message`` without whitespace, lowercased."""
    return _WHITESPACE.sub("", f"{title}_{message}").lower()


def expires_at(now: datetime, expires_in_days: Optional[int]) -> Optional[datetime]:
    return now + timedelta(days=expires_in_days) if expires_in_days else None


def is_expired(notification: Dict[str, Any], now: datetime) -> bool:
    expiry = notification.get("expires_at")
    return expiry is not None and expiry <= now


def drop_expired(notifications: List[Dict[str, Any]], now: datetime) -> List[Dict[str, Any]]:
    return [n for n in notifications if not is_expired(n, now)]


def _as_datetime(value: Any) -> datetime:
    if isinstance(value, str):
        value = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if not isinstance(value, datetime):
        raise ValueError(f"expected a datetime or ISO string, got {value!r}")
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def normalize(notification: Dict[str, Any]) -> Dict[str, Any]:
    """Client copies carry ISO strings; stored ones carry naive UTC datetimes.

    Raises ``ValueError`` when the copy has no ``id`` or ``created_at``, or a date that does not parse.
    """
    if not isinstance(notification, dict) or not notification.get("id"):
        raise ValueError("notification id is required")
    if notification.get("created_at") is None:
        raise ValueError(f"notification {notification['id']} has no created_at")
    out = dict(notification)
    out["id"] = str(out["id"])
    for key in ("created_at", "expires_at"):
        if out.get(key) is not None:
            out[key] = _as_datetime(out[key])
    return out


def merge_notifications(local: List[Dict[str, Any]], remote: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Remote versions replace local ones with the same id; newest first."""
    merged = list(local)
    index = {n["id"]: i for i, n in enumerate(merged)}
    for item in remote:
        if item["id"] in index:
            merged[index[item["id"]]] = item
        else:
            index[item["id"]] = len(merged)
            merged.append(item)
    return sorted(merged, key=lambda n: n["created_at"], reverse=True)


def parse_reminder_time(value: Optional[str]) -> time:
    hours, minutes = (value or DEFAULT_REMINDER_TIME).split(":")
    return time(int(hours), int(minutes))


def within_reminder_window(now: datetime, reminder_time: Optional[str]) -> bool:
    target = datetime.combine(now.date(), parse_reminder_time(reminder_time))
    return target - REMINDER_WINDOW <= now <= target + REMINDER_WINDOW


def journal_reminder(days_since_last_entry: Optional[int]) -> Optional[Dict[str, Any]]:
    """Reminder payload for the journal, ``None`` when the user is up to date."""
    if days_since_last_entry is None:
        return {
            "title": "Start Your Journal",
            "message": "Journaling helps track your emotional journey. "
                       "Take a moment to write your first entry today.",
            "action_url": "/journal",
            "action_text": "Write Entry",
            "priority": "medium",
        }
    if days_since_last_entry >= 2:
        return {
            "title": "Journal Check-in",
            "message": f"It's been {days_since_last_entry} days since your last journal entry. "
                       "Take a moment to reflect on your feelings.",
            "action_url": "/journal",
            "action_text": "Write Entry",
            "priority": "high" if days_since_last_entry >= 5 else "medium",
        }
    return None


def realtime_key(notification: Dict[str, Any]) -> str:
    created_at = notification.get("created_at")
    if isinstance(created_at, datetime):
        created_at = created_at.isoformat()
    return f"{notification['id']}-{created_at}"


def should_toast(notification: Dict[str, Any]) -> bool:
    return notification.get("priority") == "high"
