"""
services/recovery_service.py
────────────────────────────
Addiction recovery tracking: tracked addictions, clean days, milestones,
tracking entries and daily tips.
"""

import logging
from typing import Any, Dict, List, Optional

from services import notification_service
from services.errors import AlreadyMarkedTodayError, NotFoundError, ValidationError
from services.puremind_db import (
    ADDICTION_MILESTONES, ADDICTION_TRACKING, ADDICTION_TYPES, USER_ADDICTIONS,
    day_key, get_db, public, public_many, to_object_id, utcnow,
)
from utils.recovery_rules import (
    ADDICTION_CATEGORIES, ADDICTION_STATUSES, DEFAULT_ADDICTION_TYPES, RECENT_TRACKING_LIMIT, STATUS_MESSAGES,
    TRACKING_MESSAGES, TRACKING_TYPES,
    addiction_goals, addiction_stats, can_mark_clean_day_today, daily_tip, milestone_for,
)

logger = logging.getLogger("puremind.recovery")

ALREADY_MARKED_MESSAGE = "You've already marked today as clean. Come back tomorrow!"


# ──────────────────────────────
# Addiction types
# ──────────────────────────────
async def ensure_addiction_types() -> int:
    """Seed the addiction type catalogue when it is empty."""
    db = get_db()
    if await db[ADDICTION_TYPES].count_documents({}):
        return 0
    await db[ADDICTION_TYPES].insert_many([dict(t) for t in DEFAULT_ADDICTION_TYPES])
    logger.info(f"🌱 Seeded {len(DEFAULT_ADDICTION_TYPES)} addiction types")
    return len(DEFAULT_ADDICTION_TYPES)


async def list_addiction_types(category: Optional[str] = None) -> List[Dict[str, Any]]:
    if category is not None and category not in ADDICTION_CATEGORIES:
        raise ValidationError(f"category must be one of {list(ADDICTION_CATEGORIES)}")
    db = get_db()
    query = {"category": category} if category else {}
    docs = await db[ADDICTION_TYPES].find(query).sort([("category", 1), ("name", 1)]).to_list(length=None)
    return public_many(docs)


async def get_addiction_type(type_id: str) -> Dict[str, Any]:
    db = get_db()
    doc = await db[ADDICTION_TYPES].find_one({"_id": to_object_id(type_id)})
    if not doc:
        raise NotFoundError(f"Addiction type {type_id} not found")
    return public(doc)  # type: ignore[return-value]


# ──────────────────────────────
# User addictions
# ──────────────────────────────
async def _with_type(doc: Dict[str, Any]) -> Dict[str, Any]:
    out = public(doc)
    try:
        out["addiction_type"] = await get_addiction_type(doc["addiction_type_id"])  # type: ignore[index]
    except NotFoundError:
        out["addiction_type"] = None  # type: ignore[index]
    return out  # type: ignore[return-value]


async def add_user_addiction(
    user_id: str,
    addiction_type_id: str,
    severity_level: int,
    start_date: str,
    quit_attempts: int = 0,
    personal_triggers: Optional[List[str]] = None,
    support_contacts: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    await get_addiction_type(addiction_type_id)
    if not 1 <= severity_level <= 10:
        raise ValidationError("severity_level must be between 1 and 10")
    now = utcnow()
    doc = {
        "user_id": user_id,
        "addiction_type_id": addiction_type_id,
        "severity_level": severity_level,
        "start_date": start_date,
        "quit_attempts": quit_attempts,
        "current_status": "recovery",
        "days_clean": 0,
        "personal_triggers": personal_triggers or [],
        "support_contacts": support_contacts or {},
        "is_active": True,
        "last_clean_day_marked": None,
        "created_at": now,
        "updated_at": now,
    }
    db = get_db()
    result = await db[USER_ADDICTIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"➕ {user_id} started tracking addiction type {addiction_type_id}")
    return await _with_type(doc)


async def list_user_addictions(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[USER_ADDICTIONS].find({"user_id": user_id, "is_active": True}).sort("created_at", -1).to_list(length=None)
    return [await _with_type(d) for d in docs]


async def get_user_addiction(user_id: str, addiction_id: str) -> Dict[str, Any]:
    db = get_db()
    doc = await db[USER_ADDICTIONS].find_one({"_id": to_object_id(addiction_id), "user_id": user_id})
    if not doc:
        raise NotFoundError(f"Addiction {addiction_id} not found")
    return await _with_type(doc)


async def update_status(
    user_id: str,
    addiction_id: str,
    status: str,
    days_clean: Optional[int] = None,
    today: Optional[str] = None,
) -> Dict[str, Any]:
    """Update an addiction's status. A clean day can be marked once per day."""
    if status not in ADDICTION_STATUSES:
        raise ValidationError(f"status must be one of {list(ADDICTION_STATUSES)}")
    today = today or day_key()
    addiction = await get_user_addiction(user_id, addiction_id)

    marking_clean = status == "clean" and days_clean is not None
    if marking_clean and not can_mark_clean_day_today(addiction, today):
        raise AlreadyMarkedTodayError(ALREADY_MARKED_MESSAGE)

    updates: Dict[str, Any] = {"current_status": status, "updated_at": utcnow()}
    if days_clean is not None:
        updates["days_clean"] = days_clean
        if status == "clean":
            updates["last_clean_day_marked"] = today

    db = get_db()
    query: Dict[str, Any] = {"_id": to_object_id(addiction_id), "user_id": user_id}
    if marking_clean:
        query["last_clean_day_marked"] = {"$ne": today}
    result = await db[USER_ADDICTIONS].update_one(query, {"$set": updates})
    if marking_clean and not result.matched_count:
        raise AlreadyMarkedTodayError(ALREADY_MARKED_MESSAGE)
    addiction.update(updates)
    addiction["message"] = STATUS_MESSAGES[status].format(days=days_clean)

    if marking_clean and days_clean:
        addiction["milestone"] = await check_and_create_milestone(user_id, addiction_id, days_clean)
    return addiction


async def mark_clean_day(user_id: str, addiction_id: str, today: Optional[str] = None) -> Dict[str, Any]:
    addiction = await get_user_addiction(user_id, addiction_id)
    return await update_status(user_id, addiction_id, "clean", (addiction.get("days_clean") or 0) + 1, today)


async def check_and_create_milestone(user_id: str, addiction_id: str, days_clean: int) -> Optional[Dict[str, Any]]:
    milestone = milestone_for(days_clean)
    if milestone is None:
        return None
    milestone_type, milestone_value = milestone
    doc = {
        "user_id": user_id,
        "user_addiction_id": addiction_id,
        "milestone_type": milestone_type,
        "milestone_value": milestone_value,
        "achieved_at": utcnow(),
        "celebration_notes": f"Achieved {days_clean} days clean! 🎉",
    }
    db = get_db()
    result = await db[ADDICTION_MILESTONES].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"🏆 Milestone for {user_id}: {days_clean} days clean")

    try:
        await notification_service.create_achievement(
            user_id,
            "Milestone Achieved! 🏆",
            f"Congratulations! You've reached {days_clean} days clean!",
            action_url="/addiction-support",
            metadata={"user_addiction_id": addiction_id, "days_clean": days_clean},
        )
    except Exception as e:
        logger.warning(f"⚠️ Milestone notification failed for {user_id}: {e}")
    return public(doc)


async def list_milestones(user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[ADDICTION_MILESTONES].find({"user_id": user_id}).sort("achieved_at", -1).limit(limit).to_list(length=limit)
    return public_many(docs)


# ──────────────────────────────
# Tracking entries
# ──────────────────────────────
async def add_tracking_entry(user_id: str, addiction_id: str, entry_type: str, **data) -> Dict[str, Any]:
    if entry_type not in TRACKING_TYPES:
        raise ValidationError(f"entry_type must be one of {list(TRACKING_TYPES)}")
    await get_user_addiction(user_id, addiction_id)
    doc = {
        "user_id": user_id,
        "user_addiction_id": addiction_id,
        "entry_type": entry_type,
        "intensity_level": data.get("intensity_level"),
        "trigger_identified": data.get("trigger_identified"),
        "coping_strategy_used": data.get("coping_strategy_used"),
        "notes": data.get("notes"),
        "mood_before": data.get("mood_before"),
        "mood_after": data.get("mood_after"),
        "location": data.get("location"),
        "support_used": bool(data.get("support_used", False)),
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[ADDICTION_TRACKING].insert_one(doc)
    doc["_id"] = result.inserted_id
    entry = public(doc)
    entry["message"] = TRACKING_MESSAGES[entry_type]  # type: ignore[index]
    return entry  # type: ignore[return-value]


async def recent_tracking(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[ADDICTION_TRACKING].find({"user_id": user_id}).sort("created_at", -1) \
        .limit(RECENT_TRACKING_LIMIT).to_list(length=RECENT_TRACKING_LIMIT)
    return public_many(docs)


# ──────────────────────────────
# Derived views
# ──────────────────────────────
async def get_daily_tip(user_id: str) -> Optional[Dict[str, Any]]:
    addictions = await list_user_addictions(user_id)
    if not addictions:
        return None
    primary = addictions[0]
    category = (primary.get("addiction_type") or {}).get("category")
    return daily_tip(category, primary.get("days_clean") or 0)


async def get_stats(user_id: str) -> Dict[str, Any]:
    return addiction_stats(await list_user_addictions(user_id))


async def get_addiction_goals(user_id: str) -> List[Dict[str, Any]]:
    return addiction_goals(await list_user_addictions(user_id))


async def can_mark_today(user_id: str, addiction_id: str, today: Optional[str] = None) -> bool:
    addiction = await get_user_addiction(user_id, addiction_id)
    return can_mark_clean_day_today(addiction, today or day_key())
