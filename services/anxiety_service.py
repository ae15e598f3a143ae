"""
services/anxiety_service.py
────────────────────────────
Anxiety sessions, anxiety journal, CBT worksheets and weekly progress.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from services.errors import ValidationError
from services.puremind_db import (
    ANXIETY_JOURNAL, ANXIETY_SESSIONS, CBT_WORKSHEETS, get_db, public, public_many, utcnow,
)
from utils.anxiety_stats import SESSION_TYPES, WORKSHEET_TYPES, anxiety_insights, is_valid_level, weekly_stats

logger = logging.getLogger("puremind.anxiety")

DEFAULT_ANXIETY_LEVEL = 5
RECENT_LIMIT = 10


def _check_level(name: str, level: Any) -> None:
    if not is_valid_level(level):
        raise ValidationError(f"{name} must be an integer between 1 and 10")


def _start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), datetime.min.time())


async def current_level(user_id: str) -> int:
    """Latest logged anxiety level, or the default when nothing was logged."""
    db = get_db()
    docs = await db[ANXIETY_JOURNAL].find({"user_id": user_id}).sort("created_at", -1).limit(1).to_list(length=1)
    return docs[0]["anxiety_level"] if docs else DEFAULT_ANXIETY_LEVEL


async def add_session(
    user_id: str,
    session_type: str,
    technique: str,
    duration_minutes: int,
    anxiety_before: Optional[int] = None,
    anxiety_after: Optional[int] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    if session_type not in SESSION_TYPES:
        raise ValidationError(f"session_type must be one of {list(SESSION_TYPES)}")
    if anxiety_before is None:
        anxiety_before = await current_level(user_id)
    _check_level("anxiety_before", anxiety_before)
    if anxiety_after is not None:
        _check_level("anxiety_after", anxiety_after)

    doc = {
        "user_id": user_id,
        "session_type": session_type,
        "technique_used": technique,
        "duration_minutes": duration_minutes,
        "anxiety_before": anxiety_before,
        "anxiety_after": anxiety_after,
        "notes": notes,
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[ANXIETY_SESSIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"🧘 {technique} session completed by {user_id}")
    return public(doc)  # type: ignore[return-value]


async def add_journal_entry(
    user_id: str,
    anxiety_level: int,
    triggers: Optional[List[str]] = None,
    physical_symptoms: Optional[List[str]] = None,
    thoughts: str = "",
    coping_strategies: Optional[List[str]] = None,
    mood_after: Optional[int] = None,
) -> Dict[str, Any]:
    _check_level("anxiety_level", anxiety_level)
    if mood_after is not None:
        _check_level("mood_after", mood_after)
    doc = {
        "user_id": user_id,
        "anxiety_level": anxiety_level,
        "triggers": triggers or [],
        "physical_symptoms": physical_symptoms or [],
        "thoughts": thoughts,
        "coping_strategies": coping_strategies or [],
        "mood_after": mood_after,
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[ANXIETY_JOURNAL].insert_one(doc)
    doc["_id"] = result.inserted_id
    return public(doc)  # type: ignore[return-value]


async def update_level(user_id: str, level: int) -> Dict[str, Any]:
    """Quick level update, stored as a minimal anxiety journal entry."""
    entry = await add_journal_entry(user_id, level, thoughts="Quick anxiety level update", mood_after=level)
    logger.info(f"📉 Anxiety level updated for {user_id}: {level}/10")
    return entry


async def add_worksheet(user_id: str, worksheet_type: str, **fields) -> Dict[str, Any]:
    if worksheet_type not in WORKSHEET_TYPES:
        raise ValidationError(f"worksheet_type must be one of {list(WORKSHEET_TYPES)}")
    rating = fields.get("new_emotion_rating")
    if rating is not None:
        _check_level("new_emotion_rating", rating)
    doc = {
        "user_id": user_id,
        "worksheet_type": worksheet_type,
        "situation": fields.get("situation", ""),
        "automatic_thoughts": fields.get("automatic_thoughts", ""),
        "emotions": fields.get("emotions") or [],
        "evidence_for": fields.get("evidence_for", ""),
        "evidence_against": fields.get("evidence_against", ""),
        "balanced_thought": fields.get("balanced_thought", ""),
        "new_emotion_rating": rating,
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[CBT_WORKSHEETS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return public(doc)  # type: ignore[return-value]


async def todays_sessions(user_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or utcnow()
    db = get_db()
    docs = await db[ANXIETY_SESSIONS].find(
        {"user_id": user_id, "created_at": {"$gte": _start_of_day(now)}}
    ).sort("created_at", -1).to_list(length=None)
    return public_many(docs)


async def get_overview(user_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """Today's sessions, recent journal/worksheets, weekly stats and insights."""
    now = now or utcnow()
    db = get_db()

    today = await todays_sessions(user_id, now)
    journal = await db[ANXIETY_JOURNAL].find({"user_id": user_id}).sort("created_at", -1).limit(RECENT_LIMIT).to_list(length=RECENT_LIMIT)
    worksheets = await db[CBT_WORKSHEETS].find({"user_id": user_id}).sort("created_at", -1).limit(RECENT_LIMIT).to_list(length=RECENT_LIMIT)
    week = await db[ANXIETY_SESSIONS].find(
        {"user_id": user_id, "created_at": {"$gte": now - timedelta(days=7)}}
    ).to_list(length=None)

    stats = weekly_stats(week, len(today))
    return {
        "anxiety_level": await current_level(user_id),
        "todays_sessions": today,
        "journal_entries": public_many(journal),
        "cbt_worksheets": public_many(worksheets),
        "weekly_progress": stats,
        "insights": anxiety_insights(stats),
    }


async def recent_levels(user_id: str, limit: int = 5) -> List[int]:
    db = get_db()
    docs = await db[ANXIETY_JOURNAL].find({"user_id": user_id}).sort("created_at", -1).limit(limit).to_list(length=limit)
    return [d["anxiety_level"] for d in docs]
