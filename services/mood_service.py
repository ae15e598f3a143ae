"""
services/mood_service.py
────────────────────────────
Current mood snapshot per user, its history, and mood trends.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, Optional

from services.errors import ValidationError
from services.puremind_db import CHAT_HISTORY, MOOD_DATA, MOOD_HISTORY, get_db, public, public_many, utcnow
from utils.mood_trends import RANGE_DAYS, calculate_weekly_trends, generate_mood_insights, process_mood_data, range_start
from utils.sentiment import analyze_mood_from_message, calculate_wellness_score, generate_mood_interpretation

logger = logging.getLogger("puremind.mood")

SNAPSHOT_FIELDS = (
    "current_mood", "mood_name", "mood_interpretation", "wellness_score",
    "sentiment", "last_message", "ai_response",
)


async def get_current_mood(user_id: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    return public(await db[MOOD_DATA].find_one({"user_id": user_id}))


async def save_mood(user_id: str, **snapshot) -> Dict[str, Any]:
    """Upsert the user's mood snapshot and append it to the history."""
    db = get_db()
    doc = {k: snapshot.get(k) for k in SNAPSHOT_FIELDS}
    doc["updated_at"] = snapshot.get("updated_at") or utcnow()

    await db[MOOD_DATA].update_one({"user_id": user_id}, {"$set": doc}, upsert=True)
    await db[MOOD_HISTORY].insert_one({"user_id": user_id, **doc})
    logger.info(f"💾 Mood saved for {user_id}: {doc['current_mood']} ({doc['mood_name']})")
    return {"user_id": user_id, **doc}


async def update_mood_from_chat(
    user_id: str,
    sentiment: Optional[str],
    user_message: str,
    ai_response: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> Optional[Dict[str, Any]]:
    """Persist a new snapshot when the message carries a confident mood signal."""
    analysis = analyze_mood_from_message(user_message, sentiment)
    if not analysis.should_update:
        logger.debug(f"Mood unchanged for {user_id} (confidence {analysis.confidence:.2f})")
        return None

    return await save_mood(
        user_id,
        current_mood=analysis.mood,
        mood_name=analysis.mood_name,
        mood_interpretation=generate_mood_interpretation(analysis.mood_name, rng),
        wellness_score=calculate_wellness_score(analysis.sentiment, rng),
        sentiment=analysis.sentiment,
        last_message=user_message,
        ai_response=ai_response,
    )


async def get_mood_history(user_id: str, limit: int = 50):
    db = get_db()
    cursor = db[MOOD_HISTORY].find({"user_id": user_id}).sort("updated_at", -1).limit(limit)
    return public_many(await cursor.to_list(length=limit))


async def get_mood_trends(user_id: str, time_range: str = "week", now: Optional[datetime] = None) -> Dict[str, Any]:
    if time_range not in RANGE_DAYS:
        raise ValidationError(f"time_range must be one of {sorted(RANGE_DAYS)}")
    now = now or utcnow()
    start = range_start(time_range, now)
    db = get_db()

    moods = await db[MOOD_HISTORY].find(
        {"user_id": user_id, "updated_at": {"$gte": start}}
    ).sort("updated_at", 1).to_list(length=None)
    chats = await db[CHAT_HISTORY].find(
        {"user_id": user_id, "role": "user", "created_at": {"$gte": start}}
    ).sort("created_at", 1).to_list(length=None)

    data = process_mood_data(moods, chats, start, now)
    trends = calculate_weekly_trends(data)
    return {
        "time_range": time_range,
        "mood_data": data,
        "weekly_trends": trends,
        "insights": generate_mood_insights(data, trends),
    }
