"""
services/daily_reset_service.py
────────────────────────────
Per-user daily state: the once-a-day reset, custom goals, goal points and
the login history that drives streaks.
"""

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional

from services import mood_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import CHAT_HISTORY, DAILY_STATE, day_key, get_db, utcnow
from utils.journal_stats import current_streak, longest_streak

logger = logging.getLogger("puremind.daily_reset")

DEFAULT_MOOD = {
    "current_mood": "😌",
    "mood_name": "calm",
    "mood_interpretation": "Welcome to a new day! Share your current mood to start tracking your wellness journey.",
    "wellness_score": 75,
    "sentiment": "neutral",
    "last_message": None,
    "ai_response": None,
}
DEFAULT_CUSTOM_GOAL_POINTS = 5


# ──────────────────────────────
# State document
# ──────────────────────────────
async def get_daily_state(user_id: str) -> Dict[str, Any]:
    db = get_db()
    doc = await db[DAILY_STATE].find_one({"user_id": user_id}) or {}
    return {
        "user_id": user_id,
        "last_reset_date": doc.get("last_reset_date"),
        "login_history": doc.get("login_history", []),
        "completed_goals": doc.get("completed_goals", {}),
        "goal_points": doc.get("goal_points", {}),
        "custom_goals": doc.get("custom_goals", []),
        "last_chat_date": doc.get("last_chat_date"),
        "last_reminder_date": doc.get("last_reminder_date"),
        "last_reminder_check": doc.get("last_reminder_check"),
    }


async def update_daily_state(user_id: str, fields: Dict[str, Any]) -> None:
    db = get_db()
    await db[DAILY_STATE].update_one({"user_id": user_id}, {"$set": fields}, upsert=True)


# ──────────────────────────────
# Reset
# ──────────────────────────────
async def perform_daily_reset(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """Reset mood, chat history and today's/yesterday's goal progress."""
    today = today or utcnow().date()
    today_key = day_key(today)
    yesterday_key = day_key(today - timedelta(days=1))
    db = get_db()

    await mood_service.save_mood(user_id, **DEFAULT_MOOD)

    deleted = await db[CHAT_HISTORY].delete_many({"user_id": user_id})
    logger.info(f"🧹 Cleared {deleted.deleted_count} chat messages for {user_id}")

    state = await get_daily_state(user_id)
    completed = {k: v for k, v in state["completed_goals"].items() if k not in (today_key, yesterday_key)}
    points = {k: v for k, v in state["goal_points"].items() if k not in (today_key, yesterday_key)}
    history = list(state["login_history"])
    if today_key not in history:
        history.append(today_key)

    await update_daily_state(user_id, {
        "completed_goals": completed,
        "goal_points": points,
        "last_chat_date": today_key,
        "login_history": history,
        "custom_goals": state["custom_goals"],
    })
    logger.info(f"🌅 Daily reset complete for {user_id} ({today_key})")
    return await get_daily_state(user_id)


async def check_for_daily_reset(user_id: str, today: Optional[date] = None) -> bool:
    """Run the reset once per calendar day. Returns True when it ran."""
    today = today or utcnow().date()
    state = await get_daily_state(user_id)
    if state["last_reset_date"] == day_key(today):
        return False
    await perform_daily_reset(user_id, today)
    await update_daily_state(user_id, {"last_reset_date": day_key(today)})
    return True


async def trigger_manual_reset(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    today = today or utcnow().date()
    await perform_daily_reset(user_id, today)
    await update_daily_state(user_id, {"last_reset_date": day_key(today)})
    return await get_daily_state(user_id)


# ──────────────────────────────
# Custom goals
# ──────────────────────────────
async def add_custom_goal(user_id: str, text: str, points_value: int = DEFAULT_CUSTOM_GOAL_POINTS) -> Dict[str, Any]:
    if not (text or "").strip():
        raise ValidationError("Goal text cannot be empty.")
    now = utcnow()
    goal = {
        "id": f"custom-{int(now.timestamp() * 1000)}",
        "text": text.strip(),
        "completed": False,
        "type": "custom",
        "priority": "medium",
        "points_value": points_value,
        "is_custom": True,
        "created_at": now,
    }
    db = get_db()
    await db[DAILY_STATE].update_one({"user_id": user_id}, {"$push": {"custom_goals": goal}}, upsert=True)
    logger.info(f"🎯 Custom goal added for {user_id}: {goal['text']}")
    return goal


async def remove_custom_goal(user_id: str, goal_id: str) -> None:
    db = get_db()
    result = await db[DAILY_STATE].update_one({"user_id": user_id}, {"$pull": {"custom_goals": {"id": goal_id}}})
    if not result.modified_count:
        raise NotFoundError(f"Custom goal {goal_id} not found")


async def list_custom_goals(user_id: str) -> List[Dict[str, Any]]:
    return (await get_daily_state(user_id))["custom_goals"]


def points_for_day(state: Dict[str, Any], day: str) -> int:
    return sum(entry["points"] for entry in state["goal_points"].get(day, []))


async def complete_goal(user_id: str, goal_id: str, points: int, today: Optional[date] = None) -> Dict[str, Any]:
    """Mark a goal done for today. Points are awarded once per goal per day."""
    today_key = day_key(today)
    state = await get_daily_state(user_id)
    completed = state["completed_goals"].get(today_key, [])
    awarded = goal_id not in completed
    if awarded:
        db = get_db()
        # goal ids are stored as values, never as field path segments
        await db[DAILY_STATE].update_one(
            {"user_id": user_id},
            {"$addToSet": {f"completed_goals.{today_key}": goal_id},
             "$push": {f"goal_points.{today_key}": {"goal_id": goal_id, "points": points}}},
            upsert=True,
        )
        state = await get_daily_state(user_id)
    return {
        "goal_id": goal_id,
        "awarded": awarded,
        "completed_goals": state["completed_goals"].get(today_key, []),
        "total_points": points_for_day(state, today_key),
    }


# ──────────────────────────────
# Streaks
# ──────────────────────────────
async def login_streak(user_id: str, today: Optional[date] = None) -> Dict[str, int]:
    today = today or utcnow().date()
    days = {date.fromisoformat(d) for d in (await get_daily_state(user_id))["login_history"]}
    return {"current": current_streak(days, today), "longest": longest_streak(days), "total_days": len(days)}
