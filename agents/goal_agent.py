"""
agents/goal_agent.py
────────────────────────────
Rule-based daily goal generator.

Builds a small mental-health profile from what the user has recorded
(mood snapshot, addictions, journal, anxiety log, chat activity) and turns
it into at most six personalised goals for the day. Goals are generated
once per day and stored in ``ai_goals``; later calls the same day return
the stored set.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date
from typing import Any, Dict, List, Optional

from services import anxiety_service, daily_reset_service, journal_service, mood_service, recovery_service
from services.errors import NotFoundError
from services.puremind_db import AI_GOALS, CHAT_HISTORY, day_key, get_db, utcnow

logger = logging.getLogger("puremind.agent.goals")

MAX_GOALS = 6


# ──────────────────────────────
# Profile
# ──────────────────────────────
@dataclass
class UserMentalHealthProfile:
    current_mood: str = "😐"
    mood_name: str = "neutral"
    wellness_score: int = 50
    sentiment: str = "neutral"
    recent_anxiety_level: Optional[float] = None
    has_addictions: bool = False
    addiction_types: List[str] = field(default_factory=list)
    days_clean: int = 0
    recent_journal_entries: int = 0
    last_chat_date: str = ""
    stress_level: int = 5
    sleep_quality: int = 7
    social_connections: int = 5
    exercise_frequency: int = 3
    predominant_challenges: List[str] = field(default_factory=list)
    strengths: List[str] = field(default_factory=list)
    triggers: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def stress_from_sentiment(sentiment: Optional[str]) -> int:
    if sentiment == "negative":
        return 7
    if sentiment == "positive":
        return 3
    return 5


def extract_challenges(mood: Optional[Dict[str, Any]], anxiety_levels: List[int],
                       addictions: List[Dict[str, Any]]) -> List[str]:
    mood = mood or {}
    challenges = []
    if mood.get("sentiment") == "negative":
        challenges.append("Negative mood patterns")
    score = mood.get("wellness_score")
    if score is not None and score < 50:
        challenges.append("Low wellness score")
    if anxiety_levels and sum(anxiety_levels) / len(anxiety_levels) > 6:
        challenges.append("High anxiety levels")
    if addictions:
        challenges.append("Addiction recovery")
    return challenges


def extract_strengths(mood: Optional[Dict[str, Any]], addictions: List[Dict[str, Any]],
                      journal_entries: int) -> List[str]:
    mood = mood or {}
    strengths = []
    if (mood.get("wellness_score") or 0) > 70:
        strengths.append("Good emotional regulation")
    if mood.get("sentiment") == "positive":
        strengths.append("Positive outlook")
    if addictions and (addictions[0].get("days_clean") or 0) > 7:
        strengths.append("Strong recovery commitment")
    if journal_entries > 3:
        strengths.append("Consistent self-reflection")
    return strengths


async def build_profile(user_id: str) -> UserMentalHealthProfile:
    mood = await mood_service.get_current_mood(user_id)
    addictions = await recovery_service.list_user_addictions(user_id)
    journal_entries = await journal_service.count_recent_entries(user_id, days=7)
    anxiety_levels = await anxiety_service.recent_levels(user_id, limit=5)

    db = get_db()
    last_chat = await db[CHAT_HISTORY].find({"user_id": user_id}).sort("created_at", -1).limit(1).to_list(length=1)

    mood = mood or {}
    return UserMentalHealthProfile(
        current_mood=mood.get("current_mood") or "😐",
        mood_name=mood.get("mood_name") or "neutral",
        wellness_score=mood.get("wellness_score") or 50,
        sentiment=mood.get("sentiment") or "neutral",
        recent_anxiety_level=sum(anxiety_levels) / len(anxiety_levels) if anxiety_levels else None,
        has_addictions=bool(addictions),
        addiction_types=[(a.get("addiction_type") or {}).get("name", "Unknown") for a in addictions],
        days_clean=(addictions[0].get("days_clean") or 0) if addictions else 0,
        recent_journal_entries=journal_entries,
        last_chat_date=last_chat[0]["created_at"].isoformat() if last_chat else "",
        stress_level=stress_from_sentiment(mood.get("sentiment")),
        predominant_challenges=extract_challenges(mood, anxiety_levels, addictions),
        strengths=extract_strengths(mood, addictions, journal_entries),
        triggers=(addictions[0].get("personal_triggers") or []) if addictions else [],
    )


# ──────────────────────────────
# Goal rules
# ──────────────────────────────
def _goal(slug: str, stamp: int, text: str, goal_type: str, priority: str, points: int, reasoning: str,
          category: str, estimated_time: str, difficulty: str) -> Dict[str, Any]:
    return {
        "id": f"ai_{slug}_{stamp}",
        "text": text,
        "type": goal_type,
        "priority": priority,
        "points_value": points,
        "reasoning": reasoning,
        "category": category,
        "estimated_time": estimated_time,
        "difficulty": difficulty,
        "completed": False,
    }


def generate_ai_goals(profile: UserMentalHealthProfile, stamp: Optional[int] = None) -> List[Dict[str, Any]]:
    """Apply the goal rules to a profile, in priority order, keeping the first six."""
    stamp = stamp if stamp is not None else int(utcnow().timestamp() * 1000)
    goals: List[Dict[str, Any]] = []
    wellness = profile.wellness_score
    negative = profile.sentiment == "negative"

    if wellness < 60:
        goals.append(_goal(
            "mood_boost", stamp, "Practice 5 minutes of mindful breathing", "mental_health", "high", 8,
            f"Your wellness score is {wellness}. Mindful breathing can help improve mood and reduce stress.",
            "Mood Enhancement", "5 min", "easy",
        ))

    if negative:
        goals.append(_goal(
            "gratitude", stamp, "Write down 3 things you're grateful for today", "mental_health", "medium", 6,
            "Recent sentiment analysis shows negative patterns. Gratitude practice can help shift perspective.",
            "Positive Psychology", "3 min", "easy",
        ))

    anxiety = profile.recent_anxiety_level
    if anxiety and anxiety > 6:
        goals.append(_goal(
            "anxiety_relief", stamp, "Complete a 10-minute guided meditation", "anxiety_management", "high", 10,
            f"Your recent anxiety level is {anxiety:.1f}/10. Meditation can help reduce anxiety symptoms.",
            "Anxiety Relief", "10 min", "medium",
        ))
        goals.append(_goal(
            "grounding", stamp, "Practice the 5-4-3-2-1 grounding technique", "anxiety_management", "medium", 7,
            "Grounding techniques are effective for managing high anxiety levels.",
            "Coping Skills", "5 min", "easy",
        ))

    if profile.has_addictions:
        goals.append(_goal(
            "recovery_check", stamp, "Check in with your support network", "recovery", "high", 12,
            f"You're on day {profile.days_clean} of recovery. "
            "Regular support contact is crucial for maintaining sobriety.",
            "Recovery Support", "10 min", "medium",
        ))
        if profile.triggers:
            goals.append(_goal(
                "trigger_plan", stamp, "Review and update your trigger management plan", "recovery", "medium", 8,
                "You have identified triggers. Regular review helps maintain awareness and coping strategies.",
                "Trigger Management", "8 min", "medium",
            ))

    if wellness < 70:
        goals.append(_goal(
            "physical_activity", stamp, "Take a 15-minute walk outdoors", "physical_wellness", "medium", 7,
            "Physical activity releases endorphins and can significantly improve mood and wellness scores.",
            "Physical Health", "15 min", "easy",
        ))

    if negative or wellness < 60:
        goals.append(_goal(
            "social_connection", stamp, "Reach out to a friend or family member", "social_connection", "medium", 9,
            "Social connections are vital for mental health, especially during challenging times.",
            "Social Support", "10 min", "medium",
        ))

    if profile.stress_level > 6:
        goals.append(_goal(
            "selfcare", stamp, "Do something kind for yourself today", "self_care", "medium", 6,
            "High stress levels indicate a need for self-compassion and self-care activities.",
            "Self-Compassion", "20 min", "easy",
        ))

    if profile.recent_journal_entries < 3:
        goals.append(_goal(
            "journaling", stamp, "Write a brief journal entry about your day", "mental_health", "medium", 8,
            "Regular journaling helps process emotions and track mental health patterns.",
            "Emotional Processing", "10 min", "easy",
        ))

    if profile.mood_name in ("anxious", "worried"):
        goals.append(_goal(
            "worry_time", stamp, 'Set aside 10 minutes of "worry time" to process concerns',
            "anxiety_management", "medium", 7,
            "Scheduled worry time can help contain anxious thoughts and prevent rumination.",
            "Anxiety Management", "10 min", "medium",
        ))

    if profile.mood_name in ("sad", "depressed"):
        goals.append(_goal(
            "mood_lift", stamp, "Listen to uplifting music or watch something funny", "mental_health", "medium", 5,
            "Engaging with positive media can help lift mood and provide emotional relief.",
            "Mood Enhancement", "15 min", "easy",
        ))

    return goals[:MAX_GOALS]


# ──────────────────────────────
# Daily storage
# ──────────────────────────────
async def get_todays_goals(user_id: str, today: Optional[date] = None) -> Optional[List[Dict[str, Any]]]:
    db = get_db()
    doc = await db[AI_GOALS].find_one({"user_id": user_id, "day": day_key(today)})
    return doc["goals"] if doc else None


async def generate_daily_ai_goals(user_id: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
    """Return today's goals, generating and storing them on the first call of the day."""
    existing = await get_todays_goals(user_id, today)
    if existing is not None:
        return existing

    profile = await build_profile(user_id)
    goals = generate_ai_goals(profile)
    db = get_db()
    await db[AI_GOALS].update_one(
        {"user_id": user_id, "day": day_key(today)},
        {"$setOnInsert": {"goals": goals, "profile": profile.to_dict(), "generated_at": utcnow()}},
        upsert=True,
    )
    logger.info(f"🤖 Generated {len(goals)} goals for {user_id}")
    return await get_todays_goals(user_id, today) or []


async def _save_goals(user_id: str, goals: List[Dict[str, Any]], today: Optional[date]) -> None:
    db = get_db()
    await db[AI_GOALS].update_one({"user_id": user_id, "day": day_key(today)}, {"$set": {"goals": goals}})


async def complete_ai_goal(user_id: str, goal_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    """Mark one of today's goals done and award its points."""
    goals = await get_todays_goals(user_id, today) or []
    goal = next((g for g in goals if g["id"] == goal_id), None)
    if goal is None:
        raise NotFoundError(f"Goal {goal_id} not found")

    goal["completed"] = True
    await _save_goals(user_id, goals, today)
    return await daily_reset_service.complete_goal(user_id, goal_id, goal["points_value"], today)


async def remove_ai_goal(user_id: str, goal_id: str, today: Optional[date] = None) -> List[Dict[str, Any]]:
    goals = await get_todays_goals(user_id, today) or []
    remaining = [g for g in goals if g["id"] != goal_id]
    if len(remaining) == len(goals):
        raise NotFoundError(f"Goal {goal_id} not found")
    await _save_goals(user_id, remaining, today)
    return remaining
