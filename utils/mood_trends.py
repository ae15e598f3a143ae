"""
utils/mood_trends.py
--------------------
Turns mood snapshots and chat messages into a continuous per-day series,
weekly aggregates (Sunday-start weeks) and short insights.
"""
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from utils.numbers import round_half_up

RANGE_DAYS = {"week": 7, "month": 30, "quarter": 180}


def range_start(time_range: str, now: datetime) -> datetime:
    return now - timedelta(days=RANGE_DAYS.get(time_range, 7))


def _dominant(counts: Counter) -> str:
    # Later keys win ties, matching insertion order of the series
    best_key, best_count = None, -1
    for key, count in counts.items():
        if count >= best_count:
            best_key, best_count = key, count
    return best_key  # type: ignore[return-value]


def process_mood_data(
    mood_history: List[Dict[str, Any]],
    chat_history: List[Dict[str, Any]],
    start: datetime,
    end: datetime,
) -> List[Dict[str, Any]]:
    """One point per calendar day in [start, end]; newest snapshot of a day wins."""
    points: Dict[str, Dict[str, Any]] = {}
    day = start.date()
    while day <= end.date():
        points[day.isoformat()] = {
            "date": day.isoformat(),
            "mood": "😐",
            "mood_name": "neutral",
            "sentiment": "neutral",
            "wellness_score": None,
            "message_count": 0,
            "timestamp": datetime.combine(day, datetime.min.time()),
        }
        day += timedelta(days=1)

    for snapshot in mood_history:
        updated_at: datetime = snapshot["updated_at"]
        key = updated_at.date().isoformat()
        existing = points.get(key)
        if existing is None:
            continue
        if existing["wellness_score"] is None or updated_at > existing["timestamp"]:
            existing.update(
                mood=snapshot.get("current_mood", "😐"),
                mood_name=snapshot.get("mood_name", "neutral"),
                sentiment=snapshot.get("sentiment", "neutral"),
                wellness_score=snapshot.get("wellness_score"),
                timestamp=updated_at,
            )

    for chat in chat_history:
        key = chat["created_at"].date().isoformat()
        if key in points:
            points[key]["message_count"] += 1

    return [points[k] for k in sorted(points)]


def week_start(value: date) -> date:
    """Sunday on or before ``value``."""
    return value - timedelta(days=(value.weekday() + 1) % 7)


def _average_score(points: List[Dict[str, Any]]) -> float:
    scores = [p["wellness_score"] for p in points if p["wellness_score"] is not None]
    return sum(scores) / len(scores) if scores else 0.0


def calculate_weekly_trends(data: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    weeks: Dict[str, List[Dict[str, Any]]] = {}
    for point in data:
        if point["wellness_score"] is None:
            continue
        key = week_start(date.fromisoformat(point["date"])).isoformat()
        weeks.setdefault(key, []).append(point)

    trends = []
    previous_average: Optional[float] = None
    for key in sorted(weeks):
        week = weeks[key]
        average = _average_score(week)
        positive = sum(1 for p in week if p["sentiment"] == "positive")
        trends.append({
            "week": key,
            "average_wellness": round_half_up(average),
            "dominant_mood": _dominant(Counter(p["mood_name"] for p in week)),
            "total_messages": sum(p["message_count"] for p in week),
            "positive_ratio": positive / len(week),
            "improvement": average - previous_average if previous_average is not None else 0,
        })
        previous_average = average
    return trends


def generate_mood_insights(data: List[Dict[str, Any]], trends: List[Dict[str, Any]]) -> List[Dict[str, str]]:
    if not data:
        return [{
            "type": "pattern",
            "title": "Start Your Journey",
            "description": "Begin tracking your mood by chatting with our AI to see personalized insights here.",
            "icon": "🌟",
            "actionable": "Start a conversation in the chat to begin mood tracking",
        }]

    insights: List[Dict[str, str]] = []

    if len(trends) >= 2:
        latest = trends[-1]
        if latest["improvement"] > 5:
            insights.append({
                "type": "improvement",
                "title": "Significant Progress! 📈",
                "description": f"Your wellness score improved by {round_half_up(latest['improvement'])} points this week. "
                               "You're on a positive trajectory!",
                "icon": "🎉",
                "actionable": "Keep up the great work with your current wellness practices",
            })
        elif latest["improvement"] < -5:
            insights.append({
                "type": "concern",
                "title": "Wellness Dip Detected",
                "description": f"Your wellness score decreased by {abs(round_half_up(latest['improvement']))} points. "
                               "This is normal - let's focus on self-care.",
                "icon": "💙",
                "actionable": "Consider practicing mindfulness or reaching out to someone you trust",
            })
        if latest["positive_ratio"] > 0.7:
            insights.append({
                "type": "achievement",
                "title": "Positivity Champion! ✨",
                "description": f"{round_half_up(latest['positive_ratio'] * 100)}% of your recent interactions were positive. "
                               "Your mindset is thriving!",
                "icon": "🌈",
            })

    scored = [p for p in data if p["wellness_score"] is not None]
    if len(scored) >= 5:
        insights.append({
            "type": "achievement",
            "title": "Consistency Streak! 🔥",
            "description": f"You've been actively tracking your mood for {len(scored)} days. "
                           "Consistency is key to wellness!",
            "icon": "⭐",
            "actionable": "Keep your daily check-ins going to maintain momentum",
        })

    if scored:
        dominant = _dominant(Counter(p["mood_name"] for p in scored))
        if dominant in ("happy", "excited"):
            insights.append({
                "type": "pattern",
                "title": "Joyful Spirit Detected! 😊",
                "description": f'Your most common mood is "{dominant}". You\'re radiating positive energy!',
                "icon": "☀️",
            })
        elif dominant == "calm":
            insights.append({
                "type": "pattern",
                "title": "Zen Master Mode 🧘",
                "description": "You frequently experience calmness. This balanced state is excellent "
                               "for mental clarity and decision-making.",
                "icon": "🕊️",
            })

    avg_messages = sum(p["message_count"] for p in data) / len(data)
    if avg_messages >= 3:
        insights.append({
            "type": "achievement",
            "title": "Highly Engaged! 💬",
            "description": f"You average {round_half_up(avg_messages)} messages per day. "
                           "Your commitment to wellness is inspiring!",
            "icon": "🎯",
        })

    if scored:
        score = scored[-1]["wellness_score"]
        if score >= 80:
            insights.append({
                "type": "achievement",
                "title": "Wellness Superstar! 🌟",
                "description": f"Your current wellness score of {score} indicates excellent mental health. "
                               "You're thriving!",
                "icon": "🏆",
            })
        elif score >= 60:
            insights.append({
                "type": "improvement",
                "title": "Steady Progress 📊",
                "description": f"Your wellness score of {score} shows you're on a good path. "
                               "Small improvements compound over time.",
                "icon": "📈",
                "actionable": "Focus on one small wellness habit to boost your score further",
            })

    return insights[:4]
