"""
utils/anxiety_stats.py
----------------------
Weekly anxiety aggregates and the insight lines shown beside them.
"""
from collections import Counter
from typing import Any, Dict, List, Optional

SESSION_TYPES = ("breathing", "meditation", "journal", "cbt", "panic_relief")
WORKSHEET_TYPES = ("thought_record", "exposure_hierarchy", "worry_time", "grounding")
DEFAULT_TECHNIQUE = "breathing"
MIN_LEVEL, MAX_LEVEL = 1, 10


def is_valid_level(level: Any) -> bool:
    return isinstance(level, int) and not isinstance(level, bool) and MIN_LEVEL <= level <= MAX_LEVEL


def weekly_stats(week_sessions: List[Dict[str, Any]], sessions_today: int) -> Optional[Dict[str, Any]]:
    """Aggregate the last 7 days of sessions; ``None`` when there are none."""
    if not week_sessions:
        return None

    avg_before = sum(s["anxiety_before"] for s in week_sessions) / len(week_sessions)
    afters = [s["anxiety_after"] for s in week_sessions if s.get("anxiety_after")]
    improvement = avg_before - sum(afters) / len(afters) if afters else 0.0

    techniques = Counter(s.get("technique_used") for s in week_sessions if s.get("technique_used"))
    most_used = techniques.most_common(1)[0][0] if techniques else DEFAULT_TECHNIQUE

    return {
        "average_level": avg_before,
        "sessions_today": sessions_today,
        "sessions_this_week": len(week_sessions),
        "improvement_trend": improvement,
        "most_effective_technique": most_used,
    }


def anxiety_insights(stats: Optional[Dict[str, Any]]) -> List[Dict[str, str]]:
    if not stats:
        return []
    insights = []
    if stats["improvement_trend"] > 0:
        insights.append({
            "type": "positive",
            "message": f"Your anxiety has improved by {stats['improvement_trend']:.1f} points this week!",
            "suggestion": "Keep up the great work with your current techniques.",
        })
    if stats["sessions_today"] == 0:
        insights.append({
            "type": "suggestion",
            "message": "You haven't done any anxiety exercises today.",
            "suggestion": "Try a quick breathing exercise to start your day mindfully.",
        })
    if stats["most_effective_technique"]:
        insights.append({
            "type": "info",
            "message": f"Your most used technique this week is {stats['most_effective_technique']}.",
            "suggestion": "Consider exploring other techniques to build a diverse toolkit.",
        })
    return insights
