"""
utils/journal_stats.py
----------------------
Statistics, streaks and insights over a user's journal entries.
"""
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional, Set

from utils.numbers import round_half_up


def _as_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def word_count(text: str) -> int:
    text = (text or "").strip()
    return len(text.split()) if text else 0


def current_streak(days: Set[date], today: date) -> int:
    """Consecutive days with activity ending today."""
    streak = 0
    check = today
    while check in days:
        streak += 1
        check -= timedelta(days=1)
    return streak


def longest_streak(days: Iterable[date]) -> int:
    ordered = sorted(set(days))
    if not ordered:
        return 0
    longest = streak = 1
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr - prev).days == 1:
            streak += 1
        else:
            longest = max(longest, streak)
            streak = 1
    return max(longest, streak)


def empty_stats() -> Dict[str, Any]:
    return {
        "total_entries": 0,
        "word_count": 0,
        "average_words_per_entry": 0,
        "most_used_tags": [],
        "mood_distribution": [],
        "streak_days": 0,
        "longest_streak": 0,
    }


def calculate_stats(entries: List[Dict[str, Any]], today: Optional[date] = None) -> Dict[str, Any]:
    if not entries:
        return empty_stats()
    today = today or datetime.utcnow().date()

    total_words = sum(word_count(e.get("content", "")) for e in entries)

    mood_counts = Counter(e.get("mood") for e in entries)
    mood_distribution = [
        {"mood": mood, "count": count}
        for mood, count in sorted(mood_counts.items(), key=lambda kv: kv[1], reverse=True)
    ]

    tag_counts: Counter = Counter()
    for entry in entries:
        tag_counts.update(entry.get("tags") or [])
    most_used_tags = [
        {"tag": tag, "count": count}
        for tag, count in sorted(tag_counts.items(), key=lambda kv: kv[1], reverse=True)[:5]
    ]

    days = {_as_date(e["created_at"]) for e in entries}

    return {
        "total_entries": len(entries),
        "word_count": total_words,
        "average_words_per_entry": round_half_up(total_words / len(entries)),
        "most_used_tags": most_used_tags,
        "mood_distribution": mood_distribution,
        "streak_days": current_streak(days, today),
        "longest_streak": longest_streak(days),
    }


def journal_insights(entries: List[Dict[str, Any]], stats: Dict[str, Any]) -> List[Dict[str, str]]:
    if not entries:
        return []

    insights = []

    if stats["mood_distribution"]:
        top = stats["mood_distribution"][0]
        insights.append({
            "type": "mood",
            "title": f"Your most common mood is {top['mood']}",
            "description": f"You've recorded this mood {top['count']} times in your journal.",
            "icon": top["mood"],
        })

    if stats["streak_days"] > 1:
        insights.append({
            "type": "streak",
            "title": f"{stats['streak_days']}-day writing streak!",
            "description": "Consistent journaling helps build self-awareness and emotional regulation.",
            "icon": "🔥",
        })

    if stats["word_count"] > 1000:
        insights.append({
            "type": "achievement",
            "title": f"You've written {stats['word_count']} words!",
            "description": f"That's approximately {round_half_up(stats['word_count'] / 250)} pages of self-reflection.",
            "icon": "📝",
        })

    if stats["most_used_tags"]:
        top_tags = ", ".join(t["tag"] for t in stats["most_used_tags"][:3])
        insights.append({
            "type": "themes",
            "title": "Common themes in your journal",
            "description": f"Your most used tags are: {top_tags}",
            "icon": "🏷️",
        })

    total = len(entries)
    positive_pct = round_half_up(sum(1 for e in entries if e.get("sentiment") == "POSITIVE") / total * 100)
    negative_pct = round_half_up(sum(1 for e in entries if e.get("sentiment") == "NEGATIVE") / total * 100)

    if positive_pct > 60:
        insights.append({
            "type": "sentiment",
            "title": f"{positive_pct}% positive entries",
            "description": "Your journal reflects an overall positive outlook on life.",
            "icon": "😊",
        })
    elif negative_pct > 60:
        insights.append({
            "type": "sentiment",
            "title": f"{negative_pct}% negative entries",
            "description": "Your journal shows you may be going through some challenges.",
            "icon": "💙",
        })
    else:
        insights.append({
            "type": "sentiment",
            "title": "Balanced emotional expression",
            "description": "Your journal contains a mix of positive, negative, and neutral entries.",
            "icon": "⚖️",
        })

    return insights
