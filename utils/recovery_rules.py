"""
utils/recovery_rules.py
-----------------------
Recovery bookkeeping rules: days clean, milestones, daily tips, stage goals,
stats and emergency resources. Pure functions over addiction records.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple, Union

ADDICTION_CATEGORIES = ("substance", "behavioral", "other")
ADDICTION_STATUSES = ("active", "recovery", "relapse", "clean")
TRACKING_TYPES = ("craving", "relapse", "milestone", "support", "trigger", "success")
MILESTONE_THRESHOLDS = (1, 7, 14, 30, 60, 90, 180, 365)
RECENT_TRACKING_LIMIT = 20

DEFAULT_ADDICTION_TYPES = [
    {"name": "Alcohol", "category": "substance",
     "description": "Alcohol use and dependence",
     "resources": {"helplines": ["1-800-662-4357"], "websites": ["samhsa.gov", "aa.org"]}},
    {"name": "Nicotine", "category": "substance",
     "description": "Smoking, vaping and other nicotine use",
     "resources": {"helplines": ["1-800-QUIT-NOW"], "websites": ["smokefree.gov"]}},
    {"name": "Cannabis", "category": "substance",
     "description": "Cannabis use and dependence",
     "resources": {"helplines": ["1-800-662-4357"], "websites": ["marijuana-anonymous.org"]}},
    {"name": "Opioids", "category": "substance",
     "description": "Prescription or illicit opioid use",
     "resources": {"helplines": ["1-800-662-4357"], "websites": ["samhsa.gov", "na.org"]}},
    {"name": "Gambling", "category": "behavioral",
     "description": "Compulsive gambling and betting",
     "resources": {"helplines": ["1-800-522-4700"], "websites": ["ncpgambling.org", "gamblersanonymous.org"]}},
    {"name": "Gaming", "category": "behavioral",
     "description": "Excessive video gaming",
     "resources": {"websites": ["gamequitters.com"]}},
    {"name": "Social Media", "category": "behavioral",
     "description": "Compulsive social media use",
     "resources": {"apps": ["Screen Time", "Digital Wellbeing"]}},
    {"name": "Other", "category": "other",
     "description": "Any other habit you want to change",
     "resources": {"helplines": ["988"]}},
]

STATUS_MESSAGES = {
    "active": "Status updated. Remember, seeking help is a sign of strength.",
    "recovery": "Great job on your recovery journey! Keep going! 🌟",
    "relapse": "Relapses are part of recovery. You're still strong and capable. 💙",
    "clean": "Day {days} complete! You're building an amazing streak! 🎉",
}

TRACKING_MESSAGES = {
    "craving": "Craving logged. You're aware and that's powerful! 🧠",
    "relapse": "Entry recorded. Tomorrow is a new day to try again. 💙",
    "milestone": "Milestone achieved! You should be proud! 🏆",
    "support": "Great job reaching out for support! 🤝",
    "trigger": "Trigger identified. Knowledge is power in recovery! 🎯",
    "success": "Success story logged! You're inspiring! ✨",
}


# ──────────────────────────────
# Daily tips
# ──────────────────────────────
def _tip(tip_id: str, category: str, tip_type: str, title: str, content: str, day: int) -> Dict[str, Any]:
    return {"id": tip_id, "addiction_category": category, "tip_type": tip_type,
            "title": title, "content": content, "day_number": day}


DAILY_TIPS: Dict[str, List[Dict[str, Any]]] = {
    "substance": [
        _tip("sub_1", "substance", "motivation", "One Day at a Time",
             "Focus on staying clean just for today. Tomorrow will take care of itself. "
             "Each day you choose recovery is a victory worth celebrating.", 1),
        _tip("sub_2", "substance", "coping", "Identify Your Triggers",
             "Write down 3 situations that make you want to use. Awareness is the first step "
             "to developing healthy coping strategies.", 3),
        _tip("sub_3", "substance", "health", "Hydrate and Nourish",
             "Your body is healing. Drink plenty of water and eat nutritious meals to support "
             "your recovery process.", 5),
        _tip("sub_4", "substance", "prevention", "Create a Support Network",
             "Reach out to one person today who supports your recovery. Connection is crucial "
             "for long-term success.", 7),
        _tip("sub_5", "substance", "mindfulness", "Practice Deep Breathing",
             "When cravings hit, try the 4-7-8 breathing technique: Inhale for 4, hold for 7, "
             "exhale for 8. Repeat 3 times.", 10),
        _tip("sub_6", "substance", "motivation", "Celebrate Your Progress",
             "You've made it this far! Take a moment to acknowledge your strength and the "
             "positive changes you've made.", 30),
        _tip("sub_7", "substance", "coping", "Develop New Routines",
             "Replace old habits with healthy ones. Start a morning routine that sets a "
             "positive tone for your day.", 45),
        _tip("sub_8", "substance", "prevention", "Plan for Difficult Days",
             "Create an action plan for when you feel vulnerable. Include people to call, "
             "activities to do, and reminders of why you quit.", 60),
        _tip("sub_9", "substance", "motivation", "You Are Stronger Than You Know",
             "Every day clean is proof of your incredible strength. You've overcome challenges "
             "that once seemed impossible.", 90),
        _tip("sub_10", "substance", "health", "Focus on Mental Health",
             "Consider therapy or counseling to address underlying issues. Mental health is "
             "just as important as physical health in recovery.", 120),
    ],
    "behavioral": [
        _tip("beh_1", "behavioral", "motivation", "Break the Cycle",
             "Today is a new opportunity to choose different behaviors. Each healthy choice "
             "builds momentum for lasting change.", 1),
        _tip("beh_2", "behavioral", "coping", "Find Alternative Activities",
             "When you feel the urge to engage in addictive behavior, have 3 alternative "
             "activities ready: exercise, call a friend, or practice a hobby.", 3),
        _tip("beh_3", "behavioral", "mindfulness", "Mindful Awareness",
             "Practice noticing urges without acting on them. Observe the feeling, acknowledge "
             "it, and let it pass like a wave.", 7),
        _tip("beh_4", "behavioral", "prevention", "Modify Your Environment",
             "Remove triggers from your environment. If you can't remove them, create barriers "
             "that give you time to make better choices.", 14),
        _tip("beh_5", "behavioral", "motivation", "Celebrate Small Wins",
             "Every moment you choose recovery over addiction is worth celebrating. Acknowledge "
             "your progress, no matter how small.", 30),
    ],
}


def daily_tip(category: Optional[str], days_clean: int) -> Dict[str, Any]:
    """Last tip whose day_number <= days_clean; the first tip when none qualifies."""
    tips = DAILY_TIPS.get(category or "substance") or DAILY_TIPS["substance"]
    selected = tips[0]
    for tip in tips:
        if days_clean >= tip["day_number"]:
            selected = tip
        else:
            break
    return selected


# ──────────────────────────────
# Milestones
# ──────────────────────────────
def milestone_for(days_clean: int) -> Optional[Tuple[str, int]]:
    """(milestone_type, milestone_value) when ``days_clean`` hits a threshold."""
    if days_clean not in MILESTONE_THRESHOLDS:
        return None
    if days_clean < 365:
        return "days_clean", days_clean
    return "year_clean", days_clean // 365


# ──────────────────────────────
# Day arithmetic
# ──────────────────────────────
DateLike = Union[str, date, datetime]


def _to_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00")).date()


def calculate_days_clean(last_relapse: Optional[DateLike], start_date: DateLike,
                         today: Optional[date] = None) -> int:
    today = today or datetime.utcnow().date()
    reference = _to_date(last_relapse) if last_relapse else _to_date(start_date)
    return abs((today - reference).days)


def can_mark_clean_day_today(addiction: Optional[Dict[str, Any]], today: str) -> bool:
    if not addiction:
        return False
    return addiction.get("last_clean_day_marked") != today


def addiction_stats(addictions: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(addictions)
    active_recovery = sum(1 for a in addictions if a.get("current_status") in ("recovery", "clean"))
    days = [a.get("days_clean", 0) for a in addictions]
    return {
        "total_addictions": total,
        "active_recovery": active_recovery,
        "total_days_clean": sum(days),
        "longest_streak": max(days, default=0),
        "recovery_rate": (active_recovery / total) * 100 if total else 0,
    }


def emergency_resources() -> Dict[str, Dict[str, str]]:
    return {
        "crisis": {
            "phone": "988",
            "text": "Text HOME to 741741",
            "chat": "suicidepreventionlifeline.org",
        },
        "substance": {
            "phone": "1-800-662-4357",
            "website": "samhsa.gov",
        },
        "gambling": {
            "phone": "1-800-522-4700",
            "website": "ncpgambling.org",
        },
    }


# ──────────────────────────────
# Stage goals
# ──────────────────────────────
EARLY_GOALS = [
    ("affirmation", "Start day with recovery affirmation", 8, "high"),
    ("hydration", "Drink water to support healing", 5, "medium"),
    ("support_check", "Connect with support person", 10, "high"),
]
BUILDING_GOALS = [
    ("morning_routine", "Complete healthy morning routine", 7, "high"),
    ("trigger_awareness", "Identify and manage triggers", 8, "high"),
    ("physical_activity", "Engage in physical exercise", 6, "medium"),
    ("gratitude", "Practice gratitude for recovery", 5, "medium"),
]
ESTABLISHED_GOALS = [
    ("mindfulness", "Practice mindfulness meditation", 7, "high"),
    ("help_others", "Support someone else in recovery", 10, "medium"),
    ("skill_building", "Learn new healthy coping skill", 8, "medium"),
    ("reflection", "Reflect on recovery progress", 6, "low"),
]


def addiction_goals(addictions: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Daily goals for each tracked addiction, chosen by recovery stage."""
    goals = []
    for addiction in addictions or []:
        days_clean = addiction.get("days_clean") or 0
        addiction_type = addiction.get("addiction_type") or {}
        if days_clean < 7:
            stage = EARLY_GOALS
        elif days_clean < 30:
            stage = BUILDING_GOALS
        else:
            stage = ESTABLISHED_GOALS
        for slug, text, points, priority in stage:
            goals.append({
                "id": f"addiction_{addiction['id']}_{slug}",
                "text": text,
                "completed": False,
                "type": "addiction",
                "points_value": points,
                "priority": priority,
                "addiction_id": addiction["id"],
                "addiction_name": addiction_type.get("name", "Addiction"),
                "addiction_category": addiction_type.get("category", "substance"),
            })
    return goals
