from datetime import date

import pytest

from agents import goal_agent
from agents.goal_agent import UserMentalHealthProfile, generate_ai_goals
from services import anxiety_service, daily_reset_service, mood_service
from services.errors import NotFoundError

TODAY = date(2026, 3, 10)


def slugs(goals):
    return [g["id"].split("_", 1)[1].rsplit("_", 1)[0] for g in goals]


def test_thriving_user_only_gets_journaling():
    profile = UserMentalHealthProfile(wellness_score=85, sentiment="positive", stress_level=3,
                                      recent_journal_entries=5, mood_name="happy")
    assert generate_ai_goals(profile, stamp=1) == []

    profile.recent_journal_entries = 1
    assert slugs(generate_ai_goals(profile, stamp=1)) == ["journaling"]


def test_default_profile_goals():
    goals = generate_ai_goals(UserMentalHealthProfile(), stamp=42)
    assert slugs(goals) == ["mood_boost", "physical_activity", "social_connection", "journaling"]
    assert goals[0]["id"] == "ai_mood_boost_42"
    assert goals[0]["points_value"] == 8
    assert goals[0]["priority"] == "high"
    assert "50" in goals[0]["reasoning"]
    assert not any(g["completed"] for g in goals)


def test_goals_are_capped_in_rule_order():
    profile = UserMentalHealthProfile(
        wellness_score=40, sentiment="negative", recent_anxiety_level=8.0, has_addictions=True,
        triggers=["stress"], stress_level=7, mood_name="anxious",
    )
    goals = generate_ai_goals(profile, stamp=1)
    assert slugs(goals) == ["mood_boost", "gratitude", "anxiety_relief", "grounding", "recovery_check", "trigger_plan"]
    assert "8.0/10" in goals[2]["reasoning"]


def test_mood_specific_goals():
    anxious = UserMentalHealthProfile(wellness_score=75, recent_journal_entries=4, mood_name="worried")
    sad = UserMentalHealthProfile(wellness_score=75, recent_journal_entries=4, mood_name="sad")
    assert slugs(generate_ai_goals(anxious, stamp=1)) == ["worry_time"]
    assert slugs(generate_ai_goals(sad, stamp=1)) == ["mood_lift"]


async def test_profile_from_recorded_data(db):
    await mood_service.save_mood("u1", current_mood="😢", mood_name="sad", wellness_score=45, sentiment="negative")
    await anxiety_service.update_level("u1", 8)
    await anxiety_service.update_level("u1", 6)

    profile = await goal_agent.build_profile("u1")
    assert profile.mood_name == "sad"
    assert profile.stress_level == 7
    assert profile.recent_anxiety_level == 7.0
    assert profile.has_addictions is False
    assert profile.predominant_challenges == ["Negative mood patterns", "Low wellness score", "High anxiety levels"]
    assert profile.strengths == []


async def test_daily_goals_are_generated_once(db):
    first = await goal_agent.generate_daily_ai_goals("u1", TODAY)
    assert len(first) == 4

    await mood_service.save_mood("u1", current_mood="😢", mood_name="sad", wellness_score=30, sentiment="negative")
    again = await goal_agent.generate_daily_ai_goals("u1", TODAY)
    assert [g["id"] for g in again] == [g["id"] for g in first]


async def test_complete_and_remove(db):
    goals = await goal_agent.generate_daily_ai_goals("u1", TODAY)
    target, dropped = goals[0], goals[1]

    result = await goal_agent.complete_ai_goal("u1", target["id"], TODAY)
    assert result["awarded"] is True
    assert result["total_points"] == target["points_value"]
    stored = await goal_agent.get_todays_goals("u1", TODAY)
    assert stored[0]["completed"] is True

    remaining = await goal_agent.remove_ai_goal("u1", dropped["id"], TODAY)
    assert dropped["id"] not in [g["id"] for g in remaining]
    assert len(remaining) == len(goals) - 1

    with pytest.raises(NotFoundError):
        await goal_agent.remove_ai_goal("u1", dropped["id"], TODAY)
    with pytest.raises(NotFoundError):
        await goal_agent.complete_ai_goal("u1", "ai_missing_1", TODAY)

    state = await daily_reset_service.get_daily_state("u1")
    assert state["completed_goals"]["2026-03-10"] == [target["id"]]


@pytest.mark.parametrize("mood, expected", [
    ({"wellness_score": 0, "sentiment": "neutral"}, ["Low wellness score"]),
    ({"wellness_score": 49}, ["Low wellness score"]),
    ({"wellness_score": 50}, []),
    ({"wellness_score": None}, []),
    (None, []),
])
def test_low_wellness_challenge(mood, expected):
    assert goal_agent.extract_challenges(mood, [], []) == expected
