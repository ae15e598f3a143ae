from datetime import date

import pytest

from services import daily_reset_service, mood_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import CHAT_HISTORY

TODAY = date(2026, 3, 10)


async def test_reset_runs_once_per_day(db):
    await mood_service.save_mood("u1", current_mood="😢", mood_name="sad", wellness_score=40, sentiment="negative")
    await db[CHAT_HISTORY].insert_one({"user_id": "u1", "session_id": "s", "role": "user", "content": "hi"})

    assert await daily_reset_service.check_for_daily_reset("u1", TODAY) is True
    assert await daily_reset_service.check_for_daily_reset("u1", TODAY) is False

    mood = await mood_service.get_current_mood("u1")
    assert mood["mood_name"] == "calm"
    assert mood["wellness_score"] == 75
    assert await db[CHAT_HISTORY].count_documents({"user_id": "u1"}) == 0

    state = await daily_reset_service.get_daily_state("u1")
    assert state["last_reset_date"] == "2026-03-10"
    assert state["last_chat_date"] == "2026-03-10"
    assert state["login_history"] == ["2026-03-10"]


async def test_reset_clears_recent_goal_progress_only(db):
    await daily_reset_service.complete_goal("u1", "g-old", 5, date(2026, 3, 1))
    await daily_reset_service.complete_goal("u1", "g-yesterday", 5, date(2026, 3, 9))
    goal = await daily_reset_service.add_custom_goal("u1", "Drink water")

    state = await daily_reset_service.trigger_manual_reset("u1", TODAY)
    assert list(state["completed_goals"]) == ["2026-03-01"]
    assert list(state["goal_points"]) == ["2026-03-01"]
    assert [g["id"] for g in state["custom_goals"]] == [goal["id"]]


async def test_custom_goals(db):
    goal = await daily_reset_service.add_custom_goal("u1", "  Walk outside  ")
    assert goal["text"] == "Walk outside"
    assert goal["points_value"] == 5
    assert goal["id"].startswith("custom-")
    assert [g["id"] for g in await daily_reset_service.list_custom_goals("u1")] == [goal["id"]]

    await daily_reset_service.remove_custom_goal("u1", goal["id"])
    assert await daily_reset_service.list_custom_goals("u1") == []
    with pytest.raises(NotFoundError):
        await daily_reset_service.remove_custom_goal("u1", goal["id"])
    with pytest.raises(ValidationError):
        await daily_reset_service.add_custom_goal("u1", "   ")


async def test_points_awarded_once_per_goal_per_day(db):
    first = await daily_reset_service.complete_goal("u1", "ai_mood_boost_1", 8, TODAY)
    again = await daily_reset_service.complete_goal("u1", "ai_mood_boost_1", 8, TODAY)
    other = await daily_reset_service.complete_goal("u1", "custom-1", 5, TODAY)

    assert first["awarded"] is True and first["total_points"] == 8
    assert again["awarded"] is False and again["total_points"] == 8
    assert other["total_points"] == 13
    assert other["completed_goals"] == ["ai_mood_boost_1", "custom-1"]


async def test_dotted_goal_ids_keep_points_flat(db):
    dotted = await daily_reset_service.complete_goal("u1", "a.b", 5, TODAY)
    dollar = await daily_reset_service.complete_goal("u1", "$where", 2, TODAY)
    other = await daily_reset_service.complete_goal("u1", "other", 3, TODAY)

    assert dotted["total_points"] == 5
    assert dollar["total_points"] == 7
    assert other["total_points"] == 10
    assert other["completed_goals"] == ["a.b", "$where", "other"]

    state = await daily_reset_service.get_daily_state("u1")
    assert daily_reset_service.points_for_day(state, "2026-03-10") == 10
    again = await daily_reset_service.complete_goal("u1", "a.b", 5, TODAY)
    assert again["awarded"] is False and again["total_points"] == 10


async def test_login_streak(db):
    await daily_reset_service.update_daily_state(
        "u1", {"login_history": ["2026-03-01", "2026-03-02", "2026-03-03", "2026-03-08", "2026-03-09", "2026-03-10"]}
    )
    streak = await daily_reset_service.login_streak("u1", TODAY)
    assert streak == {"current": 3, "longest": 3, "total_days": 6}
