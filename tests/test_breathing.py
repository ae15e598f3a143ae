import pytest

from services.errors import NotFoundError, ValidationError
from utils.breathing import TECHNIQUES, BreathingSession, format_time, get_technique, start_session


def test_catalogue():
    assert [t.id for t in TECHNIQUES] == ["4-7-8", "box", "coherent", "triangle", "extended", "wim-hof"]
    assert get_technique("box").cycle_seconds == 16
    with pytest.raises(NotFoundError):
        get_technique("lion")


def test_format_time():
    assert format_time(65) == "1:05"
    assert format_time(0) == "0:00"


def test_total_cycles_uses_floor():
    session = start_session("4-7-8", 1)
    assert session.total_cycles == 3  # 60 // 19
    assert start_session("coherent").duration_minutes == 10


def test_non_positive_duration_is_rejected():
    with pytest.raises(ValidationError):
        BreathingSession(get_technique("box"), -1)


def test_state_walks_through_phases():
    session = start_session("4-7-8", 1)

    first = session.state_at(0)
    assert first["cycle"] == 1
    assert first["phase_index"] == 0
    assert first["instruction"] == "Inhale through nose"
    assert first["phase_seconds_left"] == 4

    hold = session.state_at(5)
    assert hold["phase_index"] == 1
    assert hold["phase_seconds_left"] == 6

    second_cycle = session.state_at(20)
    assert second_cycle["cycle"] == 2
    assert second_cycle["phase_index"] == 0
    assert second_cycle["time_remaining"] == 40
    assert second_cycle["time_remaining_display"] == "0:40"


def test_state_completes_after_last_full_cycle():
    session = start_session("4-7-8", 1)
    done = session.state_at(57)
    assert done["completed"]
    assert done["cycle"] == 3
    assert done["phase_index"] is None


def test_zero_length_phase_is_skipped():
    session = start_session("wim-hof", 1)
    state = session.state_at(2)
    assert state["phase_index"] == 2
    assert state["instruction"] == "Final inhale"
