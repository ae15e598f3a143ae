"""
utils/breathing.py
------------------
Breathing technique catalogue and a clock-free session model: given the
seconds elapsed, report where in the pattern the user should be.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from services.errors import NotFoundError, ValidationError


@dataclass(frozen=True)
class BreathingTechnique:
    id: str
    name: str
    description: str
    pattern: List[int]
    instructions: List[str]
    duration: int  # minutes
    difficulty: str

    @property
    def cycle_seconds(self) -> int:
        return sum(self.pattern)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "pattern": list(self.pattern),
            "instructions": list(self.instructions),
            "duration": self.duration,
            "difficulty": self.difficulty,
        }


TECHNIQUES: List[BreathingTechnique] = [
    BreathingTechnique(
        "4-7-8", "4-7-8 Breathing",
        "Inhale for 4, hold for 7, exhale for 8. Great for anxiety and sleep.",
        [4, 7, 8], ["Inhale through nose", "Hold your breath", "Exhale through mouth"], 5, "beginner",
    ),
    BreathingTechnique(
        "box", "Box Breathing",
        "Equal counts for inhale, hold, exhale, hold. Used by Navy SEALs.",
        [4, 4, 4, 4], ["Inhale", "Hold", "Exhale", "Hold"], 5, "beginner",
    ),
    BreathingTechnique(
        "coherent", "Coherent Breathing",
        "Simple 5-5 pattern for heart rate variability.",
        [5, 5], ["Inhale slowly", "Exhale slowly"], 10, "beginner",
    ),
    BreathingTechnique(
        "triangle", "Triangle Breathing",
        "Three-part breath for focus and calm.",
        [4, 4, 4], ["Inhale", "Hold", "Exhale"], 7, "intermediate",
    ),
    BreathingTechnique(
        "extended", "Extended Exhale",
        "Longer exhale activates parasympathetic nervous system.",
        [4, 8], ["Inhale", "Exhale slowly"], 8, "intermediate",
    ),
    BreathingTechnique(
        "wim-hof", "Wim Hof Method",
        "Powerful breathing for energy and stress resilience.",
        [2, 0, 1, 15], ["Deep inhale", "Quick exhale", "Final inhale", "Hold breath"], 15, "advanced",
    ),
]

_BY_ID = {t.id: t for t in TECHNIQUES}


def get_technique(technique_id: str) -> BreathingTechnique:
    try:
        return _BY_ID[technique_id]
    except KeyError:
        raise NotFoundError(f"Unknown breathing technique: {technique_id}")


def format_time(seconds: int) -> str:
    return f"{seconds // 60}:{seconds % 60:02d}"


@dataclass
class BreathingSession:
    technique: BreathingTechnique
    duration_minutes: int = 0
    total_cycles: int = field(init=False)

    def __post_init__(self):
        if not self.duration_minutes:
            self.duration_minutes = self.technique.duration
        if self.duration_minutes <= 0:
            raise ValidationError("duration_minutes must be positive")
        self.total_cycles = (self.duration_minutes * 60) // self.technique.cycle_seconds

    @property
    def total_seconds(self) -> int:
        return self.duration_minutes * 60

    def state_at(self, elapsed: float) -> Dict[str, Any]:
        """Phase, cycle and countdowns ``elapsed`` seconds into the session."""
        elapsed = max(0, int(elapsed))
        remaining = max(0, self.total_seconds - elapsed)
        cycle_seconds = self.technique.cycle_seconds
        cycle = elapsed // cycle_seconds

        if cycle >= self.total_cycles or remaining == 0:
            return {
                "technique": self.technique.id,
                "completed": True,
                "cycle": self.total_cycles,
                "total_cycles": self.total_cycles,
                "phase_index": None,
                "instruction": None,
                "phase_seconds_left": 0,
                "time_remaining": remaining,
                "time_remaining_display": format_time(remaining),
            }

        offset = elapsed % cycle_seconds
        phase_index = 0
        phase_left = 0
        for index, length in enumerate(self.technique.pattern):
            if length == 0:
                continue
            if offset < length:
                phase_index = index
                phase_left = length - offset
                break
            offset -= length

        instructions = self.technique.instructions
        return {
            "technique": self.technique.id,
            "completed": False,
            "cycle": cycle + 1,
            "total_cycles": self.total_cycles,
            "phase_index": phase_index,
            "instruction": instructions[min(phase_index, len(instructions) - 1)],
            "phase_seconds_left": phase_left,
            "time_remaining": remaining,
            "time_remaining_display": format_time(remaining),
        }


def start_session(technique_id: str, duration_minutes: Optional[int] = None) -> BreathingSession:
    return BreathingSession(get_technique(technique_id), duration_minutes or 0)
