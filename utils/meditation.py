"""
utils/meditation.py
-------------------
Guided meditation catalogue. Like the breathing sessions, playback is
clock-free: callers pass the seconds elapsed and get the script line to show.
"""
from dataclasses import dataclass
from typing import Any, Dict, List

from services.errors import NotFoundError
from utils.breathing import format_time
from utils.numbers import round_to_tenth

MEDITATION_TYPES = ("guided", "ambient", "nature")


@dataclass(frozen=True)
class MeditationSession:
    id: str
    title: str
    description: str
    duration: int  # minutes
    type: str
    difficulty: str
    script: List[str]

    @property
    def total_seconds(self) -> int:
        return self.duration * 60

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "duration": self.duration,
            "type": self.type,
            "difficulty": self.difficulty,
            "script": list(self.script),
        }

    def state_at(self, elapsed: float) -> Dict[str, Any]:
        """Script line, progress and countdown ``elapsed`` seconds in.

        Each line gets an equal slice of the session; the last line stays up until the end.
        """
        elapsed = min(max(0, int(elapsed)), self.total_seconds)
        remaining = self.total_seconds - elapsed
        slice_seconds = self.total_seconds / len(self.script)
        index = min(int(elapsed // slice_seconds), len(self.script) - 1)
        return {
            "meditation": self.id,
            "completed": remaining == 0,
            "script_index": index,
            "script_line": self.script[index],
            "progress": round_to_tenth(elapsed / self.total_seconds * 100),
            "time_elapsed_display": format_time(elapsed),
            "time_remaining": remaining,
            "time_remaining_display": format_time(remaining),
        }


MEDITATIONS: List[MeditationSession] = [
    MeditationSession(
        "anxiety-relief", "Anxiety Relief Meditation",
        "Gentle guided meditation specifically for anxiety and stress relief",
        10, "guided", "beginner",
        [
            "Find a comfortable position and close your eyes gently.",
            "Take a deep breath in through your nose, and slowly exhale through your mouth.",
            "Notice any tension in your body and allow it to melt away with each breath.",
            "Bring your attention to your breath, feeling the natural rhythm of inhaling and exhaling.",
            "If anxious thoughts arise, acknowledge them without judgment and gently return to your breath.",
            "Imagine a warm, golden light surrounding you, creating a bubble of safety and calm.",
            "With each breath, this light grows brighter, dissolving any worry or fear.",
            "You are safe in this moment. You are exactly where you need to be.",
            "Continue breathing deeply, feeling more relaxed with each exhale.",
            "When you're ready, slowly open your eyes and return to the present moment.",
        ],
    ),
    MeditationSession(
        "body-scan", "Progressive Body Scan",
        "Release physical tension and promote deep relaxation",
        15, "guided", "beginner",
        [
            "Lie down comfortably and close your eyes.",
            "Begin by focusing on your toes. Notice any sensations without trying to change them.",
            "Slowly move your attention up to your feet, feeling them relax completely.",
            "Continue up to your calves, noticing any tension and letting it go.",
            "Move to your thighs, allowing them to become heavy and relaxed.",
            "Focus on your hips and lower back, releasing any tightness.",
            "Bring attention to your abdomen, feeling it rise and fall with your breath.",
            "Notice your chest and shoulders, letting them drop and soften.",
            "Move to your arms, from shoulders to fingertips, feeling them become loose.",
            "Focus on your neck and jaw, releasing any held tension.",
            "Finally, relax your face and scalp, feeling completely at peace.",
            "Take a few moments to enjoy this state of complete relaxation.",
        ],
    ),
    MeditationSession(
        "mindfulness", "Mindful Awareness",
        "Develop present-moment awareness and mental clarity",
        12, "guided", "intermediate",
        [
            "Sit comfortably with your spine straight and eyes closed.",
            "Begin by simply observing your breath without changing it.",
            "Notice the sensation of air entering and leaving your nostrils.",
            "When your mind wanders, gently bring your attention back to your breath.",
            "Expand your awareness to include sounds around you.",
            "Notice these sounds without labeling or judging them.",
            "Now include physical sensations in your awareness.",
            "Feel the weight of your body, the temperature of the air.",
            "If thoughts arise, observe them like clouds passing in the sky.",
            "You are the observer, not the thoughts themselves.",
            "Rest in this spacious awareness, feeling calm and centered.",
            "Slowly return your focus to your breath before opening your eyes.",
        ],
    ),
    MeditationSession(
        "loving-kindness", "Loving-Kindness Meditation",
        "Cultivate compassion and reduce self-criticism",
        8, "guided", "beginner",
        [
            "Sit comfortably and place your hand on your heart.",
            "Begin by sending loving-kindness to yourself.",
            "Repeat silently: 'May I be happy, may I be healthy, may I be at peace.'",
            "Feel the warmth of these wishes in your heart.",
            "Now bring to mind someone you love dearly.",
            "Send them the same wishes: 'May you be happy, may you be healthy, may you be at peace.'",
            "Extend these wishes to a neutral person in your life.",
            "Now include someone you have difficulty with.",
            "Finally, extend loving-kindness to all beings everywhere.",
            "Feel the connection and compassion flowing through you.",
            "Return to yourself with gratitude for this practice.",
        ],
    ),
    MeditationSession(
        "nature-sounds", "Nature Soundscape",
        "Relax with calming nature sounds and ambient music",
        20, "nature", "beginner",
        [
            "Close your eyes and imagine yourself in a peaceful natural setting.",
            "Perhaps a quiet forest, a gentle stream, or a calm beach.",
            "Allow the sounds of nature to wash over you.",
            "Feel yourself becoming one with this peaceful environment.",
            "Let go of all worries and simply be present in this moment.",
            "Continue to breathe naturally as you enjoy this peaceful escape.",
        ],
    ),
]

_BY_ID = {m.id: m for m in MEDITATIONS}


def get_meditation(meditation_id: str) -> MeditationSession:
    try:
        return _BY_ID[meditation_id]
    except KeyError:
        raise NotFoundError(f"Unknown meditation: {meditation_id}")
