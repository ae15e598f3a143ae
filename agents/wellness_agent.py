"""
agents/wellness_agent.py
────────────────────────────
Breathing-exercise recommender.

Picks one technique from the breathing catalogue for the user's current
anxiety level and mood, then (optionally) lets GPT phrase a short,
encouraging suggestion grounded in the breathing guide below.
"""

import logging
from typing import Any, Dict, Optional

from openai import AsyncOpenAI

from utils.breathing import get_technique
from utils.config import CONFIG

logger = logging.getLogger("puremind.agent.wellness")

FALLBACK_SUGGESTION = (
    "Try a slow 4-7-8 breath: inhale for 4 seconds, hold for 7, exhale for 8. "
    "It can calm your body and ease tension right now."
)


# ──────────────────────────────
# WellnessAgent
# ──────────────────────────────
class WellnessAgent:
    """Rule-based technique choice with an LLM-written suggestion."""

    def __init__(self, model: Optional[str] = None, client: Optional[Any] = None):
        self.agent_name = "WellnessAgent"
        self.model = model or CONFIG.openai_model
        self._client = client
        self.breathing_reference = BREATHING_GUIDE_SUMMARY
        logger.info("🌿 WellnessAgent initialized with breathing-guide grounding.")

    @property
    def client(self):
        if self._client is None:
            self._client = AsyncOpenAI(api_key=CONFIG.openai_key or None)
        return self._client

    @staticmethod
    def choose_technique(anxiety_level: Optional[int], mood_name: Optional[str]) -> str:
        level = anxiety_level or 0
        mood = (mood_name or "").lower()
        if level >= 8 or mood == "anxious":
            return "box"
        if mood == "angry":
            return "extended"
        if mood == "tired" or level >= 5:
            return "4-7-8"
        if mood == "confused":
            return "triangle"
        return "coherent"

    # ──────────────────────────────
    # MAIN ENTRY
    # ──────────────────────────────
    async def recommend(self, anxiety_level: Optional[int], mood_name: Optional[str],
                  use_llm: bool = True) -> Dict[str, Any]:
        technique = get_technique(self.choose_technique(anxiety_level, mood_name))
        suggestion = technique.description
        if use_llm:
            suggestion = await self._generate_grounded_recommendation(technique.name, anxiety_level, mood_name)
        return {"technique": technique.to_dict(), "suggestion": suggestion}

    # ──────────────────────────────
    # LLM GENERATOR (grounded)
    # ──────────────────────────────
    async def _generate_grounded_recommendation(self, technique_name: str, anxiety_level: Optional[int],
                                          mood_name: Optional[str]) -> str:
        prompt = f"""
You are a calm AI wellness assistant suggesting a breathing exercise.

User Context:
- Current mood: {mood_name or "unknown"}
- Anxiety level (1-10): {anxiety_level if anxiety_level is not None else "unknown"}
- Chosen technique: {technique_name}

Breathing Guide Reference (extract):
{self.breathing_reference}

Instructions:
• Write 2–3 warm, supportive sentences introducing the chosen technique.
• Describe how to do it in natural language, not as rigid steps.
• Avoid medical claims, and end with gentle reassurance.
"""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": "You are an empathetic, evidence-based wellness assistant."},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=200,
                temperature=0.7,
            )
            choice = response.choices[0] if response.choices else None
            message = getattr(choice, "message", None)
            content = getattr(message, "content", "")
            suggestion = (content or "").strip() or FALLBACK_SUGGESTION
            logger.info(f"[WellnessAgent] 🌬️ Suggestion for {technique_name}")
            return suggestion
        except Exception as e:
            logger.error(f"❌ LLM generation failed: {e}")
            return FALLBACK_SUGGESTION


# ──────────────────────────────
# BREATHING GUIDE SNIPPET (summarized for grounding)
# ──────────────────────────────
BREATHING_GUIDE_SUMMARY = """
High anxiety or panic → Box Breathing (4-4-4-4) to regain a steady rhythm.
Moderate anxiety, tiredness or insomnia → 4-7-8 Breathing to slow the heart rate.
Anger → Extended Exhale (4-8) to release tension.
Confusion or scattered focus → Triangle Breathing (4-4-4).
General balance → Coherent Breathing (5-5).
All are gentle, safe, non-clinical methods that relax the nervous system.
"""
