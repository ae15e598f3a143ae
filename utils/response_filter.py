"""
utils/response_filter.py
------------------------
Safety screen run before any chat message reaches the model.
"""
from typing import Optional

from utils.recovery_rules import emergency_resources

CRISIS_TERMS = [
    "suicide", "suicidal", "hurt myself", "kill myself", "end my life",
    "better off dead", "self harm", "self-harm", "want to die",
]


def is_crisis(user_input: str) -> bool:
    text = (user_input or "").lower()
    return any(term in text for term in CRISIS_TERMS)


def crisis_detector(user_input: str) -> Optional[str]:
    """Return the fixed safety response when self-harm indicators are present."""
    if not is_crisis(user_input):
        return None
    crisis = emergency_resources()["crisis"]
    return (
        "I'm really concerned about what you just said. You're not alone, and there's help available right now. "
        "If you're in immediate danger, please reach out to someone you trust or contact a crisis line: "
        f"call or text {crisis['phone']}, {crisis['text']}, or visit {crisis['chat']}."
    )
