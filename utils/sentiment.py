"""
utils/sentiment.py
------------------
Keyword-based sentiment for journal entries and mood detection for chat
messages. No model calls: these run on every write.
"""
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional

HAPPY_MOODS = ["😊", "🥰", "🤩", "😎", "🥳"]
SAD_MOODS = ["😕", "😢", "😠", "😤", "😰", "😓"]

POSITIVE_WORDS = [
    "happy", "joy", "excited", "great", "good", "wonderful", "amazing", "love",
    "grateful", "thankful", "appreciate", "blessed", "success", "accomplished",
    "proud", "peaceful", "calm", "relaxed", "hope", "positive",
]

NEGATIVE_WORDS = [
    "sad", "angry", "upset", "frustrated", "anxious", "worried", "stress",
    "depressed", "unhappy", "hate", "terrible", "awful", "horrible", "bad",
    "disappointed", "hurt", "pain", "fear", "tired", "exhausted", "sick",
]


def _count_words(text: str, words: List[str]) -> int:
    return sum(len(re.findall(rf"\b{re.escape(w)}\b", text, re.IGNORECASE)) for w in words)


def analyze_sentiment(content: str, mood: str = "") -> str:
    """Return POSITIVE, NEGATIVE or NEUTRAL for a journal entry."""
    text = (content or "").lower()
    positive_count = _count_words(text, POSITIVE_WORDS)
    negative_count = _count_words(text, NEGATIVE_WORDS)

    # Mood emoji bias
    if mood in HAPPY_MOODS:
        positive_count += 2
    if mood in SAD_MOODS:
        negative_count += 2

    if positive_count > negative_count:
        return "POSITIVE"
    if negative_count > positive_count:
        return "NEGATIVE"
    return "NEUTRAL"


# ──────────────────────────────
# Mood detection from chat text
# ──────────────────────────────
MOOD_INDICATORS: Dict[str, Dict] = {
    "happy": {
        "keywords": ["happy", "great", "amazing", "wonderful", "excited", "joy", "fantastic", "awesome", "love", "perfect"],
        "emoji": "😊",
        "sentiment": "positive",
    },
    "sad": {
        "keywords": ["sad", "depressed", "down", "upset", "crying", "hurt", "disappointed", "lonely", "empty"],
        "emoji": "😢",
        "sentiment": "negative",
    },
    "angry": {
        "keywords": ["angry", "mad", "furious", "frustrated", "annoyed", "irritated", "rage", "hate"],
        "emoji": "😠",
        "sentiment": "negative",
    },
    "anxious": {
        "keywords": ["anxious", "worried", "nervous", "stressed", "panic", "overwhelmed", "scared", "afraid"],
        "emoji": "😰",
        "sentiment": "negative",
    },
    "calm": {
        "keywords": ["calm", "peaceful", "relaxed", "serene", "tranquil", "centered", "balanced"],
        "emoji": "😌",
        "sentiment": "positive",
    },
    "tired": {
        "keywords": ["tired", "exhausted", "drained", "weary", "sleepy", "fatigue"],
        "emoji": "😴",
        "sentiment": "neutral",
    },
    "confused": {
        "keywords": ["confused", "lost", "uncertain", "unclear", "puzzled", "mixed up"],
        "emoji": "🤔",
        "sentiment": "neutral",
    },
}

DIRECT_MOOD_PATTERNS = [
    re.compile(r"i feel (.*)"),
    re.compile(r"i am (.*)"),
    re.compile(r"i'm (.*)"),
    re.compile(r"feeling (.*)"),
    re.compile(r"i've been (.*)"),
    re.compile(r"today i am (.*)"),
    re.compile(r"right now i feel (.*)"),
]

UPDATE_CONFIDENCE = 0.4


@dataclass
class MoodAnalysis:
    mood: str
    mood_name: str
    sentiment: str
    confidence: float
    should_update: bool


def analyze_mood_from_message(message: str, sentiment: Optional[str] = None) -> MoodAnalysis:
    """Detect the user's mood from a chat message.

    Direct statements ("i feel ...") win with confidence 0.9; otherwise the mood
    with the largest share of matched keywords; otherwise the sentiment hint.
    """
    lower_message = (message or "").lower()
    detected: Optional[str] = None
    confidence = 0.0

    for pattern in DIRECT_MOOD_PATTERNS:
        match = pattern.search(lower_message)
        if not match:
            continue
        mood_text = match.group(1)
        for mood, indicators in MOOD_INDICATORS.items():
            if any(k in mood_text for k in indicators["keywords"]):
                detected = mood
                confidence = 0.9
                break
        if detected:
            break

    if not detected:
        for mood, indicators in MOOD_INDICATORS.items():
            hits = sum(1 for k in indicators["keywords"] if k in lower_message)
            if hits:
                share = hits / len(indicators["keywords"])
                if share > confidence:
                    detected = mood
                    confidence = share

    if not detected and sentiment:
        s = sentiment.lower()
        if s == "positive":
            detected, confidence = "happy", 0.3
        elif s == "negative":
            detected, confidence = "sad", 0.3
        else:
            detected, confidence = "calm", 0.2

    if detected:
        indicators = MOOD_INDICATORS[detected]
        return MoodAnalysis(
            mood=indicators["emoji"],
            mood_name=detected,
            sentiment=indicators["sentiment"],
            confidence=confidence,
            should_update=confidence > UPDATE_CONFIDENCE,
        )
    return MoodAnalysis(mood="😐", mood_name="neutral", sentiment="neutral", confidence=0.0, should_update=False)


MOOD_INTERPRETATIONS: Dict[str, List[str]] = {
    "happy": [
        "You're radiating positivity today! Your happiness is reflected in how you express yourself.",
        "It's wonderful to see you in such a great mood. Keep embracing those positive feelings!",
        "Your joyful energy is evident. This positive state can really boost your overall wellbeing.",
    ],
    "sad": [
        "I notice you're going through a difficult time. It's okay to feel sad - these emotions are valid.",
        "You seem to be processing some challenging feelings. Remember that it's normal to have ups and downs.",
        "Your emotional honesty shows strength. Acknowledging sadness is an important part of healing.",
    ],
    "angry": [
        "I can sense some frustration in your words. Anger often signals that something important to you needs attention.",
        "You're experiencing some intense emotions. It's healthy to acknowledge anger rather than suppress it.",
        "Your feelings of anger are valid. Let's work on understanding what's triggering these emotions.",
    ],
    "anxious": [
        "I notice some worry in your message. Anxiety can be overwhelming, but you're taking the right step by talking about it.",
        "You seem to be feeling anxious about something. Remember that anxiety is treatable and you're not alone.",
        "Your concerns are being heard. Anxiety often tries to protect us, even when it feels uncomfortable.",
    ],
    "calm": [
        "You seem centered and peaceful right now. This balanced state is wonderful for your mental wellbeing.",
        "There's a sense of tranquility in how you're expressing yourself today. Enjoy this peaceful moment.",
        "Your calm energy is evident. This balanced emotional state is great for reflection and growth.",
    ],
    "tired": [
        "You sound like you might be feeling drained. Rest and self-care are important for your wellbeing.",
        "Fatigue can affect our emotional state. Make sure you're getting enough rest and taking care of yourself.",
        "It seems like you might need some time to recharge. Listen to your body's signals.",
    ],
    "confused": [
        "You seem to be working through some uncertainty. It's okay not to have all the answers right now.",
        "Confusion often comes before clarity. You're in a process of figuring things out, and that's perfectly normal.",
        "Mixed feelings are completely valid. Sometimes we need time to sort through complex emotions.",
    ],
}

DEFAULT_INTERPRETATION = "Your emotional state is being recognized and validated. Every feeling you have is important."


def generate_mood_interpretation(mood_name: str, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    options = MOOD_INTERPRETATIONS.get(mood_name) or [DEFAULT_INTERPRETATION]
    return rng.choice(options)


BASE_WELLNESS_SCORE = 75


def calculate_wellness_score(sentiment: str, rng: Optional[random.Random] = None) -> int:
    """Wellness score (45..95) jittered around 75 by sentiment."""
    rng = rng or random.Random()
    if sentiment == "positive":
        return min(95, BASE_WELLNESS_SCORE + rng.randrange(15) + 5)
    if sentiment == "negative":
        return max(45, BASE_WELLNESS_SCORE - rng.randrange(15) - 10)
    return BASE_WELLNESS_SCORE + rng.randrange(10) - 5
