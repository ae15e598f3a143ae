import random

from utils.sentiment import (
    analyze_mood_from_message, analyze_sentiment, calculate_wellness_score, generate_mood_interpretation,
    MOOD_INTERPRETATIONS,
)


def test_sentiment_counts_whole_words_only():
    assert analyze_sentiment("I had a great, wonderful day") == "POSITIVE"
    assert analyze_sentiment("badminton practice") == "NEUTRAL"
    assert analyze_sentiment("So tired and sad today") == "NEGATIVE"


def test_sentiment_mood_emoji_bias():
    assert analyze_sentiment("ordinary day", "😊") == "POSITIVE"
    assert analyze_sentiment("ordinary day", "😢") == "NEGATIVE"
    # one negative word is outweighed by the happy emoji
    assert analyze_sentiment("a bit tired", "🥳") == "POSITIVE"


def test_sentiment_tie_is_neutral():
    assert analyze_sentiment("happy but sad") == "NEUTRAL"
    assert analyze_sentiment("") == "NEUTRAL"


def test_direct_statement_wins_with_high_confidence():
    analysis = analyze_mood_from_message("Honestly I feel really anxious about tomorrow")
    assert analysis.mood_name == "anxious"
    assert analysis.mood == "😰"
    assert analysis.confidence == 0.9
    assert analysis.should_update


def test_keyword_share_when_no_direct_statement():
    analysis = analyze_mood_from_message("so exhausted and drained after work")
    assert analysis.mood_name == "tired"
    assert analysis.confidence == 2 / 6
    assert not analysis.should_update


def test_sentiment_fallback():
    assert analyze_mood_from_message("the bus was late", "POSITIVE").mood_name == "happy"
    negative = analyze_mood_from_message("the bus was late", "negative")
    assert negative.mood_name == "sad" and negative.confidence == 0.3
    assert analyze_mood_from_message("the bus was late", "NEUTRAL").mood_name == "calm"


def test_no_signal_is_neutral():
    analysis = analyze_mood_from_message("the bus was late")
    assert analysis.mood_name == "neutral"
    assert analysis.confidence == 0
    assert not analysis.should_update


def test_interpretation_comes_from_the_mood_pool():
    text = generate_mood_interpretation("calm", random.Random(1))
    assert text in MOOD_INTERPRETATIONS["calm"]
    assert "validated" in generate_mood_interpretation("unknown")


def test_wellness_score_bounds():
    rng = random.Random(7)
    for _ in range(200):
        assert 80 <= calculate_wellness_score("positive", rng) <= 95
        assert 45 <= calculate_wellness_score("negative", rng) <= 65
        assert 70 <= calculate_wellness_score("neutral", rng) <= 79
