from types import SimpleNamespace

import pytest

from agents.chat_agent import FALLBACK_REPLY, ChatAgent
from agents.wellness_agent import FALLBACK_SUGGESTION, WellnessAgent
from services import chat_memory, daily_reset_service, mood_service
from services.errors import NotFoundError
from services.puremind_db import day_key


class FakeChatModel:
    def __init__(self, reply="That sounds like a lovely day.", fail=False):
        self.reply = reply
        self.fail = fail
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.fail:
            raise RuntimeError("model unavailable")
        return SimpleNamespace(content=self.reply)


class FakeCompletions:
    def __init__(self, content=None, fail=False):
        self.content = content
        self.fail = fail

    async def create(self, **kwargs):
        if self.fail:
            raise RuntimeError("quota exceeded")
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def fake_openai(content=None, fail=False):
    return SimpleNamespace(chat=SimpleNamespace(completions=FakeCompletions(content, fail)))


# ──────────────────────────────
# Chat
# ──────────────────────────────
async def test_chat_reply_is_stored_and_updates_mood(db):
    session = await chat_memory.create_session("u1")
    llm = FakeChatModel()
    agent = ChatAgent(llm=llm)

    result = await agent.respond("u1", session["id"], "I feel happy and grateful today")
    assert result["reply"] == "That sounds like a lovely day."
    assert result["crisis"] is False
    assert result["sentiment"] == "POSITIVE"
    assert result["mood"]["mood_name"] == "happy"
    assert (await mood_service.get_current_mood("u1"))["current_mood"] == "😊"

    messages = await chat_memory.get_messages("u1", session["id"])
    assert [m["role"] for m in messages] == ["user", "assistant"]
    assert messages[1]["metadata"] == {"crisis": False, "sentiment": "POSITIVE"}

    state = await daily_reset_service.get_daily_state("u1")
    assert state["last_chat_date"] == day_key()


async def test_chat_history_is_sent_as_context(db):
    session = await chat_memory.create_session("u1")
    llm = FakeChatModel(reply="I hear you.")
    agent = ChatAgent(llm=llm)

    await agent.respond("u1", session["id"], "Work was long")
    await agent.respond("u1", session["id"], "Still thinking about it")

    system_prompt = llm.calls[1][0].content
    assert "User: Work was long" in system_prompt
    assert "Assistant: I hear you." in system_prompt
    assert "No previous conversation." in llm.calls[0][0].content


async def test_graph_keeps_no_state_between_turns(db):
    session = await chat_memory.create_session("u1")
    llm = FakeChatModel(reply="I hear you.")
    agent = ChatAgent(llm=llm)
    assert agent.graph.checkpointer is None

    await agent.respond("u1", session["id"], "Work was long")
    await db["chat_history"].delete_many({"user_id": "u1"})
    await agent.respond("u1", session["id"], "New day")

    assert "No previous conversation." in llm.calls[1][0].content
    assert "Work was long" not in llm.calls[1][0].content


async def test_crisis_message_skips_the_model(db):
    session = await chat_memory.create_session("u1")
    llm = FakeChatModel()
    agent = ChatAgent(llm=llm)

    result = await agent.respond("u1", session["id"], "I want to die")
    assert result["crisis"] is True
    assert "988" in result["reply"]
    assert llm.calls == []


async def test_model_failure_uses_fallback(db):
    session = await chat_memory.create_session("u1")
    agent = ChatAgent(llm=FakeChatModel(fail=True))

    result = await agent.respond("u1", session["id"], "hello there")
    assert result["reply"] == FALLBACK_REPLY
    assert result["mood"] is None


async def test_chat_requires_own_session(db):
    session = await chat_memory.create_session("u1")
    agent = ChatAgent(llm=FakeChatModel())
    with pytest.raises(NotFoundError):
        await agent.respond("u2", session["id"], "hi")


# ──────────────────────────────
# Wellness
# ──────────────────────────────
@pytest.mark.parametrize("level,mood,expected", [
    (9, None, "box"),
    (2, "anxious", "box"),
    (3, "angry", "extended"),
    (6, "happy", "4-7-8"),
    (1, "tired", "4-7-8"),
    (2, "confused", "triangle"),
    (None, None, "coherent"),
])
def test_choose_technique(level, mood, expected):
    assert WellnessAgent.choose_technique(level, mood) == expected


async def test_recommend_without_llm_uses_description():
    agent = WellnessAgent(client=fake_openai(fail=True))
    result = await agent.recommend(8, "anxious", use_llm=False)
    assert result["technique"]["id"] == "box"
    assert result["suggestion"] == result["technique"]["description"]


async def test_recommend_with_llm():
    agent = WellnessAgent(client=fake_openai("Let's breathe in a gentle square together."))
    result = await agent.recommend(3, "confused")
    assert result["technique"]["id"] == "triangle"
    assert result["suggestion"] == "Let's breathe in a gentle square together."


async def test_llm_failure_or_empty_reply_falls_back():
    assert (await WellnessAgent(client=fake_openai(fail=True)).recommend(5, None))["suggestion"] == FALLBACK_SUGGESTION
    assert (await WellnessAgent(client=fake_openai("   ")).recommend(5, None))["suggestion"] == FALLBACK_SUGGESTION
