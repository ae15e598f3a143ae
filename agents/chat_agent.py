"""
agents/chat_agent.py
────────────────────────────
Supportive chat companion built as a two-node LangGraph:

    guard ──(crisis)──► END
      │
      └──► respond ──► END

The guard node screens every message for self-harm indicators and answers
with a fixed safety message. Everything else goes to the LLM with the last
few turns of the session as context. After each reply the user's mood
snapshot is refreshed from the message.
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI
from langgraph.graph import END, StateGraph
from typing_extensions import TypedDict

from services import daily_reset_service, mood_service
from services.chat_memory import AsyncMongoChatMemory, get_session
from services.puremind_db import day_key
from utils.config import CONFIG
from utils.response_filter import crisis_detector
from utils.sentiment import analyze_sentiment

logger = logging.getLogger("puremind.agent.chat")

SYSTEM_PROMPT = (
    "You are PureMind, a warm and supportive mental wellness companion. "
    "Listen carefully, reflect the user's feelings back in plain language, and offer one small, practical "
    "coping idea when it fits (breathing, journaling, reaching out to someone, rest). "
    "Keep replies under 120 words. You are not a therapist: never diagnose or prescribe, and suggest "
    "professional support when the user describes something serious."
)
FALLBACK_REPLY = (
    "I'm having trouble responding right now, but I'm still here with you. "
    "Would you like to try a short breathing exercise while I reconnect?"
)


class ChatState(TypedDict):
    user_text: str
    user_id: str
    session_id: str
    history_snippets: List[str]
    crisis: bool
    final_output: str


class ChatAgent:
    """LangGraph chat pipeline with Mongo-backed session memory."""

    def __init__(self, llm: Optional[Any] = None, history_limit: int = 6):
        self.agent_name = "ChatAgent"
        self.history_limit = history_limit
        self._llm = llm
        self.graph = self._build_graph()
        logger.info("💬 ChatAgent initialized.")

    @property
    def llm(self):
        if self._llm is None:
            self._llm = ChatOpenAI(model=CONFIG.openai_model, temperature=0.6, api_key=CONFIG.openai_key or None)
        return self._llm

    # ──────────────────────────────
    # GRAPH
    # ──────────────────────────────
    async def _guard_node(self, state: ChatState) -> Dict[str, Any]:
        reply = crisis_detector(state["user_text"])
        if reply:
            logger.warning(f"🚨 Crisis indicators in message from {state['user_id']}")
            return {"crisis": True, "final_output": reply}
        return {"crisis": False}

    async def _respond_node(self, state: ChatState) -> Dict[str, Any]:
        snippets = state.get("history_snippets") or []
        context = "\n".join(snippets) if snippets else "No previous conversation."
        try:
            response = await self.llm.ainvoke([
                SystemMessage(content=f"{SYSTEM_PROMPT}\n\nRecent conversation:\n{context}"),
                HumanMessage(content=state["user_text"]),
            ])
            content = response.content if isinstance(response.content, str) else str(response.content)
            return {"final_output": content.strip() or FALLBACK_REPLY}
        except Exception as e:
            logger.error(f"❌ LLM generation failed: {e}")
            return {"final_output": FALLBACK_REPLY}

    @staticmethod
    def _route(state: ChatState) -> str:
        return "end" if state.get("crisis") else "respond"

    def _build_graph(self):
        graph = StateGraph(ChatState)
        graph.add_node("guard", self._guard_node)
        graph.add_node("respond", self._respond_node)
        graph.set_entry_point("guard")
        graph.add_conditional_edges("guard", self._route, {"respond": "respond", "end": END})
        graph.add_edge("respond", END)
        # stateless per turn; history comes from Mongo
        return graph.compile()

    # ──────────────────────────────
    # MAIN ENTRY
    # ──────────────────────────────
    async def respond(self, user_id: str, session_id: str, message: str) -> Dict[str, Any]:
        """Answer one user message and persist both turns to the session."""
        await get_session(user_id, session_id)

        memory = await AsyncMongoChatMemory(user_id, session_id).load(limit=self.history_limit * 2)
        snippets = memory.snippets(self.history_limit)
        await memory.append_user(message)

        state_input: ChatState = {
            "user_text": message,
            "user_id": user_id,
            "session_id": session_id,
            "history_snippets": snippets,
            "crisis": False,
            "final_output": "",
        }
        result = await self.graph.ainvoke(state_input)
        reply = result.get("final_output") or FALLBACK_REPLY
        crisis = bool(result.get("crisis"))

        sentiment = analyze_sentiment(message)
        await memory.append_ai(reply, {"crisis": crisis, "sentiment": sentiment})
        await daily_reset_service.update_daily_state(user_id, {"last_chat_date": day_key()})

        mood = None
        try:
            mood = await mood_service.update_mood_from_chat(user_id, sentiment, message, reply)
        except Exception as e:
            logger.warning(f"⚠️ Mood update from chat failed for {user_id}: {e}")

        return {"reply": reply, "crisis": crisis, "sentiment": sentiment, "mood": mood}


_agent: Optional[ChatAgent] = None


def get_chat_agent() -> ChatAgent:
    global _agent
    if _agent is None:
        _agent = ChatAgent()
    return _agent
