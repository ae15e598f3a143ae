"""
services/chat_memory.py
────────────────────────────
Chat sessions and MongoDB-backed message history per session.
"""

import logging
from typing import Any, Dict, List, Optional

from langchain_core.chat_history import InMemoryChatMessageHistory

from services.errors import NotFoundError
from services.puremind_db import CHAT_HISTORY, CHAT_SESSIONS, get_db, public, public_many, to_object_id, utcnow

logger = logging.getLogger("puremind.chat.memory")


# ──────────────────────────────
# Sessions
# ──────────────────────────────
async def list_sessions(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[CHAT_SESSIONS].find({"user_id": user_id}).sort("created_at", -1).to_list(length=None)
    return public_many(docs)


async def get_session(user_id: str, session_id: str) -> Dict[str, Any]:
    db = get_db()
    doc = await db[CHAT_SESSIONS].find_one({"_id": to_object_id(session_id), "user_id": user_id})
    if not doc:
        raise NotFoundError(f"Chat session {session_id} not found")
    return public(doc)  # type: ignore[return-value]


async def active_session(user_id: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    return public(await db[CHAT_SESSIONS].find_one({"user_id": user_id, "is_active": True}))


async def create_session(user_id: str, name: Optional[str] = None) -> Dict[str, Any]:
    """Create a session and make it the only active one."""
    now = utcnow()
    db = get_db()
    await db[CHAT_SESSIONS].update_many({"user_id": user_id, "is_active": True}, {"$set": {"is_active": False}})
    doc = {
        "user_id": user_id,
        "name": name or f"Chat {now.strftime('%Y-%m-%d %H:%M')}",
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    result = await db[CHAT_SESSIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"💬 New chat session {result.inserted_id} for {user_id}")
    return public(doc)  # type: ignore[return-value]


async def switch_session(user_id: str, session_id: str) -> Dict[str, Any]:
    session = await get_session(user_id, session_id)
    db = get_db()
    await db[CHAT_SESSIONS].update_many({"user_id": user_id, "is_active": True}, {"$set": {"is_active": False}})
    await db[CHAT_SESSIONS].update_one({"_id": to_object_id(session_id)}, {"$set": {"is_active": True}})
    session["is_active"] = True
    return session


async def rename_session(user_id: str, session_id: str, name: str) -> Dict[str, Any]:
    session = await get_session(user_id, session_id)
    db = get_db()
    await db[CHAT_SESSIONS].update_one(
        {"_id": to_object_id(session_id)}, {"$set": {"name": name, "updated_at": utcnow()}}
    )
    session["name"] = name
    return session


async def delete_session(user_id: str, session_id: str) -> Optional[Dict[str, Any]]:
    """Delete a session and its messages. Returns the session that is active afterwards."""
    session = await get_session(user_id, session_id)
    db = get_db()
    await db[CHAT_SESSIONS].delete_one({"_id": to_object_id(session_id)})
    await db[CHAT_HISTORY].delete_many({"user_id": user_id, "session_id": session_id})

    if not session["is_active"]:
        return await active_session(user_id)
    remaining = await list_sessions(user_id)
    if remaining:
        return await switch_session(user_id, remaining[0]["id"])
    return None


# ──────────────────────────────
# Message history
# ──────────────────────────────
class AsyncMongoChatMemory:
    """Message history for one chat session, mirrored into a LangChain history."""

    def __init__(self, user_id: str, session_id: str):
        self.user_id = user_id
        self.session_id = session_id
        self.history = InMemoryChatMessageHistory()

    async def load(self, limit: Optional[int] = None) -> "AsyncMongoChatMemory":
        db = get_db()
        cursor = db[CHAT_HISTORY].find({"user_id": self.user_id, "session_id": self.session_id}).sort("created_at", 1)
        docs = await cursor.to_list(length=None)
        if limit:
            docs = docs[-limit:]
        self.history.clear()
        for msg in docs:
            if msg.get("role") == "user":
                self.history.add_user_message(msg["content"])
            elif msg.get("role") == "assistant":
                self.history.add_ai_message(msg["content"])
        return self

    async def _append(self, role: str, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        db = get_db()
        await db[CHAT_HISTORY].insert_one({
            "user_id": self.user_id,
            "session_id": self.session_id,
            "role": role,
            "content": text,
            "metadata": metadata or {},
            "created_at": utcnow(),
        })
        await db[CHAT_SESSIONS].update_one(
            {"_id": to_object_id(self.session_id)}, {"$set": {"updated_at": utcnow()}}
        )

    async def append_user(self, text: str) -> None:
        self.history.add_user_message(text)
        await self._append("user", text)

    async def append_ai(self, text: str, metadata: Optional[Dict[str, Any]] = None) -> None:
        self.history.add_ai_message(text)
        await self._append("assistant", text, metadata)

    def snippets(self, limit: int = 6) -> List[str]:
        """Last ``limit`` messages as 'User: ...' / 'Assistant: ...' lines."""
        lines = []
        for msg in self.history.messages[-limit:]:
            speaker = "User" if msg.type == "human" else "Assistant"
            lines.append(f"{speaker}: {msg.content}")
        return lines


async def get_messages(user_id: str, session_id: str) -> List[Dict[str, Any]]:
    await get_session(user_id, session_id)
    db = get_db()
    docs = await db[CHAT_HISTORY].find(
        {"user_id": user_id, "session_id": session_id}
    ).sort("created_at", 1).to_list(length=None)
    return public_many(docs)
