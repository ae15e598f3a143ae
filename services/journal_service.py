"""
services/journal_service.py
────────────────────────────
Journal entries with keyword sentiment, stats and insights.
"""

import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from services.errors import NotFoundError, ValidationError
from services.puremind_db import JOURNAL, get_db, public, public_many, to_object_id, utcnow
from utils.journal_stats import calculate_stats, journal_insights
from utils.sentiment import analyze_sentiment

logger = logging.getLogger("puremind.journal")

EDITABLE_FIELDS = ("content", "mood", "tags", "metadata")


async def add_entry(
    user_id: str,
    content: str,
    mood: str,
    tags: Optional[List[str]] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if not (content or "").strip():
        raise ValidationError("Journal content cannot be empty.")
    now = utcnow()
    doc = {
        "user_id": user_id,
        "content": content,
        "mood": mood,
        "tags": tags or [],
        "metadata": metadata or {},
        "sentiment": analyze_sentiment(content, mood),
        "created_at": now,
        "updated_at": now,
    }
    db = get_db()
    result = await db[JOURNAL].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"📝 Journal entry {result.inserted_id} saved for {user_id} ({doc['sentiment']})")
    return public(doc)  # type: ignore[return-value]


async def get_entry(user_id: str, entry_id: str) -> Dict[str, Any]:
    db = get_db()
    doc = await db[JOURNAL].find_one({"_id": to_object_id(entry_id), "user_id": user_id})
    if not doc:
        raise NotFoundError(f"Journal entry {entry_id} not found")
    return public(doc)  # type: ignore[return-value]


async def update_entry(user_id: str, entry_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    current = await get_entry(user_id, entry_id)
    changes = {k: v for k, v in updates.items() if k in EDITABLE_FIELDS and v is not None}
    if "content" in changes:
        changes["sentiment"] = analyze_sentiment(changes["content"], changes.get("mood", current.get("mood", "")))
    changes["updated_at"] = utcnow()

    db = get_db()
    await db[JOURNAL].update_one({"_id": to_object_id(entry_id), "user_id": user_id}, {"$set": changes})
    current.update(changes)
    return current


async def delete_entry(user_id: str, entry_id: str) -> None:
    db = get_db()
    result = await db[JOURNAL].delete_one({"_id": to_object_id(entry_id), "user_id": user_id})
    if not result.deleted_count:
        raise NotFoundError(f"Journal entry {entry_id} not found")


async def list_entries(user_id: str, since: Optional[datetime] = None) -> List[Dict[str, Any]]:
    query: Dict[str, Any] = {"user_id": user_id}
    if since is not None:
        query["created_at"] = {"$gte": since}
    db = get_db()
    docs = await db[JOURNAL].find(query).sort("created_at", -1).to_list(length=None)
    return public_many(docs)


async def count_recent_entries(user_id: str, days: int = 7) -> int:
    db = get_db()
    return await db[JOURNAL].count_documents(
        {"user_id": user_id, "created_at": {"$gte": utcnow() - timedelta(days=days)}}
    )


async def last_entry(user_id: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    docs = await db[JOURNAL].find({"user_id": user_id}).sort("created_at", -1).limit(1).to_list(length=1)
    return public(docs[0]) if docs else None


async def get_stats(user_id: str, today: Optional[date] = None) -> Dict[str, Any]:
    entries = await list_entries(user_id)
    stats = calculate_stats(entries, today)
    return {"stats": stats, "insights": journal_insights(entries, stats)}
