"""
services/puremind_db.py
────────────────────────────
Loop-safe MongoDB management for PureMind (MongoDB Atlas + Motor).
"""

from __future__ import annotations
import asyncio
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from services.errors import NotFoundError
from utils.config import CONFIG

logger = logging.getLogger("puremind.db")

# ──────────────────────────────
# COLLECTION NAMES
# ──────────────────────────────
USERS = "users"
MOOD_DATA = "user_mood_data"
MOOD_HISTORY = "mood_history"
JOURNAL = "journal_entries"
ANXIETY_SESSIONS = "anxiety_sessions"
ANXIETY_JOURNAL = "anxiety_journal_entries"
CBT_WORKSHEETS = "cbt_worksheets"
ADDICTION_TYPES = "addiction_types"
USER_ADDICTIONS = "user_addictions"
ADDICTION_TRACKING = "addiction_tracking"
ADDICTION_MILESTONES = "addiction_milestones"
NOTIFICATIONS = "user_notifications"
SCHEDULED_NOTIFICATIONS = "scheduled_notifications"
CHAT_SESSIONS = "chat_sessions"
CHAT_HISTORY = "chat_history"
DAILY_STATE = "daily_state"
AI_GOALS = "ai_goals"
THERAPISTS = "therapist_profiles"
THERAPY_SESSIONS = "therapy_sessions"
THERAPIST_REVIEWS = "therapist_reviews"
BLOG_POSTS = "blog_posts"
BLOG_LIKES = "blog_post_likes"
BLOG_COMMENTS = "blog_comments"
BLOG_FOLLOWERS = "blog_followers"
BLOG_MESSAGES = "blog_direct_messages"

# ──────────────────────────────
# LOOP-SAFE DB INITIALIZATION
# ──────────────────────────────
_client: Optional[AsyncIOMotorClient] = None
_client_loop: Optional[asyncio.AbstractEventLoop] = None
_db: Optional[AsyncIOMotorDatabase] = None
_injected = False


def _current_loop() -> Optional[asyncio.AbstractEventLoop]:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def get_db() -> AsyncIOMotorDatabase:
    """Return a loop-safe MongoDB database handle."""
    global _client, _client_loop, _db
    if _injected and _db is not None:
        return _db

    current_loop = _current_loop()

    # Reconnect client if loop changed
    if _client is not None and current_loop is not None and _client_loop is not current_loop:
        logger.warning("🔄 Detected loop change, reconnecting Motor client")
        _client.close()
        _client = None
        _db = None

    if _client is None:
        if not CONFIG.mongo_uri:
            raise RuntimeError("MONGO_URI is not configured")
        logger.info(f"🔁 Creating new Motor client for loop ID: {id(current_loop)}")
        _client = AsyncIOMotorClient(
            CONFIG.mongo_uri,
            maxPoolSize=100,
            maxIdleTimeMS=30000,
            connectTimeoutMS=20000,
            serverSelectionTimeoutMS=5000,
        )
        _client_loop = current_loop
        _db = _client[CONFIG.db_name]

    if _db is None:
        raise RuntimeError("Failed to initialize database connection (_db is None)")

    return _db


def use_database(db: Optional[AsyncIOMotorDatabase]) -> None:
    """Pin a database handle (e.g. a mongomock-motor database). ``None`` un-pins it."""
    global _db, _injected
    _db = db
    _injected = db is not None


def close_db() -> None:
    global _client, _client_loop, _db
    if _client is not None:
        _client.close()
    _client = None
    _client_loop = None
    if not _injected:
        _db = None


async def init_indexes() -> None:
    """Create indexes used by the hot lookups (called at startup)."""
    db = get_db()
    await db[USERS].create_index([("email", 1)], unique=True, sparse=True)
    await db[MOOD_DATA].create_index([("user_id", 1)], unique=True)
    await db[MOOD_HISTORY].create_index([("user_id", 1), ("updated_at", 1)])
    await db[JOURNAL].create_index([("user_id", 1), ("created_at", -1)])
    await db[ANXIETY_SESSIONS].create_index([("user_id", 1), ("created_at", -1)])
    await db[ANXIETY_JOURNAL].create_index([("user_id", 1), ("created_at", -1)])
    await db[USER_ADDICTIONS].create_index([("user_id", 1), ("is_active", 1)])
    await db[NOTIFICATIONS].create_index([("user_id", 1), ("created_at", -1)])
    await db[NOTIFICATIONS].create_index([("read", 1)])
    await db[SCHEDULED_NOTIFICATIONS].create_index([("processed", 1), ("scheduled_time", 1)])
    await db[CHAT_HISTORY].create_index([("user_id", 1), ("session_id", 1), ("created_at", 1)])
    await db[DAILY_STATE].create_index([("user_id", 1)], unique=True)
    await db[AI_GOALS].create_index([("user_id", 1), ("day", 1)], unique=True)
    await db[THERAPY_SESSIONS].create_index([("client_id", 1), ("scheduled_start", -1)])
    await db[THERAPIST_REVIEWS].create_index([("therapist_id", 1), ("is_approved", 1)])
    await db[BLOG_POSTS].create_index([("is_published", 1), ("created_at", -1)])
    await db[BLOG_LIKES].create_index([("post_id", 1), ("user_id", 1)], unique=True)
    await db[BLOG_COMMENTS].create_index([("post_id", 1), ("created_at", 1)])
    await db[BLOG_FOLLOWERS].create_index([("follower_id", 1), ("following_id", 1)], unique=True)
    await db[BLOG_MESSAGES].create_index([("recipient_id", 1), ("is_read", 1)])
    logger.info("✅ MongoDB indexes ensured.")


# ──────────────────────────────
# HELPERS
# ──────────────────────────────
def utcnow() -> datetime:
    return datetime.utcnow()


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Stored datetimes are naive UTC; convert aware client values to match."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def day_key(value: Optional[date] = None) -> str:
    """YYYY-MM-DD key for a calendar day (UTC today by default)."""
    value = value or utcnow().date()
    if isinstance(value, datetime):
        value = value.date()
    return value.isoformat()


def to_object_id(value: str) -> ObjectId:
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise NotFoundError(f"Invalid id: {value!r}")


def public(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Return a copy of a document with ``_id`` exposed as ``id`` (str)."""
    if doc is None:
        return None
    out = {k: v for k, v in doc.items() if k != "_id"}
    if "_id" in doc:
        out["id"] = str(doc["_id"])
    return out


def public_many(docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [public(d) for d in docs]  # type: ignore[misc]


# ──────────────────────────────
# 👤 USERS
# ──────────────────────────────
async def create_user(user_id: str, email: Optional[str] = None, **kwargs) -> str:
    db = get_db()
    users_col = db[USERS]
    existing = await users_col.find_one({"user_id": user_id})
    if existing:
        return existing["user_id"]
    user_doc = {
        "user_id": user_id,
        "email": email,
        "full_name": kwargs.get("full_name"),
        "preferred_language": kwargs.get("preferred_language", "en"),
        "created_at": utcnow(),
        "last_active": utcnow(),
    }
    await users_col.insert_one(user_doc)
    return user_id


async def get_user(user_id: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    return public(await db[USERS].find_one({"user_id": user_id}))


async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    db = get_db()
    return public(await db[USERS].find_one({"email": email}))


async def update_user_activity(user_id: str) -> None:
    db = get_db()
    await db[USERS].update_one({"user_id": user_id}, {"$set": {"last_active": utcnow()}})


# ──────────────────────────────
# 🗑️ DELETE USER
# ──────────────────────────────
async def delete_user(user_id: str) -> bool:
    db = get_db()
    result = await db[USERS].delete_one({"user_id": user_id})
    if result.deleted_count:
        for name in (
            MOOD_DATA, MOOD_HISTORY, JOURNAL, ANXIETY_SESSIONS, ANXIETY_JOURNAL,
            CBT_WORKSHEETS, USER_ADDICTIONS, ADDICTION_TRACKING, ADDICTION_MILESTONES, NOTIFICATIONS,
            SCHEDULED_NOTIFICATIONS, CHAT_SESSIONS, CHAT_HISTORY, DAILY_STATE, AI_GOALS,
            BLOG_POSTS, BLOG_LIKES, BLOG_COMMENTS,
        ):
            await db[name].delete_many({"user_id": user_id})
        await db[BLOG_FOLLOWERS].delete_many({"$or": [{"follower_id": user_id}, {"following_id": user_id}]})
        await db[BLOG_MESSAGES].delete_many({"$or": [{"sender_id": user_id}, {"recipient_id": user_id}]})
        await db[THERAPY_SESSIONS].delete_many({"client_id": user_id})
        logger.info(f"✅ Deleted all records for user: {user_id}")
        return True

    logger.warning(f"⚠️ User not found: {user_id}")
    return False
