"""
services/community_service.py
────────────────────────────
Community blog: posts, likes, comments, follows and direct messages.

Likes, comments, follows and messages notify the other user through the
notification service (types ``like``, ``comment``, ``follow``, ``message``).
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

from services import notification_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import (
    BLOG_COMMENTS, BLOG_FOLLOWERS, BLOG_LIKES, BLOG_MESSAGES, BLOG_POSTS, USERS,
    get_db, public, public_many, to_object_id, utcnow,
)

logger = logging.getLogger("puremind.community")

POST_FILTERS = ("featured", "popular")
PRIVACY_LEVELS = ("public", "private", "followers")
EDITABLE_POST_FIELDS = ("title", "content", "tags", "image_url", "metadata", "is_published")
POPULAR_TAG_LIMIT = 10


def popular_tags(posts: Iterable[Dict[str, Any]], limit: int = POPULAR_TAG_LIMIT) -> List[Dict[str, Any]]:
    """Tag counts across ``posts``, most used first; ties keep first-seen order."""
    counts: Counter = Counter()
    for post in posts:
        counts.update(post.get("tags") or [])
    ranked = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)
    return [{"tag": tag, "count": count} for tag, count in ranked[:limit]]


async def _authors(user_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
    ids = list(set(user_ids))
    if not ids:
        return {}
    db = get_db()
    users = await db[USERS].find({"user_id": {"$in": ids}}).to_list(length=None)
    found = {u["user_id"]: {"id": u["user_id"], "full_name": u.get("full_name")} for u in users}
    return {uid: found.get(uid, {"id": uid, "full_name": None}) for uid in ids}


async def _with_authors(docs: List[Dict[str, Any]], key: str = "user_id", field: str = "author") -> List[Dict[str, Any]]:
    authors = await _authors(d[key] for d in docs)
    out = public_many(docs)
    for item in out:
        item[field] = authors[item[key]]
    return out


async def _notify(user_id: str, actor_id: str, title: str, message: str, type: str, **options) -> None:
    if user_id == actor_id:
        return
    try:
        await notification_service.create_notification(user_id, title, message, type, **options)
    except Exception as e:
        logger.warning(f"⚠️ Community notification [{type}] for {user_id} failed: {e}")


async def _display_name(user_id: str) -> str:
    return (await _authors([user_id]))[user_id]["full_name"] or "Someone"


# ──────────────────────────────
# Posts
# ──────────────────────────────
def _check_metadata(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    metadata = dict(metadata or {})
    privacy = metadata.get("privacy")
    if privacy is not None and privacy not in PRIVACY_LEVELS:
        raise ValidationError(f"privacy must be one of {list(PRIVACY_LEVELS)}")
    return metadata


async def create_post(
    user_id: str,
    title: str,
    content: str,
    tags: Optional[List[str]] = None,
    image_url: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if not (title or "").strip() or not (content or "").strip():
        raise ValidationError("Post title and content cannot be empty.")
    now = utcnow()
    doc = {
        "user_id": user_id,
        "title": title.strip(),
        "content": content,
        "image_url": image_url,
        "tags": list(tags or []),
        "likes": 0,
        "comments_count": 0,
        "is_published": True,
        "metadata": _check_metadata(metadata),
        "created_at": now,
        "updated_at": now,
    }
    db = get_db()
    result = await db[BLOG_POSTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"📝 Post created by {user_id}: {doc['title']}")
    return (await _with_authors([doc]))[0]


async def list_posts(filter: Optional[str] = None, tag: Optional[str] = None) -> List[Dict[str, Any]]:
    """Published posts, newest first. ``popular`` orders by likes; ``featured`` keeps flagged posts."""
    if filter is not None and filter not in POST_FILTERS:
        raise ValidationError(f"filter must be one of {list(POST_FILTERS)}")
    query: Dict[str, Any] = {"is_published": True}
    if filter == "featured":
        query["metadata.featured"] = True
    if tag:
        query["tags"] = tag
    order = [("likes", -1), ("created_at", -1)] if filter == "popular" else [("created_at", -1)]
    db = get_db()
    docs = await db[BLOG_POSTS].find(query).sort(order).to_list(length=None)
    return await _with_authors(docs)


async def list_user_posts(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[BLOG_POSTS].find({"user_id": user_id}).sort("created_at", -1).to_list(length=None)
    return await _with_authors(docs)


async def _post_doc(post_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
    query: Dict[str, Any] = {"_id": to_object_id(post_id)}
    if user_id is not None:
        query["user_id"] = user_id
    db = get_db()
    doc = await db[BLOG_POSTS].find_one(query)
    if not doc:
        raise NotFoundError(f"Post {post_id} not found")
    return doc


async def get_post(post_id: str) -> Dict[str, Any]:
    return (await _with_authors([await _post_doc(post_id)]))[0]


async def update_post(user_id: str, post_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
    """Authors edit their own posts; other fields in ``updates`` are ignored."""
    await _post_doc(post_id, user_id)
    fields = {k: v for k, v in updates.items() if k in EDITABLE_POST_FIELDS and v is not None}
    for key in ("title", "content"):
        if key in fields and not str(fields[key]).strip():
            raise ValidationError(f"Post {key} cannot be empty.")
    if "metadata" in fields:
        fields["metadata"] = _check_metadata(fields["metadata"])
    fields["updated_at"] = utcnow()
    db = get_db()
    await db[BLOG_POSTS].update_one({"_id": to_object_id(post_id)}, {"$set": fields})
    return await get_post(post_id)


async def delete_post(user_id: str, post_id: str) -> None:
    await _post_doc(post_id, user_id)
    db = get_db()
    await db[BLOG_POSTS].delete_one({"_id": to_object_id(post_id), "user_id": user_id})
    await db[BLOG_LIKES].delete_many({"post_id": post_id})
    await db[BLOG_COMMENTS].delete_many({"post_id": post_id})
    logger.info(f"🗑️ Post {post_id} deleted by {user_id}")


async def get_popular_tags(limit: int = POPULAR_TAG_LIMIT) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[BLOG_POSTS].find({"is_published": True}, {"tags": 1}).sort("created_at", -1).to_list(length=None)
    return popular_tags(docs, limit)


# ──────────────────────────────
# Likes
# ──────────────────────────────
async def has_liked(user_id: str, post_id: str) -> bool:
    db = get_db()
    return await db[BLOG_LIKES].find_one({"post_id": post_id, "user_id": user_id}) is not None


async def toggle_like(user_id: str, post_id: str) -> Dict[str, Any]:
    """Like the post, or remove the like when there already is one."""
    post = await _post_doc(post_id)
    db = get_db()
    if await has_liked(user_id, post_id):
        await db[BLOG_LIKES].delete_one({"post_id": post_id, "user_id": user_id})
        await db[BLOG_POSTS].update_one({"_id": post["_id"], "likes": {"$gt": 0}}, {"$inc": {"likes": -1}})
        liked = False
    else:
        await db[BLOG_LIKES].insert_one({"post_id": post_id, "user_id": user_id, "created_at": utcnow()})
        await db[BLOG_POSTS].update_one({"_id": post["_id"]}, {"$inc": {"likes": 1}})
        liked = True
        name = await _display_name(user_id)
        await _notify(
            post["user_id"], user_id, "New Like ❤️", f"{name} liked your post \"{post['title']}\"", "like",
            action_url=f"/blog/{post_id}", metadata={"post_id": post_id, "user_id": user_id},
        )
    likes = (await db[BLOG_POSTS].find_one({"_id": post["_id"]}))["likes"]
    return {"post_id": post_id, "liked": liked, "likes": likes}


# ──────────────────────────────
# Comments
# ──────────────────────────────
async def add_comment(user_id: str, post_id: str, content: str) -> Dict[str, Any]:
    if not (content or "").strip():
        raise ValidationError("Comment cannot be empty.")
    post = await _post_doc(post_id)
    doc = {"post_id": post_id, "user_id": user_id, "content": content.strip(), "created_at": utcnow()}
    db = get_db()
    result = await db[BLOG_COMMENTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    await db[BLOG_POSTS].update_one({"_id": post["_id"]}, {"$inc": {"comments_count": 1}})

    name = await _display_name(user_id)
    await _notify(
        post["user_id"], user_id, "New Comment 💬", f"{name} commented on \"{post['title']}\"", "comment",
        action_url=f"/blog/{post_id}", metadata={"post_id": post_id, "comment_id": str(result.inserted_id)},
    )
    return (await _with_authors([doc]))[0]


async def list_comments(post_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[BLOG_COMMENTS].find({"post_id": post_id}).sort("created_at", 1).to_list(length=None)
    return await _with_authors(docs)


async def delete_comment(user_id: str, comment_id: str) -> None:
    db = get_db()
    comment = await db[BLOG_COMMENTS].find_one({"_id": to_object_id(comment_id), "user_id": user_id})
    if not comment:
        raise NotFoundError(f"Comment {comment_id} not found")
    await db[BLOG_COMMENTS].delete_one({"_id": comment["_id"]})
    await db[BLOG_POSTS].update_one(
        {"_id": to_object_id(comment["post_id"]), "comments_count": {"$gt": 0}}, {"$inc": {"comments_count": -1}}
    )


# ──────────────────────────────
# Follows
# ──────────────────────────────
async def follow(user_id: str, target_id: str) -> Dict[str, Any]:
    if user_id == target_id:
        raise ValidationError("You cannot follow yourself.")
    if await is_following(user_id, target_id):
        raise ValidationError("You are already following this user.")
    doc = {"follower_id": user_id, "following_id": target_id, "created_at": utcnow()}
    db = get_db()
    result = await db[BLOG_FOLLOWERS].insert_one(doc)
    doc["_id"] = result.inserted_id

    name = await _display_name(user_id)
    await _notify(
        target_id, user_id, "New Follower", f"{name} started following you", "follow",
        action_url="/blog", metadata={"follower_id": user_id},
    )
    return public(doc)  # type: ignore[return-value]


async def unfollow(user_id: str, target_id: str) -> bool:
    db = get_db()
    result = await db[BLOG_FOLLOWERS].delete_one({"follower_id": user_id, "following_id": target_id})
    return bool(result.deleted_count)


async def is_following(user_id: str, target_id: str) -> bool:
    db = get_db()
    return await db[BLOG_FOLLOWERS].find_one({"follower_id": user_id, "following_id": target_id}) is not None


async def list_following(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[BLOG_FOLLOWERS].find({"follower_id": user_id}).sort("created_at", -1).to_list(length=None)
    return await _with_authors(docs, key="following_id", field="following")


async def list_followers(user_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[BLOG_FOLLOWERS].find({"following_id": user_id}).sort("created_at", -1).to_list(length=None)
    return await _with_authors(docs, key="follower_id", field="follower")


# ──────────────────────────────
# Direct messages
# ──────────────────────────────
async def send_message(sender_id: str, recipient_id: str, message: str) -> Dict[str, Any]:
    if not (message or "").strip():
        raise ValidationError("Message cannot be empty.")
    if sender_id == recipient_id:
        raise ValidationError("You cannot message yourself.")
    doc = {
        "sender_id": sender_id,
        "recipient_id": recipient_id,
        "message": message.strip(),
        "is_read": False,
        "created_at": utcnow(),
    }
    db = get_db()
    result = await db[BLOG_MESSAGES].insert_one(doc)
    doc["_id"] = result.inserted_id

    name = await _display_name(sender_id)
    await _notify(
        recipient_id, sender_id, f"New message from {name}", doc["message"][:100], "message",
        action_url="/blog", metadata={"message_id": str(result.inserted_id), "sender_id": sender_id},
    )
    return public(doc)  # type: ignore[return-value]


async def list_messages(user_id: str) -> Dict[str, Any]:
    """Messages sent or received, newest first, with the unread count of received ones."""
    db = get_db()
    docs = await db[BLOG_MESSAGES].find(
        {"$or": [{"sender_id": user_id}, {"recipient_id": user_id}]}
    ).sort("created_at", -1).to_list(length=None)
    people = await _authors([d["sender_id"] for d in docs] + [d["recipient_id"] for d in docs])
    messages = public_many(docs)
    for item in messages:
        item["sender"] = people[item["sender_id"]]
        item["recipient"] = people[item["recipient_id"]]
    unread = sum(1 for m in messages if m["recipient_id"] == user_id and not m["is_read"])
    return {"messages": messages, "unread_count": unread}


async def mark_message_read(user_id: str, message_id: str) -> None:
    db = get_db()
    result = await db[BLOG_MESSAGES].update_one(
        {"_id": to_object_id(message_id), "recipient_id": user_id}, {"$set": {"is_read": True}}
    )
    if not result.matched_count:
        raise NotFoundError(f"Message {message_id} not found")


async def delete_message(user_id: str, message_id: str) -> None:
    """Only the sender can delete a message."""
    db = get_db()
    result = await db[BLOG_MESSAGES].delete_one({"_id": to_object_id(message_id), "sender_id": user_id})
    if not result.deleted_count:
        raise NotFoundError(f"Message {message_id} not found")
