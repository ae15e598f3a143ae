"""
services/therapy_service.py
────────────────────────────
Therapist marketplace: profiles and verification, search, booking,
cancellation and reviews.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from services import notification_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import (
    THERAPISTS, THERAPIST_REVIEWS, THERAPY_SESSIONS, as_naive_utc, get_db, public, public_many, to_object_id, utcnow,
)
from utils.numbers import round_to_tenth

logger = logging.getLogger("puremind.therapy")

VERIFICATION_STATUSES = ("pending", "verified", "rejected", "suspended")
SESSION_TYPES = ("individual", "couples", "family", "group")
SESSION_FORMATS = ("video", "phone", "in_person")
SESSION_STATUSES = ("scheduled", "confirmed", "in_progress", "completed", "cancelled", "no_show")
UPCOMING_STATUSES = ("scheduled", "confirmed")

PROFILE_FIELDS = (
    "license_number", "license_state", "license_expiry", "professional_title", "years_experience",
    "education", "certifications", "bio", "approach_description", "languages_spoken", "hourly_rate",
    "session_types", "accepts_insurance", "insurance_networks", "timezone", "profile_image_url",
    "specializations", "availability", "full_name",
)


# ──────────────────────────────
# Profiles
# ──────────────────────────────
async def register_therapist(user_id: str, profile: Dict[str, Any]) -> Dict[str, Any]:
    """Create a pending profile and tell the admin there is an application to review."""
    if not profile.get("license_number") or not profile.get("professional_title"):
        raise ValidationError("license_number and professional_title are required")
    if float(profile.get("hourly_rate") or 0) <= 0:
        raise ValidationError("hourly_rate must be positive")

    now = utcnow()
    doc = {k: profile.get(k) for k in PROFILE_FIELDS}
    doc.update({
        "user_id": user_id,
        "languages_spoken": profile.get("languages_spoken") or ["English"],
        "session_types": profile.get("session_types") or ["individual"],
        "specializations": profile.get("specializations") or [],
        "availability": profile.get("availability") or [],
        "accepts_insurance": bool(profile.get("accepts_insurance", False)),
        "verification_status": "pending",
        "is_active": True,
        "hipaa_training_completed": False,
        "background_check_completed": False,
        "created_at": now,
        "updated_at": now,
    })
    db = get_db()
    result = await db[THERAPISTS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"🩺 Therapist application {result.inserted_id} from {user_id}")

    try:
        await notification_service.send_admin_notification(
            "New Therapist Application",
            f"{doc.get('full_name') or 'A therapist'} ({doc['professional_title']}, {doc.get('license_state')}) "
            "submitted an application for review.",
            type="alert",
            priority="high",
            action_url="/admin",
            action_text="Review Application",
            metadata={"therapist_id": str(result.inserted_id)},
        )
    except Exception as e:
        logger.warning(f"⚠️ Admin notification failed for therapist {result.inserted_id}: {e}")
    return public(doc)  # type: ignore[return-value]


async def _rating(therapist_id: str) -> Dict[str, Any]:
    db = get_db()
    reviews = await db[THERAPIST_REVIEWS].find(
        {"therapist_id": therapist_id, "is_approved": True}
    ).to_list(length=None)
    average = sum(r["rating"] for r in reviews) / len(reviews) if reviews else 0
    return {"average_rating": round_to_tenth(average), "total_reviews": len(reviews)}


async def get_therapist(therapist_id: str, include_pending: bool = True) -> Dict[str, Any]:
    statuses = ["verified", "pending"] if include_pending else ["verified"]
    db = get_db()
    doc = await db[THERAPISTS].find_one(
        {"_id": to_object_id(therapist_id), "verification_status": {"$in": statuses}, "is_active": True}
    )
    if not doc:
        raise NotFoundError(f"Therapist {therapist_id} not found")
    out = public(doc)
    out.update(await _rating(out["id"]))  # type: ignore[union-attr]
    return out  # type: ignore[return-value]


async def set_verification_status(therapist_id: str, status: str) -> Dict[str, Any]:
    if status not in VERIFICATION_STATUSES:
        raise ValidationError(f"status must be one of {list(VERIFICATION_STATUSES)}")
    updates: Dict[str, Any] = {"verification_status": status, "updated_at": utcnow()}
    if status == "verified":
        today = utcnow().date().isoformat()
        updates.update({
            "hipaa_training_completed": True,
            "hipaa_training_date": today,
            "background_check_completed": True,
            "background_check_date": today,
        })
    db = get_db()
    result = await db[THERAPISTS].update_one({"_id": to_object_id(therapist_id)}, {"$set": updates})
    if not result.matched_count:
        raise NotFoundError(f"Therapist {therapist_id} not found")
    logger.info(f"✅ Therapist {therapist_id} → {status}")
    return public(await db[THERAPISTS].find_one({"_id": to_object_id(therapist_id)}))  # type: ignore[return-value]


async def search_therapists(filters: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Verified, active therapists matching the filters, newest first."""
    filters = filters or {}
    query: Dict[str, Any] = {"verification_status": "verified", "is_active": True}

    rate: Dict[str, Any] = {}
    if filters.get("min_rate"):
        rate["$gte"] = filters["min_rate"]
    if filters.get("max_rate"):
        rate["$lte"] = filters["max_rate"]
    if rate:
        query["hourly_rate"] = rate
    if filters.get("location_state"):
        query["license_state"] = filters["location_state"]
    if filters.get("accepts_insurance") is not None:
        query["accepts_insurance"] = filters["accepts_insurance"]
    if filters.get("session_types"):
        query["session_types"] = {"$in": list(filters["session_types"])}
    if filters.get("languages"):
        query["languages_spoken"] = {"$in": list(filters["languages"])}

    db = get_db()
    docs = await db[THERAPISTS].find(query).sort("created_at", -1).to_list(length=None)

    wanted = set(filters.get("specializations") or [])
    if wanted:
        docs = [d for d in docs if any(s.get("category") in wanted for s in d.get("specializations") or [])]

    results = []
    for doc in docs:
        out = public(doc)
        out.update(await _rating(out["id"]))  # type: ignore[union-attr]
        results.append(out)

    min_rating = filters.get("min_rating")
    if min_rating:
        results = [t for t in results if (t["average_rating"] or 0) >= min_rating]
    return results  # type: ignore[return-value]


# ──────────────────────────────
# Sessions
# ──────────────────────────────
async def book_session(
    client_id: str,
    therapist_id: str,
    session_type: str,
    session_format: str,
    scheduled_start: datetime,
    duration_minutes: int,
    client_notes: Optional[str] = None,
) -> Dict[str, Any]:
    if session_type not in SESSION_TYPES:
        raise ValidationError(f"session_type must be one of {list(SESSION_TYPES)}")
    if session_format not in SESSION_FORMATS:
        raise ValidationError(f"session_format must be one of {list(SESSION_FORMATS)}")
    if duration_minutes <= 0:
        raise ValidationError("duration_minutes must be positive")

    therapist = await get_therapist(therapist_id)
    scheduled_start = as_naive_utc(scheduled_start)
    now = utcnow()
    rate = therapist["hourly_rate"]
    doc = {
        "therapist_id": therapist_id,
        "client_id": client_id,
        "session_type": session_type,
        "scheduled_start": scheduled_start,
        "scheduled_end": scheduled_start + timedelta(minutes=duration_minutes),
        "status": "scheduled",
        "session_format": session_format,
        "session_rate": rate,
        "total_cost": rate * duration_minutes / 60,
        "payment_status": "pending",
        "client_notes": client_notes,
        "reminder_sent": False,
        "video_room_id": f"room_{int(now.timestamp() * 1000)}" if session_format == "video" else None,
        "created_at": now,
        "updated_at": now,
    }
    db = get_db()
    result = await db[THERAPY_SESSIONS].insert_one(doc)
    doc["_id"] = result.inserted_id
    logger.info(f"📅 Session {result.inserted_id} booked by {client_id} with {therapist_id}")
    return public(doc)  # type: ignore[return-value]


async def list_user_sessions(client_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[THERAPY_SESSIONS].find({"client_id": client_id}).sort("scheduled_start", -1).to_list(length=None)
    return public_many(docs)


async def upcoming_sessions(client_id: str, now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    now = now or utcnow()
    db = get_db()
    docs = await db[THERAPY_SESSIONS].find({
        "client_id": client_id,
        "status": {"$in": list(UPCOMING_STATUSES)},
        "scheduled_start": {"$gt": now},
    }).sort("scheduled_start", 1).to_list(length=None)
    return public_many(docs)


async def next_session(client_id: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    upcoming = await upcoming_sessions(client_id, now)
    return upcoming[0] if upcoming else None


async def cancel_session(client_id: str, session_id: str, reason: str) -> Dict[str, Any]:
    """Cancel one of the caller's own sessions."""
    updates = {
        "status": "cancelled",
        "cancellation_reason": reason,
        "cancelled_by": client_id,
        "cancelled_at": utcnow(),
        "updated_at": utcnow(),
    }
    db = get_db()
    result = await db[THERAPY_SESSIONS].update_one(
        {"_id": to_object_id(session_id), "client_id": client_id}, {"$set": updates}
    )
    if not result.matched_count:
        raise NotFoundError(f"Session {session_id} not found")
    logger.info(f"❌ Session {session_id} cancelled by {client_id}")
    return public(await db[THERAPY_SESSIONS].find_one({"_id": to_object_id(session_id)}))  # type: ignore[return-value]


# ──────────────────────────────
# Reviews
# ──────────────────────────────
async def submit_review(
    client_id: str,
    session_id: str,
    rating: int,
    review_text: str,
    communication: int,
    professionalism: int,
    effectiveness: int,
    would_recommend: bool = True,
    is_anonymous: bool = False,
) -> Dict[str, Any]:
    for name, value in (("rating", rating), ("communication", communication),
                        ("professionalism", professionalism), ("effectiveness", effectiveness)):
        if not 1 <= value <= 5:
            raise ValidationError(f"{name} must be between 1 and 5")

    db = get_db()
    session = await db[THERAPY_SESSIONS].find_one({"_id": to_object_id(session_id), "client_id": client_id})
    if not session:
        raise NotFoundError(f"Session {session_id} not found")

    doc = {
        "therapist_id": session["therapist_id"],
        "client_id": client_id,
        "session_id": session_id,
        "rating": rating,
        "review_text": review_text,
        "would_recommend": would_recommend,
        "communication_rating": communication,
        "professionalism_rating": professionalism,
        "effectiveness_rating": effectiveness,
        "is_anonymous": is_anonymous,
        "is_approved": False,
        "created_at": utcnow(),
    }
    result = await db[THERAPIST_REVIEWS].insert_one(doc)
    doc["_id"] = result.inserted_id
    return public(doc)  # type: ignore[return-value]


async def approve_review(review_id: str) -> None:
    db = get_db()
    result = await db[THERAPIST_REVIEWS].update_one({"_id": to_object_id(review_id)}, {"$set": {"is_approved": True}})
    if not result.matched_count:
        raise NotFoundError(f"Review {review_id} not found")


async def get_reviews(therapist_id: str) -> List[Dict[str, Any]]:
    db = get_db()
    docs = await db[THERAPIST_REVIEWS].find(
        {"therapist_id": therapist_id, "is_approved": True}
    ).sort("created_at", -1).to_list(length=None)
    return public_many(docs)
