from datetime import datetime, timedelta, timezone

import pytest

from services import notification_service, therapy_service
from services.errors import NotFoundError, ValidationError
from services.puremind_db import create_user
from utils.config import CONFIG


def profile(**overrides):
    data = {
        "full_name": "Dr. Rivera",
        "license_number": "LIC-1001",
        "license_state": "CA",
        "professional_title": "Licensed Clinical Psychologist",
        "hourly_rate": 120,
        "session_types": ["individual", "couples"],
        "languages_spoken": ["English", "Spanish"],
        "accepts_insurance": True,
        "specializations": [{"category": "anxiety", "name": "Generalized anxiety"}],
    }
    data.update(overrides)
    return data


async def verified(user_id="t1", **overrides):
    therapist = await therapy_service.register_therapist(user_id, profile(**overrides))
    return await therapy_service.set_verification_status(therapist["id"], "verified")


async def test_registration_is_pending_and_alerts_admin(db, monkeypatch):
    monkeypatch.setattr(CONFIG, "admin_email", "admin@puremind.app")
    await create_user("admin-1", "admin@puremind.app")

    therapist = await therapy_service.register_therapist("t1", profile(languages_spoken=None))
    assert therapist["verification_status"] == "pending"
    assert therapist["languages_spoken"] == ["English"]
    assert therapist["hipaa_training_completed"] is False

    alerts = (await notification_service.list_notifications("admin-1"))["notifications"]
    assert alerts[0]["title"] == "New Therapist Application"
    assert alerts[0]["metadata"]["therapist_id"] == therapist["id"]

    assert await therapy_service.search_therapists() == []
    assert (await therapy_service.get_therapist(therapist["id"]))["id"] == therapist["id"]
    with pytest.raises(NotFoundError):
        await therapy_service.get_therapist(therapist["id"], include_pending=False)


async def test_registration_validates(db):
    with pytest.raises(ValidationError):
        await therapy_service.register_therapist("t1", profile(license_number=""))
    with pytest.raises(ValidationError):
        await therapy_service.register_therapist("t1", profile(hourly_rate=0))


async def test_verification_sets_compliance_flags(db):
    therapist = await verified()
    assert therapist["verification_status"] == "verified"
    assert therapist["hipaa_training_completed"] is True
    assert therapist["background_check_completed"] is True

    with pytest.raises(ValidationError):
        await therapy_service.set_verification_status(therapist["id"], "approved")


async def test_search_filters(db):
    rivera = await verified("t1")
    chen = await verified("t2", full_name="Dr. Chen", license_state="NY", hourly_rate=200,
                          languages_spoken=["Mandarin"], accepts_insurance=False, session_types=["family"],
                          specializations=[{"category": "depression"}])

    def ids(results):
        return [t["id"] for t in results]

    assert set(ids(await therapy_service.search_therapists())) == {chen["id"], rivera["id"]}
    assert ids(await therapy_service.search_therapists({"max_rate": 150})) == [rivera["id"]]
    assert ids(await therapy_service.search_therapists({"min_rate": 150})) == [chen["id"]]
    assert ids(await therapy_service.search_therapists({"location_state": "NY"})) == [chen["id"]]
    assert ids(await therapy_service.search_therapists({"accepts_insurance": True})) == [rivera["id"]]
    assert ids(await therapy_service.search_therapists({"session_types": ["family"]})) == [chen["id"]]
    assert ids(await therapy_service.search_therapists({"languages": ["Spanish"]})) == [rivera["id"]]
    assert ids(await therapy_service.search_therapists({"specializations": ["anxiety"]})) == [rivera["id"]]
    assert await therapy_service.search_therapists({"min_rating": 4}) == []


async def test_booking_and_cancellation(db):
    therapist = await verified()
    start = datetime.utcnow() + timedelta(days=2)

    session = await therapy_service.book_session("c1", therapist["id"], "individual", "video", start, 50)
    assert session["total_cost"] == pytest.approx(100.0)
    assert session["scheduled_end"] == start + timedelta(minutes=50)
    assert session["video_room_id"].startswith("room_")
    assert session["status"] == "scheduled"
    assert session["payment_status"] == "pending"

    phone = await therapy_service.book_session("c1", therapist["id"], "individual", "phone", start + timedelta(days=1), 30)
    assert phone["video_room_id"] is None

    assert [s["id"] for s in await therapy_service.upcoming_sessions("c1")] == [session["id"], phone["id"]]
    assert (await therapy_service.next_session("c1"))["id"] == session["id"]
    assert [s["id"] for s in await therapy_service.list_user_sessions("c1")] == [phone["id"], session["id"]]

    with pytest.raises(NotFoundError):
        await therapy_service.cancel_session("c2", session["id"], "not mine")
    cancelled = await therapy_service.cancel_session("c1", session["id"], "feeling better")
    assert cancelled["status"] == "cancelled"
    assert cancelled["cancelled_by"] == "c1"
    assert (await therapy_service.next_session("c1"))["id"] == phone["id"]


async def test_booking_accepts_aware_start_time(db):
    therapist = await verified()
    start = datetime(2030, 1, 5, 15, 0, tzinfo=timezone(timedelta(hours=2)))
    session = await therapy_service.book_session("c1", therapist["id"], "couples", "in_person", start, 60)
    assert session["scheduled_start"] == datetime(2030, 1, 5, 13, 0)


async def test_booking_validates(db):
    therapist = await verified()
    start = datetime.utcnow() + timedelta(days=1)
    with pytest.raises(ValidationError):
        await therapy_service.book_session("c1", therapist["id"], "solo", "video", start, 50)
    with pytest.raises(ValidationError):
        await therapy_service.book_session("c1", therapist["id"], "individual", "carrier pigeon", start, 50)
    with pytest.raises(NotFoundError):
        await therapy_service.book_session("c1", "000000000000000000000000", "individual", "video", start, 50)


async def test_reviews_count_once_approved(db):
    therapist = await verified()
    start = datetime.utcnow() + timedelta(days=1)
    session = await therapy_service.book_session("c1", therapist["id"], "individual", "video", start, 50)

    with pytest.raises(ValidationError):
        await therapy_service.submit_review("c1", session["id"], 6, "great", 5, 5, 5)
    with pytest.raises(NotFoundError):
        await therapy_service.submit_review("c2", session["id"], 5, "great", 5, 5, 5)

    first = await therapy_service.submit_review("c1", session["id"], 5, "Very helpful", 5, 5, 4)
    second = await therapy_service.submit_review("c1", session["id"], 4, "Good", 4, 4, 4)
    assert first["is_approved"] is False
    assert (await therapy_service.get_therapist(therapist["id"]))["total_reviews"] == 0

    await therapy_service.approve_review(first["id"])
    await therapy_service.approve_review(second["id"])
    rated = await therapy_service.get_therapist(therapist["id"])
    assert rated["average_rating"] == 4.5
    assert rated["total_reviews"] == 2
    assert {r["id"] for r in await therapy_service.get_reviews(therapist["id"])} == {first["id"], second["id"]}
    assert len(await therapy_service.search_therapists({"min_rating": 4.5})) == 1
