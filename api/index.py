# ============================================
# PUREMIND WELLNESS API - FASTAPI
# ASYNC MONGODB (MOTOR) + LANGGRAPH CHAT
# ============================================
#
# Resources:
# - mood, journal, anxiety, breathing, guided meditation
# - addiction recovery, daily goals (custom + AI), daily reset
# - notifications (dedupe, reminders, realtime poll, settings)
# - chat sessions + LangGraph companion
# - therapist marketplace (search, booking, reviews, admin verification)
# - community blog (posts, likes, comments, follows, direct messages)
# ============================================

import base64
import datetime
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from agents import goal_agent
from agents.chat_agent import get_chat_agent
from agents.wellness_agent import WellnessAgent
from services import (
    anxiety_service, chat_memory, community_service, daily_reset_service, journal_service, mood_service,
    notification_service, recovery_service, therapy_service,
)
from services.errors import AlreadyMarkedTodayError, NotFoundError, ValidationError
from services.puremind_db import close_db, create_user, delete_user, init_indexes, update_user_activity
from utils.breathing import TECHNIQUES, get_technique, start_session
from utils.config import CONFIG
from utils.meditation import MEDITATIONS, get_meditation
from utils.log_config import setup_logging
from utils.recovery_rules import calculate_days_clean, emergency_resources

logger = logging.getLogger("puremind.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # -------------------------------------------
    # STARTUP
    # -------------------------------------------
    missing = CONFIG.validate()
    if missing:
        raise ValueError(f"Missing required environment variables: {missing}")
    setup_logging()
    await init_indexes()
    await recovery_service.ensure_addiction_types()
    logger.info("PureMind API started.")
    yield
    # -------------------------------------------
    # SHUTDOWN
    # -------------------------------------------
    close_db()
    await notification_service.reset_caches()
    logger.info("PureMind API shutdown complete.")


app = FastAPI(title="PureMind Wellness API", version="1.0.0", lifespan=lifespan)


# ============================================================
#  ERROR MAPPING
# ============================================================
@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(AlreadyMarkedTodayError)
async def already_marked_handler(request: Request, exc: AlreadyMarkedTodayError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def unexpected_handler(request: Request, exc: Exception):
    logger.error(f"Error in {request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


# ============================================================
#  AUTH HELPERS
# ============================================================
def decode_jwt(token):
    """Decode JWT token to extract payload."""
    header, payload, signature = token.split('.')
    padded_payload = payload + '=' * (-len(payload) % 4)
    decoded_bytes = base64.urlsafe_b64decode(padded_payload)
    payload_data = json.loads(decoded_bytes)
    return payload_data


async def current_user(authorization: Optional[str] = Header(default=None)) -> Dict[str, Any]:
    """Caller identity from the bearer token: ``id`` (sub claim) and ``email``."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Bearer token is required.")
    try:
        payload = decode_jwt(authorization.split(" ", 1)[1].strip())
    except (ValueError, TypeError):
        raise HTTPException(status_code=401, detail="Malformed token.")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=401, detail="Malformed token.")
    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token missing 'sub' claim.")
    return {"id": user_id, "email": payload.get("email")}


async def admin_user(user: Dict[str, Any] = Depends(current_user)) -> Dict[str, Any]:
    if not CONFIG.admin_email or user.get("email") != CONFIG.admin_email:
        raise HTTPException(status_code=403, detail="Admin access required.")
    return user


# ============================================================
#  REQUEST MODELS
# ============================================================
class MoodRequest(BaseModel):
    current_mood: str
    mood_name: str
    mood_interpretation: Optional[str] = None
    wellness_score: Optional[int] = None
    sentiment: str = "neutral"


class JournalRequest(BaseModel):
    content: str
    mood: str
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class JournalUpdateRequest(BaseModel):
    content: Optional[str] = None
    mood: Optional[str] = None
    tags: Optional[List[str]] = None
    metadata: Optional[Dict[str, Any]] = None


class AnxietySessionRequest(BaseModel):
    session_type: str
    technique: str
    duration_minutes: int
    anxiety_before: Optional[int] = None
    anxiety_after: Optional[int] = None
    notes: Optional[str] = None


class AnxietyJournalRequest(BaseModel):
    anxiety_level: int
    triggers: Optional[List[str]] = None
    physical_symptoms: Optional[List[str]] = None
    thoughts: str = ""
    coping_strategies: Optional[List[str]] = None
    mood_after: Optional[int] = None


class AnxietyLevelRequest(BaseModel):
    level: int


class WorksheetRequest(BaseModel):
    worksheet_type: str
    situation: str = ""
    automatic_thoughts: str = ""
    emotions: Optional[List[str]] = None
    evidence_for: str = ""
    evidence_against: str = ""
    balanced_thought: str = ""
    new_emotion_rating: Optional[int] = None


class AddictionRequest(BaseModel):
    addiction_type_id: str
    severity_level: int
    start_date: str
    quit_attempts: int = 0
    personal_triggers: Optional[List[str]] = None
    support_contacts: Optional[Dict[str, str]] = None


class AddictionStatusRequest(BaseModel):
    status: str
    days_clean: Optional[int] = None


class TrackingRequest(BaseModel):
    entry_type: str
    intensity_level: Optional[int] = None
    trigger_identified: Optional[str] = None
    coping_strategy_used: Optional[str] = None
    notes: Optional[str] = None
    mood_before: Optional[int] = None
    mood_after: Optional[int] = None
    location: Optional[str] = None
    support_used: bool = False


class CustomGoalRequest(BaseModel):
    text: str
    points_value: int = daily_reset_service.DEFAULT_CUSTOM_GOAL_POINTS


class GoalCompletionRequest(BaseModel):
    points: int


class NotificationRequest(BaseModel):
    title: str
    message: str
    type: str = "info"
    priority: str = "medium"
    action_url: Optional[str] = None
    action_text: Optional[str] = None
    expires_in: Optional[int] = None
    metadata: Optional[Dict[str, Any]] = None


class ScheduledNotificationRequest(NotificationRequest):
    scheduled_time: datetime.datetime
    type: str = "reminder"


class ClientNotification(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    title: str = ""
    message: str = ""
    type: str = "info"
    priority: str = "medium"
    read: bool = False
    created_at: datetime.datetime
    expires_at: Optional[datetime.datetime] = None


class NotificationSyncRequest(BaseModel):
    notifications: List[ClientNotification]


class NotificationSettingsRequest(BaseModel):
    daily_reminders: Optional[bool] = None
    reminder_time: Optional[str] = None


class ChatSessionRequest(BaseModel):
    name: Optional[str] = None


class ChatRequest(BaseModel):
    message: str
    session_id: Optional[str] = None


class TherapistRequest(BaseModel):
    full_name: Optional[str] = None
    license_number: str
    license_state: str
    license_expiry: Optional[str] = None
    professional_title: str
    years_experience: int = 0
    education: Optional[List[str]] = None
    certifications: Optional[List[str]] = None
    bio: Optional[str] = None
    approach_description: Optional[str] = None
    languages_spoken: Optional[List[str]] = None
    hourly_rate: float
    session_types: Optional[List[str]] = None
    accepts_insurance: bool = False
    insurance_networks: Optional[List[str]] = None
    timezone: Optional[str] = None
    profile_image_url: Optional[str] = None
    specializations: Optional[List[Dict[str, Any]]] = None
    availability: Optional[List[Dict[str, Any]]] = None


class VerificationRequest(BaseModel):
    status: str


class BookingRequest(BaseModel):
    therapist_id: str
    session_type: str
    session_format: str
    scheduled_start: datetime.datetime
    duration_minutes: int = 50
    client_notes: Optional[str] = None


class CancelRequest(BaseModel):
    reason: str


class ReviewRequest(BaseModel):
    rating: int
    review_text: str
    communication: int
    professionalism: int
    effectiveness: int
    would_recommend: bool = True
    is_anonymous: bool = False


class MeditationCompleteRequest(BaseModel):
    anxiety_after: Optional[int] = None
    notes: Optional[str] = None


class PostRequest(BaseModel):
    title: str
    content: str
    tags: List[str] = []
    image_url: Optional[str] = None
    metadata: Dict[str, Any] = {}


class PostUpdateRequest(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    tags: Optional[List[str]] = None
    image_url: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    is_published: Optional[bool] = None


class CommentRequest(BaseModel):
    content: str


class DirectMessageRequest(BaseModel):
    recipient_id: str
    message: str


# ============================================================
#  HEALTH + ACCOUNT
# ============================================================
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.datetime.utcnow()}


account = APIRouter(tags=["account"])


@account.post("/daily/check")
async def daily_check(user: Dict[str, Any] = Depends(current_user)):
    """App-open hook: register the user, run the daily reset and the day's reminders."""
    await create_user(user["id"], user.get("email"))
    await update_user_activity(user["id"])
    reset = await daily_reset_service.check_for_daily_reset(user["id"])
    reminders = await notification_service.generate_daily_reminders(user["id"], user.get("email"))
    check_in = await notification_service.check_reminder_time(user["id"])
    return {"reset_performed": reset, "reminders": reminders, "check_in": check_in}


@account.post("/daily/reset")
async def manual_reset(user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.trigger_manual_reset(user["id"])


@account.get("/daily/state")
async def daily_state(user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.get_daily_state(user["id"])


@account.get("/daily/streak")
async def daily_streak(user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.login_streak(user["id"])


@account.delete("/users/me")
async def delete_account(user: Dict[str, Any] = Depends(current_user)):
    return {"deleted": await delete_user(user["id"])}


# ============================================================
#  MOOD
# ============================================================
mood = APIRouter(prefix="/mood", tags=["mood"])


@mood.get("")
async def get_mood(user: Dict[str, Any] = Depends(current_user)):
    return await mood_service.get_current_mood(user["id"]) or daily_reset_service.DEFAULT_MOOD


@mood.post("")
async def set_mood(req: MoodRequest, user: Dict[str, Any] = Depends(current_user)):
    return await mood_service.save_mood(user["id"], **req.model_dump())


@mood.get("/history")
async def mood_history(limit: int = 50, user: Dict[str, Any] = Depends(current_user)):
    return await mood_service.get_mood_history(user["id"], limit)


@mood.get("/trends")
async def mood_trends(time_range: str = Query("week", alias="range"), user: Dict[str, Any] = Depends(current_user)):
    return await mood_service.get_mood_trends(user["id"], time_range)


# ============================================================
#  JOURNAL
# ============================================================
journal = APIRouter(prefix="/journal", tags=["journal"])


@journal.post("")
async def add_journal_entry(req: JournalRequest, user: Dict[str, Any] = Depends(current_user)):
    return await journal_service.add_entry(user["id"], req.content, req.mood, req.tags, req.metadata)


@journal.get("")
async def list_journal_entries(user: Dict[str, Any] = Depends(current_user)):
    return await journal_service.list_entries(user["id"])


@journal.get("/stats")
async def journal_stats(user: Dict[str, Any] = Depends(current_user)):
    return await journal_service.get_stats(user["id"])


@journal.get("/{entry_id}")
async def get_journal_entry(entry_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await journal_service.get_entry(user["id"], entry_id)


@journal.patch("/{entry_id}")
async def update_journal_entry(entry_id: str, req: JournalUpdateRequest, user: Dict[str, Any] = Depends(current_user)):
    return await journal_service.update_entry(user["id"], entry_id, req.model_dump(exclude_none=True))


@journal.delete("/{entry_id}")
async def delete_journal_entry(entry_id: str, user: Dict[str, Any] = Depends(current_user)):
    await journal_service.delete_entry(user["id"], entry_id)
    return {"deleted": True}


# ============================================================
#  ANXIETY + BREATHING
# ============================================================
anxiety = APIRouter(prefix="/anxiety", tags=["anxiety"])


@anxiety.get("")
async def anxiety_overview(user: Dict[str, Any] = Depends(current_user)):
    return await anxiety_service.get_overview(user["id"])


@anxiety.post("/sessions")
async def add_anxiety_session(req: AnxietySessionRequest, user: Dict[str, Any] = Depends(current_user)):
    return await anxiety_service.add_session(user["id"], **req.model_dump())


@anxiety.post("/journal")
async def add_anxiety_journal(req: AnxietyJournalRequest, user: Dict[str, Any] = Depends(current_user)):
    return await anxiety_service.add_journal_entry(user["id"], **req.model_dump())


@anxiety.put("/level")
async def update_anxiety_level(req: AnxietyLevelRequest, user: Dict[str, Any] = Depends(current_user)):
    return await anxiety_service.update_level(user["id"], req.level)


@anxiety.post("/worksheets")
async def add_worksheet(req: WorksheetRequest, user: Dict[str, Any] = Depends(current_user)):
    fields = req.model_dump()
    worksheet_type = fields.pop("worksheet_type")
    return await anxiety_service.add_worksheet(user["id"], worksheet_type, **fields)


breathing = APIRouter(prefix="/breathing", tags=["breathing"])


@breathing.get("/techniques")
async def list_techniques():
    return [t.to_dict() for t in TECHNIQUES]


@breathing.get("/techniques/{technique_id}")
async def technique_detail(technique_id: str):
    return get_technique(technique_id).to_dict()


@breathing.get("/techniques/{technique_id}/state")
async def breathing_state(technique_id: str, elapsed: float = 0, duration: Optional[int] = None):
    return start_session(technique_id, duration).state_at(elapsed)


@breathing.get("/recommendation")
async def breathing_recommendation(use_llm: bool = False, user: Dict[str, Any] = Depends(current_user)):
    level = await anxiety_service.current_level(user["id"])
    snapshot = await mood_service.get_current_mood(user["id"]) or {}
    agent = WellnessAgent()
    return await agent.recommend(level, snapshot.get("mood_name"), use_llm=use_llm)


meditation = APIRouter(prefix="/meditation", tags=["meditation"])


@meditation.get("/sessions")
async def list_meditations():
    return [m.to_dict() for m in MEDITATIONS]


@meditation.get("/sessions/{meditation_id}")
async def meditation_detail(meditation_id: str):
    return get_meditation(meditation_id).to_dict()


@meditation.get("/sessions/{meditation_id}/state")
async def meditation_state(meditation_id: str, elapsed: float = 0):
    return get_meditation(meditation_id).state_at(elapsed)


@meditation.post("/sessions/{meditation_id}/complete")
async def complete_meditation(
    meditation_id: str, req: MeditationCompleteRequest, user: Dict[str, Any] = Depends(current_user)
):
    """Log a finished meditation as an anxiety session."""
    session = get_meditation(meditation_id)
    return await anxiety_service.add_session(
        user["id"], "meditation", session.title, session.duration,
        anxiety_after=req.anxiety_after, notes=req.notes,
    )


# ============================================================
#  ADDICTION RECOVERY
# ============================================================
recovery = APIRouter(prefix="/recovery", tags=["recovery"])


@recovery.get("/types")
async def addiction_types(category: Optional[str] = None):
    return await recovery_service.list_addiction_types(category)


@recovery.get("/emergency")
async def emergency():
    return emergency_resources()


@recovery.get("/days-clean")
async def days_clean(start_date: datetime.date, last_relapse: Optional[datetime.date] = None):
    return {"days_clean": calculate_days_clean(last_relapse, start_date)}


@recovery.get("/addictions")
async def list_addictions(user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.list_user_addictions(user["id"])


@recovery.post("/addictions")
async def add_addiction(req: AddictionRequest, user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.add_user_addiction(user["id"], **req.model_dump())


@recovery.get("/addictions/{addiction_id}")
async def get_addiction(addiction_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.get_user_addiction(user["id"], addiction_id)


@recovery.put("/addictions/{addiction_id}/status")
async def update_addiction_status(addiction_id: str, req: AddictionStatusRequest,
                                  user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.update_status(user["id"], addiction_id, req.status, req.days_clean)


@recovery.post("/addictions/{addiction_id}/clean-day")
async def mark_clean_day(addiction_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.mark_clean_day(user["id"], addiction_id)


@recovery.get("/addictions/{addiction_id}/can-mark")
async def can_mark_clean_day(addiction_id: str, user: Dict[str, Any] = Depends(current_user)):
    return {"can_mark": await recovery_service.can_mark_today(user["id"], addiction_id)}


@recovery.post("/addictions/{addiction_id}/tracking")
async def add_tracking(addiction_id: str, req: TrackingRequest, user: Dict[str, Any] = Depends(current_user)):
    data = req.model_dump()
    entry_type = data.pop("entry_type")
    return await recovery_service.add_tracking_entry(user["id"], addiction_id, entry_type, **data)


@recovery.get("/tracking")
async def recent_tracking(user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.recent_tracking(user["id"])


@recovery.get("/milestones")
async def milestones(user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.list_milestones(user["id"])


@recovery.get("/tip")
async def daily_tip(user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.get_daily_tip(user["id"])


@recovery.get("/stats")
async def recovery_stats(user: Dict[str, Any] = Depends(current_user)):
    return await recovery_service.get_stats(user["id"])


# ============================================================
#  GOALS
# ============================================================
goals = APIRouter(prefix="/goals", tags=["goals"])


@goals.get("")
async def all_goals(user: Dict[str, Any] = Depends(current_user)):
    """Today's goals from every source plus points earned so far."""
    state = await daily_reset_service.get_daily_state(user["id"])
    today = datetime.datetime.utcnow().date().isoformat()
    return {
        "custom": state["custom_goals"],
        "ai": await goal_agent.generate_daily_ai_goals(user["id"]),
        "addiction": await recovery_service.get_addiction_goals(user["id"]),
        "completed_goals": state["completed_goals"].get(today, []),
        "total_points": daily_reset_service.points_for_day(state, today),
    }


@goals.get("/profile")
async def goal_profile(user: Dict[str, Any] = Depends(current_user)):
    return (await goal_agent.build_profile(user["id"])).to_dict()


@goals.get("/ai")
async def ai_goals(user: Dict[str, Any] = Depends(current_user)):
    return await goal_agent.generate_daily_ai_goals(user["id"])


@goals.post("/ai/{goal_id}/complete")
async def complete_ai_goal(goal_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await goal_agent.complete_ai_goal(user["id"], goal_id)


@goals.delete("/ai/{goal_id}")
async def remove_ai_goal(goal_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await goal_agent.remove_ai_goal(user["id"], goal_id)


@goals.get("/custom")
async def custom_goals(user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.list_custom_goals(user["id"])


@goals.post("/custom")
async def add_custom_goal(req: CustomGoalRequest, user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.add_custom_goal(user["id"], req.text, req.points_value)


@goals.delete("/custom/{goal_id}")
async def remove_custom_goal(goal_id: str, user: Dict[str, Any] = Depends(current_user)):
    await daily_reset_service.remove_custom_goal(user["id"], goal_id)
    return {"deleted": True}


@goals.post("/{goal_id}/complete")
async def complete_goal(goal_id: str, req: GoalCompletionRequest, user: Dict[str, Any] = Depends(current_user)):
    return await daily_reset_service.complete_goal(user["id"], goal_id, req.points)


# ============================================================
#  NOTIFICATIONS
# ============================================================
notifications = APIRouter(prefix="/notifications", tags=["notifications"])


@notifications.get("")
async def list_notifications(user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.list_notifications(user["id"])


@notifications.post("")
async def create_notification(req: NotificationRequest, user: Dict[str, Any] = Depends(current_user)):
    created = await notification_service.create_notification(user["id"], **req.model_dump())
    return {"created": created is not None, "notification": created}


@notifications.post("/sync")
async def sync_notifications(req: NotificationSyncRequest, user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.sync_notifications(user["id"], [n.model_dump() for n in req.notifications])


@notifications.get("/unread-count")
async def unread_count(user: Dict[str, Any] = Depends(current_user)):
    return {"unread_count": await notification_service.unread_count(user["id"])}


@notifications.get("/poll")
async def poll_notifications(since: Optional[datetime.datetime] = None, user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.poll_new(user["id"], since)


@notifications.put("/read-all")
async def mark_all_read(user: Dict[str, Any] = Depends(current_user)):
    return {"updated": await notification_service.mark_all_read(user["id"])}


@notifications.get("/settings")
async def notification_settings(user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.get_settings(user["id"])


@notifications.put("/settings")
async def update_notification_settings(req: NotificationSettingsRequest, user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.update_settings(user["id"], req.daily_reminders, req.reminder_time)


@notifications.post("/schedule")
async def schedule_notification(req: ScheduledNotificationRequest, user: Dict[str, Any] = Depends(current_user)):
    return await notification_service.schedule_notification(user["id"], **req.model_dump())


@notifications.put("/{notification_id}/read")
async def mark_read(notification_id: str, user: Dict[str, Any] = Depends(current_user)):
    await notification_service.mark_read(user["id"], notification_id)
    return {"read": True}


@notifications.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: Dict[str, Any] = Depends(current_user)):
    await notification_service.delete_notification(user["id"], notification_id)
    return {"deleted": True}


# ============================================================
#  CHAT
# ============================================================
chat = APIRouter(prefix="/chat", tags=["chat"])


@chat.get("/sessions")
async def list_chat_sessions(user: Dict[str, Any] = Depends(current_user)):
    return await chat_memory.list_sessions(user["id"])


@chat.post("/sessions")
async def create_chat_session(req: ChatSessionRequest, user: Dict[str, Any] = Depends(current_user)):
    return await chat_memory.create_session(user["id"], req.name)


@chat.put("/sessions/{session_id}")
async def rename_chat_session(session_id: str, req: ChatSessionRequest, user: Dict[str, Any] = Depends(current_user)):
    if not (req.name or "").strip():
        raise HTTPException(status_code=400, detail="Session name cannot be empty.")
    return await chat_memory.rename_session(user["id"], session_id, req.name.strip())


@chat.post("/sessions/{session_id}/activate")
async def switch_chat_session(session_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await chat_memory.switch_session(user["id"], session_id)


@chat.delete("/sessions/{session_id}")
async def delete_chat_session(session_id: str, user: Dict[str, Any] = Depends(current_user)):
    return {"active_session": await chat_memory.delete_session(user["id"], session_id)}


@chat.get("/sessions/{session_id}/messages")
async def chat_messages(session_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await chat_memory.get_messages(user["id"], session_id)


@chat.post("")
async def chat_endpoint(chat_request: ChatRequest, user: Dict[str, Any] = Depends(current_user)):
    """
    Chat endpoint: answers one message in the given (or active) session.
    A new session is created when the user has none.
    """
    try:
        user_text = chat_request.message
        if not user_text.strip():
            raise HTTPException(status_code=400, detail="Message cannot be empty.")

        session_id = chat_request.session_id
        if not session_id:
            session = await chat_memory.active_session(user["id"]) or await chat_memory.create_session(user["id"])
            session_id = session["id"]

        result = await get_chat_agent().respond(user["id"], session_id, user_text)
        return {"response": result["reply"], "session_id": session_id, **result}

    except (HTTPException, NotFoundError, ValidationError):
        raise
    except Exception as e:
        logger.error(f"Error in /chat: {e}")
        raise HTTPException(status_code=500, detail="Internal server error")


# ============================================================
#  THERAPY
# ============================================================
therapy = APIRouter(tags=["therapy"])


@therapy.post("/therapists")
async def register_therapist(req: TherapistRequest, user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.register_therapist(user["id"], req.model_dump())


@therapy.get("/therapists")
async def search_therapists(
    min_rate: Optional[float] = None,
    max_rate: Optional[float] = None,
    location_state: Optional[str] = None,
    accepts_insurance: Optional[bool] = None,
    session_types: Optional[List[str]] = Query(default=None),
    languages: Optional[List[str]] = Query(default=None),
    specializations: Optional[List[str]] = Query(default=None),
    min_rating: Optional[float] = None,
):
    filters = {
        "min_rate": min_rate,
        "max_rate": max_rate,
        "location_state": location_state,
        "accepts_insurance": accepts_insurance,
        "session_types": session_types,
        "languages": languages,
        "specializations": specializations,
        "min_rating": min_rating,
    }
    return await therapy_service.search_therapists(filters)


@therapy.get("/therapists/{therapist_id}")
async def get_therapist(therapist_id: str):
    return await therapy_service.get_therapist(therapist_id)


@therapy.get("/therapists/{therapist_id}/reviews")
async def therapist_reviews(therapist_id: str):
    return await therapy_service.get_reviews(therapist_id)


@therapy.post("/therapy/sessions")
async def book_session(req: BookingRequest, user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.book_session(user["id"], **req.model_dump())


@therapy.get("/therapy/sessions")
async def list_sessions(user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.list_user_sessions(user["id"])


@therapy.get("/therapy/sessions/upcoming")
async def upcoming_sessions(user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.upcoming_sessions(user["id"])


@therapy.get("/therapy/sessions/next")
async def next_session(user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.next_session(user["id"])


@therapy.post("/therapy/sessions/{session_id}/cancel")
async def cancel_session(session_id: str, req: CancelRequest, user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.cancel_session(user["id"], session_id, req.reason)


@therapy.post("/therapy/sessions/{session_id}/review")
async def review_session(session_id: str, req: ReviewRequest, user: Dict[str, Any] = Depends(current_user)):
    return await therapy_service.submit_review(user["id"], session_id, **req.model_dump())


# ============================================================
#  COMMUNITY
# ============================================================
community = APIRouter(prefix="/community", tags=["community"])


@community.get("/posts")
async def list_posts(filter: Optional[str] = None, tag: Optional[str] = None):
    return await community_service.list_posts(filter, tag)


@community.post("/posts")
async def create_post(req: PostRequest, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.create_post(user["id"], **req.model_dump())


@community.get("/posts/mine")
async def my_posts(user: Dict[str, Any] = Depends(current_user)):
    return await community_service.list_user_posts(user["id"])


@community.get("/tags")
async def popular_tags():
    return await community_service.get_popular_tags()


@community.get("/posts/{post_id}")
async def get_post(post_id: str):
    return await community_service.get_post(post_id)


@community.patch("/posts/{post_id}")
async def update_post(post_id: str, req: PostUpdateRequest, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.update_post(user["id"], post_id, req.model_dump(exclude_none=True))


@community.delete("/posts/{post_id}")
async def delete_post(post_id: str, user: Dict[str, Any] = Depends(current_user)):
    await community_service.delete_post(user["id"], post_id)
    return {"deleted": True}


@community.post("/posts/{post_id}/like")
async def toggle_like(post_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.toggle_like(user["id"], post_id)


@community.get("/posts/{post_id}/comments")
async def list_comments(post_id: str):
    return await community_service.list_comments(post_id)


@community.post("/posts/{post_id}/comments")
async def add_comment(post_id: str, req: CommentRequest, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.add_comment(user["id"], post_id, req.content)


@community.delete("/comments/{comment_id}")
async def delete_comment(comment_id: str, user: Dict[str, Any] = Depends(current_user)):
    await community_service.delete_comment(user["id"], comment_id)
    return {"deleted": True}


@community.post("/follow/{target_id}")
async def follow(target_id: str, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.follow(user["id"], target_id)


@community.delete("/follow/{target_id}")
async def unfollow(target_id: str, user: Dict[str, Any] = Depends(current_user)):
    return {"unfollowed": await community_service.unfollow(user["id"], target_id)}


@community.get("/following")
async def following(user: Dict[str, Any] = Depends(current_user)):
    return await community_service.list_following(user["id"])


@community.get("/followers")
async def followers(user: Dict[str, Any] = Depends(current_user)):
    return await community_service.list_followers(user["id"])


@community.get("/messages")
async def list_messages(user: Dict[str, Any] = Depends(current_user)):
    return await community_service.list_messages(user["id"])


@community.post("/messages")
async def send_message(req: DirectMessageRequest, user: Dict[str, Any] = Depends(current_user)):
    return await community_service.send_message(user["id"], req.recipient_id, req.message)


@community.put("/messages/{message_id}/read")
async def read_message(message_id: str, user: Dict[str, Any] = Depends(current_user)):
    await community_service.mark_message_read(user["id"], message_id)
    return {"read": True}


@community.delete("/messages/{message_id}")
async def delete_message(message_id: str, user: Dict[str, Any] = Depends(current_user)):
    await community_service.delete_message(user["id"], message_id)
    return {"deleted": True}


# ============================================================
#  ADMIN
# ============================================================
admin = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(admin_user)])


@admin.put("/therapists/{therapist_id}/verification")
async def verify_therapist(therapist_id: str, req: VerificationRequest):
    return await therapy_service.set_verification_status(therapist_id, req.status)


@admin.put("/reviews/{review_id}/approve")
async def approve_review(review_id: str):
    await therapy_service.approve_review(review_id)
    return {"approved": True}


@admin.post("/notifications/dispatch")
async def dispatch_scheduled():
    return {"delivered": await notification_service.dispatch_due()}


for _router in (
    account, mood, journal, anxiety, breathing, meditation, recovery, goals, notifications, chat, therapy,
    community, admin,
):
    app.include_router(_router)


# ===================================================
# RUN SERVER
# ===================================================

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
