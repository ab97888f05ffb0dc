"""
Public API routes - no authentication required
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import Team
from campus_events.schemas.event import EventDetail, EventResponse, LeaderboardRow, RegistrationCreate
from campus_events.schemas.event_request import EventRequestCreate, EventRequestResponse
from campus_events.services.event_service import EventService
from campus_events.services.organizer_service import OrganizerService
from campus_events.services.registration_service import RegistrationService
from campus_events.services.request_lifecycle import RequestLifecycle
from campus_events.utils.forms import parse_json_form
from campus_events.utils.responses import success_response
from campus_events.utils.security import enforce_rate_limit, get_deadline
from campus_events.utils.uploads import discard, save_upload

router = APIRouter()

lifecycle = RequestLifecycle()


@router.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "ok"}


@router.post("/requests", status_code=201, dependencies=[Depends(enforce_rate_limit)])
async def submit_event_request(
    request_data: EventRequestCreate,
    db: Session = Depends(get_db),
    deadline: Deadline = Depends(get_deadline),
):
    """Submit a request for organizer access"""
    request = lifecycle.submit(db, request_data, deadline)
    return success_response(
        message="Event request submitted successfully",
        data=EventRequestResponse.model_validate(request).to_api(),
        status_code=201,
    )


@router.get("/events")
async def list_events(
    kind: Optional[str] = Query(None, alias="type", pattern="^fest$"),
    db: Session = Depends(get_db),
):
    """Upcoming events; ``type=fest`` lists fests that have sub-events"""
    events = EventService.list_events(db, kind=kind)
    return success_response(
        message="Events retrieved",
        data=[EventResponse.model_validate(e).to_api() for e in events],
    )


@router.get("/events/{event_id}")
async def get_event(event_id: int, db: Session = Depends(get_db)):
    """Get an event with its sub-events"""
    event = EventService.get_event(db, event_id)
    return success_response(
        message="Event details retrieved",
        data=EventDetail.model_validate(event).to_api(),
    )


@router.get("/events/{event_id}/leaderboard")
async def get_leaderboard(event_id: int, db: Session = Depends(get_db)):
    rows = OrganizerService.get_leaderboard(db, event_id)
    return success_response(
        message="Leaderboard retrieved",
        data=[LeaderboardRow.model_validate(r).to_api() for r in rows],
    )


@router.post("/events/{event_id}/register", status_code=201, dependencies=[Depends(enforce_rate_limit)])
async def register_for_event(
    event_id: int,
    data: str = Form(...),
    payment_screenshot: Optional[UploadFile] = File(None, alias="paymentScreenshot"),
    db: Session = Depends(get_db),
    deadline: Deadline = Depends(get_deadline),
):
    """Register a student or a team; ``data`` is the JSON registration document"""
    registration = parse_json_form(RegistrationCreate, data)
    screenshot_path = await save_upload(payment_screenshot)
    try:
        record = RegistrationService.register(db, event_id, registration, screenshot_path, deadline)
    except Exception:
        discard([screenshot_path])
        raise

    if isinstance(record, Team):
        payload = {
            "teamId": record.id,
            "teamName": record.team_name,
            "paymentStatus": record.payment_status.value,
            "members": [m.member_id for m in record.members],
        }
    else:
        payload = {
            "memberId": record.id,
            "studentId": record.member_id,
            "paymentStatus": record.payment_status.value,
        }
    return success_response(message="Registration successful", data=payload, status_code=201)
