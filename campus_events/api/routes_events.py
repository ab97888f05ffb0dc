"""
Event management routes for organizers - requires authentication
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.schemas.event import EventCreate, EventResponse, EventUpdate
from campus_events.services.event_service import EventService
from campus_events.services.qr_service import QRService
from campus_events.utils.forms import parse_json_form
from campus_events.utils.responses import success_response
from campus_events.utils.security import get_current_user, get_deadline, require_roles
from campus_events.utils.uploads import discard, save_upload, save_uploads

router = APIRouter()


@router.post("/events", status_code=201)
async def create_event(
    data: str = Form(...),
    banner: Optional[UploadFile] = File(None),
    payment_qr_codes: Optional[List[UploadFile]] = File(None, alias="paymentQrCodes"),
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ORGANIZER, UserRole.SUB_ORGANIZER)),
    deadline: Deadline = Depends(get_deadline),
):
    """Create an event; consumes one unit of the organizer's quota"""
    event_data = parse_json_form(EventCreate, data)
    saved: List[Optional[str]] = []
    try:
        banner_url = await save_upload(banner)
        saved.append(banner_url)
        qr_paths = await save_uploads(payment_qr_codes)
        saved.extend(qr_paths)
        event = EventService.create_event(db, user, event_data, banner_url, qr_paths, deadline)
    except Exception:
        discard(saved)
        raise

    return success_response(
        message="Event created successfully",
        data={
            "event": EventResponse.model_validate(event).to_api(),
            "remainingLimit": user.event_creation_limit,
        },
        status_code=201,
    )


@router.put("/events/{event_id}")
async def update_event(
    event_id: int,
    data: str = Form(...),
    banner: Optional[UploadFile] = File(None),
    payment_qr_codes: Optional[List[UploadFile]] = File(None, alias="paymentQrCodes"),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    """Update an event you own"""
    changes = parse_json_form(EventUpdate, data)
    saved: List[Optional[str]] = []
    try:
        banner_url = await save_upload(banner)
        saved.append(banner_url)
        qr_paths = await save_uploads(payment_qr_codes)
        saved.extend(qr_paths)
        event = EventService.update_event(db, user, event_id, changes, banner_url, qr_paths or None, deadline)
    except Exception:
        discard(saved)
        raise

    return success_response(
        message="Event updated successfully",
        data=EventResponse.model_validate(event).to_api(),
    )


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    """Delete an event with its sub-events and registrations"""
    EventService.delete_event(db, user, event_id, deadline)
    return success_response(message="Event deleted successfully")


@router.get("/events/{event_id}/pass/{student_id}.png")
async def get_check_in_pass(
    event_id: int,
    student_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """QR pass encoding the check-in details of a registered student"""
    qr_bytes = QRService.generate_pass(db, event_id, student_id, user)
    return Response(
        content=qr_bytes,
        media_type="image/png",
        headers={"Content-Disposition": f"inline; filename=pass_{event_id}_{student_id}.png"}
    )
