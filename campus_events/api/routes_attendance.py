"""
Attendance report routes
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.services.attendance_service import AttendanceService
from campus_events.services.mailer import Mailer, get_mailer
from campus_events.utils.responses import success_response
from campus_events.utils.security import get_current_user, get_deadline

router = APIRouter()


@router.get("/{event_id}/preview")
async def preview_attendance(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Reports that would be sent, without sending them"""
    _, reports = AttendanceService.compute(db, event_id, user)
    return success_response(
        message="Attendance preview",
        data=[r.to_dict() for r in reports.values()],
    )


@router.post("/{event_id}/send-attendance")
async def send_attendance(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    """Mail each faculty member the checked-in students who missed their classes"""
    result = await AttendanceService(mailer).send_attendance_report(db, event_id, user, deadline)
    return success_response(message=result.message, data=result.to_dict())
