"""
Organizer API routes - event owners, with EventAdmin access where allowed
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.schemas.event import EventResponse, LeaderboardRow, LeaderboardUpdate
from campus_events.schemas.event_request import EventRequestResponse
from campus_events.schemas.organizer import (
    CheckInRequest, CheckInResponse, PaymentAction, PendingIndividual, PendingTeam,
    RequirementCreate, TeamMemberCreate,
)
from campus_events.services.checkin_service import CheckInService
from campus_events.services.event_service import EventService
from campus_events.services.mailer import Mailer, get_mailer
from campus_events.services.members import describe_member
from campus_events.services.organizer_service import OrganizerService
from campus_events.services.qr_service import QRService
from campus_events.services.request_lifecycle import RequestLifecycle, approval_notice, rejection_notice
from campus_events.services.requirement_service import RequirementService
from campus_events.utils.responses import success_response
from campus_events.utils.security import get_current_user, get_deadline, require_roles

router = APIRouter()

lifecycle = RequestLifecycle()

require_main_organizer = require_roles(UserRole.ORGANIZER)


# -------- Sub-event requests --------

@router.get("/requests/pending")
async def list_pending_sub_event_requests(
    db: Session = Depends(get_db),
    user: User = Depends(require_main_organizer),
):
    """Requests for fests you organize that are waiting for your decision"""
    requests = lifecycle.list_pending_for_main_organizer(db, user)
    return success_response(
        message="Pending requests retrieved",
        data=[EventRequestResponse.model_validate(r).to_api() for r in requests],
    )


@router.post("/requests/{request_id}/approve")
async def approve_sub_event_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(require_main_organizer),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    request = lifecycle.main_organizer_approve(db, request_id, user, deadline)
    background_tasks.add_task(mailer.send, approval_notice(request))
    return success_response(
        message="Request approved",
        data=EventRequestResponse.model_validate(request).to_api(),
    )


@router.post("/requests/{request_id}/reject")
async def reject_sub_event_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(require_main_organizer),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    """Reject a sub-event request; the requestor's account loses access"""
    request = lifecycle.main_organizer_reject(db, request_id, user, deadline)
    background_tasks.add_task(mailer.send, rejection_notice(request, by="fest's main organizer"))
    return success_response(
        message="Request rejected and access revoked",
        data=EventRequestResponse.model_validate(request).to_api(),
    )


# -------- Events and check-in --------

@router.get("/my-events")
async def my_events(
    db: Session = Depends(get_db),
    user: User = Depends(require_roles(UserRole.ORGANIZER, UserRole.SUB_ORGANIZER)),
):
    events = EventService.list_my_events(db, user)
    return success_response(
        message="Events retrieved",
        data={
            "events": [EventResponse.model_validate(e).to_api() for e in events],
            "remainingLimit": user.event_creation_limit,
        },
    )


@router.post("/check-in")
async def check_in(
    check_in_data: CheckInRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    """Check a registered student in at the venue, by ids or by a scanned pass"""
    if check_in_data.payload:
        event_id, student_id = QRService.parse_pass_payload(check_in_data.payload)
    else:
        event_id, student_id = check_in_data.event_id, check_in_data.student_id
    member = CheckInService.check_in(db, event_id, student_id, user, deadline)
    return success_response(
        message="Check-in successful",
        data=CheckInResponse(
            event_id=member.event_id,
            student_id=member.member_id,
            member_id=member.id,
            team_id=member.team_id,
            checked_in=member.checked_in,
        ).to_api(),
    )


# -------- Payments --------

@router.get("/events/{event_id}/verifications")
async def pending_verifications(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    teams, individuals = OrganizerService.pending_verifications(db, user, event_id)
    return success_response(
        message="Pending verifications retrieved",
        data={
            "teams": [PendingTeam.model_validate(t).to_api() for t in teams],
            "individuals": [PendingIndividual.model_validate(m).to_api() for m in individuals],
        },
    )


@router.post("/verify-payment")
async def verify_payment(
    action: PaymentAction,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    OrganizerService.verify_payment(db, user, action.type, action.id, deadline)
    return success_response(message=f"{action.type} payment verified")


@router.post("/reject-payment")
async def reject_payment(
    action: PaymentAction,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    """Reject a payment; the registration is removed and the student notified"""
    notice = OrganizerService.reject_payment(db, user, action.type, action.id, action.reason, deadline)
    if notice is not None:
        background_tasks.add_task(mailer.send, notice)
    return success_response(message=f"{action.type} payment rejected and registration removed")


# -------- Organizing team --------

@router.get("/events/{event_id}/team")
async def list_team(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    members = OrganizerService.list_team(db, user, event_id)
    return success_response(message="Organizing team retrieved", data=members)


@router.post("/events/{event_id}/team", status_code=201)
async def add_team_member(
    event_id: int,
    member_data: TeamMemberCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    member = OrganizerService.add_team_member(db, user, event_id, member_data, deadline)
    return success_response(
        message="Team member added",
        data=describe_member(db, member),
        status_code=201,
    )


@router.delete("/events/{event_id}/team/{member_pk}")
async def remove_team_member(
    event_id: int,
    member_pk: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    OrganizerService.remove_team_member(db, user, event_id, member_pk, deadline)
    return success_response(message="Team member removed")


# -------- Leaderboard and resources --------

@router.put("/events/{event_id}/leaderboard")
async def update_leaderboard(
    event_id: int,
    update: LeaderboardUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
):
    rows = OrganizerService.update_leaderboard(db, user, event_id, update, deadline)
    return success_response(
        message="Leaderboard updated",
        data=[LeaderboardRow.model_validate(r).to_api() for r in rows],
    )


@router.post("/events/{event_id}/requirements", status_code=201)
async def submit_requirements(
    event_id: int,
    requirements: RequirementCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    """Request resources; each in-charge receives one mail with their items"""
    notices = RequirementService.submit(db, user, event_id, requirements.items, deadline)
    if notices:
        background_tasks.add_task(mailer.send_many, notices)
    return success_response(
        message="Resource requests submitted",
        data={"inchargesNotified": len(notices)},
        status_code=201,
    )
