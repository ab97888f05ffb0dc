"""
Admin API routes - requires an EventAdmin token
"""

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from campus_events.core.db import get_db
from campus_events.core.deadline import Deadline
from campus_events.models import User
from campus_events.models.enums import UserRole
from campus_events.schemas.auth import RoleUpdate, UserResponse
from campus_events.schemas.event import EventResponse
from campus_events.schemas.event_request import AdminApproval, ApprovalResponse, EventRequestResponse
from campus_events.services.event_service import EventService
from campus_events.services.mailer import Mailer, get_mailer
from campus_events.services.repositories import EventRequestRepo
from campus_events.services.request_lifecycle import RequestLifecycle, approval_notice, rejection_notice
from campus_events.services.user_service import UserService
from campus_events.utils.responses import success_response
from campus_events.utils.security import get_deadline, require_roles

router = APIRouter()

lifecycle = RequestLifecycle()

require_event_admin = require_roles(UserRole.EVENT_ADMIN)


@router.get("/requests")
async def list_pending_requests(
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
):
    """Requests waiting for an admin decision, oldest first"""
    requests = lifecycle.list_pending_admin(db)
    return success_response(
        message="Pending requests retrieved",
        data=[EventRequestResponse.model_validate(r).to_api() for r in requests],
    )


@router.post("/requests/{request_id}/approve")
async def approve_request(
    request_id: int,
    approval: AdminApproval,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    """Approve a request and mint the requestor's account.

    The one-time password is returned here only once.
    """
    result = await run_in_threadpool(
        lifecycle.admin_approve,
        db,
        request_id,
        approval.event_creation_limit,
        approval.access_expiry_date,
        admin,
        deadline,
    )
    request = EventRequestRepo.get(db, request_id)
    background_tasks.add_task(mailer.send, approval_notice(request))

    return success_response(
        message="Request approved and user account created",
        data=ApprovalResponse(
            user_email=result.user_email,
            temp_password=result.one_time_password,
            status=result.status,
        ).to_api(),
    )


@router.post("/requests/{request_id}/reject")
async def reject_request(
    request_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
    deadline: Deadline = Depends(get_deadline),
    mailer: Mailer = Depends(get_mailer),
):
    request = lifecycle.admin_reject(db, request_id, admin, deadline)
    background_tasks.add_task(mailer.send, rejection_notice(request, by="event administrator"))
    return success_response(
        message="Request rejected",
        data=EventRequestResponse.model_validate(request).to_api(),
    )


@router.get("/users")
async def list_users(
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
):
    users = UserService.list_users(db)
    return success_response(
        message="Users retrieved",
        data=[UserResponse.model_validate(u).to_api() for u in users],
    )


@router.put("/users/{user_id}/role")
async def update_user_role(
    user_id: int,
    update: RoleUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
    deadline: Deadline = Depends(get_deadline),
):
    """Change a user's role; Guest revokes access and clears the quota"""
    user = UserService.set_role(db, admin, user_id, update.role, deadline)
    return success_response(
        message="User role updated",
        data=UserResponse.model_validate(user).to_api(),
    )


@router.get("/events")
async def list_all_events(
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
):
    """Every event, past and future"""
    events = EventService.list_events(db, include_past=True)
    return success_response(
        message="Events retrieved",
        data=[EventResponse.model_validate(e).to_api() for e in events],
    )


@router.delete("/events/{event_id}")
async def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_event_admin),
    deadline: Deadline = Depends(get_deadline),
):
    EventService.delete_event(db, admin, event_id, deadline)
    return success_response(message="Event deleted successfully")
