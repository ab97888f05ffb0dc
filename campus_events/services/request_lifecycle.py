"""
Event request lifecycle.

Requests move along a fixed graph::

    Submitted -> Pending_Admin
    Pending_Admin -> Approved                (Standalone, admin approve)
    Pending_Admin -> Pending_Main_Organizer  (Part of Fest, admin approve)
    Pending_Admin -> Rejected                (admin reject)
    Pending_Main_Organizer -> Approved       (main organizer approve)
    Pending_Main_Organizer -> Rejected       (main organizer reject, revokes access)

Every transition runs in one transaction. The status write is conditional on
the status the transition started from, so of two racing transitions on the
same request exactly one commits and the other fails with InvalidState.

Main organizer rejection cannot undo the account minted at admin approval; it
downgrades that account to Guest with no quota instead.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import Conflict, Forbidden, InvalidState, NotFound, ValidationFailed
from campus_events.models import EventRequest, User
from campus_events.models.enums import RequestScope, RequestStatus, UserRole
from campus_events.schemas.event_request import EventRequestCreate
from campus_events.services.credentials import CredentialIssuer
from campus_events.services.mailer import MailDescriptor, MailKind
from campus_events.services.repositories import EventRepo, EventRequestRepo, UserRepo

logger = logging.getLogger(__name__)


class RequestAction(str, enum.Enum):
    SUBMIT = "submit"
    ADMIN_APPROVE = "admin_approve"
    ADMIN_REJECT = "admin_reject"
    MAIN_ORGANIZER_APPROVE = "main_organizer_approve"
    MAIN_ORGANIZER_REJECT = "main_organizer_reject"


class SideEffect(str, enum.Enum):
    NONE = "none"
    ISSUE_CREDENTIALS = "issue_credentials"
    REVOKE_ACCESS = "revoke_access"


@dataclass(frozen=True)
class Transition:
    target: RequestStatus
    effect: SideEffect = SideEffect.NONE


# (current status, action, scope) -> transition; scope None matches any scope
TRANSITIONS = {
    (RequestStatus.SUBMITTED, RequestAction.SUBMIT, None):
        Transition(RequestStatus.PENDING_ADMIN),
    (RequestStatus.PENDING_ADMIN, RequestAction.ADMIN_APPROVE, RequestScope.STANDALONE):
        Transition(RequestStatus.APPROVED, SideEffect.ISSUE_CREDENTIALS),
    (RequestStatus.PENDING_ADMIN, RequestAction.ADMIN_APPROVE, RequestScope.PART_OF_FEST):
        Transition(RequestStatus.PENDING_MAIN_ORGANIZER, SideEffect.ISSUE_CREDENTIALS),
    (RequestStatus.PENDING_ADMIN, RequestAction.ADMIN_REJECT, None):
        Transition(RequestStatus.REJECTED),
    (RequestStatus.PENDING_MAIN_ORGANIZER, RequestAction.MAIN_ORGANIZER_APPROVE, RequestScope.PART_OF_FEST):
        Transition(RequestStatus.APPROVED),
    (RequestStatus.PENDING_MAIN_ORGANIZER, RequestAction.MAIN_ORGANIZER_REJECT, RequestScope.PART_OF_FEST):
        Transition(RequestStatus.REJECTED, SideEffect.REVOKE_ACCESS),
}

TERMINAL_STATES = frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED})

# Edges of the lifecycle graph, independent of action and scope
LIFECYCLE_EDGES = frozenset((key[0], t.target) for key, t in TRANSITIONS.items())


def next_transition(status: RequestStatus, action: RequestAction, scope: RequestScope) -> Transition:
    transition = TRANSITIONS.get((status, action, scope)) or TRANSITIONS.get((status, action, None))
    if transition is None:
        raise InvalidState(f"Cannot {action.value.replace('_', ' ')} a request in state {status.value}")
    return transition


def role_for_scope(scope: RequestScope) -> UserRole:
    return UserRole.SUB_ORGANIZER if scope == RequestScope.PART_OF_FEST else UserRole.ORGANIZER


@dataclass(frozen=True)
class ApprovalResult:
    request_id: int
    user_email: str
    one_time_password: str = field(repr=False)
    status: RequestStatus


def approval_notice(request: EventRequest) -> MailDescriptor:
    return MailDescriptor(
        kind=MailKind.APPROVAL_NOTICE,
        recipient=request.requestor_email,
        context={"request_id": request.id, "status": request.status.value},
    )


def rejection_notice(request: EventRequest, by: str) -> MailDescriptor:
    return MailDescriptor(
        kind=MailKind.REJECTION_NOTICE,
        recipient=request.requestor_email,
        context={"request_id": request.id, "by": by},
    )


class RequestLifecycle:
    """Operations on event requests"""

    def __init__(self, issuer: Optional[CredentialIssuer] = None):
        self.issuer = issuer or CredentialIssuer()

    # -------- Submission --------

    def submit(self, db: Session, data: EventRequestCreate, deadline: Optional[Deadline] = None) -> EventRequest:
        transition = next_transition(RequestStatus.SUBMITTED, RequestAction.SUBMIT, data.scope)

        if data.scope == RequestScope.PART_OF_FEST:
            if data.parent_fest_id is None:
                raise ValidationFailed("A parent fest is required for requests that are part of a fest.")
            parent = EventRepo.get(db, data.parent_fest_id)
            if parent is None:
                raise NotFound.of("Parent fest")
            if parent.parent_id is not None:
                raise ValidationFailed("The selected parent is itself a sub-event.")
            if parent.organizer is None or parent.organizer.role != UserRole.ORGANIZER:
                raise ValidationFailed("The selected parent fest has no active organizer.")
        elif data.parent_fest_id is not None:
            raise ValidationFailed("Standalone requests cannot reference a parent fest.")

        request = EventRequest(
            requestor_email=str(data.requestor_email).lower(),
            event_details=data.event_details,
            request_type=data.request_type,
            scope=data.scope,
            parent_fest_id=data.parent_fest_id,
            requested_event_count=data.requested_event_count,
            status=transition.target,
        )
        with atomic(db, deadline):
            db.add(request)
        db.refresh(request)
        logger.info("Event request %s submitted by %s (%s)", request.id, request.requestor_email, request.scope.value)
        return request

    # -------- Admin tier --------

    def admin_approve(
        self,
        db: Session,
        request_id: int,
        event_creation_limit: int,
        access_expiry_date: date,
        actor: User,
        deadline: Optional[Deadline] = None,
    ) -> ApprovalResult:
        self._require_event_admin(actor)
        if event_creation_limit is None or event_creation_limit < 0:
            raise ValidationFailed("Event creation limit must be zero or more.")
        if access_expiry_date is None:
            raise ValidationFailed("An access expiry date is required.")

        request = self._get_request(db, request_id)
        transition = next_transition(request.status, RequestAction.ADMIN_APPROVE, request.scope)
        if UserRepo.get_by_email(db, request.requestor_email) is not None:
            raise Conflict(f"A user with email {request.requestor_email} already exists.")

        credential = self.issuer.issue()
        role = role_for_scope(request.scope)
        try:
            with atomic(db, deadline):
                self._apply(db, request, RequestStatus.PENDING_ADMIN, transition)
                db.add(User(
                    email=request.requestor_email,
                    password_hash=credential.password_hash,
                    role=role,
                    event_creation_limit=event_creation_limit,
                    access_expiry_date=access_expiry_date,
                    must_change_password=True,
                ))
                db.flush()
        except IntegrityError as e:
            raise Conflict(f"A user with email {request.requestor_email} already exists.") from e

        logger.info(
            "Request %s approved by admin %s: %s account issued for %s (limit=%s, expires=%s), status %s",
            request_id, actor.email, role.value, request.requestor_email,
            event_creation_limit, access_expiry_date, transition.target.value,
        )
        return ApprovalResult(
            request_id=request_id,
            user_email=request.requestor_email,
            one_time_password=credential.password,
            status=transition.target,
        )

    def admin_reject(self, db: Session, request_id: int, actor: User, deadline: Optional[Deadline] = None) -> EventRequest:
        self._require_event_admin(actor)
        request = self._get_request(db, request_id)
        transition = next_transition(request.status, RequestAction.ADMIN_REJECT, request.scope)
        with atomic(db, deadline):
            self._apply(db, request, RequestStatus.PENDING_ADMIN, transition)
        db.refresh(request)
        logger.info("Request %s rejected by admin %s", request_id, actor.email)
        return request

    # -------- Main organizer tier --------

    def main_organizer_approve(self, db: Session, request_id: int, actor: User, deadline: Optional[Deadline] = None) -> EventRequest:
        request = self._get_request(db, request_id)
        self._require_fest_owner(db, request, actor)
        transition = next_transition(request.status, RequestAction.MAIN_ORGANIZER_APPROVE, request.scope)
        with atomic(db, deadline):
            self._apply(db, request, RequestStatus.PENDING_MAIN_ORGANIZER, transition)
        db.refresh(request)
        logger.info("Request %s approved by main organizer %s", request_id, actor.email)
        return request

    def main_organizer_reject(self, db: Session, request_id: int, actor: User, deadline: Optional[Deadline] = None) -> EventRequest:
        request = self._get_request(db, request_id)
        self._require_fest_owner(db, request, actor)
        transition = next_transition(request.status, RequestAction.MAIN_ORGANIZER_REJECT, request.scope)
        with atomic(db, deadline):
            self._apply(db, request, RequestStatus.PENDING_MAIN_ORGANIZER, transition)
        db.refresh(request)
        logger.info("Request %s rejected by main organizer %s", request_id, actor.email)
        return request

    # -------- Listings --------

    @staticmethod
    def list_pending_admin(db: Session) -> List[EventRequest]:
        return EventRequestRepo.list_by_status(db, RequestStatus.PENDING_ADMIN)

    @staticmethod
    def list_pending_for_main_organizer(db: Session, actor: User) -> List[EventRequest]:
        fest_ids = [e.id for e in EventRepo.list_fests_owned_by(db, actor.id)]
        return EventRequestRepo.list_for_fests(db, fest_ids, RequestStatus.PENDING_MAIN_ORGANIZER)

    # -------- Internals --------

    @staticmethod
    def _get_request(db: Session, request_id: int) -> EventRequest:
        request = EventRequestRepo.get(db, request_id, lock=True)
        if request is None:
            raise NotFound.of("Event request")
        return request

    @staticmethod
    def _require_event_admin(actor: User) -> None:
        if actor.role != UserRole.EVENT_ADMIN:
            raise Forbidden("Only event administrators can review requests.")

    @staticmethod
    def _require_fest_owner(db: Session, request: EventRequest, actor: User) -> None:
        if actor.role != UserRole.ORGANIZER:
            raise Forbidden("Only the fest's main organizer can review this request.")
        if request.parent_fest_id is None:
            raise Forbidden("This request does not belong to a fest.")
        parent = EventRepo.get(db, request.parent_fest_id)
        if parent is None or parent.organizer_id != actor.id:
            raise Forbidden("You do not organize the fest this request belongs to.")

    @staticmethod
    def _apply(db: Session, request: EventRequest, expected: RequestStatus, transition: Transition) -> None:
        if EventRequestRepo.transition(db, request.id, expected, transition.target) != 1:
            raise InvalidState("The request was modified by another reviewer.")

        if transition.effect == SideEffect.REVOKE_ACCESS:
            user = UserRepo.get_by_email(db, request.requestor_email, lock=True)
            if user is None:
                logger.warning("No account to revoke for rejected request %s (%s)", request.id, request.requestor_email)
            else:
                UserRepo.revoke(db, user)
                logger.info("Revoked access for %s after request %s was rejected", user.email, request.id)
