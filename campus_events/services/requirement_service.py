"""
Resource requests for events, routed to each resource's in-charge
"""

import logging
from collections import OrderedDict
from typing import List, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from campus_events.core.db import atomic
from campus_events.core.deadline import Deadline
from campus_events.core.errors import NotFound, ValidationFailed
from campus_events.models import EventRequirement, Resource, User
from campus_events.schemas.organizer import RequirementItem
from campus_events.services.event_service import ensure_can_manage, get_event_or_404
from campus_events.services.mailer import MailDescriptor, MailKind

logger = logging.getLogger(__name__)


class RequirementService:
    """Service for event resource requirements"""

    @staticmethod
    def submit(
        db: Session,
        actor: User,
        event_id: int,
        items: Sequence[RequirementItem],
        deadline: Optional[Deadline] = None,
    ) -> List[MailDescriptor]:
        """Persist requirements and build one request mail per in-charge.

        Blank or non-positive items are ignored. The mails are meant to be
        sent after the requirements are committed.
        """
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor)

        wanted = [i for i in items if i.resource_id and i.resource_id.strip() and i.quantity > 0]
        if not wanted:
            raise ValidationFailed("No valid resource requirements provided.")

        resource_ids = {i.resource_id.strip() for i in wanted}
        resources = {
            r.resource_id: r
            for r in db.execute(
                select(Resource)
                .where(Resource.resource_id.in_(resource_ids))
                .options(selectinload(Resource.incharge))
            ).scalars()
        }
        missing = sorted(resource_ids - resources.keys())
        if missing:
            raise NotFound(f"Resource not found: {', '.join(missing)}")

        with atomic(db, deadline):
            for item in wanted:
                db.add(EventRequirement(event_id=event_id, resource_id=item.resource_id.strip(), quantity=item.quantity))

        # in-charge email -> (name, [items])
        grouped: "OrderedDict[str, tuple]" = OrderedDict()
        for item in wanted:
            resource = resources[item.resource_id.strip()]
            incharge = resource.incharge
            if incharge is None or not incharge.email:
                logger.warning("Resource %s has no in-charge email; request not mailed", resource.resource_id)
                continue
            entry = grouped.setdefault(incharge.email, (incharge.name, []))
            entry[1].append({"name": resource.resource_name, "quantity": item.quantity})

        event_ctx = {
            "event_name": event.event_name,
            "venue": event.venue,
            "start_time": event.start_time.strftime("%a %d %b %Y %H:%M"),
            "end_time": event.end_time.strftime("%a %d %b %Y %H:%M"),
        }
        logger.info("Event %s: %d resource requirements submitted by %s", event_id, len(wanted), actor.email)
        return [
            MailDescriptor(
                kind=MailKind.RESOURCE_REQUEST,
                recipient=email,
                context={
                    "incharge_name": name,
                    "organizer_email": actor.email,
                    "event": event_ctx,
                    "items": lines,
                },
            )
            for email, (name, lines) in grouped.items()
        ]
