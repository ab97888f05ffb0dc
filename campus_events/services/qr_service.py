"""
QR code generation service for check-in passes
"""

import io
from typing import Tuple

import qrcode
from sqlalchemy.orm import Session

from campus_events.core.errors import NotRegistered, ValidationFailed
from campus_events.models import User
from campus_events.services.event_service import ensure_can_manage, get_event_or_404
from campus_events.services.repositories import MemberRepo

PASS_PREFIX = "campus-events:pass"


class QRService:
    """Service for generating and reading check-in pass QR codes"""

    @staticmethod
    def pass_payload(event_id: int, student_id: str) -> str:
        """Text encoded in a pass; scanning it yields the check-in request fields"""
        return f"{PASS_PREFIX}:{event_id}:{student_id}"

    @staticmethod
    def parse_pass_payload(payload: str) -> Tuple[int, str]:
        prefix = PASS_PREFIX + ":"
        if not payload or not payload.startswith(prefix):
            raise ValidationFailed("Not a check-in pass")
        event_part, _, student_id = payload[len(prefix):].partition(":")
        if not event_part.isdigit() or not student_id:
            raise ValidationFailed("Not a check-in pass")
        return int(event_part), student_id

    @staticmethod
    def generate_qr(data: str, format: str = "PNG") -> bytes:
        qr = qrcode.QRCode(
            version=1,
            error_correction=qrcode.constants.ERROR_CORRECT_M,
            box_size=10,
            border=4,
        )
        qr.add_data(data)
        qr.make(fit=True)

        img = qr.make_image(fill_color="black", back_color="white")

        buffer = io.BytesIO()
        img.save(buffer, format=format)
        return buffer.getvalue()

    @staticmethod
    def generate_pass(db: Session, event_id: int, student_id: str, actor: User) -> bytes:
        """PNG pass for a registered participant"""
        event = get_event_or_404(db, event_id)
        ensure_can_manage(event, actor)
        if MemberRepo.find_participant(db, event_id, student_id) is None:
            raise NotRegistered()
        return QRService.generate_qr(QRService.pass_payload(event_id, student_id))
