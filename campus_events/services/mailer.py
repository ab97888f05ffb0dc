"""
Outbound mail notifications.

Callers hand the mailer a ``MailDescriptor`` (kind, recipient, context). Each
descriptor becomes exactly one message. Delivery is best effort: failures are
logged and reported in the returned ``DeliveryResult``, never raised.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import smtplib
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Any, Dict, Iterable, List, Optional

from jinja2 import DictLoader, Environment, StrictUndefined

from campus_events.core.config import settings

logger = logging.getLogger(__name__)


class MailKind(str, enum.Enum):
    ATTENDANCE_REPORT = "AttendanceReport"
    PAYMENT_REJECTED = "PaymentRejected"
    RESOURCE_REQUEST = "ResourceRequest"
    APPROVAL_NOTICE = "ApprovalNotice"
    REJECTION_NOTICE = "RejectionNotice"


@dataclass(frozen=True)
class MailDescriptor:
    kind: MailKind
    recipient: str
    context: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DeliveryResult:
    kind: MailKind
    recipient: str
    ok: bool
    error: Optional[str] = None


TEMPLATES = {
    "AttendanceReport.subject": "Attendance report: {{ event.event_name }}",
    "AttendanceReport.body": """Dear {{ employee.name }},

The following students attended "{{ event.event_name }}" ({{ event.venue }}),
{{ event.start_time }} to {{ event.end_time }}, and missed your classes:
{% for session in classes %}
{{ session.label }}
{%- for student in session.students %}
  - {{ student.student_id }}  {{ student.name }} (roll {{ student.class_roll_no }})
{%- endfor %}
{% endfor %}
{%- if committee %}
Organizing team:
{%- for member in committee %}
  - {{ member.student_id }}  {{ member.name }} ({{ member.role }})
{%- endfor %}
{% endif %}
Regards,
Campus Events
""",
    "PaymentRejected.subject": "Payment rejected for {{ event_name }}",
    "PaymentRejected.body": """Hello,

Your payment for "{{ event_name }}" could not be verified and your registration has been removed.
{%- if reason %}

Reason: {{ reason }}
{%- endif %}

Please contact the organizers if you believe this is a mistake.
""",
    "ResourceRequest.subject": "Resource request for {{ event.event_name }}",
    "ResourceRequest.body": """Dear {{ incharge_name }},

{{ organizer_email }} has requested the following resources for "{{ event.event_name }}"
({{ event.start_time }} to {{ event.end_time }}, {{ event.venue }}):
{% for item in items %}
  - {{ item.name }} x {{ item.quantity }}
{%- endfor %}
""",
    "ApprovalNotice.subject": "Your event request #{{ request_id }} was approved",
    "ApprovalNotice.body": """Hello,

Your event request #{{ request_id }} is now {{ status }}.
{%- if status == "Pending_Main_Organizer" %}
It is waiting for the fest's main organizer to confirm.
{%- endif %}
Sign in with the credentials shared by the event administrator. You will be asked to change your password on first use.
""",
    "RejectionNotice.subject": "Your event request #{{ request_id }} was rejected",
    "RejectionNotice.body": """Hello,

Your event request #{{ request_id }} was rejected{% if by %} by the {{ by }}{% endif %}.
""",
}

_env = Environment(loader=DictLoader(TEMPLATES), undefined=StrictUndefined, autoescape=False)


def render(descriptor: MailDescriptor) -> EmailMessage:
    kind = descriptor.kind.value
    msg = EmailMessage()
    msg["Subject"] = _env.get_template(f"{kind}.subject").render(**descriptor.context).strip()
    msg["From"] = settings.MAIL_FROM
    msg["To"] = descriptor.recipient
    msg.set_content(_env.get_template(f"{kind}.body").render(**descriptor.context))
    return msg


# -------- Transports --------

class SMTPTransport:
    def __init__(self, host: str, port: int, username: str | None, password: str | None, use_tls: bool = True, timeout: float = 20.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, message: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password or "")
            smtp.send_message(message)


class ConsoleTransport:
    def send(self, message: EmailMessage) -> None:
        logger.info("Mail to %s: %s\n%s", message["To"], message["Subject"], message.get_content())


class MemoryTransport:
    """Keeps sent messages in ``outbox``"""

    def __init__(self):
        self.outbox: List[EmailMessage] = []

    def send(self, message: EmailMessage) -> None:
        self.outbox.append(message)


def build_transport(backend: str):
    if backend == "smtp":
        return SMTPTransport(
            settings.MAIL_HOST,
            settings.MAIL_PORT,
            settings.MAIL_USERNAME,
            settings.MAIL_PASSWORD,
            use_tls=settings.MAIL_USE_TLS,
            timeout=settings.MAIL_TIMEOUT_SECONDS,
        )
    if backend == "memory":
        return MemoryTransport()
    return ConsoleTransport()


# -------- Mailer --------

class Mailer:
    def __init__(self, transport, timeout: float | None = None):
        self.transport = transport
        self.timeout = timeout or settings.MAIL_TIMEOUT_SECONDS

    async def send(self, descriptor: MailDescriptor, timeout: float | None = None) -> DeliveryResult:
        try:
            message = render(descriptor)
            await asyncio.wait_for(
                asyncio.to_thread(self.transport.send, message),
                timeout=timeout if timeout is not None else self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("Mail %s to %s timed out", descriptor.kind.value, descriptor.recipient)
            return DeliveryResult(descriptor.kind, descriptor.recipient, ok=False, error="timeout")
        except Exception as e:
            logger.error("Error sending %s mail to %s: %s", descriptor.kind.value, descriptor.recipient, e)
            return DeliveryResult(descriptor.kind, descriptor.recipient, ok=False, error=str(e))

        logger.info("Sent %s mail to %s", descriptor.kind.value, descriptor.recipient)
        return DeliveryResult(descriptor.kind, descriptor.recipient, ok=True)

    async def send_many(self, descriptors: Iterable[MailDescriptor], timeout: float | None = None) -> List[DeliveryResult]:
        """Send concurrently; results come back in input order"""
        return list(await asyncio.gather(*(self.send(d, timeout=timeout) for d in descriptors)))


mailer = Mailer(build_transport(settings.MAIL_BACKEND))


def get_mailer() -> Mailer:
    """FastAPI dependency returning the process-wide mailer"""
    return mailer
