"""
Tests for mail rendering and delivery, credentials and check-in passes
"""

import time

import pytest

from campus_events.core.errors import ValidationFailed
from campus_events.services.credentials import CredentialIssuer, hash_password, verify_password
from campus_events.services.mailer import MailDescriptor, MailKind, Mailer, MemoryTransport, render
from campus_events.services.qr_service import QRService


def rejection(recipient="s001@campus.edu", reason="Amount mismatch"):
    return MailDescriptor(MailKind.PAYMENT_REJECTED, recipient, {"event_name": "Hackathon", "reason": reason})


# -------- Rendering --------

def test_render_payment_rejection():
    message = render(rejection())

    assert message["To"] == "s001@campus.edu"
    assert message["Subject"] == "Payment rejected for Hackathon"
    assert "Reason: Amount mismatch" in message.get_content()


def test_render_resource_request_lists_items():
    message = render(MailDescriptor(MailKind.RESOURCE_REQUEST, "rao@campus.edu", {
        "incharge_name": "Dr. Rao",
        "organizer_email": "org@campus.edu",
        "event": {"event_name": "Hackathon", "start_time": "10:30", "end_time": "12:00", "venue": "Main Hall"},
        "items": [{"name": "Projector", "quantity": 2}],
    }))

    body = message.get_content()
    assert "Dear Dr. Rao" in body
    assert "Projector x 2" in body


async def test_missing_template_variable_fails_delivery():
    mailer = Mailer(MemoryTransport(), timeout=5)

    result = await mailer.send(MailDescriptor(MailKind.PAYMENT_REJECTED, "s001@campus.edu", {}))

    assert result.ok is False
    assert mailer.transport.outbox == []


# -------- Delivery --------

async def test_send_many_keeps_input_order():
    mailer = Mailer(MemoryTransport(), timeout=5)
    recipients = ["a@campus.edu", "b@campus.edu", "c@campus.edu"]

    results = await mailer.send_many([rejection(r) for r in recipients])

    assert [r.recipient for r in results] == recipients
    assert all(r.ok for r in results)
    assert sorted(m["To"] for m in mailer.transport.outbox) == recipients


async def test_slow_transport_times_out():
    class SlowTransport:
        def send(self, message):
            time.sleep(0.5)

    result = await Mailer(SlowTransport(), timeout=5).send(rejection(), timeout=0.05)

    assert result.ok is False
    assert result.error == "timeout"


# -------- Credentials --------

def test_issued_password_is_long_and_verifies():
    credential = CredentialIssuer(rounds=4).issue()

    assert len(credential.password) >= 22
    assert credential.password not in repr(credential)
    assert verify_password(credential.password, credential.password_hash)
    assert not verify_password("guess", credential.password_hash)


def test_issued_passwords_differ():
    issuer = CredentialIssuer(rounds=4)
    assert issuer.issue().password != issuer.issue().password


def test_malformed_hash_does_not_verify():
    assert verify_password("anything", "not-a-bcrypt-hash") is False
    assert verify_password("anything", hash_password("anything", rounds=4))


# -------- Check-in passes --------

def test_pass_payload_roundtrip():
    payload = QRService.pass_payload(7, "S001")
    assert QRService.parse_pass_payload(payload) == (7, "S001")


@pytest.mark.parametrize("payload", ["", "hello", "campus-events:pass:x:S001", "campus-events:pass:7:"])
def test_bad_pass_payload(payload):
    with pytest.raises(ValidationFailed):
        QRService.parse_pass_payload(payload)


def test_generate_qr_is_png():
    assert QRService.generate_qr("campus-events:pass:1:S001").startswith(b"\x89PNG")
