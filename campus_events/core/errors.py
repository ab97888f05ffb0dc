"""
Domain errors raised by the service layer.

Each error carries a ``kind`` (reported to clients as ``error_code``) and the
HTTP status the API layer maps it to. Messages are short and user-facing;
internal detail belongs in the logs.
"""


class DomainError(Exception):
    kind = "Internal"
    status_code = 500
    default_message = "Internal error"

    def __init__(self, message: str | None = None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


class ValidationFailed(DomainError):
    kind = "Validation"
    status_code = 400
    default_message = "Invalid request"


class Unauthenticated(DomainError):
    kind = "Unauthenticated"
    status_code = 401
    default_message = "Authentication required"


class Forbidden(DomainError):
    kind = "Forbidden"
    status_code = 403
    default_message = "Not allowed"


class QuotaExceeded(DomainError):
    kind = "QuotaExceeded"
    status_code = 403
    default_message = "You have reached your event creation limit."


class NotFound(DomainError):
    kind = "NotFound"
    status_code = 404
    default_message = "Not found"

    @classmethod
    def of(cls, resource: str) -> "NotFound":
        return cls(f"{resource} not found")


class NotRegistered(DomainError):
    kind = "NotRegistered"
    status_code = 404
    default_message = "Student is not registered as a participant for this event."


class Conflict(DomainError):
    kind = "Conflict"
    status_code = 409
    default_message = "Conflict"


class InvalidState(DomainError):
    kind = "InvalidState"
    status_code = 409
    default_message = "Operation not allowed in the current state"


class AlreadyCheckedIn(DomainError):
    kind = "AlreadyCheckedIn"
    status_code = 409
    default_message = "Student is already checked in."


class PaymentNotVerified(DomainError):
    kind = "PaymentNotVerified"
    status_code = 402
    default_message = "Payment has not been verified."


class InternalError(DomainError):
    pass


class DeadlineExceeded(InternalError):
    status_code = 504
    default_message = "The operation timed out"


class RateLimited(DomainError):
    kind = "RateLimited"
    status_code = 429
    default_message = "Rate limit exceeded. Please try again later."
