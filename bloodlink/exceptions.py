"""
Error taxonomy for the BloodLink core.

Every failure raised by the core carries a machine-readable ``code``, a
human-readable ``reason`` and a ``retryable`` flag, so the transport layer can
tell the caller whether resubmitting makes sense. The ``status_code`` is only
a hint for the HTTP adapter in ``handlers.py``; nothing in the core reads it.
"""


class BloodLinkError(Exception):
    code = "ERROR"
    status_code = 500
    retryable = False

    def __init__(self, reason):
        self.reason = reason
        super().__init__(reason)

    @property
    def kind(self):
        return type(self).__name__

    def as_dict(self):
        return {"error": self.reason, "code": self.code, "retryable": self.retryable}


class Unauthenticated(BloodLinkError):
    """Missing credential, or a verified identity with no registered account."""

    code = "AUTH_REQUIRED"
    status_code = 401


class InvalidCredential(Unauthenticated):
    code = "INVALID_TOKEN"


class Forbidden(BloodLinkError):
    code = "FORBIDDEN"
    status_code = 403


class NotFound(BloodLinkError):
    code = "NOT_FOUND"
    status_code = 404


class AccountBlocked(BloodLinkError):
    code = "ACCOUNT_BLOCKED"
    status_code = 403


class InvalidTransition(BloodLinkError):
    """Raised when a donation request cannot move from its current status to the requested one."""

    code = "INVALID_TRANSITION"
    status_code = 400

    def __init__(self, current, requested, reason=None):
        self.current = current
        self.requested = requested
        super().__init__(
            reason or f"Cannot move a donation request from '{current}' to '{requested}'"
        )


class Conflict(BloodLinkError):
    """Raised when a conditional update lost a race against a concurrent writer."""

    code = "CONFLICT"
    status_code = 409
    retryable = True


class AlreadyExists(BloodLinkError):
    code = "ALREADY_EXISTS"
    status_code = 409


class ValidationFailed(BloodLinkError):
    code = "VALIDATION_FAILED"
    status_code = 400


class StorageUnavailable(BloodLinkError):
    code = "STORAGE_UNAVAILABLE"
    status_code = 503
    retryable = True


class IdentityUnavailable(BloodLinkError):
    code = "IDENTITY_UNAVAILABLE"
    status_code = 503
    retryable = True


class PaymentProcessorUnavailable(BloodLinkError):
    code = "PAYMENT_UNAVAILABLE"
    status_code = 503
    retryable = True


class PaymentProcessorError(BloodLinkError):
    code = "PAYMENT_FAILED"
    status_code = 502
