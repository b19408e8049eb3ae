"""Error handling utilities."""

from typing import Optional


class PitchDeskError(Exception):
    """Base exception for PitchDesk backend."""
    pass


class DomainError(PitchDeskError):
    """Typed business-rule failure reported back to the caller."""
    code = "domain_error"
    status_code = 400

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "code": self.code}
        if self.details:
            body["details"] = self.details
        return body


class NotFoundError(DomainError):
    """Referenced agent, brokerage, pitch or profile does not exist."""
    code = "not_found"
    status_code = 404


class UnauthorizedError(DomainError):
    """No valid session on the request."""
    code = "unauthorized"
    status_code = 401


class ForbiddenError(DomainError):
    """Actor does not own the resource or has the wrong role."""
    code = "forbidden"
    status_code = 403


class InvalidStateError(DomainError):
    """Guard on pitch status or payment status violated."""
    code = "invalid_state"
    status_code = 409


class DuplicatePitchError(DomainError):
    """A pitch already exists for this (agent, brokerage) pair."""
    code = "duplicate_pitch"
    status_code = 409


class DuplicateProfileError(DomainError):
    """The user already has a profile."""
    code = "duplicate_profile"
    status_code = 409


class AlreadyPaidError(DomainError):
    """Pitch payment already completed."""
    code = "already_paid"
    status_code = 409


class ValidationError(DomainError):
    """Malformed input."""
    code = "validation_error"
    status_code = 400


class StoreError(PitchDeskError):
    """Supabase operation error."""
    pass


class PaymentProviderError(PitchDeskError):
    """Stripe API call failed."""
    pass


class WebhookVerificationError(PitchDeskError):
    """Stripe webhook signature verification failed."""
    pass


class NotificationError(PitchDeskError):
    """Email delivery error."""
    pass


class ConfigurationError(PitchDeskError):
    """Required configuration missing."""
    pass
