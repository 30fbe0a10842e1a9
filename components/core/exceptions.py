"""Domain errors raised by repositories and the authorization policy.

Each error carries the HTTP status it maps to; ``restapi.router`` turns them
into ``{"detail": message}`` responses.
"""


class CreditServiceError(Exception):
    """Base exception for credit service errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class Unauthenticated(CreditServiceError):
    """No principal on the request."""

    status_code = 401


class Forbidden(CreditServiceError):
    """Principal lacks the role or ownership required."""

    status_code = 403


class NotFound(CreditServiceError):
    status_code = 404


class InvalidInput(CreditServiceError):
    status_code = 400


class AmountExceedsRemaining(InvalidInput):
    """Payment larger than what is left to repay on the credit."""


class InvalidState(CreditServiceError):
    """Operation not allowed for the current credit status."""

    status_code = 400


class InsufficientFunds(CreditServiceError):
    status_code = 400


class Conflict(CreditServiceError):
    """Duplicate email, or a user still referenced by credits or the ledger."""

    status_code = 409
