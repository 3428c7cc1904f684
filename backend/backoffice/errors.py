# Overview: Domain error taxonomy shared by services and mapped to HTTP status codes.

from __future__ import annotations


class DomainError(Exception):
    """
    Base class for expected business failures.

    Routes never translate these by hand: the app-level error handler renders
    {success: false, message} with status_code.
    """
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """422-level input problem; errors carries per-field detail."""
    status_code = 422

    def __init__(self, message: str = "Validation error", errors: list[dict] | None = None):
        super().__init__(message)
        self.errors = errors or []


class NotFound(DomainError):
    status_code = 404


class AlreadyExists(DomainError):
    """409-level uniqueness conflict (duplicate SKU, email, invoice for an order)."""
    status_code = 409


class InvalidTransition(DomainError):
    """Raised when a status change is not permitted from the current state."""

    def __init__(self, current: str, requested: str, entity: str = "order"):
        super().__init__(f"Cannot transition {entity} from {current} to {requested}")
        self.current = current
        self.requested = requested


class InsufficientStock(DomainError):
    pass


class EditNotAllowed(DomainError):
    pass


class DeleteNotAllowed(DomainError):
    pass


class OrderNotReady(DomainError):
    pass


class OverReceipt(DomainError):
    """Receiving would take a purchase order line past its ordered quantity."""
    pass
