"""
Exceptions raised by the order lifecycle services.

Every error carries a human readable message plus keyword context (order id,
statuses, colliding field) so callers can log it and render an actionable
response.
"""

from typing import Any


class OrderServiceError(Exception):
    """Base exception for order service errors."""

    def __init__(self, message: str, **context: Any):
        super().__init__(message)
        self.message = message
        self.context = context


class OrderNotFoundError(OrderServiceError):
    """Raised when an order, or a site or recipe it references, does not exist."""


class OrderConflictError(OrderServiceError):
    """Raised when an order number is already used within the same site."""


class InvalidTransitionError(OrderServiceError):
    """Raised when a status change is not in the transition table."""

    def __init__(
        self,
        message: str,
        current_status: Any,
        requested_status: Any,
        **context: Any,
    ):
        super().__init__(
            message,
            current_status=getattr(current_status, "value", current_status),
            requested_status=getattr(requested_status, "value", requested_status),
            **context,
        )
        self.current_status = current_status
        self.requested_status = requested_status


class InvalidOperationError(OrderServiceError):
    """Raised when a business rule forbids the operation on the order."""


class OrderRepositoryError(OrderServiceError):
    """Raised when the underlying database operation fails."""
