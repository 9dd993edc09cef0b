"""Order status enum and transition rules for the order lifecycle.

This module defines the closed set of order statuses and the fixed table of
legal status transitions. It has no database dependency so it can be used
by schemas, models and services alike.
"""

from enum import Enum
from typing import Dict, FrozenSet, Set


class OrderStatus(str, Enum):
    """Order lifecycle status.

    Valid transitions:
    - PENDING -> CONFIRMED, CANCELLED
    - CONFIRMED -> IN_PRODUCTION, CANCELLED
    - IN_PRODUCTION -> COMPLETED
    - COMPLETED -> (terminal state)
    - CANCELLED -> (terminal state)
    """

    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PRODUCTION = "in_production"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @classmethod
    def from_string(cls, value: str) -> "OrderStatus":
        """Convert string to OrderStatus enum.

        Args:
            value: String representation of status

        Returns:
            OrderStatus enum value

        Raises:
            ValueError: If value is not a valid status
        """
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid_values = ", ".join(s.value for s in cls)
            raise ValueError(
                f"Invalid order status: {value}. "
                f"Valid values are: {valid_values}"
            ) from None

    def is_terminal(self) -> bool:
        """Check if status is a terminal state (no outbound transitions)."""
        return not ORDER_STATUS_TRANSITIONS[self]

    def is_editable(self) -> bool:
        """Check if the order details may still be modified."""
        return not self.is_terminal()

    def is_deletable(self) -> bool:
        """Check if an order in this status may be soft deleted."""
        return self is not OrderStatus.IN_PRODUCTION


ORDER_STATUS_TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.IN_PRODUCTION,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.IN_PRODUCTION: frozenset({
        OrderStatus.COMPLETED,
    }),
    OrderStatus.COMPLETED: frozenset(),  # Terminal
    OrderStatus.CANCELLED: frozenset(),  # Terminal
}

TERMINAL_ORDER_STATUSES: FrozenSet[OrderStatus] = frozenset(
    status for status, targets in ORDER_STATUS_TRANSITIONS.items() if not targets
)


def validate_order_status_transition(
    current: OrderStatus,
    new: OrderStatus
) -> bool:
    """Validate if order status transition is allowed.

    A transition to the same status is never allowed.

    Args:
        current: Current order status
        new: Desired new status

    Returns:
        True if transition is valid
    """
    return new in ORDER_STATUS_TRANSITIONS.get(current, frozenset())


def get_allowed_order_transitions(
    current: OrderStatus
) -> Set[OrderStatus]:
    """Get all allowed transitions from current order status.

    Args:
        current: Current order status

    Returns:
        Set of allowed next statuses
    """
    return set(ORDER_STATUS_TRANSITIONS.get(current, frozenset()))
