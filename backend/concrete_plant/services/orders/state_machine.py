"""Order state machine implementation with transition validation.

This module implements the OrderStateMachine class that decides whether a
requested status change is legal for an order. It never touches the
database: persisting the change is the repository's job, done as a
compare-and-set against the status validated here.
"""

from typing import Any, Optional

from concrete_plant.core.logging import get_logger
from concrete_plant.services.orders.enums import (
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)
from concrete_plant.services.orders.exceptions import InvalidTransitionError

logger = get_logger(__name__)


class OrderStateMachine:
    """State machine for order lifecycle transitions.

    Holds no state of its own; the transition table lives in
    :mod:`concrete_plant.services.orders.enums`.
    """

    def check(
        self,
        current_status: OrderStatus,
        target_status: OrderStatus,
        order_id: Optional[int] = None,
    ) -> None:
        """Raise unless ``current_status -> target_status`` is in the table.

        Args:
            current_status: Status the order is in
            target_status: Requested status
            order_id: Order id, used for error context only

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if validate_order_status_transition(current_status, target_status):
            return

        allowed = sorted(s.value for s in get_allowed_order_transitions(current_status))
        if current_status.is_terminal():
            reason = f"{current_status.value} is a terminal status"
        elif current_status == target_status:
            reason = "order is already in that status"
        else:
            reason = f"allowed: {', '.join(allowed)}"

        raise InvalidTransitionError(
            f"Invalid status transition from {current_status.value} to "
            f"{target_status.value} ({reason})",
            current_status=current_status,
            requested_status=target_status,
            order_id=order_id,
            allowed_transitions=allowed,
        )

    def validate_transition(
        self,
        order: Any,
        target_status: OrderStatus,
        user_id: Optional[int] = None,
    ) -> bool:
        """Validate if transition to target status is allowed.

        Args:
            order: Order instance to validate
            target_status: Desired target status
            user_id: User initiating the transition

        Returns:
            True if transition is valid

        Raises:
            InvalidTransitionError: If transition is invalid
        """
        current_status = order.status

        logger.debug(
            "Validating state transition",
            order_id=order.id,
            current_status=current_status.value,
            target_status=target_status.value,
            user_id=user_id,
        )

        self.check(current_status, target_status, order_id=order.id)

        logger.info(
            "State transition validated",
            order_id=order.id,
            transition=f"{current_status.value}->{target_status.value}",
            user_id=user_id,
        )

        return True
