"""
Test suite for the order status rules and OrderStateMachine.

Every ordered pair of statuses, including the five identity pairs, is
checked against the transition table.
"""

from itertools import product
from unittest.mock import Mock

import pytest

from concrete_plant.services.orders.enums import (
    ORDER_STATUS_TRANSITIONS,
    TERMINAL_ORDER_STATUSES,
    OrderStatus,
    get_allowed_order_transitions,
    validate_order_status_transition,
)
from concrete_plant.services.orders.exceptions import (
    InvalidTransitionError,
    OrderServiceError,
)
from concrete_plant.services.orders.state_machine import OrderStateMachine

ALLOWED_PAIRS = {
    (OrderStatus.PENDING, OrderStatus.CONFIRMED),
    (OrderStatus.PENDING, OrderStatus.CANCELLED),
    (OrderStatus.CONFIRMED, OrderStatus.IN_PRODUCTION),
    (OrderStatus.CONFIRMED, OrderStatus.CANCELLED),
    (OrderStatus.IN_PRODUCTION, OrderStatus.COMPLETED),
}

ALL_PAIRS = list(product(OrderStatus, OrderStatus))
REJECTED_PAIRS = [pair for pair in ALL_PAIRS if pair not in ALLOWED_PAIRS]


def _pair_id(pair) -> str:
    return f"{pair[0].value}->{pair[1].value}"


# ============================================================================
# Test Fixtures
# ============================================================================


@pytest.fixture
def state_machine() -> OrderStateMachine:
    return OrderStateMachine()


def make_order(status: OrderStatus, order_id: int = 1) -> Mock:
    """Create a stand-in order carrying only what the state machine reads."""
    order = Mock()
    order.id = order_id
    order.status = status
    return order


# ============================================================================
# Transition Table Tests
# ============================================================================


class TestTransitionTable:
    """Test the static transition table."""

    def test_pair_counts(self) -> None:
        """25 ordered pairs: 5 allowed, 15 other rejected, 5 identity."""
        assert len(ALL_PAIRS) == 25
        assert len(REJECTED_PAIRS) == 20
        identity = [p for p in REJECTED_PAIRS if p[0] == p[1]]
        assert len(identity) == 5

    def test_table_matches_expected_pairs(self) -> None:
        table_pairs = {
            (source, target)
            for source, targets in ORDER_STATUS_TRANSITIONS.items()
            for target in targets
        }
        assert table_pairs == ALLOWED_PAIRS

    @pytest.mark.parametrize("pair", sorted(ALLOWED_PAIRS), ids=_pair_id)
    def test_allowed_transitions(self, pair) -> None:
        assert validate_order_status_transition(*pair) is True

    @pytest.mark.parametrize("pair", REJECTED_PAIRS, ids=_pair_id)
    def test_rejected_transitions(self, pair) -> None:
        assert validate_order_status_transition(*pair) is False

    def test_terminal_statuses(self) -> None:
        assert TERMINAL_ORDER_STATUSES == {OrderStatus.COMPLETED, OrderStatus.CANCELLED}
        assert OrderStatus.COMPLETED.is_terminal()
        assert OrderStatus.CANCELLED.is_terminal()
        assert not OrderStatus.IN_PRODUCTION.is_terminal()

    def test_no_self_loops(self) -> None:
        for status in OrderStatus:
            assert status not in get_allowed_order_transitions(status)

    def test_allowed_transitions_returns_copy(self) -> None:
        allowed = get_allowed_order_transitions(OrderStatus.PENDING)
        allowed.add(OrderStatus.COMPLETED)

        assert OrderStatus.COMPLETED not in ORDER_STATUS_TRANSITIONS[OrderStatus.PENDING]


class TestOrderStatusEnum:
    """Test OrderStatus helpers."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("pending", OrderStatus.PENDING),
            (" In_Production ", OrderStatus.IN_PRODUCTION),
            ("CANCELLED", OrderStatus.CANCELLED),
        ],
    )
    def test_from_string(self, raw, expected) -> None:
        assert OrderStatus.from_string(raw) is expected

    def test_from_string_invalid(self) -> None:
        with pytest.raises(ValueError, match="Invalid order status: shipped"):
            OrderStatus.from_string("shipped")

    def test_editable_and_deletable(self) -> None:
        assert OrderStatus.PENDING.is_editable()
        assert not OrderStatus.COMPLETED.is_editable()
        assert not OrderStatus.CANCELLED.is_editable()
        assert OrderStatus.COMPLETED.is_deletable()
        assert not OrderStatus.IN_PRODUCTION.is_deletable()


# ============================================================================
# State Machine Tests
# ============================================================================


class TestOrderStateMachine:
    """Test OrderStateMachine validation."""

    @pytest.mark.parametrize("pair", sorted(ALLOWED_PAIRS), ids=_pair_id)
    def test_validate_transition_accepts(self, state_machine, pair) -> None:
        order = make_order(pair[0])

        assert state_machine.validate_transition(order, pair[1]) is True
        assert order.status is pair[0]

    @pytest.mark.parametrize("pair", REJECTED_PAIRS, ids=_pair_id)
    def test_validate_transition_rejects(self, state_machine, pair) -> None:
        current, target = pair
        order = make_order(current, order_id=42)

        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.validate_transition(order, target)

        error = exc_info.value
        assert current.value in error.message
        assert target.value in error.message
        assert error.current_status is current
        assert error.requested_status is target
        assert error.context["order_id"] == 42
        assert error.context["current_status"] == current.value
        assert error.context["requested_status"] == target.value

    def test_rejection_lists_allowed_transitions(self, state_machine) -> None:
        order = make_order(OrderStatus.PENDING)

        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.validate_transition(order, OrderStatus.COMPLETED)

        assert exc_info.value.context["allowed_transitions"] == ["cancelled", "confirmed"]

    def test_terminal_rejection_message(self, state_machine) -> None:
        order = make_order(OrderStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError, match="terminal status"):
            state_machine.validate_transition(order, OrderStatus.CANCELLED)

    def test_identity_rejection_message(self, state_machine) -> None:
        order = make_order(OrderStatus.CONFIRMED)

        with pytest.raises(InvalidTransitionError, match="already in that status"):
            state_machine.validate_transition(order, OrderStatus.CONFIRMED)

    def test_error_is_order_service_error(self, state_machine) -> None:
        with pytest.raises(OrderServiceError):
            state_machine.check(OrderStatus.CANCELLED, OrderStatus.PENDING)

    def test_validation_does_not_mutate_order(self, state_machine) -> None:
        order = make_order(OrderStatus.PENDING)

        state_machine.validate_transition(order, OrderStatus.CONFIRMED)

        assert order.status is OrderStatus.PENDING
