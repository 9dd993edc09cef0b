"""
Guards for destructive or unsafe order operations.

The guard is consulted before an order is updated or deleted. It raises a
domain error when the operation would modify an order that must stay
frozen, collide on the order number, or remove an order that is still
being produced.
"""

from typing import Optional

from concrete_plant.core.logging import get_logger
from concrete_plant.database.models.order import Order
from concrete_plant.services.orders.enums import OrderStatus
from concrete_plant.services.orders.exceptions import (
    InvalidOperationError,
    OrderConflictError,
)
from concrete_plant.services.orders.repository import OrderRepository
from concrete_plant.services.tasks.repository import TaskRepository

logger = get_logger(__name__)


class DependentRecordGuard:
    """
    Checks run before updating or deleting an order.

    Attributes:
        orders: Order repository used for order number lookups
        tasks: Task repository, consulted only when ``block_on_active_tasks``
        block_on_active_tasks: Refuse deletion while any task is active
    """

    def __init__(
        self,
        orders: OrderRepository,
        tasks: TaskRepository,
        block_on_active_tasks: bool = False,
    ):
        self.orders = orders
        self.tasks = tasks
        self.block_on_active_tasks = block_on_active_tasks

    def ensure_updatable(self, order: Order) -> None:
        """
        Raises:
            InvalidOperationError: If the order is completed or cancelled
        """
        if order.status.is_editable():
            return

        logger.warning(
            "Update rejected for terminal order",
            order_id=order.id,
            status=order.status.value,
        )
        raise InvalidOperationError(
            f"Order in status {order.status.value} cannot be modified",
            order_id=order.id,
            status=order.status.value,
        )

    async def ensure_order_no_available(
        self,
        site_id: int,
        order_no: str,
        exclude_order_id: Optional[int] = None,
    ) -> None:
        """
        Raises:
            OrderConflictError: If another order of the site uses ``order_no``
        """
        if await self.orders.order_no_exists(site_id, order_no, exclude_order_id):
            raise OrderConflictError(
                f"Order number {order_no} already exists in this site",
                field="order_no",
                order_no=order_no,
                site_id=site_id,
            )

    async def ensure_deletable(self, order: Order) -> None:
        """
        Check that an order may be archived.

        Raises:
            InvalidOperationError: If the order is in production, or, when
                configured, still has active delivery tasks
        """
        if not order.status.is_deletable():
            logger.warning(
                "Delete rejected for order in production",
                order_id=order.id,
                status=order.status.value,
            )
            raise InvalidOperationError(
                f"Order {order.order_no} is {OrderStatus.IN_PRODUCTION.value} "
                f"and cannot be deleted",
                order_id=order.id,
                status=order.status.value,
            )

        if not self.block_on_active_tasks:
            return

        active_tasks = await self.tasks.count_active_for_order(order.id)
        if active_tasks:
            logger.warning(
                "Delete rejected for order with active tasks",
                order_id=order.id,
                active_tasks=active_tasks,
            )
            raise InvalidOperationError(
                f"Order {order.order_no} has {active_tasks} active delivery "
                f"task(s) and cannot be deleted",
                order_id=order.id,
                active_tasks=active_tasks,
            )
