"""
Order service orchestrating the order lifecycle.

This module implements the OrderService class for creating, updating,
deleting and moving orders through their statuses, and for the read side
(single order, paginated listing, statistics). Every check runs before the
first write, so a rejected request leaves no trace; the surrounding session
commits or rolls back as a whole.
"""

import math
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from concrete_plant.core.config import Settings, get_settings
from concrete_plant.core.logging import get_logger, log_performance
from concrete_plant.database.base import utcnow
from concrete_plant.database.models.order import Order, OrderItem, compute_line_total
from concrete_plant.schemas.orders import (
    OrderCreateRequest,
    OrderItemRequest,
    OrderListQuery,
    OrderUpdateRequest,
)
from concrete_plant.services.audit.service import AuditLogger
from concrete_plant.services.orders.enums import OrderStatus
from concrete_plant.services.orders.exceptions import (
    InvalidOperationError,
    InvalidTransitionError,
    OrderNotFoundError,
)
from concrete_plant.services.orders.guards import DependentRecordGuard
from concrete_plant.services.orders.repository import OrderFilters, OrderRepository
from concrete_plant.services.orders.state_machine import OrderStateMachine
from concrete_plant.services.tasks.repository import TaskRepository

logger = get_logger(__name__)

ENTITY_TYPE = "order"


class OrderService:
    """
    Order service orchestrating validation, guards and persistence.

    Attributes:
        repository: Order repository for data access
        state_machine: Status transition rules
        guard: Update and delete preconditions
        audit: Operation log writer
    """

    def __init__(self, session: AsyncSession, settings: Optional[Settings] = None):
        """
        Initialize order service.

        Args:
            session: Async database session shared by every collaborator
            settings: Application settings, defaults to the cached instance
        """
        self.session = session
        self.settings = settings or get_settings()
        self.repository = OrderRepository(session)
        self.state_machine = OrderStateMachine()
        self.guard = DependentRecordGuard(
            self.repository,
            TaskRepository(session),
            block_on_active_tasks=self.settings.order_delete_blocks_on_active_tasks,
        )
        self.audit = AuditLogger(session)

    async def create_order(
        self,
        payload: OrderCreateRequest,
        user_id: Optional[int] = None,
    ) -> Order:
        """
        Create a pending order with its line items.

        Args:
            payload: Validated order data
            user_id: Acting user

        Returns:
            The created order with items loaded

        Raises:
            OrderNotFoundError: If the site or any recipe does not exist
            OrderConflictError: If the order number is taken in the site
        """
        logger.info(
            "Creating order",
            site_id=payload.site_id,
            order_no=payload.order_no,
            item_count=len(payload.items),
        )

        site = await self.repository.get_active_site(payload.site_id)
        if site is None:
            raise OrderNotFoundError(
                f"Site {payload.site_id} not found",
                site_id=payload.site_id,
            )

        items = await self._build_items(payload.items)

        if payload.order_no:
            order_no = payload.order_no
            await self.guard.ensure_order_no_available(site.id, order_no)
        else:
            order_no = await self._generate_order_no(site.id)

        order = Order(
            order_no=order_no,
            site_id=site.id,
            customer_name=payload.customer_name,
            customer_phone=payload.customer_phone,
            project_name=payload.project_name,
            construction_site=payload.construction_site,
            required_delivery_time=payload.required_delivery_time,
            total_volume=(
                payload.total_volume
                if payload.total_volume is not None
                else _sum(item.volume for item in items)
            ),
            total_amount=(
                payload.total_amount
                if payload.total_amount is not None
                else _sum(item.total_price for item in items)
            ),
            status=OrderStatus.PENDING,
            remarks=payload.remarks,
            created_by=user_id,
            items=items,
        )
        await self.repository.add(order)

        await self.audit.record(
            "order.create",
            ENTITY_TYPE,
            order.id,
            user_id=user_id,
            details={"order_no": order_no, "site_id": site.id},
        )

        logger.info(
            "Order created successfully",
            order_id=order.id,
            order_no=order_no,
            total_volume=str(order.total_volume),
        )
        return await self._reload(order.id)

    async def update_order(
        self,
        order_id: int,
        payload: OrderUpdateRequest,
        user_id: Optional[int] = None,
    ) -> Order:
        """
        Update the fields present in ``payload``.

        Line items, when given, replace the existing ones. When items are
        replaced and no totals are given, totals are recomputed from them.
        The field write re-checks that the order is still active and not
        terminal, so a concurrent completion or cancellation wins.

        Raises:
            OrderNotFoundError: If the order does not exist or is archived
            InvalidOperationError: If the order is completed or cancelled
            OrderConflictError: If the new order number is taken in the site
        """
        logger.info("Updating order", order_id=order_id)

        order = await self._get_active(order_id)
        self.guard.ensure_updatable(order)

        changes = payload.model_dump(exclude_unset=True, exclude={"items"})

        new_order_no = changes.get("order_no")
        if new_order_no is not None and new_order_no != order.order_no:
            await self.guard.ensure_order_no_available(
                order.site_id, new_order_no, exclude_order_id=order.id
            )

        new_items = None
        if payload.items is not None:
            new_items = await self._build_items(payload.items)
            changes.setdefault("total_volume", _sum(i.volume for i in new_items))
            changes.setdefault("total_amount", _sum(i.total_price for i in new_items))

        if not await self.repository.update_editable(order_id, changes):
            fresh = await self.repository.get_by_id(order_id, refresh=True)
            if fresh is None:
                raise OrderNotFoundError(f"Order {order_id} not found", order_id=order_id)
            self.guard.ensure_updatable(fresh)
            raise InvalidOperationError(
                f"Order {order_id} could not be updated",
                order_id=order_id,
            )

        if new_items is not None:
            order.items.clear()
            order.items.extend(new_items)
        await self.repository.flush(order)

        updated_fields = sorted(changes) + (["items"] if new_items is not None else [])
        await self.audit.record(
            "order.update",
            ENTITY_TYPE,
            order_id,
            user_id=user_id,
            details={"fields": updated_fields},
        )

        logger.info("Order updated successfully", order_id=order_id, fields=updated_fields)
        return await self._reload(order_id)

    async def change_status(
        self,
        order_id: int,
        new_status: OrderStatus,
        user_id: Optional[int] = None,
    ) -> Order:
        """
        Move an order to ``new_status``.

        The transition is validated against the status read here and then
        written only if the stored status is still that one.

        Raises:
            OrderNotFoundError: If the order does not exist or is archived
            InvalidTransitionError: If the transition is not allowed, or the
                status changed concurrently
        """
        logger.info(
            "Changing order status",
            order_id=order_id,
            new_status=new_status.value,
        )

        order = await self._get_active(order_id)
        current_status = order.status
        self.state_machine.validate_transition(order, new_status, user_id=user_id)

        if not await self.repository.compare_and_set_status(
            order_id, current_status, new_status
        ):
            fresh = await self.repository.get_by_id(order_id, refresh=True)
            if fresh is None:
                raise OrderNotFoundError(f"Order {order_id} not found", order_id=order_id)

            self.state_machine.check(fresh.status, new_status, order_id=order_id)
            raise InvalidTransitionError(
                f"Order status changed from {current_status.value} to "
                f"{fresh.status.value} while moving it to {new_status.value}",
                current_status=fresh.status,
                requested_status=new_status,
                order_id=order_id,
            )

        await self.audit.record(
            "order.status_change",
            ENTITY_TYPE,
            order_id,
            user_id=user_id,
            details={"from": current_status.value, "to": new_status.value},
        )

        logger.info(
            "Order status updated successfully",
            order_id=order_id,
            transition=f"{current_status.value}->{new_status.value}",
        )
        return await self._reload(order_id)

    async def delete_order(
        self,
        order_id: int,
        user_id: Optional[int] = None,
    ) -> dict[str, str]:
        """
        Archive an order. Its delivery tasks are left untouched.

        Raises:
            OrderNotFoundError: If the order does not exist or is archived
            InvalidOperationError: If the order is in production
        """
        logger.info("Deleting order", order_id=order_id)

        order = await self._get_active(order_id)
        await self.guard.ensure_deletable(order)
        order_no = order.order_no

        if not await self.repository.archive(order_id):
            fresh = await self.repository.get_by_id(order_id, refresh=True)
            if fresh is None:
                raise OrderNotFoundError(f"Order {order_id} not found", order_id=order_id)
            await self.guard.ensure_deletable(fresh)
            raise InvalidOperationError(
                f"Order {order_no} could not be deleted",
                order_id=order_id,
            )

        await self.audit.record(
            "order.delete",
            ENTITY_TYPE,
            order_id,
            user_id=user_id,
            details={"order_no": order_no},
        )

        logger.info("Order archived", order_id=order_id, order_no=order_no)
        return {"message": f"Order {order_no} deleted"}

    async def get_order(self, order_id: int) -> Order:
        """
        Raises:
            OrderNotFoundError: If the order does not exist or is archived
        """
        return await self._get_active(order_id)

    async def list_orders(self, query: OrderListQuery) -> dict[str, Any]:
        """
        Get one page of active orders.

        The page size is capped by ``order_page_size_max``.
        """
        limit = min(query.limit, self.settings.order_page_size_max)
        filters = OrderFilters(
            site_id=query.site_id,
            order_no=query.order_no,
            customer_name=query.customer_name,
            project_name=query.project_name,
            status=query.status,
            start_date=query.start_date,
            end_date=query.end_date,
            page=query.page,
            limit=limit,
            sort_by=query.sort_by,
            sort_order=query.sort_order,
        )

        orders, total = await self.repository.list_orders(filters)

        return {
            "data": list(orders),
            "total": total,
            "page": query.page,
            "limit": limit,
            "total_pages": math.ceil(total / limit) if total else 0,
        }

    async def get_statistics(
        self,
        site_id: Optional[int] = None,
        start_date=None,
        end_date=None,
    ) -> dict[str, Any]:
        """Order rollups for dashboards; see ``OrderRepository.get_statistics``."""
        with log_performance(logger, "order_statistics", site_id=site_id):
            return await self.repository.get_statistics(
                site_id=site_id,
                start_date=start_date,
                end_date=end_date,
            )

    async def _get_active(self, order_id: int) -> Order:
        order = await self.repository.get_by_id(order_id)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found", order_id=order_id)
        return order

    async def _reload(self, order_id: int) -> Order:
        order = await self.repository.get_by_id(order_id, refresh=True)
        if order is None:
            raise OrderNotFoundError(f"Order {order_id} not found", order_id=order_id)
        return order

    async def _build_items(self, items: Sequence[OrderItemRequest]) -> list[OrderItem]:
        """
        Build line items, recomputing every total.

        Raises:
            OrderNotFoundError: If any referenced recipe does not exist
        """
        requested = {item.recipe_id for item in items}
        found = await self.repository.get_active_recipe_ids(list(requested))
        missing = sorted(requested - found)
        if missing:
            raise OrderNotFoundError(
                f"Recipe(s) not found: {', '.join(str(r) for r in missing)}",
                recipe_ids=missing,
            )

        return [
            OrderItem(
                recipe_id=item.recipe_id,
                volume=item.volume,
                unit_price=item.unit_price,
                total_price=compute_line_total(item.volume, item.unit_price),
                remarks=item.remarks,
            )
            for item in items
        ]

    async def _generate_order_no(self, site_id: int) -> str:
        """``<prefix><YYYYMMDD><3-digit daily sequence>``, unique within the site."""
        today = utcnow().date()
        prefix = f"{self.settings.order_number_prefix}{today:%Y%m%d}"
        sequence = await self.repository.count_created_on(site_id, today) + 1

        order_no = f"{prefix}{sequence:03d}"
        while await self.repository.order_no_exists(site_id, order_no):
            sequence += 1
            order_no = f"{prefix}{sequence:03d}"
        return order_no


def _sum(values) -> Decimal:
    return sum(values, Decimal("0.00"))
