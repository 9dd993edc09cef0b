"""
Order data access repository.

This module implements the OrderRepository class providing async methods for
loading, inserting, listing and aggregating orders. Every read of orders
goes through :meth:`OrderRepository.active_orders`, which excludes archived
rows. Status changes, field updates and archiving are conditional UPDATE
statements so a concurrent writer can never be overwritten by a stale read.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import Select, and_, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from concrete_plant.core.logging import get_logger
from concrete_plant.database.base import utcnow
from concrete_plant.database.models.order import Order
from concrete_plant.database.models.recipe import Recipe
from concrete_plant.database.models.site import Site
from concrete_plant.services.orders.enums import TERMINAL_ORDER_STATUSES, OrderStatus
from concrete_plant.services.orders.exceptions import (
    OrderConflictError,
    OrderRepositoryError,
)

logger = get_logger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "required_delivery_time": Order.required_delivery_time,
    "total_volume": Order.total_volume,
    "total_amount": Order.total_amount,
    "order_no": Order.order_no,
}


def day_bounds(
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> tuple[Optional[datetime], Optional[datetime]]:
    """
    Turn an inclusive date range into half-open UTC datetime bounds.

    ``start_date`` maps to its midnight, ``end_date`` to the midnight of the
    following day so that the whole end date is included.
    """
    lower = (
        datetime.combine(start_date, time.min, tzinfo=timezone.utc)
        if start_date
        else None
    )
    upper = (
        datetime.combine(end_date + timedelta(days=1), time.min, tzinfo=timezone.utc)
        if end_date
        else None
    )
    return lower, upper


@dataclass
class OrderFilters:
    """Filters, paging and sorting accepted by :meth:`OrderRepository.list_orders`."""

    site_id: Optional[int] = None
    order_no: Optional[str] = None
    customer_name: Optional[str] = None
    project_name: Optional[str] = None
    status: Optional[OrderStatus] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    page: int = 1
    limit: int = 10
    sort_by: str = "created_at"
    sort_order: str = "desc"


class OrderRepository:
    """
    Repository for order data access operations.

    Raises :class:`OrderRepositoryError` for unexpected database failures and
    :class:`OrderConflictError` when a flush violates the per-site order
    number constraint.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def active_orders() -> Select:
        """Base query for orders that have not been archived."""
        return select(Order).where(Order.active_clause())

    async def get_by_id(self, order_id: int, refresh: bool = False) -> Optional[Order]:
        """
        Get an active order with its items and tasks.

        Args:
            order_id: Order identifier
            refresh: Overwrite any state already held by the session

        Returns:
            Order if found and not archived, None otherwise
        """
        try:
            stmt = (
                self.active_orders()
                .where(Order.id == order_id)
                .options(selectinload(Order.items), selectinload(Order.tasks))
            )
            if refresh:
                stmt = stmt.execution_options(populate_existing=True)

            result = await self.session.execute(stmt)
            order = result.scalar_one_or_none()

            logger.debug("Order lookup", order_id=order_id, found=order is not None)
            return order

        except SQLAlchemyError as e:
            logger.error("Failed to fetch order", order_id=order_id, error=str(e))
            raise OrderRepositoryError(
                "Failed to fetch order",
                order_id=order_id,
                error=str(e),
            ) from e

    async def get_active_site(self, site_id: int) -> Optional[Site]:
        result = await self.session.execute(
            select(Site).where(Site.id == site_id, Site.active_clause())
        )
        return result.scalar_one_or_none()

    async def get_active_recipe_ids(self, recipe_ids: Sequence[int]) -> set[int]:
        """Return the subset of ``recipe_ids`` that exist and are not archived."""
        if not recipe_ids:
            return set()
        result = await self.session.execute(
            select(Recipe.id).where(Recipe.id.in_(set(recipe_ids)), Recipe.active_clause())
        )
        return set(result.scalars().all())

    async def order_no_exists(
        self,
        site_id: int,
        order_no: str,
        exclude_order_id: Optional[int] = None,
    ) -> bool:
        """
        Check whether an order number is taken within a site.

        Archived orders still hold their number, so they are included.
        """
        conditions = [Order.site_id == site_id, Order.order_no == order_no]
        if exclude_order_id is not None:
            conditions.append(Order.id != exclude_order_id)

        result = await self.session.execute(
            select(func.count(Order.id)).where(and_(*conditions))
        )
        return result.scalar_one() > 0

    async def count_created_on(self, site_id: int, day: date) -> int:
        """Count orders of a site created on ``day``, archived ones included."""
        lower, upper = day_bounds(day, day)
        result = await self.session.execute(
            select(func.count(Order.id)).where(
                Order.site_id == site_id,
                Order.created_at >= lower,
                Order.created_at < upper,
            )
        )
        return result.scalar_one()

    async def add(self, order: Order) -> Order:
        """
        Insert an order and its items in a single flush.

        Raises:
            OrderConflictError: If the order number is taken in the site
            OrderRepositoryError: If the insert fails for another reason
        """
        self.session.add(order)
        await self.flush(order)

        logger.info(
            "Order inserted",
            order_id=order.id,
            order_no=order.order_no,
            site_id=order.site_id,
            item_count=len(order.items),
        )
        return order

    async def flush(self, order: Order) -> None:
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.warning(
                "Order flush rejected - integrity error",
                order_no=order.order_no,
                site_id=order.site_id,
                error=str(e.orig),
            )
            raise OrderConflictError(
                f"Order number {order.order_no} already exists in this site",
                field="order_no",
                order_no=order.order_no,
                site_id=order.site_id,
            ) from e
        except SQLAlchemyError as e:
            logger.error("Order flush failed", order_no=order.order_no, error=str(e))
            raise OrderRepositoryError(
                "Failed to write order",
                order_no=order.order_no,
                error=str(e),
            ) from e

    async def compare_and_set_status(
        self,
        order_id: int,
        expected: OrderStatus,
        new_status: OrderStatus,
    ) -> bool:
        """
        Move an active order from ``expected`` to ``new_status``.

        Returns:
            True if exactly this order was updated, False if it was archived,
            missing or no longer in ``expected``
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.status == expected,
                Order.active_clause(),
            )
            .values(status=new_status, updated_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(
                "Failed to update order status",
                order_id=order_id,
                new_status=new_status.value,
                error=str(e),
            )
            raise OrderRepositoryError(
                "Failed to update order status",
                order_id=order_id,
                error=str(e),
            ) from e

        updated = result.rowcount == 1
        logger.debug(
            "Order status compare-and-set",
            order_id=order_id,
            expected=expected.value,
            new_status=new_status.value,
            updated=updated,
        )
        return updated

    async def update_editable(self, order_id: int, values: dict[str, Any]) -> bool:
        """
        Write ``values`` to an active order that is not completed or cancelled.

        The status condition is part of the UPDATE itself, so an order that
        became terminal after it was read is left untouched.

        Returns:
            True if the order was updated by this call

        Raises:
            OrderConflictError: If the new order number is taken in the site
            OrderRepositoryError: If the update fails for another reason
        """
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.active_clause(),
                *(Order.status != status for status in sorted(TERMINAL_ORDER_STATUSES)),
            )
            .values(**values, updated_at=utcnow())
            .execution_options(synchronize_session="evaluate")
        )

        try:
            result = await self.session.execute(stmt)
        except IntegrityError as e:
            logger.warning(
                "Order update rejected - integrity error",
                order_id=order_id,
                error=str(e.orig),
            )
            raise OrderConflictError(
                f"Order number {values.get('order_no')} already exists in this site",
                field="order_no",
                order_no=values.get("order_no"),
                order_id=order_id,
            ) from e
        except SQLAlchemyError as e:
            logger.error("Failed to update order", order_id=order_id, error=str(e))
            raise OrderRepositoryError(
                "Failed to update order",
                order_id=order_id,
                error=str(e),
            ) from e

        updated = result.rowcount == 1
        logger.debug(
            "Order conditional update",
            order_id=order_id,
            fields=sorted(values),
            updated=updated,
        )
        return updated

    async def archive(self, order_id: int) -> bool:
        """
        Soft delete an active order unless it is in production.

        Returns:
            True if the order was archived by this call
        """
        now = utcnow()
        stmt = (
            update(Order)
            .where(
                Order.id == order_id,
                Order.status != OrderStatus.IN_PRODUCTION,
                Order.active_clause(),
            )
            .values(deleted_at=now, updated_at=now)
            .execution_options(synchronize_session="evaluate")
        )

        try:
            result = await self.session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error("Failed to archive order", order_id=order_id, error=str(e))
            raise OrderRepositoryError(
                "Failed to archive order",
                order_id=order_id,
                error=str(e),
            ) from e

        return result.rowcount == 1

    def _filter_conditions(self, filters: OrderFilters) -> list[Any]:
        conditions: list[Any] = []
        if filters.site_id is not None:
            conditions.append(Order.site_id == filters.site_id)
        if filters.order_no:
            conditions.append(Order.order_no.contains(filters.order_no, autoescape=True))
        if filters.customer_name:
            conditions.append(
                Order.customer_name.contains(filters.customer_name, autoescape=True)
            )
        if filters.project_name:
            conditions.append(
                Order.project_name.contains(filters.project_name, autoescape=True)
            )
        if filters.status is not None:
            conditions.append(Order.status == filters.status)

        lower, upper = day_bounds(filters.start_date, filters.end_date)
        if lower is not None:
            conditions.append(Order.created_at >= lower)
        if upper is not None:
            conditions.append(Order.created_at < upper)
        return conditions

    async def list_orders(self, filters: OrderFilters) -> tuple[Sequence[Order], int]:
        """
        Get one page of active orders.

        Returns:
            Tuple of (orders, total_count)

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            conditions = self._filter_conditions(filters)

            sort_column = SORTABLE_COLUMNS.get(filters.sort_by, Order.created_at)
            ordering = sort_column.asc() if filters.sort_order == "asc" else sort_column.desc()

            stmt = (
                self.active_orders()
                .where(*conditions)
                .options(selectinload(Order.items))
                .order_by(ordering, Order.id.desc())
                .offset((filters.page - 1) * filters.limit)
                .limit(filters.limit)
            )
            count_stmt = (
                select(func.count(Order.id))
                .where(Order.active_clause(), *conditions)
            )

            orders = (await self.session.execute(stmt)).scalars().all()
            total = (await self.session.execute(count_stmt)).scalar_one()

            logger.debug(
                "Orders listed",
                count=len(orders),
                total=total,
                page=filters.page,
            )
            return orders, total

        except SQLAlchemyError as e:
            logger.error("Failed to list orders", error=str(e))
            raise OrderRepositoryError("Failed to list orders", error=str(e)) from e

    async def get_statistics(
        self,
        site_id: Optional[int] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> dict[str, Any]:
        """
        Aggregate counts and sums over active orders.

        Every status appears in ``status_count``; sums are 0 when no order
        matches.

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            conditions = [Order.active_clause()]
            if site_id is not None:
                conditions.append(Order.site_id == site_id)
            lower, upper = day_bounds(start_date, end_date)
            if lower is not None:
                conditions.append(Order.created_at >= lower)
            if upper is not None:
                conditions.append(Order.created_at < upper)

            stmt = (
                select(
                    Order.status,
                    func.count(Order.id),
                    func.coalesce(func.sum(Order.total_volume), 0),
                    func.coalesce(func.sum(Order.total_amount), 0),
                )
                .where(and_(*conditions))
                .group_by(Order.status)
            )
            rows = (await self.session.execute(stmt)).all()

            status_count = {status.value: 0 for status in OrderStatus}
            total_volume = Decimal("0.00")
            total_amount = Decimal("0.00")
            for status, count, volume, amount in rows:
                status_count[OrderStatus(status).value] = count
                total_volume += Decimal(str(volume or 0))
                total_amount += Decimal(str(amount or 0))

            statistics = {
                "total_orders": sum(status_count.values()),
                "status_count": status_count,
                "total_volume": total_volume.quantize(Decimal("0.01")),
                "total_amount": total_amount.quantize(Decimal("0.01")),
            }

            logger.debug("Order statistics fetched", site_id=site_id)
            return statistics

        except SQLAlchemyError as e:
            logger.error("Failed to fetch order statistics", error=str(e))
            raise OrderRepositoryError(
                "Failed to fetch order statistics",
                error=str(e),
            ) from e
