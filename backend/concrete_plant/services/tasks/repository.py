"""
Delivery task read repository.

Order handling never writes tasks. This repository answers the questions
the order guards ask about them, always filtering in the database.
"""

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from concrete_plant.core.logging import get_logger
from concrete_plant.database.models.task import ACTIVE_TASK_STATUSES, Task
from concrete_plant.services.orders.exceptions import OrderRepositoryError

logger = get_logger(__name__)


class TaskRepository:
    """Repository for delivery task lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def count_active_for_order(self, order_id: int) -> int:
        """
        Count tasks of an order that are still being worked on.

        Raises:
            OrderRepositoryError: If query fails
        """
        try:
            result = await self.session.execute(
                select(func.count(Task.id)).where(
                    Task.order_id == order_id,
                    Task.status.in_(ACTIVE_TASK_STATUSES),
                )
            )
            count = result.scalar_one()
            logger.debug("Active tasks counted", order_id=order_id, count=count)
            return count

        except SQLAlchemyError as e:
            logger.error("Failed to count active tasks", order_id=order_id, error=str(e))
            raise OrderRepositoryError(
                "Failed to count active tasks",
                order_id=order_id,
                error=str(e),
            ) from e
