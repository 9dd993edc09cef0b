"""
Tests for the delivery task read repository.
"""

import pytest

from concrete_plant.database.models import Order, Task, TaskStatus
from concrete_plant.services.orders.enums import OrderStatus
from concrete_plant.services.tasks.repository import TaskRepository


@pytest.fixture
def repository(db_session) -> TaskRepository:
    return TaskRepository(db_session)


async def add_order(session, seed, order_no: str) -> Order:
    order = Order(
        order_no=order_no,
        site_id=seed.site_a,
        customer_name="Harbor Construction",
        status=OrderStatus.CONFIRMED,
    )
    session.add(order)
    await session.flush()
    return order


class TestTaskRepository:
    """Test suite for TaskRepository."""

    @pytest.mark.asyncio
    async def test_count_active_for_order(self, repository, db_session, seed) -> None:
        order = await add_order(db_session, seed, "T-1")
        other = await add_order(db_session, seed, "T-2")
        for number, (owner, status) in enumerate(
            [
                (order, TaskStatus.PENDING),
                (order, TaskStatus.ASSIGNED),
                (order, TaskStatus.UNLOADING),
                (order, TaskStatus.COMPLETED),
                (other, TaskStatus.LOADING),
            ]
        ):
            db_session.add(
                Task(
                    task_no=f"TASK-{number}",
                    order_id=owner.id,
                    site_id=seed.site_a,
                    status=status,
                )
            )
        await db_session.flush()

        assert await repository.count_active_for_order(order.id) == 2
        assert await repository.count_active_for_order(other.id) == 1

    @pytest.mark.asyncio
    async def test_count_without_tasks(self, repository, db_session, seed) -> None:
        order = await add_order(db_session, seed, "T-3")

        assert await repository.count_active_for_order(order.id) == 0
