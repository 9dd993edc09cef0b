"""
Delivery task model.

Tasks are created by dispatching once an order is in fulfilment. Order
handling only reads them: an order never creates, changes or deletes its
tasks, and archiving an order leaves its tasks in place.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, FrozenSet, Optional

from sqlalchemy import (
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concrete_plant.database.base import BaseModel

if TYPE_CHECKING:
    from concrete_plant.database.models.order import Order


class TaskStatus(str, Enum):
    """
    Delivery task status.

    Attributes:
        PENDING: Task created, no vehicle yet
        ASSIGNED: Vehicle and driver assigned
        IN_PROGRESS: Batching started
        LOADING: Truck being loaded
        TRANSPORTING: Truck on the way to the construction site
        UNLOADING: Pouring at the construction site
        COMPLETED: Delivery finished
    """

    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    LOADING = "loading"
    TRANSPORTING = "transporting"
    UNLOADING = "unloading"
    COMPLETED = "completed"


ACTIVE_TASK_STATUSES: FrozenSet[TaskStatus] = frozenset({
    TaskStatus.ASSIGNED,
    TaskStatus.IN_PROGRESS,
    TaskStatus.LOADING,
    TaskStatus.TRANSPORTING,
    TaskStatus.UNLOADING,
})


class Task(BaseModel):
    """Delivery task referencing an order."""

    __tablename__ = "tasks"

    task_no: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Task number",
    )

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Referenced order",
    )

    site_id: Mapped[int] = mapped_column(
        ForeignKey("sites.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Site executing the task",
    )

    status: Mapped[TaskStatus] = mapped_column(
        SQLEnum(
            TaskStatus,
            name="task_status",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=lambda enum_cls: [m.value for m in enum_cls],
            validate_strings=True,
        ),
        nullable=False,
        default=TaskStatus.PENDING,
        comment="Task status",
    )

    delivery_volume: Mapped[Optional[Decimal]] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=True,
        comment="Volume carried by this task",
    )

    scheduled_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Planned departure time",
    )

    order: Mapped["Order"] = relationship(
        "Order",
        lazy="raise",
    )

    __table_args__ = (
        Index("ix_tasks_order_status", "order_id", "status"),
        {"comment": "Delivery tasks"},
    )
