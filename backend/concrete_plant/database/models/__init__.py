"""
Database models package initialization.

Models are imported here so they are registered with the Base metadata for
Alembic migrations and relationship resolution.
"""

from concrete_plant.database.base import (
    Base,
    BaseModel,
    RecordLifecycle,
    SoftDeleteModel,
)
from concrete_plant.database.models.site import Site
from concrete_plant.database.models.recipe import Recipe
from concrete_plant.database.models.order import Order, OrderItem
from concrete_plant.database.models.task import ACTIVE_TASK_STATUSES, Task, TaskStatus
from concrete_plant.database.models.operation_log import OperationLog

__all__ = [
    "Base",
    "BaseModel",
    "RecordLifecycle",
    "SoftDeleteModel",
    "Site",
    "Recipe",
    "Order",
    "OrderItem",
    "Task",
    "TaskStatus",
    "ACTIVE_TASK_STATUSES",
    "OperationLog",
]
