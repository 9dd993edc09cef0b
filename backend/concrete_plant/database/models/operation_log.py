"""
Operation log model.

One row per mutating operation on an order, kept for audit. Rows are
append-only.
"""

from typing import Any, Optional

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from concrete_plant.database.base import BaseModel


class OperationLog(BaseModel):
    """
    Audit record of a user action.

    Attributes:
        user_id: Acting user, when known
        action: Action name such as ``order.create``
        entity_type: Kind of entity acted on
        entity_id: Id of the entity acted on
        details: Action specific payload
    """

    __tablename__ = "operation_logs"

    user_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Acting user",
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Action name",
    )

    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Kind of entity acted on",
    )

    entity_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Id of the entity acted on",
    )

    details: Mapped[Optional[dict[str, Any]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Action specific payload",
    )

    __table_args__ = (
        Index("ix_operation_logs_entity", "entity_type", "entity_id"),
        {"comment": "Audit trail of user actions"},
    )
