"""
Order model for concrete delivery orders.

This module defines the Order and OrderItem models. An order belongs to one
site and owns its line items; delivery tasks reference the order but are
not owned by it. Orders are never hard deleted: ``deleted_at`` archives them
and every normal query goes through ``Order.active_clause()``.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concrete_plant.database.base import BaseModel, SoftDeleteModel
from concrete_plant.services.orders.enums import OrderStatus

if TYPE_CHECKING:
    from concrete_plant.database.models.recipe import Recipe
    from concrete_plant.database.models.site import Site
    from concrete_plant.database.models.task import Task


def _enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]


class Order(SoftDeleteModel):
    """
    Customer order for a quantity of concrete.

    Attributes:
        id: Unique order identifier
        order_no: Human readable order number, unique within a site
        site_id: Owning site
        customer_name: Customer name
        customer_phone: Customer contact phone
        project_name: Construction project name
        construction_site: Delivery address on the construction site
        required_delivery_time: When the customer needs the first truck
        total_volume: Ordered volume in cubic metres
        total_amount: Order value
        status: Current lifecycle status
        remarks: Free text remarks
        created_by: Id of the user that created the order
    """

    __tablename__ = "orders"

    order_no: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Order number, unique within the site",
    )

    site_id: Mapped[int] = mapped_column(
        ForeignKey("sites.id", ondelete="RESTRICT"),
        nullable=False,
        comment="Owning site",
    )

    customer_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Customer name",
    )

    customer_phone: Mapped[Optional[str]] = mapped_column(
        String(30),
        nullable=True,
        comment="Customer contact phone",
    )

    project_name: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        comment="Construction project name",
    )

    construction_site: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Delivery address on the construction site",
    )

    required_delivery_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Requested delivery time",
    )

    total_volume: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Ordered volume in cubic metres",
    )

    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=False,
        default=Decimal("0.00"),
        comment="Order value",
    )

    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(
            OrderStatus,
            name="order_status",
            native_enum=False,
            create_constraint=True,
            length=20,
            values_callable=_enum_values,
            validate_strings=True,
        ),
        nullable=False,
        default=OrderStatus.PENDING,
        comment="Order lifecycle status",
    )

    remarks: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free text remarks",
    )

    created_by: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
        comment="Id of the user that created the order",
    )

    # Relationships
    site: Mapped["Site"] = relationship(
        "Site",
        back_populates="orders",
        lazy="raise",
    )

    items: Mapped[list["OrderItem"]] = relationship(
        "OrderItem",
        back_populates="order",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    tasks: Mapped[list["Task"]] = relationship(
        "Task",
        lazy="selectin",
        viewonly=True,
        order_by="Task.created_at",
    )

    __table_args__ = (
        UniqueConstraint("site_id", "order_no", name="uq_orders_site_order_no"),
        Index("ix_orders_site_status", "site_id", "status"),
        Index("ix_orders_active", "site_id", "deleted_at", "created_at"),
        CheckConstraint(
            "total_volume >= 0",
            name="ck_orders_total_volume_non_negative",
        ),
        CheckConstraint(
            "total_amount >= 0",
            name="ck_orders_total_amount_non_negative",
        ),
        {"comment": "Customer concrete orders"},
    )


class OrderItem(BaseModel):
    """
    Line item of an order.

    ``total_price`` is always written as ``volume * unit_price`` rounded to
    two decimals; see :func:`compute_line_total`.
    """

    __tablename__ = "order_items"

    order_id: Mapped[int] = mapped_column(
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Parent order",
    )

    recipe_id: Mapped[int] = mapped_column(
        ForeignKey("recipes.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Concrete recipe",
    )

    volume: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Volume in cubic metres",
    )

    unit_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=12, scale=2),
        nullable=False,
        comment="Price per cubic metre",
    )

    total_price: Mapped[Decimal] = mapped_column(
        Numeric(precision=14, scale=2),
        nullable=False,
        comment="volume * unit_price",
    )

    remarks: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        comment="Free text remarks",
    )

    order: Mapped["Order"] = relationship(
        "Order",
        back_populates="items",
        lazy="raise",
    )

    recipe: Mapped["Recipe"] = relationship(
        "Recipe",
        lazy="raise",
    )

    __table_args__ = (
        CheckConstraint("volume >= 0", name="ck_order_items_volume_non_negative"),
        CheckConstraint(
            "unit_price >= 0",
            name="ck_order_items_unit_price_non_negative",
        ),
        {"comment": "Order line items"},
    )


def compute_line_total(volume: Decimal, unit_price: Decimal) -> Decimal:
    """Line total rounded half-up to two decimal places."""
    return (Decimal(volume) * Decimal(unit_price)).quantize(
        Decimal("0.01"), rounding=ROUND_HALF_UP
    )
