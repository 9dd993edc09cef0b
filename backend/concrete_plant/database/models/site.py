"""
Site model for batching plants.

A site is a single batching plant. Orders, recipes and delivery tasks are
all scoped to a site; order numbers are only unique within one site.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concrete_plant.database.base import SoftDeleteModel

if TYPE_CHECKING:
    from concrete_plant.database.models.order import Order
    from concrete_plant.database.models.recipe import Recipe


class Site(SoftDeleteModel):
    """
    Batching plant owning orders, recipes and tasks.

    Attributes:
        id: Unique site identifier
        code: Short unique site code
        name: Display name
        address: Postal address of the plant
    """

    __tablename__ = "sites"
    __table_args__ = {"comment": "Batching plant sites"}

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        unique=True,
        comment="Short unique site code",
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Site display name",
    )

    address: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Postal address of the plant",
    )

    orders: Mapped[list["Order"]] = relationship(
        "Order",
        back_populates="site",
        lazy="raise",
    )

    recipes: Mapped[list["Recipe"]] = relationship(
        "Recipe",
        back_populates="site",
        lazy="raise",
    )
