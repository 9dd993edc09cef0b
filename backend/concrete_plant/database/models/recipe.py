"""
Recipe model for concrete mix designs.

Order line items reference a recipe; the recipe itself is maintained by the
production side of the plant and is read-only for order handling.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from concrete_plant.database.base import SoftDeleteModel

if TYPE_CHECKING:
    from concrete_plant.database.models.site import Site


class Recipe(SoftDeleteModel):
    """
    Concrete mix design available at a site.

    Attributes:
        id: Unique recipe identifier
        site_id: Owning site
        code: Recipe code, unique within the site
        name: Display name
        grade: Strength grade such as C30
    """

    __tablename__ = "recipes"
    __table_args__ = (
        UniqueConstraint("site_id", "code", name="uq_recipes_site_code"),
        {"comment": "Concrete mix designs"},
    )

    site_id: Mapped[int] = mapped_column(
        ForeignKey("sites.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Owning site",
    )

    code: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
        comment="Recipe code",
    )

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        comment="Recipe display name",
    )

    grade: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        comment="Concrete strength grade",
    )

    site: Mapped["Site"] = relationship(
        "Site",
        back_populates="recipes",
        lazy="raise",
    )
