"""
SQLAlchemy declarative base and common model mixins.

This module provides the SQLAlchemy DeclarativeBase, mixins for integer
primary keys, timestamps and soft deletion, and the ``RecordLifecycle``
variant that names the two states a soft-deletable record can be in.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, Integer, func
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class RecordLifecycle(str, Enum):
    """
    Lifecycle of a soft-deletable record.

    Attributes:
        ACTIVE: Record is visible to every normal query
        ARCHIVED: Record was soft deleted and is kept only for history
    """

    ACTIVE = "active"
    ARCHIVED = "archived"


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models with async support.

    Provides async attribute loading and a primary-key based repr.
    """

    __abstract__ = True

    def __repr__(self) -> str:
        pk_values = [
            f"{column.key}={getattr(self, column.key, None)!r}"
            for column in self.__table__.primary_key.columns
        ]
        pk_str = ", ".join(pk_values) if pk_values else "no primary key"
        return f"<{self.__class__.__name__}({pk_str})>"


class IntegerIDMixin:
    """Mixin for an auto-incrementing integer primary key."""

    @declared_attr
    def id(cls) -> Mapped[int]:
        return mapped_column(
            Integer,
            primary_key=True,
            autoincrement=True,
            comment="Unique identifier for the record",
        )


class TimestampMixin:
    """
    Mixin for automatic timestamp management.

    Values are produced on the Python side so they are available right
    after a flush without another round trip; the server defaults cover
    rows written outside the ORM.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            server_default=func.now(),
            index=True,
            comment="Timestamp when record was created",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            default=utcnow,
            onupdate=utcnow,
            server_default=func.now(),
            comment="Timestamp when record was last updated",
        )


class SoftDeleteMixin:
    """
    Mixin for soft delete functionality.

    Adds a ``deleted_at`` column; a NULL value means the record is active.
    Queries select active rows through :meth:`active_clause` rather than
    repeating the NULL check.
    """

    @declared_attr
    def deleted_at(cls) -> Mapped[Optional[datetime]]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=True,
            default=None,
            comment="Timestamp when record was soft deleted",
        )

    @classmethod
    def active_clause(cls):
        """SQL criterion matching records that have not been archived."""
        return cls.deleted_at.is_(None)

    @property
    def lifecycle(self) -> RecordLifecycle:
        """Lifecycle state derived from the deletion timestamp."""
        if self.deleted_at is None:
            return RecordLifecycle.ACTIVE
        return RecordLifecycle.ARCHIVED


class BaseModel(Base, IntegerIDMixin, TimestampMixin):
    """
    Base model with integer primary key and timestamps.

    Example:
        class Site(BaseModel):
            __tablename__ = "sites"

            code: Mapped[str] = mapped_column(String(50), unique=True)
    """

    __abstract__ = True


class SoftDeleteModel(BaseModel, SoftDeleteMixin):
    """Base model with integer primary key, timestamps and soft delete."""

    __abstract__ = True
