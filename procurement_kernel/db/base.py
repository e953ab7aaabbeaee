"""
Module: procurement_kernel.db.base
Responsibility: Declarative base classes for all SQLAlchemy ORM models.  Provides
    the integer primary key convention, the type annotation map for consistent
    column types, and the TrackedBase mixin for audit timestamps.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Integer surrogate keys: every model inherits an autoincrement primary key.
      On SQLite the key is declared INTEGER so it aliases the rowid.
    - Decimal precision: Decimal maps to Numeric(18, 2).  NEVER use float for
      monetary amounts.
    - Audit timestamps: TrackedBase provides created_at, updated_at and
      updated_by_id.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar

from sqlalchemy import BigInteger, Date, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGINT everywhere except SQLite, where only INTEGER PRIMARY KEY autoincrements.
IdType = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - id is an autoincrement integer primary key.
        - Decimal maps to Numeric(18, 2).
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger (INTEGER on SQLite).
    """

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(18, 2),
        datetime: DateTime(timezone=True),
        date: Date(),
        int: IdType,
    }

    id: Mapped[int] = mapped_column(
        IdType,
        primary_key=True,
        autoincrement=True,
    )


class TrackedBase(Base):
    """
    Abstract base with audit timestamps and last-updating actor.

    Contract:
        Services set ``created_at`` / ``updated_at`` from the injected clock;
        the server defaults only cover rows written outside the kernel.

    Guarantees:
        - created_at is set on INSERT and never changes.
        - updated_at changes on every UPDATE.
        - updated_by_id is nullable (unset until the first mutation).
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    updated_by_id: Mapped[int | None] = mapped_column(
        IdType,
        nullable=True,
    )
