"""
Module: procurement_kernel.models.directory
Responsibility: Reference data the workflow points at: organizational areas
    and users.  The kernel only reads these rows; maintaining them belongs to
    the HR / registry collaborators.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/stages.py.
"""

from __future__ import annotations

from sqlalchemy import Boolean, CheckConstraint, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from procurement_kernel.db.base import Base
from procurement_kernel.domain.stages import Role

_ROLE_VALUES = ", ".join(f"'{role.value}'" for role in Role)


class Area(Base):
    """Organizational area that owns purchase requests."""

    __tablename__ = "areas"

    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(120), nullable=False)

    def __repr__(self) -> str:
        return f"<Area {self.code}>"


class User(Base):
    """Person who requests, submits, approves or rejects."""

    __tablename__ = "users"

    __table_args__ = (
        CheckConstraint(f"role IN ({_ROLE_VALUES})", name="ck_users_valid_role"),
    )

    full_name: Mapped[str] = mapped_column(String(150), nullable=False)
    email: Mapped[str] = mapped_column(String(200), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    area_id: Mapped[int | None] = mapped_column(ForeignKey("areas.id"), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        return f"<User {self.email} role={self.role}>"
