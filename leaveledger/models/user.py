"""
Ledger operators.

``super_admin`` and ``admin`` may close, reopen and seed months and edit
grants and permissions; ``manager`` and ``readonly`` only read the
projections and history. The bootstrap ``super_admin`` is created at
startup from ``FIRST_ADMIN_EMAIL``.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.orm import validates

from leaveledger.core.security import ADMIN_ROLES, VALID_ROLES
from leaveledger.db.base import Base


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)  # type: ignore[assignment]
    email: str = Column(String(320), unique=True, nullable=False, index=True)  # type: ignore[assignment]
    hashed_password: str = Column(String(128), nullable=False)  # type: ignore[assignment]
    full_name: str | None = Column(String(200), nullable=True)  # type: ignore[assignment]
    # Carried into the access token as the ``role`` claim
    role: str = Column(String(20), nullable=False, default="readonly", server_default="readonly")  # type: ignore[assignment]
    is_active: bool = Column(Boolean, default=True, server_default="true")  # type: ignore[assignment]
    created_at: datetime = Column(  # type: ignore[assignment]
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )

    @validates("role")
    def _check_role(self, _key: str, value: str) -> str:
        if value not in VALID_ROLES:
            raise ValueError(f"Unknown role {value!r}")
        return value

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES
