"""
Module: catering_kernel.db.base
Responsibility: Declarative base for the SQLAlchemy ORM models and the
    column-type conventions shared by them.
Architecture position: Kernel > DB.  Lowest-level import target within the
    db package.  MUST NOT import from domain/, services/ or outer layers.

Invariants enforced:
    - datetime columns are timezone-aware.
    - dict columns are portable JSON (JSONB is not required, so SQLite
      works for tests and single-user installs).
    - TrackedBase rows carry created_at / updated_at maintained by the
      database.
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import JSON, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Guarantees:
        - datetime maps to DateTime(timezone=True).
        - dict[str, Any] maps to JSON.
        - int maps to Integer (document versions are small counters).
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        dict[str, Any]: JSON,
        int: Integer,
    }


class TrackedBase(Base):
    """
    Abstract base with audit timestamps.

    Guarantees:
        - created_at is set to server NOW() on INSERT and never changes.
        - updated_at is set on INSERT and refreshed on every UPDATE.
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
