"""
SQLAlchemy declarative base and the timestamp mixin shared by ledger tables.
"""
from datetime import datetime
from sqlalchemy import DateTime, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    `Base.metadata` is what `Database.init()` creates tables from, so every
    model module must be imported before startup.
    """
    pass


class TimestampMixin:
    """
    Adds created_at / updated_at bookkeeping columns, filled by the database.
    """
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
