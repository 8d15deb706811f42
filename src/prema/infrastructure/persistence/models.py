"""SQLAlchemy models for local client storage."""

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Hey future me - this is the whole local database: one key-value table standing in for
# the phone's key-value storage. It holds the auth token and two small JSON blobs (browse
# sliders, last location push). Keep it that way - server data is NEVER cached here.
class KeyValueModel(Base):
    """Persistent client-side key-value entry."""

    __tablename__ = "client_storage"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
