"""Reusable ORM column helpers and mixins."""

from datetime import datetime

import ulid
from sqlalchemy import DateTime, String, func
from sqlalchemy.orm import Mapped, mapped_column

ULID_LENGTH = 26


def generate_ulid() -> str:
    return str(ulid.new())


def ulid_primary_key() -> Mapped[str]:
    """String ULID primary key, generated client side so ids are known before flush."""
    return mapped_column(String(ULID_LENGTH), primary_key=True, default=generate_ulid)


class TimestampMixin:
    """Creation/update times, filled in by the database."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    # Expired after every UPDATE; refresh before reading it back.
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
