from datetime import datetime, timezone

from sqlalchemy import Column, Boolean, DateTime, String
from sqlalchemy.sql import func


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TimestampMixin:
    # client-side values keep timestamps readable right after a flush
    created_at = Column(
        DateTime(timezone=True),
        default=utc_now,
        server_default=func.now(),
        nullable=False
    )
    updated_at = Column(
        DateTime(timezone=True),
        onupdate=utc_now
    )


class SoftDeleteMixin:
    is_deleted = Column(Boolean, default=False, nullable=False)


class ActorMixin:
    """Free-text actor names; the ledger has no user accounts of its own."""

    created_by = Column(String(150), nullable=True)
    updated_by = Column(String(150), nullable=True)
