"""SQLAlchemy models backing the local key-value store."""

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class StoreRecord(Base):
    """One namespaced value in the local store.

    Values are kept as the raw JSON text that was written so a corrupt value
    can be inspected (and is never silently replaced on read).
    """

    __tablename__ = "store_records"

    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=_utcnow, onupdate=_utcnow
    )

    def __repr__(self) -> str:
        """String representation of StoreRecord."""
        return f"<StoreRecord(key='{self.key}', updated_at={self.updated_at})>"
