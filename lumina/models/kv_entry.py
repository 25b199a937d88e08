"""KVEntry ORM model — one persisted value per state key."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lumina.database import Base


class KVEntry(Base):
    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
    # JSON text; decoded by the storage layer so corrupt rows can be detected
    value: Mapped[str] = mapped_column(Text)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<KVEntry {self.key} {self.value[:30]}>"
