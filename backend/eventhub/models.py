from __future__ import annotations
from typing import Optional, List
from datetime import datetime, timezone

from sqlalchemy import Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC timestamps, also on backends (SQLite) that drop the offset."""
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class Event(Base):
    __tablename__ = "events"

    id:    Mapped[int]       = mapped_column(Integer, primary_key=True, index=True)
    title: Mapped[str]       = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    date:  Mapped[datetime]  = mapped_column(UTCDateTime, nullable=False, index=True)
    location:  Mapped[str]   = mapped_column(String(255), nullable=False)
    organizer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    reminder_sent: Mapped[bool]  = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    tasks: Mapped[List["Task"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Task.id",
    )


class Task(Base):
    __tablename__ = "tasks"

    id:       Mapped[int]  = mapped_column(Integer, primary_key=True, index=True)
    event_id: Mapped[int]  = mapped_column(
        Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title:     Mapped[str]  = mapped_column(String(200), nullable=False)
    completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)

    event: Mapped[Event] = relationship(back_populates="tasks")
