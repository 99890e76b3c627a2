# backend/eventhub/schemas.py
from __future__ import annotations
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire (reminderSent, createdAt, eventId)."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class EventIn(CamelModel):
    """Request schema for event creation and full (PUT) update."""
    title: str
    description: str
    date: datetime  # ISO-8601; naive values are read as UTC
    location: str
    organizer: Optional[str] = None


class EventPatch(CamelModel):
    """Partial update. Only the fields listed here may change."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: Optional[str] = None
    description: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    organizer: Optional[str] = None
    reminder_sent: Optional[bool] = None


class EventOut(CamelModel):
    """Response schema for an event row."""
    id: int
    title: str
    description: str
    date: datetime
    location: str
    organizer: Optional[str] = None
    reminder_sent: bool
    created_at: datetime
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TaskIn(CamelModel):
    event_id: int
    title: str


class TaskPatch(CamelModel):
    """Without `completed` the task is toggled."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    completed: Optional[bool] = None


class TaskOut(CamelModel):
    id: int
    event_id: int
    title: str
    completed: bool
    created_at: datetime
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class ProgressOut(CamelModel):
    event_id: int
    total: int
    completed: int
    percent: int


class DispatchReportOut(CamelModel):
    sent: list[int] = []
    failed: list[int] = []
    skipped: list[int] = []
