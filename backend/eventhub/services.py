# backend/eventhub/services.py
"""
Event and task services: all business rules live here.

Services:
- validate field constraints and raise ValidationError with the field name
- resolve ids and raise NotFoundError with the entity and id
- delegate reads and writes to the stores
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Union

import pydantic
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import Event, Task
from .schemas import EventIn, EventPatch
from .store import EventStore, TaskStore

logger = logging.getLogger(__name__)

MIN_LENGTH = {"title": 2, "description": 10, "location": 2}
# column widths in models.py; description is Text
MAX_LENGTH = {"title": 200, "location": 255, "organizer": 255}
TASK_TITLE_MAX = 200
SORT_KEYS = ("created", "date")


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _check_text(field: str, value: Any, errors: list[tuple[str, str]]) -> Optional[str]:
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append((field, "is required"))
        return None
    if not isinstance(value, str):
        errors.append((field, "must be text"))
        return None
    value = value.strip()
    minimum = MIN_LENGTH[field]
    if len(value) < minimum:
        errors.append((field, f"must be at least {minimum} characters"))
        return None
    maximum = MAX_LENGTH.get(field)
    if maximum is not None and len(value) > maximum:
        errors.append((field, f"must be at most {maximum} characters"))
        return None
    return value


def _check_date(value: Any, errors: list[tuple[str, str]]) -> Optional[datetime]:
    if value is None:
        errors.append(("date", "is required"))
        return None
    if not isinstance(value, datetime):
        errors.append(("date", "must be a date and time"))
        return None
    return _as_utc(value)


def _clean_organizer(value: Any, errors: list[tuple[str, str]]) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        errors.append(("organizer", "must be text"))
        return None
    value = value.strip()
    if len(value) > MAX_LENGTH["organizer"]:
        errors.append(("organizer", f"must be at most {MAX_LENGTH['organizer']} characters"))
        return None
    return value or None


def _coerce_patch(patch: Union[EventPatch, Mapping[str, Any]]) -> dict[str, Any]:
    """Only the fields the caller actually sent, keyed by attribute name."""
    if not isinstance(patch, EventPatch):
        try:
            patch = EventPatch.model_validate(dict(patch))
        except pydantic.ValidationError as exc:
            raise ValidationError(
                errors=[(".".join(str(p) for p in e["loc"]) or "body", e["msg"]) for e in exc.errors()]
            ) from exc
    return patch.model_dump(exclude_unset=True)


class EventService:
    """Event CRUD against the event store."""

    def __init__(self, db: Session) -> None:
        self._store = EventStore(db)

    def create_event(
        self,
        title: str,
        description: str,
        date: datetime,
        location: str,
        organizer: Optional[str] = None,
    ) -> Event:
        errors: list[tuple[str, str]] = []
        fields = {
            "title": _check_text("title", title, errors),
            "description": _check_text("description", description, errors),
            "date": _check_date(date, errors),
            "location": _check_text("location", location, errors),
            "organizer": _clean_organizer(organizer, errors),
        }
        if errors:
            raise ValidationError(errors=errors)

        ev = self._store.add(Event(**fields, reminder_sent=False))
        logger.info("Created event %s (%r)", ev.id, ev.title)
        return ev

    def list_events(self, upcoming_only: bool = False, sort: str = "created", now: Optional[datetime] = None) -> list[Event]:
        """
        All events, insertion order by default.

        `sort="date"` orders by start time; `upcoming_only` drops events that
        started before `now`.
        """
        if sort not in SORT_KEYS:
            raise ValidationError("sort", f"must be one of {', '.join(SORT_KEYS)}")
        rows = self._store.all(order_by_date=(sort == "date"))
        if upcoming_only:
            cutoff = _as_utc(now) if now else datetime.now(timezone.utc)
            rows = [ev for ev in rows if ev.date >= cutoff]
        return rows

    def get_event(self, event_id: int) -> Event:
        ev = self._store.get(event_id)
        if ev is None:
            raise NotFoundError("Event", event_id)
        return ev

    def update_event(self, event_id: int, patch: Union[EventPatch, Mapping[str, Any]]) -> Event:
        """Merge the provided fields into the event; unspecified fields keep their values."""
        changes = _coerce_patch(patch)
        ev = self.get_event(event_id)

        errors: list[tuple[str, str]] = []
        clean: dict[str, Any] = {}
        for name, value in changes.items():
            if name in MIN_LENGTH:
                clean[name] = _check_text(name, value, errors)
            elif name == "date":
                clean[name] = _check_date(value, errors)
            elif name == "organizer":
                clean[name] = _clean_organizer(value, errors)
            elif name == "reminder_sent":
                if value is None:
                    errors.append(("reminderSent", "is required"))
                elif ev.reminder_sent and not value:
                    errors.append(("reminderSent", "cannot be reset once a reminder was sent"))
                clean[name] = value
        if errors:
            raise ValidationError(errors=errors)

        for name, value in clean.items():
            setattr(ev, name, value)
        return self._store.save(ev)

    def replace_event(self, event_id: int, payload: EventIn) -> Event:
        """Full update (PUT): every create field is replaced, the reminder flag is kept."""
        return self.update_event(
            event_id,
            EventPatch(
                title=payload.title,
                description=payload.description,
                date=payload.date,
                location=payload.location,
                organizer=payload.organizer,
            ),
        )

    def delete_event(self, event_id: int) -> None:
        """Delete the event. Its tasks go with it."""
        ev = self.get_event(event_id)
        self._store.delete(ev)
        logger.info("Deleted event %s and its tasks", event_id)


@dataclass(frozen=True)
class TaskProgress:
    event_id: int
    total: int
    completed: int

    @property
    def percent(self) -> int:
        if not self.total:
            return 0
        return round(self.completed / self.total * 100)


class TaskService:
    """Task CRUD, always scoped to a parent event."""

    def __init__(self, db: Session) -> None:
        self._store = TaskStore(db)
        self._events = EventService(db)

    def create_task(self, event_id: int, title: str) -> Task:
        self._events.get_event(event_id)
        if not isinstance(title, str) or not title.strip():
            raise ValidationError("title", "is required")
        if len(title.strip()) > TASK_TITLE_MAX:
            raise ValidationError("title", f"must be at most {TASK_TITLE_MAX} characters")
        task = self._store.add(Task(event_id=event_id, title=title.strip(), completed=False))
        logger.info("Created task %s for event %s", task.id, event_id)
        return task

    def list_tasks_for_event(self, event_id: int) -> list[Task]:
        return self._store.for_event(event_id)

    def get_task(self, task_id: int) -> Task:
        task = self._store.get(task_id)
        if task is None:
            raise NotFoundError("Task", task_id)
        return task

    def toggle_task(self, task_id: int) -> Task:
        task = self.get_task(task_id)
        task.completed = not task.completed
        return self._store.save(task)

    def set_task_completed(self, task_id: int, completed: bool) -> Task:
        task = self.get_task(task_id)
        task.completed = bool(completed)
        return self._store.save(task)

    def delete_task(self, task_id: int) -> None:
        task = self.get_task(task_id)
        self._store.delete(task)
        logger.info("Deleted task %s", task_id)

    def task_progress(self, event_id: int) -> TaskProgress:
        self._events.get_event(event_id)
        total, completed = self._store.counts_for_event(event_id)
        return TaskProgress(event_id=event_id, total=total, completed=completed)
