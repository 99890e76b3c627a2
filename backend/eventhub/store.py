# backend/eventhub/store.py
"""
Persistence for events and tasks on top of a SQLAlchemy session.

Stores only read and write rows. Validation and existence checks belong
to the services. Any SQLAlchemy failure rolls the session back. A row
that another session deleted after it was loaded is re-raised as
NotFoundError, everything else as DependencyError.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import select, func, case
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import ObjectDeletedError, StaleDataError

from .errors import DependencyError, NotFoundError
from .models import Event, Task

logger = logging.getLogger(__name__)


@contextmanager
def store_errors(db: Session, action: str, entity: Optional[str] = None, entity_id: object = None) -> Iterator[None]:
    try:
        yield
    except (StaleDataError, ObjectDeletedError) as exc:
        # the row was deleted by another session after we loaded it
        db.rollback()
        if entity is None:
            raise DependencyError(f"Database changed underneath while trying to {action}") from exc
        logger.info("%s %s was removed concurrently while trying to %s", entity, entity_id, action)
        raise NotFoundError(entity, entity_id) from exc
    except SQLAlchemyError as exc:
        logger.exception("Store failure while trying to %s", action)
        db.rollback()
        raise DependencyError(f"Database unavailable while trying to {action}") from exc


class EventStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, ev: Event) -> Event:
        with store_errors(self.db, "create event"):
            self.db.add(ev)
            self.db.commit()
            self.db.refresh(ev)
        return ev

    def all(self, order_by_date: bool = False) -> list[Event]:
        # id order is insertion order
        order = (Event.date.asc(), Event.id.asc()) if order_by_date else (Event.id.asc(),)
        with store_errors(self.db, "list events"):
            return list(self.db.execute(select(Event).order_by(*order)).scalars().all())

    def get(self, event_id: int) -> Optional[Event]:
        with store_errors(self.db, f"load event {event_id}", "Event", event_id):
            return self.db.get(Event, event_id, populate_existing=True)

    def save(self, ev: Event) -> Event:
        event_id = ev.id
        with store_errors(self.db, f"update event {event_id}", "Event", event_id):
            self.db.commit()
            self.db.refresh(ev)
        return ev

    def delete(self, ev: Event) -> None:
        event_id = ev.id
        with store_errors(self.db, f"delete event {event_id}", "Event", event_id):
            self.db.delete(ev)
            self.db.commit()


class TaskStore:
    def __init__(self, db: Session):
        self.db = db

    def add(self, task: Task) -> Task:
        with store_errors(self.db, "create task"):
            self.db.add(task)
            self.db.commit()
            self.db.refresh(task)
        return task

    def for_event(self, event_id: int) -> list[Task]:
        q = select(Task).where(Task.event_id == event_id).order_by(Task.id.asc())
        with store_errors(self.db, f"list tasks of event {event_id}"):
            return list(self.db.execute(q).scalars().all())

    def counts_for_event(self, event_id: int) -> tuple[int, int]:
        """(total, completed) for one event."""
        q = select(func.count(Task.id), func.sum(case((Task.completed.is_(True), 1), else_=0))).where(
            Task.event_id == event_id
        )
        with store_errors(self.db, f"count tasks of event {event_id}"):
            total, completed = self.db.execute(q).one()
        return int(total or 0), int(completed or 0)

    def get(self, task_id: int) -> Optional[Task]:
        with store_errors(self.db, f"load task {task_id}", "Task", task_id):
            return self.db.get(Task, task_id, populate_existing=True)

    def save(self, task: Task) -> Task:
        task_id = task.id
        with store_errors(self.db, f"update task {task_id}", "Task", task_id):
            self.db.commit()
            self.db.refresh(task)
        return task

    def delete(self, task: Task) -> None:
        task_id = task.id
        with store_errors(self.db, f"delete task {task_id}", "Task", task_id):
            self.db.delete(task)
            self.db.commit()
