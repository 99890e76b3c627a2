# backend/eventhub/reminders.py
"""
Reminder selection and dispatch.

select_reminder_candidates() is pure: it only looks at the events it is
given and the reference time. dispatch_reminders() is the job around it.
It sends one notice per candidate through a Notifier and sets
reminderSent only after the channel confirmed delivery. A failed or
skipped candidate stays eligible for the next run, so delivery is
at-least-once.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional, Protocol

from sqlalchemy.orm import Session

from .errors import NotFoundError
from .models import Event
from .services import EventService

logger = logging.getLogger(__name__)

DEFAULT_WINDOW = timedelta(hours=24)


def window_from_env() -> timedelta:
    """REMINDER_WINDOW_HOURS as a timedelta; unset, non-positive or malformed values give 24h."""
    raw = os.getenv("REMINDER_WINDOW_HOURS", "").strip()
    if not raw:
        return DEFAULT_WINDOW
    try:
        hours = float(raw)
        if hours > 0:
            return timedelta(hours=hours)
    except (ValueError, OverflowError):
        pass
    logger.warning("Ignoring REMINDER_WINDOW_HOURS=%r, using %s", raw, DEFAULT_WINDOW)
    return DEFAULT_WINDOW


def select_reminder_candidates(
    events: Iterable[Event],
    now: datetime,
    window: timedelta = DEFAULT_WINDOW,
) -> list[Event]:
    """Events starting in [now, now + window] that have not been reminded yet."""
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    horizon = now + window
    return [ev for ev in events if not ev.reminder_sent and now <= ev.date <= horizon]


@dataclass(frozen=True)
class ReminderNotice:
    recipient: str
    event_title: str
    event_datetime: datetime


class Notifier(Protocol):
    def send(self, notice: ReminderNotice) -> bool:
        """Deliver the notice. True only when delivery is confirmed."""
        ...


class LoggingNotifier:
    """Default channel: writes the reminder to the log and reports success."""

    def send(self, notice: ReminderNotice) -> bool:
        logger.info(
            "Reminder to %s: %r starts at %s",
            notice.recipient,
            notice.event_title,
            notice.event_datetime.isoformat(),
        )
        return True


@dataclass
class DispatchReport:
    sent: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    skipped: list[int] = field(default_factory=list)


def dispatch_reminders(
    db: Session,
    notifier: Notifier,
    now: Optional[datetime] = None,
    window: Optional[timedelta] = None,
    fallback_recipient: Optional[str] = None,
) -> DispatchReport:
    service = EventService(db)
    now = now or datetime.now(timezone.utc)
    window = window or window_from_env()
    if fallback_recipient is None:
        fallback_recipient = os.getenv("REMINDER_FALLBACK_RECIPIENT") or None

    # plain values: each flag commit expires the loaded rows, and a row
    # deleted by another session cannot be reloaded
    candidates = [
        (ev.id, ev.title, ev.date, ev.organizer)
        for ev in select_reminder_candidates(service.list_events(), now, window)
    ]

    report = DispatchReport()
    for event_id, title, starts_at, organizer in candidates:
        recipient = organizer or fallback_recipient
        if not recipient:
            logger.warning("Event %s has no organizer and no fallback recipient, skipping", event_id)
            report.skipped.append(event_id)
            continue

        notice = ReminderNotice(recipient=recipient, event_title=title, event_datetime=starts_at)
        try:
            delivered = notifier.send(notice)
        except Exception:
            logger.exception("Notification channel failed for event %s", event_id)
            delivered = False
        if not delivered:
            report.failed.append(event_id)
            continue

        try:
            service.update_event(event_id, {"reminder_sent": True})
        except NotFoundError:
            # deleted between selection and flagging
            logger.info("Event %s vanished before its reminder flag was set", event_id)
            continue
        report.sent.append(event_id)

    if report.sent or report.failed or report.skipped:
        logger.info(
            "Reminder run: %d sent, %d failed, %d skipped",
            len(report.sent), len(report.failed), len(report.skipped),
        )
    return report
