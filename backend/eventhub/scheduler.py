# backend/eventhub/scheduler.py
"""Optional background job that runs a reminder dispatch pass on an interval."""

from __future__ import annotations

import logging
import os
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from sqlalchemy.orm import sessionmaker

from .db import SessionLocal, session_scope
from .reminders import LoggingNotifier, Notifier, dispatch_reminders

logger = logging.getLogger(__name__)

JOB_ID = "reminder-dispatch"


def run_reminder_pass(session_factory: sessionmaker = SessionLocal, notifier: Optional[Notifier] = None) -> None:
    try:
        with session_scope(session_factory) as db:
            dispatch_reminders(db, notifier or LoggingNotifier())
    except Exception:
        # keep the scheduler alive; the next tick retries
        logger.exception("Reminder pass failed")


def start_scheduler(
    minutes: Optional[float] = None,
    session_factory: sessionmaker = SessionLocal,
    notifier: Optional[Notifier] = None,
) -> Optional[BackgroundScheduler]:
    """Start the interval job; returns None when REMINDER_INTERVAL_MINUTES is 0 or unset."""
    if minutes is None:
        raw = os.getenv("REMINDER_INTERVAL_MINUTES", "").strip() or "0"
        try:
            minutes = float(raw)
        except ValueError:
            logger.warning("Ignoring REMINDER_INTERVAL_MINUTES=%r, reminder job disabled", raw)
            return None
    if minutes <= 0:
        return None

    scheduler = BackgroundScheduler(timezone="UTC")
    scheduler.add_job(
        run_reminder_pass,
        "interval",
        minutes=minutes,
        id=JOB_ID,
        kwargs={"session_factory": session_factory, "notifier": notifier},
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    logger.info("Reminder job scheduled every %s minute(s)", minutes)
    return scheduler
