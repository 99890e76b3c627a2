# backend/eventhub/export.py
"""iCalendar export of one event and its tasks."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from .models import Event, Task


def _ics_dt(dt: datetime) -> str:
    # dt is stored UTC
    dtu = dt.astimezone(timezone.utc)
    return dtu.strftime("%Y%m%dT%H%M%SZ")


def _ics_text(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
    )


def event_to_ics(ev: Event, tasks: Iterable[Task], now: Optional[datetime] = None) -> str:
    """VEVENT for the event plus one VTODO per task, CRLF line endings."""
    stamp = _ics_dt(now or datetime.now(timezone.utc))
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        "PRODID:-//EventHub//Events//EN",
        "BEGIN:VEVENT",
        f"UID:event-{ev.id}@eventhub",
        f"DTSTAMP:{stamp}",
        f"DTSTART:{_ics_dt(ev.date)}",
        f"SUMMARY:{_ics_text(ev.title)}",
        f"LOCATION:{_ics_text(ev.location)}",
        f"DESCRIPTION:{_ics_text(ev.description)}",
        *([f"ORGANIZER:mailto:{ev.organizer}"] if ev.organizer and "@" in ev.organizer else []),
        "END:VEVENT",
    ]
    for task in tasks:
        lines += [
            "BEGIN:VTODO",
            f"UID:task-{task.id}@eventhub",
            f"DTSTAMP:{stamp}",
            f"SUMMARY:{_ics_text(task.title)}",
            f"RELATED-TO:event-{ev.id}@eventhub",
            f"STATUS:{'COMPLETED' if task.completed else 'NEEDS-ACTION'}",
            "END:VTODO",
        ]
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"
