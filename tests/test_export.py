"""Tests for the iCalendar export."""
from datetime import datetime, timezone
from types import SimpleNamespace

from eventhub.export import event_to_ics

STAMP = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _event(**overrides):
    fields = dict(
        id=7,
        title="Launch; phase 1",
        description="Line one\nLine two, with comma",
        date=datetime(2025, 6, 30, 14, 0, tzinfo=timezone.utc),
        location="HQ",
        organizer="pm@example.com",
    )
    fields.update(overrides)
    return SimpleNamespace(**fields)


def test_event_block_and_escaping() -> None:
    ics = event_to_ics(_event(), [], now=STAMP)
    lines = ics.split("\r\n")

    assert lines[0] == "BEGIN:VCALENDAR"
    assert ics.endswith("END:VCALENDAR\r\n")
    assert "DTSTART:20250630T140000Z" in lines
    assert "DTSTAMP:20250101T000000Z" in lines
    assert "SUMMARY:Launch\\; phase 1" in lines
    assert "DESCRIPTION:Line one\\nLine two\\, with comma" in lines
    assert "ORGANIZER:mailto:pm@example.com" in lines
    assert "BEGIN:VTODO" not in lines


def test_tasks_become_todos() -> None:
    tasks = [
        SimpleNamespace(id=1, title="Book room", completed=True),
        SimpleNamespace(id=2, title="Send invites", completed=False),
    ]
    lines = event_to_ics(_event(organizer=None), tasks, now=STAMP).split("\r\n")

    assert lines.count("BEGIN:VTODO") == 2
    assert "STATUS:COMPLETED" in lines
    assert "STATUS:NEEDS-ACTION" in lines
    assert "RELATED-TO:event-7@eventhub" in lines
    assert not any(line.startswith("ORGANIZER") for line in lines)
