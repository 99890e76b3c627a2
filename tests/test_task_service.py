"""Tests for TaskService and the event -> task cascade."""
from datetime import datetime, timezone

import pytest

from eventhub.errors import NotFoundError, ValidationError
from eventhub.models import Task
from eventhub.services import EventService, TaskService


@pytest.fixture()
def events(db):
    return EventService(db)


@pytest.fixture()
def tasks(db):
    return TaskService(db)


@pytest.fixture()
def launch(events):
    return events.create_event(
        title="Launch",
        description="Ten characters minimum text",
        date=datetime(2025, 6, 30, 14, 0, tzinfo=timezone.utc),
        location="HQ",
    )


def test_launch_scenario(tasks, launch) -> None:
    task = tasks.create_task(launch.id, "Book room")

    listed = tasks.list_tasks_for_event(launch.id)
    assert [t.id for t in listed] == [task.id]
    assert listed[0].completed is False
    assert listed[0].event_id == launch.id
    assert listed[0].created_at is not None

    assert tasks.toggle_task(task.id).completed is True
    assert tasks.list_tasks_for_event(launch.id)[0].completed is True


def test_toggle_flips_back_and_forth(tasks, launch) -> None:
    task = tasks.create_task(launch.id, "Book room")
    assert tasks.toggle_task(task.id).completed is True
    assert tasks.toggle_task(task.id).completed is False


def test_set_completed_is_explicit(tasks, launch) -> None:
    task = tasks.create_task(launch.id, "Book room")
    assert tasks.set_task_completed(task.id, True).completed is True
    assert tasks.set_task_completed(task.id, True).completed is True


def test_create_task_for_unknown_event(tasks) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        tasks.create_task(777, "Book room")
    assert excinfo.value.entity == "Event"


@pytest.mark.parametrize("title", ["", "   "])
def test_create_task_requires_title(tasks, launch, title) -> None:
    with pytest.raises(ValidationError) as excinfo:
        tasks.create_task(launch.id, title)
    assert excinfo.value.field == "title"


def test_create_task_rejects_over_long_title(tasks, launch) -> None:
    with pytest.raises(ValidationError) as excinfo:
        tasks.create_task(launch.id, "t" * 201)
    assert excinfo.value.errors == [("title", "must be at most 200 characters")]
    assert tasks.list_tasks_for_event(launch.id) == []


def test_list_tasks_is_scoped_and_ordered(tasks, events, launch) -> None:
    other = events.create_event(
        title="Other",
        description="Another event entirely",
        date=datetime(2025, 7, 1, tzinfo=timezone.utc),
        location="Annex",
    )
    first = tasks.create_task(launch.id, "Book room")
    tasks.create_task(other.id, "Order food")
    second = tasks.create_task(launch.id, "Send invites")

    assert [t.id for t in tasks.list_tasks_for_event(launch.id)] == [first.id, second.id]
    assert tasks.list_tasks_for_event(9999) == []


@pytest.mark.parametrize("op", ["toggle", "delete"])
def test_unknown_task_raises_not_found(tasks, op) -> None:
    with pytest.raises(NotFoundError) as excinfo:
        getattr(tasks, f"{op}_task")(31337)
    assert excinfo.value.entity == "Task"


def test_delete_task(tasks, launch) -> None:
    task = tasks.create_task(launch.id, "Book room")
    tasks.delete_task(task.id)
    assert tasks.list_tasks_for_event(launch.id) == []
    with pytest.raises(NotFoundError):
        tasks.delete_task(task.id)


def test_deleting_event_cascades_to_tasks(db, tasks, events, launch) -> None:
    tasks.create_task(launch.id, "Book room")
    tasks.create_task(launch.id, "Send invites")

    events.delete_event(launch.id)

    assert tasks.list_tasks_for_event(launch.id) == []
    assert db.query(Task).count() == 0


def test_task_progress(tasks, launch) -> None:
    assert tasks.task_progress(launch.id).percent == 0

    first = tasks.create_task(launch.id, "Book room")
    tasks.create_task(launch.id, "Send invites")
    tasks.create_task(launch.id, "Print badges")
    tasks.toggle_task(first.id)

    progress = tasks.task_progress(launch.id)
    assert (progress.total, progress.completed, progress.percent) == (3, 1, 33)


def test_task_progress_unknown_event(tasks) -> None:
    with pytest.raises(NotFoundError):
        tasks.task_progress(404)
