from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
import logging
import os

from fastapi import FastAPI, Depends, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

# ── local modules ───────────────────────────────────────────────────
from .db import get_db, init_db
from .errors import DependencyError, NotFoundError, ValidationError
from .export import event_to_ics
from .reminders import LoggingNotifier, Notifier, dispatch_reminders, select_reminder_candidates, window_from_env
from .scheduler import start_scheduler
from .schemas import (
    DispatchReportOut,
    EventIn,
    EventOut,
    EventPatch,
    ProgressOut,
    TaskIn,
    TaskOut,
    TaskPatch,
)
from .services import EventService, TaskService
# ────────────────────────────────────────────────────────────────────

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
)
logger = logging.getLogger(__name__)

# ───────────────────────── DB migrations (optional) ─────────────────
from alembic import command
from alembic.config import Config

def run_migrations() -> None:
    app_dir = Path(__file__).resolve().parent
    cfg = Config(str(app_dir / "alembic.ini"))
    cfg.set_main_option("script_location", str(app_dir / "migrations"))
    if "DATABASE_URL" in os.environ:
        cfg.set_main_option("sqlalchemy.url", os.environ["DATABASE_URL"])
    logger.info("Running database migrations to head")
    command.upgrade(cfg, "head")

@asynccontextmanager
async def lifespan(app: FastAPI):
    if os.getenv("AUTO_MIGRATE") == "1":
        run_migrations()
    else:
        init_db()
    logger.info("Reminder window is %s", window_from_env())
    scheduler = start_scheduler()
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)

app = FastAPI(title="EventHub API", lifespan=lifespan)

# ───────────────────────── CORS ─────────────────────────────────────
def _clean(s: str | None) -> str | None:
    return s.strip().rstrip("/") if s and s.strip() else None

FRONTEND_ORIGIN = _clean(os.getenv("FRONTEND_ORIGIN")) or "http://localhost:5173"
_raw_extra = os.getenv("EXTRA_CORS_ORIGINS", "")
EXTRA = [x for x in (_clean(p) for p in _raw_extra.split(",")) if x]
allow_origins = ["*"] if "*" in EXTRA else [o for o in {FRONTEND_ORIGIN, *EXTRA} if o]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
    max_age=86400,
)

# ───────────────────────── Error mapping ────────────────────────────
@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=422, content={"detail": exc.as_detail()})

@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})

@app.exception_handler(DependencyError)
async def dependency_error_handler(request: Request, exc: DependencyError):
    return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})

# ───────────────────────── Dependencies ─────────────────────────────
def get_event_service(db: Session = Depends(get_db)) -> EventService:
    return EventService(db)

def get_task_service(db: Session = Depends(get_db)) -> TaskService:
    return TaskService(db)

def get_notifier() -> Notifier:
    return LoggingNotifier()

# ───────────────────────── Lifecycle & health ───────────────────────
@app.get("/health")
def health_check():
    return {"status": "ok"}

@app.get("/")
def read_root():
    return {"message": "EventHub backend is running."}

@app.get("/dbcheck")
def dbcheck(db: Session = Depends(get_db)):
    db.execute(text("SELECT 1"))
    return {"db": "ok"}

# ───────────────────────── Event CRUD ───────────────────────────────
@app.get("/api/events", response_model=list[EventOut])
def list_events(
    upcoming: bool = Query(default=False),
    sort: str = Query(default="created"),
    events: EventService = Depends(get_event_service),
):
    return events.list_events(upcoming_only=upcoming, sort=sort)

@app.post("/api/events", response_model=EventOut, status_code=status.HTTP_201_CREATED)
def create_event(payload: EventIn, events: EventService = Depends(get_event_service)):
    return events.create_event(
        title=payload.title,
        description=payload.description,
        date=payload.date,
        location=payload.location,
        organizer=payload.organizer,
    )

@app.get("/api/events/{event_id}", response_model=EventOut)
def get_event(event_id: int, events: EventService = Depends(get_event_service)):
    return events.get_event(event_id)

@app.put("/api/events/{event_id}", response_model=EventOut)
def replace_event(event_id: int, payload: EventIn, events: EventService = Depends(get_event_service)):
    return events.replace_event(event_id, payload)

@app.patch("/api/events/{event_id}", response_model=EventOut)
def patch_event(event_id: int, payload: EventPatch, events: EventService = Depends(get_event_service)):
    return events.update_event(event_id, payload)

@app.delete("/api/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(event_id: int, events: EventService = Depends(get_event_service)):
    events.delete_event(event_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

@app.get("/api/events/{event_id}/progress", response_model=ProgressOut)
def event_progress(event_id: int, tasks: TaskService = Depends(get_task_service)):
    progress = tasks.task_progress(event_id)
    return ProgressOut(
        event_id=progress.event_id,
        total=progress.total,
        completed=progress.completed,
        percent=progress.percent,
    )

# ───────────────────────── ICS export ───────────────────────────────
@app.get("/api/events/{event_id}/export.ics")
def export_event_ics(
    event_id: int,
    events: EventService = Depends(get_event_service),
    tasks: TaskService = Depends(get_task_service),
):
    ev = events.get_event(event_id)
    ics = event_to_ics(ev, tasks.list_tasks_for_event(event_id))
    return Response(
        content=ics,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="event-{event_id}.ics"'},
    )

# ───────────────────────── Task CRUD ────────────────────────────────
@app.get("/api/tasks/{event_id}", response_model=list[TaskOut])
def list_tasks(event_id: int, tasks: TaskService = Depends(get_task_service)):
    return tasks.list_tasks_for_event(event_id)

@app.post("/api/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
def create_task(payload: TaskIn, tasks: TaskService = Depends(get_task_service)):
    return tasks.create_task(payload.event_id, payload.title)

@app.patch("/api/tasks/{task_id}", response_model=TaskOut)
def patch_task(task_id: int, payload: TaskPatch | None = None, tasks: TaskService = Depends(get_task_service)):
    if payload is None or payload.completed is None:
        return tasks.toggle_task(task_id)
    return tasks.set_task_completed(task_id, payload.completed)

@app.delete("/api/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(task_id: int, tasks: TaskService = Depends(get_task_service)):
    tasks.delete_task(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# ───────────────────────── Reminders ────────────────────────────────
@app.get("/api/reminders", response_model=list[EventOut])
def reminder_candidates(events: EventService = Depends(get_event_service)):
    return select_reminder_candidates(events.list_events(), datetime.now(timezone.utc), window_from_env())

@app.post("/api/reminders/dispatch", response_model=DispatchReportOut)
def run_reminders(db: Session = Depends(get_db), notifier: Notifier = Depends(get_notifier)):
    report = dispatch_reminders(db, notifier)
    return DispatchReportOut(sent=report.sent, failed=report.failed, skipped=report.skipped)
