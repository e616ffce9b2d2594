"""FastAPI web application for FocusFlow."""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, List, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from focusflow.config import Settings, load_settings
from focusflow.database.change_feed import ChangeFeed
from focusflow.database.database import SessionLocal, get_db, init_db
from focusflow.database.repository import TaskRepository
from focusflow.engine.capture import TaskCapture
from focusflow.engine.inference import LanguageModelParser, get_default_parser, get_suggestion
from focusflow.engine.ranking import SortPolicy, TaskView, filter_by_view, select_current, sort_key
from focusflow.engine.transitions import (
    RecheckAnswer,
    complete,
    decline_with_reflection,
    defer,
    request_reflection,
    resolve_priority_recheck,
    update_priority_deadline,
)
from focusflow.errors import MissingTitle, ReflectionTooShort
from focusflow.models.constants import MAX_PRIORITY, MIN_PRIORITY
from focusflow.models.task import Task

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


# Initialize FastAPI app
app = FastAPI(
    title="FocusFlow API",
    description="Dump a sentence, get a task; always know the one thing to do next",
    version="0.1.0",
    lifespan=lifespan,
)

settings = load_settings()

# Process-wide change feed shared by every repository the app creates
change_feed = ChangeFeed()


# Request/response models
class CaptureRequest(BaseModel):
    """Request for task capture."""
    text: str


class ReflectionRequest(BaseModel):
    text: str


class PriorityRecheckRequest(BaseModel):
    answer: RecheckAnswer


class PriorityDeadlineRequest(BaseModel):
    """Request for the priority and deadline update."""
    priority: int = Field(..., ge=MIN_PRIORITY, le=MAX_PRIORITY)
    deadline: Optional[str] = Field(None, description="Natural-language deadline, e.g. 'tomorrow'")


class CurrentTaskResponse(BaseModel):
    task: Optional[Task]


class SuggestionResponse(BaseModel):
    suggestion: str


# Dependencies
def get_settings() -> Settings:
    return settings


def get_session_factory() -> Callable[[], Session]:
    """Session factory for work that outlives the request (background enrichment)."""
    return SessionLocal


def get_parser(settings: Settings = Depends(get_settings)) -> Optional[LanguageModelParser]:
    """External parser, or None when the language model is not configured."""
    return get_default_parser(settings.openai_model)


def get_repository(db: Session = Depends(get_db)) -> TaskRepository:
    return TaskRepository(db, change_feed)


def _get_task_or_404(repository: TaskRepository, task_id: str) -> Task:
    task = repository.get(task_id)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    return task


def enrich_task(
    session_factory: Callable[[], Session],
    parser: Optional[LanguageModelParser],
    settings: Settings,
    task_id: str,
    raw_text: str,
) -> None:
    """Background job: normalize a captured task with its own session.

    Plain function so Starlette runs it in the threadpool; the blocking
    session calls stay off the event loop.
    """
    db = session_factory()
    try:
        capture = TaskCapture(
            TaskRepository(db, change_feed),
            parser=parser,
            timeout_sec=settings.parse_timeout_sec,
            rule_fallback_on_failure=settings.rule_fallback_on_parse_failure,
            priority_scale=settings.priority_scale,
        )
        outcome = asyncio.run(capture.enrich(task_id, raw_text))
        logger.debug(f"Enrichment of task {task_id}: {outcome.value}")
    finally:
        db.close()


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/tasks", response_model=Task, status_code=201)
def create_task(
    request: CaptureRequest,
    background_tasks: BackgroundTasks,
    repository: TaskRepository = Depends(get_repository),
    session_factory: Callable[[], Session] = Depends(get_session_factory),
    parser: Optional[LanguageModelParser] = Depends(get_parser),
    settings: Settings = Depends(get_settings),
):
    """Capture free text as a pending task; normalization runs in the background."""
    capture = TaskCapture(repository, priority_scale=settings.priority_scale)
    try:
        task = capture.capture(request.text)
    except MissingTitle as e:
        raise HTTPException(status_code=400, detail=str(e))

    background_tasks.add_task(enrich_task, session_factory, parser, settings, task.id, request.text)
    return task


@app.get("/tasks", response_model=List[Task])
def list_tasks(
    view: TaskView = TaskView.ACTIVE,
    policy: Optional[SortPolicy] = None,
    repository: TaskRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    """List tasks under a view, most pressing first."""
    now = datetime.utcnow()
    policy = policy or settings.sort_policy
    tasks = filter_by_view(repository.get_all(), view)
    return sorted(tasks, key=lambda t: sort_key(t, policy, now, settings.priority_scale))


@app.get("/tasks/current", response_model=CurrentTaskResponse)
def current_task(
    policy: Optional[SortPolicy] = None,
    repository: TaskRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    """The single task to show the user right now."""
    task = select_current(
        repository.get_all(),
        policy or settings.sort_policy,
        scale=settings.priority_scale,
    )
    return CurrentTaskResponse(task=task)


@app.get("/tasks/{task_id}", response_model=Task)
def get_task(task_id: str, repository: TaskRepository = Depends(get_repository)):
    return _get_task_or_404(repository, task_id)


@app.delete("/tasks/{task_id}", status_code=204)
def delete_task(task_id: str, repository: TaskRepository = Depends(get_repository)):
    if not repository.delete(task_id):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")


@app.post("/tasks/{task_id}/complete", response_model=Task)
def complete_task(task_id: str, repository: TaskRepository = Depends(get_repository)):
    task = _get_task_or_404(repository, task_id)
    return repository.update(complete(task))


@app.post("/tasks/{task_id}/defer", response_model=Task)
def defer_task(task_id: str, repository: TaskRepository = Depends(get_repository)):
    task = _get_task_or_404(repository, task_id)
    return repository.update(defer(task))


@app.post("/tasks/{task_id}/reflection/request", response_model=Task)
def request_task_reflection(task_id: str, repository: TaskRepository = Depends(get_repository)):
    """User does not want to do the task; ask them why."""
    task = _get_task_or_404(repository, task_id)
    return repository.update(request_reflection(task))


@app.post("/tasks/{task_id}/reflection", response_model=Task)
def submit_reflection(
    task_id: str,
    request: ReflectionRequest,
    repository: TaskRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    """Store the reflection; the task then awaits a priority recheck."""
    task = _get_task_or_404(repository, task_id)
    try:
        updated = decline_with_reflection(task, request.text, gate=settings.reflection_gate)
    except ReflectionTooShort as e:
        raise HTTPException(status_code=422, detail=str(e))
    return repository.update(updated)


@app.post("/tasks/{task_id}/priority-recheck", response_model=Task)
def priority_recheck(
    task_id: str,
    request: PriorityRecheckRequest,
    repository: TaskRepository = Depends(get_repository),
):
    task = _get_task_or_404(repository, task_id)
    return repository.update(resolve_priority_recheck(task, request.answer.value))


@app.patch("/tasks/{task_id}/priority-deadline", response_model=Task)
def set_priority_deadline(
    task_id: str,
    request: PriorityDeadlineRequest,
    repository: TaskRepository = Depends(get_repository),
):
    task = _get_task_or_404(repository, task_id)
    return repository.update(update_priority_deadline(task, request.priority, request.deadline))


@app.post("/tasks/{task_id}/suggestion", response_model=SuggestionResponse)
def task_suggestion(
    task_id: str,
    repository: TaskRepository = Depends(get_repository),
    settings: Settings = Depends(get_settings),
):
    """Motivational suggestion for a task the user is avoiding; never fails."""
    task = _get_task_or_404(repository, task_id)
    return SuggestionResponse(suggestion=get_suggestion(task.title, task.description, model=settings.openai_model))
