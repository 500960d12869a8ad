# backend/services/task_service.py
"""Task submission: persist first, then plan with the AI model and sync to Google Calendar.

Calendar sync is best-effort. Once the task row is committed, failures in the
planning or calendar steps are logged and reported in ``TaskSubmission.degraded``
instead of failing the submission.
"""
import json
from datetime import datetime, timezone
from typing import Any, Optional
import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from errors import PersistenceError, SchedulerError
from models import SideEffectFailure, Task, TaskSubmission
from services import ai_service, calendar_service, credential_store

logger = structlog.get_logger(__name__)

def normalize_tags(tags: Any) -> str:
    """Structured tags are stored as compact JSON, strings verbatim."""
    if tags is None:
        return ""
    if isinstance(tags, str):
        return tags
    return json.dumps(tags, separators=(",", ":"))

def normalize_due_date(due_date: Optional[datetime]) -> Optional[datetime]:
    if due_date is None:
        return None
    # Date-only and naive values are read as UTC
    if due_date.tzinfo is None:
        return due_date.replace(tzinfo=timezone.utc)
    return due_date.astimezone(timezone.utc)

def build_planning_prompt(task: Task) -> str:
    prompt = f'You are an AI scheduling assistant. I have a task: "{task.title}".'
    if task.description:
        prompt += f" Details: {task.description}."
    if task.tags:
        prompt += f" Tags: [{task.tags}]."
    if task.dueDate:
        prompt += f" It is due by {task.dueDate.strftime('%a %b %d %Y')}."
    prompt += (" Divide into actionable steps and suggest a date/time schedule for each"
               " before the deadline. Return a concise list.")
    return prompt

async def _commit(session: AsyncSession, task: Task, action: str) -> None:
    session.add(task)
    try:
        await session.commit()
    except SQLAlchemyError as e:
        await session.rollback()
        logger.error("task_persistence_failed", action=action, error=str(e))
        raise PersistenceError(f"Could not {action} task") from e
    await session.refresh(task)

async def submit_task(session: AsyncSession, owner_identity: Optional[str], title: str,
                      description: Optional[str] = None, tags: Any = None,
                      due_date: Optional[datetime] = None) -> TaskSubmission:
    owner = await credential_store.resolve_owner(session, owner_identity)

    task = Task(
        title=title,
        description=description or "",
        tags=normalize_tags(tags),
        dueDate=normalize_due_date(due_date),
        userGoogleId=owner.googleId,
    )
    await _commit(session, task, "create")
    log = logger.bind(task_id=task.id, google_id=owner.googleId)
    submission = TaskSubmission(task=task)

    try:
        submission.plan = await ai_service.generate_text(build_planning_prompt(task), ai_service.PLANNING)
        log.info("task_plan_generated", plan=submission.plan)
    except SchedulerError as e:
        log.warning("task_planning_failed", error=str(e))
        submission.degraded.append(SideEffectFailure(step="planning", error=str(e)))
        return submission

    try:
        event = await calendar_service.create_event(
            session, owner.googleId, task.title, task.description, start_time=task.dueDate,
        )
    except SchedulerError as e:
        log.warning("task_calendar_sync_failed", error=str(e))
        submission.degraded.append(SideEffectFailure(step="calendar", error=str(e)))
        return submission

    if event and event.get("id"):
        task.calendarEventId = event["id"]
        try:
            await _commit(session, task, "update")
        except PersistenceError as e:
            await session.refresh(task)
            submission.degraded.append(SideEffectFailure(step="calendar", error=str(e)))
            return submission
        log.info("task_calendar_synced", event_id=task.calendarEventId)
    return submission
