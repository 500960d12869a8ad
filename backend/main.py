# backend/main.py
import secrets
from datetime import datetime
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional, Union
import structlog
from fastapi import FastAPI, Depends, Request, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select
from starlette.middleware.sessions import SessionMiddleware
from starlette.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from config import Settings, get_settings
from database import create_db_and_tables, get_session
from errors import AuthResolutionError, PersistenceError
from logging_config import configure_logging
from models import DailySummary, Task, TaskCreated, TaskRead
from auth import build_authorization_link, complete_authorization, get_acting_identity
from services import notification_service, summary_service, task_service

settings = get_settings()
configure_logging(settings.LOG_LEVEL)
logger = structlog.get_logger(__name__)

def resolve_session_secret(settings: Settings) -> str:
    if settings.SESSION_SECRET:
        return settings.SESSION_SECRET
    # OAuth state in the session cookie will not survive a restart or span workers
    structlog.get_logger(__name__).warning("session_secret_generated", hint="set SESSION_SECRET")
    return secrets.token_urlsafe(32)

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("startup", database=settings.DATABASE_URL.split("://", 1)[0])
    await create_db_and_tables()
    logger.info("startup_complete", port=settings.PORT)
    yield

app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware, allow_origins=[settings.CLIENT_URL], allow_credentials=settings.CLIENT_URL != "*",
    allow_methods=["*"], allow_headers=["*"],
)
app.add_middleware(SessionMiddleware, secret_key=resolve_session_secret(settings))

# --- Pydantic Models ---
class TaskCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    tags: Optional[Union[List[Any], Dict[str, Any], str]] = None
    dueDate: Optional[datetime] = None

# --- OAuth Routes ---
@app.get("/auth/google", response_class=HTMLResponse)
async def login(request: Request):
    if not get_settings().oauth_configured:
        raise HTTPException(status_code=500, detail="Google OAuth credentials are not configured.")
    url = await build_authorization_link(request)
    return f'<a href="{url}">Authenticate with Google</a>'

@app.get("/auth/google/callback", name="auth_callback", response_class=PlainTextResponse)
async def auth_callback(request: Request, session: AsyncSession = Depends(get_session)):
    if not request.query_params.get("code"):
        return PlainTextResponse("Missing code", status_code=400)
    try:
        await complete_authorization(request, session)
    except Exception as e:
        # OAuthError, httpx and database errors all surface here
        logger.error("oauth_callback_failed", error=repr(e))
        return PlainTextResponse("Authentication failed", status_code=500)
    return "✅ Authentication complete. You can close this window."

# --- Task Routes ---
@app.post("/api/tasks", status_code=201, response_model=TaskCreated)
async def create_task(
    task_request: TaskCreateRequest,
    google_id: Optional[str] = Depends(get_acting_identity),
    session: AsyncSession = Depends(get_session),
):
    try:
        submission = await task_service.submit_task(
            session, google_id, task_request.title, description=task_request.description,
            tags=task_request.tags, due_date=task_request.dueDate,
        )
    except AuthResolutionError as e:
        raise HTTPException(status_code=401, detail=str(e))
    except PersistenceError as e:
        logger.error("create_task_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
    return TaskCreated(**submission.task.model_dump(), degraded=submission.degraded)

@app.get("/api/tasks", response_model=List[TaskRead])
async def list_tasks(session: AsyncSession = Depends(get_session)):
    try:
        result = await session.execute(select(Task).order_by(Task.createdAt, Task.id))
    except SQLAlchemyError as e:
        logger.error("list_tasks_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Internal server error")
    return result.scalars().all()

# --- Summary & Notifications ---
@app.get("/api/summary", response_model=DailySummary)
async def get_summary(
    google_id: Optional[str] = Depends(get_acting_identity),
    session: AsyncSession = Depends(get_session),
):
    daily = await summary_service.build_daily_summary(session, google_id)
    daily.notifications = await notification_service.fan_out(daily.summary)
    return daily

@app.get("/")
async def read_root():
    return {"message": "AI Scheduler backend is running!"}
