# backend/models.py
from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime, timezone
from sqlmodel import Field, SQLModel

def utcnow() -> datetime:
    return datetime.now(timezone.utc)

class User(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    googleId: str = Field(unique=True, index=True)
    email: Optional[str] = Field(default=None)
    displayName: Optional[str] = Field(default=None)
    oauth_refresh_token: Optional[str] = Field(default=None, max_length=2048)

class TaskBase(SQLModel):
    title: str
    description: str = ""
    tags: str = ""
    dueDate: Optional[datetime] = None
    calendarEventId: Optional[str] = None

class Task(TaskBase, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    createdAt: datetime = Field(default_factory=utcnow, index=True)
    userGoogleId: str = Field(foreign_key="user.googleId", index=True)

class TaskRead(TaskBase):
    id: int
    createdAt: datetime
    userGoogleId: str

# --- Orchestration results (not persisted) ---
class SideEffectFailure(SQLModel):
    step: str
    error: str

class NotificationOutcome(SQLModel):
    channel: str
    delivered: bool
    error: Optional[str] = None

class TaskCreated(TaskRead):
    degraded: List[SideEffectFailure] = []

@dataclass
class TaskSubmission:
    task: Task
    plan: Optional[str] = None
    degraded: List[SideEffectFailure] = field(default_factory=list)

    @property
    def calendar_synced(self) -> bool:
        return self.task.calendarEventId is not None

class DailySummary(SQLModel):
    summary: str
    degraded: List[SideEffectFailure] = []
    notifications: List[NotificationOutcome] = []
