# backend/services/calendar_service.py
import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo
import httplib2
import structlog
from google.auth.exceptions import GoogleAuthError
from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from errors import CalendarGatewayError
from models import User
from services import credential_store

logger = structlog.get_logger(__name__)

TOKEN_URI = 'https://oauth2.googleapis.com/token'
SCOPES = ['https://www.googleapis.com/auth/calendar']
DEFAULT_DURATION = timedelta(hours=1)
GATEWAY_ERRORS = (HttpError, GoogleAuthError, httplib2.HttpLib2Error, OSError)

def get_calendar_service(user: User):
    """Builds a Calendar API client scoped to one user's stored refresh token."""
    settings = get_settings()
    creds = Credentials(
        token=None,
        refresh_token=user.oauth_refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.GOOGLE_CLIENT_ID,
        client_secret=settings.GOOGLE_CLIENT_SECRET,
        scopes=SCOPES,
    )
    try:
        return build('calendar', 'v3', credentials=creds, static_discovery=False)
    except GATEWAY_ERRORS as error:
        raise CalendarGatewayError(f"Could not build the Calendar service: {error}") from error

async def _execute(request, action: str):
    try:
        return await asyncio.to_thread(request.execute)
    except GATEWAY_ERRORS as error:
        logger.error("calendar_request_failed", action=action, error=str(error))
        raise CalendarGatewayError(f"Calendar {action} failed: {error}") from error

def _as_utc(value: datetime) -> datetime:
    # Naive datetimes are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def day_window(now: datetime, tz: ZoneInfo):
    """[start of the local day, start of the next local day) containing ``now``."""
    local_day = now.astimezone(tz).date()
    start = datetime.combine(local_day, time.min, tzinfo=tz)
    end = datetime.combine(local_day + timedelta(days=1), time.min, tzinfo=tz)
    return start, end

async def create_event(session: AsyncSession, owner_identity: str, title: str, description: str = "",
                       start_time: Optional[datetime] = None, duration: timedelta = DEFAULT_DURATION) -> dict:
    """Creates a timed event on the owner's primary calendar and returns the event resource."""
    user = await credential_store.resolve_credentialed_user(session, owner_identity)
    start = _as_utc(start_time) if start_time else datetime.now(timezone.utc)
    end = start + duration
    event = {
        'summary': title,
        'description': description or '',
        'start': {'dateTime': start.isoformat(), 'timeZone': 'UTC'},
        'end': {'dateTime': end.isoformat(), 'timeZone': 'UTC'},
    }
    service = await asyncio.to_thread(get_calendar_service, user)
    created_event = await _execute(service.events().insert(calendarId='primary', body=event), "insert")
    logger.info("calendar_event_created", google_id=user.googleId, event_id=created_event.get('id'),
                link=created_event.get('htmlLink'))
    return created_event

async def list_todays_events(session: AsyncSession, owner_identity: Optional[str] = None,
                             now: Optional[datetime] = None) -> List[dict]:
    user = await credential_store.resolve_credentialed_user(session, owner_identity)
    tz = ZoneInfo(get_settings().TIMEZONE)
    start, end = day_window(now or datetime.now(timezone.utc), tz)
    service = await asyncio.to_thread(get_calendar_service, user)
    response = await _execute(service.events().list(
        calendarId='primary',
        timeMin=start.isoformat(),
        timeMax=end.isoformat(),
        singleEvents=True,
        orderBy='startTime',
    ), "list")
    items = response.get('items', []) or []
    logger.info("calendar_events_listed", google_id=user.googleId, count=len(items))
    return items
