# backend/services/summary_service.py
from datetime import datetime
from typing import List, Optional
from zoneinfo import ZoneInfo
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from config import get_settings
from errors import SchedulerError
from models import DailySummary, SideEffectFailure
from services import ai_service, calendar_service

logger = structlog.get_logger(__name__)

FALLBACK_SUMMARY = "Unable to generate summary."
NOTHING_SCHEDULED_PROMPT = "There are no scheduled events or tasks for today."
ALL_DAY = "All day"

def format_event_time(event: dict, tz: ZoneInfo) -> str:
    start = event.get('start') or {}
    if start.get('dateTime'):
        return datetime.fromisoformat(start['dateTime']).astimezone(tz).strftime('%I:%M %p')
    return ALL_DAY

def build_summary_prompt(events: List[dict], tz: ZoneInfo) -> str:
    if not events:
        return NOTHING_SCHEDULED_PROMPT
    prompt = "Today's schedule:\n"
    for event in events:
        prompt += f"- {format_event_time(event, tz)} {event.get('summary', '(untitled)')}\n"
    prompt += "\nProvide a brief summary in a friendly tone."
    return prompt

async def build_daily_summary(session: AsyncSession, owner_identity: Optional[str] = None) -> DailySummary:
    try:
        events = await calendar_service.list_todays_events(session, owner_identity)
    except SchedulerError as e:
        logger.warning("summary_events_unavailable", error=str(e))
        return DailySummary(summary=FALLBACK_SUMMARY, degraded=[SideEffectFailure(step="events", error=str(e))])

    prompt = build_summary_prompt(events, ZoneInfo(get_settings().TIMEZONE))
    try:
        summary = await ai_service.generate_text(prompt, ai_service.SUMMARY)
    except SchedulerError as e:
        logger.warning("summary_generation_failed", error=str(e))
        return DailySummary(summary=FALLBACK_SUMMARY, degraded=[SideEffectFailure(step="summary", error=str(e))])

    logger.info("daily_summary_generated", event_count=len(events))
    return DailySummary(summary=summary)
