from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy.exc import OperationalError

from errors import AIGatewayError, CalendarGatewayError, CredentialError
from services import ai_service, calendar_service, summary_service

EVENTS = [
    {"summary": "Standup", "start": {"dateTime": "2025-01-10T14:00:00Z"}},
    {"summary": "Company offsite", "start": {"date": "2025-01-10"}},
]


@pytest.fixture
def summarizer(monkeypatch):
    mock = AsyncMock(return_value="A light day ahead!")
    monkeypatch.setattr(ai_service, "generate_text", mock)
    return mock


@pytest.fixture
def todays_events(monkeypatch):
    mock = AsyncMock(return_value=[])
    monkeypatch.setattr(calendar_service, "list_todays_events", mock)
    return mock


def test_prompt_for_empty_day():
    assert summary_service.build_summary_prompt([], ZoneInfo("UTC")) == summary_service.NOTHING_SCHEDULED_PROMPT


def test_prompt_enumerates_events_in_local_time():
    prompt = summary_service.build_summary_prompt(EVENTS, ZoneInfo("America/New_York"))

    assert prompt == (
        "Today's schedule:\n"
        "- 09:00 AM Standup\n"
        "- All day Company offsite\n"
        "\nProvide a brief summary in a friendly tone."
    )


async def test_summary_for_empty_day_uses_nothing_scheduled_prompt(session, summarizer, todays_events):
    daily = await summary_service.build_daily_summary(session)

    assert daily.summary == "A light day ahead!"
    assert daily.degraded == []
    summarizer.assert_awaited_once_with(summary_service.NOTHING_SCHEDULED_PROMPT, ai_service.SUMMARY)


async def test_summary_passes_identity_to_calendar(session, summarizer, todays_events):
    todays_events.return_value = EVENTS

    await summary_service.build_daily_summary(session, "g-123")

    todays_events.assert_awaited_once_with(session, "g-123")
    assert summarizer.await_args.args[0].startswith("Today's schedule:\n")


@pytest.mark.parametrize("error", [CalendarGatewayError("down"), CredentialError("no token")])
async def test_calendar_failure_returns_fallback(session, summarizer, todays_events, error):
    todays_events.side_effect = error

    daily = await summary_service.build_daily_summary(session)

    assert daily.summary == summary_service.FALLBACK_SUMMARY
    assert daily.degraded[0].step == "events"
    summarizer.assert_not_awaited()


async def test_ai_failure_returns_fallback(session, summarizer, todays_events):
    summarizer.side_effect = AIGatewayError("timeout")

    daily = await summary_service.build_daily_summary(session)

    assert daily.summary == summary_service.FALLBACK_SUMMARY
    assert daily.degraded[0].step == "summary"


async def test_credential_lookup_failure_returns_fallback(session, summarizer):
    session.execute = AsyncMock(side_effect=OperationalError("SELECT", {}, Exception("database is locked")))

    daily = await summary_service.build_daily_summary(session, "g-123")

    assert daily.summary == summary_service.FALLBACK_SUMMARY
    assert daily.degraded[0].step == "events"
    summarizer.assert_not_awaited()
