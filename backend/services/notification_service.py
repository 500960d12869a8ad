# backend/services/notification_service.py
import asyncio
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import List
import httpx
import structlog

from config import Settings, get_settings
from models import NotificationOutcome

logger = structlog.get_logger(__name__)

SENDER_NAME = "AI Scheduler"
SUMMARY_SUBJECT = "Daily Schedule Summary"
WEBHOOK_TIMEOUT = 10.0

async def send_slack(webhook_url: str, text: str) -> None:
    async with httpx.AsyncClient(timeout=WEBHOOK_TIMEOUT) as client:
        response = await client.post(webhook_url, json={"text": text})
        response.raise_for_status()

def _smtp_send(settings: Settings, subject: str, body: str) -> None:
    """Blocking SMTP send, run via ``asyncio.to_thread``."""
    to = settings.EMAIL_TO or settings.EMAIL_USER
    msg = MIMEText(body)
    msg['Subject'] = subject
    msg['From'] = formataddr((SENDER_NAME, settings.EMAIL_USER))
    msg['To'] = to

    server = smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT)
    try:
        server.starttls()
        server.login(settings.EMAIL_USER, settings.EMAIL_PASS)
        server.sendmail(settings.EMAIL_USER, [to], msg.as_string())
    finally:
        server.quit()

async def send_email(settings: Settings, subject: str, body: str) -> None:
    await asyncio.to_thread(_smtp_send, settings, subject, body)

async def fan_out(summary: str) -> List[NotificationOutcome]:
    """Delivers the summary to each configured channel. Failures are reported, never raised."""
    settings = get_settings()
    outcomes: List[NotificationOutcome] = []

    if settings.SLACK_WEBHOOK_URL:
        try:
            await send_slack(settings.SLACK_WEBHOOK_URL, summary)
            outcomes.append(NotificationOutcome(channel="slack", delivered=True))
        except httpx.HTTPError as e:
            logger.error("slack_notification_failed", error=str(e))
            outcomes.append(NotificationOutcome(channel="slack", delivered=False, error=str(e)))

    if settings.email_configured:
        try:
            await send_email(settings, SUMMARY_SUBJECT, summary)
            outcomes.append(NotificationOutcome(channel="email", delivered=True))
        except (smtplib.SMTPException, OSError) as e:
            logger.error("email_notification_failed", error=str(e))
            outcomes.append(NotificationOutcome(channel="email", delivered=False, error=str(e)))

    if outcomes:
        logger.info("summary_notifications_sent", channels=[o.channel for o in outcomes if o.delivered])
    return outcomes
