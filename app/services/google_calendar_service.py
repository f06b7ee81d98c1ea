"""
Google Calendar Service
Mirrors scheduled jobs as all-day events on the shop's production calendar

Sync is best-effort: failures are logged and recorded on the job as
calendar_status="error", never raised to the caller, and never undo the
schedule that was already saved.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

import httpx
from sqlalchemy.orm import Session

from ..config import (
    CALENDAR_SYNC_ENABLED,
    CALENDAR_TIMEZONE,
    GOOGLE_CALENDAR_ID,
    GOOGLE_CLIENT_ID,
    GOOGLE_CLIENT_SECRET,
    GOOGLE_REFRESH_TOKEN,
)
from ..database import SessionLocal
from ..models import Job

logger = logging.getLogger(__name__)

GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_CALENDAR_API = "https://www.googleapis.com/calendar/v3"

RECURRENCE_FREQUENCIES = {
    "daily": "DAILY",
    "weekly": "WEEKLY",
    "monthly": "MONTHLY",
    "yearly": "YEARLY",
}


def build_event_payload(job: Job, timezone: str = CALENDAR_TIMEZONE) -> dict[str, Any]:
    """
    All-day event covering the job's range
    Google treats the end date of an all-day event as exclusive, hence the extra day
    """
    start = job.schedule_start.date()
    end = (job.schedule_end or job.schedule_start).date() + timedelta(days=1)

    event = {
        "summary": job.title,
        "description": f"Customer: {job.customer_name or 'Unknown'}\nValue: ${job.value_estimated or 0:g}",
        "start": {"date": start.isoformat(), "timeZone": timezone},
        "end": {"date": end.isoformat(), "timeZone": timezone},
    }
    if job.crew_notes:
        event["description"] += f"\n\nCrew notes: {job.crew_notes}"

    if job.recurrence_type and job.recurrence_type != "none":
        freq = RECURRENCE_FREQUENCIES.get(job.recurrence_type, "DAILY")
        interval = job.recurrence_interval or 1
        count = job.recurrence_count or 10
        event["recurrence"] = [f"RRULE:FREQ={freq};INTERVAL={interval};COUNT={count}"]

    return event


class CalendarSyncService:
    """Creates, updates and deletes the calendar event tied to a job"""

    def __init__(
        self,
        client: Optional[httpx.AsyncClient] = None,
        calendar_id: str = GOOGLE_CALENDAR_ID,
        client_id: Optional[str] = GOOGLE_CLIENT_ID,
        client_secret: Optional[str] = GOOGLE_CLIENT_SECRET,
        refresh_token: Optional[str] = GOOGLE_REFRESH_TOKEN,
        enabled: bool = CALENDAR_SYNC_ENABLED,
    ):
        self.client = client
        self.calendar_id = calendar_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.refresh_token = refresh_token
        self.enabled = enabled
        self._access_token: Optional[str] = None
        self._token_expires_at: Optional[datetime] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.enabled and self.client_id and self.client_secret and self.refresh_token)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self.client is not None:
            return await self.client.request(method, url, **kwargs)
        async with httpx.AsyncClient(timeout=10.0) as client:
            return await client.request(method, url, **kwargs)

    async def get_access_token(self) -> Optional[str]:
        """
        Get a valid access token, refreshing if necessary
        Returns None if refresh fails
        """
        # Reuse the cached token until 5 minutes before it expires
        if self._access_token and self._token_expires_at > datetime.now() + timedelta(minutes=5):
            return self._access_token

        logger.info("🔄 Refreshing Google Calendar access token...")
        try:
            response = await self._request(
                "POST",
                GOOGLE_TOKEN_URL,
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "refresh_token": self.refresh_token,
                    "grant_type": "refresh_token",
                },
            )
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Token refresh request failed: {e}")
            return None

        if response.status_code != 200:
            logger.warning(f"⚠️ Token refresh failed: {response.text}")
            return None

        tokens = response.json()
        access_token = tokens.get("access_token")
        if not access_token:
            logger.warning("⚠️ No access token in refresh response")
            return None

        self._access_token = access_token
        self._token_expires_at = datetime.now() + timedelta(seconds=tokens.get("expires_in", 3600))
        logger.info("✅ Google Calendar token refreshed successfully")
        return access_token

    def _events_url(self, event_id: Optional[str] = None) -> str:
        url = f"{GOOGLE_CALENDAR_API}/calendars/{self.calendar_id}/events"
        return f"{url}/{event_id}" if event_id else url

    @staticmethod
    def _mark_error(job: Job, db: Session) -> None:
        job.calendar_status = "error"
        db.commit()

    async def push_job(self, job: Job, db: Session) -> bool:
        """
        Create or update the job's event
        Returns True if the calendar now matches the job's schedule
        """
        if not self.is_configured:
            logger.debug(f"ℹ️ Calendar sync not configured, skipping job {job.id}")
            return False
        if job.schedule_start is None:
            logger.debug(f"ℹ️ Job {job.id} has no schedule, nothing to push")
            return False

        access_token = await self.get_access_token()
        if not access_token:
            self._mark_error(job, db)
            return False

        payload = build_event_payload(job)
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            if job.google_event_id:
                response = await self._request(
                    "PUT", self._events_url(job.google_event_id), headers=headers, json=payload
                )
            else:
                response = await self._request("POST", self._events_url(), headers=headers, json=payload)
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Calendar sync for job {job.id} failed: {e}")
            self._mark_error(job, db)
            return False

        if response.status_code not in (200, 201):
            logger.warning(f"⚠️ Calendar sync for job {job.id} failed ({response.status_code}): {response.text}")
            self._mark_error(job, db)
            return False

        if job.google_event_id:
            job.calendar_status = "updated"
        else:
            job.google_event_id = response.json().get("id")
            job.calendar_status = "created"
        job.calendar_synced_at = datetime.now()
        db.commit()

        logger.info(f"✅ Calendar event {job.calendar_status} for job {job.id}: {job.google_event_id}")
        return True

    async def remove_job(self, job: Job, db: Session) -> bool:
        """Delete the job's event, if it has one"""
        if not job.google_event_id:
            return True
        if not self.is_configured:
            logger.debug(f"ℹ️ Calendar sync not configured, leaving event for job {job.id}")
            return False

        access_token = await self.get_access_token()
        if not access_token:
            self._mark_error(job, db)
            return False

        try:
            response = await self._request(
                "DELETE",
                self._events_url(job.google_event_id),
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"⚠️ Calendar event removal for job {job.id} failed: {e}")
            self._mark_error(job, db)
            return False

        # 404/410: already gone on the calendar side
        if response.status_code not in (200, 204, 404, 410):
            logger.warning(f"⚠️ Calendar event removal for job {job.id} failed ({response.status_code})")
            self._mark_error(job, db)
            return False

        logger.info(f"🗑️ Calendar event {job.google_event_id} deleted for job {job.id}")
        job.google_event_id = None
        job.calendar_status = "none"
        job.calendar_synced_at = datetime.now()
        db.commit()
        return True

    async def sync_job(self, job: Job, db: Session) -> bool:
        """Push scheduled active jobs, remove events of everything else"""
        if job.schedule_start is not None and job.is_active:
            return await self.push_job(job, db)
        return await self.remove_job(job, db)


async def sync_job_in_background(
    job_id: int,
    service: Optional[CalendarSyncService] = None,
    session_factory: Callable[[], Session] = SessionLocal,
) -> None:
    """Background task run after a schedule change is committed"""
    service = service or CalendarSyncService()
    if not service.is_configured:
        return

    db = session_factory()
    try:
        job = db.query(Job).filter(Job.id == job_id).first()
        if not job:
            logger.warning(f"⚠️ Job {job_id} vanished before calendar sync")
            return
        await service.sync_job(job, db)
    except Exception as e:
        # The schedule is already saved; a sync failure must not surface anywhere
        logger.error(f"❌ Calendar sync task for job {job_id} crashed: {str(e)}")
        db.rollback()
    finally:
        db.close()
