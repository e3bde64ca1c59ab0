"""Turns reminder events into notifications and the active prayer marker."""

import asyncio
import functools
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from lets_pray.domain.errors import PermissionDeniedError
from lets_pray.domain.events import ReminderEvent
from lets_pray.domain.models import ActivePrayerMarker
from lets_pray.services.ports import NotifierPort, SchedulerPort

logger = logging.getLogger(__name__)

MARKER_JOB_ID = "active_prayer_expiry"
DEFAULT_MARKER_TTL = timedelta(minutes=5)


class NotificationDispatcher:
    """Shows the notification and keeps the last reminded prayer for a while."""

    def __init__(
        self,
        notifier: NotifierPort,
        scheduler: SchedulerPort,
        *,
        marker_ttl: timedelta = DEFAULT_MARKER_TTL,
        notify_timeout: float = 10.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize dispatcher.

        Args:
            notifier: OS notification adapter
            scheduler: Timer adapter for the marker expiry job
            marker_ttl: How long a prayer stays marked as active
            notify_timeout: Upper bound for one notification, in seconds
            clock: Returns the current aware datetime
        """
        self._notifier = notifier
        self._scheduler = scheduler
        self._marker_ttl = marker_ttl
        self._notify_timeout = notify_timeout
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._marker: ActivePrayerMarker | None = None

    def active_marker(self, now: datetime | None = None) -> ActivePrayerMarker | None:
        """Current marker, or None once it has expired."""
        marker = self._marker
        if marker is None or marker.is_expired(now or self._clock()):
            return None
        return marker

    async def dispatch(self, event: ReminderEvent) -> ActivePrayerMarker:
        """Notify and mark the event's prayer as active."""
        try:
            await asyncio.wait_for(
                self._notifier.notify(event.title, event.body), self._notify_timeout
            )
        except PermissionDeniedError as e:
            logger.warning(f"Notification not shown (permission denied): {e}")
        except TimeoutError:
            logger.warning(f"Notification timed out after {self._notify_timeout}s")
        except OSError as e:
            logger.warning(f"Notification failed: {e}")

        marker = ActivePrayerMarker(prayer=event.prayer, expires_at=self._clock() + self._marker_ttl)
        self._marker = marker
        # replaces the job of the previous marker, if any
        self._scheduler.schedule_at(
            marker.expires_at, functools.partial(self._expire, marker), MARKER_JOB_ID
        )
        logger.info(f"Active prayer: {marker.prayer.value} until {marker.expires_at:%H:%M:%S}")
        return marker

    async def _expire(self, marker: ActivePrayerMarker) -> None:
        # a newer marker must not be cleared by an older timer
        if self._marker is marker:
            self._marker = None
            logger.debug(f"Active prayer cleared: {marker.prayer.value}")

    def close(self) -> None:
        """Cancel the pending expiry job."""
        self._scheduler.cancel(MARKER_JOB_ID)
