"""Reminder tick loop: decides when a prayer is due and fires it once."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta, tzinfo

from lets_pray.domain.errors import NotFoundError, ProviderError
from lets_pray.domain.events import (
    PlayAdhanEvent,
    ReminderEvent,
    ScheduleErrorEvent,
    ScheduleRefreshedEvent,
    SettingsChangedEvent,
)
from lets_pray.domain.models import PrayerName, ReminderWindow, ScheduleSnapshot
from lets_pray.services.ports import EventBusPort, SchedulerPort, Subscription
from lets_pray.services.schedule_cache import ScheduleCache
from lets_pray.services.settings_store import SettingsStore

logger = logging.getLogger(__name__)

TICK_JOB_ID = "reminder_tick"
REFETCH_JOB_ID = "reminder_refetch"
DEFAULT_TICK_INTERVAL = timedelta(seconds=30)


class ReminderScheduler:
    """Single source of truth for "has prayer X been reminded today".

    Every tick reads a copy of the saved settings (a location still being
    typed is ignored until it is saved), refreshes the schedule when the
    day or the location changed, and publishes one ReminderEvent per prayer
    whose window contains `now`. The prayer is marked as fired before its
    event is published.
    """

    def __init__(
        self,
        cache: ScheduleCache,
        settings_store: SettingsStore,
        event_bus: EventBusPort,
        scheduler: SchedulerPort,
        *,
        window: ReminderWindow | None = None,
        interval: timedelta = DEFAULT_TICK_INTERVAL,
        timezone: tzinfo | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize reminder scheduler.

        Args:
            cache: Schedule cache
            settings_store: Settings owner (read only from here)
            event_bus: Where reminder events go
            scheduler: Timer adapter driving tick()
            window: Reminder lead and grace
            interval: Tick cadence, no wider than the reminder window
            timezone: Local timezone used for the calendar date
            clock: Returns the current aware datetime
        """
        self._window = window or ReminderWindow()
        if interval <= timedelta(0) or interval > self._window.width:
            raise ValueError(
                f"Tick interval {interval} must be positive and at most the reminder window "
                f"({self._window.width})"
            )
        self._cache = cache
        self._settings = settings_store
        self._event_bus = event_bus
        self._scheduler = scheduler
        self._interval = interval
        self._timezone = timezone
        self._clock = clock or self._now
        self._lock = asyncio.Lock()
        self._last_error: str | None = None
        self._subscription: Subscription | None = None
        self._running = False

    @property
    def window(self) -> ReminderWindow:
        return self._window

    @property
    def snapshot(self) -> ScheduleSnapshot | None:
        """Current (possibly stale) schedule."""
        return self._cache.snapshot

    @property
    def last_error(self) -> str | None:
        """Text of the last refresh failure, cleared by the next success."""
        return self._last_error

    @property
    def fired(self) -> frozenset[PrayerName]:
        snapshot = self._cache.snapshot
        return frozenset(snapshot.fired) if snapshot else frozenset()

    @property
    def running(self) -> bool:
        return self._running

    def _now(self) -> datetime:
        if self._timezone is not None:
            return datetime.now(self._timezone)
        return datetime.now().astimezone()

    def _local(self, now: datetime) -> datetime:
        if now.tzinfo is None:
            return now.replace(tzinfo=self._timezone) if self._timezone else now.astimezone()
        return now.astimezone(self._timezone) if self._timezone else now

    async def tick(self, now: datetime | None = None) -> list[ReminderEvent]:
        """Run one scheduling pass and return the events it emitted."""
        now = self._local(now or self._clock())
        settings = self._settings.settled

        async with self._lock:
            snapshot = await self._ensure_schedule(now, settings.location)
            if snapshot is None:
                return []

            due: list[ReminderEvent] = []
            for prayer_time in snapshot.prayers:
                if not settings.is_prayer_enabled(prayer_time.name):
                    continue
                if snapshot.has_fired(prayer_time.name):
                    continue
                if self._window.contains(prayer_time.datetime, now):
                    snapshot.fired.add(prayer_time.name)
                    due.append(ReminderEvent.for_prayer(prayer_time, now))

            for event in due:
                await self._emit(event)

        return due

    async def _emit(self, event: ReminderEvent) -> None:
        logger.info(f"Reminder: {event.title} - {event.body}")
        await self._event_bus.publish(event)

        # read at fire time: sound may have been switched off since the fetch
        if self._settings.settled.play_sound:
            await self._event_bus.publish(PlayAdhanEvent(prayer=event.prayer))

    async def _ensure_schedule(self, now: datetime, location: str) -> ScheduleSnapshot | None:
        if not self._cache.is_stale(now.date(), location):
            return self._cache.snapshot
        return await self._fetch(now, location)

    async def _fetch(self, now: datetime, location: str) -> ScheduleSnapshot | None:
        try:
            snapshot = await self._cache.refresh(location, now.date())
        except (ProviderError, NotFoundError) as e:
            self._last_error = str(e)
            logger.warning(f"Schedule refresh failed, keeping last schedule: {e}")
            await self._event_bus.publish(ScheduleErrorEvent(error_message=str(e)))
            return self._cache.snapshot

        self._last_error = None
        await self._event_bus.publish(
            ScheduleRefreshedEvent(location=location, prayer_count=len(snapshot.prayers))
        )
        return snapshot

    async def refresh(self, now: datetime | None = None) -> ScheduleSnapshot | None:
        """Refetch today's schedule even when the cache is current.

        Prayers already fired today stay fired.
        """
        now = self._local(now or self._clock())
        location = self._settings.settled.location
        async with self._lock:
            return await self._fetch(now, location)

    async def _on_settings_changed(self, event: SettingsChangedEvent) -> None:
        if "location" in event.changed_fields:
            logger.info("Location changed, refetching schedule.")
            # run as its own job so the settings write never waits on the provider
            self._scheduler.schedule_at(self._clock(), self._run_tick, REFETCH_JOB_ID)

    async def _run_tick(self) -> None:
        try:
            await self.tick()
        except Exception:
            # the periodic job must survive anything a tick throws
            logger.exception("Reminder tick failed")

    async def start(self) -> None:
        """Register the periodic tick and run the first one."""
        if self._running:
            logger.warning("Reminder scheduler already running.")
            return
        self._running = True
        self._subscription = self._event_bus.subscribe(SettingsChangedEvent, self._on_settings_changed)
        self._scheduler.schedule_every(self._interval.total_seconds(), self._run_tick, TICK_JOB_ID)
        logger.info(f"Reminder scheduler started (every {self._interval.total_seconds():.0f}s).")
        await self._run_tick()

    async def stop(self) -> None:
        """Cancel the periodic tick."""
        if not self._running:
            return
        self._running = False
        self._scheduler.cancel(TICK_JOB_ID)
        self._scheduler.cancel(REFETCH_JOB_ID)
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None
        logger.info("Reminder scheduler stopped.")
