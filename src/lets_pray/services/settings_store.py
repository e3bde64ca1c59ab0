"""Owner of the single AppSettings value."""

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from lets_pray.domain.errors import NotFoundError, PersistenceError, ProviderError
from lets_pray.domain.events import SettingsChangedEvent
from lets_pray.domain.models import AppSettings, PrayerName, SystemInfo
from lets_pray.services.ports import (
    AutostartPort,
    EventBusPort,
    LocationResolverPort,
    SchedulerPort,
    SettingsRepositoryPort,
)

logger = logging.getLogger(__name__)

SAVE_JOB_ID = "settings_save"
DEFAULT_DEBOUNCE = timedelta(seconds=1)


class SettingsStore:
    """Holds the current settings and persists them.

    Readers get copies (AppSettings is frozen and replaced wholesale).
    Discrete changes are written at once; text edits go through a debounce
    job that is re-armed on every call, so a burst of edits produces one
    write and one SettingsChangedEvent. The event is published after the
    write, with the lock released.
    """

    def __init__(
        self,
        repository: SettingsRepositoryPort,
        scheduler: SchedulerPort,
        event_bus: EventBusPort | None = None,
        *,
        autostart: AutostartPort | None = None,
        debounce: timedelta = DEFAULT_DEBOUNCE,
        write_timeout: float = 5.0,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """
        Initialize settings store.

        Args:
            repository: Settings storage
            scheduler: Timer adapter for the debounce job
            event_bus: Receives SettingsChangedEvent (optional)
            autostart: Launch-at-login switch driven by run_at_startup (optional)
            debounce: Delay before a debounced edit is saved
            write_timeout: Upper bound for one write, in seconds
            clock: Returns the current aware datetime
        """
        self._repository = repository
        self._scheduler = scheduler
        self._event_bus = event_bus
        self._autostart = autostart
        self._debounce = debounce
        self._write_timeout = write_timeout
        self._clock = clock or (lambda: datetime.now().astimezone())
        self._lock = asyncio.Lock()

        self._settings = AppSettings()
        self._announced: AppSettings = self._settings
        self._stored = False
        self._dirty = False
        self._pending_flush = False
        self._last_error: str | None = None

    @property
    def current(self) -> AppSettings:
        """Copy of the current settings, including unsaved edits."""
        return self._settings.copy()

    @property
    def settled(self) -> AppSettings:
        """Copy of the last committed settings; a debounced edit shows up once saved."""
        return self._announced.copy()

    @property
    def dirty(self) -> bool:
        """Are there changes not yet written?"""
        return self._dirty

    @property
    def last_error(self) -> str | None:
        """Text of the last failed write, cleared by the next success."""
        return self._last_error

    async def load(self) -> AppSettings:
        """Load settings from storage (NotFoundError on first run)."""
        settings = await self._repository.load()
        async with self._lock:
            self._settings = settings
            self._announced = settings
            self._stored = True
            self._dirty = False
        return settings.copy()

    async def initialize(self) -> AppSettings:
        """Load settings, substituting defaults on first run."""
        try:
            return await self.load()
        except NotFoundError:
            logger.info("No saved settings, using defaults.")
            return self.current

    def get(self) -> AppSettings:
        """Settings as stored; NotFoundError if they were never loaded or saved."""
        if not self._stored:
            raise NotFoundError("Settings have never been saved")
        return self.current

    async def save(self, settings: AppSettings) -> None:
        """Replace and write the settings at once (PersistenceError on failure)."""
        changed: tuple[str, ...] = ()
        try:
            async with self._lock:
                self._cancel_flush()
                changed = self._apply(settings)
                await self._write(settings)
        finally:
            await self._announce(changed)

    async def mutate(
        self, fn: Callable[[AppSettings], AppSettings], *, debounce: bool = False
    ) -> AppSettings:
        """Apply `fn` to a copy of the settings.

        Immediate mutations are committed and written before returning.
        Debounced ones only update the in-memory value and re-arm the save job.
        """
        changed: tuple[str, ...] = ()
        try:
            async with self._lock:
                updated = fn(self._settings.copy())
                if not debounce:
                    self._cancel_flush()
                    changed = self._apply(updated)
                    await self._write(updated)
                    return updated.copy()

                self._settings = updated
                self._dirty = True
                self._pending_flush = True
                self._scheduler.schedule_at(self._clock() + self._debounce, self._flush, SAVE_JOB_ID)
                logger.debug(f"Settings save debounced ({self._debounce.total_seconds()}s)")
                return updated.copy()
        finally:
            await self._announce(changed)

    async def set_location(self, location: str) -> AppSettings:
        """Location text edit (debounced)."""
        return await self.mutate(lambda s: s.copy(location=location.strip()), debounce=True)

    async def set_play_sound(self, enabled: bool) -> AppSettings:
        return await self.mutate(lambda s: s.copy(play_sound=enabled))

    async def set_run_at_startup(self, enabled: bool) -> AppSettings:
        return await self.mutate(lambda s: s.copy(run_at_startup=enabled))

    async def set_prayer_enabled(self, prayer: PrayerName, enabled: bool) -> AppSettings:
        return await self.mutate(lambda s: s.with_prayer(prayer, enabled))

    async def auto_detect_location(
        self, resolver: LocationResolverPort, *, timeout: float = 10.0
    ) -> SystemInfo:
        """Detect the location once and apply it when the answer arrives.

        Manual edits stay possible meanwhile; whichever completes last wins.
        """
        try:
            info = await asyncio.wait_for(resolver.detect(), timeout)
        except TimeoutError as e:
            raise ProviderError(f"Location detection timed out after {timeout}s") from e

        await self.mutate(lambda s: s.copy(location=info.location))
        return info

    async def flush(self) -> None:
        """Write a pending debounced edit now."""
        await self._flush()

    async def close(self) -> None:
        """Cancel the debounce job, writing any pending edit first."""
        changed: tuple[str, ...] = ()
        async with self._lock:
            had_pending = self._pending_flush
            self._cancel_flush()
            if had_pending or self._dirty:
                changed = self._apply(self._settings)
                try:
                    await self._write(self._settings)
                except PersistenceError as e:
                    logger.error(f"Pending settings lost on shutdown: {e}")
        await self._announce(changed)

    def _cancel_flush(self) -> None:
        if self._pending_flush:
            self._scheduler.cancel(SAVE_JOB_ID)
            self._pending_flush = False

    async def _flush(self) -> None:
        changed: tuple[str, ...] = ()
        async with self._lock:
            if not self._pending_flush:
                return
            self._pending_flush = False
            changed = self._apply(self._settings)
            try:
                await self._write(self._settings)
            except PersistenceError as e:
                # kept dirty; the next explicit save retries
                logger.error(f"Debounced settings save failed: {e}")
        await self._announce(changed)

    def _apply(self, settings: AppSettings) -> tuple[str, ...]:
        """Make `settings` current and settled; return the fields that changed."""
        changed = settings.changed_fields(self._announced)
        self._settings = settings
        self._announced = settings
        self._dirty = True

        if "run_at_startup" in changed and self._autostart is not None:
            try:
                self._autostart.apply(settings.run_at_startup)
            except OSError as e:
                logger.error(f"Autostart could not be changed: {e}")
        return changed

    async def _write(self, settings: AppSettings) -> None:
        try:
            await asyncio.wait_for(self._repository.save(settings), self._write_timeout)
        except TimeoutError as e:
            self._last_error = f"Settings write timed out after {self._write_timeout}s"
            raise PersistenceError(self._last_error) from e
        except PersistenceError as e:
            self._last_error = str(e)
            raise

        self._stored = True
        self._dirty = False
        self._last_error = None

    async def _announce(self, changed: tuple[str, ...]) -> None:
        # called with the lock released so subscribers may read the store
        if changed and self._event_bus is not None:
            await self._event_bus.publish(SettingsChangedEvent(changed_fields=changed))
