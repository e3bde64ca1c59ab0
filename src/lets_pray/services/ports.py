"""Service layer interfaces (ports)."""

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from datetime import date, datetime
from typing import Any

from lets_pray.domain.events import DomainEvent
from lets_pray.domain.models import AppSettings, PrayerTime, SystemInfo

JobCallback = Callable[[], Awaitable[None] | None]
EventHandler = Callable[[Any], Awaitable[None] | None]


class PrayerTimeProviderPort(ABC):
    """Source of a day's prayer schedule."""

    @abstractmethod
    async def fetch(self, location: str, target_date: date) -> list[PrayerTime]:
        """Return the ordered prayers of `target_date` for `location`.

        Raises:
            ProviderError: network or parse failure
            NotFoundError: the location cannot be resolved
        """


class LocationResolverPort(ABC):
    """Best-effort detection of where the user is."""

    @abstractmethod
    async def detect(self) -> SystemInfo:
        """Return the detected location and timezone (ProviderError on failure)."""


class NotifierPort(ABC):
    """OS notification primitive."""

    @abstractmethod
    async def notify(self, title: str, body: str) -> None:
        """Show a notification (PermissionDeniedError if refused)."""


class AudioPlayerPort(ABC):
    """Audio output primitive."""

    @abstractmethod
    async def start(self, file_path: str, volume: int = 100) -> None:
        """Start playing a file without waiting for it to end."""

    @abstractmethod
    async def wait(self) -> None:
        """Wait until the current playback ends (RuntimeError if it failed)."""

    async def play(self, file_path: str, volume: int = 100) -> None:
        """Play a file and wait for it to end."""
        await self.start(file_path, volume)
        await self.wait()

    @abstractmethod
    async def stop(self) -> None:
        """Stop playing and reset."""

    @abstractmethod
    def is_playing(self) -> bool:
        """Is something playing right now?"""


class SettingsRepositoryPort(ABC):
    """Settings storage."""

    @abstractmethod
    async def load(self) -> AppSettings:
        """Load settings (NotFoundError if never saved)."""

    @abstractmethod
    async def save(self, settings: AppSettings) -> None:
        """Save settings (PersistenceError on failure)."""


class AutostartPort(ABC):
    """Launch-at-login switch."""

    @abstractmethod
    def apply(self, enabled: bool) -> None:
        """Enable or disable launching at login."""


class SchedulerPort(ABC):
    """Timer interface (port)."""

    @abstractmethod
    def schedule_at(self, run_time: datetime, callback: JobCallback, job_id: str) -> None:
        """Run `callback` once at `run_time`, replacing any job with the same id."""

    @abstractmethod
    def schedule_every(self, seconds: float, callback: JobCallback, job_id: str) -> None:
        """Run `callback` every `seconds`, replacing any job with the same id."""

    @abstractmethod
    def cancel(self, job_id: str) -> bool:
        """Cancel a job; False if there was none."""

    @abstractmethod
    def cancel_all(self) -> None:
        """Cancel every job."""

    @abstractmethod
    def get_scheduled_jobs(self) -> list[tuple[str, datetime]]:
        """List (job id, next run time) pairs."""


class Subscription(ABC):
    """Handle returned by EventBusPort.subscribe."""

    @property
    @abstractmethod
    def active(self) -> bool:
        """False once cancelled."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop delivery; no event reaches the handler afterwards."""


class EventBusPort(ABC):
    """Event bus interface (port)."""

    @abstractmethod
    async def publish(self, event: DomainEvent) -> None:
        """Deliver an event to its subscribers, in subscription order."""

    @abstractmethod
    def subscribe(self, event_type: type[DomainEvent], handler: EventHandler) -> Subscription:
        """Subscribe to an event type."""
