"""Shared fixtures and in-memory fakes."""

import asyncio
import inspect
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

import pytest

from lets_pray.domain.errors import NotFoundError, PersistenceError
from lets_pray.domain.events import DomainEvent
from lets_pray.domain.models import AppSettings, PrayerName, PrayerTime, SystemInfo
from lets_pray.infrastructure.event_bus import InMemoryEventBus
from lets_pray.services.ports import (
    AudioPlayerPort,
    JobCallback,
    LocationResolverPort,
    NotifierPort,
    PrayerTimeProviderPort,
    SchedulerPort,
    SettingsRepositoryPort,
)

TZ = ZoneInfo("Asia/Taipei")
DAY = date(2026, 3, 14)

SCHEDULES: dict[str, dict[PrayerName, str]] = {
    "CityA": {
        PrayerName.FAJR: "05:10",
        PrayerName.DHUHR: "12:05",
        PrayerName.ASR: "15:30",
        PrayerName.MAGHRIB: "18:02",
        PrayerName.ISHA: "19:20",
    },
    "CityB": {
        PrayerName.FAJR: "05:25",
        PrayerName.DHUHR: "12:15",
        PrayerName.ASR: "15:40",
        PrayerName.MAGHRIB: "18:05",
        PrayerName.ISHA: "19:30",
    },
}


def at(hour: int, minute: int, second: int = 0, day: date = DAY) -> datetime:
    """Aware datetime in the test timezone."""
    return datetime.combine(day, time(hour, minute, second), tzinfo=TZ)


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class Clock:
    """Settable clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakeJob:
    def __init__(self, callback: JobCallback, run_time: datetime | None, interval: float | None) -> None:
        self.callback = callback
        self.run_time = run_time
        self.interval = interval


class FakeScheduler(SchedulerPort):
    """Keeps jobs in a dict; tests run them explicitly."""

    def __init__(self) -> None:
        self.jobs: dict[str, FakeJob] = {}
        self.cancelled: list[str] = []

    def schedule_at(self, run_time: datetime, callback: JobCallback, job_id: str) -> None:
        self.jobs[job_id] = FakeJob(callback, run_time, None)

    def schedule_every(self, seconds: float, callback: JobCallback, job_id: str) -> None:
        self.jobs[job_id] = FakeJob(callback, None, seconds)

    def cancel(self, job_id: str) -> bool:
        self.cancelled.append(job_id)
        return self.jobs.pop(job_id, None) is not None

    def cancel_all(self) -> None:
        self.jobs.clear()

    def get_scheduled_jobs(self) -> list[tuple[str, datetime]]:
        return [(job_id, job.run_time) for job_id, job in self.jobs.items() if job.run_time]

    async def run(self, job_id: str) -> None:
        """Fire a job as the timer would; one-shot jobs are removed first."""
        job = self.jobs[job_id]
        if job.interval is None:
            del self.jobs[job_id]
        result = job.callback()
        if inspect.isawaitable(result):
            await result


class FakeProvider(PrayerTimeProviderPort):
    """Serves SCHEDULES; unknown locations are NotFound."""

    def __init__(self, schedules: dict[str, dict[PrayerName, str]] | None = None) -> None:
        self.schedules = schedules or SCHEDULES
        self.calls: list[tuple[str, date]] = []
        self.error: Exception | None = None

    async def fetch(self, location: str, target_date: date) -> list[PrayerTime]:
        self.calls.append((location, target_date))
        if self.error is not None:
            raise self.error
        if location not in self.schedules:
            raise NotFoundError(f"Location not found: {location}")
        return [
            PrayerTime(
                name=name,
                time=datetime.strptime(value, "%H:%M").time(),
                date=target_date,
                tz=TZ,
            )
            for name, value in self.schedules[location].items()
        ]


class FakeResolver(LocationResolverPort):
    def __init__(self, location: str = "Taipei, TW", error: Exception | None = None) -> None:
        self.location = location
        self.error = error
        self.release = asyncio.Event()
        self.release.set()

    async def detect(self) -> SystemInfo:
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return SystemInfo(location=self.location, timezone="Asia/Taipei")


class FakeNotifier(NotifierPort):
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.shown: list[tuple[str, str]] = []

    async def notify(self, title: str, body: str) -> None:
        if self.error is not None:
            raise self.error
        self.shown.append((title, body))


class FakePlayer(AudioPlayerPort):
    """Records start/stop calls; playback ends when finish() is called."""

    def __init__(self, log: list[tuple[str, str]] | None = None, fail: bool = False) -> None:
        self.log = log if log is not None else []
        self.fail = fail
        self._done = asyncio.Event()
        self._playing = False

    async def start(self, file_path: str, volume: int = 100) -> None:
        if self.fail:
            raise FileNotFoundError(file_path)
        self._done = asyncio.Event()
        self._playing = True
        self.log.append(("start", file_path))

    async def wait(self) -> None:
        await self._done.wait()
        self._playing = False

    async def stop(self) -> None:
        self.log.append(("stop", ""))
        self._playing = False
        self._done.set()

    def is_playing(self) -> bool:
        return self._playing

    def finish(self) -> None:
        self._done.set()


class InMemorySettingsRepository(SettingsRepositoryPort):
    def __init__(self, stored: AppSettings | None = None) -> None:
        self.stored = stored
        self.writes: list[AppSettings] = []
        self.fail = False

    async def load(self) -> AppSettings:
        if self.stored is None:
            raise NotFoundError("No settings saved yet")
        return self.stored

    async def save(self, settings: AppSettings) -> None:
        if self.fail:
            raise PersistenceError("Disk full")
        self.stored = settings
        self.writes.append(settings)


def record(bus: InMemoryEventBus, *event_types: type[DomainEvent]) -> list[DomainEvent]:
    """Collect published events of the given types."""
    received: list[DomainEvent] = []
    for event_type in event_types:
        bus.subscribe(event_type, received.append)
    return received


@pytest.fixture
def clock() -> Clock:
    return Clock(at(12, 0))


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def event_bus() -> InMemoryEventBus:
    return InMemoryEventBus()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def repository() -> InMemorySettingsRepository:
    return InMemorySettingsRepository()
