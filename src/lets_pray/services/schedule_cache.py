"""Cache of the current day's prayer schedule."""

import asyncio
import logging
from datetime import date

from lets_pray.domain.errors import ProviderError
from lets_pray.domain.models import PrayerName, ScheduleSnapshot
from lets_pray.services.ports import PrayerTimeProviderPort

logger = logging.getLogger(__name__)


class ScheduleCache:
    """Holds today's schedule and the date and location it was fetched for."""

    def __init__(self, provider: PrayerTimeProviderPort, *, timeout: float = 10.0) -> None:
        """
        Initialize cache.

        Args:
            provider: Prayer time source
            timeout: Upper bound for one fetch, in seconds
        """
        self._provider = provider
        self._timeout = timeout
        self._snapshot: ScheduleSnapshot | None = None

    @property
    def snapshot(self) -> ScheduleSnapshot | None:
        """Last good snapshot, possibly stale."""
        return self._snapshot

    def is_stale(self, today: date, location: str) -> bool:
        """Does the cache need a refetch for this day and location?"""
        snapshot = self._snapshot
        return snapshot is None or snapshot.schedule_date != today or snapshot.location != location

    async def refresh(self, location: str, today: date) -> ScheduleSnapshot:
        """Fetch a new schedule and replace the snapshot wholesale.

        A refetch for the same day and location keeps the fired set; a new
        day or location starts with nothing fired. On failure the previous
        snapshot is kept untouched and the error is raised (ProviderError, or
        NotFoundError for an unknown location).
        """
        try:
            prayers = await asyncio.wait_for(self._provider.fetch(location, today), self._timeout)
        except TimeoutError as e:
            raise ProviderError(f"Prayer time request timed out after {self._timeout}s") from e

        fired: set[PrayerName] = set()
        if self._snapshot is not None and not self.is_stale(today, location):
            fired = set(self._snapshot.fired)

        snapshot = ScheduleSnapshot(
            schedule_date=today, location=location, prayers=tuple(prayers), fired=fired
        )
        self._snapshot = snapshot
        logger.info(
            f"Schedule for {today} refreshed ({location}): "
            + ", ".join(f"{p.name.value} {p.time_str}" for p in snapshot.prayers)
        )
        return snapshot
