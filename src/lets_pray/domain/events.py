"""Domain events for event-driven architecture."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar
from uuid import UUID, uuid4

from lets_pray.domain.models import PrayerName, PrayerTime


@dataclass(frozen=True, kw_only=True)
class DomainEvent:
    """Base class for domain events."""

    channel: ClassVar[str | None] = None

    event_id: UUID = field(default_factory=uuid4)
    occurred_at: datetime = field(default_factory=datetime.now)

    def payload(self) -> dict[str, Any]:
        """Body pushed to external listeners of `channel`."""
        return {}


@dataclass(frozen=True, kw_only=True)
class ReminderEvent(DomainEvent):
    """A prayer entered its reminder window."""

    channel: ClassVar[str | None] = "prayer-reminder"

    prayer: PrayerName
    scheduled_at: datetime
    title: str
    body: str

    @classmethod
    def for_prayer(cls, prayer_time: PrayerTime, now: datetime) -> "ReminderEvent":
        """Build the notification text for a prayer seen at `now`."""
        name = prayer_time.name.display_name
        minutes = int((prayer_time.datetime - now).total_seconds() // 60)
        if minutes > 0:
            unit = "minute" if minutes == 1 else "minutes"
            body = f"{name} prayer at {prayer_time.time_str} (in {minutes} {unit})"
        else:
            body = f"It's time for {name} prayer at {prayer_time.time_str}"
        return cls(
            prayer=prayer_time.name,
            scheduled_at=prayer_time.datetime,
            title=f"Prayer Time: {name}",
            body=body,
        )

    def payload(self) -> dict[str, Any]:
        return {"title": self.title, "body": self.body}


@dataclass(frozen=True, kw_only=True)
class PlayAdhanEvent(DomainEvent):
    """Sound is on and a reminder just fired."""

    channel: ClassVar[str | None] = "play-adhan"

    prayer: PrayerName | None = None


@dataclass(frozen=True, kw_only=True)
class ScheduleRefreshedEvent(DomainEvent):
    """A new day's schedule replaced the previous one."""

    location: str
    prayer_count: int


@dataclass(frozen=True, kw_only=True)
class ScheduleErrorEvent(DomainEvent):
    """Schedule refresh failed; the last good schedule stays in use."""

    error_message: str


@dataclass(frozen=True, kw_only=True)
class AdhanStartedEvent(DomainEvent):
    """Playback started."""

    source: str
    fallback: bool = False


@dataclass(frozen=True, kw_only=True)
class AdhanFinishedEvent(DomainEvent):
    """Playback ended, naturally or by stop()."""

    interrupted: bool = False


@dataclass(frozen=True, kw_only=True)
class SettingsChangedEvent(DomainEvent):
    """Settings changed."""

    changed_fields: tuple[str, ...]


@dataclass(frozen=True, kw_only=True)
class AudioErrorEvent(DomainEvent):
    """Neither the adhan nor the fallback tone could be played."""

    error_message: str
