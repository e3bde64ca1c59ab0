"""Domain models and value objects."""

from collections.abc import Iterable
from dataclasses import dataclass, field, fields, replace
from datetime import date, datetime, time, timedelta, tzinfo
from enum import Enum
from typing import Any, Self


class PrayerName(str, Enum):
    """The five daily prayers, in canonical order."""

    FAJR = "Fajr"
    DHUHR = "Dhuhr"
    ASR = "Asr"
    MAGHRIB = "Maghrib"
    ISHA = "Isha"

    @property
    def display_name(self) -> str:
        """Name shown to the user."""
        return self.value

    @property
    def icon(self) -> str:
        """Emoji icon."""
        icons = {
            PrayerName.FAJR: "🌙",
            PrayerName.DHUHR: "☀️",
            PrayerName.ASR: "🌤️",
            PrayerName.MAGHRIB: "🌇",
            PrayerName.ISHA: "🌃",
        }
        return icons[self]


DEFAULT_LOCATION = "New Taipei City"


@dataclass(frozen=True)
class AppSettings:
    """User settings (immutable value object, replaced wholesale on change)."""

    location: str = DEFAULT_LOCATION
    play_sound: bool = True
    enabled_prayers: frozenset[PrayerName] = field(default_factory=lambda: frozenset(PrayerName))
    run_at_startup: bool = False

    def __post_init__(self) -> None:
        """Coerce prayer names, rejecting unknown ones."""
        try:
            prayers = frozenset(PrayerName(p) for p in self.enabled_prayers)
        except ValueError as e:
            raise ValueError(f"Unknown prayer name: {e}") from e
        object.__setattr__(self, "enabled_prayers", prayers)

    def is_prayer_enabled(self, prayer: PrayerName) -> bool:
        """Is the reminder for this prayer switched on?"""
        return prayer in self.enabled_prayers

    def copy(self, **changes: Any) -> Self:
        """Return a copy, optionally with some fields replaced."""
        return replace(self, **changes)

    def with_prayer(self, prayer: PrayerName, enabled: bool) -> Self:
        """Return a copy with one prayer switched on or off."""
        prayers = set(self.enabled_prayers)
        if enabled:
            prayers.add(prayer)
        else:
            prayers.discard(prayer)
        return replace(self, enabled_prayers=frozenset(prayers))

    def changed_fields(self, other: "AppSettings | None") -> tuple[str, ...]:
        """Names of the fields that differ from `other`."""
        if other is None:
            return tuple(f.name for f in fields(self))
        return tuple(f.name for f in fields(self) if getattr(self, f.name) != getattr(other, f.name))

    def to_dict(self) -> dict[str, Any]:
        """Serialize for storage."""
        return {
            "location": self.location,
            "play_sound": self.play_sound,
            "enabled_prayers": [p.value for p in PrayerName if p in self.enabled_prayers],
            "run_at_startup": self.run_at_startup,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Build from a persisted dictionary, filling missing keys with defaults."""
        return cls(
            location=str(data.get("location") or DEFAULT_LOCATION),
            play_sound=bool(data.get("play_sound", True)),
            enabled_prayers=frozenset(
                PrayerName(p) for p in data.get("enabled_prayers", [p.value for p in PrayerName])
            ),
            run_at_startup=bool(data.get("run_at_startup", False)),
        )


@dataclass(frozen=True)
class PrayerTime:
    """A single prayer of one day."""

    name: PrayerName
    time: time
    date: date
    tz: tzinfo | None = None

    @property
    def datetime(self) -> datetime:
        """Full (timezone aware) datetime."""
        return datetime.combine(self.date, self.time, tzinfo=self.tz)

    @property
    def time_str(self) -> str:
        """HH:MM."""
        return self.time.strftime("%H:%M")


def order_prayers(prayers: Iterable[PrayerTime]) -> tuple[PrayerTime, ...]:
    """Sort by scheduled datetime, canonical order breaking ties."""
    canonical = list(PrayerName)
    return tuple(sorted(prayers, key=lambda p: (p.datetime, canonical.index(p.name))))


@dataclass
class ScheduleSnapshot:
    """One day's schedule plus the prayers already reminded for it."""

    schedule_date: date
    location: str
    prayers: tuple[PrayerTime, ...]
    fired: set[PrayerName] = field(default_factory=set)

    def __post_init__(self) -> None:
        self.prayers = order_prayers(self.prayers)

    def has_fired(self, prayer: PrayerName) -> bool:
        return prayer in self.fired


@dataclass(frozen=True)
class ReminderWindow:
    """How far before and after a prayer a reminder may fire."""

    lead: timedelta = timedelta(minutes=5)
    grace: timedelta = timedelta(minutes=2)

    def __post_init__(self) -> None:
        if self.lead < timedelta(0) or self.grace < timedelta(0):
            raise ValueError("Reminder lead and grace must not be negative")
        if self.width <= timedelta(0):
            raise ValueError("Reminder window must not be empty")

    @property
    def width(self) -> timedelta:
        return self.lead + self.grace

    def contains(self, scheduled: datetime, now: datetime) -> bool:
        """Is `now` inside [scheduled - lead, scheduled + grace)?"""
        return scheduled - self.lead <= now < scheduled + self.grace


class PlaybackState(str, Enum):
    """Audio playback state."""

    IDLE = "idle"
    PLAYING = "playing"


@dataclass(frozen=True)
class ActivePrayerMarker:
    """The prayer most recently reminded, until it expires."""

    prayer: PrayerName
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


@dataclass(frozen=True)
class SystemInfo:
    """Auto-detected location and timezone."""

    location: str
    timezone: str
