"""Pydantic schemas for API."""

from datetime import date, datetime

from pydantic import BaseModel, Field

from lets_pray.domain.models import (
    ActivePrayerMarker,
    AppSettings,
    PlaybackState,
    PrayerName,
    PrayerTime,
)


class SettingsSchema(BaseModel):
    """Full settings record."""

    location: str = Field(min_length=1, description="Place name or address")
    play_sound: bool = True
    enabled_prayers: list[PrayerName] = Field(default_factory=lambda: list(PrayerName))
    run_at_startup: bool = False

    @classmethod
    def from_domain(cls, settings: AppSettings) -> "SettingsSchema":
        return cls(
            location=settings.location,
            play_sound=settings.play_sound,
            enabled_prayers=[p for p in PrayerName if p in settings.enabled_prayers],
            run_at_startup=settings.run_at_startup,
        )

    def to_domain(self) -> AppSettings:
        return AppSettings(
            location=self.location.strip(),
            play_sound=self.play_sound,
            enabled_prayers=frozenset(self.enabled_prayers),
            run_at_startup=self.run_at_startup,
        )


class SettingsUpdateSchema(BaseModel):
    """Partial settings update; location is debounced, the rest applies at once."""

    location: str | None = Field(default=None, min_length=1)
    play_sound: bool | None = None
    enabled_prayers: list[PrayerName] | None = None
    run_at_startup: bool | None = None


class PrayerTimeSchema(BaseModel):
    """Single prayer."""

    name: PrayerName
    icon: str
    time: str  # HH:MM
    scheduled_at: datetime

    @classmethod
    def from_domain(cls, prayer: PrayerTime) -> "PrayerTimeSchema":
        return cls(
            name=prayer.name,
            icon=prayer.name.icon,
            time=prayer.time_str,
            scheduled_at=prayer.datetime,
        )


class SystemInfoSchema(BaseModel):
    """Detected location and timezone."""

    location: str
    timezone: str


class ActivePrayerSchema(BaseModel):
    """Prayer reminded most recently."""

    prayer: PrayerName
    expires_at: datetime

    @classmethod
    def from_domain(cls, marker: ActivePrayerMarker) -> "ActivePrayerSchema":
        return cls(prayer=marker.prayer, expires_at=marker.expires_at)


class ScheduledJobSchema(BaseModel):
    """Scheduled timer job."""

    job_id: str
    run_time: str


class PlaybackStateSchema(BaseModel):
    """Audio playback state."""

    state: PlaybackState
    is_playing: bool


class StatusSchema(BaseModel):
    """Scheduler and playback status."""

    version: str
    uptime: str
    scheduler_running: bool
    location: str
    schedule_date: date | None
    prayers: list[PrayerTimeSchema]
    fired: list[PrayerName]
    last_error: str | None
    settings_error: str | None
    active_prayer: ActivePrayerSchema | None
    playback: PlaybackState
    jobs: list[ScheduledJobSchema]


class ApiResponse(BaseModel):
    """Generic API response."""

    success: bool
    message: str
    data: dict | list | None = None
