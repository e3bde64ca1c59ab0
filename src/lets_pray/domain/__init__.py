"""Domain layer - Business entities and value objects."""

from lets_pray.domain.models import (
    ActivePrayerMarker,
    AppSettings,
    PlaybackState,
    PrayerName,
    PrayerTime,
    ReminderWindow,
    ScheduleSnapshot,
    SystemInfo,
)

__all__ = [
    "ActivePrayerMarker",
    "AppSettings",
    "PlaybackState",
    "PrayerName",
    "PrayerTime",
    "ReminderWindow",
    "ScheduleSnapshot",
    "SystemInfo",
]
