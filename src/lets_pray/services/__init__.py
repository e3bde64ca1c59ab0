"""Service layer - Business logic."""

from lets_pray.services.audio_controller import AudioPlaybackController
from lets_pray.services.notification_dispatcher import NotificationDispatcher
from lets_pray.services.ports import (
    AudioPlayerPort,
    AutostartPort,
    EventBusPort,
    LocationResolverPort,
    NotifierPort,
    PrayerTimeProviderPort,
    SchedulerPort,
    SettingsRepositoryPort,
    Subscription,
)
from lets_pray.services.reminder_scheduler import ReminderScheduler
from lets_pray.services.schedule_cache import ScheduleCache
from lets_pray.services.settings_store import SettingsStore

__all__ = [
    "AudioPlaybackController",
    "AudioPlayerPort",
    "AutostartPort",
    "EventBusPort",
    "LocationResolverPort",
    "NotificationDispatcher",
    "NotifierPort",
    "PrayerTimeProviderPort",
    "ReminderScheduler",
    "ScheduleCache",
    "SchedulerPort",
    "SettingsRepositoryPort",
    "SettingsStore",
    "Subscription",
]
