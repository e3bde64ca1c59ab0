"""Infrastructure layer - Adapters and implementations."""

from lets_pray.infrastructure.aladhan import AladhanPrayerTimeProvider
from lets_pray.infrastructure.audio import NullAudioPlayer, get_best_player
from lets_pray.infrastructure.autostart import XdgAutostart
from lets_pray.infrastructure.event_bus import InMemoryEventBus
from lets_pray.infrastructure.location import IpInfoLocationResolver
from lets_pray.infrastructure.notifier import LoggingNotifier, get_best_notifier
from lets_pray.infrastructure.scheduler import APSchedulerAdapter
from lets_pray.infrastructure.settings_repository import JsonSettingsRepository

__all__ = [
    "APSchedulerAdapter",
    "AladhanPrayerTimeProvider",
    "InMemoryEventBus",
    "IpInfoLocationResolver",
    "JsonSettingsRepository",
    "LoggingNotifier",
    "NullAudioPlayer",
    "XdgAutostart",
    "get_best_notifier",
    "get_best_player",
]
