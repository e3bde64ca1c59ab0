"""Application state and dependencies."""

from dataclasses import dataclass
from datetime import datetime

from lets_pray.config import AppConfig, get_config
from lets_pray.domain.events import PlayAdhanEvent, ReminderEvent
from lets_pray.domain.models import ReminderWindow
from lets_pray.infrastructure.aladhan import AladhanPrayerTimeProvider
from lets_pray.infrastructure.audio import get_best_player
from lets_pray.infrastructure.autostart import XdgAutostart
from lets_pray.infrastructure.event_bus import InMemoryEventBus
from lets_pray.infrastructure.location import IpInfoLocationResolver
from lets_pray.infrastructure.notifier import get_best_notifier
from lets_pray.infrastructure.scheduler import APSchedulerAdapter
from lets_pray.infrastructure.settings_repository import JsonSettingsRepository
from lets_pray.infrastructure.tone import ensure_fallback_tone
from lets_pray.services.audio_controller import AudioPlaybackController
from lets_pray.services.notification_dispatcher import NotificationDispatcher
from lets_pray.services.ports import (
    EventBusPort,
    LocationResolverPort,
    PrayerTimeProviderPort,
    SchedulerPort,
)
from lets_pray.services.reminder_scheduler import ReminderScheduler
from lets_pray.services.schedule_cache import ScheduleCache
from lets_pray.services.settings_store import SettingsStore


@dataclass
class AppState:
    """Application state container."""

    config: AppConfig
    settings_store: SettingsStore
    provider: PrayerTimeProviderPort
    location_resolver: LocationResolverPort
    reminder_scheduler: ReminderScheduler
    dispatcher: NotificationDispatcher
    audio: AudioPlaybackController
    scheduler_adapter: SchedulerPort
    event_bus: EventBusPort
    started_at: datetime


# Global application state (singleton)
_app_state: AppState | None = None


def wire_event_handlers(
    event_bus: EventBusPort,
    dispatcher: NotificationDispatcher,
    audio: AudioPlaybackController,
) -> None:
    """Subscribe the reminder consumers to the bus."""
    event_bus.subscribe(ReminderEvent, dispatcher.dispatch)
    event_bus.subscribe(PlayAdhanEvent, audio.handle_play_event)


async def initialize_app_state(config: AppConfig | None = None) -> AppState:
    """
    Initialize application state.

    Args:
        config: Application configuration (default: from environment)

    Returns:
        Initialized AppState
    """
    global _app_state

    if _app_state is not None:
        return _app_state

    config = config or get_config()

    # Infrastructure
    event_bus = InMemoryEventBus()
    scheduler_adapter = APSchedulerAdapter()
    provider = AladhanPrayerTimeProvider(timeout=config.provider_timeout)
    resolver = IpInfoLocationResolver()

    # Settings
    settings_store = SettingsStore(
        JsonSettingsRepository(config.settings_path),
        scheduler_adapter,
        event_bus,
        autostart=XdgAutostart(),
        debounce=config.debounce,
        write_timeout=config.write_timeout,
    )
    await settings_store.initialize()

    # Audio
    audio = AudioPlaybackController(
        player=get_best_player(config.adhan_path.suffix.lower()),
        adhan_path=config.adhan_path,
        fallback_path=ensure_fallback_tone(config.cache_dir),
        fallback_player=get_best_player(".wav"),
        event_bus=event_bus,
    )

    dispatcher = NotificationDispatcher(
        get_best_notifier(), scheduler_adapter, marker_ttl=config.marker_ttl
    )

    reminder_scheduler = ReminderScheduler(
        ScheduleCache(provider, timeout=config.provider_timeout),
        settings_store,
        event_bus,
        scheduler_adapter,
        window=ReminderWindow(lead=config.reminder_lead, grace=config.grace),
        interval=config.tick_interval,
    )

    wire_event_handlers(event_bus, dispatcher, audio)

    _app_state = AppState(
        config=config,
        settings_store=settings_store,
        provider=provider,
        location_resolver=resolver,
        reminder_scheduler=reminder_scheduler,
        dispatcher=dispatcher,
        audio=audio,
        scheduler_adapter=scheduler_adapter,
        event_bus=event_bus,
        started_at=datetime.now(),
    )

    return _app_state


def get_app_state() -> AppState:
    """Get current application state."""
    if _app_state is None:
        raise RuntimeError("Application state not initialized")
    return _app_state


async def shutdown_app_state() -> None:
    """Cancel every timer and stop playback."""
    global _app_state

    if _app_state is not None:
        await _app_state.reminder_scheduler.stop()
        await _app_state.settings_store.close()
        _app_state.dispatcher.close()
        await _app_state.audio.stop()
        if isinstance(_app_state.scheduler_adapter, APSchedulerAdapter):
            _app_state.scheduler_adapter.shutdown()
        _app_state = None
