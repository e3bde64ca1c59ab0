"""Tests for the settings owner."""

import asyncio

import pytest
from conftest import FakeResolver, FakeScheduler, InMemorySettingsRepository, record

from lets_pray.domain.errors import NotFoundError, PersistenceError, ProviderError
from lets_pray.domain.events import SettingsChangedEvent
from lets_pray.domain.models import DEFAULT_LOCATION, AppSettings, PrayerName
from lets_pray.infrastructure.event_bus import InMemoryEventBus
from lets_pray.services.ports import AutostartPort
from lets_pray.services.settings_store import SAVE_JOB_ID, SettingsStore


class RecordingAutostart(AutostartPort):
    def __init__(self) -> None:
        self.calls: list[bool] = []

    def apply(self, enabled: bool) -> None:
        self.calls.append(enabled)


@pytest.fixture
def store(
    repository: InMemorySettingsRepository, scheduler: FakeScheduler, event_bus: InMemoryEventBus
) -> SettingsStore:
    return SettingsStore(repository, scheduler, event_bus)


class TestLoad:
    """First run and stored settings."""

    async def test_load_first_run(self, store: SettingsStore) -> None:
        with pytest.raises(NotFoundError):
            await store.load()

    async def test_initialize_uses_defaults(self, store: SettingsStore) -> None:
        settings = await store.initialize()

        assert settings == AppSettings()
        assert settings.location == DEFAULT_LOCATION

    async def test_get_before_save(self, store: SettingsStore) -> None:
        await store.initialize()
        with pytest.raises(NotFoundError):
            store.get()

    async def test_load_stored(
        self, store: SettingsStore, repository: InMemorySettingsRepository
    ) -> None:
        repository.stored = AppSettings(location="Istanbul", play_sound=False)

        settings = await store.load()

        assert settings.location == "Istanbul"
        assert store.get() == settings
        assert not store.dirty

    async def test_current_is_a_copy(self, store: SettingsStore) -> None:
        first = store.current
        await store.set_play_sound(False)

        assert first.play_sound is True
        assert store.current.play_sound is False


class TestSave:
    """Immediate saves."""

    async def test_save_writes_and_announces(
        self, store: SettingsStore, repository: InMemorySettingsRepository, event_bus
    ) -> None:
        changes = record(event_bus, SettingsChangedEvent)
        await store.initialize()

        await store.save(AppSettings(location="Cairo"))

        assert repository.stored == AppSettings(location="Cairo")
        assert store.get().location == "Cairo"
        assert [e.changed_fields for e in changes] == [("location",)]

    async def test_announced_after_write(
        self, store: SettingsStore, repository: InMemorySettingsRepository, event_bus
    ) -> None:
        """Subscribers see the stored value and may use the store right away."""
        seen: list[str | None] = []

        async def on_change(event: SettingsChangedEvent) -> None:
            seen.append(repository.stored.location if repository.stored else None)
            await store.set_play_sound(False)

        event_bus.subscribe(SettingsChangedEvent, on_change)

        await asyncio.wait_for(store.save(AppSettings(location="Cairo")), timeout=1)

        assert seen == ["Cairo", "Cairo"]
        assert repository.stored == AppSettings(location="Cairo", play_sound=False)

    async def test_settled_skips_pending_edit(self, store: SettingsStore) -> None:
        await store.save(AppSettings(location="Cairo"))

        await store.set_location("Me")

        assert store.current.location == "Me"
        assert store.settled.location == "Cairo"

    async def test_toggles_write_at_once(
        self, store: SettingsStore, repository: InMemorySettingsRepository, scheduler: FakeScheduler
    ) -> None:
        await store.set_play_sound(False)
        await store.set_prayer_enabled(PrayerName.ASR, False)

        assert len(repository.writes) == 2
        assert repository.stored is not None
        assert not repository.stored.is_prayer_enabled(PrayerName.ASR)
        assert SAVE_JOB_ID not in scheduler.jobs

    async def test_unchanged_save_is_not_announced(self, store: SettingsStore, event_bus) -> None:
        await store.save(AppSettings())
        changes = record(event_bus, SettingsChangedEvent)

        await store.save(AppSettings())

        assert changes == []

    async def test_write_failure_keeps_dirty(
        self, store: SettingsStore, repository: InMemorySettingsRepository
    ) -> None:
        repository.fail = True

        with pytest.raises(PersistenceError):
            await store.save(AppSettings(location="Cairo"))

        assert store.dirty
        assert store.last_error == "Disk full"
        assert store.current.location == "Cairo"

        repository.fail = False
        await store.save(store.current)

        assert not store.dirty
        assert store.last_error is None
        assert repository.stored == AppSettings(location="Cairo")

    async def test_write_timeout(self, scheduler: FakeScheduler) -> None:
        class SlowRepository(InMemorySettingsRepository):
            async def save(self, settings: AppSettings) -> None:
                await asyncio.sleep(1)

        store = SettingsStore(SlowRepository(), scheduler, write_timeout=0.01)

        with pytest.raises(PersistenceError, match="timed out"):
            await store.save(AppSettings(location="Cairo"))

    async def test_run_at_startup_drives_autostart(
        self, repository: InMemorySettingsRepository, scheduler: FakeScheduler
    ) -> None:
        autostart = RecordingAutostart()
        store = SettingsStore(repository, scheduler, autostart=autostart)

        await store.set_run_at_startup(True)
        await store.set_play_sound(False)
        await store.set_run_at_startup(False)

        assert autostart.calls == [True, False]


class TestDebounce:
    """Location text edits."""

    async def test_burst_of_edits_writes_once(
        self,
        store: SettingsStore,
        repository: InMemorySettingsRepository,
        scheduler: FakeScheduler,
        event_bus,
    ) -> None:
        changes = record(event_bus, SettingsChangedEvent)

        for text in ("M", "Me", "Mec", "Mecc", "Mecca "):
            await store.set_location(text)

        assert repository.writes == []
        assert store.current.location == "Mecca"
        assert store.dirty

        await scheduler.run(SAVE_JOB_ID)

        assert [s.location for s in repository.writes] == ["Mecca"]
        assert len(changes) == 1
        assert not store.dirty

    async def test_toggle_cancels_pending_edit(
        self, store: SettingsStore, repository: InMemorySettingsRepository, scheduler: FakeScheduler
    ) -> None:
        await store.set_location("Medina")
        await store.set_play_sound(False)

        assert SAVE_JOB_ID not in scheduler.jobs
        assert repository.writes == [AppSettings(location="Medina", play_sound=False)]

    async def test_flush_failure_is_logged(
        self, store: SettingsStore, repository: InMemorySettingsRepository, scheduler: FakeScheduler
    ) -> None:
        repository.fail = True
        await store.set_location("Medina")

        await scheduler.run(SAVE_JOB_ID)

        assert store.dirty
        assert store.last_error == "Disk full"

    async def test_close_writes_pending_edit(
        self, store: SettingsStore, repository: InMemorySettingsRepository, scheduler: FakeScheduler
    ) -> None:
        await store.set_location("Medina")

        await store.close()

        assert SAVE_JOB_ID in scheduler.cancelled
        assert [s.location for s in repository.writes] == ["Medina"]


class TestAutoDetect:
    """One-shot location detection."""

    async def test_detected_location_applied(
        self, store: SettingsStore, repository: InMemorySettingsRepository
    ) -> None:
        info = await store.auto_detect_location(FakeResolver("Taipei, TW"))

        assert info.location == "Taipei, TW"
        assert repository.stored is not None
        assert repository.stored.location == "Taipei, TW"

    async def test_detection_failure(self, store: SettingsStore) -> None:
        with pytest.raises(ProviderError):
            await store.auto_detect_location(FakeResolver(error=ProviderError("offline")))
        assert store.current.location == DEFAULT_LOCATION

    async def test_detection_timeout(self, store: SettingsStore) -> None:
        resolver = FakeResolver()
        resolver.release.clear()

        with pytest.raises(ProviderError, match="timed out"):
            await store.auto_detect_location(resolver, timeout=0.01)

    async def test_later_completion_wins(
        self, store: SettingsStore, scheduler: FakeScheduler
    ) -> None:
        """A manual edit made while detection is running is overwritten when it answers."""
        resolver = FakeResolver("Taipei, TW")
        resolver.release.clear()
        detection = asyncio.create_task(store.auto_detect_location(resolver))
        await asyncio.sleep(0)

        await store.set_location("Kaohsiung")
        resolver.release.set()
        await detection

        assert store.current.location == "Taipei, TW"

    async def test_manual_edit_after_detection_wins(
        self, store: SettingsStore, scheduler: FakeScheduler
    ) -> None:
        await store.auto_detect_location(FakeResolver("Taipei, TW"))

        await store.set_location("Kaohsiung")
        await scheduler.run(SAVE_JOB_ID)

        assert store.get().location == "Kaohsiung"
