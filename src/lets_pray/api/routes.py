"""API Routes."""

import asyncio
import json
import logging
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import StreamingResponse

from lets_pray import __version__
from lets_pray.api.dependencies import AppState, get_app_state
from lets_pray.api.schemas import (
    ActivePrayerSchema,
    ApiResponse,
    PlaybackStateSchema,
    PrayerTimeSchema,
    ScheduledJobSchema,
    SettingsSchema,
    SettingsUpdateSchema,
    StatusSchema,
    SystemInfoSchema,
)
from lets_pray.domain.errors import NotFoundError, PersistenceError, ProviderError
from lets_pray.domain.events import DomainEvent, PlayAdhanEvent, ReminderEvent
from lets_pray.domain.models import PrayerName

logger = logging.getLogger(__name__)

router = APIRouter()

PUSHED_EVENTS: tuple[type[DomainEvent], ...] = (ReminderEvent, PlayAdhanEvent)
KEEPALIVE_SECONDS = 15.0


def format_sse(event: DomainEvent) -> str:
    """Encode an event as a server-sent-events message."""
    return f"event: {event.channel}\ndata: {json.dumps(event.payload())}\n\n"


def _persistence_failed(e: PersistenceError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))


# ============== Settings ==============


@router.get("/settings", response_model=SettingsSchema)
async def get_settings(state: Annotated[AppState, Depends(get_app_state)]) -> SettingsSchema:
    """Stored settings; 404 before the first save, the client then uses defaults."""
    try:
        settings = state.settings_store.get()
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    return SettingsSchema.from_domain(settings)


@router.put("/settings", response_model=ApiResponse)
async def save_settings(
    settings: SettingsSchema,
    state: Annotated[AppState, Depends(get_app_state)],
) -> ApiResponse:
    """Replace and write all settings."""
    try:
        await state.settings_store.save(settings.to_domain())
    except PersistenceError as e:
        raise _persistence_failed(e) from e
    return ApiResponse(success=True, message="Settings saved.")


@router.patch("/settings", response_model=SettingsSchema)
async def update_settings(
    update: SettingsUpdateSchema,
    state: Annotated[AppState, Depends(get_app_state)],
) -> SettingsSchema:
    """Partial update: location text is debounced, switches are saved at once."""
    store = state.settings_store
    try:
        if update.location is not None:
            await store.set_location(update.location)
        if update.play_sound is not None:
            await store.set_play_sound(update.play_sound)
        if update.run_at_startup is not None:
            await store.set_run_at_startup(update.run_at_startup)
        if update.enabled_prayers is not None:
            prayers = frozenset(update.enabled_prayers)
            await store.mutate(lambda s: s.copy(enabled_prayers=prayers))
    except PersistenceError as e:
        raise _persistence_failed(e) from e
    return SettingsSchema.from_domain(store.current)


@router.post("/settings/location/detect", response_model=SystemInfoSchema)
async def detect_location(state: Annotated[AppState, Depends(get_app_state)]) -> SystemInfoSchema:
    """Auto-detect the location and store it."""
    try:
        info = await state.settings_store.auto_detect_location(
            state.location_resolver, timeout=state.config.provider_timeout
        )
    except ProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    except PersistenceError as e:
        raise _persistence_failed(e) from e
    return SystemInfoSchema(location=info.location, timezone=info.timezone)


# ============== Prayer Times ==============


@router.get("/prayer-times", response_model=list[PrayerTimeSchema])
async def fetch_prayer_times(
    state: Annotated[AppState, Depends(get_app_state)],
    location: Annotated[str | None, Query(min_length=1)] = None,
) -> list[PrayerTimeSchema]:
    """Today's prayer times for a location (default: the configured one)."""
    location = location or state.settings_store.current.location
    today = datetime.now().astimezone().date()
    try:
        prayers = await asyncio.wait_for(
            state.provider.fetch(location, today), state.config.provider_timeout
        )
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    except ProviderError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e
    except TimeoutError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail="Prayer time request timed out"
        ) from e
    return [PrayerTimeSchema.from_domain(p) for p in prayers]


@router.post("/schedule/refresh", response_model=ApiResponse)
async def refresh_schedule(state: Annotated[AppState, Depends(get_app_state)]) -> ApiResponse:
    """Refetch today's schedule; prayers already reminded stay reminded."""
    snapshot = await state.reminder_scheduler.refresh()
    error = state.reminder_scheduler.last_error
    return ApiResponse(
        success=error is None,
        message=error or "Schedule refreshed.",
        data={"prayer_count": len(snapshot.prayers) if snapshot else 0},
    )


@router.get("/prayers")
async def get_prayer_names() -> list[dict[str, str]]:
    """List prayer names."""
    return [{"value": p.value, "icon": p.icon} for p in PrayerName]


# ============== System ==============


@router.get("/system-info", response_model=SystemInfoSchema)
async def get_system_info(state: Annotated[AppState, Depends(get_app_state)]) -> SystemInfoSchema:
    """Detected location and timezone, without storing them."""
    try:
        info = await asyncio.wait_for(
            state.location_resolver.detect(), state.config.provider_timeout
        )
    except (ProviderError, TimeoutError) as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e) or "Location detection timed out"
        ) from e
    return SystemInfoSchema(location=info.location, timezone=info.timezone)


@router.get("/status", response_model=StatusSchema)
async def get_status(state: Annotated[AppState, Depends(get_app_state)]) -> StatusSchema:
    """Scheduler, reminder and playback status."""
    scheduler = state.reminder_scheduler
    snapshot = scheduler.snapshot
    marker = state.dispatcher.active_marker()
    uptime = datetime.now() - state.started_at

    return StatusSchema(
        version=__version__,
        uptime=str(uptime).split(".")[0],
        scheduler_running=scheduler.running,
        location=state.settings_store.current.location,
        schedule_date=snapshot.schedule_date if snapshot else None,
        prayers=[PrayerTimeSchema.from_domain(p) for p in snapshot.prayers] if snapshot else [],
        fired=[p for p in PrayerName if p in scheduler.fired],
        last_error=scheduler.last_error,
        settings_error=state.settings_store.last_error,
        active_prayer=ActivePrayerSchema.from_domain(marker) if marker else None,
        playback=state.audio.state,
        jobs=[
            ScheduledJobSchema(job_id=job_id, run_time=run_time.strftime("%Y-%m-%d %H:%M:%S"))
            for job_id, run_time in state.scheduler_adapter.get_scheduled_jobs()
        ],
    )


# ============== Audio ==============


@router.post("/audio/test", response_model=PlaybackStateSchema)
async def test_adhan_sound(
    state: Annotated[AppState, Depends(get_app_state)],
) -> PlaybackStateSchema:
    """Play the adhan now; /audio/stop halts it."""
    playback = await state.audio.play()
    return PlaybackStateSchema(state=playback, is_playing=state.audio.is_playing())


@router.post("/audio/stop", response_model=PlaybackStateSchema)
async def stop_audio(state: Annotated[AppState, Depends(get_app_state)]) -> PlaybackStateSchema:
    """Stop playback."""
    await state.audio.stop()
    return PlaybackStateSchema(state=state.audio.state, is_playing=state.audio.is_playing())


@router.get("/audio/state", response_model=PlaybackStateSchema)
async def get_audio_state(
    state: Annotated[AppState, Depends(get_app_state)],
) -> PlaybackStateSchema:
    """Is the adhan playing?"""
    return PlaybackStateSchema(state=state.audio.state, is_playing=state.audio.is_playing())


# ============== Events ==============


@router.get("/events")
async def stream_events(
    request: Request,
    state: Annotated[AppState, Depends(get_app_state)],
) -> StreamingResponse:
    """Server-sent `prayer-reminder` and `play-adhan` events."""
    queue: asyncio.Queue[DomainEvent] = asyncio.Queue(maxsize=100)

    def enqueue(event: DomainEvent) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning(f"Event stream is not reading, dropped {event.channel}")

    subscriptions = [state.event_bus.subscribe(t, enqueue) for t in PUSHED_EVENTS]

    async def stream() -> AsyncIterator[str]:
        try:
            while not await request.is_disconnected():
                try:
                    event = await asyncio.wait_for(queue.get(), KEEPALIVE_SECONDS)
                except TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield format_sse(event)
        finally:
            for subscription in subscriptions:
                subscription.cancel()

    return StreamingResponse(stream(), media_type="text/event-stream")
