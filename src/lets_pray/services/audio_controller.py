"""Adhan playback state machine."""

import asyncio
import contextlib
import logging
from pathlib import Path

from lets_pray.domain.events import (
    AdhanFinishedEvent,
    AdhanStartedEvent,
    AudioErrorEvent,
    DomainEvent,
    PlayAdhanEvent,
)
from lets_pray.domain.models import PlaybackState
from lets_pray.services.ports import AudioPlayerPort, EventBusPort

logger = logging.getLogger(__name__)


class AudioPlaybackController:
    """Owns the one playback of the process.

    States are Idle and Playing. play() while Playing stops the current
    output before starting the new one; completion of the output moves back
    to Idle; stop() halts output at once. If the adhan file cannot be
    started, or its player exits with an error, the built-in tone is played
    instead.
    """

    def __init__(
        self,
        player: AudioPlayerPort,
        adhan_path: Path,
        fallback_path: Path,
        *,
        fallback_player: AudioPlayerPort | None = None,
        event_bus: EventBusPort | None = None,
        volume: int = 100,
    ) -> None:
        """
        Initialize controller.

        Args:
            player: Player for the adhan file
            adhan_path: Adhan audio file
            fallback_path: Built-in tone (WAV)
            fallback_player: Player for the tone (default: `player`)
            event_bus: Receives playback events (optional)
            volume: Playback volume (0-100)
        """
        if not 0 <= volume <= 100:
            raise ValueError(f"Invalid volume: {volume}")
        self._player = player
        self._fallback_player = fallback_player or player
        self._adhan_path = adhan_path
        self._fallback_path = fallback_path
        self._event_bus = event_bus
        self._volume = volume

        self._state = PlaybackState.IDLE
        self._lock = asyncio.Lock()
        self._active: AudioPlayerPort | None = None
        self._watcher: asyncio.Task[None] | None = None
        self._generation = 0

    @property
    def state(self) -> PlaybackState:
        return self._state

    def is_playing(self) -> bool:
        return self._state is PlaybackState.PLAYING

    async def play(self) -> PlaybackState:
        """Start the adhan, preempting whatever is playing."""
        async with self._lock:
            if self._state is PlaybackState.PLAYING:
                logger.info("Playback already running, restarting it.")
                await self._halt()

            started = await self._start_output()
            if started is None:
                return self._state

            source, fallback = started
            self._state = PlaybackState.PLAYING
            self._generation += 1
            self._watcher = asyncio.create_task(
                self._watch(self._generation, self._active, fallback)
            )

        await self._publish(AdhanStartedEvent(source=str(source), fallback=fallback))
        return PlaybackState.PLAYING

    async def stop(self) -> None:
        """Stop playback (no-op when idle)."""
        async with self._lock:
            if self._state is not PlaybackState.PLAYING:
                return
            await self._halt()
            logger.info("Playback stopped.")
        await self._publish(AdhanFinishedEvent(interrupted=True))

    async def handle_play_event(self, event: PlayAdhanEvent) -> None:
        """Event bus handler for PlayAdhanEvent."""
        prayer = event.prayer.value if event.prayer else "test"
        logger.info(f"Adhan requested ({prayer}).")
        await self.play()

    async def _start_output(self) -> tuple[Path, bool] | None:
        try:
            await self._player.start(str(self._adhan_path), volume=self._volume)
            self._active = self._player
            return self._adhan_path, False
        except (FileNotFoundError, RuntimeError, OSError) as e:
            logger.warning(f"Adhan could not be played ({e}), using built-in tone.")
        return await self._start_fallback()

    async def _start_fallback(self) -> tuple[Path, bool] | None:
        try:
            await self._fallback_player.start(str(self._fallback_path), volume=self._volume)
            self._active = self._fallback_player
            return self._fallback_path, True
        except (FileNotFoundError, RuntimeError, OSError) as e:
            error_msg = f"Built-in tone could not be played: {e}"
            logger.error(error_msg)
            await self._publish(AudioErrorEvent(error_message=error_msg))
            return None

    async def _halt(self) -> None:
        """Stop the current output and go Idle; caller holds the lock."""
        watcher, self._watcher = self._watcher, None
        if watcher is not None and watcher is not asyncio.current_task():
            watcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await watcher
        if self._active is not None:
            await self._active.stop()
            self._active = None
        self._state = PlaybackState.IDLE

    async def _watch(self, generation: int, player: AudioPlayerPort | None, fallback: bool) -> None:
        while True:
            failed = False
            if player is not None:
                try:
                    await player.wait()
                except RuntimeError as e:
                    logger.warning(f"Playback failed: {e}")
                    failed = True
                except OSError as e:
                    logger.warning(f"Lost track of playback: {e}")

            async with self._lock:
                # a newer play() owns the state now
                if generation != self._generation or self._state is not PlaybackState.PLAYING:
                    return
                # the adhan file started but could not be decoded
                started = await self._start_fallback() if failed and not fallback else None
                if started is None:
                    self._state = PlaybackState.IDLE
                    self._active = None
                    self._watcher = None
                else:
                    player, fallback = self._active, True

            if started is None:
                break
            logger.warning("Adhan stream failed, playing built-in tone.")
            await self._publish(AdhanStartedEvent(source=str(started[0]), fallback=True))

        logger.info("Playback finished.")
        await self._publish(AdhanFinishedEvent())

    async def _publish(self, event: DomainEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event)
