"""Subprocess based audio players."""

import asyncio
import logging
import shutil
from abc import ABC, abstractmethod
from pathlib import Path

from lets_pray.services.ports import AudioPlayerPort

logger = logging.getLogger(__name__)


class BaseAudioPlayer(AudioPlayerPort, ABC):
    """Base class for players that spawn an external command."""

    #: File suffixes the command can decode.
    formats: frozenset[str] = frozenset({".mp3", ".wav", ".ogg"})

    def __init__(self) -> None:
        self._process: asyncio.subprocess.Process | None = None

    @abstractmethod
    def _get_command(self, file_path: str, volume: int) -> list[str]:
        """Build the playback command."""

    @abstractmethod
    def _is_available(self) -> bool:
        """Is the command installed?"""

    async def start(self, file_path: str, volume: int = 100) -> None:
        """Start playing a file (without waiting)."""
        if not Path(file_path).exists():
            raise FileNotFoundError(f"Audio file not found: {file_path}")

        if Path(file_path).suffix.lower() not in self.formats:
            raise RuntimeError(f"{self.__class__.__name__} cannot play {Path(file_path).suffix}")

        if not self._is_available():
            raise RuntimeError(f"{self.__class__.__name__} is not available")

        await self.stop()

        cmd = self._get_command(file_path, volume)
        logger.info(f"Starting playback: {' '.join(cmd)}")

        self._process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
        )
        logger.info(f"Playback process started: PID={self._process.pid}")

    async def wait(self) -> None:
        """Wait for the current playback to end.

        Raises RuntimeError when the player exits with an error (e.g. a file
        it cannot decode) without having been stopped.
        """
        process = self._process
        if process is None:
            return

        _, stderr = await process.communicate()

        # stop() or a newer start() may already own the slot
        stopped = self._process is not process
        if not stopped:
            self._process = None

        # negative return codes come from stop()
        if process.returncode and process.returncode > 0 and not stopped:
            error_msg = stderr.decode().strip() if stderr else ""
            raise RuntimeError(f"Player exited with code {process.returncode}: {error_msg}")

    async def stop(self) -> None:
        """Stop playing."""
        process = self._process
        if process is None:
            return
        self._process = None
        try:
            process.terminate()
            await asyncio.wait_for(process.wait(), timeout=2.0)
        except TimeoutError:
            process.kill()
            await process.wait()
        except ProcessLookupError:
            pass  # already gone

    def is_playing(self) -> bool:
        """Is something playing right now?"""
        return self._process is not None and self._process.returncode is None


class Mpg123Player(BaseAudioPlayer):
    """Playback through mpg123."""

    formats = frozenset({".mp3"})

    def _is_available(self) -> bool:
        return shutil.which("mpg123") is not None

    def _get_command(self, file_path: str, volume: int) -> list[str]:
        # mpg123 volume: 0-32768
        scaled_volume = int((volume / 100) * 32768)
        return ["mpg123", "--quiet", "--scale", str(scaled_volume), file_path]


class AplayPlayer(BaseAudioPlayer):
    """Playback through aplay (ALSA), WAV only."""

    formats = frozenset({".wav"})

    def _is_available(self) -> bool:
        return shutil.which("aplay") is not None

    def _get_command(self, file_path: str, volume: int) -> list[str]:  # noqa: ARG002
        return ["aplay", "-q", file_path]


class FfplayPlayer(BaseAudioPlayer):
    """Playback through ffplay (FFmpeg)."""

    def _is_available(self) -> bool:
        return shutil.which("ffplay") is not None

    def _get_command(self, file_path: str, volume: int) -> list[str]:
        return [
            "ffplay",
            "-nodisp",
            "-autoexit",
            "-volume",
            str(volume),
            "-loglevel",
            "quiet",
            file_path,
        ]


class PulseAudioPlayer(BaseAudioPlayer):
    """Playback through paplay (PulseAudio)."""

    formats = frozenset({".wav", ".ogg"})

    def _is_available(self) -> bool:
        return shutil.which("paplay") is not None

    def _get_command(self, file_path: str, volume: int) -> list[str]:
        # paplay volume: 0-65536
        scaled_volume = int((volume / 100) * 65536)
        return ["paplay", f"--volume={scaled_volume}", file_path]


class NullAudioPlayer(AudioPlayerPort):
    """Used when no player command is installed: refuses every file."""

    async def start(self, file_path: str, volume: int = 100) -> None:  # noqa: ARG002
        raise RuntimeError(f"No audio player installed, cannot play {file_path}")

    async def wait(self) -> None:
        return None

    async def stop(self) -> None:
        return None

    def is_playing(self) -> bool:
        return False


PLAYERS: list[tuple[str, type[BaseAudioPlayer]]] = [
    ("mpg123", Mpg123Player),  # best for MP3
    ("ffplay", FfplayPlayer),  # many formats
    ("paplay", PulseAudioPlayer),
    ("aplay", AplayPlayer),  # ALSA, WAV only
]


def get_best_player(suffix: str = ".mp3") -> AudioPlayerPort:
    """Return the best installed player for files with `suffix`."""
    for name, player_class in PLAYERS:
        if suffix in player_class.formats and shutil.which(name) is not None:
            logger.info(f"Audio player selected for {suffix}: {name}")
            return player_class()

    logger.warning(f"No audio player found for {suffix}; install mpg123, ffplay, paplay or aplay.")
    return NullAudioPlayer()
