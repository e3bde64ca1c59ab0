"""JSON-based settings repository."""

import json
import logging
from pathlib import Path

import aiofiles
import aiofiles.os

from lets_pray.domain.errors import NotFoundError, PersistenceError
from lets_pray.domain.models import AppSettings
from lets_pray.services.ports import SettingsRepositoryPort

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS_PATH = Path.home() / ".config" / "lets-pray" / "settings.json"


class JsonSettingsRepository(SettingsRepositoryPort):
    """Repository keeping the settings record in a JSON file."""

    def __init__(self, file_path: Path | None = None) -> None:
        """
        Initialize repository.

        Args:
            file_path: Settings file path (default: ~/.config/lets-pray/settings.json)
        """
        self._file_path = file_path or DEFAULT_SETTINGS_PATH

    @property
    def file_path(self) -> Path:
        """Settings file path."""
        return self._file_path

    async def load(self) -> AppSettings:
        """Load settings.

        A missing or unreadable file is reported as NotFoundError so the
        caller falls back to defaults.
        """
        if not self._file_path.exists():
            raise NotFoundError(f"No settings saved yet: {self._file_path}")

        try:
            async with aiofiles.open(self._file_path, encoding="utf-8") as f:
                data = json.loads(await f.read())
            settings = AppSettings.from_dict(data)
        except (json.JSONDecodeError, ValueError, TypeError, AttributeError) as e:
            logger.error(f"Settings file is invalid: {e}")
            raise NotFoundError(f"Settings file is invalid: {self._file_path}") from e
        except OSError as e:
            logger.error(f"Settings could not be read: {e}")
            raise NotFoundError(f"Settings could not be read: {self._file_path}") from e

        logger.info(f"Settings loaded: {self._file_path}")
        return settings

    async def save(self, settings: AppSettings) -> None:
        """Save settings through a temporary file and an atomic rename."""
        tmp_path = self._file_path.with_suffix(self._file_path.suffix + ".tmp")
        try:
            self._file_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(json.dumps(settings.to_dict(), ensure_ascii=False, indent=2))
            await aiofiles.os.replace(tmp_path, self._file_path)
        except OSError as e:
            logger.error(f"Settings could not be saved: {e}")
            raise PersistenceError(f"Settings could not be saved: {e}") from e
        logger.info(f"Settings saved: {self._file_path}")
