"""Configuration management."""

import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Self


def _get_default_settings_path() -> Path:
    """Get default settings path."""
    return Path.home() / ".config" / "lets-pray" / "settings.json"


def _get_default_audio_dir() -> Path:
    """Get default audio directory."""
    return Path(__file__).parent / "assets" / "audio"


def _get_default_cache_dir() -> Path:
    """Directory for generated files (the fallback tone)."""
    return Path.home() / ".cache" / "lets-pray"


@dataclass
class AppConfig:
    """Application configuration."""

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8080
    log_level: str = "INFO"

    # File paths
    settings_path: Path = field(default_factory=_get_default_settings_path)
    audio_dir: Path = field(default_factory=_get_default_audio_dir)
    cache_dir: Path = field(default_factory=_get_default_cache_dir)
    adhan_filename: str = "adhan.mp3"

    # Reminder timing
    tick_seconds: float = 30.0
    reminder_lead_minutes: float = 5.0
    grace_minutes: float = 2.0
    marker_minutes: float = 5.0
    debounce_seconds: float = 1.0

    # Timeouts (seconds)
    provider_timeout: float = 10.0
    write_timeout: float = 5.0

    @property
    def adhan_path(self) -> Path:
        return self.audio_dir / self.adhan_filename

    @property
    def tick_interval(self) -> timedelta:
        return timedelta(seconds=self.tick_seconds)

    @property
    def reminder_lead(self) -> timedelta:
        return timedelta(minutes=self.reminder_lead_minutes)

    @property
    def grace(self) -> timedelta:
        return timedelta(minutes=self.grace_minutes)

    @property
    def marker_ttl(self) -> timedelta:
        return timedelta(minutes=self.marker_minutes)

    @property
    def debounce(self) -> timedelta:
        return timedelta(seconds=self.debounce_seconds)

    @classmethod
    def from_env(cls) -> Self:
        """Load configuration from environment variables."""
        return cls(
            host=os.getenv("LETS_PRAY_HOST", "127.0.0.1"),
            port=int(os.getenv("LETS_PRAY_PORT", "8080")),
            log_level=os.getenv("LETS_PRAY_LOG_LEVEL", "INFO"),
            settings_path=Path(
                os.getenv("LETS_PRAY_SETTINGS_PATH", str(_get_default_settings_path()))
            ),
            audio_dir=Path(os.getenv("LETS_PRAY_AUDIO_DIR", str(_get_default_audio_dir()))),
            cache_dir=Path(os.getenv("LETS_PRAY_CACHE_DIR", str(_get_default_cache_dir()))),
            adhan_filename=os.getenv("LETS_PRAY_ADHAN_FILE", "adhan.mp3"),
            tick_seconds=float(os.getenv("LETS_PRAY_TICK_SECONDS", "30")),
            reminder_lead_minutes=float(os.getenv("LETS_PRAY_REMINDER_LEAD_MINUTES", "5")),
            grace_minutes=float(os.getenv("LETS_PRAY_GRACE_MINUTES", "2")),
            marker_minutes=float(os.getenv("LETS_PRAY_MARKER_MINUTES", "5")),
            debounce_seconds=float(os.getenv("LETS_PRAY_DEBOUNCE_SECONDS", "1.0")),
            provider_timeout=float(os.getenv("LETS_PRAY_PROVIDER_TIMEOUT", "10.0")),
            write_timeout=float(os.getenv("LETS_PRAY_WRITE_TIMEOUT", "5.0")),
        )


_config: AppConfig | None = None


def get_config() -> AppConfig:
    """Get application configuration."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def setup_logging(level: str = "INFO") -> None:
    """Setup application logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
