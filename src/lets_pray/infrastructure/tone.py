"""Built-in fallback tone, generated as a small WAV file."""

import logging
import wave
from pathlib import Path

import numpy as np

logger = logging.getLogger(__name__)

SAMPLE_RATE = 22050
TONE_FILENAME = "fallback_tone.wav"

# (frequency Hz, duration s) pairs; 0 Hz is silence
TONE_PATTERN: tuple[tuple[float, float], ...] = (
    (880.0, 0.25),
    (0.0, 0.1),
    (880.0, 0.25),
    (0.0, 0.1),
    (1320.0, 0.5),
)


def _create_tone(frequency: float, duration: float, amplitude: float = 0.4) -> np.ndarray:
    """Sine wave with a short linear fade in and out, as 16-bit PCM."""
    n = int(SAMPLE_RATE * duration)
    if frequency <= 0:
        return np.zeros(n, dtype=np.int16)

    t = np.linspace(0, duration, n, False)
    samples = amplitude * np.sin(frequency * t * 2 * np.pi)

    # avoids clicks at the edges
    fade = min(int(SAMPLE_RATE * 0.01), n // 2)
    if fade:
        samples[:fade] *= np.linspace(0, 1, fade)
        samples[-fade:] *= np.linspace(1, 0, fade)
    return (samples * 32767).astype(np.int16)


def build_tone(pattern: tuple[tuple[float, float], ...] = TONE_PATTERN) -> np.ndarray:
    """Concatenate the pattern into one mono sample array."""
    return np.concatenate([_create_tone(frequency, duration) for frequency, duration in pattern])


def ensure_fallback_tone(directory: Path) -> Path:
    """Write the tone into `directory` unless it is already there."""
    path = directory / TONE_FILENAME
    if path.exists():
        return path

    directory.mkdir(parents=True, exist_ok=True)
    with wave.open(str(path), "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(SAMPLE_RATE)
        wav.writeframes(build_tone().astype("<i2").tobytes())
    logger.info(f"Fallback tone written: {path}")
    return path
