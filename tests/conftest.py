"""Shared pytest fixtures for the full chatvoice test suite."""

from __future__ import annotations

import io
from typing import Callable
import wave

from loguru import logger
import numpy as np
import pytest

from chatvoice.models.datatypes import PcmBuffer


def build_wav(
    samples: list[int] | np.ndarray,
    *,
    channels: int = 1,
    sample_rate: int = 24000,
    sample_width: int = 2,
) -> bytes:
    """Build a little-endian PCM WAV payload from integer samples."""

    values = np.asarray(samples, dtype=np.int64)
    if sample_width == 1:
        raw = values.astype(np.uint8).tobytes()
    elif sample_width == 2:
        raw = values.astype("<i2").tobytes()
    elif sample_width == 3:
        raw = b"".join(int(value).to_bytes(3, "little", signed=True) for value in values)
    else:
        raw = values.astype("<i4").tobytes()

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav_file:
        wav_file.setnchannels(channels)
        wav_file.setsampwidth(sample_width)
        wav_file.setframerate(sample_rate)
        wav_file.writeframes(raw)
    return buffer.getvalue()


@pytest.fixture
def wav_bytes() -> Callable[..., bytes]:
    """Provide the WAV payload builder to tests that fake provider responses."""

    return build_wav


@pytest.fixture
def tone() -> Callable[..., PcmBuffer]:
    """Provide a builder for deterministic sine-tone PCM buffers."""

    def _tone(
        seconds: float,
        *,
        frequency: float = 440.0,
        sample_rate: int = 24000,
        amplitude: int = 8000,
    ) -> PcmBuffer:
        frames = int(round(seconds * sample_rate))
        time = np.arange(frames, dtype=np.float64) / sample_rate
        samples = np.round(amplitude * np.sin(2.0 * np.pi * frequency * time)).astype(np.int16)
        return PcmBuffer(samples=samples, channels=1, sample_rate=sample_rate)

    return _tone


@pytest.fixture(autouse=True)
def _reset_log_sinks() -> None:
    """Drop loguru sinks so log lines never leak into closed CLI runner streams."""

    logger.remove()
