"""Codec normalization for provider audio payloads.

Responsibilities:
- Decode WAV and compressed (MP3) payloads into canonical 16-bit mono PCM.
- Encode PCM back into WAV containers and build the canonical empty WAV.
- Apply clamped gain and join per-chunk buffers in order.
"""

from __future__ import annotations

import io
from typing import Iterable
import wave

import numpy as np
import soundfile as sf

from ..errors import AudioDecodeError
from ..models.datatypes import CANONICAL_SAMPLE_RATE, PcmBuffer

SUPPORTED_CODECS = frozenset({"wav", "mp3"})
GAIN_EPSILON = 0.01
INT16_MAX = 32767
INT16_MIN = -32768
_DECODE_BLOCK_FRAMES = 4096


def empty(sample_rate: int = CANONICAL_SAMPLE_RATE) -> PcmBuffer:
    """Return a mono buffer with zero frames."""

    return PcmBuffer(samples=np.zeros(0, dtype=np.int16), channels=1, sample_rate=sample_rate)


def empty_wav() -> bytes:
    """Return a valid WAV container with 1 channel, 24000 Hz, 16-bit, zero frames."""

    return encode(empty())


def encode(pcm: PcmBuffer) -> bytes:
    """Encode PCM into a 16-bit WAV container."""

    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as writer:
        writer.setnchannels(pcm.channels)
        writer.setsampwidth(2)
        writer.setframerate(pcm.sample_rate)
        writer.writeframes(pcm.samples.astype("<i2", copy=False).tobytes())
    return buffer.getvalue()


def decode(data: bytes, codec: str, gain_factor: float = 1.0) -> PcmBuffer:
    """Decode one provider payload into mono 16-bit PCM.

    Args:
        data: Raw payload bytes; zero bytes decode to the empty buffer.
        codec: `wav` or `mp3`.
        gain_factor: Gain applied while converting compressed audio to 16-bit.

    Returns:
        Decoded buffer at the payload's own sample rate.

    Raises:
        AudioDecodeError: If the payload or container cannot be decoded.
        ValueError: If `codec` is not supported.
    """

    if codec not in SUPPORTED_CODECS:
        raise ValueError(f"Unsupported codec `{codec}`; expected one of {sorted(SUPPORTED_CODECS)}.")
    if not data:
        return empty()
    if codec == "wav":
        return gain(_decode_wav(data), gain_factor)
    return _decode_compressed(data, gain_factor)


def _decode_wav(data: bytes) -> PcmBuffer:
    """Read integer PCM from a WAV container and convert it to 16-bit mono."""

    try:
        with wave.open(io.BytesIO(data), "rb") as reader:
            channels = reader.getnchannels()
            sample_width = reader.getsampwidth()
            sample_rate = reader.getframerate()
            frames = reader.readframes(reader.getnframes())
    except (wave.Error, EOFError) as exc:
        raise AudioDecodeError(f"Invalid WAV payload: {exc}") from exc

    samples = _to_int16(frames, sample_width)
    usable = samples.size - samples.size % channels
    return PcmBuffer(
        samples=_downmix(samples[:usable], channels),
        channels=1,
        sample_rate=sample_rate,
    )


def _to_int16(frames: bytes, sample_width: int) -> np.ndarray:
    """Convert little-endian integer PCM of any supported width to int16."""

    usable = len(frames) - len(frames) % sample_width
    frames = frames[:usable]
    if sample_width == 1:
        unsigned = np.frombuffer(frames, dtype=np.uint8).astype(np.int16)
        return ((unsigned - 128) << 8).astype(np.int16)
    if sample_width == 2:
        return np.frombuffer(frames, dtype="<i2").astype(np.int16)
    if sample_width == 3:
        raw = np.frombuffer(frames, dtype=np.uint8).reshape(-1, 3).astype(np.int32)
        value = raw[:, 0] | (raw[:, 1] << 8) | (raw[:, 2] << 16)
        value = np.where(value & 0x800000, value - 0x1000000, value)
        return (value >> 8).astype(np.int16)
    if sample_width == 4:
        return (np.frombuffer(frames, dtype="<i4") >> 16).astype(np.int16)
    raise AudioDecodeError(f"Unsupported WAV sample width: {sample_width} bytes.")


def _downmix(samples: np.ndarray, channels: int) -> np.ndarray:
    """Average interleaved channels into one mono int16 channel."""

    if channels == 1:
        return samples
    mixed = samples.reshape(-1, channels).astype(np.float64).mean(axis=1)
    return np.clip(np.round(mixed), INT16_MIN, INT16_MAX).astype(np.int16)


def _decode_compressed(data: bytes, gain_factor: float) -> PcmBuffer:
    """Decode a compressed container block by block through `soundfile`.

    Unreadable blocks are skipped by seeking past them. End of stream stops
    decoding normally.
    """

    blocks: list[np.ndarray] = []
    try:
        with sf.SoundFile(io.BytesIO(data)) as source:
            sample_rate = source.samplerate
            while True:
                try:
                    block = source.read(_DECODE_BLOCK_FRAMES, dtype="float32", always_2d=True)
                except sf.SoundFileError:
                    _skip_block(source)
                    continue
                if block.shape[0] == 0:
                    break
                blocks.append(_float_block_to_int16(block.mean(axis=1), gain_factor))
    except sf.SoundFileError as exc:
        raise AudioDecodeError(f"Unable to decode compressed audio: {exc}") from exc

    if not blocks:
        return empty(sample_rate)
    return PcmBuffer(samples=np.concatenate(blocks), channels=1, sample_rate=sample_rate)


def _skip_block(source: sf.SoundFile) -> None:
    """Seek past one unreadable block, treating a failed seek as fatal."""

    try:
        source.seek(_DECODE_BLOCK_FRAMES, sf.SEEK_CUR)
    except (sf.SoundFileError, RuntimeError) as exc:
        raise AudioDecodeError(f"Unable to skip an undecodable audio block: {exc}") from exc


def _float_block_to_int16(block: np.ndarray, gain_factor: float) -> np.ndarray:
    """Scale normalized float samples by gain into clamped int16."""

    scaled = np.round(block.astype(np.float64) * gain_factor * INT16_MAX)
    return np.clip(scaled, INT16_MIN, INT16_MAX).astype(np.int16)


def gain(pcm: PcmBuffer, factor: float) -> PcmBuffer:
    """Multiply samples by `factor`, rounding and clamping to the int16 range.

    Factors within `GAIN_EPSILON` of 1.0 return the input buffer unchanged.
    """

    if abs(factor - 1.0) < GAIN_EPSILON:
        return pcm
    scaled = np.round(pcm.samples.astype(np.float64) * factor)
    return PcmBuffer(
        samples=np.clip(scaled, INT16_MIN, INT16_MAX).astype(np.int16),
        channels=pcm.channels,
        sample_rate=pcm.sample_rate,
    )


def concatenate(buffers: Iterable[PcmBuffer]) -> PcmBuffer:
    """Join buffers in the given order.

    Raises:
        AudioDecodeError: If non-empty buffers disagree on channels or sample rate.
    """

    parts = [buffer for buffer in buffers if not buffer.is_empty]
    if not parts:
        return empty()

    first = parts[0]
    for part in parts[1:]:
        if part.channels != first.channels or part.sample_rate != first.sample_rate:
            raise AudioDecodeError(
                "Incompatible PCM parameters for concatenation: "
                f"{first.channels}ch/{first.sample_rate}Hz vs "
                f"{part.channels}ch/{part.sample_rate}Hz"
            )
    if len(parts) == 1:
        return first
    return PcmBuffer(
        samples=np.concatenate([part.samples for part in parts]),
        channels=first.channels,
        sample_rate=first.sample_rate,
    )
