"""Pull-based float32 audio source at the playback transport rate.

Responsibilities:
- Convert 16-bit PCM to interleaved little-endian float32 bytes.
- Adapt the source sample rate to the transport rate lazily, block by block.
- Expose a readable, non-seekable, unknown-length raw stream.
"""

from __future__ import annotations

import io
from typing import Iterator

import numpy as np

from ..models.datatypes import PcmBuffer
from ..telemetry.logger import RunLogger
from .resampler import SincResampler

DEFAULT_OUTPUT_SAMPLE_RATE = 48000
_BLOCK_FRAMES = 4096
_SCALE = 32767.0


class StreamSource(io.RawIOBase):
    """Readable float32 byte stream produced from one PCM buffer.

    Three regimes are selected from the source and output rates: pass-through when
    the source rate is at least the output rate, linear interpolation when the
    output rate is an integer multiple of the source rate, and sinc resampling
    otherwise.
    """

    def __init__(
        self,
        pcm: PcmBuffer,
        output_sample_rate: int = DEFAULT_OUTPUT_SAMPLE_RATE,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize the stream for one utterance."""

        super().__init__()
        if output_sample_rate <= 0:
            raise ValueError("`output_sample_rate` must be a positive integer.")
        self.pcm = pcm
        self.output_sample_rate = output_sample_rate
        self._run_logger = run_logger if run_logger is not None else RunLogger()
        self.regime = self._select_regime()
        self._blocks = self._iter_blocks()
        self._pending = b""
        self._cursor = 0

    @property
    def byte_len(self) -> int | None:
        """Total byte length; unknown for resampled streams."""

        return None

    @property
    def channels(self) -> int:
        return self.pcm.channels

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False

    def readinto(self, buffer) -> int:
        """Fill `buffer` with as many output bytes as are available."""

        view = memoryview(buffer).cast("B")
        written = 0
        while written < len(view):
            if self._cursor >= len(self._pending):
                block = next(self._blocks, None)
                if block is None:
                    break
                self._pending = block
                self._cursor = 0
            available = min(len(view) - written, len(self._pending) - self._cursor)
            view[written : written + available] = self._pending[self._cursor : self._cursor + available]
            written += available
            self._cursor += available
        return written

    def _select_regime(self) -> str:
        """Pick the adaptation regime for the source/output rate pair."""

        source_rate = self.pcm.sample_rate
        if source_rate >= self.output_sample_rate:
            if source_rate > self.output_sample_rate:
                self._run_logger.log_warning(
                    "stream",
                    "source_rate_above_output",
                    source_rate=source_rate,
                    output_rate=self.output_sample_rate,
                )
            return "passthrough"
        if self.output_sample_rate % source_rate == 0:
            return "linear"
        return "sinc"

    def _iter_blocks(self) -> Iterator[bytes]:
        """Yield converted byte blocks in playback order."""

        planar = self.pcm.planar().astype(np.float64)
        if self.regime == "passthrough":
            yield from self._passthrough_blocks(planar)
        elif self.regime == "linear":
            yield from self._linear_blocks(planar, self.output_sample_rate // self.pcm.sample_rate)
        else:
            yield from self._sinc_blocks(planar)

    def _passthrough_blocks(self, planar: np.ndarray) -> Iterator[bytes]:
        for start in range(0, planar.shape[1], _BLOCK_FRAMES):
            yield _to_float_bytes(planar[:, start : start + _BLOCK_FRAMES])

    def _linear_blocks(self, planar: np.ndarray, factor: int) -> Iterator[bytes]:
        """Emit `prev + (cur - prev) * j / factor` for `j = 1..factor` per sample."""

        previous = np.zeros((planar.shape[0], 1), dtype=np.float64)
        steps = np.arange(1, factor + 1, dtype=np.float64) / factor
        for start in range(0, planar.shape[1], _BLOCK_FRAMES):
            current = planar[:, start : start + _BLOCK_FRAMES]
            shifted = np.concatenate((previous, current[:, :-1]), axis=1)
            expanded = shifted[:, :, None] + (current - shifted)[:, :, None] * steps[None, None, :]
            previous = current[:, -1:]
            yield _to_float_bytes(expanded.reshape(planar.shape[0], -1))

    def _sinc_blocks(self, planar: np.ndarray) -> Iterator[bytes]:
        """Resample with a fixed-ratio sinc resampler, trimming the flushed tail."""

        ratio = self.output_sample_rate / self.pcm.sample_rate
        resampler = SincResampler(ratio, 1.0, planar.shape[0])
        remaining = int(round(planar.shape[1] * ratio))
        for start in range(0, planar.shape[1], _BLOCK_FRAMES):
            output = resampler.process(planar[:, start : start + _BLOCK_FRAMES])[:, :remaining]
            remaining -= output.shape[1]
            if output.shape[1]:
                yield _to_float_bytes(output)
        tail = resampler.flush()[:, :remaining]
        if tail.shape[1]:
            yield _to_float_bytes(tail)


def _to_float_bytes(planar: np.ndarray) -> bytes:
    """Interleave planar int16-scaled samples into little-endian float32 bytes."""

    interleaved = np.ascontiguousarray(planar.T).reshape(-1) / _SCALE
    return interleaved.astype("<f4").tobytes()
