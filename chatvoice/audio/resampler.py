"""Block-based windowed-sinc resampler with a runtime-adjustable ratio.

Responsibilities:
- Resample planar float audio block by block, keeping history between blocks.
- Allow the ratio to change between blocks within a bounded relative range.
- Emit output aligned to the input, so no filter delay has to be removed.

The interpolation kernel is a sinc low-pass windowed by a squared Blackman-Harris
window, tabulated at `oversampling` fractional offsets and linearly interpolated
between neighbouring table rows.
"""

from __future__ import annotations

from functools import lru_cache
import math

import numpy as np

DEFAULT_SINC_LEN = 256
DEFAULT_OVERSAMPLING = 256
DEFAULT_CUTOFF = 0.95
_RATIO_TOLERANCE = 1e-9
_MAX_OUTPUTS_PER_PASS = 1024


def _blackman_harris2(position: np.ndarray) -> np.ndarray:
    """Evaluate the squared Blackman-Harris window for positions in `[0, 1]`."""

    phase = 2.0 * np.pi * position
    window = (
        0.35875
        - 0.48829 * np.cos(phase)
        + 0.14128 * np.cos(2.0 * phase)
        - 0.01168 * np.cos(3.0 * phase)
    )
    return window * window


@lru_cache(maxsize=16)
def _kernel_table(cutoff: float, sinc_len: int, oversampling: int) -> np.ndarray:
    """Return the `(oversampling + 1, sinc_len)` kernel table for one cutoff.

    Row `j` holds the tap weights for fractional offset `j / oversampling`. Each row
    is normalized to unit DC gain.
    """

    half = sinc_len // 2
    taps = np.arange(-half + 1, half + 1, dtype=np.float64)
    offsets = np.arange(oversampling + 1, dtype=np.float64) / oversampling
    distance = offsets[:, None] - taps[None, :]
    window = _blackman_harris2(np.clip((distance + half) / (2.0 * half), 0.0, 1.0))
    table = cutoff * np.sinc(cutoff * distance) * window
    table /= table.sum(axis=1, keepdims=True)
    table.setflags(write=False)
    return table


class SincResampler:
    """Resample planar audio with a windowed-sinc kernel.

    Output sample `k` is taken at input position `x_k`, starting at 0 and advancing
    by `1 / ratio` per output sample using the ratio active when it is produced.
    """

    def __init__(
        self,
        ratio: float,
        max_relative_ratio: float = 1.0,
        channels: int = 1,
        *,
        sinc_len: int = DEFAULT_SINC_LEN,
        oversampling: int = DEFAULT_OVERSAMPLING,
        cutoff: float = DEFAULT_CUTOFF,
    ) -> None:
        """Initialize resampler state.

        Args:
            ratio: Base output/input sample-rate ratio.
            max_relative_ratio: Bound for `set_ratio` relative to the base ratio.
            channels: Number of planar channels per block.
            sinc_len: Kernel length in input samples (even).
            oversampling: Number of tabulated fractional offsets.
            cutoff: Low-pass cutoff relative to the Nyquist frequency.
        """

        if ratio <= 0.0:
            raise ValueError("`ratio` must be positive.")
        if max_relative_ratio < 1.0:
            raise ValueError("`max_relative_ratio` must be at least 1.0.")
        if channels <= 0:
            raise ValueError("`channels` must be a positive integer.")
        if sinc_len < 2 or sinc_len % 2:
            raise ValueError("`sinc_len` must be an even integer of at least 2.")

        self.channels = channels
        self._base_ratio = ratio
        self._max_relative_ratio = max_relative_ratio
        self._ratio = ratio
        self._sinc_len = sinc_len
        self._half = sinc_len // 2
        self._oversampling = oversampling
        self._cutoff = cutoff
        self._taps = np.arange(-self._half + 1, self._half + 1, dtype=np.int64)
        self._history = np.zeros((channels, sinc_len), dtype=np.float64)
        self._history_start = -sinc_len
        self._position = 0.0
        self._input_frames = 0

    @property
    def ratio(self) -> float:
        return self._ratio

    @property
    def input_frames(self) -> int:
        """Number of real input frames consumed so far."""

        return self._input_frames

    def set_ratio(self, ratio: float) -> None:
        """Change the ratio used for subsequent output samples.

        Raises:
            ValueError: If `ratio` leaves the configured relative range.
        """

        relative = ratio / self._base_ratio
        lower = 1.0 / self._max_relative_ratio
        if relative < lower - _RATIO_TOLERANCE or relative > self._max_relative_ratio + _RATIO_TOLERANCE:
            raise ValueError(
                f"Ratio {ratio} is outside the allowed range "
                f"[{self._base_ratio * lower}, {self._base_ratio * self._max_relative_ratio}]."
            )
        self._ratio = ratio

    def process(self, block: np.ndarray) -> np.ndarray:
        """Consume one `(channels, frames)` block and return available output."""

        block = np.asarray(block, dtype=np.float64)
        if block.ndim != 2 or block.shape[0] != self.channels:
            raise ValueError(f"Expected a block shaped (channels={self.channels}, frames).")
        self._input_frames += block.shape[1]
        return self._consume(block)

    def flush(self) -> np.ndarray:
        """Emit every output sample positioned before the end of the real input.

        Silence is appended internally so the trailing kernel window is complete.
        """

        padding = np.zeros((self.channels, self._half), dtype=np.float64)
        return self._consume(padding)

    def _consume(self, block: np.ndarray) -> np.ndarray:
        """Append `block` to history and interpolate every reachable position."""

        buffer = np.concatenate((self._history, block), axis=1)
        buffer_start = self._history_start
        last_index = buffer_start + buffer.shape[1] - 1
        limit = last_index - self._half
        step = 1.0 / self._ratio

        count = max(0, math.ceil((limit + 1 - self._position) / step))
        positions = self._position + step * np.arange(count, dtype=np.float64)
        positions = positions[np.floor(positions) <= limit]

        output = np.empty((self.channels, positions.size), dtype=np.float64)
        table = _kernel_table(
            round(self._cutoff * min(1.0, self._ratio), 6),
            self._sinc_len,
            self._oversampling,
        )
        for offset in range(0, positions.size, _MAX_OUTPUTS_PER_PASS):
            window = positions[offset : offset + _MAX_OUTPUTS_PER_PASS]
            output[:, offset : offset + window.size] = self._interpolate(
                buffer, buffer_start, window, table
            )

        if positions.size:
            self._position = float(positions[-1]) + step
        keep_from = max(buffer_start, math.floor(self._position) - self._half)
        self._history = buffer[:, keep_from - buffer_start :]
        self._history_start = keep_from
        return output

    def _interpolate(
        self,
        buffer: np.ndarray,
        buffer_start: int,
        positions: np.ndarray,
        table: np.ndarray,
    ) -> np.ndarray:
        """Evaluate the kernel at `positions` against `buffer`."""

        integer = np.floor(positions)
        fraction = (positions - integer) * self._oversampling
        row = np.minimum(np.floor(fraction).astype(np.int64), self._oversampling - 1)
        blend = (fraction - row)[:, None]
        weights = table[row] * (1.0 - blend) + table[row + 1] * blend

        indices = integer.astype(np.int64)[:, None] + self._taps[None, :] - buffer_start
        return np.einsum("km,ckm->ck", weights, buffer[:, indices])
