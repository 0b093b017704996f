"""Progressive time-stretching of long utterances.

Responsibilities:
- Play the first `initial_delay` seconds at normal speed.
- Ramp playback speed up to `target_speed` over `ramp_duration` seconds.
- Keep output aligned with the input and trim padding-derived silence.
"""

from __future__ import annotations

import numpy as np

from ..models.datatypes import PcmBuffer, TimeStretchConfig
from ..telemetry.logger import RunLogger
from .resampler import SincResampler

MIN_BLOCK_FRAMES = 4096
RATIO_HEADROOM = 1.1
_SCALE = 32767.0


class TimeStretchEngine:
    """Apply a speed ramp to PCM through a variable-ratio sinc resampler."""

    def __init__(
        self,
        config: TimeStretchConfig | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize the engine with a ramp configuration."""

        self.config = config if config is not None else TimeStretchConfig()
        self._run_logger = run_logger if run_logger is not None else RunLogger()

    def ratio_for(self, elapsed_seconds: float) -> float:
        """Return the clamped resampling ratio for the given processed duration."""

        max_relative = self.config.target_speed * RATIO_HEADROOM
        speed = self.config.speed_at(elapsed_seconds)
        return min(max(1.0 / speed, 1.0 / max_relative), max_relative)

    @staticmethod
    def block_frames(sample_rate: int) -> int:
        """Return the per-block frame count for a sample rate."""

        return max(sample_rate // 30, MIN_BLOCK_FRAMES)

    def process(self, pcm: PcmBuffer) -> PcmBuffer:
        """Time-stretch one utterance.

        Utterances no longer than `initial_delay` are returned unchanged. Longer ones
        are resampled block by block, with the ratio derived from the duration of
        input already processed before each block.

        Args:
            pcm: Source audio at any sample rate and channel count.

        Returns:
            New buffer at the same sample rate and channel count.
        """

        if pcm.is_empty or pcm.duration_seconds <= self.config.initial_delay:
            return pcm

        self._run_logger.log_stage_start(
            "timestretch",
            frames=pcm.frame_count,
            sample_rate=pcm.sample_rate,
            target_speed=self.config.target_speed,
        )
        sample_rate = pcm.sample_rate
        block_size = self.block_frames(sample_rate)
        planar = pcm.planar().astype(np.float64) / _SCALE
        resampler = SincResampler(
            1.0,
            self.config.target_speed * RATIO_HEADROOM,
            pcm.channels,
        )

        outputs: list[np.ndarray] = []
        expected_frames = 0.0
        processed_frames = 0
        while processed_frames < pcm.frame_count:
            block = planar[:, processed_frames : processed_frames + block_size]
            ratio = self.ratio_for(processed_frames / sample_rate)
            resampler.set_ratio(ratio)
            outputs.append(resampler.process(block))
            expected_frames += block.shape[1] * ratio
            processed_frames += block.shape[1]
        outputs.append(resampler.flush())

        stretched = np.concatenate(outputs, axis=1)[:, : int(round(expected_frames))]
        samples = np.clip(np.round(stretched * _SCALE), -32768, 32767).astype(np.int16)
        result = PcmBuffer.from_planar(samples, sample_rate)
        self._run_logger.log_stage_complete(
            "timestretch",
            input_frames=pcm.frame_count,
            output_frames=result.frame_count,
        )
        return result
