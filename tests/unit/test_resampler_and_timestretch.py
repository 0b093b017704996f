"""Unit tests for the sinc resampler and progressive time-stretching."""

from __future__ import annotations

from typing import Callable

import numpy as np
import pytest

from chatvoice.audio.resampler import SincResampler
from chatvoice.audio.timestretch import TimeStretchEngine
from chatvoice.models.datatypes import PcmBuffer, TimeStretchConfig


def _constant(value: int, frames: int, sample_rate: int = 8000) -> PcmBuffer:
    return PcmBuffer(
        samples=np.full(frames, value, dtype=np.int16),
        channels=1,
        sample_rate=sample_rate,
    )


def test_resampler_upsamples_every_position_before_end_of_input() -> None:
    resampler = SincResampler(2.0)
    block = np.ones((1, 1000), dtype=np.float64)

    output = np.concatenate([resampler.process(block), resampler.flush()], axis=1)

    assert output.shape == (1, 2000)
    assert resampler.input_frames == 1000
    np.testing.assert_allclose(output[0, 400:1600], 1.0, atol=1e-3)


def test_resampler_output_is_independent_of_block_size() -> None:
    signal = np.sin(np.linspace(0.0, 40.0, 3000))[None, :]
    whole = SincResampler(0.75)
    pieces = SincResampler(0.75)

    expected = np.concatenate([whole.process(signal), whole.flush()], axis=1)
    chunks = [pieces.process(signal[:, start : start + 333]) for start in range(0, 3000, 333)]
    actual = np.concatenate(chunks + [pieces.flush()], axis=1)

    np.testing.assert_allclose(actual, expected, atol=1e-9)


def test_resampler_rejects_ratio_outside_relative_range() -> None:
    resampler = SincResampler(1.0, 2.0)

    resampler.set_ratio(0.5)
    resampler.set_ratio(2.0)
    assert resampler.ratio == 2.0
    with pytest.raises(ValueError):
        resampler.set_ratio(2.5)
    with pytest.raises(ValueError):
        resampler.set_ratio(0.4)


def test_resampler_rejects_block_with_wrong_channel_count() -> None:
    with pytest.raises(ValueError):
        SincResampler(1.0, channels=2).process(np.zeros((1, 10)))


def test_speed_ramp_follows_delay_and_duration() -> None:
    config = TimeStretchConfig(target_speed=3.0, ramp_duration=20.0, initial_delay=10.0)

    assert config.speed_at(5.0) == 1.0
    assert config.speed_at(20.0) == pytest.approx(2.0)
    assert config.speed_at(100.0) == pytest.approx(3.0)


def test_ratio_for_is_inverse_speed() -> None:
    engine = TimeStretchEngine()

    assert engine.ratio_for(0.0) == 1.0
    assert engine.ratio_for(20.0) == pytest.approx(0.5)
    assert engine.ratio_for(60.0) == pytest.approx(1.0 / 3.0)


def test_block_frames_has_floor() -> None:
    assert TimeStretchEngine.block_frames(48000) == 4096
    assert TimeStretchEngine.block_frames(192000) == 6400


def test_short_utterance_is_returned_unchanged(tone: Callable[..., PcmBuffer]) -> None:
    pcm = tone(2.0)

    assert TimeStretchEngine().process(pcm) is pcm


def test_unit_speed_keeps_length_and_signal(tone: Callable[..., PcmBuffer]) -> None:
    pcm = tone(1.5, sample_rate=8000, frequency=200.0)
    engine = TimeStretchEngine(TimeStretchConfig(target_speed=1.0, ramp_duration=0.0, initial_delay=0.0))

    result = engine.process(pcm)

    assert result.frame_count == pcm.frame_count
    assert result.sample_rate == 8000
    middle = slice(1000, pcm.frame_count - 1000)
    np.testing.assert_allclose(result.samples[middle], pcm.samples[middle], atol=40)


def test_constant_double_speed_halves_length_and_preserves_level() -> None:
    pcm = _constant(1000, 16000)
    engine = TimeStretchEngine(TimeStretchConfig(target_speed=2.0, ramp_duration=0.0, initial_delay=0.0))

    result = engine.process(pcm)

    assert result.frame_count == 8000
    np.testing.assert_allclose(result.samples[500:7500], 1000, atol=2)


def test_ramp_shortens_long_utterance_within_bounds() -> None:
    pcm = _constant(500, 8000 * 40)
    engine = TimeStretchEngine(TimeStretchConfig(target_speed=3.0, ramp_duration=10.0, initial_delay=5.0))

    result = engine.process(pcm)

    assert pcm.frame_count / 3.0 < result.frame_count < pcm.frame_count
    assert result.samples[2000 : 8000 * 4].min() >= 498


def test_stereo_input_keeps_channel_layout() -> None:
    frames = 8000 * 2
    samples = np.empty(frames * 2, dtype=np.int16)
    samples[0::2] = 1000
    samples[1::2] = -1000
    pcm = PcmBuffer(samples=samples, channels=2, sample_rate=8000)
    engine = TimeStretchEngine(TimeStretchConfig(target_speed=2.0, ramp_duration=0.0, initial_delay=0.0))

    result = engine.process(pcm)

    assert result.channels == 2
    assert result.frame_count == frames // 2
    planar = result.planar()
    np.testing.assert_allclose(planar[0, 500:7500], 1000, atol=2)
    np.testing.assert_allclose(planar[1, 500:7500], -1000, atol=2)
