"""Core datatypes shared across chatvoice modules.

Responsibilities:
- Represent immutable catalog records exchanged between backends and the registry.
- Represent canonical PCM audio handed between pipeline stages.

Key types:
- `StyleView`, `CharacterView`, `ResolvedStyle`, `TtsStyle`, `PcmBuffer`,
  and `TimeStretchConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

StyleId = str
ServiceId = str

CANONICAL_SAMPLE_RATE = 24000
"""Sample rate used whenever a provider legitimately returns no audio."""


@dataclass(frozen=True, slots=True)
class TtsStyle:
    """A voice preference as persisted by the settings collaborator.

    Attributes:
        service_id: Registered backend identifier.
        style_id: Voice identifier within that backend.
    """

    service_id: ServiceId
    style_id: StyleId


@dataclass(frozen=True, slots=True)
class StyleView:
    """One selectable voice within a character group.

    Attributes:
        name: Display name.
        id: Provider style identifier.
        icon: Optional icon image bytes (empty when the provider has none).
    """

    name: str
    id: StyleId
    icon: bytes = b""


@dataclass(frozen=True, slots=True)
class CharacterView:
    """A display group of styles, such as one speaker or one language bucket.

    Attributes:
        name: Display name of the group.
        policy: Usage-policy text shown next to the group.
        styles: Ordered styles within the group.
    """

    name: str
    policy: str
    styles: tuple[StyleView, ...] = field(default_factory=tuple)


@dataclass(frozen=True, slots=True)
class ResolvedStyle:
    """Full display metadata for one style id of one service."""

    service_id: ServiceId
    character: CharacterView
    style: StyleView


@dataclass(frozen=True, slots=True)
class TimeStretchConfig:
    """Acceleration ramp applied to long utterances.

    Attributes:
        target_speed: Final playback speed multiplier once the ramp completes.
        ramp_duration: Seconds of processed audio over which speed ramps to target.
        initial_delay: Seconds of audio played at normal speed before the ramp.
    """

    target_speed: float = 3.0
    ramp_duration: float = 20.0
    initial_delay: float = 10.0

    def speed_at(self, elapsed_seconds: float) -> float:
        """Return the playback speed for audio already processed up to `elapsed_seconds`."""

        if elapsed_seconds < self.initial_delay:
            progress = 0.0
        elif self.ramp_duration <= 0.0:
            progress = 1.0
        else:
            progress = min(1.0, (elapsed_seconds - self.initial_delay) / self.ramp_duration)
        return 1.0 + (self.target_speed - 1.0) * progress


@dataclass(frozen=True, slots=True, eq=False)
class PcmBuffer:
    """Canonical interleaved 16-bit PCM audio.

    Attributes:
        samples: Interleaved `int16` samples.
        channels: Channel count.
        sample_rate: Sample rate in Hz.
    """

    samples: np.ndarray
    channels: int = 1
    sample_rate: int = CANONICAL_SAMPLE_RATE

    def __post_init__(self) -> None:
        if self.channels <= 0:
            raise ValueError("`channels` must be a positive integer.")
        if self.sample_rate <= 0:
            raise ValueError("`sample_rate` must be a positive integer.")
        if self.samples.dtype != np.int16 or self.samples.ndim != 1:
            raise ValueError("`samples` must be a one-dimensional int16 array.")
        if self.samples.size % self.channels:
            raise ValueError("`samples` length must be a multiple of `channels`.")

    @property
    def frame_count(self) -> int:
        return self.samples.size // self.channels

    @property
    def duration_seconds(self) -> float:
        return self.frame_count / float(self.sample_rate)

    @property
    def is_empty(self) -> bool:
        return self.samples.size == 0

    def planar(self) -> np.ndarray:
        """Return samples de-interleaved as a `(channels, frames)` int16 array."""

        return self.samples.reshape(-1, self.channels).T

    @classmethod
    def from_planar(cls, planar: np.ndarray, sample_rate: int) -> PcmBuffer:
        """Build a buffer by re-interleaving a `(channels, frames)` int16 array."""

        channels = planar.shape[0]
        interleaved = np.ascontiguousarray(planar.T).reshape(-1).astype(np.int16, copy=False)
        return cls(samples=interleaved, channels=channels, sample_rate=sample_rate)
