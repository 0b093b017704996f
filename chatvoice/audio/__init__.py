"""Audio decoding, time-stretching, and rate adaptation.

This package turns provider payloads into canonical PCM, accelerates long
utterances, and exposes the result as a float32 stream for playback.
"""

from . import codec
from .resampler import SincResampler
from .stream import StreamSource
from .timestretch import TimeStretchEngine

__all__ = ["SincResampler", "StreamSource", "TimeStretchEngine", "codec"]
