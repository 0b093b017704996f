"""Shared typed models for chatvoice."""

from .datatypes import (
    CANONICAL_SAMPLE_RATE,
    CharacterView,
    PcmBuffer,
    ResolvedStyle,
    ServiceId,
    StyleId,
    StyleView,
    TimeStretchConfig,
    TtsStyle,
)

__all__ = [
    "CANONICAL_SAMPLE_RATE",
    "CharacterView",
    "PcmBuffer",
    "ResolvedStyle",
    "ServiceId",
    "StyleId",
    "StyleView",
    "TimeStretchConfig",
    "TtsStyle",
]
