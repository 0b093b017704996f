"""Top-level package for chatvoice.

This package converts chat text into paced PCM audio for live voice playback,
sourced from interchangeable speech backends. The main entry points are
`TtsRegistry` and `SpeechPipeline`.
"""

from .pipeline import SpeechPipeline
from .tts.registry import TtsRegistry

__all__ = ["SpeechPipeline", "TtsRegistry", "__version__"]

__version__ = "0.1.0"
