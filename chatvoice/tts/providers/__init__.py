"""Concrete speech backends, one module per provider."""

from .bing_speech import BingSpeechBackend
from .coefont import CoefontBackend
from .google_translate import GoogleTranslateBackend
from .ktts import KttsBackend
from .naver import NaverBackend
from .voiceroid import VoiceroidBackend
from .voicevox import VoicevoxBackend
from .winrt import WinrtBackend

__all__ = [
    "BingSpeechBackend",
    "CoefontBackend",
    "GoogleTranslateBackend",
    "KttsBackend",
    "NaverBackend",
    "VoiceroidBackend",
    "VoicevoxBackend",
    "WinrtBackend",
]
