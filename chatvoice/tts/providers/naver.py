"""Naver dictionary speech backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ...audio import codec
from ...errors import AudioDecodeError
from ...models.datatypes import CharacterView, PcmBuffer, StyleView
from ..base import TtsBackend
from ..http import HttpClient


@dataclass(frozen=True, slots=True)
class NaverVoice:
    """One fixed Naver speaker."""

    name: str
    speaker: str
    language: str


VOICES: tuple[NaverVoice, ...] = (
    NaverVoice("Danna", "danna", "en"),
    NaverVoice("Matt", "matt", "en"),
    NaverVoice("Carmen", "carmen", "es"),
    NaverVoice("Jose", "jose", "es"),
    NaverVoice("Yuri", "yuri", "ja"),
    NaverVoice("Shinji", "shinji", "ja"),
    NaverVoice("Kyuri", "kyuri", "ko"),
    NaverVoice("Jinho", "jinho", "ko"),
    NaverVoice("Meimei", "meimei", "zh"),
    NaverVoice("Liangliang", "liangliang", "zh"),
)

LANGUAGES: tuple[tuple[str, str], ...] = (
    ("ja", "Japanese"),
    ("ko", "Korean"),
    ("en", "English"),
    ("zh", "Chinese"),
    ("es", "Spanish"),
)


class NaverBackend(TtsBackend):
    """Fetch MP3 speech from the Naver dictionary voice endpoint.

    Empty or undecodable responses yield silence instead of an error.
    """

    kind = "naver"
    audio_format = "mp3"

    def __init__(
        self,
        service_id: str,
        http: HttpClient,
        *,
        speed: int = 0,
        **kwargs: Any,
    ) -> None:
        super().__init__(service_id, http, **kwargs)
        self.speed = speed

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        characters: list[CharacterView] = []
        for language, language_name in LANGUAGES:
            styles = tuple(
                StyleView(name=voice.name, id=voice.speaker)
                for voice in VOICES
                if voice.language == language
            )
            if styles:
                characters.append(
                    CharacterView(
                        name=language_name,
                        policy="Naver Terms of Service",
                        styles=styles,
                    )
                )
        return tuple(characters)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        params = {
            "service": "dictionary",
            "speech_fmt": "mp3",
            "text": text,
            "speaker": style_id,
            "speed": str(self.speed),
        }
        return await self.http.aget_bytes(
            "api/nvoice",
            params=params,
            headers={"Referer": self.http.url("")},
        )

    async def _synthesize_chunk(self, style_id: str, text: str, volume: float) -> PcmBuffer:
        payload = await self._fetch_chunk(style_id, text)
        try:
            return codec.decode(payload, self.audio_format, volume)
        except AudioDecodeError as exc:
            self._run_logger.log_warning(
                "decode",
                "undecodable_payload",
                service=self.service_id,
                error_type=type(exc).__name__,
            )
            return codec.empty()
