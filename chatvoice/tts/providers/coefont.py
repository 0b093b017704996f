"""CoeFont trial speech backend."""

from __future__ import annotations

from dataclasses import dataclass

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import BackendRequestError

DEFAULT_URL = "https://backend.coefont.cloud"

REQUEST_HEADERS = {
    "Content-Type": "application/json",
    "User-Agent": "Mozilla/5.0",
    "Origin": "https://coefont.cloud",
    "Referer": "https://coefont.cloud/",
}


@dataclass(frozen=True, slots=True)
class CoefontVoice:
    """One fixed CoeFont voice."""

    name: str
    id: str
    language: str


VOICES: tuple[CoefontVoice, ...] = (
    CoefontVoice("森川智之", "3f84b7b1-30fb-4677-a704-fd136515303e", "ja"),
    CoefontVoice("ひろゆき", "19d55439-312d-4a1d-a27b-28f0f31bedc5", "ja"),
    CoefontVoice("女性アナウンサー", "76e2ba06-b23a-4bbe-8148-e30ede9001b9", "ja"),
    CoefontVoice("男性ナレーター", "82c4fcf5-d0ee-4fe9-9b0d-89a65d04f290", "ja"),
    CoefontVoice("森川智之", "2ad85567-b98d-433b-ac8b-eecbb409d1c9", "en"),
    CoefontVoice("ひろゆき", "d757e390-a61a-4718-a4a5-5cb4e0b3cbb0", "en"),
    CoefontVoice("女性アナウンサー", "66e41ffd-693c-422f-b4b7-6f9e85986de1", "en"),
    CoefontVoice("男性ナレーター", "ac121510-eea6-4177-ba8d-4e3b9aba5359", "en"),
    CoefontVoice("森川智之", "702b9444-30b1-4f7e-874f-2e48fe4c49fb", "zh"),
    CoefontVoice("ひろゆき", "86e73a8d-b22a-4c28-be45-140435dd83c8", "zh"),
    CoefontVoice("女性アナウンサー", "bbfe3aa9-8396-41cd-90dc-dbbddf918f0c", "zh"),
    CoefontVoice("男性ナレーター", "8371f2dd-53d9-4f24-a486-c1a666e49e68", "zh"),
)

LANGUAGES: tuple[tuple[str, str], ...] = (
    ("ja", "Japanese"),
    ("en", "English"),
    ("zh", "Chinese"),
)


class CoefontBackend(TtsBackend):
    """Two-step trial synthesis: request an audio URL, then download the WAV."""

    kind = "coefont"
    audio_format = "wav"
    max_chunk_chars = 30

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        characters: list[CharacterView] = []
        for language, language_name in LANGUAGES:
            styles = tuple(
                StyleView(name=voice.name, id=voice.id)
                for voice in VOICES
                if voice.language == language
            )
            if styles:
                characters.append(
                    CharacterView(
                        name=language_name,
                        policy="Coefont Terms of Service",
                        styles=styles,
                    )
                )
        return tuple(characters)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        response = await self.http.apost_json(
            f"coefonts/{style_id}/try",
            json_body={"text": text, "variant": "lp-tts"},
            headers=REQUEST_HEADERS,
        )
        audio_url = None
        if isinstance(response, dict):
            audio_url = response.get("location") or response.get("url")
        if not isinstance(audio_url, str) or not audio_url:
            raise BackendRequestError(
                "CoeFont response does not contain an audio URL.",
                failure_kind="invalid_payload",
            )
        return await self.http.aget_bytes(audio_url)
