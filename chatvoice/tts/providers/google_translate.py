"""Google Translate speech backend."""

from __future__ import annotations

from typing import Any

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import HttpClient

DEFAULT_URL = "https://translate.google.com/translate_tts"

LANGUAGES: tuple[tuple[str, str], ...] = (
    ("ja", "Japanese"),
    ("ko", "Korean"),
    ("zh-CN", "Chinese (Simplified)"),
    ("zh-TW", "Chinese (Traditional)"),
    ("en", "English"),
)


class GoogleTranslateBackend(TtsBackend):
    """Fetch MP3 speech for one language per style from the translate endpoint."""

    kind = "google_translate"
    audio_format = "mp3"
    max_chunk_chars = 200

    def __init__(
        self,
        service_id: str,
        http: HttpClient,
        *,
        slow: bool = False,
        **kwargs: Any,
    ) -> None:
        super().__init__(service_id, http, **kwargs)
        self.slow = slow

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        styles = tuple(StyleView(name=name, id=language) for language, name in LANGUAGES)
        return (
            CharacterView(
                name="Google Translate",
                policy="Google Terms of Service",
                styles=styles,
            ),
        )

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        params = {
            "ie": "UTF-8",
            "q": text,
            "tl": style_id,
            "total": "1",
            "idx": "0",
            "textlen": str(len(text.encode("utf-8"))),
            "tk": "0",
            "client": "tw-ob",
            "ttsspeed": "0" if self.slow else "1",
        }
        return await self.http.aget_bytes("", params=params)
