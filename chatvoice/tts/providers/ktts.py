"""KTTS Korean speech backend with optional G2P preprocessing."""

from __future__ import annotations

from typing import Any

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import BackendRequestError, HttpClient

G2P_STYLE_ID = "G2P"
POLICY = "조선어음성합성프로그람 《청봉》 3.2 by RedStar 3.0"


class KttsBackend(TtsBackend):
    """POST text to `/api/tts`, optionally rewriting it through `/api/g2p` first."""

    kind = "ktts"
    audio_format = "wav"

    def __init__(
        self,
        service_id: str,
        http: HttpClient,
        *,
        g2p_http: HttpClient | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(service_id, http, **kwargs)
        self.g2p_http = g2p_http

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        styles = [StyleView(name="Default", id="Default")]
        if self.g2p_http is not None:
            styles.append(StyleView(name="Default with G2P", id=G2P_STYLE_ID))
        return (CharacterView(name="Default", policy=POLICY, styles=tuple(styles)),)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        if self.g2p_http is not None and style_id == G2P_STYLE_ID:
            text = await self._g2p(text)
        return await self.http.apost_bytes("api/tts", json_body={"text": text})

    async def _g2p(self, text: str) -> str:
        """Convert text to its pronunciation form."""

        response = await self.g2p_http.apost_json(
            "api/g2p",
            json_body={"text": text, "style": "ko"},
        )
        converted = response.get("text") if isinstance(response, dict) else None
        if not isinstance(converted, str):
            raise BackendRequestError(
                "G2P response does not contain `text`.",
                failure_kind="invalid_payload",
            )
        return converted
