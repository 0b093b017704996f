"""VOICEROID bridge backend."""

from __future__ import annotations

import base64
from typing import Any

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import BackendRequestError, HttpClient

POLICY = "VOICEROID利用規約に則り、ご利用ください。"
_DIALECT_LABELS = {
    "Standard": ("標準語", "関西弁"),
    "Kansai": ("関西弁", "標準語"),
}


class VoiceroidBackend(TtsBackend):
    """Speech from a VOICEROID HTTP bridge.

    Every voice gets a `normal` style in its own dialect and an `alt` style that
    forces the other dialect.
    """

    kind = "voiceroid"
    audio_format = "wav"

    def __init__(self, service_id: str, http: HttpClient, **kwargs: Any) -> None:
        super().__init__(service_id, http, **kwargs)
        self._dialects: dict[str, str] = {}

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        voices = await self.http.aget_json("api/voices")
        characters: list[CharacterView] = []
        dialects: dict[str, str] = {}
        for voice in voices:
            dialect = voice["dialect"]
            if dialect not in _DIALECT_LABELS:
                raise ValueError(f"Unknown dialect `{dialect}` for voice `{voice['id']}`.")
            normal, alt = _DIALECT_LABELS[dialect]
            icon = base64.b64decode(voice["icon"])
            dialects[voice["id"]] = dialect
            characters.append(
                CharacterView(
                    name=voice["name"],
                    policy=POLICY,
                    styles=(
                        StyleView(name=normal, id=f"{voice['id']}/normal", icon=icon),
                        StyleView(name=f"{alt} (強制)", id=f"{voice['id']}/alt", icon=icon),
                    ),
                )
            )
        self._dialects = dialects
        return tuple(characters)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        voice_id, _, variant = style_id.partition("/")
        dialect = self._dialects.get(voice_id)
        if dialect is None:
            raise BackendRequestError(
                f"Unknown voice `{voice_id}`.",
                failure_kind="invalid_style",
            )
        is_kansai = dialect == "Kansai"
        if variant == "alt":
            is_kansai = not is_kansai
        return await self.http.apost_bytes(
            "api/tts",
            json_body={"is_kansai": is_kansai, "text": text, "voice_id": voice_id},
        )
