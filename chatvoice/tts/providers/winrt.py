"""Windows speech (WinRT) bridge backend."""

from __future__ import annotations

from typing import Any

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import HttpClient

POLICY = "Microsoft Windows利用規約に則り、ご利用ください"


class WinrtBackend(TtsBackend):
    """Speech from a WinRT HTTP bridge.

    Voice ids arrive as registry paths sharing one base path; the base path is
    stripped for style ids and re-attached for synthesis. Master and per-style
    volume are sent to the bridge as `audio_volume`.
    """

    kind = "winrt"
    audio_format = "wav"

    def __init__(
        self,
        service_id: str,
        http: HttpClient,
        *,
        character_volume: dict[str, float] | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(service_id, http, **kwargs)
        self.character_volume = dict(character_volume or {})
        self.registry_base_path = ""

    def volume_for(self, style_id: str) -> float:
        return self.global_volume

    def style_gain(self, style_id: str) -> float:
        return self.character_volume.get(style_id, 1.0)

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        voices = await self.http.aget_json("api/voices")
        if not voices:
            raise ValueError("Voice list is empty.")

        base_path, _, _ = voices[0]["id"].rpartition("\\")
        grouped: dict[str, list[StyleView]] = {}
        for voice in voices:
            path, separator, name = voice["id"].rpartition("\\")
            if not separator or path != base_path:
                raise ValueError("Voice registry paths do not share one base path.")
            grouped.setdefault(voice["language"], []).append(
                StyleView(name=voice["display_name"], id=name)
            )
        self.registry_base_path = base_path
        return tuple(
            CharacterView(name=language, policy=POLICY, styles=tuple(grouped[language]))
            for language in sorted(grouped)
        )

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        return await self.http.apost_bytes(
            "api/tts",
            json_body={
                "audio_volume": self.master_volume * self.style_gain(style_id),
                "text": text,
                "voice_id": f"{self.registry_base_path}\\{style_id}",
            },
        )
