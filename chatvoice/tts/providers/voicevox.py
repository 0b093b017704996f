"""VOICEVOX-compatible engine backend.

Responsibilities:
- Build the catalog from `/speakers` and per-speaker `/speaker_info` lookups.
- Synthesize through the two-step `audio_query` then `synthesis` flow.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any

from ...models.datatypes import CharacterView, StyleView
from ..base import TtsBackend
from ..http import BackendRequestError

POLICY_PREVIEW_CHARS = 512

_ACML_POLICIES: tuple[tuple[str, str], ...] = (
    (
        "# Aivis Common Model License (ACML) 1.0\n",
        "この音声は [Aivis Common Model License (ACML) 1.0]"
        "(https://github.com/Aivis-Project/ACML/blob/master/ACML-1.0.md) により提供されています。",
    ),
    (
        "# Aivis Common Model License (ACML) - Non Commercial 1.0\n",
        "この音声は [Aivis Common Model License (ACML) - Non Commercial 1.0]"
        "(https://github.com/Aivis-Project/ACML/blob/master/ACML-NC-1.0.md) により提供されています。",
    ),
)


def shorten_policy(policy: str) -> str:
    """Replace known license texts with a one-line notice, else truncate."""

    for prefix, notice in _ACML_POLICIES:
        if policy.startswith(prefix):
            return notice
    return policy[:POLICY_PREVIEW_CHARS]


def _decode_icon(encoded: str) -> bytes:
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("Speaker icon is not valid base64.") from exc


class VoicevoxBackend(TtsBackend):
    """Speech from a VOICEVOX-compatible HTTP engine.

    Master volume is sent to the engine as `volumeScale`, so only the global
    volume is applied locally.
    """

    kind = "voicevox"
    audio_format = "wav"

    def volume_for(self, style_id: str) -> float:
        return self.global_volume * self.style_gain(style_id)

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        speakers = await self.http.aget_json("speakers")
        infos = await asyncio.gather(
            *(
                self.http.aget_json(
                    "speaker_info",
                    params={"speaker_uuid": speaker["speaker_uuid"]},
                )
                for speaker in speakers
            )
        )
        return tuple(
            self._character_view(speaker, info) for speaker, info in zip(speakers, infos)
        )

    @staticmethod
    def _character_view(speaker: dict[str, Any], info: dict[str, Any]) -> CharacterView:
        """Combine one `/speakers` entry with its `/speaker_info` payload."""

        styles = tuple(
            StyleView(
                name=style["name"],
                id=str(style_info["id"]),
                icon=_decode_icon(style_info["icon"]),
            )
            for style, style_info in zip(speaker["styles"], info["style_infos"])
        )
        return CharacterView(
            name=speaker["name"],
            policy=shorten_policy(info["policy"]),
            styles=styles,
        )

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        query = await self.http.apost_json(
            "audio_query",
            params={"text": text, "speaker": style_id},
        )
        if not isinstance(query, dict):
            raise BackendRequestError(
                "Audio query response is not a JSON object.",
                failure_kind="invalid_payload",
            )
        query["volumeScale"] = self.master_volume
        return await self.http.apost_bytes(
            "synthesis",
            params={"speaker": style_id},
            json_body=query,
        )
