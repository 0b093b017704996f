"""Bing read-aloud speech backend.

Responsibilities:
- Build the style catalog from the voice list, grouped by a fixed locale list.
- Send SSML synthesis requests and decode the returned MP3 audio.
"""

from __future__ import annotations

import re
from typing import Any
from xml.sax.saxutils import escape, quoteattr

from ...models.datatypes import CharacterView, StyleView
from ..base import ChunkFailurePolicy, TtsBackend
from ..http import BackendRequestError, HttpClient

OUTPUT_FORMAT = "audio-24khz-48kbitrate-mono-mp3"
POLICY = "Microsoft Services Agreement"

LANGUAGES: tuple[tuple[str, str], ...] = (
    ("ja-JP", "Japanese (Japan)"),
    ("ko-KR", "Korean (Korea)"),
    ("zh-CN", "Chinese (Simplified)"),
    ("zh-TW", "Chinese (Traditional)"),
    ("zh-HK", "Chinese (Hong Kong)"),
    ("en-US", "English (United States)"),
    ("en-GB", "English (United Kingdom)"),
    ("en-AU", "English (Australia)"),
    ("en-CA", "English (Canada)"),
    ("en-IN", "English (India)"),
)

_LOCALE_PATTERN = re.compile(r"^[a-z]{2}-[A-Z]{2}$")


def parse_friendly_name(friendly_name: str) -> str:
    """Return the voice name part of a `Name - Language` friendly name."""

    parts = friendly_name.split(" - ")
    if len(parts) >= 2:
        return parts[0].strip()
    return friendly_name


def build_ssml(text: str, voice: str, locale: str) -> str:
    """Build an SSML document; `xml:lang` is set only for well-formed locales."""

    lang_attribute = f" xml:lang={quoteattr(locale)}" if _LOCALE_PATTERN.match(locale) else ""
    return (
        '<speak version="1.0" xmlns="http://www.w3.org/2001/10/synthesis"'
        f"{lang_attribute}><voice name={quoteattr(voice)}>{escape(text)}</voice></speak>"
    )


class BingSpeechBackend(TtsBackend):
    """Synthesize SSML through a read-aloud HTTP endpoint.

    Style ids have the form `locale/short_name`. Chunk failures are dropped by
    default, matching the best-effort behaviour of the read-aloud service.
    """

    kind = "bing_speech"
    audio_format = "mp3"
    max_chunk_chars = 1000

    def __init__(self, service_id: str, http: HttpClient, **kwargs: Any) -> None:
        kwargs.setdefault("chunk_failure_policy", ChunkFailurePolicy.BEST_EFFORT)
        super().__init__(service_id, http, **kwargs)

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        voices = await self.http.aget_json("voices/list")
        if not isinstance(voices, list):
            raise ValueError("Voice list payload must be a JSON array.")

        characters: list[CharacterView] = []
        for locale, language_name in LANGUAGES:
            styles = sorted(
                (
                    StyleView(
                        name=parse_friendly_name(voice["FriendlyName"]),
                        id=f"{voice['Locale']}/{voice['ShortName']}",
                    )
                    for voice in voices
                    if voice.get("Locale") == locale
                ),
                key=lambda style: style.name,
            )
            if styles:
                characters.append(
                    CharacterView(name=language_name, policy=POLICY, styles=tuple(styles))
                )
        return tuple(characters)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        locale, separator, voice = style_id.partition("/")
        if not separator:
            raise BackendRequestError(
                f"Invalid style id format: {style_id}",
                failure_kind="invalid_style",
            )
        return await self.http.apost_bytes(
            "synthesize",
            data=build_ssml(text, voice, locale).encode("utf-8"),
            headers={
                "Content-Type": "application/ssml+xml",
                "X-Microsoft-OutputFormat": OUTPUT_FORMAT,
            },
        )
