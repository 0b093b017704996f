"""Unit tests for shared backend chunking, ordering, and failure policies."""

from __future__ import annotations

import asyncio
from typing import Callable

import pytest

from chatvoice.errors import CatalogUnavailableError, SynthesisError
from chatvoice.models.datatypes import CharacterView, StyleView
from chatvoice.tts.base import ChunkFailurePolicy, TtsBackend
from chatvoice.tts.http import BackendRequestError, HttpClient


class _ScriptedBackend(TtsBackend):
    """Backend whose chunk payload encodes the first word number of each chunk."""

    kind = "scripted"
    max_chunk_chars = 200

    def __init__(
        self,
        wav_bytes: Callable[..., bytes],
        *,
        failing_words: frozenset[int] = frozenset(),
        slow_words: frozenset[int] = frozenset(),
        **kwargs: object,
    ) -> None:
        super().__init__("scripted", HttpClient(), **kwargs)
        self._wav_bytes = wav_bytes
        self._failing_words = failing_words
        self._slow_words = slow_words
        self.requested: list[str] = []
        self.catalog_fetches = 0

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        self.catalog_fetches += 1
        return (CharacterView(name="Speaker", policy="", styles=(StyleView("Normal", "1"),)),)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        self.requested.append(text)
        first_word = int(text.split()[0][1:])
        if first_word in self._slow_words:
            await asyncio.sleep(0.05)
        if first_word in self._failing_words:
            raise BackendRequestError("HTTP 500", failure_kind="http_error", status_code=500)
        return self._wav_bytes([first_word * 10])


def _words(count: int) -> str:
    return "".join(f"w{index:03d} " for index in range(count))


def test_long_text_is_chunked_and_joined_in_order(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(wav_bytes, slow_words=frozenset({40}))
    text = _words(240)

    pcm = asyncio.run(backend.synthesize("1", text))

    assert len(text) == 1200
    assert len(backend.requested) == 6
    assert pcm.samples.tolist() == [0, 400, 800, 1200, 1600, 2000]


def test_fail_fast_reports_failed_chunks(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(wav_bytes, failing_words=frozenset({80}))

    with pytest.raises(SynthesisError) as exc_info:
        asyncio.run(backend.synthesize("1", _words(240)))

    assert exc_info.value.failed_chunks == (2,)
    assert "1 of 6 chunk(s) failed on `scripted`" in str(exc_info.value)


def test_best_effort_drops_failed_chunks(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(
        wav_bytes,
        failing_words=frozenset({0, 120}),
        chunk_failure_policy=ChunkFailurePolicy.BEST_EFFORT,
    )

    pcm = asyncio.run(backend.synthesize("1", _words(240)))

    assert pcm.samples.tolist() == [400, 800, 1600, 2000]


def test_best_effort_with_every_chunk_failing_raises(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(
        wav_bytes,
        failing_words=frozenset({0, 40}),
        chunk_failure_policy="best_effort",
    )

    with pytest.raises(SynthesisError) as exc_info:
        asyncio.run(backend.synthesize("1", _words(80)))

    assert exc_info.value.failed_chunks == (0, 1)


def test_blank_text_makes_no_requests(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(wav_bytes)

    pcm = asyncio.run(backend.synthesize("1", "   "))

    assert pcm.is_empty
    assert backend.requested == []


def test_master_and_global_volume_are_applied(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(wav_bytes, master_volume=0.5, global_volume=0.5)

    pcm = asyncio.run(backend.synthesize("1", "w400 hello"))

    assert pcm.samples.tolist() == [1000]


def test_catalog_is_fetched_once(wav_bytes: Callable[..., bytes]) -> None:
    backend = _ScriptedBackend(wav_bytes)

    async def scenario() -> None:
        await backend.styles()
        await backend.styles()
        assert await backend.is_available("1")
        assert not await backend.is_available("2")

    asyncio.run(scenario())
    assert backend.catalog_fetches == 1


def test_malformed_catalog_becomes_catalog_unavailable(wav_bytes: Callable[..., bytes]) -> None:
    class _BrokenCatalog(_ScriptedBackend):
        async def _fetch_styles(self) -> tuple[CharacterView, ...]:
            payload: dict[str, object] = {}
            return payload["speakers"]  # type: ignore[return-value]

    with pytest.raises(CatalogUnavailableError, match="scripted"):
        asyncio.run(_BrokenCatalog(wav_bytes).styles())


def test_unexpected_errors_are_not_treated_as_chunk_failures(
    wav_bytes: Callable[..., bytes],
) -> None:
    class _Crashing(_ScriptedBackend):
        async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
            raise RuntimeError("bug")

    backend = _Crashing(wav_bytes, chunk_failure_policy=ChunkFailurePolicy.BEST_EFFORT)

    with pytest.raises(RuntimeError, match="bug"):
        asyncio.run(backend.synthesize("1", "w000 hello"))


class _InFlightBackend(_ScriptedBackend):
    """Backend that holds every chunk request open until all of them have started."""

    def __init__(self, wav_bytes: Callable[..., bytes], expected: int) -> None:
        super().__init__(wav_bytes)
        self._expected = expected
        self.in_flight = 0
        self.peak = 0
        self._all_started = asyncio.Event()

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        self.in_flight += 1
        self.peak = max(self.peak, self.in_flight)
        if self.in_flight == self._expected:
            self._all_started.set()
        try:
            await asyncio.wait_for(self._all_started.wait(), timeout=1.0)
            return await super()._fetch_chunk(style_id, text)
        finally:
            self.in_flight -= 1


def test_chunk_requests_are_issued_concurrently(wav_bytes: Callable[..., bytes]) -> None:
    backend = _InFlightBackend(wav_bytes, expected=6)

    pcm = asyncio.run(backend.synthesize("1", _words(240)))

    assert backend.peak == 6
    assert pcm.samples.tolist() == [0, 400, 800, 1200, 1600, 2000]
