"""Unit tests for service registration and synthesis dispatch."""

from __future__ import annotations

import asyncio

import numpy as np
import pytest

from chatvoice.errors import (
    CatalogUnavailableError,
    DuplicateServiceError,
    UnknownServiceError,
    UnknownStyleError,
)
from chatvoice.models.datatypes import CharacterView, PcmBuffer, StyleView
from chatvoice.tts.base import TtsBackend
from chatvoice.tts.http import BackendRequestError, HttpClient
from chatvoice.tts.registry import ReadWriteLock, TtsRegistry


class _StaticBackend(TtsBackend):
    """Backend with a fixed catalog that returns silence-free one-sample audio."""

    kind = "static"

    def __init__(self, styles: tuple[str, ...] = ("1", "2"), *, fail_catalog: bool = False) -> None:
        super().__init__("static", HttpClient())
        self._style_ids = styles
        self._fail_catalog = fail_catalog
        self.synthesized: list[tuple[str, str]] = []

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        if self._fail_catalog:
            raise BackendRequestError("connection refused", failure_kind="transport")
        return (
            CharacterView(
                name="Speaker",
                policy="Free to use",
                styles=tuple(StyleView(name=f"Style {style}", id=style) for style in self._style_ids),
            ),
        )

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        raise AssertionError("synthesize is overridden")

    async def synthesize(self, style_id: str, text: str) -> PcmBuffer:
        self.synthesized.append((style_id, text))
        return PcmBuffer(samples=np.array([7], dtype=np.int16))


def test_register_exposes_catalog_snapshot() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        await registry.register("voicevox", _StaticBackend())

        assert await registry.services() == ["voicevox"]
        catalog = await registry.styles()
        assert [style.id for style in catalog["voicevox"][0].styles] == ["1", "2"]
        assert await registry.is_available("voicevox", "2")
        assert not await registry.is_available("voicevox", "3")
        assert not await registry.is_available("missing", "1")

    asyncio.run(scenario())


def test_duplicate_registration_keeps_first_backend() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        first = _StaticBackend(("a",))
        await registry.register("svc", first)

        with pytest.raises(DuplicateServiceError, match="`svc` is already taken"):
            await registry.register("svc", _StaticBackend(("b",)))

        assert await registry.is_available("svc", "a")
        await registry.synthesize("svc", "a", "hello")
        assert first.synthesized == [("a", "hello")]

    asyncio.run(scenario())


def test_catalog_failure_leaves_registry_unchanged() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()

        with pytest.raises(CatalogUnavailableError) as exc_info:
            await registry.register("offline", _StaticBackend(fail_catalog=True))

        assert exc_info.value.service_id == "offline"
        assert await registry.services() == []

    asyncio.run(scenario())


def test_synthesize_validates_service_and_style() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        backend = _StaticBackend()
        await registry.register("svc", backend)

        with pytest.raises(UnknownServiceError):
            await registry.synthesize("other", "1", "hello")
        with pytest.raises(UnknownStyleError) as exc_info:
            await registry.synthesize("svc", "9", "hello")
        assert exc_info.value.style_id == "9"
        assert backend.synthesized == []

        pcm = await registry.synthesize("svc", "1", "hello")
        assert pcm.samples.tolist() == [7]

    asyncio.run(scenario())


def test_resolve_style_returns_display_metadata() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        await registry.register("svc", _StaticBackend())

        resolved = await registry.resolve_style("svc", "2")

        assert resolved.service_id == "svc"
        assert resolved.character.name == "Speaker"
        assert resolved.style.name == "Style 2"
        with pytest.raises(UnknownStyleError):
            await registry.resolve_style("svc", "3")

    asyncio.run(scenario())


def test_concurrent_registration_and_reads() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        ids = [f"svc{index}" for index in range(8)]

        await asyncio.gather(
            *(registry.register(service_id, _StaticBackend()) for service_id in ids),
            *(registry.styles() for _ in range(8)),
        )

        assert sorted(await registry.services()) == ids

    asyncio.run(scenario())


def test_concurrent_duplicate_registration_admits_exactly_one() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()

        results = await asyncio.gather(
            *(registry.register("svc", _StaticBackend()) for _ in range(4)),
            return_exceptions=True,
        )

        assert sum(result is None for result in results) == 1
        assert sum(isinstance(result, DuplicateServiceError) for result in results) == 3

    asyncio.run(scenario())


class _GatedBackend(_StaticBackend):
    """Backend whose catalog fetch waits until the test releases it."""

    def __init__(self) -> None:
        super().__init__(("slow",))
        self.fetch_started = asyncio.Event()
        self.release = asyncio.Event()

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        self.fetch_started.set()
        await self.release.wait()
        return await super()._fetch_styles()


def test_slow_catalog_fetch_does_not_block_reads() -> None:
    async def scenario() -> None:
        registry = TtsRegistry()
        ready = _StaticBackend()
        await registry.register("ready", ready)
        gated = _GatedBackend()

        pending = asyncio.create_task(registry.register("slow", gated))
        await gated.fetch_started.wait()

        catalog = await asyncio.wait_for(registry.styles(), timeout=1.0)
        assert list(catalog) == ["ready"]
        assert await asyncio.wait_for(registry.is_available("ready", "1"), timeout=1.0)
        pcm = await asyncio.wait_for(registry.synthesize("ready", "1", "hi"), timeout=1.0)
        assert pcm.samples.tolist() == [7]
        assert not pending.done()

        gated.release.set()
        await pending
        assert await registry.services() == ["ready", "slow"]

    asyncio.run(scenario())


def test_waiting_writer_is_not_starved_by_new_readers() -> None:
    async def scenario() -> None:
        lock = ReadWriteLock()
        order: list[str] = []

        async def writer() -> None:
            async with lock.write():
                order.append("writer")

        async def late_reader() -> None:
            async with lock.read():
                order.append("late_reader")

        async with lock.read():
            writer_task = asyncio.create_task(writer())
            await asyncio.sleep(0)
            reader_task = asyncio.create_task(late_reader())
            await asyncio.sleep(0)
            assert order == []

        await asyncio.gather(writer_task, reader_task)
        assert order == ["writer", "late_reader"]

    asyncio.run(scenario())
