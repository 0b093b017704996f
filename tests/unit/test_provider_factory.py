"""Unit tests for backend construction and registry bootstrapping."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from chatvoice.config import BackendSetting, ChatvoiceConfig
from chatvoice.provider_factory import BackendFactory, build_registry
from chatvoice.tts.base import ChunkFailurePolicy
from chatvoice.tts.http import BackendRequestError, HttpClient
from chatvoice.tts.providers import (
    GoogleTranslateBackend,
    KttsBackend,
    NaverBackend,
    VoicevoxBackend,
    WinrtBackend,
)
from chatvoice.tts.providers.google_translate import DEFAULT_URL as GOOGLE_URL


def test_factory_builds_backend_with_shared_settings() -> None:
    config = ChatvoiceConfig(global_volume=0.5, http_timeout_seconds=7.0)
    setting = BackendSetting(
        kind="voicevox",
        url="http://localhost:50021",
        headers={"X-Token": "abc"},
        master_volume=0.8,
        chunk_failure_policy="best_effort",
    )

    backend = BackendFactory.create("voicevox", setting, config)

    assert isinstance(backend, VoicevoxBackend)
    assert backend.service_id == "voicevox"
    assert backend.master_volume == 0.8
    assert backend.global_volume == 0.5
    assert backend.chunk_failure_policy is ChunkFailurePolicy.BEST_EFFORT
    assert backend.http.base_url == "http://localhost:50021"
    assert backend.http.timeout_seconds == 7.0
    assert backend.http.session.headers["X-Token"] == "abc"


def test_factory_uses_default_url_and_provider_options() -> None:
    config = ChatvoiceConfig(overlong_token_policy="force_split")

    google = BackendFactory.create(
        "google", BackendSetting(kind="google_translate", options={"slow": True}), config
    )
    naver = BackendFactory.create(
        "naver", BackendSetting(kind="naver", url="https://dict.example", options={"speed": -1}), config
    )
    winrt = BackendFactory.create(
        "winrt",
        BackendSetting(kind="winrt", url="http://winrt", options={"character_volume": {"Zira": 0.3}}),
        config,
    )

    assert isinstance(google, GoogleTranslateBackend)
    assert google.http.base_url == GOOGLE_URL
    assert google.slow is True
    assert google.split_text("a" * 450) == ["a" * 200, "a" * 200, "a" * 50]
    assert isinstance(naver, NaverBackend)
    assert naver.speed == -1
    assert isinstance(winrt, WinrtBackend)
    assert winrt.style_gain("Zira") == 0.3


def test_factory_wires_separate_g2p_client() -> None:
    backend = BackendFactory.create(
        "ktts",
        BackendSetting(
            kind="ktts",
            url="http://ktts",
            options={"g2p_url": "http://g2p", "g2p_headers": {"X-Key": "k"}},
        ),
        ChatvoiceConfig(),
    )

    assert isinstance(backend, KttsBackend)
    assert backend.g2p_http is not None
    assert backend.g2p_http.base_url == "http://g2p"
    assert backend.g2p_http.session.headers["X-Key"] == "k"


def test_factory_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError, match="espeak"):
        BackendFactory.create("svc", BackendSetting(kind="espeak", url="http://x"), ChatvoiceConfig())


def test_build_registry_skips_services_with_unavailable_catalogs(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    async def _offline(self: HttpClient, path: str, **kwargs: Any) -> Any:
        raise BackendRequestError("connection refused", failure_kind="transport")

    monkeypatch.setattr(HttpClient, "aget_json", _offline)
    config = ChatvoiceConfig(
        backends={
            "voicevox": BackendSetting(kind="voicevox", url="http://localhost:50021"),
            "google": BackendSetting(kind="google_translate"),
        }
    )

    async def scenario() -> list[str]:
        registry = await build_registry(config)
        return await registry.services()

    assert asyncio.run(scenario()) == ["google"]
