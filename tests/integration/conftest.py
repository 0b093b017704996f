"""Integration-test fixtures for deterministic backend behavior."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable

import numpy as np
import pytest

from chatvoice.config import ChatvoiceConfig
from chatvoice.models.datatypes import CharacterView, PcmBuffer, StyleView
from chatvoice.telemetry.logger import RunLogger
from chatvoice.tts.base import TtsBackend
from chatvoice.tts.http import HttpClient
from chatvoice.tts.registry import TtsRegistry


class ToneBackend(TtsBackend):
    """Offline backend that returns a fixed 24 kHz buffer for any text."""

    kind = "tone"

    def __init__(self, seconds: float) -> None:
        super().__init__("tone", HttpClient())
        self.seconds = seconds

    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        return (CharacterView(name="Tone", policy="Test voice", styles=(StyleView("Flat", "1"),)),)

    async def _fetch_chunk(self, style_id: str, text: str) -> bytes:
        raise AssertionError("synthesize is overridden")

    async def synthesize(self, style_id: str, text: str) -> PcmBuffer:
        frames = int(self.seconds * 24000)
        return PcmBuffer(samples=np.full(frames, 1000, dtype=np.int16), sample_rate=24000)


@pytest.fixture
def offline_registry(monkeypatch: pytest.MonkeyPatch) -> Callable[[float], None]:
    """Replace CLI registry bootstrapping with an offline tone backend."""

    def _install(seconds: float) -> None:
        async def _build(config: ChatvoiceConfig, run_logger: RunLogger | None = None) -> Any:
            registry = TtsRegistry(run_logger=run_logger)
            await registry.register("tone", ToneBackend(seconds))
            return registry

        monkeypatch.setattr("chatvoice.cli.build_registry", _build)

    return _install


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    """Write a minimal valid config with one backend entry."""

    config_path = tmp_path / "chatvoice.yaml"
    config_path.write_text(
        "output_sample_rate: 48000\n"
        "backends:\n"
        "  tone:\n"
        "    kind: voicevox\n"
        "    url: http://localhost:50021\n",
        encoding="utf-8",
    )
    return config_path
