"""Unit tests for CLI output and error rendering helpers."""

from __future__ import annotations

import numpy as np
import pytest
import typer

from chatvoice.cli_rendering import (
    echo_audio_summary,
    echo_catalog,
    echo_chunks,
    exit_with_command_error,
)
from chatvoice.errors import PipelineStageError
from chatvoice.models.datatypes import CharacterView, PcmBuffer, StyleView


def test_exit_with_command_error_renders_stage_error_with_hint(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print stage diagnostics and hint before exiting with code 1."""

    error = PipelineStageError(
        stage="config",
        detail="Config file not found: `missing.yaml`.",
        hint="Provide an existing path via `--config <path.yaml>`.",
    )

    with pytest.raises(typer.Exit) as exc_info:
        exit_with_command_error("speak", error)

    captured = capsys.readouterr()
    assert exc_info.value.exit_code == 1
    assert "speak failed at stage `config`" in captured.err
    assert "Hint: Provide an existing path via `--config <path.yaml>`." in captured.err


def test_exit_with_command_error_renders_non_stage_fallback(
    capsys: pytest.CaptureFixture[str],
) -> None:
    """Renderer should print fallback exception text for non-stage failures."""

    with pytest.raises(typer.Exit):
        exit_with_command_error("styles", RuntimeError("engine offline"))

    assert "styles failed: engine offline" in capsys.readouterr().err


def test_echo_catalog_lists_services_characters_and_styles(
    capsys: pytest.CaptureFixture[str],
) -> None:
    catalog = {
        "voicevox": (
            CharacterView(
                name="四国めたん",
                policy="Free for any use\nsecond line",
                styles=(StyleView("ノーマル", "2"), StyleView("あまあま", "0")),
            ),
        )
    }

    echo_catalog(catalog)

    lines = capsys.readouterr().out.splitlines()
    assert lines == [
        "voicevox:",
        "  四国めたん (Free for any use)",
        "    2\tノーマル",
        "    0\tあまあま",
    ]


def test_echo_catalog_reports_empty_registry(capsys: pytest.CaptureFixture[str]) -> None:
    echo_catalog({})

    assert capsys.readouterr().out == "No services registered.\n"


def test_echo_chunks_and_audio_summary(capsys: pytest.CaptureFixture[str]) -> None:
    echo_chunks(["hello ", "world"])
    echo_audio_summary("Audio", PcmBuffer(samples=np.zeros(12000, dtype=np.int16)))

    lines = capsys.readouterr().out.splitlines()
    assert lines[:2] == ["[1] len=6: hello ", "[2] len=5: world"]
    assert lines[2] == "Audio: 0.500s, 24000 Hz, 1 channel(s), 12000 frames"
