"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
style catalogs, chunk listings, and audio summaries.
"""

from __future__ import annotations

from typing import Mapping, NoReturn

import typer

from .errors import PipelineStageError
from .models.datatypes import CharacterView, PcmBuffer


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, PipelineStageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_catalog(catalog: Mapping[str, tuple[CharacterView, ...]]) -> None:
    """Print registered services with their characters and style ids."""

    if not catalog:
        typer.echo("No services registered.")
        return
    for service_id, characters in catalog.items():
        typer.echo(f"{service_id}:")
        for character in characters:
            typer.echo(f"  {character.name} ({_policy_summary(character.policy)})")
            for style in character.styles:
                typer.echo(f"    {style.id}\t{style.name}")


def echo_chunks(chunks: list[str]) -> None:
    """Print chunk boundaries with lengths in code points."""

    for index, chunk in enumerate(chunks, start=1):
        typer.echo(f"[{index}] len={len(chunk)}: {chunk}")


def echo_audio_summary(label: str, pcm: PcmBuffer) -> None:
    """Print one line describing a PCM buffer."""

    typer.echo(
        f"{label}: {pcm.duration_seconds:.3f}s, {pcm.sample_rate} Hz, "
        f"{pcm.channels} channel(s), {pcm.frame_count} frames"
    )


def _policy_summary(policy: str) -> str:
    lines = policy.strip().splitlines()
    return lines[0] if lines else "-"
