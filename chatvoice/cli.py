"""Command-line interface for chatvoice.

Responsibilities:
- Expose user-facing commands for catalog listing, synthesis, and diagnostics.
- Convert CLI arguments into configuration and map failures to diagnostics.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
import sys
from typing import Annotated

import typer

from .audio import codec
from .audio.timestretch import TimeStretchEngine
from .cli_rendering import (
    echo_audio_summary,
    echo_catalog,
    echo_chunks,
    exit_with_command_error,
)
from .config import ChatvoiceConfig, ConfigLoader
from .errors import PipelineStageError
from .models.datatypes import TimeStretchConfig
from .pipeline import SpeechPipeline
from .provider_factory import build_registry
from .telemetry.logger import RunLogger, configure_logging
from .text.chunking import OverlongTokenPolicy, TextChunker

app = typer.Typer(
    name="chatvoice",
    no_args_is_help=True,
    help="chatvoice CLI.",
)


def _load_config(config_path: Path) -> ChatvoiceConfig:
    """Load configuration and map failures to stage errors."""

    try:
        return ConfigLoader.load(config_path)
    except FileNotFoundError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise PipelineStageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


@app.command("styles")
def styles_command(
    config: Annotated[Path, typer.Option("--config", help="Path to YAML config.")],
) -> None:
    """Register configured backends and print their style catalogs."""

    try:
        loaded = _load_config(config)
        configure_logging(sys.stderr, loaded.log_level)

        async def _collect():
            registry = await build_registry(loaded, RunLogger())
            return await registry.styles()

        catalog = asyncio.run(_collect())
    except Exception as exc:
        exit_with_command_error("styles", exc)

    echo_catalog(catalog)


@app.command("speak")
def speak_command(
    text: Annotated[str, typer.Argument(help="Chat text to speak.")],
    service: Annotated[str, typer.Option("--service", help="Registered service id.")],
    style: Annotated[str, typer.Option("--style", help="Style id within the service.")],
    config: Annotated[Path, typer.Option("--config", help="Path to YAML config.")],
    out: Annotated[Path, typer.Option("--out", help="Output WAV path.")],
    stream_out: Annotated[
        Path | None,
        typer.Option(
            "--stream-out",
            help="Optional path for the raw float32 stream at the output sample rate.",
        ),
    ] = None,
) -> None:
    """Synthesize text, apply time-stretching, and write the result."""

    try:
        loaded = _load_config(config)
        configure_logging(sys.stderr, loaded.log_level)
        run_logger = RunLogger()

        async def _speak():
            registry = await build_registry(loaded, run_logger)
            pipeline = SpeechPipeline.from_config(registry, loaded, run_logger=run_logger)
            return await pipeline.speak(service, style, text)

        stream = asyncio.run(_speak())
        if stream is None:
            typer.echo("Message suppressed; nothing to speak.")
            return

        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(codec.encode(stream.pcm))
        if stream_out is not None:
            stream_out.parent.mkdir(parents=True, exist_ok=True)
            stream_out.write_bytes(stream.read())
    except Exception as exc:
        exit_with_command_error("speak", exc)

    echo_audio_summary("Audio", stream.pcm)
    typer.echo(f"WAV: {out}")
    if stream_out is not None:
        typer.echo(f"Stream ({loaded.output_sample_rate} Hz float32): {stream_out}")


@app.command("split")
def split_command(
    text: Annotated[str, typer.Argument(help="Text to split.")],
    max_len: Annotated[int, typer.Option("--max-len", help="Maximum chunk length.")] = 200,
    force_split: Annotated[
        bool,
        typer.Option("--force-split", help="Cut overlong tokens instead of failing."),
    ] = False,
) -> None:
    """Print word-safe chunk boundaries for `text`."""

    policy = OverlongTokenPolicy.FORCE_SPLIT if force_split else OverlongTokenPolicy.FAIL
    try:
        chunks = TextChunker(policy).split(text, max_len)
    except ValueError as exc:
        exit_with_command_error(
            "split",
            PipelineStageError(
                stage="chunk",
                detail=str(exc),
                hint="Use `--force-split` or add punctuation to long tokens.",
            ),
        )
    echo_chunks(chunks)


@app.command("stretch")
def stretch_command(
    input_wav: Annotated[Path, typer.Argument(help="Input WAV file.")],
    output_wav: Annotated[Path, typer.Argument(help="Output WAV file.")],
    target_speed: Annotated[float, typer.Option("--target-speed")] = 3.0,
    ramp_duration: Annotated[float, typer.Option("--ramp-duration")] = 20.0,
    initial_delay: Annotated[float, typer.Option("--initial-delay")] = 10.0,
) -> None:
    """Apply the progressive time-stretch to a WAV file."""

    try:
        configure_logging(sys.stderr)
        stretch = TimeStretchConfig(
            target_speed=target_speed,
            ramp_duration=ramp_duration,
            initial_delay=initial_delay,
        )
        try:
            ChatvoiceConfig(time_stretch=stretch).validate()
        except ValueError as exc:
            raise PipelineStageError(
                stage="config",
                detail=str(exc),
                hint="Use `--target-speed` >= 1.0 and non-negative durations.",
            ) from exc
        source = codec.decode(input_wav.read_bytes(), "wav")
        stretched = TimeStretchEngine(stretch).process(source)
        output_wav.parent.mkdir(parents=True, exist_ok=True)
        output_wav.write_bytes(codec.encode(stretched))
    except Exception as exc:
        exit_with_command_error("stretch", exc)

    echo_audio_summary("Input", source)
    echo_audio_summary("Output", stretched)


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
