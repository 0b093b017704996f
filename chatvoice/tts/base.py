"""Uniform speech-backend contract.

Responsibilities:
- Cache each backend's style catalog after the first successful fetch.
- Chunk text, fetch chunk audio concurrently, and join it in chunk order.
- Apply the configured partial-failure policy and the combined volume.

Key types:
- `TtsBackend`: base class every provider subclasses.
- `ChunkFailurePolicy`: `fail_fast` or `best_effort` handling of failed chunks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import asyncio
from enum import Enum

from ..audio import codec
from ..errors import AudioDecodeError, CatalogUnavailableError, SynthesisError
from ..models.datatypes import CharacterView, PcmBuffer, StyleId, StyleView
from ..telemetry.logger import RunLogger
from ..text.chunking import TextChunker
from .http import BackendRequestError, HttpClient

CHUNK_FAILURES = (BackendRequestError, AudioDecodeError)


class ChunkFailurePolicy(str, Enum):
    """How a backend reacts when some chunk requests fail."""

    FAIL_FAST = "fail_fast"
    BEST_EFFORT = "best_effort"


class TtsBackend(ABC):
    """Base class for HTTP speech backends.

    Subclasses set `kind`, `audio_format` and `max_chunk_chars`, and implement
    `_fetch_styles` and `_fetch_chunk`.
    """

    kind: str = ""
    audio_format: str = "wav"
    max_chunk_chars: int | None = None

    def __init__(
        self,
        service_id: str,
        http: HttpClient,
        *,
        master_volume: float = 1.0,
        global_volume: float = 1.0,
        chunk_failure_policy: ChunkFailurePolicy | str = ChunkFailurePolicy.FAIL_FAST,
        chunker: TextChunker | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize shared backend state."""

        self.service_id = service_id
        self.http = http
        self.master_volume = master_volume
        self.global_volume = global_volume
        self.chunk_failure_policy = ChunkFailurePolicy(chunk_failure_policy)
        self._chunker = chunker if chunker is not None else TextChunker()
        self._run_logger = run_logger if run_logger is not None else RunLogger()
        self._catalog: tuple[CharacterView, ...] | None = None

    async def styles(self) -> tuple[CharacterView, ...]:
        """Return the style catalog, fetching it on first use.

        Raises:
            CatalogUnavailableError: If the catalog cannot be fetched or parsed.
        """

        if self._catalog is not None:
            return self._catalog
        self._run_logger.log_stage_start("catalog", service=self.service_id, kind=self.kind)
        try:
            catalog = tuple(await self._fetch_styles())
        except (BackendRequestError, KeyError, TypeError, ValueError) as exc:
            self._run_logger.log_stage_failure(
                "catalog",
                type(exc).__name__,
                service=self.service_id,
            )
            raise CatalogUnavailableError(self.service_id, str(exc)) from exc
        self._catalog = catalog
        self._run_logger.log_stage_complete(
            "catalog",
            service=self.service_id,
            characters=len(catalog),
        )
        return catalog

    async def resolve_style(self, style_id: StyleId) -> tuple[CharacterView, StyleView] | None:
        """Find the character and style for `style_id` in the cached catalog."""

        for character in await self.styles():
            for style in character.styles:
                if style.id == style_id:
                    return character, style
        return None

    async def is_available(self, style_id: StyleId) -> bool:
        return await self.resolve_style(style_id) is not None

    def style_gain(self, style_id: StyleId) -> float:
        """Return the per-style volume multiplier."""

        return 1.0

    def volume_for(self, style_id: StyleId) -> float:
        """Return the combined gain applied to audio for `style_id`."""

        return self.master_volume * self.global_volume * self.style_gain(style_id)

    def split_text(self, text: str) -> list[str]:
        """Split text by this provider's request limit."""

        if self.max_chunk_chars is None:
            return [text]
        return self._chunker.split(text, self.max_chunk_chars)

    async def synthesize(self, style_id: StyleId, text: str) -> PcmBuffer:
        """Synthesize `text` with `style_id` into one PCM buffer.

        Raises:
            SynthesisError: If chunk requests fail under the configured policy.
            OverlongTokenError: If the text cannot be chunked.
        """

        if not text.strip():
            return codec.empty()

        chunks = self.split_text(text)
        self._run_logger.log_stage_start(
            "synthesize",
            service=self.service_id,
            chunks=len(chunks),
        )
        volume = self.volume_for(style_id)
        results = await asyncio.gather(
            *(self._synthesize_chunk(style_id, chunk, volume) for chunk in chunks),
            return_exceptions=True,
        )

        parts: list[PcmBuffer] = []
        failed: list[int] = []
        for index, result in enumerate(results):
            if isinstance(result, CHUNK_FAILURES):
                failed.append(index)
                if self.chunk_failure_policy is ChunkFailurePolicy.BEST_EFFORT:
                    self._run_logger.log_warning(
                        "synthesize",
                        "chunk_dropped",
                        service=self.service_id,
                        chunk_index=index,
                        error_type=type(result).__name__,
                    )
                continue
            if isinstance(result, BaseException):
                raise result
            parts.append(result)

        if failed and (
            self.chunk_failure_policy is ChunkFailurePolicy.FAIL_FAST or not parts
        ):
            self._run_logger.log_stage_failure(
                "synthesize",
                "SynthesisError",
                service=self.service_id,
                failed_chunks=len(failed),
            )
            first_error = results[failed[0]]
            raise SynthesisError(
                self.service_id,
                f"{len(failed)} of {len(chunks)} chunk(s) failed on `{self.service_id}`: "
                f"{first_error}",
                failed_chunks=tuple(failed),
            )

        pcm = codec.concatenate(parts)
        self._run_logger.log_stage_complete(
            "synthesize",
            service=self.service_id,
            frames=pcm.frame_count,
            sample_rate=pcm.sample_rate,
        )
        return pcm

    async def _synthesize_chunk(self, style_id: StyleId, text: str, volume: float) -> PcmBuffer:
        """Fetch and decode one chunk."""

        payload = await self._fetch_chunk(style_id, text)
        return codec.decode(payload, self.audio_format, volume)

    @abstractmethod
    async def _fetch_styles(self) -> tuple[CharacterView, ...]:
        """Fetch the provider's catalog."""

    @abstractmethod
    async def _fetch_chunk(self, style_id: StyleId, text: str) -> bytes:
        """Fetch encoded audio for one chunk."""
