"""Speech pipeline from chat text to a playable float32 stream.

Responsibilities:
- Filter chat messages before synthesis.
- Dispatch synthesis through the registry.
- Time-stretch the utterance in a worker thread and wrap it in a `StreamSource`.
"""

from __future__ import annotations

import asyncio

from .audio.stream import StreamSource
from .audio.timestretch import TimeStretchEngine
from .config import ChatvoiceConfig
from .models.datatypes import PcmBuffer, TimeStretchConfig
from .telemetry.logger import RunLogger
from .text.message_filter import MessageFilter
from .tts.registry import TtsRegistry


class SpeechPipeline:
    """Turn chat text into playable audio for one configured registry."""

    def __init__(
        self,
        registry: TtsRegistry,
        time_stretch: TimeStretchConfig | None = None,
        output_sample_rate: int = 48000,
        message_filter: MessageFilter | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            registry: Registry holding the available backends.
            time_stretch: Acceleration ramp; defaults to `TimeStretchConfig()`.
            output_sample_rate: Sample rate expected by the playback transport.
            message_filter: Optional chat filter; `None` speaks text unchanged.
            run_logger: Optional shared run logger.
        """

        self.registry = registry
        self.output_sample_rate = output_sample_rate
        self.message_filter = message_filter
        self._run_logger = run_logger if run_logger is not None else RunLogger()
        self._engine = TimeStretchEngine(time_stretch, run_logger=self._run_logger)

    @classmethod
    def from_config(
        cls,
        registry: TtsRegistry,
        config: ChatvoiceConfig,
        run_logger: RunLogger | None = None,
    ) -> SpeechPipeline:
        """Build a pipeline from loaded configuration."""

        return cls(
            registry,
            time_stretch=config.time_stretch,
            output_sample_rate=config.output_sample_rate,
            message_filter=MessageFilter() if config.filter_messages else None,
            run_logger=run_logger,
        )

    async def synthesize(self, service_id: str, style_id: str, text: str) -> PcmBuffer | None:
        """Filter and synthesize `text`, returning `None` when it must stay silent."""

        spoken = text if self.message_filter is None else self.message_filter.apply(text)
        if spoken is None:
            self._run_logger.log_debug("synthesize", "message_suppressed", service=service_id)
            return None
        return await self.registry.synthesize(service_id, style_id, spoken)

    async def render(self, pcm: PcmBuffer) -> StreamSource:
        """Time-stretch `pcm` off the event loop and wrap it for playback."""

        stretched = await asyncio.to_thread(self._engine.process, pcm)
        return StreamSource(stretched, self.output_sample_rate, run_logger=self._run_logger)

    async def speak(self, service_id: str, style_id: str, text: str) -> StreamSource | None:
        """Produce a playable stream for `text`, or `None` when nothing is spoken."""

        pcm = await self.synthesize(service_id, style_id, text)
        if pcm is None:
            return None
        return await self.render(pcm)
