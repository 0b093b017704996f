"""Backend factory helpers for configured speech services.

Responsibilities:
- Resolve configured backend kinds to concrete backend classes.
- Register every configured service, skipping services whose catalog is unavailable.
"""

from __future__ import annotations

from typing import Any

from .config import BackendSetting, ChatvoiceConfig
from .errors import CatalogUnavailableError
from .telemetry.logger import RunLogger
from .text.chunking import OverlongTokenPolicy, TextChunker
from .tts.base import TtsBackend
from .tts.http import HttpClient
from .tts.providers import (
    BingSpeechBackend,
    CoefontBackend,
    GoogleTranslateBackend,
    KttsBackend,
    NaverBackend,
    VoiceroidBackend,
    VoicevoxBackend,
    WinrtBackend,
)
from .tts.providers.coefont import DEFAULT_URL as COEFONT_URL
from .tts.providers.google_translate import DEFAULT_URL as GOOGLE_TRANSLATE_URL
from .tts.registry import TtsRegistry

_BACKEND_CLASSES: dict[str, type[TtsBackend]] = {
    "voicevox": VoicevoxBackend,
    "google_translate": GoogleTranslateBackend,
    "naver": NaverBackend,
    "coefont": CoefontBackend,
    "bing_speech": BingSpeechBackend,
    "ktts": KttsBackend,
    "voiceroid": VoiceroidBackend,
    "winrt": WinrtBackend,
}
_DEFAULT_URLS = {
    "google_translate": GOOGLE_TRANSLATE_URL,
    "coefont": COEFONT_URL,
}


class BackendFactory:
    """Factory for backend instances built from configuration."""

    @staticmethod
    def create(
        service_id: str,
        setting: BackendSetting,
        config: ChatvoiceConfig,
        run_logger: RunLogger | None = None,
    ) -> TtsBackend:
        """Create one backend for a configured service id."""

        backend_class = _BACKEND_CLASSES.get(setting.kind)
        if backend_class is None:
            raise ValueError(f"Unsupported backend kind `{setting.kind}`.")

        http = HttpClient(
            base_url=setting.url or _DEFAULT_URLS.get(setting.kind, ""),
            headers=setting.headers,
            timeout_seconds=config.http_timeout_seconds,
        )
        kwargs: dict[str, Any] = {
            "master_volume": setting.master_volume,
            "global_volume": config.global_volume,
            "chunker": TextChunker(OverlongTokenPolicy(config.overlong_token_policy)),
            "run_logger": run_logger,
        }
        if setting.chunk_failure_policy is not None:
            kwargs["chunk_failure_policy"] = setting.chunk_failure_policy
        kwargs.update(BackendFactory._provider_options(setting, config))
        return backend_class(service_id, http, **kwargs)

    @staticmethod
    def _provider_options(setting: BackendSetting, config: ChatvoiceConfig) -> dict[str, Any]:
        """Translate provider extras into constructor keyword arguments."""

        options = setting.options
        if setting.kind == "naver":
            return {"speed": options.get("speed", 0)}
        if setting.kind == "google_translate":
            return {"slow": options.get("slow", False)}
        if setting.kind == "winrt":
            return {"character_volume": dict(options.get("character_volume", {}))}
        if setting.kind == "ktts" and options.get("g2p_url"):
            return {
                "g2p_http": HttpClient(
                    base_url=str(options["g2p_url"]),
                    headers=options.get("g2p_headers", {}),
                    timeout_seconds=config.http_timeout_seconds,
                )
            }
        return {}


async def build_registry(
    config: ChatvoiceConfig,
    run_logger: RunLogger | None = None,
) -> TtsRegistry:
    """Create a registry and register every configured backend.

    Services whose catalog cannot be fetched are skipped with a failure log line.
    """

    logger = run_logger if run_logger is not None else RunLogger()
    registry = TtsRegistry(run_logger=logger)
    for service_id, setting in config.backends.items():
        backend = BackendFactory.create(service_id, setting, config, run_logger=logger)
        try:
            await registry.register(service_id, backend)
        except CatalogUnavailableError:
            logger.log_warning("register", "service_skipped", service=service_id)
    return registry
