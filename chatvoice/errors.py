"""Domain exceptions for synthesis, registry, and CLI diagnostics.

Responsibilities:
- Provide one exception family for every failure the synthesis core reports.
- Keep stage-scoped CLI diagnostics separate from the domain taxonomy.
"""

from __future__ import annotations


class ChatvoiceError(RuntimeError):
    """Base class for all chatvoice domain errors."""


class ConfigError(ValueError):
    """Raised when configuration values are invalid at load time."""


class OverlongTokenError(ValueError):
    """Raised when a single token cannot fit into one request-sized chunk."""

    def __init__(self, window: str, max_len: int) -> None:
        """Initialize the error with the offending text window."""

        super().__init__(
            f"The word is too long to split into a chunk of {max_len} characters: "
            f"{window} ... Try to split the text by punctuation."
        )
        self.window = window
        self.max_len = max_len


class AudioDecodeError(ChatvoiceError):
    """Raised when an audio payload or container cannot be decoded."""


class CatalogUnavailableError(ChatvoiceError):
    """Raised when a backend's style catalog cannot be fetched."""

    def __init__(self, service_id: str, detail: str) -> None:
        """Initialize the error for one unavailable service."""

        super().__init__(f"Service `{service_id}` is unavailable: {detail}")
        self.service_id = service_id
        self.detail = detail


class SynthesisError(ChatvoiceError):
    """Raised when a synthesis request cannot produce audio."""

    def __init__(
        self,
        service_id: str,
        detail: str,
        *,
        failed_chunks: tuple[int, ...] = (),
    ) -> None:
        """Initialize the error with the indices of the chunks that failed."""

        super().__init__(detail)
        self.service_id = service_id
        self.detail = detail
        self.failed_chunks = failed_chunks


class RegistryError(ChatvoiceError):
    """Base class for local, recoverable registry failures."""


class DuplicateServiceError(RegistryError):
    """Raised when a service id is registered twice."""

    def __init__(self, service_id: str) -> None:
        super().__init__(f"`{service_id}` is already taken")
        self.service_id = service_id


class UnknownServiceError(RegistryError):
    """Raised when a service id is not registered."""

    def __init__(self, service_id: str) -> None:
        super().__init__(f"`{service_id}` is not registered")
        self.service_id = service_id


class UnknownStyleError(RegistryError):
    """Raised when a style id is not in a service's catalog."""

    def __init__(self, service_id: str, style_id: str) -> None:
        super().__init__(f"Style `{style_id}` is not available on `{service_id}`")
        self.service_id = service_id
        self.style_id = style_id


class PipelineStageError(RuntimeError):
    """Raised when a specific pipeline stage fails."""

    def __init__(
        self,
        *,
        stage: str,
        detail: str,
        hint: str | None = None,
    ) -> None:
        """Initialize a stage-scoped pipeline error."""

        super().__init__(detail)
        self.stage = stage
        self.detail = detail
        self.hint = hint
