"""Speech-backend abstractions and the backend registry.

This package contains the uniform backend contract, the shared HTTP client, and the
registry the pipeline dispatches synthesis through.
"""

from .base import ChunkFailurePolicy, TtsBackend
from .http import BackendRequestError, HttpClient
from .registry import TtsRegistry

__all__ = [
    "BackendRequestError",
    "ChunkFailurePolicy",
    "HttpClient",
    "TtsBackend",
    "TtsRegistry",
]
