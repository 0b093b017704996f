"""HTTP client utilities shared by speech backends.

Responsibilities:
- Send provider requests through one `requests.Session` with a fixed timeout.
- Map transport and HTTP failures into `BackendRequestError` with a failure kind.
- Expose async wrappers that run blocking calls in worker threads.
"""

from __future__ import annotations

import asyncio
import json
import re
import socket
from typing import Any, Mapping

import requests

from ..errors import ChatvoiceError

USER_AGENT = "chatvoice/0.1"
_MIN_SECRET_CHARS = 8


class BackendRequestError(ChatvoiceError):
    """Raised when one backend HTTP call fails or returns an unusable body."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        """Initialize request error metadata for diagnostics."""

        super().__init__(message)
        self.failure_kind = failure_kind
        self.status_code = status_code


class HttpClient:
    """Requests-based HTTP client with deterministic error mapping."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        base_url: str = "",
        headers: Mapping[str, str] | None = None,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        """Initialize client settings and the pooled session."""

        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.session = session if session is not None else requests.Session()
        self.session.headers["User-Agent"] = USER_AGENT
        if headers:
            self.session.headers.update(dict(headers))
        self._secrets = tuple(
            sorted(
                (value for value in (headers or {}).values() if len(value) >= _MIN_SECRET_CHARS),
                key=len,
                reverse=True,
            )
        )

    def url(self, path: str) -> str:
        """Join `path` onto the base URL; absolute URLs pass through."""

        if path.startswith(("http://", "https://")):
            return path
        if not path:
            return self.base_url
        return f"{self.base_url}/{path.lstrip('/')}"

    def request_bytes(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json_body: Any = None,
        data: bytes | str | None = None,
        headers: Mapping[str, str] | None = None,
        require_non_empty_response: bool = False,
    ) -> bytes:
        """Execute one request and return the raw response body.

        Raises:
            BackendRequestError: On timeout, transport failure, HTTP error status, or
                an empty body when `require_non_empty_response` is set.
        """

        endpoint = self.url(path)
        try:
            response = self.session.request(
                method,
                endpoint,
                params=params,
                json=json_body,
                data=data,
                headers=dict(headers) if headers else None,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            response_bytes = bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_request_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = f"Request to `{self._redact_url(endpoint)}` timed out."
            else:
                detail = f"Request transport error: {self._short_message(str(exc))}"
            raise BackendRequestError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise BackendRequestError(
                f"Request to `{self._redact_url(endpoint)}` timed out.",
                failure_kind="timeout",
            ) from exc

        if require_non_empty_response and not response_bytes:
            raise BackendRequestError(
                f"Response from `{self._redact_url(endpoint)}` is empty.",
                failure_kind="empty_response",
            )
        return response_bytes

    def get_bytes(self, path: str, **kwargs: Any) -> bytes:
        return self.request_bytes("GET", path, **kwargs)

    def post_bytes(self, path: str, **kwargs: Any) -> bytes:
        return self.request_bytes("POST", path, **kwargs)

    def get_json(self, path: str, **kwargs: Any) -> Any:
        """GET `path` and decode the body as JSON."""

        return self._decode_json(self.request_bytes("GET", path, **kwargs))

    def post_json(self, path: str, **kwargs: Any) -> Any:
        """POST to `path` and decode the body as JSON."""

        return self._decode_json(self.request_bytes("POST", path, **kwargs))

    async def aget_bytes(self, path: str, **kwargs: Any) -> bytes:
        return await asyncio.to_thread(self.get_bytes, path, **kwargs)

    async def apost_bytes(self, path: str, **kwargs: Any) -> bytes:
        return await asyncio.to_thread(self.post_bytes, path, **kwargs)

    async def aget_json(self, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self.get_json, path, **kwargs)

    async def apost_json(self, path: str, **kwargs: Any) -> Any:
        return await asyncio.to_thread(self.post_json, path, **kwargs)

    @staticmethod
    def _decode_json(raw: bytes) -> Any:
        """Decode a JSON response body."""

        try:
            return json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise BackendRequestError(
                "Backend returned an invalid JSON payload.",
                failure_kind="invalid_payload",
            ) from exc

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content or b"").decode("utf-8", errors="replace").strip()

    @staticmethod
    def _redact_url(url: str) -> str:
        """Drop query strings, which may carry message text or keys."""

        return url.split("?", 1)[0]

    def _redact_sensitive_tokens(self, text: str) -> str:
        """Redact configured header values and bearer tokens from provider error content."""

        redacted = text
        for secret in self._secrets:
            redacted = redacted.replace(secret, "[redacted-header]")
        redacted = re.sub(
            r"(?i)bearer\s+[A-Za-z0-9._-]{12,}",
            "Bearer [redacted-token]",
            redacted,
        )
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    def _http_error_to_request_error(self, exc: requests.HTTPError) -> BackendRequestError:
        """Convert HTTP errors into normalized request errors with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = self._short_message(self._redact_sensitive_tokens(self._decode_error_body(exc)))
        failure_kind = "timeout" if status_code in {408, 504} else "http_error"
        if body:
            detail = f"Backend request failed (HTTP {status_code}): {body}"
        else:
            detail = f"Backend request failed (HTTP {status_code})."
        return BackendRequestError(detail, failure_kind=failure_kind, status_code=status_code)
