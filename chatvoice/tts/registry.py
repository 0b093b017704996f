"""Registry of speech backends and their frozen style catalogs.

Responsibilities:
- Register each service id once, with its catalog fetched up front.
- Dispatch synthesis to the right backend after validating the style id.
- Allow many concurrent readers while registration holds a short write lock.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

from ..errors import (
    CatalogUnavailableError,
    DuplicateServiceError,
    UnknownServiceError,
    UnknownStyleError,
)
from ..models.datatypes import CharacterView, PcmBuffer, ResolvedStyle, ServiceId, StyleId
from ..telemetry.logger import RunLogger
from .base import TtsBackend


class ReadWriteLock:
    """Asyncio lock allowing many readers or one writer."""

    def __init__(self) -> None:
        self._condition = asyncio.Condition()
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @asynccontextmanager
    async def read(self) -> AsyncIterator[None]:
        async with self._condition:
            await self._condition.wait_for(
                lambda: not self._writer and self._writers_waiting == 0
            )
            self._readers += 1
        try:
            yield
        finally:
            async with self._condition:
                self._readers -= 1
                self._condition.notify_all()

    @asynccontextmanager
    async def write(self) -> AsyncIterator[None]:
        async with self._condition:
            self._writers_waiting += 1
            try:
                await self._condition.wait_for(
                    lambda: not self._writer and self._readers == 0
                )
            finally:
                self._writers_waiting -= 1
                self._condition.notify_all()
            self._writer = True
        try:
            yield
        finally:
            async with self._condition:
                self._writer = False
                self._condition.notify_all()


class TtsRegistry:
    """Map of service ids to backends with cached catalogs.

    Entries are created by `register` and never removed.
    """

    def __init__(self, run_logger: RunLogger | None = None) -> None:
        """Initialize an empty registry."""

        self._entries: dict[ServiceId, tuple[TtsBackend, tuple[CharacterView, ...]]] = {}
        self._lock = ReadWriteLock()
        self._run_logger = run_logger if run_logger is not None else RunLogger()

    async def register(self, service_id: ServiceId, backend: TtsBackend) -> None:
        """Register `backend` under `service_id`.

        The catalog is fetched before the write lock is taken; on any failure the
        registry is left unchanged.

        Raises:
            DuplicateServiceError: If `service_id` is already registered.
            CatalogUnavailableError: If the backend catalog cannot be fetched.
        """

        async with self._lock.read():
            if service_id in self._entries:
                raise DuplicateServiceError(service_id)

        self._run_logger.log_stage_start("register", service=service_id, kind=backend.kind)
        try:
            catalog = tuple(await backend.styles())
        except CatalogUnavailableError as exc:
            self._run_logger.log_stage_failure(
                "register", "CatalogUnavailableError", service=service_id
            )
            raise CatalogUnavailableError(service_id, exc.detail) from exc

        async with self._lock.write():
            if service_id in self._entries:
                raise DuplicateServiceError(service_id)
            self._entries[service_id] = (backend, catalog)
        self._run_logger.log_stage_complete(
            "register",
            service=service_id,
            styles=sum(len(character.styles) for character in catalog),
        )

    async def services(self) -> list[ServiceId]:
        async with self._lock.read():
            return list(self._entries)

    async def styles(self) -> dict[ServiceId, tuple[CharacterView, ...]]:
        """Return a snapshot of every registered catalog."""

        async with self._lock.read():
            return {service_id: catalog for service_id, (_, catalog) in self._entries.items()}

    async def is_available(self, service_id: ServiceId, style_id: StyleId) -> bool:
        """Return whether `style_id` exists in the catalog of `service_id`."""

        async with self._lock.read():
            entry = self._entries.get(service_id)
        if entry is None:
            return False
        return _find_style(entry[1], style_id) is not None

    async def resolve_style(self, service_id: ServiceId, style_id: StyleId) -> ResolvedStyle:
        """Return display metadata for one style.

        Raises:
            UnknownServiceError: If the service is not registered.
            UnknownStyleError: If the style is not in the service catalog.
        """

        _, catalog = await self._entry(service_id)
        found = _find_style(catalog, style_id)
        if found is None:
            raise UnknownStyleError(service_id, style_id)
        character, style = found
        return ResolvedStyle(service_id=service_id, character=character, style=style)

    async def synthesize(
        self,
        service_id: ServiceId,
        style_id: StyleId,
        text: str,
    ) -> PcmBuffer:
        """Synthesize `text` on the backend registered as `service_id`.

        Raises:
            UnknownServiceError: If the service is not registered.
            UnknownStyleError: If the style is not in the service catalog.
            SynthesisError: If the backend cannot produce audio.
        """

        backend, catalog = await self._entry(service_id)
        if _find_style(catalog, style_id) is None:
            raise UnknownStyleError(service_id, style_id)
        return await backend.synthesize(style_id, text)

    async def _entry(self, service_id: ServiceId) -> tuple[TtsBackend, tuple[CharacterView, ...]]:
        async with self._lock.read():
            entry = self._entries.get(service_id)
        if entry is None:
            raise UnknownServiceError(service_id)
        return entry


def _find_style(
    catalog: tuple[CharacterView, ...],
    style_id: StyleId,
):
    for character in catalog:
        for style in character.styles:
            if style.id == style_id:
                return character, style
    return None
