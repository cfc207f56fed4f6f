"""Shared HTTP plumbing for the remote collaborators.

This module provides the base error type for transport failures and a small
httpx wrapper used by the history store, stats store and media search
clients.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import httpx

from smack_talk.core.settings import settings

# Configure logger for this module
logger = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400


class TransportError(RuntimeError):
    """Base exception raised when a collaborator call fails.

    The session catches these, logs them and keeps its optimistic state.
    """


@dataclass(frozen=True)
class RequestParams:
    """Parameters for HTTP requests."""

    method: str
    path: str
    json_data: Any | None = None
    params: Mapping[str, Any] | None = None


class ApiClient:
    """Lazily constructed ``httpx.AsyncClient`` with uniform error mapping."""

    error_class: type[TransportError] = TransportError

    def __init__(
        self,
        base_url: str | None,
        *,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout_seconds = (
            settings.http_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise self.error_class(f"{type(self).__name__} has no base URL configured")

        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self.base_url or "",
                    timeout=httpx.Timeout(self.timeout_seconds),
                    transport=self._transport,
                )
        return self._client

    async def _request(self, params: RequestParams) -> Any:
        """Send a request and return the decoded JSON body."""
        client = await self._ensure_client()
        endpoint = f"{params.method} {params.path}"

        try:
            response = await client.request(
                params.method,
                params.path,
                json=params.json_data,
                params=params.params,
            )
        except httpx.HTTPError as exc:
            raise self.error_class(f"{endpoint} failed: {exc}") from exc

        if response.status_code >= HTTP_BAD_REQUEST:
            raise self.error_class(f"{endpoint} responded with {response.status_code}")

        try:
            return response.json()
        except ValueError as exc:
            raise self.error_class(f"{endpoint} returned invalid JSON") from exc

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
