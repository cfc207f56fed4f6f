"""Klipy media search client.

Searches GIFs and sports clips, fetches trending content and categories, and
flattens the API's nested response into :class:`MediaItem` records. Whatever
the user picks still goes through the trusted-media rule before it is
attached to a message.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from smack_talk.core.settings import settings
from smack_talk.schemas.media import MediaItem
from smack_talk.services.transport import ApiClient, RequestParams, TransportError

logger = logging.getLogger(__name__)


class MediaSearchError(TransportError):
    """Raised when the media search API cannot be reached."""


def _nested(item: Mapping[str, Any], *keys: str) -> Any:
    value: Any = item
    for key in keys:
        if not isinstance(value, Mapping):
            return None
        value = value.get(key)
    return value


def _dimension(item: Mapping[str, Any], key: str, default: int) -> int:
    for value in (item.get(key), _nested(item, "images", "original", key)):
        try:
            size = int(value)
        except (TypeError, ValueError, OverflowError):
            continue
        if size > 0:
            return size
    return default


def _extract_items(data: Any) -> list[Any]:
    # Results arrive as either ``{"data": [...]}`` or ``{"data": {"data": [...]}}``.
    payload = data.get("data") if isinstance(data, Mapping) else None
    if isinstance(payload, Mapping):
        payload = payload.get("data")
    return payload if isinstance(payload, list) else []


def format_content_results(items: list[Any]) -> list[MediaItem]:
    """Flatten raw API items, dropping entries without any usable media URL."""
    results = []
    for item in items:
        if not isinstance(item, Mapping):
            continue

        gif_url = item.get("gif") or _nested(item, "file", "gif") or _nested(
            item, "images", "original", "url"
        ) or ""
        mp4_url = item.get("mp4") or _nested(item, "file", "mp4") or _nested(
            item, "images", "original", "mp4"
        ) or ""
        webp_url = item.get("webp") or _nested(item, "file", "webp") or ""
        primary = gif_url or mp4_url or webp_url
        if not primary:
            logger.warning("No valid media URL found for item %s", item.get("id"))
            continue

        results.append(
            MediaItem(
                id=str(item.get("id") or item.get("slug") or primary),
                title=item.get("title") or "Sports content",
                url=primary,
                gif_url=gif_url,
                mp4_url=mp4_url,
                webp_url=webp_url,
                content_type=item.get("type") or "gif",
                width=_dimension(item, "width", 400),
                height=_dimension(item, "height", 300),
                preview_url=_nested(item, "file", "gif") or gif_url or primary,
            )
        )
    return results


class KlipyClient(ApiClient):
    """Client for the Klipy search, trending and categories endpoints."""

    error_class = MediaSearchError

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        per_page: int | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(base_url or settings.klipy_base_url, **kwargs)
        self.api_key = api_key if api_key is not None else settings.klipy_api_key
        self.per_page = per_page or settings.klipy_results_per_page

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.api_key)

    async def search(self, query: str, page: int = 0) -> list[MediaItem]:
        """Search content; an empty query returns trending content instead."""
        if not self.enabled:
            logger.error("Klipy API key not configured; set KLIPY_API_KEY")
            return []
        if not query or not query.strip():
            return await self.trending(page)

        data = await self._request(
            RequestParams(
                method="GET",
                path=f"/{self.api_key}/search",
                params={"q": query.strip(), "page": page, "per_page": self.per_page},
            )
        )
        results = format_content_results(_extract_items(data))
        logger.info("Found %d results for %r", len(results), query)
        return results

    async def trending(self, page: int = 0) -> list[MediaItem]:
        if not self.enabled:
            logger.error("Klipy API key not configured; set KLIPY_API_KEY")
            return []

        data = await self._request(
            RequestParams(
                method="GET",
                path=f"/{self.api_key}/trending",
                params={"page": page, "per_page": self.per_page},
            )
        )
        return format_content_results(_extract_items(data))

    async def categories(self) -> list[Any]:
        if not self.enabled:
            logger.error("Klipy API key not configured; set KLIPY_API_KEY")
            return []

        data = await self._request(RequestParams(method="GET", path=f"/{self.api_key}/categories"))
        categories = data.get("data") if isinstance(data, Mapping) else None
        return categories if isinstance(categories, list) else []
