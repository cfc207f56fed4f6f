"""Sanitization helpers for user-generated chat content.

Text is escaped as HTML entities before it enters session state. Escaping is
idempotent: entities that are already present are left alone, so payloads
relayed by peers can be re-sanitized without double-escaping.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from smack_talk.core.settings import settings
from smack_talk.schemas.chat_event import MediaAttachment
from smack_talk.schemas.media import MediaItem

logger = logging.getLogger(__name__)

HTML_ENTITIES = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#x27;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}

_UNSAFE_CHARS = re.compile(
    r"&(?!(?:[a-zA-Z][a-zA-Z0-9]*|#[0-9]+|#[xX][0-9a-fA-F]+);)|[<>\"'`=/]"
)


def sanitize_text(text: object) -> str:
    """Escape characters that could inject markup; non-strings become ``""``."""
    if not isinstance(text, str):
        return ""
    return _UNSAFE_CHARS.sub(lambda match: HTML_ENTITIES[match.group(0)], text)


def normalize_message_input(text: object, max_length: int | None = None) -> str:
    """Trim and length-limit raw input text."""
    if not isinstance(text, str):
        return ""
    limit = settings.message_max_length if max_length is None else max_length
    return text.strip()[:limit]


def is_trusted_media_url(url: object, domains: Iterable[str] | None = None) -> bool:
    """Return True if ``url`` is https and hosted on an allow-listed domain.

    A host matches when it equals an allow-listed domain or is a subdomain of
    one.
    """
    if not isinstance(url, str) or not url:
        return False

    try:
        parts = urlsplit(url)
        hostname = parts.hostname
    except ValueError:
        logger.debug("Rejected malformed media URL: %r", url)
        return False

    if parts.scheme != "https" or not hostname:
        logger.debug("Rejected non-https media URL: %s", url)
        return False

    allowed = settings.trusted_media_domains if domains is None else domains
    hostname = hostname.lower()
    for domain in allowed:
        domain = domain.lower().strip(".")
        if hostname == domain or hostname.endswith(f".{domain}"):
            return True

    logger.debug("Rejected media URL from untrusted host %s", hostname)
    return False


def sanitize_media(
    raw: object, domains: Iterable[str] | None = None
) -> MediaAttachment | None:
    """Return a validated attachment for a raw media mapping, or None."""
    if isinstance(raw, MediaAttachment):
        raw = raw.model_dump(by_alias=True)
    if not isinstance(raw, dict):
        return None

    kind = raw.get("type", raw.get("kind", "gif"))
    url = raw.get("url")
    if kind != "gif" or not is_trusted_media_url(url, domains):
        return None

    alt = raw.get("alt", raw.get("alt_text", ""))
    return MediaAttachment(kind="gif", url=url, alt_text=sanitize_text(alt))


def media_from_selection(
    item: MediaItem, domains: Iterable[str] | None = None
) -> MediaAttachment | None:
    """Convert a media search selection into an attachment if its URL is trusted."""
    return sanitize_media({"type": "gif", "url": item.url, "alt": item.title}, domains)
