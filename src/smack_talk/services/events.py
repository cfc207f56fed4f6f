"""Inbound event boundary.

Payloads from the broadcast channel and the history store are untrusted and
loosely shaped. Everything is coerced into a :class:`ChatEvent` here, or
rejected, before it can reach session state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from smack_talk.schemas.chat_event import MAX_TIMESTAMP_MS, ChatEvent, EventKind
from smack_talk.services.sanitize import normalize_message_input, sanitize_media, sanitize_text

logger = logging.getLogger(__name__)

UNKNOWN_AUTHOR = "Unknown"


def _coerce_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        # ASCII digits only; ``int`` rejects digits such as "²".
        if text.isascii() and text.isdigit():
            return int(text)
    return None


def _unwrap(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    # The events endpoint delivers ``{"event": {...}}`` envelopes.
    inner = payload.get("event")
    if isinstance(inner, Mapping):
        return inner
    return payload


def parse_inbound_event(
    payload: object,
    now_ms: int,
    *,
    media_domains: Iterable[str] | None = None,
) -> ChatEvent | None:
    """Coerce a transport payload into a sanitized ``ChatEvent``.

    Args:
        payload: Raw mapping from the broadcast channel or the history store.
        now_ms: Receipt time, used when the payload has no epoch timestamp.
        media_domains: Optional override of the trusted media allow-list.

    Returns:
        The event, or None when the payload cannot be coerced.
    """
    if not isinstance(payload, Mapping):
        logger.debug("Rejected non-mapping payload: %r", payload)
        return None

    data = _unwrap(payload)

    timestamp = _coerce_int(data.get("timestamp", data.get("created_at")))
    event_id = _coerce_int(data.get("id"))
    if event_id is None:
        event_id = timestamp
    if event_id is None:
        logger.debug("Rejected payload without a usable id: %r", data)
        return None
    if timestamp is not None and not 0 <= timestamp <= MAX_TIMESTAMP_MS:
        logger.debug("Replacing out-of-range timestamp %s with receipt time", timestamp)
        timestamp = None

    raw_kind = data.get("type", data.get("kind", EventKind.MESSAGE.value))
    try:
        kind = EventKind(raw_kind)
    except ValueError:
        logger.debug("Rejected payload with unknown kind %r", raw_kind)
        return None

    author = sanitize_text(normalize_message_input(data.get("username", data.get("author_name"))))
    body = sanitize_text(normalize_message_input(data.get("text", data.get("body"))))
    media = sanitize_media(data.get("media"), media_domains) if kind is EventKind.MESSAGE else None

    if kind is EventKind.REACTION and not body:
        logger.debug("Rejected empty reaction %s", event_id)
        return None

    try:
        return ChatEvent(
            id=event_id,
            author_name=author or UNKNOWN_AUTHOR,
            body=body,
            kind=kind,
            created_at=timestamp if timestamp is not None else now_ms,
            media=media,
        )
    except ValidationError as exc:
        logger.debug("Rejected payload %s: %s", event_id, exc)
        return None
