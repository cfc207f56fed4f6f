"""Message history stores.

``HttpHistoryStore`` talks to the hosted message API; ``SqlHistoryStore``
keeps the same contract on top of the local SQLAlchemy database. Both return
raw payload mappings, newest first; the session coerces them through the
inbound event boundary.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from smack_talk.core.settings import settings
from smack_talk.models import StoredMessage
from smack_talk.schemas.chat_event import ChatEvent
from smack_talk.services.transport import ApiClient, RequestParams, TransportError

logger = logging.getLogger(__name__)


class HistoryStoreError(TransportError):
    """Raised when loading or appending history fails."""


class HistoryStore(Protocol):
    async def load_recent(self, room_id: str, limit: int) -> list[Mapping[str, Any]]: ...

    async def append(self, room_id: str, event: ChatEvent) -> None: ...


def _store_payload(room_id: str, event: ChatEvent) -> dict[str, Any]:
    payload = event.to_payload()
    payload["gameId"] = room_id
    return payload


class HttpHistoryStore(ApiClient):
    """Client for the hosted message API (``GET ?gameId=`` / ``POST``)."""

    error_class = HistoryStoreError

    def __init__(self, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url or settings.history_api_url, **kwargs)

    async def load_recent(self, room_id: str, limit: int) -> list[Mapping[str, Any]]:
        data = await self._request(
            RequestParams(method="GET", path="", params={"gameId": room_id, "limit": limit})
        )
        messages = data.get("messages") if isinstance(data, dict) else None
        if not isinstance(messages, list):
            return []
        logger.info("Loaded %d messages for %s", len(messages), room_id)
        return [item for item in messages[:limit] if isinstance(item, Mapping)]

    async def append(self, room_id: str, event: ChatEvent) -> None:
        await self._request(
            RequestParams(method="POST", path="", json_data=_store_payload(room_id, event))
        )
        logger.debug("Saved message %s to %s", event.id, room_id)


class SqlHistoryStore:
    """History store backed by the local database, with a row TTL."""

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        *,
        ttl_seconds: int | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if session_factory is None:
            from smack_talk.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory
        self.ttl_seconds = settings.message_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._clock = clock

    async def load_recent(self, room_id: str, limit: int) -> list[Mapping[str, Any]]:
        return await asyncio.to_thread(self._load_recent, room_id, limit)

    async def append(self, room_id: str, event: ChatEvent) -> None:
        await asyncio.to_thread(self._append, room_id, event)

    async def purge_expired(self) -> int:
        return await asyncio.to_thread(self._purge_expired)

    def _load_recent(self, room_id: str, limit: int) -> list[Mapping[str, Any]]:
        now = int(self._clock())
        try:
            with self._session_factory() as db:
                rows = db.scalars(
                    select(StoredMessage)
                    .where(StoredMessage.room_id == room_id, StoredMessage.expires_at > now)
                    .order_by(StoredMessage.timestamp.desc(), StoredMessage.event_id.desc())
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Loading history for {room_id} failed: {exc}") from exc

        payloads = []
        for row in rows:
            payload: dict[str, Any] = {
                "id": row.event_id,
                "username": row.username,
                "text": row.text,
                "type": row.kind,
                "timestamp": row.timestamp,
            }
            if row.media:
                payload["media"] = row.media
            payloads.append(payload)
        return payloads

    def _append(self, room_id: str, event: ChatEvent) -> None:
        record = StoredMessage(
            room_id=room_id,
            event_id=event.id,
            username=event.author_name,
            text=event.body,
            kind=event.kind.value,
            timestamp=event.created_at,
            media=event.media.model_dump(by_alias=True) if event.media else None,
            expires_at=int(self._clock()) + self.ttl_seconds,
        )
        try:
            with self._session_factory() as db:
                db.add(record)
                try:
                    db.commit()
                except IntegrityError:
                    db.rollback()
                    logger.debug("Message %s already stored for %s", event.id, room_id)
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Saving message {event.id} failed: {exc}") from exc

    def _purge_expired(self) -> int:
        now = int(self._clock())
        try:
            with self._session_factory() as db:
                result = db.execute(delete(StoredMessage).where(StoredMessage.expires_at <= now))
                db.commit()
        except SQLAlchemyError as exc:
            raise HistoryStoreError(f"Purging expired messages failed: {exc}") from exc
        return int(result.rowcount or 0)
