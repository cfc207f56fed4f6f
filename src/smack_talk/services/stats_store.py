"""Durable user stats stores (XP and leaderboard)."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Protocol

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from smack_talk.core.settings import settings
from smack_talk.models import UserStatsRecord
from smack_talk.schemas.stats import DurableStats, LeaderboardEntry
from smack_talk.services.transport import ApiClient, RequestParams, TransportError

logger = logging.getLogger(__name__)


class StatsStoreError(TransportError):
    """Raised when fetching or updating stats fails."""


class StatsStore(Protocol):
    async def fetch_stats(self, user_id: str) -> DurableStats | None: ...

    async def apply_xp_delta(self, user_id: str, display_name: str, delta: int) -> DurableStats: ...

    async def leaderboard(self, limit: int) -> list[LeaderboardEntry]: ...


def _parse_stats(data: Any) -> DurableStats | None:
    stats = data.get("stats") if isinstance(data, dict) else None
    if not isinstance(stats, dict):
        return None
    try:
        return DurableStats.model_validate(stats)
    except ValidationError as exc:
        raise StatsStoreError(f"Malformed stats payload: {exc}") from exc


class HttpStatsStore(ApiClient):
    """Client for the hosted stats API."""

    error_class = StatsStoreError

    def __init__(self, base_url: str | None = None, **kwargs: Any) -> None:
        super().__init__(base_url or settings.stats_api_url, **kwargs)

    async def fetch_stats(self, user_id: str) -> DurableStats | None:
        data = await self._request(
            RequestParams(method="GET", path="/user-stats", params={"clerkUserId": user_id})
        )
        return _parse_stats(data)

    async def apply_xp_delta(self, user_id: str, display_name: str, delta: int) -> DurableStats:
        data = await self._request(
            RequestParams(
                method="POST",
                path="/user-stats/xp",
                json_data={"clerkUserId": user_id, "username": display_name, "amount": delta},
            )
        )
        stats = _parse_stats(data)
        if stats is None:
            raise StatsStoreError(f"XP update for {user_id} returned no stats")
        return stats

    async def leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        data = await self._request(
            RequestParams(method="GET", path="/leaderboard", params={"limit": limit})
        )
        rows = data.get("leaderboard") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            return []

        entries = []
        for row in rows:
            try:
                entries.append(LeaderboardEntry.model_validate(row))
            except ValidationError:
                logger.debug("Skipping malformed leaderboard row: %r", row)
        return entries


class SqlStatsStore:
    """Stats store backed by the local database."""

    def __init__(self, session_factory: sessionmaker[Session] | None = None) -> None:
        if session_factory is None:
            from smack_talk.db.session import SessionLocal

            session_factory = SessionLocal
        self._session_factory = session_factory

    async def fetch_stats(self, user_id: str) -> DurableStats | None:
        return await asyncio.to_thread(self._fetch_stats, user_id)

    async def apply_xp_delta(self, user_id: str, display_name: str, delta: int) -> DurableStats:
        return await asyncio.to_thread(self._apply_xp_delta, user_id, display_name, delta)

    async def leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        return await asyncio.to_thread(self._leaderboard, limit)

    def _fetch_stats(self, user_id: str) -> DurableStats | None:
        try:
            with self._session_factory() as db:
                record = db.get(UserStatsRecord, user_id)
                return DurableStats(xp=record.xp) if record else None
        except SQLAlchemyError as exc:
            raise StatsStoreError(f"Loading stats for {user_id} failed: {exc}") from exc

    def _apply_xp_delta(self, user_id: str, display_name: str, delta: int) -> DurableStats:
        if delta < 0:
            raise ValueError("XP deltas must not be negative")
        try:
            with self._session_factory() as db:
                record = db.get(UserStatsRecord, user_id)
                if record is None:
                    record = UserStatsRecord(user_id=user_id, display_name=display_name, xp=0)
                    db.add(record)
                record.xp = (record.xp or 0) + delta
                record.display_name = display_name
                db.commit()
                return DurableStats(xp=record.xp)
        except SQLAlchemyError as exc:
            raise StatsStoreError(f"Updating XP for {user_id} failed: {exc}") from exc

    def _leaderboard(self, limit: int) -> list[LeaderboardEntry]:
        try:
            with self._session_factory() as db:
                rows = db.scalars(
                    select(UserStatsRecord)
                    .order_by(UserStatsRecord.xp.desc(), UserStatsRecord.user_id)
                    .limit(limit)
                ).all()
        except SQLAlchemyError as exc:
            raise StatsStoreError(f"Loading leaderboard failed: {exc}") from exc
        return [
            LeaderboardEntry(
                user_id=row.user_id,
                display_name=row.display_name or "Unknown",
                xp=row.xp,
            )
            for row in rows
        ]
