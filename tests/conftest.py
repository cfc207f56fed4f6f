from __future__ import annotations

import asyncio
import os
from collections.abc import Generator, Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")

from smack_talk.core.settings import Settings
from smack_talk.db.session import Base, create_tables, drop_tables
from smack_talk.schemas.stats import Identity

TEST_DB_URL = "sqlite://"
START_TIME = 1_700_000_000.0


class FakeClock:
    """Manually advanced wall clock in epoch seconds."""

    def __init__(self, start: float = START_TIME) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


async def settle(session) -> None:
    """Drain background effects and let scheduled broadcast deliveries run."""
    await session.flush()
    for _ in range(3):
        await asyncio.sleep(0)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(bind=engine)
    try:
        yield engine
    finally:
        drop_tables(bind=engine)
        engine.dispose()


@pytest.fixture()
def session_factory(engine: Engine) -> Iterator[sessionmaker[Session]]:
    factory = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    try:
        yield factory
    finally:
        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def test_settings() -> Settings:
    """Settings with a tick slow enough that tests drive expiry themselves."""
    return Settings(
        chat_channel="/test/game-chat",
        room_id="test-room",
        reaction_tick_seconds=3600.0,
        dedup_ledger_size=100,
        history_limit=50,
    )


@pytest.fixture()
def signed_in() -> Identity:
    """Return the identity of the primary test user."""
    return Identity(is_signed_in=True, user_id="user_1", display_name="Test Fan")


@pytest.fixture()
def other_fan() -> Identity:
    """Return the identity of a second signed-in user."""
    return Identity(is_signed_in=True, user_id="user_2", display_name="Rival Fan")
