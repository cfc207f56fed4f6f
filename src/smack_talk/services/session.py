"""Chat session controller.

This module provides the ChatSession class, the single owner of a browser
session's chat state. It:

- Folds local sends, broadcast deliveries and history loads into one event
  list, deduplicated by event id
- Applies optimistic updates first and runs network effects as background
  tasks whose failures are only logged
- Awards XP for messages, polls and votes and reports milestones and level-ups
- Owns the reaction tick task and the broadcast subscription, released on stop
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

from smack_talk.core.settings import Settings, settings as default_settings
from smack_talk.schemas.chat_event import ChatEvent, EventKind, MediaAttachment
from smack_talk.schemas.media import MediaItem
from smack_talk.schemas.notification import Notification, NotificationKind
from smack_talk.schemas.poll import OptionPercentage, Poll
from smack_talk.schemas.score import Game, GameScore
from smack_talk.schemas.stats import DurableStats, Identity, LeaderboardEntry, UserStats
from smack_talk.services import polls as poll_engine
from smack_talk.services import scoreboard
from smack_talk.services.broadcast import BroadcastChannel, ChannelHandle, Subscription
from smack_talk.services.dedup import DeduplicationLedger
from smack_talk.services.event_ids import EventIdSource, epoch_ms
from smack_talk.services.events import parse_inbound_event
from smack_talk.services.history_store import HistoryStore
from smack_talk.services.levels import LevelTier, detect_level_up, level_for
from smack_talk.services.reactions import ReactionWindow
from smack_talk.services.sanitize import (
    media_from_selection,
    normalize_message_input,
    sanitize_media,
    sanitize_text,
)
from smack_talk.services.stats_store import StatsStore
from smack_talk.services.transport import TransportError
from smack_talk.services.xp import (
    XpAward,
    award_for_message,
    award_for_poll_create,
    award_for_poll_vote,
    compute_streak,
)

# Configure logger for this module
logger = logging.getLogger(__name__)

SYSTEM_AUTHOR = "System"

CONNECT_FAILED = "Failed to connect to chat. Messages will be local only."
SUBSCRIPTION_FAILED = "Connection error. Messages may not sync."
SYNC_FAILED = "Connection problem. Your changes are kept locally."

# Failures raised by collaborators that the session absorbs.
COLLABORATOR_ERRORS = (TransportError, OSError)

NotificationListener = Callable[[Notification], None]


@dataclass
class SessionState:
    """Everything the session owns; discarded when the session ends."""

    ledger: DeduplicationLedger
    reactions: ReactionWindow
    notifications: deque[Notification]
    events: list[ChatEvent] = field(default_factory=list)
    polls: list[Poll] = field(default_factory=list)
    votes: poll_engine.UserVoteRecord = field(default_factory=poll_engine.UserVoteRecord)
    stats: UserStats = field(default_factory=UserStats)
    game: Game = field(default_factory=lambda: scoreboard.GAMES[0])
    score: GameScore = field(default_factory=lambda: scoreboard.score_for_game(scoreboard.GAMES[0]))
    is_connected: bool = False
    connection_error: str | None = None


@dataclass(frozen=True)
class LeaderboardRow:
    """Leaderboard entry with its derived tier."""

    position: int
    entry: LeaderboardEntry
    tier: LevelTier
    is_current_user: bool


class ChatSession:
    """Owns session state and wires it to the external collaborators.

    Use as an async context manager, or call :meth:`start` and :meth:`stop`.
    """

    def __init__(
        self,
        *,
        identity: Identity | None = None,
        broadcast: BroadcastChannel | None = None,
        history_store: HistoryStore | None = None,
        stats_store: StatsStore | None = None,
        config: Settings | None = None,
        clock: Callable[[], float] = time.time,
        on_notification: NotificationListener | None = None,
    ) -> None:
        """Initialize the session.

        Args:
            identity: Signed-in state; defaults to signed out.
            broadcast: Real-time channel. Without one the session is local only.
            history_store: Store used to load and persist messages.
            stats_store: Store holding the durable copy of the user's XP.
            config: Settings override, mainly for tests.
            clock: Wall clock in epoch seconds.
            on_notification: Callback for toasts and banners.
        """
        self.config = config or default_settings
        self.identity = identity or Identity()
        self._broadcast = broadcast
        self._history_store = history_store
        self._stats_store = stats_store
        self._clock = clock
        self._on_notification = on_notification
        self._ids = EventIdSource(clock)

        self.state = SessionState(
            ledger=DeduplicationLedger(self.config.dedup_ledger_size),
            reactions=ReactionWindow(self.config.reaction_horizon_seconds),
            notifications=deque(maxlen=self.config.notification_limit),
        )

        self._handle: ChannelHandle | None = None
        self._subscription: Subscription | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._pending: set[asyncio.Task[Any]] = set()
        self._started = False

    # --- lifecycle ------------------------------------------------------------------

    async def __aenter__(self) -> ChatSession:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.stop()

    async def start(self) -> None:
        """Connect, load history and stats, and start the reaction tick."""
        if self._started:
            return
        self._started = True

        await self._connect()
        await self._load_history()
        await self._load_stats()
        self._tick_task = asyncio.create_task(self._run_ticker())

    async def stop(self) -> None:
        """Release the tick task and subscription, then drain pending effects."""
        if self._tick_task is not None:
            self._tick_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._tick_task
            self._tick_task = None

        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._handle is not None:
            try:
                await self._handle.close()
            except COLLABORATOR_ERRORS as exc:
                logger.warning("Closing the chat channel failed: %s", exc)
            self._handle = None

        await self.flush()
        self.state.is_connected = False
        self._started = False
        logger.info("Chat session stopped")

    async def flush(self) -> None:
        """Wait for all fire-and-forget effects scheduled so far."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _connect(self) -> None:
        if self._broadcast is None:
            self.state.connection_error = CONNECT_FAILED
            logger.info("No broadcast channel configured; running local only")
            return

        channel = self.config.chat_channel
        try:
            self._handle = await self._broadcast.connect(channel)
            self._subscription = self._handle.subscribe(
                self._on_broadcast_event, self._on_broadcast_error
            )
        except COLLABORATOR_ERRORS as exc:
            logger.warning("Failed to connect to channel %s: %s", channel, exc)
            self._handle = None
            self.state.is_connected = False
            self.state.connection_error = CONNECT_FAILED
            return

        self.state.is_connected = True
        self.state.connection_error = None
        logger.info("Connected to channel %s", channel)

    async def _load_history(self) -> None:
        if self._history_store is None:
            return

        room = self.config.room_id
        try:
            payloads = await self._history_store.load_recent(room, self.config.history_limit)
        except COLLABORATOR_ERRORS as exc:
            logger.warning("Failed to load history for %s: %s", room, exc)
            return

        now = epoch_ms(self._clock)
        loaded: list[ChatEvent] = []
        # The store returns newest first.
        for payload in reversed(payloads):
            event = parse_inbound_event(
                payload, now, media_domains=self.config.trusted_media_domains
            )
            if event is not None and self.state.ledger.check_and_mark(event.id):
                loaded.append(event)

        # Live events that arrived while loading stay after the history.
        self.state.events = loaded + self.state.events
        logger.info("Loaded %d persisted messages", len(loaded))

    async def _load_stats(self) -> None:
        if self._stats_store is None or not self._can_sync_stats():
            return
        user_id = self.identity.user_id or ""
        try:
            durable = await self._stats_store.fetch_stats(user_id)
        except COLLABORATOR_ERRORS as exc:
            logger.warning("Failed to fetch stats for %s: %s", user_id, exc)
            return
        if durable is not None:
            self._reconcile_stats(durable)

    async def _run_ticker(self) -> None:
        interval = max(0.05, float(self.config.reaction_tick_seconds))
        while True:
            await asyncio.sleep(interval)
            self.tick()

    def tick(self) -> dict[str, int]:
        """Expire old reactions and return the refreshed counts."""
        return self.state.reactions.tick(self._clock())

    # --- read-only views ------------------------------------------------------------

    @property
    def events(self) -> tuple[ChatEvent, ...]:
        return tuple(self.state.events)

    @property
    def polls(self) -> tuple[Poll, ...]:
        return tuple(self.state.polls)

    @property
    def active_polls(self) -> list[Poll]:
        return [poll for poll in self.state.polls if poll.is_active]

    @property
    def closed_polls(self) -> list[Poll]:
        return [poll for poll in self.state.polls if not poll.is_active]

    @property
    def reaction_counts(self) -> dict[str, int]:
        return self.state.reactions.counts

    @property
    def stats(self) -> UserStats:
        return self.state.stats.model_copy()

    @property
    def level(self) -> LevelTier:
        return level_for(self.state.stats.xp)

    @property
    def notifications(self) -> list[Notification]:
        return list(self.state.notifications)

    @property
    def display_name(self) -> str:
        name = normalize_message_input(self.identity.display_name or "")
        return sanitize_text(name or self.config.guest_display_name)

    def poll(self, poll_id: str) -> Poll | None:
        for poll in self.state.polls:
            if poll.id == poll_id:
                return poll
        return None

    def user_vote(self, poll_id: str) -> int | None:
        return self.state.votes.get(poll_id)

    def percentages(self, poll_id: str) -> list[OptionPercentage]:
        poll = self.poll(poll_id)
        return poll_engine.percentages_for(poll) if poll else []

    # --- identity -------------------------------------------------------------------

    def set_identity(self, identity: Identity) -> None:
        """Switch the signed-in identity, fetching durable stats on sign-in."""
        was_signed_in = self.identity.is_signed_in
        self.identity = identity
        if identity.is_signed_in and not was_signed_in and self._started:
            self._spawn(self._load_stats(), "stats fetch")

    def _require_sign_in(self, action: str) -> bool:
        if self.identity.is_signed_in:
            return True
        logger.info("Sign-in required to %s", action)
        self._notify(NotificationKind.SIGN_IN_REQUIRED, f"Sign in to {action}.", action=action)
        return False

    def _can_sync_stats(self) -> bool:
        return self.identity.is_signed_in and bool(self.identity.user_id)

    # --- inbound --------------------------------------------------------------------

    def _on_broadcast_event(self, payload: Mapping[str, Any]) -> None:
        event = parse_inbound_event(
            payload,
            epoch_ms(self._clock),
            media_domains=self.config.trusted_media_domains,
        )
        if event is not None:
            self.receive_event(event)

    def _on_broadcast_error(self, exc: BaseException) -> None:
        logger.warning("Subscription error: %s", exc)
        self.state.connection_error = SUBSCRIPTION_FAILED
        self._notify(NotificationKind.CONNECTION, SUBSCRIPTION_FAILED)

    def receive_event(self, event: ChatEvent) -> bool:
        """Fold an already-validated event into state; False for duplicates."""
        if not self.state.ledger.check_and_mark(event.id):
            return False
        self._ids.observe(event.id)
        self.state.events.append(event)
        if event.kind is EventKind.REACTION:
            self.state.reactions.record_reaction(event.body, self._clock())
        return True

    # --- chat -----------------------------------------------------------------------

    async def send_message(
        self, text: str, media: MediaItem | MediaAttachment | Mapping[str, Any] | None = None
    ) -> ChatEvent | None:
        """Send a chat message optimistically and award XP for it.

        Returns the event shown locally, or None when nothing was sent.
        """
        if not self._require_sign_in("send messages"):
            return None

        body = sanitize_text(normalize_message_input(text, self.config.message_max_length))
        attachment = self._accept_media(media)
        if not body and attachment is None:
            logger.debug("Ignoring empty message")
            return None

        event = self._new_event(EventKind.MESSAGE, body, media=attachment)
        self._append_local(event)

        streak = compute_streak(self.state.events, event.author_name)
        self.state.stats.current_streak = streak
        self._apply_award(award_for_message(streak))

        self._spawn(self._publish(event), "publish message")
        self._spawn(self._persist(event), "save message")
        return event

    async def send_reaction(self, emoji: str) -> ChatEvent | None:
        """Send an emoji reaction; tracked emoji count toward the window."""
        symbol = sanitize_text(normalize_message_input(emoji))
        if not symbol:
            return None

        event = self._new_event(EventKind.REACTION, symbol)
        self._append_local(event)
        self.state.reactions.record_reaction(symbol, self._clock())
        self._spawn(self._publish(event), "publish reaction")
        return event

    def add_system_message(self, text: str) -> ChatEvent:
        """Append a local system notice (score updates, poll results)."""
        event = self._new_event(EventKind.SYSTEM, sanitize_text(text), author=SYSTEM_AUTHOR)
        self._append_local(event)
        logger.info("System message: %s", text)
        return event

    def _new_event(
        self,
        kind: EventKind,
        body: str,
        *,
        media: MediaAttachment | None = None,
        author: str | None = None,
    ) -> ChatEvent:
        return ChatEvent(
            id=self._ids.next_id(),
            author_name=author or self.display_name,
            body=body,
            kind=kind,
            # Ids may run ahead of the clock after observing peer ids.
            created_at=epoch_ms(self._clock),
            media=media,
        )

    def _append_local(self, event: ChatEvent) -> None:
        # Marked before publishing so the channel's echo is discarded.
        self.state.ledger.mark_processed(event.id)
        self.state.events.append(event)

    def _accept_media(
        self, media: MediaItem | MediaAttachment | Mapping[str, Any] | None
    ) -> MediaAttachment | None:
        if media is None:
            return None
        domains = self.config.trusted_media_domains
        if isinstance(media, MediaItem):
            attachment = media_from_selection(media, domains)
        else:
            attachment = sanitize_media(
                dict(media) if isinstance(media, Mapping) else media, domains
            )
        if attachment is None:
            logger.info("Dropped untrusted media attachment")
        return attachment

    # --- polls ----------------------------------------------------------------------

    async def create_poll(self, question: str, options: Iterable[str]) -> Poll | None:
        """Create a poll, announce it and award XP to the creator."""
        if not self._require_sign_in("create polls"):
            return None

        try:
            poll = poll_engine.create_poll(
                question,
                options,
                created_by=self.display_name,
                created_at=self._ids.next_id(),
            )
        except poll_engine.PollError as exc:
            logger.info("Poll not created: %s", exc)
            return None

        self.state.polls.insert(0, poll)
        self.add_system_message(f'📊 New poll created: "{poll.question}"')
        self._apply_award(award_for_poll_create())
        return poll

    async def vote(self, poll_id: str, option_id: int) -> Poll | None:
        """Vote once on an active poll; rejected votes are no-ops."""
        if not self._require_sign_in("vote"):
            return None

        index = self._poll_index(poll_id)
        if index is None:
            logger.info("Vote ignored for unknown poll %s", poll_id)
            return None

        try:
            updated = poll_engine.apply_vote(self.state.polls[index], option_id, self.state.votes)
        except poll_engine.PollError as exc:
            logger.info("Vote rejected: %s", exc)
            return None

        self.state.polls[index] = updated
        self._apply_award(award_for_poll_vote())
        return updated

    async def close_poll(self, poll_id: str) -> Poll | None:
        """Close a poll the local user created and announce the winner."""
        index = self._poll_index(poll_id)
        if index is None:
            logger.info("Close ignored for unknown poll %s", poll_id)
            return None

        try:
            closed, winner_id = poll_engine.close_poll(self.state.polls[index], self.display_name)
        except poll_engine.PollError as exc:
            logger.info("Close rejected: %s", exc)
            return None

        self.state.polls[index] = closed
        announcement = poll_engine.closing_announcement(closed, winner_id)
        self.add_system_message(announcement)
        self._notify(
            NotificationKind.POLL_CLOSED, announcement, poll_id=closed.id, winner_id=winner_id
        )
        return closed

    def _poll_index(self, poll_id: str) -> int | None:
        for index, poll in enumerate(self.state.polls):
            if poll.id == poll_id:
                return index
        return None

    # --- score ----------------------------------------------------------------------

    def select_game(self, game: Game | int) -> GameScore:
        if isinstance(game, int):
            matches = [entry for entry in scoreboard.GAMES if entry.id == game]
            if not matches:
                raise ValueError(f"Unknown game {game}")
            game = matches[0]
        logger.info("Switching to game: %s", game.name)
        self.state.game = game
        self.state.score = scoreboard.score_for_game(game)
        return self.state.score

    def update_score(self, team: Literal["home", "away"], points: int) -> GameScore:
        self.state.score, announcement = scoreboard.update_score(self.state.score, team, points)
        self.add_system_message(announcement)
        return self.state.score

    def set_period(self, period: str) -> bool:
        try:
            self.state.score = scoreboard.set_period(self.state.score, period)
        except ValueError as exc:
            logger.info("Period not changed: %s", exc)
            return False
        return True

    def toggle_possession(self) -> GameScore:
        self.state.score = scoreboard.toggle_possession(self.state.score)
        return self.state.score

    def reset_score(self) -> GameScore:
        self.state.score, announcement = scoreboard.reset_score(self.state.score)
        self.add_system_message(announcement)
        return self.state.score

    # --- XP -------------------------------------------------------------------------

    def _apply_award(self, award: XpAward) -> None:
        old_xp = self.state.stats.xp
        self.state.stats.xp = old_xp + award.delta

        if award.is_milestone:
            self._notify(
                NotificationKind.STREAK_MILESTONE,
                f"🔥 {award.streak} message streak! +{award.milestone_bonus} bonus XP",
                streak=award.streak,
                bonus=award.milestone_bonus,
            )

        tier = detect_level_up(old_xp, self.state.stats.xp)
        if tier is not None:
            self._notify(
                NotificationKind.LEVEL_UP,
                f"⬆️ Level up! You are now a {tier.name}",
                rank=tier.rank,
                name=tier.name,
            )

        if self._stats_store is not None and self._can_sync_stats():
            self._spawn(self._sync_xp(award.delta), "XP update")

    def _reconcile_stats(self, durable: DurableStats) -> None:
        # Local XP only moves up; a lagging store never lowers it.
        if durable.xp > self.state.stats.xp:
            self.state.stats.xp = durable.xp

    async def leaderboard(self, limit: int | None = None) -> list[LeaderboardRow]:
        """Return the top users by XP; empty when the store is unavailable."""
        if self._stats_store is None:
            return []
        try:
            entries = await self._stats_store.leaderboard(limit or self.config.leaderboard_limit)
        except COLLABORATOR_ERRORS as exc:
            logger.warning("Failed to load leaderboard: %s", exc)
            return []
        return [
            LeaderboardRow(
                position=position,
                entry=entry,
                tier=level_for(entry.xp),
                is_current_user=entry.user_id == self.identity.user_id,
            )
            for position, entry in enumerate(entries, start=1)
        ]

    # --- effects --------------------------------------------------------------------

    async def _publish(self, event: ChatEvent) -> None:
        if self._broadcast is None or self._handle is None:
            logger.debug("Not connected; event %s stays local", event.id)
            return
        await self._broadcast.publish(self.config.chat_channel, event.to_payload())

    async def _persist(self, event: ChatEvent) -> None:
        if self._history_store is None:
            return
        await self._history_store.append(self.config.room_id, event)

    async def _sync_xp(self, delta: int) -> None:
        if self._stats_store is None:
            return
        durable = await self._stats_store.apply_xp_delta(
            self.identity.user_id or "", self.display_name, delta
        )
        self._reconcile_stats(durable)

    def _spawn(self, coro: Awaitable[Any], description: str) -> None:
        task = asyncio.create_task(self._guard(coro, description))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _guard(self, coro: Awaitable[Any], description: str) -> None:
        try:
            await coro
        except COLLABORATOR_ERRORS as exc:
            logger.warning("%s failed: %s", description, exc)
            self._mark_sync_failed()
        except (ValueError, TypeError, KeyError, AttributeError):
            logger.exception("%s failed unexpectedly", description)
            self._mark_sync_failed()

    def _mark_sync_failed(self) -> None:
        if self.state.connection_error is None:
            self.state.connection_error = SYNC_FAILED
            self._notify(NotificationKind.CONNECTION, SYNC_FAILED)

    # --- notifications --------------------------------------------------------------

    def _notify(self, kind: NotificationKind, message: str, **payload: Any) -> None:
        notification = Notification(kind=kind, message=message, payload=payload)
        self.state.notifications.append(notification)
        if self._on_notification is not None:
            try:
                self._on_notification(notification)
            except Exception:
                logger.exception("Notification listener failed")
