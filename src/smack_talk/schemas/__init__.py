"""Pydantic schemas for the Smack Talk session core."""

from .chat_event import ChatEvent, EventKind, MediaAttachment
from .media import MediaItem
from .notification import Notification, NotificationKind
from .poll import OptionPercentage, Poll, PollOption, PollStatus
from .score import Game, GameScore, Sport, Team
from .stats import DurableStats, Identity, LeaderboardEntry, UserStats

__all__ = [
    "ChatEvent", "EventKind", "MediaAttachment",
    "MediaItem",
    "Notification", "NotificationKind",
    "OptionPercentage", "Poll", "PollOption", "PollStatus",
    "Game", "GameScore", "Sport", "Team",
    "DurableStats", "Identity", "LeaderboardEntry", "UserStats",
]
