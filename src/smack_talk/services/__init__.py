"""State reconciliation and gamification services for Smack Talk Central."""

from .broadcast import LocalBroadcastChannel
from .dedup import DeduplicationLedger
from .reactions import ReactionWindow
from .session import ChatSession

__all__ = [
    "ChatSession",
    "DeduplicationLedger",
    "LocalBroadcastChannel",
    "ReactionWindow",
]
