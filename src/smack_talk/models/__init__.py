"""SQLAlchemy models for the local history and stats stores."""

from .chat_message import StoredMessage
from .user_stats import UserStatsRecord

__all__ = ["StoredMessage", "UserStatsRecord"]
