"""Transient notifications surfaced as toasts or banners."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class NotificationKind(str, Enum):
    STREAK_MILESTONE = "streak_milestone"
    LEVEL_UP = "level_up"
    SIGN_IN_REQUIRED = "sign_in_required"
    POLL_CLOSED = "poll_closed"
    CONNECTION = "connection"


class Notification(BaseModel):
    """Non-blocking user-facing notice emitted by the session."""

    kind: NotificationKind
    message: str
    payload: dict[str, Any] = Field(default_factory=dict)
