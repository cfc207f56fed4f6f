"""Chat event schemas shared by the broadcast channel and the history store."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

# 2100-01-01T00:00:00Z in epoch milliseconds.
MAX_TIMESTAMP_MS = 4_102_444_800_000


class EventKind(str, Enum):
    """Discriminant for the kinds of chat activity shown in the history."""

    MESSAGE = "message"
    REACTION = "reaction"
    SYSTEM = "system"


class MediaAttachment(BaseModel):
    """GIF or clip attached to a chat message."""

    kind: Literal["gif"] = Field("gif", alias="type")
    url: str
    alt_text: str = Field("", alias="alt")

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class ChatEvent(BaseModel):
    """A message, reaction or system notice displayed in the chat history.

    Field aliases match the wire payload used by the events endpoint and the
    message store (``username``, ``text``, ``timestamp``, ``type``).
    """

    id: int
    author_name: str = Field(..., alias="username")
    body: str = Field("", alias="text")
    kind: EventKind = Field(EventKind.MESSAGE, alias="type")
    created_at: int = Field(
        ..., alias="timestamp", ge=0, le=MAX_TIMESTAMP_MS, description="Epoch milliseconds"
    )
    media: MediaAttachment | None = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @model_validator(mode="after")
    def _require_content(self) -> ChatEvent:
        if self.kind is EventKind.MESSAGE and not self.body and self.media is None:
            raise ValueError("message events need a body or a media attachment")
        return self

    @property
    def display_time(self) -> str:
        """Return the creation time formatted for the chat list."""
        return datetime.fromtimestamp(self.created_at / 1000).strftime("%I:%M %p")

    def to_payload(self) -> dict[str, Any]:
        """Return the wire representation of the event."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)
