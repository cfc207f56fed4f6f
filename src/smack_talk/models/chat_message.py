"""Model for short-lived persisted chat messages."""

from typing import Any

from sqlalchemy import JSON, BigInteger, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from smack_talk.db.session import Base


class StoredMessage(Base):
    """Chat event persisted for history loads.

    Rows expire after ``expires_at`` (epoch seconds), mirroring the TTL the
    hosted message table applies.
    """

    __tablename__ = "chat_message"
    __table_args__ = (
        UniqueConstraint("room_id", "event_id", name="uq_chat_message_room_event"),
        Index("ix_chat_message_room_timestamp", "room_id", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    room_id: Mapped[str] = mapped_column(String(128), nullable=False)
    event_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    username: Mapped[str] = mapped_column(Text, nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    kind: Mapped[str] = mapped_column(String(16), nullable=False, default="message")
    # Epoch milliseconds.
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)
    media: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    expires_at: Mapped[int] = mapped_column(BigInteger, nullable=False)
