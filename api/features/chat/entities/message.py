"""Message entity for the append-only conversation transcript."""
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from api.shared.entities.base import BaseEntity


class Sender(str, Enum):
    """Author of a transcript message."""
    USER = "user"
    AI = "ai"


class Message(BaseEntity):
    """One transcript entry owned by a conversation."""

    conversation_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender: Mapped[str] = mapped_column(String(8), nullable=False)
    text: Mapped[str] = mapped_column(Text, nullable=False)

    # 1-based slot within the conversation; breaks created_at ties
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("sender IN ('user', 'ai')", name="ck_message_sender"),
        UniqueConstraint(
            "conversation_id", "position", name="uq_message_conversation_position"
        ),
        Index("ix_message_conversation_created_at", "conversation_id", "created_at"),
    )
