"""DTOs for the Chat feature."""
from typing import List, Literal, Optional

from pydantic import Field

from api.shared.dtos import BaseDTO


class ChatMessageRequest(BaseDTO):
    """Send a user message, optionally continuing an existing session."""

    # Optional at the schema level so a missing message is reported as 400
    message: Optional[str] = Field(default=None, description="User message text")
    session_id: Optional[str] = Field(
        default=None, alias="sessionId", description="Conversation identifier"
    )


class HistoryItemDTO(BaseDTO):
    """One transcript entry."""

    sender: Literal["user", "ai"] = Field(description="Message author")
    text: str = Field(description="Message text")


class ChatMessageResponse(BaseDTO):
    """Reply plus the full, ordered transcript."""

    reply: str = Field(description="AI reply (or fallback apology)")
    session_id: str = Field(alias="sessionId", description="Conversation identifier")
    history: List[HistoryItemDTO] = Field(description="Messages in chronological order")


class HistoryResponse(BaseDTO):
    """Transcript of a conversation."""

    session_id: str = Field(alias="sessionId", description="Conversation identifier")
    history: List[HistoryItemDTO] = Field(description="Messages in chronological order")
