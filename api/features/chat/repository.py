"""Message store: append-only, ordered persistence of conversation transcripts.

Each public call is individually atomic (one commit per append). Nothing here
spans an append and a read in one transaction; sequencing several calls is the
orchestrator's job.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities import Conversation, Message, Sender
from api.features.chat.exceptions import InvalidInputError, ReferentialError
from api.shared.exceptions import StorageError
from api.shared.utils import is_valid_uuid

logger = logging.getLogger("support_chat.chat.repository")


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back naive; everything is written in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _next_timestamp(last_created_at: Optional[datetime]) -> datetime:
    """Server clock, clamped so a conversation's timestamps never go backwards."""
    now = datetime.now(timezone.utc)
    if last_created_at is None:
        return now
    return max(now, _as_utc(last_created_at))


class MessageStore:
    """Durable append-only message log keyed by conversation."""

    async def conversation_exists(
        self, session: AsyncSession, *, conversation_id: str
    ) -> bool:
        if not is_valid_uuid(conversation_id):
            return False
        try:
            res = await session.execute(
                select(Conversation.id).where(Conversation.id == conversation_id)
            )
        except SQLAlchemyError as e:
            raise StorageError(
                "Failed to look up conversation",
                {"conversation_id": conversation_id, "reason": str(e)},
            ) from e
        return res.scalar_one_or_none() is not None

    async def append(
        self,
        session: AsyncSession,
        *,
        conversation_id: str,
        sender: Sender | str,
        text: str,
        expected_position: Optional[int] = None,
    ) -> str:
        """Insert one message at the end of the conversation and commit it.

        With ``expected_position`` the write only lands if that is still the
        next free slot, so a caller holding a stale snapshot of the
        transcript writes nothing.

        Raises:
            InvalidInputError: ``text`` is empty or whitespace only.
            ReferentialError: the conversation does not exist.
            StorageError: any other persistence failure, including a stale
                ``expected_position`` or losing a race for the next slot
                against another writer.
        """
        if not text or not text.strip():
            raise InvalidInputError("Message text must not be empty")
        try:
            sender = Sender(sender)
        except ValueError as e:
            raise InvalidInputError(f"Unknown sender '{sender}'") from e
        # A malformed id can never name an existing conversation
        if not is_valid_uuid(conversation_id):
            raise ReferentialError(str(conversation_id))

        msg_id = str(uuid.uuid4())
        try:
            tail = await session.execute(
                select(func.max(Message.position), func.max(Message.created_at)).where(
                    Message.conversation_id == conversation_id
                )
            )
            last_position, last_created_at = tail.one()
            position = (last_position or 0) + 1
            if expected_position is not None and expected_position != position:
                await session.rollback()
                logger.warning(
                    f"Stale append rejected for conversation {conversation_id}: "
                    f"expected slot {expected_position}, next is {position}"
                )
                raise StorageError(
                    "Conversation changed since its history was read",
                    {
                        "conversation_id": conversation_id,
                        "expected_position": expected_position,
                        "next_position": position,
                    },
                )
            await session.execute(
                insert(Message).values(
                    id=msg_id,
                    conversation_id=conversation_id,
                    sender=sender.value,
                    text=text,
                    created_at=_next_timestamp(last_created_at),
                    position=position,
                )
            )
            await session.commit()
        except IntegrityError as e:
            await session.rollback()
            if not await self.conversation_exists(
                session, conversation_id=conversation_id
            ):
                raise ReferentialError(conversation_id) from e
            logger.error(
                f"Concurrent append rejected for conversation {conversation_id}: {e}"
            )
            raise StorageError(
                "Message slot already taken by a concurrent append",
                {"conversation_id": conversation_id},
            ) from e
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to append message to {conversation_id}: {e}")
            raise StorageError(
                "Failed to append message",
                {"conversation_id": conversation_id, "reason": str(e)},
            ) from e

        logger.debug(
            f"Appended {sender.value} message {msg_id} to conversation {conversation_id}"
        )
        return msg_id

    async def read_ordered(
        self, session: AsyncSession, *, conversation_id: str
    ) -> List[Dict[str, str]]:
        """Return the full transcript, oldest first. Unknown ids read as empty."""
        if not is_valid_uuid(conversation_id):
            return []
        stmt = (
            select(Message.sender, Message.text)
            .where(Message.conversation_id == conversation_id)
            .order_by(Message.created_at.asc(), Message.position.asc())
        )
        try:
            res = await session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read transcript of {conversation_id}: {e}")
            raise StorageError(
                "Failed to read conversation history",
                {"conversation_id": conversation_id, "reason": str(e)},
            ) from e
        return [{"sender": row.sender, "text": row.text} for row in res.all()]
