"""Session manager: maps a client-supplied session id to a conversation."""
from __future__ import annotations

import logging
import uuid
from typing import Optional

from sqlalchemy import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities import Conversation
from api.shared.exceptions import StorageError

logger = logging.getLogger("support_chat.chat.session")


class SessionManager:
    """Resolves or creates conversation ids.

    A supplied id is trusted as-is: whoever holds a conversation id may read
    and append to it. Existence is not checked here; the message store
    rejects appends to unknown conversations.
    """

    async def resolve_or_create(
        self, session: AsyncSession, client_supplied_id: Optional[str] = None
    ) -> str:
        if client_supplied_id and client_supplied_id.strip():
            return client_supplied_id
        return await self.create_conversation(session)

    async def create_conversation(self, session: AsyncSession) -> str:
        conv_id = str(uuid.uuid4())
        try:
            await session.execute(insert(Conversation).values(id=conv_id))
            # Ensure immediate visibility for subsequent reads
            await session.commit()
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"Failed to create conversation: {e}")
            raise StorageError(
                "Failed to create conversation", {"reason": str(e)}
            ) from e
        logger.info(f"Conversation created: {conv_id}")
        return conv_id
