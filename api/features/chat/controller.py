"""Controller for the Chat feature."""
import logging

from fastapi import HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.dtos import (
    ChatMessageRequest,
    ChatMessageResponse,
    HistoryItemDTO,
    HistoryResponse,
)
from api.features.chat.exceptions import InvalidInputError, ReferentialError
from api.features.chat.service import ReplyOrchestrator
from api.shared.exceptions import StorageError

logger = logging.getLogger("support_chat.chat")


class ChatController:
    """Controller translating chat turns into HTTP responses."""

    def __init__(self, orchestrator: ReplyOrchestrator):
        self.orchestrator = orchestrator

    async def post_message(
        self, request: ChatMessageRequest, db_session: AsyncSession
    ) -> ChatMessageResponse:
        try:
            result = await self.orchestrator.handle_turn(
                conversation_id=request.session_id,
                user_text=request.message,
                db_session=db_session,
            )
        except InvalidInputError as e:
            logger.info(f"Rejected chat message: {e.message}")
            raise HTTPException(status_code=400, detail=e.message)
        except ReferentialError as e:
            # Forged or stale session id
            logger.warning(e.message)
            raise HTTPException(status_code=500, detail=e.message)
        except StorageError as e:
            logger.error(f"Chat turn failed in storage: {e.message} {e.details}")
            raise HTTPException(status_code=500, detail=e.message)

        return ChatMessageResponse(
            reply=result.reply,
            session_id=result.conversation_id,
            history=[HistoryItemDTO(**m) for m in result.transcript],
        )

    async def get_history(
        self, session_id: str, db_session: AsyncSession
    ) -> HistoryResponse:
        try:
            items = await self.orchestrator.get_history(
                conversation_id=session_id, db_session=db_session
            )
        except StorageError as e:
            logger.error(f"History read failed: {e.message} {e.details}")
            raise HTTPException(status_code=500, detail=e.message)
        return HistoryResponse(
            session_id=session_id,
            history=[HistoryItemDTO(**m) for m in items],
        )
