"""Router for the Chat feature."""
from dependency_injector.wiring import Provide, inject
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from di.container import ApplicationContainer as DependencyContainer
from api.features.chat.controller import ChatController
from api.features.chat.dtos import (
    ChatMessageRequest,
    ChatMessageResponse,
    HistoryResponse,
)
from api.shared.db import get_db_session
from api.shared.dtos import ErrorResponse

router = APIRouter()


@router.post(
    "/message",
    response_model=ChatMessageResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
@inject
async def post_message(
    request: ChatMessageRequest,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.post_message(request, db_session)


@router.get(
    "/{session_id}/history",
    response_model=HistoryResponse,
    responses={500: {"model": ErrorResponse}},
)
@inject
async def get_history(
    session_id: str,
    controller: ChatController = Depends(
        Provide[DependencyContainer.controllers.chat_controller]
    ),
    db_session: AsyncSession = Depends(get_db_session),
):
    return await controller.get_history(session_id, db_session)
