"""Pytest fixtures for support chat tests."""
import asyncio
from typing import List, Optional

import pytest
import pytest_asyncio

from api.features.chat.locks import ConversationLocks
from api.features.chat.repository import MessageStore
from api.features.chat.service import ReplyOrchestrator
from api.features.chat.session import SessionManager
from api.shared.entities.registry import BaseEntity
from infra.resources import DatabaseResource


class FakeGenerator:
    """Deterministic stand-in for the Gemini client."""

    def __init__(
        self,
        reply: str = "  Happy to help!  ",
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def generate(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest_asyncio.fixture
async def database(tmp_path):
    db = DatabaseResource(database_url=f"sqlite+aiosqlite:///{tmp_path / 'chat.db'}")
    await db.init()
    async with db.engine.begin() as conn:
        await conn.run_sync(BaseEntity.metadata.create_all)
    yield db
    await db.shutdown()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.get_session() as session:
        yield session


@pytest.fixture
def generator() -> FakeGenerator:
    return FakeGenerator()


@pytest.fixture
def store() -> MessageStore:
    return MessageStore()


@pytest.fixture
def session_manager() -> SessionManager:
    return SessionManager()


@pytest.fixture
def orchestrator(generator, store, session_manager) -> ReplyOrchestrator:
    return ReplyOrchestrator(
        session_manager=session_manager,
        message_store=store,
        text_generator=generator,
        locks=ConversationLocks(),
        generation_timeout=1.0,
        max_message_chars=200,
    )


@pytest.fixture
def make_generator():
    return FakeGenerator
