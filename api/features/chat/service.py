"""Reply orchestration for the Chat feature.

One turn = resolve the conversation, persist the user message, ask the
generation provider for a reply (or fall back to a fixed apology), persist the
AI message and return the updated transcript. Turns on the same conversation
run one at a time.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from api.features.chat.entities import Sender
from api.features.chat.exceptions import InvalidInputError
from api.features.chat.locks import ConversationLocks
from api.features.chat.prompt import build_support_prompt
from api.features.chat.repository import MessageStore
from api.features.chat.session import SessionManager
from api.shared.exceptions import GenerationFailure
from api.shared.utils import canonical_uuid
from core.settings import DEFAULT_FALLBACK_REPLY as FALLBACK_REPLY
from infra.generation import TextGenerator

logger = logging.getLogger("support_chat.chat.service")

@dataclass(frozen=True)
class TurnResult:
    reply: str
    conversation_id: str
    transcript: List[Dict[str, str]] = field(default_factory=list)


class ReplyOrchestrator:
    """Runs chat turns and owns the per-conversation ordering contract."""

    def __init__(
        self,
        *,
        session_manager: SessionManager,
        message_store: MessageStore,
        text_generator: TextGenerator,
        locks: ConversationLocks,
        generation_timeout: float = 20.0,
        max_message_chars: int = 4000,
        fallback_reply: str = FALLBACK_REPLY,
    ):
        self.session_manager = session_manager
        self.message_store = message_store
        self.text_generator = text_generator
        self.locks = locks
        self.generation_timeout = generation_timeout
        self.max_message_chars = max_message_chars
        self.fallback_reply = fallback_reply

    def validate_message(self, user_text: Optional[str]) -> None:
        if not isinstance(user_text, str) or not user_text.strip():
            raise InvalidInputError("Message is required")
        if len(user_text) > self.max_message_chars:
            raise InvalidInputError(
                f"Message must be at most {self.max_message_chars} characters",
                {"max_chars": self.max_message_chars, "length": len(user_text)},
            )

    async def handle_turn(
        self,
        *,
        conversation_id: Optional[str],
        user_text: str,
        db_session: AsyncSession,
    ) -> TurnResult:
        """Process one user message and return the reply with the full transcript.

        Validation happens before any write. Storage errors propagate;
        generation errors never do.
        """
        self.validate_message(user_text)
        conv_id = await self.session_manager.resolve_or_create(
            db_session, conversation_id
        )

        # Spellings of one id (case, braces, urn:uuid:) share a lock and rows;
        # the caller gets back the id it sent.
        key = canonical_uuid(conv_id) or conv_id

        async with self.locks.hold(key):
            # History is read before the user message lands so the prompt
            # builder gets it exactly once, as the final turn.
            history = await self.message_store.read_ordered(
                db_session, conversation_id=key
            )
            # Slots are pinned to this snapshot; another writer that got in
            # first makes the user append fail before anything is stored.
            next_position = len(history) + 1
            await self.message_store.append(
                db_session,
                conversation_id=key,
                sender=Sender.USER,
                text=user_text,
                expected_position=next_position,
            )

            prompt = build_support_prompt(history=history, user_text=user_text)
            reply = await self.generate_reply(prompt, conversation_id=key)

            await self.message_store.append(
                db_session,
                conversation_id=key,
                sender=Sender.AI,
                text=reply,
                expected_position=next_position + 1,
            )
            transcript = await self.message_store.read_ordered(
                db_session, conversation_id=key
            )

        return TurnResult(reply=reply, conversation_id=conv_id, transcript=transcript)

    async def generate_reply(self, prompt: str, *, conversation_id: str) -> str:
        """Call the generator once; any failure yields the fallback reply."""
        start_time = time.time()
        try:
            text = await asyncio.wait_for(
                self.text_generator.generate(prompt), timeout=self.generation_timeout
            )
        except asyncio.TimeoutError:
            logger.warning(
                f"Generation timed out after {self.generation_timeout}s "
                f"for conversation {conversation_id}; using fallback reply"
            )
            return self.fallback_reply
        except GenerationFailure as e:
            logger.warning(
                f"Generation failed for conversation {conversation_id}: {e.message}; "
                "using fallback reply"
            )
            return self.fallback_reply
        except Exception:
            logger.exception(
                f"Unexpected generation error for conversation {conversation_id}; "
                "using fallback reply"
            )
            return self.fallback_reply

        reply = text.strip() if isinstance(text, str) else ""
        if not reply:
            logger.warning(
                f"Generation returned no text for conversation {conversation_id}; "
                "using fallback reply"
            )
            return self.fallback_reply

        logger.info(
            f"Reply generated for conversation {conversation_id} in "
            f"{(time.time() - start_time) * 1000:.0f}ms ({len(reply)} chars)"
        )
        return reply

    async def get_history(
        self, *, conversation_id: str, db_session: AsyncSession
    ) -> List[Dict[str, str]]:
        key = canonical_uuid(conversation_id) or conversation_id
        return await self.message_store.read_ordered(db_session, conversation_id=key)
