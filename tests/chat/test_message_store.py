import uuid

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from api.features.chat.entities import Message, Sender
from api.features.chat.exceptions import InvalidInputError, ReferentialError
from api.shared.exceptions import StorageError


@pytest.mark.asyncio
async def test_append_and_read_in_order(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    await store.append(db_session, conversation_id=conv_id, sender=Sender.USER, text="one")
    await store.append(db_session, conversation_id=conv_id, sender="ai", text="two")
    await store.append(db_session, conversation_id=conv_id, sender=Sender.USER, text="three")

    history = await store.read_ordered(db_session, conversation_id=conv_id)

    assert history == [
        {"sender": "user", "text": "one"},
        {"sender": "ai", "text": "two"},
        {"sender": "user", "text": "three"},
    ]


@pytest.mark.asyncio
async def test_positions_and_timestamps_are_monotonic(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)
    for i in range(5):
        await store.append(
            db_session, conversation_id=conv_id, sender=Sender.USER, text=f"m{i}"
        )

    res = await db_session.execute(
        select(Message.position, Message.created_at)
        .where(Message.conversation_id == conv_id)
        .order_by(Message.position)
    )
    rows = res.all()

    assert [r.position for r in rows] == [1, 2, 3, 4, 5]
    stamps = [r.created_at for r in rows]
    assert stamps == sorted(stamps)


@pytest.mark.asyncio
async def test_transcripts_are_isolated(db_session, store, session_manager):
    first = await session_manager.create_conversation(db_session)
    second = await session_manager.create_conversation(db_session)

    await store.append(db_session, conversation_id=first, sender=Sender.USER, text="a")
    await store.append(db_session, conversation_id=second, sender=Sender.USER, text="b")

    assert await store.read_ordered(db_session, conversation_id=first) == [
        {"sender": "user", "text": "a"}
    ]
    assert await store.read_ordered(db_session, conversation_id=second) == [
        {"sender": "user", "text": "b"}
    ]


@pytest.mark.asyncio
async def test_read_empty_conversation(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    assert await store.read_ordered(db_session, conversation_id=conv_id) == []


@pytest.mark.asyncio
async def test_read_is_idempotent(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)
    await store.append(db_session, conversation_id=conv_id, sender=Sender.USER, text="hi")
    await store.append(db_session, conversation_id=conv_id, sender=Sender.AI, text="hello")

    first = await store.read_ordered(db_session, conversation_id=conv_id)
    second = await store.read_ordered(db_session, conversation_id=conv_id)

    assert first == second


@pytest.mark.asyncio
async def test_append_to_unknown_conversation(db_session, store):
    unknown = str(uuid.uuid4())

    with pytest.raises(ReferentialError) as exc_info:
        await store.append(
            db_session, conversation_id=unknown, sender=Sender.USER, text="hi"
        )

    assert exc_info.value.details["conversation_id"] == unknown
    count = await db_session.execute(select(func.count()).select_from(Message))
    assert count.scalar_one() == 0


@pytest.mark.asyncio
async def test_append_to_malformed_id(db_session, store):
    with pytest.raises(ReferentialError):
        await store.append(
            db_session, conversation_id="not-a-uuid", sender=Sender.USER, text="hi"
        )


@pytest.mark.asyncio
async def test_append_rejects_blank_text(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    with pytest.raises(InvalidInputError):
        await store.append(db_session, conversation_id=conv_id, sender=Sender.AI, text="  ")


@pytest.mark.asyncio
async def test_append_rejects_unknown_sender(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    with pytest.raises(InvalidInputError):
        await store.append(db_session, conversation_id=conv_id, sender="system", text="x")


class _BrokenSession:
    """Session whose every statement fails like a dropped connection."""

    def __init__(self):
        self.rolled_back = False

    async def execute(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, ConnectionError("connection lost"))

    async def commit(self):
        pass

    async def rollback(self):
        self.rolled_back = True


@pytest.mark.asyncio
async def test_append_wraps_storage_failures(store):
    session = _BrokenSession()

    with pytest.raises(StorageError) as exc_info:
        await store.append(
            session, conversation_id=str(uuid.uuid4()), sender=Sender.USER, text="hi"
        )

    assert exc_info.value.error_code == "STORAGE_ERROR"
    assert session.rolled_back


@pytest.mark.asyncio
async def test_read_wraps_storage_failures(store):
    with pytest.raises(StorageError):
        await store.read_ordered(_BrokenSession(), conversation_id=str(uuid.uuid4()))


@pytest.mark.asyncio
async def test_conversation_exists(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    assert await store.conversation_exists(db_session, conversation_id=conv_id)
    assert not await store.conversation_exists(
        db_session, conversation_id=str(uuid.uuid4())
    )
    assert not await store.conversation_exists(db_session, conversation_id="not-a-uuid")


@pytest.mark.asyncio
async def test_append_at_expected_position(db_session, store, session_manager):
    conv_id = await session_manager.create_conversation(db_session)

    await store.append(
        db_session, conversation_id=conv_id, sender=Sender.USER, text="hi",
        expected_position=1,
    )
    await store.append(
        db_session, conversation_id=conv_id, sender=Sender.AI, text="hello",
        expected_position=2,
    )

    assert await store.read_ordered(db_session, conversation_id=conv_id) == [
        {"sender": "user", "text": "hi"},
        {"sender": "ai", "text": "hello"},
    ]


@pytest.mark.asyncio
async def test_append_with_stale_position_writes_nothing(
    db_session, store, session_manager
):
    conv_id = await session_manager.create_conversation(db_session)
    await store.append(db_session, conversation_id=conv_id, sender=Sender.USER, text="first")

    with pytest.raises(StorageError) as exc_info:
        await store.append(
            db_session, conversation_id=conv_id, sender=Sender.USER, text="late",
            expected_position=1,
        )

    assert exc_info.value.details["next_position"] == 2
    assert await store.read_ordered(db_session, conversation_id=conv_id) == [
        {"sender": "user", "text": "first"}
    ]


class _RacingSession:
    """Lets another writer take the next slot right after the tail is read."""

    def __init__(self, session, competitor):
        self._session = session
        self._competitor = competitor
        self._raced = False

    async def execute(self, statement, *args, **kwargs):
        result = await self._session.execute(statement, *args, **kwargs)
        if not self._raced:
            self._raced = True
            await self._competitor()
        return result

    def __getattr__(self, name):
        return getattr(self._session, name)


@pytest.mark.asyncio
async def test_slot_taken_concurrently_is_storage_error(
    database, db_session, store, session_manager
):
    conv_id = await session_manager.create_conversation(db_session)
    await store.append(db_session, conversation_id=conv_id, sender=Sender.USER, text="q")

    async def competitor():
        async with database.get_session() as other:
            await store.append(other, conversation_id=conv_id, sender=Sender.AI, text="a")

    with pytest.raises(StorageError) as exc_info:
        await store.append(
            _RacingSession(db_session, competitor),
            conversation_id=conv_id,
            sender=Sender.AI,
            text="duplicate",
        )

    assert "concurrent" in exc_info.value.message
    assert await store.read_ordered(db_session, conversation_id=conv_id) == [
        {"sender": "user", "text": "q"},
        {"sender": "ai", "text": "a"},
    ]
