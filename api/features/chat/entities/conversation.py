"""Conversation entity."""
from api.shared.entities.base import BaseEntity


class Conversation(BaseEntity):
    """A durable conversation handle. Rows are never updated after insert."""

    pass
