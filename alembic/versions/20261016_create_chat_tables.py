"""Create conversation and message tables for chat transcripts

Revision ID: 20261016_create_chat_tables
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261016_create_chat_tables"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "conversation",
        sa.Column("id", sa.UUID(as_uuid=False), primary_key=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
    )

    op.create_table(
        "message",
        sa.Column("id", sa.UUID(as_uuid=False), primary_key=True),
        sa.Column("conversation_id", sa.UUID(as_uuid=False), nullable=False),
        sa.Column("sender", sa.String(8), nullable=False),
        sa.Column("text", sa.Text, nullable=False),
        sa.Column("position", sa.Integer, nullable=False),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.text("NOW()"),
        ),
        sa.CheckConstraint("sender IN ('user', 'ai')", name="ck_message_sender"),
        sa.UniqueConstraint(
            "conversation_id", "position", name="uq_message_conversation_position"
        ),
    )

    op.create_foreign_key(
        "fk_message_conversation_id",
        "message",
        "conversation",
        ["conversation_id"],
        ["id"],
        ondelete="CASCADE",
    )

    # Ordered transcript reads
    op.create_index(
        "ix_message_conversation_created_at",
        "message",
        ["conversation_id", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_message_conversation_created_at", table_name="message")
    op.drop_constraint("fk_message_conversation_id", "message", type_="foreignkey")
    op.drop_table("message")
    op.drop_table("conversation")
