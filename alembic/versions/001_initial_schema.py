"""Initial schema — questions, ledgers, audit_log.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "questions",
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("text", sa.Text(), nullable=False),
        sa.Column("answer_type", sa.String(20), nullable=False),
        sa.Column(
            "options",
            postgresql.ARRAY(sa.String(200)),
            server_default="{}",
            nullable=False,
            comment="Choices for answer_type=options",
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_questions"),
        sa.CheckConstraint('"order" >= 0', name="ck_questions_order_non_negative"),
        sa.CheckConstraint(
            "answer_type IN ('text', 'number', 'boolean', 'options')",
            name="ck_questions_answer_type",
        ),
    )
    op.create_index("ix_questions_order", "questions", ["order"], unique=True)

    op.create_table(
        "ledgers",
        sa.Column("identity_key", sa.String(50), nullable=False),
        sa.Column("display_name", sa.String(100)),
        sa.Column("entries", postgresql.JSONB(astext_type=sa.Text()), server_default="[]", nullable=False),
        sa.Column("message_ids", postgresql.JSONB(astext_type=sa.Text()), server_default="[]", nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("identity_key", name="pk_ledgers"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.BigInteger(), sa.Identity(), nullable=False),
        sa.Column("event_type", sa.String(100), nullable=False),
        sa.Column("identity_key", sa.String(50)),
        sa.Column("actor_role", sa.String(50), comment="user, system, bot"),
        sa.Column("data", postgresql.JSONB(astext_type=sa.Text())),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_audit_log"),
    )
    op.create_index("ix_audit_log_event_type", "audit_log", ["event_type"])
    op.create_index("ix_audit_log_identity_key", "audit_log", ["identity_key"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("ledgers")
    op.drop_table("questions")
