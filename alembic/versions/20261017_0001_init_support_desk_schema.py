"""init support desk schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 00:00:00.000000

"""

from __future__ import annotations

from collections.abc import Sequence

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "agents",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("is_online", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name", name="uq_agent_name"),
    )
    op.create_index("ix_agents_is_online", "agents", ["is_online"], unique=False)

    op.create_table(
        "customers",
        sa.Column("user_id", sa.Integer(), autoincrement=False, nullable=False),
        sa.Column("current_agent_id", sa.Integer(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["current_agent_id"], ["agents.id"]),
        sa.PrimaryKeyConstraint("user_id"),
    )
    op.create_index(
        "ix_customers_current_agent_id", "customers", ["current_agent_id"], unique=False
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("customer_id", sa.Integer(), nullable=False),
        sa.Column("message_body", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_from_customer", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("agent_id", sa.Integer(), nullable=True),
        sa.Column("current_agent_id", sa.Integer(), nullable=True),
        sa.Column(
            "urgency_level",
            sa.Enum(
                "normal",
                "high",
                name="urgency_level",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
            server_default=sa.text("'normal'"),
        ),
        sa.Column(
            "status",
            sa.Enum(
                "pending",
                "assigned",
                "responded",
                name="message_status",
                native_enum=False,
                create_constraint=True,
            ),
            nullable=False,
            server_default=sa.text("'pending'"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.user_id"]),
        sa.ForeignKeyConstraint(["agent_id"], ["agents.id"]),
        sa.ForeignKeyConstraint(["current_agent_id"], ["agents.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_customer_id", "messages", ["customer_id"], unique=False)
    op.create_index("ix_messages_timestamp", "messages", ["timestamp"], unique=False)
    op.create_index("ix_messages_status", "messages", ["status"], unique=False)
    op.create_index(
        "ix_messages_current_agent_id", "messages", ["current_agent_id"], unique=False
    )
    op.create_index("ix_messages_urgency_level", "messages", ["urgency_level"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_messages_urgency_level", table_name="messages")
    op.drop_index("ix_messages_current_agent_id", table_name="messages")
    op.drop_index("ix_messages_status", table_name="messages")
    op.drop_index("ix_messages_timestamp", table_name="messages")
    op.drop_index("ix_messages_customer_id", table_name="messages")
    op.drop_table("messages")

    op.drop_index("ix_customers_current_agent_id", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_agents_is_online", table_name="agents")
    op.drop_table("agents")
