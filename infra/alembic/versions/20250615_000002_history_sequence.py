"""Add an insertion sequence to ticket history."""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20250615_000002"
down_revision = "20250601_000001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.add_column(
        "ticket_history",
        sa.Column("sequence", sa.BigInteger(), nullable=False, server_default="0"),
    )
    op.create_index("ix_ticket_history_ticket_order", "ticket_history", ["ticket_id", "changed_at", "sequence"])


def downgrade() -> None:
    op.drop_index("ix_ticket_history_ticket_order", table_name="ticket_history")
    op.drop_column("ticket_history", "sequence")
