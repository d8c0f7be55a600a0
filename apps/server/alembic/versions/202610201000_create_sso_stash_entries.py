"""Create the server-side SSO stash table"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610201000"
down_revision = "202610191200"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sso_stash_entries",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("stash_key", sa.String(length=128), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sso_stash_entries_expires_at", "sso_stash_entries", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_sso_stash_entries_expires_at", table_name="sso_stash_entries")
    op.drop_table("sso_stash_entries")
