"""Create users, authentication providers, identity links and activity logs"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "202610191200"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("photo", sa.String(length=767), nullable=True),
        sa.Column("attributes", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "authentication_providers",
        sa.Column("key", sa.String(length=64), nullable=False),
        sa.Column("scheme_alias", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("client_id", sa.String(length=255), nullable=True),
        sa.Column("encrypted_client_secret", sa.String(length=1024), nullable=True),
        sa.Column("authorize_url", sa.String(length=255), nullable=True),
        sa.Column("token_url", sa.String(length=255), nullable=True),
        sa.Column("profile_url", sa.String(length=255), nullable=True),
        sa.Column("base_url", sa.String(length=255), nullable=True),
        sa.Column("sign_in_url", sa.String(length=255), nullable=True),
        sa.Column("register_url", sa.String(length=255), nullable=True),
        sa.Column("sign_out_url", sa.String(length=255), nullable=True),
        sa.Column("scope", sa.String(length=255), nullable=True),
        sa.Column("accepted_scope", sa.String(length=255), nullable=True),
        sa.Column("is_default", sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column("profile_key_email", sa.String(length=64), nullable=True),
        sa.Column("profile_key_photo", sa.String(length=64), nullable=True),
        sa.Column("profile_key_name", sa.String(length=64), nullable=True),
        sa.Column("profile_key_full_name", sa.String(length=64), nullable=True),
        sa.Column("profile_key_unique_id", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("key"),
    )

    op.create_table(
        "user_authentications",
        sa.Column("provider_key", sa.String(length=64), nullable=False),
        sa.Column("unique_id", sa.String(length=255), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("provider_key", "unique_id"),
    )
    op.create_index("ix_user_authentications_user_id", "user_authentications", ["user_id"])

    op.create_table(
        "user_activity_logs",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=100), nullable=False),
        sa.Column("details", sa.String(length=5000), nullable=True),
        sa.Column("service_name", sa.String(length=100), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_activity_logs_user_id", "user_activity_logs", ["user_id"])
    op.create_index("ix_user_activity_logs_action_type", "user_activity_logs", ["action_type"])


def downgrade() -> None:
    op.drop_index("ix_user_activity_logs_action_type", table_name="user_activity_logs")
    op.drop_index("ix_user_activity_logs_user_id", table_name="user_activity_logs")
    op.drop_table("user_activity_logs")
    op.drop_index("ix_user_authentications_user_id", table_name="user_authentications")
    op.drop_table("user_authentications")
    op.drop_table("authentication_providers")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_table("users")
