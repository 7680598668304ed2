"""Create users, follows, files, likes, comments and chat tables

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  The initial Snapstream schema.
How:   Portable column types (sa.Uuid, DateTime(timezone=True), JSON) so the
       same migration runs on PostgreSQL and on SQLite for local work.

Rollback: downgrade() drops every table (destructive, all data lost).
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamp(name: str, comment: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
        comment=comment,
    )


def upgrade() -> None:
    # ── users ─────────────────────────────────────────────────────────────
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False, comment="3-30 of [A-Za-z0-9_]"),
        sa.Column("email", sa.String(255), nullable=False, comment="Login identifier"),
        sa.Column("password_hash", sa.String(255), nullable=False, comment="werkzeug hash string"),
        sa.Column(
            "profile_picture",
            sa.String(255),
            nullable=True,
            comment="Relative path under the storage root",
        ),
        sa.Column("bio", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("is_private_account", sa.Boolean(), nullable=False, server_default=sa.false()),
        _timestamp("created_at", "Registration time (UTC)"),
        _timestamp("updated_at", "Last profile change (UTC)"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    # ── follows ───────────────────────────────────────────────────────────
    op.create_table(
        "follows",
        sa.Column("follower_id", sa.Uuid(), nullable=False),
        sa.Column("followed_id", sa.Uuid(), nullable=False),
        _timestamp("created_at", "When the follow happened (UTC)"),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["followed_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("follower_id", "followed_id"),
    )
    # Follower counts: WHERE followed_id = :id
    op.create_index("ix_follows_followed_id", "follows", ["followed_id"])

    # ── files (posts) ─────────────────────────────────────────────────────
    op.create_table(
        "files",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False, comment="Stored name: <uuid><ext>"),
        sa.Column("original_name", sa.String(255), nullable=False, comment="Name as uploaded"),
        sa.Column("content_type", sa.String(100), nullable=False, comment="Detected by Pillow"),
        sa.Column("size", sa.Integer(), nullable=False, comment="Bytes"),
        sa.Column(
            "storage_path",
            sa.String(255),
            nullable=False,
            comment="posts/YYYY/MM/DD/<uuid><ext> under the storage root",
        ),
        sa.Column("caption", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("tags", sa.JSON(), nullable=False, comment="Lower-cased tag strings"),
        sa.Column("is_private", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("uploader_id", sa.Uuid(), nullable=False),
        sa.Column("uploader_username", sa.String(30), nullable=False),
        _timestamp("upload_time", "Upload time (UTC)"),
        sa.ForeignKeyConstraint(["uploader_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_files_uploader_upload_time", "files", ["uploader_id", "upload_time"])
    op.create_index("ix_files_public_upload_time", "files", ["is_private", "upload_time"])

    # ── likes ─────────────────────────────────────────────────────────────
    op.create_table(
        "likes",
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        _timestamp("created_at", "When the like was given (UTC)"),
        sa.ForeignKeyConstraint(["post_id"], ["files.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        # One like per user per post
        sa.PrimaryKeyConstraint("post_id", "user_id"),
    )
    op.create_index("ix_likes_user_id", "likes", ["user_id"])

    # ── comments ──────────────────────────────────────────────────────────
    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("post_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        sa.Column("text", sa.Text(), nullable=False, comment="1-500 characters"),
        _timestamp("created_at", "When the comment was posted (UTC)"),
        sa.ForeignKeyConstraint(["post_id"], ["files.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_post_id", "comments", ["post_id"])

    # ── conversations ─────────────────────────────────────────────────────
    op.create_table(
        "conversations",
        sa.Column("id", sa.Uuid(), nullable=False),
        _timestamp("created_at", "When the conversation was opened (UTC)"),
        _timestamp("updated_at", "Last activity (UTC); orders the conversation list"),
        sa.Column("last_message_content", sa.Text(), nullable=True),
        sa.Column("last_message_sender_id", sa.Uuid(), nullable=True),
        sa.Column("last_message_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_conversations_updated_at", "conversations", ["updated_at"])

    op.create_table(
        "conversation_participants",
        sa.Column("conversation_id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(30), nullable=False),
        _timestamp("joined_at", "When the user joined (UTC)"),
        _timestamp("last_read_at", "Messages after this are unread for the user"),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("conversation_id", "user_id"),
    )
    op.create_index(
        "ix_conversation_participants_user_id",
        "conversation_participants",
        ["user_id"],
    )

    op.create_table(
        "messages",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("conversation_id", sa.Uuid(), nullable=False),
        sa.Column("sender_id", sa.Uuid(), nullable=False),
        sa.Column("sender_username", sa.String(30), nullable=False),
        sa.Column("content", sa.Text(), nullable=False, comment="1-2000 characters"),
        _timestamp("created_at", "Send time (UTC)"),
        sa.ForeignKeyConstraint(["conversation_id"], ["conversations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_messages_conversation_created_at",
        "messages",
        ["conversation_id", "created_at"],
    )


def downgrade() -> None:
    """
    Drop every table, children first.

    WARNING: destructive. In production, prefer a forward migration.
    """
    op.drop_index("ix_messages_conversation_created_at", table_name="messages")
    op.drop_table("messages")
    op.drop_index("ix_conversation_participants_user_id", table_name="conversation_participants")
    op.drop_table("conversation_participants")
    op.drop_index("ix_conversations_updated_at", table_name="conversations")
    op.drop_table("conversations")
    op.drop_index("ix_comments_post_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_likes_user_id", table_name="likes")
    op.drop_table("likes")
    op.drop_index("ix_files_public_upload_time", table_name="files")
    op.drop_index("ix_files_uploader_upload_time", table_name="files")
    op.drop_table("files")
    op.drop_index("ix_follows_followed_id", table_name="follows")
    op.drop_table("follows")
    op.drop_index("ix_users_username", table_name="users")
    op.drop_table("users")
