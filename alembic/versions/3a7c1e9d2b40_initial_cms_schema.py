"""initial cms schema

Revision ID: 3a7c1e9d2b40
Revises:
Create Date: 2026-10-16 09:00:00.000000

"""

from collections.abc import Sequence
from typing import Union

import sqlalchemy as sa
import sqlmodel
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3a7c1e9d2b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Shared by three tables, so the type is created once up front.
MEDIA_KIND = postgresql.ENUM("photo", "video", name="mediakind", create_type=False)


def _attachment_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sort_key", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("media_kind", MEDIA_KIND, nullable=False),
        sa.Column("stored_path", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("url", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("original_filename", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("mime_type", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("size_bytes", sa.Integer(), nullable=True),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("stored_path"),
    ]


def _owner_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("published", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("updated_at", sa.DateTime(timezone=False), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    ]


def upgrade() -> None:
    """Upgrade schema."""
    sa.Enum("photo", "video", name="mediakind").create(op.get_bind(), checkfirst=True)

    op.create_table(
        "user",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("password_hash", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=False),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("email", name="uq_user_email"),
    )
    op.create_index(op.f("ix_user_email"), "user", ["email"], unique=False)

    op.create_table(
        "gallery_item",
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("category", sqlmodel.sql.sqltypes.AutoString(length=64), nullable=False),
        *_owner_columns(),
    )

    op.create_table(
        "project",
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(length=255), nullable=False),
        sa.Column(
            "short_description",
            sqlmodel.sql.sqltypes.AutoString(length=500),
            nullable=True,
        ),
        sa.Column(
            "status",
            sa.Enum("active", "completed", "archived", name="project_status"),
            nullable=False,
        ),
        *_owner_columns(),
    )

    for table, owner_table, owner_fk, sort_index in (
        ("gallery_media", "gallery_item", "gallery_item_id", "ix_gallery_media_item_sort"),
        ("project_image", "project", "project_id", "ix_project_image_project_sort"),
        ("project_video", "project", "project_id", "ix_project_video_project_sort"),
    ):
        op.create_table(
            table,
            sa.Column(owner_fk, sa.Integer(), nullable=False),
            *_attachment_columns(),
            sa.ForeignKeyConstraint([owner_fk], [f"{owner_table}.id"], ondelete="CASCADE"),
        )
        op.create_index(op.f(f"ix_{table}_{owner_fk}"), table, [owner_fk], unique=False)
        op.create_index(sort_index, table, [owner_fk, "sort_key"], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    for table, owner_fk, sort_index in (
        ("project_video", "project_id", "ix_project_video_project_sort"),
        ("project_image", "project_id", "ix_project_image_project_sort"),
        ("gallery_media", "gallery_item_id", "ix_gallery_media_item_sort"),
    ):
        op.drop_index(sort_index, table_name=table)
        op.drop_index(op.f(f"ix_{table}_{owner_fk}"), table_name=table)
        op.drop_table(table)
    op.drop_table("project")
    op.drop_table("gallery_item")
    op.drop_index(op.f("ix_user_email"), table_name="user")
    op.drop_table("user")
    sa.Enum(name="mediakind").drop(op.get_bind(), checkfirst=True)
    sa.Enum(name="project_status").drop(op.get_bind(), checkfirst=True)
