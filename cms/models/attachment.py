from __future__ import annotations

from datetime import datetime

from sqlmodel import Field, SQLModel

from cms.attachments.records import MediaKind


class AttachmentBase(SQLModel):
    """Columns shared by every attachment table.

    Each concrete table adds its own foreign key to the owning row.
    """

    id: int | None = Field(default=None, primary_key=True)
    sort_key: int = Field(default=0, nullable=False)
    is_primary: bool = Field(default=False, nullable=False)
    media_kind: MediaKind = Field(default=MediaKind.photo, nullable=False)
    stored_path: str | None = Field(default=None, nullable=True, unique=True)
    url: str = Field(nullable=False)
    original_filename: str | None = Field(default=None, nullable=True)
    mime_type: str | None = Field(default=None, nullable=True)
    size_bytes: int | None = Field(default=None, nullable=True)
    title: str | None = Field(default=None, nullable=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
