from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel

from cms.models.attachment import AttachmentBase
from cms.schemas.media import AttachmentOut


class GalleryItemBase(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    year: int = Field(ge=1900, le=2100)
    category: str = Field(min_length=1, max_length=64)
    published: bool = True


class GalleryItem(GalleryItemBase, table=True):
    __tablename__ = "gallery_item"

    id: int | None = Field(default=None, primary_key=True)
    version: int = Field(default=1, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime | None = Field(default=None, nullable=True)


class GalleryMedia(AttachmentBase, table=True):
    __tablename__ = "gallery_media"
    __table_args__ = (
        Index("ix_gallery_media_item_sort", "gallery_item_id", "sort_key"),
    )

    gallery_item_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("gallery_item.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )


class GalleryItemCreate(GalleryItemBase):
    pass


class GalleryItemOut(GalleryItemBase):
    id: int
    version: int
    created_at: datetime
    updated_at: datetime | None = None
    primary_media_url: str | None = None
    media: list[AttachmentOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}
