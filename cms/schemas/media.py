from __future__ import annotations

from urllib.parse import urlparse

from pydantic import BaseModel, Field, field_validator
from sqlmodel import SQLModel

from cms.attachments.records import MediaKind
from cms.core.config import settings


class AttachmentOut(SQLModel):
    id: int
    sort_key: int
    is_primary: bool
    media_kind: MediaKind
    url: str
    original_filename: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    title: str | None = None

    model_config = {"from_attributes": True}


class PartnerOut(BaseModel):
    id: int
    sort_key: int
    is_primary: bool
    name: str
    website_url: str | None = None
    description: str | None = None
    logo_url: str | None = None


class ReorderRequest(BaseModel):
    ids: list[int] = Field(min_length=1)


class VideoLinkIn(BaseModel):
    url: str = Field(min_length=1, max_length=500)
    title: str | None = Field(default=None, max_length=255)

    @field_validator("url")
    @classmethod
    def _known_video_host(cls, v: str) -> str:
        parsed = urlparse(v.strip())
        host = (parsed.hostname or "").lower()
        if parsed.scheme not in {"http", "https"} or not any(
            host == allowed or host.endswith(f".{allowed}")
            for allowed in settings.VIDEO_LINK_HOSTS
        ):
            raise ValueError("only YouTube or Vimeo links are supported")
        return v.strip()
