from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class MediaKind(str, Enum):
    photo = "photo"
    video = "video"

    @classmethod
    def from_mime_type(cls, mime_type: str | None) -> MediaKind:
        if mime_type and mime_type.lower().startswith("video/"):
            return cls.video
        return cls.photo


@dataclass(eq=False)
class AttachmentRecord:
    """One asset reference inside an owner's collection.

    Equality is by assigned id. A record that has not been persisted yet
    only equals itself.
    """

    id: int | None = None
    sort_key: int | None = None
    is_primary: bool = False
    owner_id: int | None = None
    media_kind: MediaKind = MediaKind.photo
    stored_path: str | None = None
    url: str = ""
    original_filename: str | None = None
    mime_type: str | None = None
    size_bytes: int | None = None
    title: str | None = None
    # Columns specific to one attachment table, e.g. a partner's name.
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def is_attached(self) -> bool:
        return self.owner_id is not None

    def detach(self) -> None:
        self.owner_id = None
        self.is_primary = False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AttachmentRecord):
            return NotImplemented
        if self.id is None or other.id is None:
            return self is other
        return self.id == other.id

    def __hash__(self) -> int:
        if self.id is None:
            return id(self)
        return hash(("attachment", self.id))


@dataclass
class Asset:
    """Input for an attach call.

    ``content`` of ``None`` marks a link-only asset (an externally hosted
    video) that has no bytes to store.
    """

    filename: str
    content: bytes | None = None
    mime_type: str | None = None
    media_kind: MediaKind | None = None
    url: str | None = None
    title: str | None = None
    attributes: dict[str, Any] = field(default_factory=dict)

    @property
    def kind(self) -> MediaKind:
        if self.media_kind is not None:
            return self.media_kind
        return MediaKind.from_mime_type(self.mime_type)

    @property
    def size_bytes(self) -> int | None:
        return None if self.content is None else len(self.content)
