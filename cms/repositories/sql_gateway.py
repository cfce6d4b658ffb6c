from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any, cast

from sqlalchemy.sql.schema import Table
from sqlmodel import Session, SQLModel, select

from cms.attachments.collection import OwnedCollection
from cms.attachments.errors import PersistenceFailure, StaleOwner
from cms.attachments.ports import Owner
from cms.attachments.records import AttachmentRecord
from cms.models.attachment import AttachmentBase
from cms.models.gallery import GalleryItem, GalleryMedia
from cms.models.project import Project, ProjectImage, ProjectPartner, ProjectVideo

logger = logging.getLogger(__name__)

RECORD_FIELDS: tuple[str, ...] = (
    "sort_key",
    "is_primary",
    "media_kind",
    "stored_path",
    "url",
    "original_filename",
    "mime_type",
    "size_bytes",
    "title",
)


@dataclass(frozen=True)
class CollectionBinding:
    """Ties one attachment table to its owner table.

    ``siblings`` lists every attachment table hanging off the same owner so
    that deleting the owner removes all of them.

    ``extra_fields`` are table specific columns carried in
    ``AttachmentRecord.attributes``.
    """

    name: str
    owner_model: type[SQLModel]
    attachment_model: type[AttachmentBase]
    owner_fk: str
    siblings: tuple[tuple[type[AttachmentBase], str], ...] = ()
    extra_fields: tuple[str, ...] = ()

    def attachment_table(self) -> Table:
        return cast(Table, self.attachment_model.__table__)  # type: ignore[attr-defined]

    def cascade_targets(self) -> tuple[tuple[type[AttachmentBase], str], ...]:
        own = (self.attachment_model, self.owner_fk)
        return (own, *(s for s in self.siblings if s != own))


GALLERY_MEDIA = CollectionBinding(
    name="gallery_media",
    owner_model=GalleryItem,
    attachment_model=GalleryMedia,
    owner_fk="gallery_item_id",
)

PROJECT_IMAGES = CollectionBinding(
    name="project_images",
    owner_model=Project,
    attachment_model=ProjectImage,
    owner_fk="project_id",
    siblings=((ProjectVideo, "project_id"), (ProjectPartner, "project_id")),
)

PROJECT_VIDEOS = CollectionBinding(
    name="project_videos",
    owner_model=Project,
    attachment_model=ProjectVideo,
    owner_fk="project_id",
    siblings=((ProjectImage, "project_id"), (ProjectPartner, "project_id")),
)

PROJECT_PARTNERS = CollectionBinding(
    name="project_partners",
    owner_model=Project,
    attachment_model=ProjectPartner,
    owner_fk="project_id",
    siblings=((ProjectImage, "project_id"), (ProjectVideo, "project_id")),
    extra_fields=("name", "website_url", "description"),
)


def row_to_record(
    row: AttachmentBase,
    owner_fk: str,
    extra_fields: Sequence[str] = (),
) -> AttachmentRecord:
    return AttachmentRecord(
        id=row.id,
        sort_key=row.sort_key,
        is_primary=row.is_primary,
        owner_id=getattr(row, owner_fk),
        media_kind=row.media_kind,
        stored_path=row.stored_path,
        url=row.url,
        original_filename=row.original_filename,
        mime_type=row.mime_type,
        size_bytes=row.size_bytes,
        title=row.title,
        attributes={name: getattr(row, name) for name in extra_fields},
    )


def _record_values(
    record: AttachmentRecord,
    extra_fields: Sequence[str] = (),
) -> dict[str, Any]:
    values = {name: getattr(record, name) for name in RECORD_FIELDS}
    for name in extra_fields:
        values[name] = record.attributes.get(name)
    return values


class SqlPersistenceGateway:
    """Stores one attachment collection per owner row.

    ``save`` syncs the rows with the in-memory collection: new records are
    inserted, changed ones updated, and rows that are no longer referenced
    are deleted.
    """

    def __init__(self, session: Session, binding: CollectionBinding) -> None:
        self.session = session
        self.binding = binding

    def _attachment_rows(
        self,
        model: type[AttachmentBase],
        owner_fk: str,
        owner_id: int,
    ) -> Sequence[AttachmentBase]:
        table = cast(Table, model.__table__)  # type: ignore[attr-defined]
        statement = (
            select(model)
            .where(table.c[owner_fk] == owner_id)
            .order_by(table.c.sort_key, table.c.id)
        )
        return self.session.exec(statement).all()

    def load_collections(self, owner_ids: Sequence[int]) -> dict[int, OwnedCollection]:
        """Read-only batch load for list views; one query for all owners."""
        grouped: dict[int, list[AttachmentRecord]] = {owner_id: [] for owner_id in owner_ids}
        if owner_ids:
            table = self.binding.attachment_table()
            rows = self.session.exec(
                select(self.binding.attachment_model)
                .where(table.c[self.binding.owner_fk].in_(list(owner_ids)))
                .order_by(table.c[self.binding.owner_fk], table.c.sort_key, table.c.id)
            ).all()
            for row in rows:
                record = row_to_record(row, self.binding.owner_fk, self.binding.extra_fields)
                grouped.setdefault(cast(int, record.owner_id), []).append(record)
        return {
            owner_id: OwnedCollection.load(owner_id, records)
            for owner_id, records in grouped.items()
        }

    def find_owner(self, owner_id: int) -> Owner | None:
        row = self.session.get(self.binding.owner_model, owner_id)
        if row is None:
            return None
        rows = self._attachment_rows(
            self.binding.attachment_model, self.binding.owner_fk, owner_id
        )
        records = [
            row_to_record(r, self.binding.owner_fk, self.binding.extra_fields) for r in rows
        ]
        return Owner(
            id=owner_id,
            collection=OwnedCollection.load(owner_id, records),
            version=cast(int, getattr(row, "version")),
        )

    def find_cascaded(self, owner_id: int) -> list[AttachmentRecord]:
        """Records of the other attachment tables that go away with the owner row."""
        own = (self.binding.attachment_model, self.binding.owner_fk)
        return [
            row_to_record(row, owner_fk)
            for model, owner_fk in self.binding.cascade_targets()
            if (model, owner_fk) != own
            for row in self._attachment_rows(model, owner_fk, owner_id)
        ]

    def save(self, owner: Owner) -> Owner:
        if owner.id is None:
            raise PersistenceFailure("owner must be created before its attachments")
        owner_row = self.session.get(self.binding.owner_model, owner.id)
        if owner_row is None:
            raise PersistenceFailure(f"owner {owner.id} does not exist")
        current_version = cast(int, getattr(owner_row, "version"))
        if current_version != owner.version:
            raise StaleOwner(owner.id, owner.version, current_version)

        existing = {
            row.id: row
            for row in self._attachment_rows(
                self.binding.attachment_model, self.binding.owner_fk, owner.id
            )
        }
        kept: set[int] = set()
        inserted: list[tuple[AttachmentRecord, AttachmentBase]] = []

        for record in owner.collection:
            row = existing.get(record.id) if record.id is not None else None
            if row is not None:
                for name, value in _record_values(record, self.binding.extra_fields).items():
                    setattr(row, name, value)
                kept.add(cast(int, row.id))
                self.session.add(row)
                continue
            new_row = self.binding.attachment_model(
                **_record_values(record, self.binding.extra_fields),
                **{self.binding.owner_fk: owner.id},
            )
            self.session.add(new_row)
            inserted.append((record, new_row))

        for row_id, row in existing.items():
            if row_id not in kept:
                self.session.delete(row)

        new_version = current_version + 1
        setattr(owner_row, "version", new_version)
        setattr(owner_row, "updated_at", datetime.utcnow())
        self.session.add(owner_row)

        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

        for record, new_row in inserted:
            self.session.refresh(new_row)
            record.id = new_row.id
        owner.version = new_version
        return owner

    def delete_owner(self, owner_id: int) -> None:
        owner_row = self.session.get(self.binding.owner_model, owner_id)
        if owner_row is None:
            return
        removed = 0
        for model, owner_fk in self.binding.cascade_targets():
            for row in self._attachment_rows(model, owner_fk, owner_id):
                self.session.delete(row)
                removed += 1
        self.session.delete(owner_row)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        logger.info(
            "Owner deleted",
            extra={
                "event": "attachments",
                "binding": self.binding.name,
                "owner_id": owner_id,
                "rows": removed,
            },
        )
