from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import cast

from fastapi import HTTPException, status
from sqlalchemy import desc, func
from sqlalchemy.sql.schema import Table
from sqlmodel import Session, select

from cms.attachments.collection import OwnedCollection
from cms.attachments.mutator import MutationResult
from cms.models.gallery import GalleryItem, GalleryItemCreate, GalleryItemOut
from cms.repositories.sql_gateway import GALLERY_MEDIA, SqlPersistenceGateway
from cms.schemas.media import AttachmentOut
from cms.services import media_service

GALLERY_TABLE = cast(Table, GalleryItem.__table__)  # type: ignore[attr-defined]


def get_gallery_item(
    session: Session,
    item_id: int,
    *,
    published_only: bool = False,
) -> GalleryItem:
    item = session.get(GalleryItem, item_id)
    if item is None or (published_only and not item.published):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="gallery item not found",
        )
    return item


def create_gallery_item(session: Session, payload: GalleryItemCreate) -> GalleryItem:
    item = GalleryItem(**payload.model_dump())
    try:
        session.add(item)
        session.commit()
        session.refresh(item)
    except Exception as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create gallery item",
        ) from err
    return item


def update_gallery_item(
    session: Session,
    item_id: int,
    payload: GalleryItemCreate,
) -> GalleryItem:
    item = get_gallery_item(session, item_id)
    item.title = payload.title
    item.description = payload.description
    item.year = payload.year
    item.category = payload.category
    item.published = payload.published
    item.updated_at = datetime.utcnow()
    try:
        session.add(item)
        session.commit()
        session.refresh(item)
    except Exception as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update gallery item",
        ) from err
    return item


def set_published(session: Session, item_id: int, published: bool) -> GalleryItem:
    item = get_gallery_item(session, item_id)
    if item.published != published:
        item.published = published
        item.updated_at = datetime.utcnow()
        session.add(item)
        session.commit()
        session.refresh(item)
    return item


def list_gallery_items(
    session: Session,
    *,
    published_only: bool,
    year: int | None = None,
    category: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[GalleryItem], int]:
    conditions = []
    if published_only:
        conditions.append(GALLERY_TABLE.c.published.is_(True))
    if year is not None:
        conditions.append(GALLERY_TABLE.c.year == year)
    if category:
        conditions.append(GALLERY_TABLE.c.category == category)

    total_result = session.exec(
        select(func.count(GALLERY_TABLE.c.id)).where(*conditions)
    )
    total_count = int(total_result.first() or 0)

    statement = (
        select(GalleryItem)
        .where(*conditions)
        .order_by(desc(GALLERY_TABLE.c.year), desc(GALLERY_TABLE.c.id))
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all()), total_count


def serialize_gallery_item(
    item: GalleryItem,
    collection: OwnedCollection,
) -> GalleryItemOut:
    item_out = GalleryItemOut.model_validate(item, from_attributes=True)
    item_out.media = [
        AttachmentOut.model_validate(record, from_attributes=True)
        for record in collection
    ]
    primary = collection.get_primary()
    item_out.primary_media_url = primary.url if primary else None
    return item_out


def serialize_many(session: Session, items: Sequence[GalleryItem]) -> list[GalleryItemOut]:
    collections = SqlPersistenceGateway(session, GALLERY_MEDIA).load_collections(
        [i.id for i in items if i.id is not None]
    )
    return [
        serialize_gallery_item(item, collections.get(item.id or 0, OwnedCollection(item.id)))
        for item in items
    ]


def describe_gallery_item(
    session: Session,
    item_id: int,
    *,
    published_only: bool = False,
) -> GalleryItemOut:
    item = get_gallery_item(session, item_id, published_only=published_only)
    return serialize_many(session, [item])[0]


def delete_gallery_item(session: Session, item_id: int) -> MutationResult:
    get_gallery_item(session, item_id)
    return media_service.purge_owner(session, GALLERY_MEDIA, item_id, delete_owner=True)
