from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlmodel import Session

from cms.core.db import get_session
from cms.models.gallery import GalleryItemCreate, GalleryItemOut
from cms.repositories.sql_gateway import GALLERY_MEDIA
from cms.routers.auth import get_current_user
from cms.schemas.media import ReorderRequest
from cms.services import gallery_service, media_service

router = APIRouter(tags=["gallery"])
admin = APIRouter(
    prefix="/admin/gallery",
    tags=["gallery-admin"],
    dependencies=[Depends(get_current_user)],
)

SessionDep = Annotated[Session, Depends(get_session)]


@router.get("/gallery", response_model=list[GalleryItemOut])
def list_public_gallery(
    session: SessionDep,
    response: Response,
    year: Annotated[int | None, Query(ge=1900, le=2100)] = None,
    category: Annotated[str | None, Query(max_length=100)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[GalleryItemOut]:
    items, total = gallery_service.list_gallery_items(
        session,
        published_only=True,
        year=year,
        category=category,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return gallery_service.serialize_many(session, items)


@router.get("/gallery/{item_id}", response_model=GalleryItemOut)
def get_public_gallery_item(item_id: int, session: SessionDep) -> GalleryItemOut:
    return gallery_service.describe_gallery_item(session, item_id, published_only=True)


@admin.post("", response_model=GalleryItemOut, status_code=status.HTTP_201_CREATED)
def create_item(payload: GalleryItemCreate, session: SessionDep) -> GalleryItemOut:
    item = gallery_service.create_gallery_item(session, payload)
    return gallery_service.serialize_many(session, [item])[0]


@admin.get("", response_model=list[GalleryItemOut])
def list_items(
    session: SessionDep,
    response: Response,
    year: Annotated[int | None, Query(ge=1900, le=2100)] = None,
    category: Annotated[str | None, Query(max_length=100)] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[GalleryItemOut]:
    items, total = gallery_service.list_gallery_items(
        session,
        published_only=False,
        year=year,
        category=category,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return gallery_service.serialize_many(session, items)


@admin.get("/{item_id}", response_model=GalleryItemOut)
def get_item(item_id: int, session: SessionDep) -> GalleryItemOut:
    return gallery_service.describe_gallery_item(session, item_id)


@admin.put("/{item_id}", response_model=GalleryItemOut)
def update_item(
    item_id: int,
    payload: GalleryItemCreate,
    session: SessionDep,
) -> GalleryItemOut:
    item = gallery_service.update_gallery_item(session, item_id, payload)
    return gallery_service.serialize_many(session, [item])[0]


@admin.post("/{item_id}/publish", response_model=GalleryItemOut)
def publish_item(item_id: int, session: SessionDep) -> GalleryItemOut:
    item = gallery_service.set_published(session, item_id, True)
    return gallery_service.serialize_many(session, [item])[0]


@admin.post("/{item_id}/unpublish", response_model=GalleryItemOut)
def unpublish_item(item_id: int, session: SessionDep) -> GalleryItemOut:
    item = gallery_service.set_published(session, item_id, False)
    return gallery_service.serialize_many(session, [item])[0]


@admin.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(item_id: int, session: SessionDep, response: Response) -> None:
    result = gallery_service.delete_gallery_item(session, item_id)
    media_service.report_cleanup_warnings(response, result)


@admin.post(
    "/{item_id}/media",
    response_model=GalleryItemOut,
    status_code=status.HTTP_201_CREATED,
)
def upload_media(
    item_id: int,
    session: SessionDep,
    files: list[UploadFile] = File(...),
) -> GalleryItemOut:
    media_service.attach_uploads(session, GALLERY_MEDIA, item_id, files)
    return gallery_service.describe_gallery_item(session, item_id)


@admin.delete("/{item_id}/media/{media_id}", response_model=GalleryItemOut)
def remove_media(
    item_id: int,
    media_id: int,
    session: SessionDep,
    response: Response,
) -> GalleryItemOut:
    result = media_service.detach_attachment(session, GALLERY_MEDIA, item_id, media_id)
    media_service.report_cleanup_warnings(response, result)
    return gallery_service.describe_gallery_item(session, item_id)


@admin.post("/{item_id}/media/{media_id}/primary", response_model=GalleryItemOut)
def mark_primary_media(item_id: int, media_id: int, session: SessionDep) -> GalleryItemOut:
    media_service.promote_attachment(session, GALLERY_MEDIA, item_id, media_id)
    return gallery_service.describe_gallery_item(session, item_id)


@admin.put("/{item_id}/media/order", response_model=GalleryItemOut)
def reorder_media(
    item_id: int,
    payload: ReorderRequest,
    session: SessionDep,
) -> GalleryItemOut:
    media_service.reorder_attachments(session, GALLERY_MEDIA, item_id, payload.ids)
    return gallery_service.describe_gallery_item(session, item_id)
