from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from urllib.parse import urlparse

from fastapi import HTTPException, Response, UploadFile, status
from sqlmodel import Session

from cms.attachments.errors import (
    InvalidAttachment,
    LimitExceeded,
    NotFound,
    NotOwned,
    PersistenceFailure,
    StaleOwner,
    StorageFailure,
)
from cms.attachments.mutator import CollectionMutator, MutationResult
from cms.attachments.ports import Owner
from cms.attachments.records import Asset, MediaKind
from cms.core.config import settings
from cms.repositories.sql_gateway import CollectionBinding, SqlPersistenceGateway
from cms.schemas.media import VideoLinkIn
from cms.storage.local import LocalFileStore

CHUNK_SIZE = 1024 * 1024  # 1MB chunks for streaming large files
CONTENT_TYPE_EXTENSIONS: dict[str, str] = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/webm": ".webm",
    "video/ogg": ".ogv",
}


@contextmanager
def attachment_errors() -> Iterator[None]:
    try:
        yield
    except NotFound as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="attachment not found",
        ) from err
    except NotOwned as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="attachment does not belong to this item",
        ) from err
    except StaleOwner as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="item was modified concurrently, reload and retry",
        ) from err
    except LimitExceeded as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"too many attachments (maximum {err.limit})",
        ) from err
    except InvalidAttachment as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    except StorageFailure as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="failed to store uploaded file",
        ) from err
    except PersistenceFailure as err:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="failed to save attachments",
        ) from err


def build_mutator(session: Session, binding: CollectionBinding) -> CollectionMutator:
    store = LocalFileStore()
    return CollectionMutator(
        store,
        SqlPersistenceGateway(session, binding),
        max_per_owner=settings.MAX_ATTACHMENTS_PER_OWNER,
        url_builder=store.url_for,
    )


def load_owner(session: Session, binding: CollectionBinding, owner_id: int) -> Owner:
    owner = SqlPersistenceGateway(session, binding).find_owner(owner_id)
    if owner is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="item not found",
        )
    return owner


def _limits_for(kind: MediaKind) -> tuple[tuple[str, ...], int]:
    if kind is MediaKind.video:
        return settings.VIDEO_ALLOWED, settings.VIDEO_MAX_BYTES
    return settings.PHOTO_ALLOWED, settings.PHOTO_MAX_BYTES


def read_upload(
    file: UploadFile,
    *,
    allowed_kinds: frozenset[MediaKind] = frozenset(MediaKind),
) -> Asset:
    content_type = (file.content_type or "").lower()
    kind = MediaKind.from_mime_type(content_type)
    allowed, max_bytes = _limits_for(kind)
    extension = CONTENT_TYPE_EXTENSIONS.get(content_type)
    if kind not in allowed_kinds or content_type not in allowed or not extension:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="unsupported media type",
        )

    chunks: list[bytes] = []
    size = 0
    try:
        while True:
            chunk = file.file.read(CHUNK_SIZE)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise HTTPException(
                    status_code=status.HTTP_413_CONTENT_TOO_LARGE,
                    detail="file too large",
                )
            chunks.append(chunk)
    finally:
        file.file.close()

    if size == 0:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="empty file",
        )

    original = file.filename or f"upload{extension}"
    return Asset(
        filename=original if original.lower().endswith(extension) else f"{original}{extension}",
        content=b"".join(chunks),
        mime_type=content_type,
        media_kind=kind,
    )


def video_link_asset(link: VideoLinkIn) -> Asset:
    return Asset(
        filename=link.url,
        url=link.url,
        media_kind=MediaKind.video,
        title=link.title,
    )


def partner_asset(
    name: str,
    *,
    website_url: str | None = None,
    description: str | None = None,
    logo: UploadFile | None = None,
) -> Asset:
    website = (website_url or "").strip() or None
    if website is not None:
        parsed = urlparse(website)
        if parsed.scheme not in {"http", "https"} or not parsed.hostname:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="website_url must be an http(s) link",
            )
    attributes = {"name": name.strip(), "website_url": website, "description": description}
    if logo is None:
        return Asset(filename=name.strip(), attributes=attributes)
    asset = read_upload(logo, allowed_kinds=frozenset({MediaKind.photo}))
    asset.attributes = attributes
    return asset


def attach_uploads(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    files: Sequence[UploadFile],
    *,
    allowed_kinds: frozenset[MediaKind] = frozenset(MediaKind),
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="no files uploaded",
        )
    assets = [read_upload(file, allowed_kinds=allowed_kinds) for file in files]
    with attachment_errors():
        return build_mutator(session, binding).attach(owner, assets)


def attach_assets(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    assets: Sequence[Asset],
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    with attachment_errors():
        return build_mutator(session, binding).attach(owner, assets)


def attach_links(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    links: Sequence[VideoLinkIn],
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    with attachment_errors():
        return build_mutator(session, binding).attach(
            owner, [video_link_asset(link) for link in links]
        )


def detach_attachment(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    record_id: int,
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    with attachment_errors():
        return build_mutator(session, binding).detach(owner, record_id)


def promote_attachment(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    record_id: int,
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    with attachment_errors():
        return build_mutator(session, binding).promote(owner, record_id)


def reorder_attachments(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    ids_in_order: Sequence[int],
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    with attachment_errors():
        return build_mutator(session, binding).reorder(owner, ids_in_order)


def purge_owner(
    session: Session,
    binding: CollectionBinding,
    owner_id: int,
    *,
    delete_owner: bool = False,
) -> MutationResult:
    owner = load_owner(session, binding, owner_id)
    gateway = SqlPersistenceGateway(session, binding)
    cascaded = gateway.find_cascaded(owner_id) if delete_owner else []
    with attachment_errors():
        return build_mutator(session, binding).purge(
            owner, delete_owner=delete_owner, cascaded=cascaded
        )


def report_cleanup_warnings(response: Response, result: MutationResult) -> None:
    if result.warnings:
        response.headers["X-Cleanup-Warnings"] = str(len(result.warnings))
