from typing import Any

import pytest
from sqlalchemy import func
from sqlmodel import Session, select

from cms.attachments.errors import PersistenceFailure, StaleOwner
from cms.attachments.records import AttachmentRecord, MediaKind
from cms.models.gallery import GalleryItem, GalleryMedia
from cms.models.project import Project, ProjectImage, ProjectPartner, ProjectVideo
from cms.repositories.sql_gateway import (
    GALLERY_MEDIA,
    PROJECT_IMAGES,
    PROJECT_PARTNERS,
    PROJECT_VIDEOS,
    SqlPersistenceGateway,
)


def _gallery_item(session: Session) -> int:
    item = GalleryItem(title="Harvest", year=2021, category="events")
    session.add(item)
    session.commit()
    session.refresh(item)
    assert item.id is not None
    return item.id


def _record(name: str) -> AttachmentRecord:
    return AttachmentRecord(stored_path=name, url=f"/media/{name}", mime_type="image/jpeg")


def _count(session: Session, model: Any) -> int:
    return int(session.exec(select(func.count()).select_from(model)).one())


def test_save_inserts_rows_and_assigns_ids(session: Session) -> None:
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)
    owner = gateway.find_owner(_gallery_item(session))
    assert owner is not None and owner.version == 1

    owner.collection.add_all([_record("a.jpg"), _record("b.jpg")])
    gateway.save(owner)

    assert all(r.id is not None for r in owner.collection)
    assert owner.version == 2
    reloaded = gateway.find_owner(owner.id or 0)
    assert reloaded is not None
    assert reloaded.collection.ids() == owner.collection.ids()
    assert [r.is_primary for r in reloaded.collection] == [True, False]
    assert reloaded.version == 2


def test_save_removes_orphaned_rows(session: Session) -> None:
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)
    owner = gateway.find_owner(_gallery_item(session))
    assert owner is not None
    owner.collection.add_all([_record("a.jpg"), _record("b.jpg")])
    gateway.save(owner)

    owner.collection.remove_by_id(owner.collection.ids()[0])
    gateway.save(owner)

    assert _count(session, GalleryMedia) == 1
    remaining = session.exec(select(GalleryMedia)).one()
    assert remaining.stored_path == "b.jpg"
    assert remaining.is_primary is True


def test_stale_version_is_rejected(session: Session) -> None:
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)
    item_id = _gallery_item(session)
    first = gateway.find_owner(item_id)
    second = gateway.find_owner(item_id)
    assert first is not None and second is not None

    first.collection.add(_record("a.jpg"))
    gateway.save(first)

    second.collection.add(_record("b.jpg"))
    with pytest.raises(StaleOwner):
        gateway.save(second)
    assert _count(session, GalleryMedia) == 1


def test_save_without_owner_row_fails(session: Session) -> None:
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)
    assert gateway.find_owner(404) is None

    from cms.attachments.ports import Owner

    with pytest.raises(PersistenceFailure):
        gateway.save(Owner(id=404))


def test_delete_owner_removes_sibling_collections(session: Session) -> None:
    project = Project(title="Library corner")
    session.add(project)
    session.commit()
    session.refresh(project)
    assert project.id is not None

    images = SqlPersistenceGateway(session, PROJECT_IMAGES)
    owner = images.find_owner(project.id)
    assert owner is not None
    owner.collection.add_all([_record("a.jpg"), _record("b.jpg")])
    images.save(owner)

    videos = SqlPersistenceGateway(session, PROJECT_VIDEOS)
    video_owner = videos.find_owner(project.id)
    assert video_owner is not None
    video_owner.collection.add(
        AttachmentRecord(url="https://youtu.be/abc", media_kind=MediaKind.video)
    )
    videos.save(video_owner)

    images.delete_owner(project.id)

    assert session.get(Project, project.id) is None
    assert _count(session, ProjectImage) == 0
    assert _count(session, ProjectVideo) == 0
    assert _count(session, ProjectPartner) == 0


def test_load_collections_groups_by_owner(session: Session) -> None:
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)
    first_id = _gallery_item(session)
    second_id = _gallery_item(session)
    owner = gateway.find_owner(first_id)
    assert owner is not None
    owner.collection.add_all([_record("a.jpg"), _record("b.jpg")])
    gateway.save(owner)

    collections = gateway.load_collections([first_id, second_id])

    assert len(collections[first_id]) == 2
    assert len(collections[second_id]) == 0
    assert collections[second_id].get_primary() is None


def _legacy_rows(session: Session, item_id: int, *flags: bool) -> None:
    for position, flag in enumerate(flags):
        session.add(
            GalleryMedia(
                gallery_item_id=item_id,
                sort_key=position,
                is_primary=flag,
                stored_path=f"legacy-{position}.jpg",
                url=f"/media/legacy-{position}.jpg",
            )
        )
    session.commit()


def _primary_rows(session: Session) -> int:
    rows = session.exec(select(GalleryMedia)).all()
    return sum(1 for row in rows if row.is_primary)


def test_rows_without_primary_are_repaired_on_save(session: Session) -> None:
    item_id = _gallery_item(session)
    _legacy_rows(session, item_id, False, False)
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)

    owner = gateway.find_owner(item_id)
    assert owner is not None
    owner.collection.add(_record("new.jpg"))
    gateway.save(owner)

    assert _count(session, GalleryMedia) == 3
    assert _primary_rows(session) == 1
    reloaded = gateway.find_owner(item_id)
    assert reloaded is not None
    assert [r.is_primary for r in reloaded.collection] == [True, False, False]


def test_duplicate_primary_rows_collapse_to_one_after_detach(session: Session) -> None:
    item_id = _gallery_item(session)
    _legacy_rows(session, item_id, True, False, True)
    gateway = SqlPersistenceGateway(session, GALLERY_MEDIA)

    owner = gateway.find_owner(item_id)
    assert owner is not None
    owner.collection.remove_by_id(owner.collection.ids()[0])
    gateway.save(owner)

    assert _count(session, GalleryMedia) == 2
    assert _primary_rows(session) == 1
    remaining = session.exec(select(GalleryMedia).where(GalleryMedia.is_primary)).one()
    assert remaining.stored_path == "legacy-1.jpg"


def test_partner_columns_round_trip(session: Session) -> None:
    project = Project(title="Reading club")
    session.add(project)
    session.commit()
    session.refresh(project)
    assert project.id is not None

    partners = SqlPersistenceGateway(session, PROJECT_PARTNERS)
    owner = partners.find_owner(project.id)
    assert owner is not None
    owner.collection.add(
        AttachmentRecord(
            stored_path="logo.png",
            url="/media/logo.png",
            attributes={"name": "City library", "website_url": "https://lib.example.org"},
        )
    )
    partners.save(owner)

    row = session.exec(select(ProjectPartner)).one()
    assert row.name == "City library"
    assert row.website_url == "https://lib.example.org"
    assert row.description is None

    reloaded = partners.find_owner(project.id)
    assert reloaded is not None
    record = reloaded.collection.records[0]
    assert record.attributes["name"] == "City library"
    assert record.is_primary is True


def test_find_cascaded_lists_other_collections(session: Session) -> None:
    project = Project(title="Repair cafe")
    session.add(project)
    session.commit()
    session.refresh(project)
    assert project.id is not None

    videos = SqlPersistenceGateway(session, PROJECT_VIDEOS)
    video_owner = videos.find_owner(project.id)
    assert video_owner is not None
    video_owner.collection.add(
        AttachmentRecord(url="https://youtu.be/abc", media_kind=MediaKind.video)
    )
    videos.save(video_owner)

    partners = SqlPersistenceGateway(session, PROJECT_PARTNERS)
    partner_owner = partners.find_owner(project.id)
    assert partner_owner is not None
    partner_owner.collection.add(
        AttachmentRecord(
            stored_path="logo.png",
            url="/media/logo.png",
            attributes={"name": "Tool shed"},
        )
    )
    partners.save(partner_owner)

    images = SqlPersistenceGateway(session, PROJECT_IMAGES)
    owner = images.find_owner(project.id)
    assert owner is not None
    owner.collection.add(_record("cover.jpg"))
    images.save(owner)

    cascaded = images.find_cascaded(project.id)

    assert sorted(r.url for r in cascaded) == ["/media/logo.png", "https://youtu.be/abc"]
    assert "/media/cover.jpg" not in [r.url for r in cascaded]
    assert SqlPersistenceGateway(session, GALLERY_MEDIA).find_cascaded(project.id) == []
