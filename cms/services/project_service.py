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
from cms.attachments.records import AttachmentRecord
from cms.models.project import Project, ProjectCreate, ProjectOut, ProjectStatus
from cms.repositories.sql_gateway import (
    PROJECT_IMAGES,
    PROJECT_PARTNERS,
    PROJECT_VIDEOS,
    SqlPersistenceGateway,
)
from cms.schemas.media import AttachmentOut, PartnerOut
from cms.services import media_service

PROJECT_TABLE = cast(Table, Project.__table__)  # type: ignore[attr-defined]


def get_project(
    session: Session,
    project_id: int,
    *,
    published_only: bool = False,
) -> Project:
    project = session.get(Project, project_id)
    if project is None or (published_only and not project.published):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="project not found",
        )
    return project


def create_project(session: Session, payload: ProjectCreate) -> Project:
    project = Project(**payload.model_dump())
    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except Exception as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to create project",
        ) from err
    return project


def update_project(session: Session, project_id: int, payload: ProjectCreate) -> Project:
    project = get_project(session, project_id)
    for name, value in payload.model_dump().items():
        setattr(project, name, value)
    project.updated_at = datetime.utcnow()
    try:
        session.add(project)
        session.commit()
        session.refresh(project)
    except Exception as err:
        session.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Failed to update project",
        ) from err
    return project


def list_projects(
    session: Session,
    *,
    published_only: bool,
    project_status: ProjectStatus | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[Project], int]:
    conditions = []
    if published_only:
        conditions.append(PROJECT_TABLE.c.published.is_(True))
    if project_status is not None:
        conditions.append(PROJECT_TABLE.c.status == project_status)

    total_result = session.exec(
        select(func.count(PROJECT_TABLE.c.id)).where(*conditions)
    )
    total_count = int(total_result.first() or 0)

    statement = (
        select(Project)
        .where(*conditions)
        .order_by(desc(PROJECT_TABLE.c.created_at), desc(PROJECT_TABLE.c.id))
        .offset(offset)
        .limit(limit)
    )
    return list(session.exec(statement).all()), total_count


def _partner_out(record: AttachmentRecord) -> PartnerOut:
    return PartnerOut(
        id=cast(int, record.id),
        sort_key=record.sort_key,
        is_primary=record.is_primary,
        name=record.attributes.get("name") or "",
        website_url=record.attributes.get("website_url"),
        description=record.attributes.get("description"),
        logo_url=record.url or None,
    )


def serialize_project(
    project: Project,
    images: OwnedCollection,
    videos: OwnedCollection,
    partners: OwnedCollection,
) -> ProjectOut:
    project_out = ProjectOut.model_validate(project, from_attributes=True)
    project_out.images = [
        AttachmentOut.model_validate(record, from_attributes=True) for record in images
    ]
    project_out.videos = [
        AttachmentOut.model_validate(record, from_attributes=True) for record in videos
    ]
    cover = images.get_primary()
    main_video = videos.get_primary()
    project_out.cover_image_url = cover.url if cover else None
    project_out.main_video_url = main_video.url if main_video else None
    project_out.partners = [_partner_out(record) for record in partners]
    main_partner = partners.get_primary()
    if main_partner is not None:
        project_out.main_partner_name = main_partner.attributes.get("name")
    return project_out


def serialize_many(session: Session, projects: Sequence[Project]) -> list[ProjectOut]:
    ids = [p.id for p in projects if p.id is not None]
    images = SqlPersistenceGateway(session, PROJECT_IMAGES).load_collections(ids)
    videos = SqlPersistenceGateway(session, PROJECT_VIDEOS).load_collections(ids)
    partners = SqlPersistenceGateway(session, PROJECT_PARTNERS).load_collections(ids)
    return [
        serialize_project(
            project,
            images.get(project.id or 0, OwnedCollection(project.id)),
            videos.get(project.id or 0, OwnedCollection(project.id)),
            partners.get(project.id or 0, OwnedCollection(project.id)),
        )
        for project in projects
    ]


def describe_project(
    session: Session,
    project_id: int,
    *,
    published_only: bool = False,
) -> ProjectOut:
    project = get_project(session, project_id, published_only=published_only)
    return serialize_many(session, [project])[0]


def delete_project(session: Session, project_id: int) -> MutationResult:
    get_project(session, project_id)
    # Video and partner rows go with the owner row; their bytes are cleaned up too.
    return media_service.purge_owner(session, PROJECT_IMAGES, project_id, delete_owner=True)
