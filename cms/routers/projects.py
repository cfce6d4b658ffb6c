from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, Query, Response, UploadFile, status
from sqlmodel import Session

from cms.attachments.records import MediaKind
from cms.core.db import get_session
from cms.models.project import ProjectCreate, ProjectOut, ProjectStatus
from cms.repositories.sql_gateway import PROJECT_IMAGES, PROJECT_PARTNERS, PROJECT_VIDEOS
from cms.routers.auth import get_current_user
from cms.schemas.media import ReorderRequest, VideoLinkIn
from cms.services import media_service, project_service

router = APIRouter(tags=["projects"])
admin = APIRouter(
    prefix="/admin/projects",
    tags=["projects-admin"],
    dependencies=[Depends(get_current_user)],
)

SessionDep = Annotated[Session, Depends(get_session)]

IMAGES_ONLY = frozenset({MediaKind.photo})


@router.get("/projects", response_model=list[ProjectOut])
def list_public_projects(
    session: SessionDep,
    response: Response,
    project_status: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ProjectOut]:
    projects, total = project_service.list_projects(
        session,
        published_only=True,
        project_status=project_status,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return project_service.serialize_many(session, projects)


@router.get("/projects/{project_id}", response_model=ProjectOut)
def get_public_project(project_id: int, session: SessionDep) -> ProjectOut:
    return project_service.describe_project(session, project_id, published_only=True)


@admin.post("", response_model=ProjectOut, status_code=status.HTTP_201_CREATED)
def create_project(payload: ProjectCreate, session: SessionDep) -> ProjectOut:
    project = project_service.create_project(session, payload)
    return project_service.serialize_many(session, [project])[0]


@admin.get("", response_model=list[ProjectOut])
def list_projects(
    session: SessionDep,
    response: Response,
    project_status: Annotated[ProjectStatus | None, Query(alias="status")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[ProjectOut]:
    projects, total = project_service.list_projects(
        session,
        published_only=False,
        project_status=project_status,
        limit=limit,
        offset=offset,
    )
    response.headers["X-Total-Count"] = str(total)
    return project_service.serialize_many(session, projects)


@admin.get("/{project_id}", response_model=ProjectOut)
def get_project(project_id: int, session: SessionDep) -> ProjectOut:
    return project_service.describe_project(session, project_id)


@admin.put("/{project_id}", response_model=ProjectOut)
def update_project(
    project_id: int,
    payload: ProjectCreate,
    session: SessionDep,
) -> ProjectOut:
    project = project_service.update_project(session, project_id, payload)
    return project_service.serialize_many(session, [project])[0]


@admin.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_project(project_id: int, session: SessionDep, response: Response) -> None:
    result = project_service.delete_project(session, project_id)
    media_service.report_cleanup_warnings(response, result)


# ---- Images ----


@admin.post(
    "/{project_id}/images",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
)
def upload_images(
    project_id: int,
    session: SessionDep,
    files: list[UploadFile] = File(...),
) -> ProjectOut:
    media_service.attach_uploads(
        session, PROJECT_IMAGES, project_id, files, allowed_kinds=IMAGES_ONLY
    )
    return project_service.describe_project(session, project_id)


@admin.delete("/{project_id}/images/{image_id}", response_model=ProjectOut)
def remove_image(
    project_id: int,
    image_id: int,
    session: SessionDep,
    response: Response,
) -> ProjectOut:
    result = media_service.detach_attachment(session, PROJECT_IMAGES, project_id, image_id)
    media_service.report_cleanup_warnings(response, result)
    return project_service.describe_project(session, project_id)


@admin.post("/{project_id}/images/{image_id}/primary", response_model=ProjectOut)
def mark_cover_image(project_id: int, image_id: int, session: SessionDep) -> ProjectOut:
    media_service.promote_attachment(session, PROJECT_IMAGES, project_id, image_id)
    return project_service.describe_project(session, project_id)


@admin.put("/{project_id}/images/order", response_model=ProjectOut)
def reorder_images(
    project_id: int,
    payload: ReorderRequest,
    session: SessionDep,
) -> ProjectOut:
    media_service.reorder_attachments(session, PROJECT_IMAGES, project_id, payload.ids)
    return project_service.describe_project(session, project_id)


# ---- Videos ----


@admin.post(
    "/{project_id}/videos",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
)
def add_videos(
    project_id: int,
    links: list[VideoLinkIn],
    session: SessionDep,
) -> ProjectOut:
    media_service.attach_links(session, PROJECT_VIDEOS, project_id, links)
    return project_service.describe_project(session, project_id)


@admin.delete("/{project_id}/videos/{video_id}", response_model=ProjectOut)
def remove_video(
    project_id: int,
    video_id: int,
    session: SessionDep,
    response: Response,
) -> ProjectOut:
    result = media_service.detach_attachment(session, PROJECT_VIDEOS, project_id, video_id)
    media_service.report_cleanup_warnings(response, result)
    return project_service.describe_project(session, project_id)


@admin.post("/{project_id}/videos/{video_id}/primary", response_model=ProjectOut)
def mark_main_video(project_id: int, video_id: int, session: SessionDep) -> ProjectOut:
    media_service.promote_attachment(session, PROJECT_VIDEOS, project_id, video_id)
    return project_service.describe_project(session, project_id)


@admin.put("/{project_id}/videos/order", response_model=ProjectOut)
def reorder_videos(
    project_id: int,
    payload: ReorderRequest,
    session: SessionDep,
) -> ProjectOut:
    media_service.reorder_attachments(session, PROJECT_VIDEOS, project_id, payload.ids)
    return project_service.describe_project(session, project_id)


# ---- Partners ----


@admin.post(
    "/{project_id}/partners",
    response_model=ProjectOut,
    status_code=status.HTTP_201_CREATED,
)
def add_partner(
    project_id: int,
    session: SessionDep,
    name: Annotated[str, Form(min_length=2, max_length=200)],
    website_url: Annotated[str | None, Form(max_length=500)] = None,
    description: Annotated[str | None, Form(max_length=1000)] = None,
    logo: UploadFile | None = File(None),
) -> ProjectOut:
    asset = media_service.partner_asset(
        name, website_url=website_url, description=description, logo=logo
    )
    media_service.attach_assets(session, PROJECT_PARTNERS, project_id, [asset])
    return project_service.describe_project(session, project_id)


@admin.delete("/{project_id}/partners/{partner_id}", response_model=ProjectOut)
def remove_partner(
    project_id: int,
    partner_id: int,
    session: SessionDep,
    response: Response,
) -> ProjectOut:
    result = media_service.detach_attachment(session, PROJECT_PARTNERS, project_id, partner_id)
    media_service.report_cleanup_warnings(response, result)
    return project_service.describe_project(session, project_id)


@admin.post("/{project_id}/partners/{partner_id}/primary", response_model=ProjectOut)
def mark_main_partner(project_id: int, partner_id: int, session: SessionDep) -> ProjectOut:
    media_service.promote_attachment(session, PROJECT_PARTNERS, project_id, partner_id)
    return project_service.describe_project(session, project_id)


@admin.put("/{project_id}/partners/order", response_model=ProjectOut)
def reorder_partners(
    project_id: int,
    payload: ReorderRequest,
    session: SessionDep,
) -> ProjectOut:
    media_service.reorder_attachments(session, PROJECT_PARTNERS, project_id, payload.ids)
    return project_service.describe_project(session, project_id)
