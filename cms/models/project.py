from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import Column, ForeignKey, Index, Integer
from sqlalchemy.types import Enum as SQLEnum
from sqlmodel import Field, SQLModel

from cms.models.attachment import AttachmentBase
from cms.schemas.media import AttachmentOut, PartnerOut


class ProjectStatus(str, Enum):
    active = "active"
    completed = "completed"
    archived = "archived"


class ProjectBase(SQLModel):
    title: str = Field(min_length=1, max_length=255)
    short_description: str | None = Field(default=None, max_length=500)
    status: ProjectStatus = Field(default=ProjectStatus.active)
    published: bool = True


class Project(ProjectBase, table=True):
    __tablename__ = "project"

    id: int | None = Field(default=None, primary_key=True)
    status: ProjectStatus = Field(
        default=ProjectStatus.active,
        sa_column=Column(SQLEnum(ProjectStatus, name="project_status"), nullable=False),
    )
    version: int = Field(default=1, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime | None = Field(default=None, nullable=True)


class ProjectImage(AttachmentBase, table=True):
    __tablename__ = "project_image"
    __table_args__ = (
        Index("ix_project_image_project_sort", "project_id", "sort_key"),
    )

    project_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )


class ProjectVideo(AttachmentBase, table=True):
    __tablename__ = "project_video"
    __table_args__ = (
        Index("ix_project_video_project_sort", "project_id", "sort_key"),
    )

    project_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )


class ProjectPartner(AttachmentBase, table=True):
    """Organisation supporting a project.

    The optional logo is the stored attachment. The primary row is the main partner.
    """

    __tablename__ = "project_partner"
    __table_args__ = (
        Index("ix_project_partner_project_sort", "project_id", "sort_key"),
    )

    project_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("project.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        )
    )
    name: str = Field(min_length=2, max_length=200, nullable=False)
    website_url: str | None = Field(default=None, max_length=500, nullable=True)
    description: str | None = Field(default=None, max_length=1000, nullable=True)


class ProjectCreate(ProjectBase):
    pass


class ProjectOut(ProjectBase):
    id: int
    version: int
    created_at: datetime
    updated_at: datetime | None = None
    cover_image_url: str | None = None
    main_video_url: str | None = None
    main_partner_name: str | None = None
    images: list[AttachmentOut] = Field(default_factory=list)
    videos: list[AttachmentOut] = Field(default_factory=list)
    partners: list[PartnerOut] = Field(default_factory=list)

    model_config = {"from_attributes": True}
