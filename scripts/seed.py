from __future__ import annotations

import os

from sqlmodel import Session, select

from cms.attachments.records import AttachmentRecord, MediaKind
from cms.core.db import engine, init_db
from cms.core.security import hash_password
from cms.models.gallery import GalleryItem
from cms.models.project import Project, ProjectStatus
from cms.models.user import User
from cms.repositories.sql_gateway import PROJECT_PARTNERS, PROJECT_VIDEOS, SqlPersistenceGateway


def run() -> None:
    env_file = os.environ.get("ENV_FILE", "cms/.env")
    print(f"[seed] ENV_FILE={env_file}")
    init_db()

    created = 0
    with Session(engine) as session:
        # idempotent seed for a demo admin
        email = os.environ.get("SEED_ADMIN_EMAIL", "admin@example.com")
        user = session.exec(select(User).where(User.email == email)).first()
        if not user:
            user = User(
                email=email,
                password_hash=hash_password(os.environ.get("SEED_ADMIN_PASSWORD", "AdminPass123!")),
            )
            session.add(user)
            session.commit()
            created += 1
            print(f"[seed] created admin: {email}")
        else:
            print(f"[seed] admin already exists: {email}")

        title = "Spring volunteer day"
        if not session.exec(select(GalleryItem).where(GalleryItem.title == title)).first():
            session.add(GalleryItem(title=title, year=2024, category="events"))
            session.commit()
            created += 1
            print(f"[seed] created gallery item: {title}")

        title = "Community garden"
        project = session.exec(select(Project).where(Project.title == title)).first()
        if not project:
            project = Project(title=title, status=ProjectStatus.active)
            session.add(project)
            session.commit()
            session.refresh(project)
            created += 1
            print(f"[seed] created project: {title}")

            # link-only video, no bytes to store
            gateway = SqlPersistenceGateway(session, PROJECT_VIDEOS)
            owner = gateway.find_owner(project.id or 0)
            if owner is not None:
                owner.collection.add(
                    AttachmentRecord(
                        url="https://www.youtube.com/watch?v=dQw4w9WgXcQ",
                        media_kind=MediaKind.video,
                        title="Garden tour",
                    )
                )
                gateway.save(owner)

            gateway = SqlPersistenceGateway(session, PROJECT_PARTNERS)
            owner = gateway.find_owner(project.id or 0)
            if owner is not None:
                owner.collection.add(
                    AttachmentRecord(
                        original_filename="Neighbourhood council",
                        attributes={"name": "Neighbourhood council"},
                    )
                )
                gateway.save(owner)

    print(f"[seed] done. rows_created={created}")


if __name__ == "__main__":
    run()
