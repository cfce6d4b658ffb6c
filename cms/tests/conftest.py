import os
import shutil
from collections.abc import Iterator
from pathlib import Path
from typing import Any, cast
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine

import cms.core.db as db_module
from cms.core.config import settings
from cms.main import app


@pytest.fixture
def engine(tmp_path: Path) -> Iterator[Any]:
    test_db_path = tmp_path / "test_cms.db"
    test_db_url = f"sqlite:///{test_db_path}"

    previous_db_url = os.environ.get("DATABASE_URL")
    os.environ["DATABASE_URL"] = test_db_url

    original_engine = db_module.engine
    test_engine = create_engine(
        test_db_url,
        connect_args={"check_same_thread": False},
    )
    db_module.engine = test_engine
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)

    try:
        yield test_engine
    finally:
        SQLModel.metadata.drop_all(test_engine)
        test_engine.dispose()
        db_module.engine = original_engine
        if previous_db_url is not None:
            os.environ["DATABASE_URL"] = previous_db_url
        else:
            os.environ.pop("DATABASE_URL", None)
        if test_db_path.exists():
            test_db_path.unlink()


@pytest.fixture
def session(engine: Any) -> Iterator[Session]:
    with Session(engine) as db_session:
        yield db_session


@pytest.fixture
def media_dir(tmp_path: Path) -> Iterator[Path]:
    previous_media_dir = settings.MEDIA_DIR
    test_media_dir = tmp_path / "media"
    settings.MEDIA_DIR = str(test_media_dir)
    try:
        yield test_media_dir
    finally:
        settings.MEDIA_DIR = previous_media_dir
        if test_media_dir.exists():
            shutil.rmtree(test_media_dir, ignore_errors=True)


@pytest.fixture
def client(engine: Any, media_dir: Path) -> Iterator[TestClient]:
    def override_get_session() -> Iterator[Session]:
        with Session(engine) as db_session:
            yield db_session

    app.dependency_overrides[db_module.get_session] = override_get_session
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.pop(db_module.get_session, None)


@pytest.fixture
def admin_headers(client: TestClient) -> dict[str, str]:
    email = f"{uuid4().hex}@example.com"
    password = "SecurePass!234"
    response = client.post(
        "/api/v1/auth/signup",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    response = client.post(
        "/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    assert response.status_code == 200, response.text
    data = cast(dict[str, Any], response.json())
    return {"Authorization": f"Bearer {data['access_token']}"}
