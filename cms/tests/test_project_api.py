from pathlib import Path
from typing import Any, cast

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func
from sqlmodel import Session, select

from cms.models.project import ProjectImage, ProjectPartner, ProjectVideo
from cms.repositories.sql_gateway import SqlPersistenceGateway

JPEG = b"\xff\xd8\xff\xe0" + b"1" * 64


def _create_project(
    client: TestClient,
    headers: dict[str, str],
    *,
    title: str = "River cleanup",
    published: bool = True,
) -> dict[str, Any]:
    response = client.post(
        "/api/v1/admin/projects",
        headers=headers,
        json={"title": title, "short_description": "Weekend volunteering", "published": published},
    )
    assert response.status_code == 201, response.text
    return cast(dict[str, Any], response.json())


def _upload_images(
    client: TestClient,
    headers: dict[str, str],
    project_id: int,
    *names: str,
) -> Any:
    return client.post(
        f"/api/v1/admin/projects/{project_id}/images",
        headers=headers,
        files=[("files", (name, JPEG, "image/jpeg")) for name in names],
    )


def _add_videos(
    client: TestClient,
    headers: dict[str, str],
    project_id: int,
    *urls: str,
) -> Any:
    return client.post(
        f"/api/v1/admin/projects/{project_id}/videos",
        headers=headers,
        json=[{"url": url, "title": "Recap"} for url in urls],
    )


def _add_partner(
    client: TestClient,
    headers: dict[str, str],
    project_id: int,
    name: str,
    *,
    logo: bool = False,
    website_url: str | None = None,
) -> Any:
    data = {"name": name}
    if website_url is not None:
        data["website_url"] = website_url
    files = [("logo", (f"{name}.jpg", JPEG, "image/jpeg"))] if logo else None
    return client.post(
        f"/api/v1/admin/projects/{project_id}/partners",
        headers=headers,
        data=data,
        files=files,
    )


def test_cover_image_and_main_video(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    project = _create_project(client, admin_headers)
    assert project["status"] == "active"
    assert project["cover_image_url"] is None
    assert project["main_video_url"] is None

    response = _upload_images(client, admin_headers, project["id"], "a.jpg", "b.jpg")
    assert response.status_code == 201, response.text
    response = _add_videos(
        client,
        admin_headers,
        project["id"],
        "https://www.youtube.com/watch?v=abc",
        "https://vimeo.com/12345",
    )
    assert response.status_code == 201, response.text
    data = response.json()

    assert data["cover_image_url"] == data["images"][0]["url"]
    assert data["main_video_url"] == "https://www.youtube.com/watch?v=abc"
    assert [v["media_kind"] for v in data["videos"]] == ["video", "video"]
    assert [v["is_primary"] for v in data["videos"]] == [True, False]

    second_video = data["videos"][1]["id"]
    response = client.post(
        f"/api/v1/admin/projects/{project['id']}/videos/{second_video}/primary",
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["main_video_url"] == "https://vimeo.com/12345"
    assert response.json()["cover_image_url"] == data["cover_image_url"]


def test_images_reject_video_uploads(client: TestClient, admin_headers: dict[str, str]) -> None:
    project = _create_project(client, admin_headers)
    response = client.post(
        f"/api/v1/admin/projects/{project['id']}/images",
        headers=admin_headers,
        files=[("files", ("clip.mp4", b"\x00" * 32, "video/mp4"))],
    )
    assert response.status_code == 400


def test_video_links_must_point_to_known_hosts(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    project = _create_project(client, admin_headers)
    response = _add_videos(client, admin_headers, project["id"], "https://example.com/video")
    assert response.status_code == 422

    response = _add_videos(client, admin_headers, project["id"])
    assert response.status_code == 400


def test_image_and_video_ids_are_separate_collections(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    project = _create_project(client, admin_headers)
    images = _upload_images(client, admin_headers, project["id"], "a.jpg").json()["images"]
    image_id = images[0]["id"]
    _add_videos(client, admin_headers, project["id"], "https://youtu.be/xyz")
    _add_partner(client, admin_headers, project["id"], "Bike shop", logo=True)

    response = client.delete(
        f"/api/v1/admin/projects/{project['id']}/videos/{image_id + 1000}",
        headers=admin_headers,
    )
    assert response.status_code == 404

    response = client.put(
        f"/api/v1/admin/projects/{project['id']}/images/order",
        headers=admin_headers,
        json={"ids": [image_id]},
    )
    assert response.status_code == 200, response.text


def test_reorder_images_keeps_cover(client: TestClient, admin_headers: dict[str, str]) -> None:
    project = _create_project(client, admin_headers)
    data = _upload_images(client, admin_headers, project["id"], "a.jpg", "b.jpg", "c.jpg").json()
    a, b, c = (i["id"] for i in data["images"])

    response = client.put(
        f"/api/v1/admin/projects/{project['id']}/images/order",
        headers=admin_headers,
        json={"ids": [c, b, a]},
    )
    assert response.status_code == 200, response.text
    reordered = response.json()
    assert [i["id"] for i in reordered["images"]] == [c, b, a]
    assert reordered["cover_image_url"] == data["images"][0]["url"]


def test_delete_project_cascades_every_collection(
    client: TestClient,
    admin_headers: dict[str, str],
    session: Session,
    media_dir: Path,
) -> None:
    project = _create_project(client, admin_headers)
    _upload_images(client, admin_headers, project["id"], "a.jpg", "b.jpg", "c.jpg")
    _add_videos(client, admin_headers, project["id"], "https://youtu.be/xyz")
    logo = _add_partner(client, admin_headers, project["id"], "Bike shop", logo=True)
    assert logo.status_code == 201, logo.text
    assert len(list(media_dir.iterdir())) == 4

    response = client.delete(f"/api/v1/admin/projects/{project['id']}", headers=admin_headers)
    assert response.status_code == 204, response.text
    assert list(media_dir.iterdir()) == []

    images = session.exec(select(func.count()).select_from(ProjectImage)).one()
    videos = session.exec(select(func.count()).select_from(ProjectVideo)).one()
    partners = session.exec(select(func.count()).select_from(ProjectPartner)).one()
    assert images == 0
    assert videos == 0
    assert partners == 0


def test_public_projects_filter_by_status(
    client: TestClient,
    admin_headers: dict[str, str],
) -> None:
    active = _create_project(client, admin_headers, title="Active")
    done = _create_project(client, admin_headers, title="Done")
    _create_project(client, admin_headers, title="Draft", published=False)

    response = client.put(
        f"/api/v1/admin/projects/{done['id']}",
        headers=admin_headers,
        json={"title": "Done", "status": "completed"},
    )
    assert response.status_code == 200, response.text

    response = client.get("/api/v1/projects")
    assert response.headers["X-Total-Count"] == "2"

    response = client.get("/api/v1/projects", params={"status": "completed"})
    assert [p["id"] for p in response.json()] == [done["id"]]

    assert client.get(f"/api/v1/projects/{active['id']}").status_code == 200


def test_failed_project_delete_keeps_every_collection(
    client: TestClient,
    admin_headers: dict[str, str],
    media_dir: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    project = _create_project(client, admin_headers)
    _upload_images(client, admin_headers, project["id"], "a.jpg")
    _add_videos(client, admin_headers, project["id"], "https://youtu.be/xyz")
    _add_partner(client, admin_headers, project["id"], "Bike shop", logo=True)

    def fail_delete(self: SqlPersistenceGateway, owner_id: int) -> None:
        raise RuntimeError("database is locked")

    monkeypatch.setattr(SqlPersistenceGateway, "delete_owner", fail_delete)
    response = client.delete(f"/api/v1/admin/projects/{project['id']}", headers=admin_headers)
    assert response.status_code == 500

    monkeypatch.undo()
    data = client.get(f"/api/v1/admin/projects/{project['id']}", headers=admin_headers).json()
    assert len(data["images"]) == 1
    assert len(data["videos"]) == 1
    assert len(data["partners"]) == 1
    assert len(list(media_dir.iterdir())) == 2


def test_partners_with_and_without_logo(
    client: TestClient,
    admin_headers: dict[str, str],
    media_dir: Path,
) -> None:
    project = _create_project(client, admin_headers)

    response = _add_partner(
        client,
        admin_headers,
        project["id"],
        "Town hall",
        website_url="https://town.example.org",
    )
    assert response.status_code == 201, response.text
    data = response.json()
    first = data["partners"][0]
    assert first["name"] == "Town hall"
    assert first["website_url"] == "https://town.example.org"
    assert first["logo_url"] is None
    assert first["is_primary"] is True
    assert data["main_partner_name"] == "Town hall"
    assert not media_dir.exists() or not any(media_dir.iterdir())

    response = _add_partner(client, admin_headers, project["id"], "Bakery", logo=True)
    assert response.status_code == 201, response.text
    data = response.json()
    second = data["partners"][1]
    assert second["logo_url"].startswith("/media/")
    assert second["is_primary"] is False
    assert len(list(media_dir.iterdir())) == 1

    # Partners are a collection of their own, separate from images.
    assert data["images"] == []
    assert data["cover_image_url"] is None


def test_main_partner_promotion_and_removal(
    client: TestClient,
    admin_headers: dict[str, str],
    media_dir: Path,
) -> None:
    project = _create_project(client, admin_headers)
    _add_partner(client, admin_headers, project["id"], "Alpha", logo=True)
    _add_partner(client, admin_headers, project["id"], "Beta")
    data = _add_partner(client, admin_headers, project["id"], "Gamma").json()
    alpha, beta, gamma = (p["id"] for p in data["partners"])

    response = client.post(
        f"/api/v1/admin/projects/{project['id']}/partners/{beta}/primary",
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    assert response.json()["main_partner_name"] == "Beta"

    response = client.put(
        f"/api/v1/admin/projects/{project['id']}/partners/order",
        headers=admin_headers,
        json={"ids": [gamma, beta, alpha]},
    )
    assert response.status_code == 200, response.text
    assert [p["name"] for p in response.json()["partners"]] == ["Gamma", "Beta", "Alpha"]

    response = client.delete(
        f"/api/v1/admin/projects/{project['id']}/partners/{beta}",
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert [p["name"] for p in data["partners"] if p["is_primary"]] == ["Gamma"]

    response = client.delete(
        f"/api/v1/admin/projects/{project['id']}/partners/{alpha}",
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text
    assert list(media_dir.iterdir()) == []


def test_partner_input_is_validated(client: TestClient, admin_headers: dict[str, str]) -> None:
    project = _create_project(client, admin_headers)

    response = _add_partner(
        client, admin_headers, project["id"], "Shop", website_url="ftp://shop.example.org"
    )
    assert response.status_code == 400

    response = _add_partner(client, admin_headers, project["id"], "X")
    assert response.status_code == 422

    response = client.post(
        f"/api/v1/admin/projects/{project['id']}/partners",
        headers=admin_headers,
        data={"name": "Studio"},
        files=[("logo", ("clip.mp4", b"\x00" * 32, "video/mp4"))],
    )
    assert response.status_code == 400
