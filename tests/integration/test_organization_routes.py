"""Integration tests for /organization endpoints."""

from collections.abc import Callable
from io import BytesIO
from pathlib import Path

from fastapi.testclient import TestClient
from PIL import Image

from identity_api.app.api.scopes import SCOPE_ORGANIZATION_READONLY, SCOPE_USER
from tests.world import World

Headers = Callable[..., dict[str, str]]


def png_bytes() -> bytes:
    buffer = BytesIO()
    Image.new("RGB", (16, 16), (10, 20, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


def test_get_current_organization(client: TestClient, world: World, auth_headers: Headers) -> None:
    response = client.get("/organization", headers=auth_headers(world.alice, world.acme))

    assert response.status_code == 200
    data = response.json()
    assert data["id"] == str(world.acme)
    assert data["name"] == "acme"
    assert data["is_personal"] is False


def test_personal_organization_is_flagged(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    response = client.get(
        "/organization", headers=auth_headers(world.alice, world.alice_personal)
    )

    assert response.status_code == 200
    assert response.json()["is_personal"] is True


def test_non_member_organization_is_404(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    response = client.get("/organization", headers=auth_headers(world.alice, world.globex))

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_no_current_organization_is_404(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    response = client.get("/organization", headers=auth_headers(world.alice))

    assert response.status_code == 404


def test_organization_scope_required(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    headers = auth_headers(world.alice, world.acme, scopes=(SCOPE_USER,))

    assert client.get("/organization", headers=headers).status_code == 403


def test_patch_organization(client: TestClient, world: World, auth_headers: Headers) -> None:
    headers = auth_headers(world.alice, world.acme)

    response = client.patch("/organization", json={"label": "Acme Inc."}, headers=headers)

    assert response.status_code == 200
    assert response.json()["label"] == "Acme Inc."
    assert client.get("/organization", headers=headers).json()["label"] == "Acme Inc."


def test_patch_organization_readonly_is_403(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    headers = auth_headers(world.alice, world.acme, scopes=(SCOPE_ORGANIZATION_READONLY,))

    assert client.get("/organization", headers=headers).status_code == 200
    assert client.patch("/organization", json={"label": "x"}, headers=headers).status_code == 403


def test_patch_organization_rejects_used_name(
    client: TestClient, world: World, auth_headers: Headers
) -> None:
    response = client.patch(
        "/organization", json={"name": "globex"}, headers=auth_headers(world.alice, world.acme)
    )

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["message"] == "This value is already used."


def test_organization_image(
    client: TestClient, world: World, auth_headers: Headers, tmp_path: Path
) -> None:
    headers = auth_headers(world.alice, world.acme)
    client.patch("/organization", json={"label": "Acme"}, headers=headers)

    upload = client.post(
        "/organization/upload", files={"file": ("logo.png", png_bytes(), "image/png")}, headers=headers
    )
    download = client.get("/organization.png", headers=headers)

    assert upload.status_code == 200
    assert upload.json()["has_image"] is True
    assert download.status_code == 200
    assert download.headers["content-disposition"] == 'inline; filename="Acme.png"'
    assert len(list((tmp_path / "uploads" / "organizations").iterdir())) == 1


def test_delete_organization(
    client: TestClient, world: World, auth_headers: Headers, tmp_path: Path
) -> None:
    headers = auth_headers(world.alice, world.acme)
    client.post(
        "/organization/upload", files={"file": ("logo.png", png_bytes(), "image/png")}, headers=headers
    )

    response = client.delete("/organization", headers=headers)

    assert response.status_code == 204
    assert client.get("/organization", headers=headers).status_code == 404
    assert list((tmp_path / "uploads" / "organizations").iterdir()) == []

    # Former members are no longer connected through it
    connected = client.get("/connected_users", headers=auth_headers(world.alice))
    assert connected.json()["total"] == 0
