from datetime import timedelta

import httpx
import pytest

from conftest import make_user

from admin_sso.api import deps
from admin_sso.core.security import create_access_token
from admin_sso.db.models import Role
from admin_sso.main import app


@pytest.fixture()
async def api(db_session):
    roles = [
        Role(name="Editor", code="strapi-editor"),
        Role(name="Author", code="strapi-author"),
    ]
    db_session.add_all(roles)
    await db_session.commit()

    async def override_get_db():
        yield db_session

    app.dependency_overrides[deps.get_db] = override_get_db

    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    ) as client:
        yield client, roles

    app.dependency_overrides.clear()


@pytest.fixture()
def signed_in():
    admin = make_user(1, "admin@example.com")
    app.dependency_overrides[deps.get_current_user] = lambda: admin
    return admin


@pytest.mark.anyio
async def test_sso_roles_require_a_token(api):
    client, _ = api

    response = await client.get("/api/sso/sso-roles")

    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


@pytest.mark.anyio
async def test_sso_roles_reject_an_invalid_token(api):
    client, _ = api

    response = await client.get(
        "/api/sso/sso-roles", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_sso_roles_accept_a_session_token_for_an_active_account(api, db_session):
    client, _ = api
    admin = make_user(None, "admin@example.com")
    db_session.add(admin)
    await db_session.commit()

    token = create_access_token(admin.id, timedelta(minutes=5))

    response = await client.get(
        "/api/sso/sso-roles", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200
    assert response.json() == [{"oauth_type": "google", "name": "Google", "role": []}]


@pytest.mark.anyio
async def test_sso_roles_reject_an_expired_session_token(api, db_session):
    client, _ = api
    admin = make_user(None, "admin@example.com")
    db_session.add(admin)
    await db_session.commit()
    token = create_access_token(admin.id, timedelta(minutes=-1))

    response = await client.get(
        "/api/sso/sso-roles", headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 401


@pytest.mark.anyio
async def test_update_then_read_sso_roles(api, signed_in):
    client, roles = api

    update = await client.put(
        "/api/sso/roles",
        json={"roles": [{"oauth_type": "google", "role": [roles[0].id, roles[1].id]}]},
    )
    read = await client.get("/api/sso/sso-roles")

    assert update.status_code == 200
    expected = [
        {"oauth_type": "google", "name": "Google", "role": [roles[0].id, roles[1].id]}
    ]
    assert update.json() == expected
    assert read.json() == expected


@pytest.mark.anyio
async def test_update_with_unknown_role_is_a_bad_request(api, signed_in):
    client, _ = api

    response = await client.put(
        "/api/sso/roles", json={"roles": [{"oauth_type": "google", "role": [42]}]}
    )

    assert response.status_code == 400
    assert "42" in response.json()["detail"]
