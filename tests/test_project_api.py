"""API tests for project endpoints."""

import pytest

from conftest import BOB, auth_headers, make_token


async def _create(client, title="Night drive") -> dict:
    response = await client.post("/api/v1/projects", json={"title": title, "description": "synthwave"})
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_create_project(client):
    response = await client.post("/api/v1/projects", json={"title": "Night drive"})
    assert response.status_code == 201
    body = response.json()
    assert body["project_id"].startswith("proj_")
    assert body["owner_id"] == "user_alice"
    assert body["status"] == "draft"
    assert "created_at" in body
    assert "X-Trace-Id" in response.headers


@pytest.mark.asyncio
async def test_create_project_rejects_empty_title(client):
    response = await client.post("/api/v1/projects", json={"title": ""})
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_requires_authentication(anon_client):
    response = await anon_client.get("/api/v1/projects")
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTHENTICATION_ERROR"


@pytest.mark.asyncio
async def test_rejects_bad_token(anon_client):
    response = await anon_client.get("/api/v1/projects", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_rejects_refresh_token(anon_client):
    token = make_token("user_alice", type="refresh")
    response = await anon_client.get("/api/v1/projects", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_list_only_own_projects(client):
    await _create(client, "Mine")
    await client.post("/api/v1/projects", json={"title": "Bob's"}, headers=auth_headers(BOB))

    response = await client.get("/api/v1/projects")
    assert response.status_code == 200
    titles = [p["title"] for p in response.json()]
    assert titles == ["Mine"]


@pytest.mark.asyncio
async def test_get_project(client):
    created = await _create(client)
    response = await client.get(f"/api/v1/projects/{created['project_id']}")
    assert response.status_code == 200
    assert response.json()["title"] == "Night drive"


@pytest.mark.asyncio
async def test_get_other_users_project_is_forbidden(client):
    created = await _create(client)
    response = await client.get(f"/api/v1/projects/{created['project_id']}", headers=auth_headers(BOB))
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "NOT_AUTHORIZED"


@pytest.mark.asyncio
async def test_missing_project_looks_like_foreign_project(client):
    response = await client.get("/api/v1/projects/proj_nonexistent")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_project(client):
    created = await _create(client)
    response = await client.patch(
        f"/api/v1/projects/{created['project_id']}",
        json={"status": "editing", "music_url": "https://cdn.example.com/a.mp3"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "editing"
    assert body["music_url"] == "https://cdn.example.com/a.mp3"
    assert body["title"] == "Night drive"


@pytest.mark.asyncio
async def test_update_project_cannot_clear_title(client):
    created = await _create(client)
    response = await client.patch(f"/api/v1/projects/{created['project_id']}", json={"title": None})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_delete_project_without_jobs(client):
    created = await _create(client)
    response = await client.delete(f"/api/v1/projects/{created['project_id']}")
    assert response.status_code == 204
    assert (await client.get("/api/v1/projects")).json() == []


@pytest.mark.asyncio
async def test_delete_project_with_jobs_conflicts(client):
    created = await _create(client)
    submit = await client.post(
        f"/api/v1/projects/{created['project_id']}/music",
        json={"provider": "suno", "prompt": "upbeat pop song"},
    )
    assert submit.status_code == 201

    response = await client.delete(f"/api/v1/projects/{created['project_id']}")
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_rejects_expired_token(anon_client):
    from datetime import datetime, timedelta, timezone

    token = make_token("user_alice", exp=datetime.now(timezone.utc) - timedelta(minutes=5))
    response = await anon_client.get("/api/v1/projects", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["error"]["message"] == "token_expired"


@pytest.mark.asyncio
async def test_rejects_token_without_subject(anon_client):
    response = await anon_client.get("/api/v1/projects", headers={"Authorization": f"Bearer {make_token('')}"})
    assert response.status_code == 401
