# test_app.py

from datetime import timedelta

import pytest
from httpx import AsyncClient

from audit import utcnow
from conftest import PASSWORD


def headers(user_id):
    return {"X-User-Id": user_id}


async def create_category(client: AsyncClient, user_id, **body):
    body.setdefault("name", "Finance")
    response = await client.post("/categories", json={"user_id": user_id, **body}, headers=headers(user_id))
    assert response.status_code == 201, response.text
    return response.json()


async def create_post(client: AsyncClient, user_id, slug, **body):
    body.setdefault("title", slug.replace("-", " ").title())
    response = await client.post(
        "/posts", json={"author_id": user_id, "slug": slug, **body}, headers=headers(user_id)
    )
    assert response.status_code == 201, response.text
    return response.json()


# --- Test Cases ---

@pytest.mark.asyncio
async def test_root(client: AsyncClient):
    response = await client.get("/")
    assert response.status_code == 200
    assert "Content API" in response.json()["message"]


@pytest.mark.asyncio
async def test_category_crud(client: AsyncClient, users):
    finance = await create_category(client, users.alice, description="<script>x</script>Money")
    assert finance["description"] == "Money"

    child = await create_category(client, users.alice, name="Investing", parent_category_id=finance["id"])

    response = await client.get(f"/categories/{finance['id']}/children")
    assert [c["name"] for c in response.json()] == ["Investing"]

    response = await client.get(f"/users/{users.alice}/categories", params={"scope": "root"})
    assert [c["name"] for c in response.json()] == ["Finance"]

    # Cycle guard
    response = await client.put(
        f"/categories/{finance['id']}",
        json={**finance, "parent_category_id": child["id"]},
        headers=headers(users.alice),
    )
    assert response.status_code == 400
    assert "circular" in response.json()["detail"]

    response = await client.delete(f"/categories/{finance['id']}", headers=headers(users.alice))
    assert response.status_code == 409

    response = await client.post(f"/categories/{child['id']}/deactivate", headers=headers(users.alice))
    assert response.status_code == 204
    response = await client.get(f"/users/{users.alice}/categories", params={"scope": "active"})
    assert [c["name"] for c in response.json()] == ["Finance"]

    response = await client.delete(f"/categories/{child['id']}", headers=headers(users.alice))
    assert response.status_code == 204
    response = await client.get(f"/categories/{child['id']}")
    assert response.status_code == 404
    assert response.json()["code"] == "resource.not_found"


@pytest.mark.asyncio
async def test_category_errors_map_to_status_codes(client: AsyncClient, users):
    response = await client.post("/categories", json={"name": "Finance", "user_id": users.alice},
                                 headers=headers(users.bob))
    assert response.status_code == 403
    assert response.json()["code"] == "auth.forbidden"

    response = await client.post("/categories", json={"name": "", "user_id": users.alice},
                                 headers=headers(users.alice))
    assert response.status_code == 400
    assert response.json()["field"] == "name"

    response = await client.post("/categories", json={"name": "Finance", "user_id": users.alice})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_post_lifecycle(client: AsyncClient, users):
    draft = await create_post(client, users.alice, "my-first-post", content_body="<script>x</script>Body")
    assert draft["content_body"] == "Body"

    # Drafts look missing to everyone except the author
    assert (await client.get(f"/posts/{draft['id']}")).status_code == 404
    assert (await client.get(f"/posts/{draft['id']}", headers=headers(users.bob))).status_code == 404
    assert (await client.get(f"/posts/{draft['id']}", headers=headers(users.alice))).status_code == 200
    assert (await client.get("/posts/slug/my-first-post")).status_code == 404

    response = await client.post(f"/posts/{draft['id']}/publish", headers=headers(users.bob))
    assert response.status_code == 403

    response = await client.post(f"/posts/{draft['id']}/publish", headers=headers(users.alice))
    assert response.status_code == 200
    assert response.json()["is_published"] is True

    response = await client.get("/posts/slug/my-first-post")
    assert response.status_code == 200
    assert response.json()["id"] == draft["id"]

    response = await client.post(f"/posts/{draft['id']}/unpublish", headers=headers(users.alice))
    assert response.json()["is_published"] is False

    response = await client.delete(f"/posts/{draft['id']}", headers=headers(users.alice))
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_post_slug_conflicts(client: AsyncClient, users):
    first = await create_post(client, users.alice, "taken")
    response = await client.post(
        "/posts", json={"author_id": users.bob, "slug": "taken", "title": "Again"}, headers=headers(users.bob)
    )
    assert response.status_code == 409

    # Keeping its own slug on update is fine
    response = await client.put(
        f"/posts/{first['id']}", json={**first, "title": "Renamed"}, headers=headers(users.alice)
    )
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"


@pytest.mark.asyncio
async def test_published_listings_and_search(client: AsyncClient, users):
    finance = await create_category(client, users.alice)
    investing = await create_category(client, users.alice, name="Investing", parent_category_id=finance["id"])
    yesterday = (utcnow() - timedelta(days=1)).isoformat()
    await create_post(client, users.alice, "index-funds", category_id=investing["id"], is_published=True,
                      publication_date=yesterday, meta_description="Low cost investing")
    await create_post(client, users.alice, "draft-post", category_id=finance["id"])

    response = await client.get("/posts/")
    assert [p["slug"] for p in response.json()] == ["index-funds"]

    response = await client.get("/posts/recent", params={"count": 0})
    assert response.status_code == 400

    response = await client.get(f"/categories/{finance['id']}/posts", params={"include_descendants": True})
    assert [p["slug"] for p in response.json()] == ["index-funds"]

    response = await client.get(f"/categories/{finance['id']}/posts")
    assert response.json() == []

    response = await client.get("/posts/search", params={"q": "LOW COST"})
    assert [p["slug"] for p in response.json()] == ["index-funds"]

    response = await client.get(f"/users/{users.alice}/posts", params={"drafts": True}, headers=headers(users.alice))
    assert [p["slug"] for p in response.json()] == ["draft-post"]

    response = await client.get(f"/users/{users.alice}/posts", headers=headers(users.bob))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_lead_magnet_endpoints(client: AsyncClient, users):
    category = await create_category(client, users.bob, name="Travel")

    response = await client.post(
        "/lead-magnets", json={"category_id": category["id"], "title": "Packing list"}, headers=headers(users.alice)
    )
    assert response.status_code == 403

    response = await client.post(
        "/lead-magnets",
        json={"category_id": category["id"], "title": "Packing list",
              "download_file_url": "https://files.example.com/list.pdf"},
        headers=headers(users.bob),
    )
    assert response.status_code == 201
    magnet = response.json()

    response = await client.get(f"/categories/{category['id']}/lead-magnets", params={"active_only": True})
    assert [m["title"] for m in response.json()] == ["Packing list"]

    response = await client.post(f"/lead-magnets/{magnet['id']}/deactivate", headers=headers(users.bob))
    assert response.status_code == 204
    response = await client.get(f"/lead-magnets/{magnet['id']}")
    assert response.json()["is_active"] is False

    response = await client.delete(f"/lead-magnets/{magnet['id']}", headers=headers(users.bob))
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_auth_endpoints(client: AsyncClient, users):
    response = await client.post("/auth/login", json={"email": "nobody@example.com", "password": "x"})
    assert response.status_code == 200
    assert response.json() == {"success": False, "error_message": "Invalid email or password", "user": None}

    response = await client.post("/auth/login", json={"email": "bob@example.com", "password": PASSWORD})
    body = response.json()
    assert body["success"] is True
    assert body["user"]["id"] == users.bob

    response = await client.get("/auth/me", headers=headers(users.bob))
    assert response.json()["email"] == "bob@example.com"

    response = await client.get("/auth/me")
    assert response.json() is None
