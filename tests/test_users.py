"""
User endpoint tests: creating users (plain and with a nested profile),
listing with and without relations, detail, stats, updates, the profile
upsert and deletion.
"""
import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Profile
from helpers import create_category, create_comment, create_post, create_user


# ---------------------------------------------------------------------------
# Create user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_user(async_client: AsyncClient):
    resp = await async_client.post("/users", json={"email": "john@example.com", "name": "John Doe"})
    assert resp.status_code == 201
    user = resp.json()
    assert user["email"] == "john@example.com"
    assert user["name"] == "John Doe"
    assert "id" in user
    assert "createdAt" in user
    assert "updatedAt" in user


@pytest.mark.asyncio
async def test_create_user_minimal_fields(async_client: AsyncClient):
    resp = await async_client.post("/users", json={"email": "minimal@example.com"})
    assert resp.status_code == 201
    assert resp.json()["name"] is None


@pytest.mark.asyncio
async def test_create_user_invalid_email(async_client: AsyncClient):
    """Validation failures are 400 with one message per offending field."""
    resp = await async_client.post("/users", json={"email": "not-an-email", "name": "X"})
    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "validation_error"
    fields = {e["field"] for e in body["errors"]}
    assert fields == {"email", "name"}


@pytest.mark.asyncio
async def test_create_user_missing_email(async_client: AsyncClient):
    resp = await async_client.post("/users", json={"name": "No Email"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_user_duplicate_email(async_client: AsyncClient):
    await create_user(async_client, "same@example.com")
    resp = await async_client.post("/users", json={"email": "same@example.com"})
    assert resp.status_code == 409
    assert resp.json()["code"] == "conflict"


# ---------------------------------------------------------------------------
# Create user with profile (one-to-one)
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_create_user_with_profile(async_client: AsyncClient):
    resp = await async_client.post("/users/with-profile", json={
        "email": "a@x.com",
        "name": "Alice",
        "profile": {"bio": "hello world!", "avatar": "https://example.com/a.png"},
    })
    assert resp.status_code == 201
    user = resp.json()
    assert "id" in user
    assert user["profile"]["bio"] == "hello world!"
    assert user["profile"]["avatar"] == "https://example.com/a.png"
    assert user["profile"]["website"] is None
    assert user["profile"]["userId"] == user["id"]


@pytest.mark.asyncio
async def test_create_user_with_profile_requires_profile(async_client: AsyncClient):
    resp = await async_client.post("/users/with-profile", json={"email": "a@x.com"})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_create_user_with_profile_short_bio(async_client: AsyncClient):
    resp = await async_client.post("/users/with-profile", json={
        "email": "a@x.com",
        "profile": {"bio": "short"},
    })
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["field"] == "profile.bio"


@pytest.mark.asyncio
async def test_create_user_with_profile_duplicate_email_writes_nothing(
    async_client: AsyncClient, db_session: AsyncSession
):
    await create_user(async_client, "taken@example.com")
    resp = await async_client.post("/users/with-profile", json={
        "email": "taken@example.com",
        "profile": {"bio": "a perfectly long bio"},
    })
    assert resp.status_code == 409

    count = (await db_session.execute(select(func.count()).select_from(Profile))).scalar_one()
    assert count == 0


# ---------------------------------------------------------------------------
# List users
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_list_users_empty(async_client: AsyncClient):
    resp = await async_client.get("/users")
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_list_users_newest_first(async_client: AsyncClient):
    first = await create_user(async_client, "first@example.com")
    second = await create_user(async_client, "second@example.com")

    resp = await async_client.get("/users")
    assert [u["id"] for u in resp.json()] == [second["id"], first["id"]]
    assert "profile" not in resp.json()[0]


@pytest.mark.asyncio
async def test_list_users_include_relations(async_client: AsyncClient):
    user = await create_user(async_client, "rel@example.com")
    post = await create_post(async_client, user["id"])
    await create_comment(async_client, post["id"], user["id"], "Self comment")

    resp = await async_client.get("/users", params={"includeRelations": "true"})
    assert resp.status_code == 200
    listed = resp.json()[0]
    assert listed["profile"] is None
    assert [p["id"] for p in listed["posts"]] == [post["id"]]
    assert len(listed["comments"]) == 1


# ---------------------------------------------------------------------------
# Get user detail
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_get_user_detail_deep(async_client: AsyncClient):
    user = await create_user(async_client, "deep@example.com", "Deep")
    tech = await create_category(async_client, "Technology")
    post = await create_post(async_client, user["id"], category_ids=[tech["id"]])
    await create_comment(async_client, post["id"], user["id"], "First!")

    resp = await async_client.get(f"/users/{user['id']}")
    assert resp.status_code == 200
    detail = resp.json()
    assert detail["profile"] is None
    assert len(detail["posts"]) == 1
    assert detail["posts"][0]["categories"][0]["category"]["slug"] == "technology"
    assert detail["posts"][0]["comments"][0]["content"] == "First!"
    assert len(detail["comments"]) == 1


@pytest.mark.asyncio
async def test_get_user_not_found(async_client: AsyncClient):
    resp = await async_client.get("/users/999")
    assert resp.status_code == 404
    body = resp.json()
    assert body["code"] == "not_found"
    assert "id" not in body
    assert "email" not in body


@pytest.mark.asyncio
async def test_get_user_by_email(async_client: AsyncClient):
    user = await create_user(async_client, "lookup@example.com")
    resp = await async_client.get("/users/by-email/lookup@example.com")
    assert resp.status_code == 200
    assert resp.json()["id"] == user["id"]
    assert resp.json()["posts"] == []

    resp = await async_client.get("/users/by-email/nobody@example.com")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_get_user_stats(async_client: AsyncClient):
    user = await create_user(async_client, "stats@example.com", "Stats")
    for i in range(2):
        post = await create_post(async_client, user["id"], title=f"Post {i}")
    await create_comment(async_client, post["id"], user["id"], "c")

    resp = await async_client.get(f"/users/{user['id']}/stats")
    assert resp.status_code == 200
    assert resp.json() == {
        "user": {"id": user["id"], "email": "stats@example.com", "name": "Stats"},
        "stats": {"totalPosts": 2, "totalComments": 1, "hasProfile": False},
    }


# ---------------------------------------------------------------------------
# Update
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_user(async_client: AsyncClient):
    user = await create_user(async_client, "old@example.com", "Old")
    resp = await async_client.patch(f"/users/{user['id']}", json={"name": "New Name"})
    assert resp.status_code == 200
    updated = resp.json()
    assert updated["name"] == "New Name"
    assert updated["email"] == "old@example.com"
    assert updated["profile"] is None


@pytest.mark.asyncio
async def test_update_user_duplicate_email(async_client: AsyncClient):
    await create_user(async_client, "one@example.com")
    two = await create_user(async_client, "two@example.com")
    resp = await async_client.patch(f"/users/{two['id']}", json={"email": "one@example.com"})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_update_user_not_found(async_client: AsyncClient):
    resp = await async_client.patch("/users/999", json={"name": "Ghost"})
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_update_profile_creates_then_updates(
    async_client: AsyncClient, db_session: AsyncSession
):
    user = await create_user(async_client, "upsert@example.com")

    created = await async_client.patch(
        f"/users/{user['id']}/profile", json={"bio": "first version of my bio"}
    )
    assert created.status_code == 200
    assert created.json()["bio"] == "first version of my bio"

    updated = await async_client.patch(
        f"/users/{user['id']}/profile", json={"website": "https://upsert.dev/"}
    )
    assert updated.status_code == 200
    assert updated.json()["id"] == created.json()["id"]
    assert updated.json()["bio"] == "first version of my bio"
    assert updated.json()["website"] == "https://upsert.dev/"

    count = (
        await db_session.execute(
            select(func.count()).select_from(Profile).where(Profile.user_id == user["id"])
        )
    ).scalar_one()
    assert count == 1


@pytest.mark.asyncio
async def test_update_profile_unknown_user(async_client: AsyncClient):
    resp = await async_client.patch("/users/999/profile", json={"bio": "nobody home here"})
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Delete
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_delete_user(async_client: AsyncClient):
    user = await create_user(async_client, "bye@example.com")
    resp = await async_client.delete(f"/users/{user['id']}")
    assert resp.status_code == 204

    resp = await async_client.get(f"/users/{user['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_user_not_found(async_client: AsyncClient):
    resp = await async_client.delete("/users/999")
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Profile URLs
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_profile_urls_stored_verbatim(async_client: AsyncClient):
    avatar = "https://api.dicebear.com/7.x/avataaars/svg?seed=John"
    resp = await async_client.post("/users/with-profile", json={
        "email": "john@example.com",
        "profile": {"bio": "Full-stack developer", "avatar": avatar, "website": "https://johndoe.dev"},
    })
    assert resp.status_code == 201
    assert resp.json()["profile"]["website"] == "https://johndoe.dev"
    assert resp.json()["profile"]["avatar"] == avatar

    resp = await async_client.patch(
        f"/users/{resp.json()['id']}/profile", json={"website": "HTTPS://JohnDoe.dev"}
    )
    assert resp.status_code == 200
    assert resp.json()["website"] == "HTTPS://JohnDoe.dev"


@pytest.mark.asyncio
async def test_profile_rejects_non_url(async_client: AsyncClient):
    resp = await async_client.post("/users/with-profile", json={
        "email": "badurl@example.com",
        "profile": {"bio": "a perfectly long bio", "website": "johndoe dot dev"},
    })
    assert resp.status_code == 400
    assert [e["field"] for e in resp.json()["errors"]] == ["profile.website"]
