"""API helpers shared by the endpoint tests."""
from httpx import AsyncClient


async def create_user(client: AsyncClient, email: str, name: str | None = None) -> dict:
    payload = {"email": email}
    if name is not None:
        payload["name"] = name
    resp = await client.post("/users", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_category(client: AsyncClient, name: str, slug: str | None = None) -> dict:
    payload = {"name": name}
    if slug is not None:
        payload["slug"] = slug
    resp = await client.post("/categories", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_post(
    client: AsyncClient,
    author_id: int,
    title: str = "A post",
    published: bool = False,
    category_ids: list[int] | None = None,
) -> dict:
    payload = {"title": title, "content": "Body", "published": published, "authorId": author_id}
    if category_ids is None:
        resp = await client.post("/posts", json=payload)
    else:
        payload["categoryIds"] = category_ids
        resp = await client.post("/posts/with-categories", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def create_comment(client: AsyncClient, post_id: int, author_id: int, content: str) -> dict:
    resp = await client.post(
        "/comments", json={"content": content, "postId": post_id, "authorId": author_id}
    )
    assert resp.status_code == 201, resp.text
    return resp.json()
