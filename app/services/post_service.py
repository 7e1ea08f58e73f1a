"""
Post service: business logic for the Post aggregate.

Relationship ownership
----------------------
- A post belongs to exactly one author (``posts.author_id``); creating a
  post for an unknown author is a not-found error.
- Post <-> Category is many-to-many through explicit ``PostCategory`` join
  rows.  ``create_with_categories`` writes the post and its join rows in
  one flush; ``add_categories`` bulk-inserts join rows and silently skips
  pairs that already exist (``ON CONFLICT DO NOTHING`` on the
  ``(post_id, category_id)`` unique constraint for PostgreSQL and SQLite,
  a read-then-insert elsewhere).
- Deleting a post is a single DELETE; comments and join rows go with it
  through the foreign-key cascade.
- Service functions flush but do not commit; the transaction boundary is
  owned by the ``get_db`` dependency.
"""
import logging

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import NotFoundError, flush_or_raise, raise_for_integrity_error
from app.models import Comment, Post, PostCategory, User
from app.schemas import PostCommentCreate, PostCreate, PostCreateWithCategories, PostUpdate
from app.services.serializers import (
    comment_to_dict,
    comment_with_author_to_dict,
    post_category_with_category_to_dict,
    post_to_dict,
    post_with_author_to_dict,
    user_to_dict,
    user_with_profile_to_dict,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_INSERT_BY_DIALECT = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


async def _link_categories(db: AsyncSession, post_id: int, category_ids: list[int]) -> None:
    """
    Insert the missing ``(post_id, category_id)`` join rows.

    PostgreSQL and SQLite get one ``INSERT ... ON CONFLICT DO NOTHING``.
    Other backends read the post's current links first and insert only
    the new pairs; the unique constraint still rejects a concurrent
    duplicate.
    """
    insert = _INSERT_BY_DIALECT.get(db.get_bind().dialect.name)
    if insert is not None:
        rows = [{"post_id": post_id, "category_id": category_id} for category_id in category_ids]
        await db.execute(
            insert(PostCategory.__table__)
            .values(rows)
            .on_conflict_do_nothing(index_elements=["post_id", "category_id"])
        )
        return

    linked = set(
        (
            await db.execute(
                select(PostCategory.category_id).where(PostCategory.post_id == post_id)
            )
        ).scalars()
    )
    db.add_all(
        PostCategory(post_id=post_id, category_id=category_id)
        for category_id in category_ids
        if category_id not in linked
    )
    await db.flush()


async def _load_post(db: AsyncSession, post_id: int, *options) -> Post | None:
    q = (
        select(Post)
        .where(Post.id == post_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def _get_post_detail(db: AsyncSession, post_id: int) -> Post:
    post = await _load_post(
        db,
        post_id,
        selectinload(Post.author).selectinload(User.profile),
        selectinload(Post.categories).selectinload(PostCategory.category),
        selectinload(Post.comments).selectinload(Comment.author),
    )
    if post is None:
        raise NotFoundError(f"Post with ID {post_id} not found")
    return post


def _post_with_categories_to_dict(post: Post) -> dict:
    data = post_with_author_to_dict(post)
    data["categories"] = [post_category_with_category_to_dict(link) for link in post.categories]
    return data


def _post_detail_to_dict(post: Post) -> dict:
    data = post_to_dict(post)
    data["author"] = user_with_profile_to_dict(post.author)
    data["categories"] = [post_category_with_category_to_dict(link) for link in post.categories]
    data["comments"] = [comment_with_author_to_dict(c) for c in post.comments]
    return data


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create(db: AsyncSession, data: PostCreate) -> dict:
    post = Post(**data.model_dump())
    db.add(post)
    await flush_or_raise(
        db,
        "Post already exists",
        missing_detail=f"User with ID {data.author_id} not found",
    )
    logger.info("Created post id=%s for author id=%s", post.id, post.author_id)

    post = await _load_post(db, post.id, selectinload(Post.author))
    return post_with_author_to_dict(post)


async def create_with_categories(db: AsyncSession, data: PostCreateWithCategories) -> dict:
    """
    Create a post linked to existing categories.

    Pre: the author and every category id exist.
    Post: one post row plus one join row per distinct category id, written
    in a single flush; on any missing reference nothing is written and
    ``NotFoundError`` is raised.
    """
    post = Post(**data.model_dump(exclude={"category_ids"}))
    post.categories = [
        PostCategory(category_id=category_id)
        for category_id in dict.fromkeys(data.category_ids)
    ]
    db.add(post)
    await flush_or_raise(
        db,
        "Post is already linked to this category",
        missing_detail="Author or category not found",
    )
    logger.info("Created post id=%s with %d category link(s)", post.id, len(post.categories))

    post = await _load_post(
        db,
        post.id,
        selectinload(Post.author),
        selectinload(Post.categories).selectinload(PostCategory.category),
    )
    return _post_with_categories_to_dict(post)


async def find_all(
    db: AsyncSession,
    published: bool | None = None,
    author_id: int | None = None,
    include_relations: bool = False,
) -> list[dict]:
    """
    Return posts newest first, optionally filtered by *published* and
    *author_id*.  With *include_relations* each post carries its author,
    categories and comments (each comment with its author).
    """
    q = (
        select(Post)
        .order_by(Post.created_at.desc(), Post.id.desc())
        .execution_options(populate_existing=True)
    )
    if published is not None:
        q = q.where(Post.published.is_(published))
    if author_id is not None:
        q = q.where(Post.author_id == author_id)
    if include_relations:
        q = q.options(
            selectinload(Post.author),
            selectinload(Post.categories).selectinload(PostCategory.category),
            selectinload(Post.comments).selectinload(Comment.author),
        )

    result = await db.execute(q)
    posts = result.scalars().all()

    if not include_relations:
        return [post_to_dict(p) for p in posts]
    return [
        {
            **_post_with_categories_to_dict(p),
            "comments": [comment_with_author_to_dict(c) for c in p.comments],
        }
        for p in posts
    ]


async def find_one(db: AsyncSession, post_id: int) -> dict:
    """
    Return the post with its author (and profile), categories and comments
    (newest first, each with its author).

    Raises ``NotFoundError`` when the post does not exist.
    """
    post = await _get_post_detail(db, post_id)
    return _post_detail_to_dict(post)


async def update(db: AsyncSession, post_id: int, data: PostUpdate) -> dict:
    """Partially update a post.  ``published`` is a plain flag: any value is accepted."""
    post = await _load_post(db, post_id)
    if post is None:
        raise NotFoundError(f"Post with ID {post_id} not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        if value is None and field in ("title", "published"):
            continue
        setattr(post, field, value)
    await db.flush()

    post = await _load_post(
        db,
        post_id,
        selectinload(Post.author),
        selectinload(Post.categories).selectinload(PostCategory.category),
    )
    return _post_with_categories_to_dict(post)


async def add_categories(db: AsyncSession, post_id: int, category_ids: list[int]) -> dict:
    """
    Attach categories to an existing post.

    Idempotent per ``(post_id, category_id)``: ids already attached, or
    repeated in *category_ids*, do not create extra join rows.
    """
    if await _load_post(db, post_id) is None:
        raise NotFoundError(f"Post with ID {post_id} not found")

    category_ids = list(dict.fromkeys(category_ids))
    if category_ids:
        try:
            await _link_categories(db, post_id, category_ids)
        except IntegrityError as exc:
            raise_for_integrity_error(
                exc,
                "Post is already linked to this category",
                missing_detail="Category not found",
            )

    return await find_one(db, post_id)


async def remove_category(db: AsyncSession, post_id: int, category_id: int) -> dict:
    """Detach one category from a post; a pair that is not linked is a no-op."""
    await db.execute(
        delete(PostCategory).where(
            PostCategory.post_id == post_id,
            PostCategory.category_id == category_id,
        )
    )
    return await find_one(db, post_id)


async def add_comment(db: AsyncSession, post_id: int, data: PostCommentCreate) -> dict:
    if await _load_post(db, post_id) is None:
        raise NotFoundError(f"Post with ID {post_id} not found")

    comment = Comment(content=data.content, post_id=post_id, author_id=data.author_id)
    db.add(comment)
    await flush_or_raise(
        db,
        "Comment already exists",
        missing_detail=f"User with ID {data.author_id} not found",
    )

    q = (
        select(Comment)
        .where(Comment.id == comment.id)
        .options(selectinload(Comment.author), selectinload(Comment.post))
        .execution_options(populate_existing=True)
    )
    comment = (await db.execute(q)).scalar_one()

    result = comment_to_dict(comment)
    result["author"] = user_to_dict(comment.author)
    result["post"] = post_to_dict(comment.post)
    return result


async def remove(db: AsyncSession, post_id: int) -> None:
    """Delete the post; comments and category links are removed by cascade."""
    post = await _load_post(db, post_id)
    if post is None:
        raise NotFoundError(f"Post with ID {post_id} not found")

    await db.delete(post)
    await db.flush()
    logger.info("Deleted post id=%s", post_id)


async def find_by_category(db: AsyncSession, category_id: int) -> list[dict]:
    """Posts having at least one join row for *category_id* (an EXISTS filter)."""
    q = (
        select(Post)
        .where(Post.categories.any(PostCategory.category_id == category_id))
        .options(
            selectinload(Post.author),
            selectinload(Post.categories).selectinload(PostCategory.category),
        )
        .order_by(Post.created_at.desc(), Post.id.desc())
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return [_post_with_categories_to_dict(p) for p in result.scalars().all()]


async def get_post_stats(db: AsyncSession, post_id: int) -> dict:
    post = await _get_post_detail(db, post_id)
    return {
        "post": {"id": post.id, "title": post.title, "published": post.published},
        "stats": {
            "totalComments": len(post.comments),
            "totalCategories": len(post.categories),
            "author": post.author.name or post.author.email,
        },
    }
