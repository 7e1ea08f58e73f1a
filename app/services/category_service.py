"""
Category service: CRUD for categories and the Post <-> Category link seen
from the category side.

``name`` and ``slug`` are both unique; a violation on create or update is
a ``ConflictError``.  Deleting a category removes its join rows through the
foreign-key cascade and leaves the posts themselves untouched.
"""
import logging
import re
import unicodedata

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import BadRequestError, NotFoundError, flush_or_raise
from app.models import Category, Post, PostCategory
from app.schemas import CategoryCreate, CategoryUpdate
from app.services.serializers import (
    category_to_dict,
    comment_to_dict,
    post_category_to_dict,
    post_with_author_to_dict,
)

logger = logging.getLogger(__name__)

_DUPLICATE_CATEGORY = "Category with this name or slug already exists"

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_NON_SLUG_RUN_RE = re.compile(r"[^a-z0-9]+")
_SLUG_MAX_LENGTH = 120  # categories.slug column width


def slugify(name: str) -> str:
    """
    Derive a category slug from *name*.

    Accents are folded to ASCII (``"Café Crème"`` -> ``"cafe-creme"``) and
    every other run of characters outside ``[a-z0-9]`` becomes one hyphen,
    so the result is either empty or a slug ``CategoryCreate`` would accept.
    """
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = _NON_SLUG_RUN_RE.sub("-", ascii_name.lower()).strip("-")
    return slug[:_SLUG_MAX_LENGTH].rstrip("-")


async def _load_category(db: AsyncSession, category_id: int, *options) -> Category | None:
    q = (
        select(Category)
        .where(Category.id == category_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


def _category_with_posts_to_dict(category: Category, with_comments: bool = False) -> dict:
    data = category_to_dict(category)
    data["posts"] = []
    for link in category.posts:
        post = post_with_author_to_dict(link.post)
        if with_comments:
            post["comments"] = [comment_to_dict(c) for c in link.post.comments]
        data["posts"].append({**post_category_to_dict(link), "post": post})
    return data


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create(db: AsyncSession, data: CategoryCreate) -> dict:
    slug = data.slug or slugify(data.name)
    if not slug:
        raise BadRequestError(f"Cannot derive a slug from name {data.name!r}")

    category = Category(name=data.name, slug=slug)
    db.add(category)
    await flush_or_raise(db, _DUPLICATE_CATEGORY)
    logger.info("Created category id=%s slug=%s", category.id, category.slug)

    category = await _load_category(db, category.id)
    return category_to_dict(category)


async def find_all(db: AsyncSession, include_posts: bool = False) -> list[dict]:
    """Return categories ordered by name; optionally with linked posts and their authors."""
    q = (
        select(Category)
        .order_by(Category.name.asc())
        .execution_options(populate_existing=True)
    )
    if include_posts:
        q = q.options(
            selectinload(Category.posts).selectinload(PostCategory.post).selectinload(Post.author)
        )
    result = await db.execute(q)
    categories = result.scalars().all()

    if not include_posts:
        return [category_to_dict(c) for c in categories]
    return [_category_with_posts_to_dict(c) for c in categories]


async def _get_category_detail(db: AsyncSession, category_id: int) -> Category:
    category = await _load_category(
        db,
        category_id,
        selectinload(Category.posts).selectinload(PostCategory.post).selectinload(Post.author),
        selectinload(Category.posts).selectinload(PostCategory.post).selectinload(Post.comments),
    )
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")
    return category


async def find_one(db: AsyncSession, category_id: int) -> dict:
    category = await _get_category_detail(db, category_id)
    return _category_with_posts_to_dict(category, with_comments=True)


async def find_by_slug(db: AsyncSession, slug: str) -> dict:
    q = (
        select(Category)
        .where(Category.slug == slug)
        .options(
            selectinload(Category.posts).selectinload(PostCategory.post).selectinload(Post.author)
        )
        .execution_options(populate_existing=True)
    )
    category = (await db.execute(q)).scalar_one_or_none()
    if category is None:
        raise NotFoundError(f"Category with slug '{slug}' not found")
    return _category_with_posts_to_dict(category)


async def update(db: AsyncSession, category_id: int, data: CategoryUpdate) -> dict:
    category = await _load_category(db, category_id)
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")

    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(category, field, value)
    await flush_or_raise(db, _DUPLICATE_CATEGORY)

    category = await _load_category(db, category_id)
    return category_to_dict(category)


async def remove(db: AsyncSession, category_id: int) -> None:
    """Delete the category; its post links are removed by cascade."""
    category = await _load_category(db, category_id)
    if category is None:
        raise NotFoundError(f"Category with ID {category_id} not found")

    await db.delete(category)
    await db.flush()
    logger.info("Deleted category id=%s", category_id)


async def get_category_stats(db: AsyncSession, category_id: int) -> dict:
    category = await _get_category_detail(db, category_id)
    return {
        "category": {"id": category.id, "name": category.name, "slug": category.slug},
        "stats": {"totalPosts": len(category.posts)},
    }


async def get_popular_categories(db: AsyncSession, limit: int = 10) -> list[dict]:
    """
    Return at most *limit* categories ranked by number of linked posts,
    descending.  Equal counts keep insertion order (ascending id).
    Categories with no posts rank last with ``postCount == 0``.
    """
    post_count = func.count(PostCategory.id).label("post_count")
    q = (
        select(Category, post_count)
        .outerjoin(PostCategory, PostCategory.category_id == Category.id)
        .group_by(Category.id)
        .order_by(post_count.desc(), Category.id.asc())
        .limit(limit)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return [
        {**category_to_dict(category), "postCount": count}
        for category, count in result.all()
    ]
