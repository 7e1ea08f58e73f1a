"""
User service: CRUD for the User aggregate and its one-to-one Profile.

A user owns at most one profile (``profiles.user_id`` is unique), and is
the author of posts and comments.  Deleting a user is a single DELETE; the
database cascades to the profile, the posts (and their comments and
category links) and the user's own comments.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import NotFoundError, flush_or_raise
from app.models import Post, PostCategory, Profile, User
from app.schemas import ProfileUpdate, UserCreate, UserCreateWithProfile, UserUpdate
from app.services.serializers import (
    comment_to_dict,
    post_category_with_category_to_dict,
    post_to_dict,
    profile_to_dict,
    user_to_dict,
    user_with_profile_to_dict,
)

logger = logging.getLogger(__name__)

_DUPLICATE_EMAIL = "A user with this email already exists"


# ---------------------------------------------------------------------------
# Loaders
# ---------------------------------------------------------------------------

async def _load_user(db: AsyncSession, user_id: int, *options) -> User | None:
    q = (
        select(User)
        .where(User.id == user_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


async def _get_user_detail(db: AsyncSession, user_id: int) -> User:
    """Load the full aggregate used by ``find_one`` and ``get_user_stats``."""
    user = await _load_user(
        db,
        user_id,
        selectinload(User.profile),
        selectinload(User.posts).selectinload(Post.categories).selectinload(PostCategory.category),
        selectinload(User.posts).selectinload(Post.comments),
        selectinload(User.comments),
    )
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")
    return user


# ---------------------------------------------------------------------------
# Public service functions
# ---------------------------------------------------------------------------

async def create(db: AsyncSession, data: UserCreate) -> dict:
    user = User(email=data.email, name=data.name)
    db.add(user)
    await flush_or_raise(db, _DUPLICATE_EMAIL)
    logger.info("Created user id=%s", user.id)

    user = await _load_user(db, user.id)
    return user_to_dict(user)


async def create_with_profile(db: AsyncSession, data: UserCreateWithProfile) -> dict:
    """
    Create a user and its profile in one flush.

    Both rows are written in the caller's transaction, so either both exist
    afterwards or neither does.
    """
    user = User(email=data.email, name=data.name)
    user.profile = Profile(**data.profile.model_dump(mode="json"))
    db.add(user)
    await flush_or_raise(db, _DUPLICATE_EMAIL)
    logger.info("Created user id=%s with profile id=%s", user.id, user.profile.id)

    user = await _load_user(db, user.id, selectinload(User.profile))
    return user_with_profile_to_dict(user)


async def find_all(db: AsyncSession, include_relations: bool = False) -> list[dict]:
    """Return all users, newest first; optionally with profile, posts and comments."""
    q = (
        select(User)
        .order_by(User.created_at.desc(), User.id.desc())
        .execution_options(populate_existing=True)
    )
    if include_relations:
        q = q.options(
            selectinload(User.profile),
            selectinload(User.posts),
            selectinload(User.comments),
        )
    result = await db.execute(q)
    users = result.scalars().all()

    if not include_relations:
        return [user_to_dict(u) for u in users]
    return [
        {
            **user_with_profile_to_dict(u),
            "posts": [post_to_dict(p) for p in u.posts],
            "comments": [comment_to_dict(c) for c in u.comments],
        }
        for u in users
    ]


async def find_one(db: AsyncSession, user_id: int) -> dict:
    """
    Return the user with profile, posts (each with categories and
    comments) and the user's own comments.

    Raises ``NotFoundError`` when the user does not exist.
    """
    user = await _get_user_detail(db, user_id)

    data = user_with_profile_to_dict(user)
    data["posts"] = [
        {
            **post_to_dict(p),
            "categories": [post_category_with_category_to_dict(link) for link in p.categories],
            "comments": [comment_to_dict(c) for c in p.comments],
        }
        for p in user.posts
    ]
    data["comments"] = [comment_to_dict(c) for c in user.comments]
    return data


async def find_by_email(db: AsyncSession, email: str) -> dict | None:
    """Return the user with profile and posts, or None when no user has *email*."""
    q = (
        select(User)
        .where(User.email == email)
        .options(selectinload(User.profile), selectinload(User.posts))
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    user = result.scalar_one_or_none()
    if user is None:
        return None

    data = user_with_profile_to_dict(user)
    data["posts"] = [post_to_dict(p) for p in user.posts]
    return data


async def update(db: AsyncSession, user_id: int, data: UserUpdate) -> dict:
    user = await _load_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")

    for field, value in data.model_dump(exclude_unset=True).items():
        if field == "email" and value is None:
            continue
        setattr(user, field, value)

    await flush_or_raise(db, _DUPLICATE_EMAIL)

    user = await _load_user(db, user_id, selectinload(User.profile))
    return user_with_profile_to_dict(user)


async def update_profile(db: AsyncSession, user_id: int, data: ProfileUpdate) -> dict:
    """
    Upsert the user's profile.

    Updates the existing row in place when there is one, otherwise creates
    it.  ``profiles.user_id`` is unique, so a concurrent second insert fails
    with a conflict rather than producing two profiles.
    """
    user = await _load_user(db, user_id, selectinload(User.profile))
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")

    values = data.model_dump(exclude_unset=True, mode="json")
    profile = user.profile
    if profile is not None:
        for field, value in values.items():
            setattr(profile, field, value)
    else:
        profile = Profile(user_id=user_id, **values)
        db.add(profile)

    await flush_or_raise(db, "This user already has a profile")
    await db.refresh(profile)
    return profile_to_dict(profile)


async def remove(db: AsyncSession, user_id: int) -> None:
    """Delete the user; the database cascades to everything the user owns."""
    user = await _load_user(db, user_id)
    if user is None:
        raise NotFoundError(f"User with ID {user_id} not found")

    await db.delete(user)
    await db.flush()
    logger.info("Deleted user id=%s", user_id)


async def get_user_stats(db: AsyncSession, user_id: int) -> dict:
    """Counts derived from the aggregate ``find_one`` loads; no extra COUNT queries."""
    user = await _get_user_detail(db, user_id)
    return {
        "user": {"id": user.id, "email": user.email, "name": user.name},
        "stats": {
            "totalPosts": len(user.posts),
            "totalComments": len(user.comments),
            "hasProfile": user.profile is not None,
        },
    }
