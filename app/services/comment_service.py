"""
Comment service: a comment belongs to exactly one post and one author.

Both foreign keys are required; creating a comment against a post or user
that does not exist is a ``NotFoundError``.  Listings are newest first.
"""
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.errors import NotFoundError, flush_or_raise
from app.models import Comment, Post, User
from app.schemas import CommentCreate, CommentUpdate
from app.services.serializers import (
    comment_to_dict,
    post_to_dict,
    post_with_author_to_dict,
    user_to_dict,
    user_with_profile_to_dict,
)

logger = logging.getLogger(__name__)

_NEWEST_FIRST = (Comment.created_at.desc(), Comment.id.desc())


async def _load_comment(db: AsyncSession, comment_id: int, *options) -> Comment | None:
    q = (
        select(Comment)
        .where(Comment.id == comment_id)
        .options(*options)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return result.scalar_one_or_none()


def _comment_with_author_and_post_to_dict(comment: Comment) -> dict:
    data = comment_to_dict(comment)
    data["author"] = user_to_dict(comment.author)
    data["post"] = post_with_author_to_dict(comment.post)
    return data


async def create(db: AsyncSession, data: CommentCreate) -> dict:
    comment = Comment(**data.model_dump())
    db.add(comment)
    await flush_or_raise(db, "Comment already exists", missing_detail="Post or author not found")
    logger.info("Created comment id=%s on post id=%s", comment.id, comment.post_id)

    comment = await _load_comment(
        db,
        comment.id,
        selectinload(Comment.author),
        selectinload(Comment.post).selectinload(Post.author),
    )
    return _comment_with_author_and_post_to_dict(comment)


async def find_all(
    db: AsyncSession,
    post_id: int | None = None,
    author_id: int | None = None,
) -> list[dict]:
    q = (
        select(Comment)
        .options(
            selectinload(Comment.author),
            selectinload(Comment.post).selectinload(Post.author),
        )
        .order_by(*_NEWEST_FIRST)
        .execution_options(populate_existing=True)
    )
    if post_id is not None:
        q = q.where(Comment.post_id == post_id)
    if author_id is not None:
        q = q.where(Comment.author_id == author_id)

    result = await db.execute(q)
    return [_comment_with_author_and_post_to_dict(c) for c in result.scalars().all()]


async def find_one(db: AsyncSession, comment_id: int) -> dict:
    comment = await _load_comment(
        db,
        comment_id,
        selectinload(Comment.author).selectinload(User.profile),
        selectinload(Comment.post).selectinload(Post.author),
    )
    if comment is None:
        raise NotFoundError(f"Comment with ID {comment_id} not found")

    data = comment_to_dict(comment)
    data["author"] = user_with_profile_to_dict(comment.author)
    data["post"] = post_with_author_to_dict(comment.post)
    return data


async def update(db: AsyncSession, comment_id: int, data: CommentUpdate) -> dict:
    comment = await _load_comment(db, comment_id)
    if comment is None:
        raise NotFoundError(f"Comment with ID {comment_id} not found")

    comment.content = data.content
    await db.flush()

    comment = await _load_comment(
        db, comment_id, selectinload(Comment.author), selectinload(Comment.post)
    )
    result = comment_to_dict(comment)
    result["author"] = user_to_dict(comment.author)
    result["post"] = post_to_dict(comment.post)
    return result


async def remove(db: AsyncSession, comment_id: int) -> None:
    comment = await _load_comment(db, comment_id)
    if comment is None:
        raise NotFoundError(f"Comment with ID {comment_id} not found")

    await db.delete(comment)
    await db.flush()
    logger.info("Deleted comment id=%s", comment_id)


async def find_by_post(db: AsyncSession, post_id: int) -> list[dict]:
    q = (
        select(Comment)
        .where(Comment.post_id == post_id)
        .options(selectinload(Comment.author).selectinload(User.profile))
        .order_by(*_NEWEST_FIRST)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return [
        {**comment_to_dict(c), "author": user_with_profile_to_dict(c.author)}
        for c in result.scalars().all()
    ]


async def find_by_user(db: AsyncSession, user_id: int) -> list[dict]:
    q = (
        select(Comment)
        .where(Comment.author_id == user_id)
        .options(selectinload(Comment.post).selectinload(Post.author))
        .order_by(*_NEWEST_FIRST)
        .execution_options(populate_existing=True)
    )
    result = await db.execute(q)
    return [
        {**comment_to_dict(c), "post": post_with_author_to_dict(c.post)}
        for c in result.scalars().all()
    ]
