"""
Plain-dict serialisers for the ORM models.

Each function emits only the entity's own columns (camelCase keys, ISO
timestamps).  Services compose nested shapes explicitly so every response
contains exactly the relations that were eager-loaded for it.
"""
from datetime import datetime

from app.models import Category, Comment, Post, PostCategory, Profile, User


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "createdAt": _iso(user.created_at),
        "updatedAt": _iso(user.updated_at),
    }


def profile_to_dict(profile: Profile | None) -> dict | None:
    if profile is None:
        return None
    return {
        "id": profile.id,
        "bio": profile.bio,
        "avatar": profile.avatar,
        "website": profile.website,
        "userId": profile.user_id,
        "createdAt": _iso(profile.created_at),
        "updatedAt": _iso(profile.updated_at),
    }


def user_with_profile_to_dict(user: User) -> dict:
    data = user_to_dict(user)
    data["profile"] = profile_to_dict(user.profile)
    return data


def post_to_dict(post: Post) -> dict:
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "published": post.published,
        "authorId": post.author_id,
        "createdAt": _iso(post.created_at),
        "updatedAt": _iso(post.updated_at),
    }


def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "slug": category.slug,
        "createdAt": _iso(category.created_at),
        "updatedAt": _iso(category.updated_at),
    }


def post_category_to_dict(link: PostCategory) -> dict:
    """Join row fields only; callers attach ``post`` or ``category``."""
    return {
        "id": link.id,
        "postId": link.post_id,
        "categoryId": link.category_id,
        "createdAt": _iso(link.created_at),
    }


def post_category_with_category_to_dict(link: PostCategory) -> dict:
    data = post_category_to_dict(link)
    data["category"] = category_to_dict(link.category)
    return data


def comment_to_dict(comment: Comment) -> dict:
    return {
        "id": comment.id,
        "content": comment.content,
        "postId": comment.post_id,
        "authorId": comment.author_id,
        "createdAt": _iso(comment.created_at),
        "updatedAt": _iso(comment.updated_at),
    }


def comment_with_author_to_dict(comment: Comment) -> dict:
    data = comment_to_dict(comment)
    data["author"] = user_to_dict(comment.author)
    return data


def post_with_author_to_dict(post: Post) -> dict:
    data = post_to_dict(post)
    data["author"] = user_to_dict(post.author)
    return data
