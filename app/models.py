from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.database import Base

# Every foreign key below is ON DELETE CASCADE and every parent-side
# relationship is passive_deletes=True: deleting a parent row is a single
# DELETE and the database removes the dependents.  Relationships are
# lazy="noload" so services must eager-load explicitly with selectinload.


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


# ---------------------------------------------------------------------------
# User
# ---------------------------------------------------------------------------
class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)

    profile: Mapped[Optional["Profile"]] = relationship(
        "Profile",
        back_populates="user",
        uselist=False,
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )
    posts: Mapped[List["Post"]] = relationship(
        "Post",
        back_populates="author",
        order_by=lambda: Post.id,
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="author",
        order_by=lambda: Comment.id,
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# Profile (one-to-one with User)
# ---------------------------------------------------------------------------
class Profile(TimestampMixin, Base):
    __tablename__ = "profiles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    website: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    # unique=True is what makes this one-to-one rather than one-to-many.
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )

    user: Mapped["User"] = relationship("User", back_populates="profile", lazy="noload")


# ---------------------------------------------------------------------------
# Category
# ---------------------------------------------------------------------------
class Category(TimestampMixin, Base):
    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False, index=True)

    posts: Mapped[List["PostCategory"]] = relationship(
        "PostCategory",
        back_populates="category",
        order_by=lambda: PostCategory.id,
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# Post
# ---------------------------------------------------------------------------
class Post(TimestampMixin, Base):
    __tablename__ = "posts"

    __table_args__ = (
        # Author feed, newest first
        Index("ix_posts_author_id_created_at", "author_id", "created_at"),
        Index("ix_posts_published_created_at", "published", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    author: Mapped["User"] = relationship("User", back_populates="posts", lazy="noload")
    categories: Mapped[List["PostCategory"]] = relationship(
        "PostCategory",
        back_populates="post",
        order_by=lambda: PostCategory.id,
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )
    # Newest first; id breaks ties within one timestamp tick.
    comments: Mapped[List["Comment"]] = relationship(
        "Comment",
        back_populates="post",
        order_by=lambda: [Comment.created_at.desc(), Comment.id.desc()],
        lazy="noload",
        cascade="all",
        passive_deletes=True,
    )


# ---------------------------------------------------------------------------
# PostCategory: explicit join row for Post <-> Category (many-to-many)
# ---------------------------------------------------------------------------
class PostCategory(Base):
    __tablename__ = "post_categories"

    __table_args__ = (
        UniqueConstraint("post_id", "category_id", name="uq_post_categories_post_id_category_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    category_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    post: Mapped["Post"] = relationship("Post", back_populates="categories", lazy="noload")
    category: Mapped["Category"] = relationship(
        "Category", back_populates="posts", lazy="noload"
    )


# ---------------------------------------------------------------------------
# Comment
# ---------------------------------------------------------------------------
class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    __table_args__ = (
        Index("ix_comments_post_id_created_at", "post_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    content: Mapped[str] = mapped_column(Text, nullable=False)

    post_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    author_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    post: Mapped["Post"] = relationship("Post", back_populates="comments", lazy="noload")
    author: Mapped["User"] = relationship("User", back_populates="comments", lazy="noload")
