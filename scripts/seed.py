"""Populate the database with sample users, profiles, posts, categories and comments."""
import asyncio
import argparse
import logging
import time

from app.config import settings
from app.database import Database
from app.schemas import (
    CategoryCreate,
    CommentCreate,
    PostCreateWithCategories,
    UserCreate,
    UserCreateWithProfile,
)
from app.services import category_service, comment_service, post_service, user_service

logger = logging.getLogger("seed")

CATEGORIES = ["Technology", "Programming", "Web Development", "Database", "Tutorial"]

USERS = [
    {
        "email": "john@example.com",
        "name": "John Doe",
        "profile": {
            "bio": "Full-stack developer who writes about Python and SQL",
            "avatar": "https://api.dicebear.com/7.x/avataaars/svg?seed=John",
            "website": "https://johndoe.dev",
        },
    },
    {
        "email": "jane@example.com",
        "name": "Jane Smith",
        "profile": {
            "bio": "Database engineer and occasional technical writer",
            "website": "https://janesmith.io",
        },
    },
]

POSTS = [
    ("Getting Started with SQLAlchemy", "Declarative models and sessions.", True, [0, 1, 3]),
    ("One-to-One Relationships", "Users and their profiles.", True, [1, 3, 4]),
    ("Many-to-Many with Join Rows", "Posts and categories.", True, [1, 3]),
    ("Async FastAPI Services", "Draft: services over AsyncSession.", False, [0, 2]),
]


async def seed(reset: bool = True) -> None:
    start = time.perf_counter()
    database = Database(settings.DATABASE_URL)
    try:
        if reset:
            await database.drop_all()
        await database.create_all()

        async with database.session() as db:
            categories = [
                await category_service.create(db, CategoryCreate(name=name))
                for name in CATEGORIES
            ]
            logger.info("Created %d categories", len(categories))

            users = [
                await user_service.create_with_profile(db, UserCreateWithProfile(**u))
                for u in USERS
            ]
            users.append(
                await user_service.create(db, UserCreate(email="bob@example.com", name="Bob"))
            )
            logger.info("Created %d users", len(users))

            posts = []
            for i, (title, content, published, category_idx) in enumerate(POSTS):
                posts.append(
                    await post_service.create_with_categories(
                        db,
                        PostCreateWithCategories(
                            title=title,
                            content=content,
                            published=published,
                            author_id=users[i % 2]["id"],
                            category_ids=[categories[j]["id"] for j in category_idx],
                        ),
                    )
                )
            logger.info("Created %d posts", len(posts))

            comments = 0
            for post in posts:
                for user in users:
                    if user["id"] == post["authorId"]:
                        continue
                    await comment_service.create(
                        db,
                        CommentCreate(
                            content=f"Thanks for writing '{post['title']}'!",
                            post_id=post["id"],
                            author_id=user["id"],
                        ),
                    )
                    comments += 1
            logger.info("Created %d comments", comments)
    finally:
        await database.dispose()

    logger.info("Seed complete in %.2fs", time.perf_counter() - start)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--keep", action="store_true", help="Do not drop existing tables first")
    args = parser.parse_args()
    logging.basicConfig(level=settings.LOG_LEVEL, format="%(levelname)s %(message)s")
    asyncio.run(seed(reset=not args.keep))
