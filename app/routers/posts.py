from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import (
    CategoryIds,
    PostCommentCreate,
    PostCreate,
    PostCreateWithCategories,
    PostUpdate,
)
from app.services import post_service

router = APIRouter(prefix="/posts", tags=["posts"])

@router.post("", status_code=201)
async def create_post(data: PostCreate, db: AsyncSession = Depends(get_db)):
    return await post_service.create(db, data)

@router.post("/with-categories", status_code=201)
async def create_post_with_categories(
    data: PostCreateWithCategories, db: AsyncSession = Depends(get_db)
):
    return await post_service.create_with_categories(db, data)

@router.get("")
async def list_posts(
    published: bool | None = Query(None),
    author_id: int | None = Query(None, alias="authorId"),
    include_relations: bool = Query(False, alias="includeRelations"),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.find_all(db, published, author_id, include_relations)

@router.get("/by-category/{category_id}")
async def list_posts_by_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.find_by_category(db, category_id)

@router.get("/{post_id}")
async def get_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.find_one(db, post_id)

@router.get("/{post_id}/stats")
async def get_post_stats(post_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.get_post_stats(db, post_id)

@router.patch("/{post_id}")
async def update_post(post_id: int, data: PostUpdate, db: AsyncSession = Depends(get_db)):
    return await post_service.update(db, post_id, data)

@router.post("/{post_id}/categories")
async def add_categories(post_id: int, data: CategoryIds, db: AsyncSession = Depends(get_db)):
    return await post_service.add_categories(db, post_id, data.category_ids)

@router.delete("/{post_id}/categories/{category_id}")
async def remove_category(post_id: int, category_id: int, db: AsyncSession = Depends(get_db)):
    return await post_service.remove_category(db, post_id, category_id)

@router.post("/{post_id}/comments", status_code=201)
async def add_comment(post_id: int, data: PostCommentCreate, db: AsyncSession = Depends(get_db)):
    return await post_service.add_comment(db, post_id, data)

@router.delete("/{post_id}", status_code=204)
async def delete_post(post_id: int, db: AsyncSession = Depends(get_db)):
    await post_service.remove(db, post_id)
