from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.database import get_db
from app.schemas import CategoryCreate, CategoryUpdate
from app.services import category_service

router = APIRouter(prefix="/categories", tags=["categories"])

@router.post("", status_code=201)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)):
    return await category_service.create(db, data)

@router.get("")
async def list_categories(
    include_posts: bool = Query(False, alias="includePosts"),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.find_all(db, include_posts)

# Registered before "/{category_id}" so "popular" is not parsed as an id.
@router.get("/popular")
async def popular_categories(
    limit: int = Query(
        settings.POPULAR_CATEGORIES_DEFAULT_LIMIT,
        ge=1,
        le=settings.POPULAR_CATEGORIES_MAX_LIMIT,
    ),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.get_popular_categories(db, limit)

@router.get("/slug/{slug}")
async def get_category_by_slug(slug: str, db: AsyncSession = Depends(get_db)):
    return await category_service.find_by_slug(db, slug)

@router.get("/{category_id}")
async def get_category(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.find_one(db, category_id)

@router.get("/{category_id}/stats")
async def get_category_stats(category_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.get_category_stats(db, category_id)

@router.patch("/{category_id}")
async def update_category(
    category_id: int, data: CategoryUpdate, db: AsyncSession = Depends(get_db)
):
    return await category_service.update(db, category_id, data)

@router.delete("/{category_id}", status_code=204)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)):
    await category_service.remove(db, category_id)
