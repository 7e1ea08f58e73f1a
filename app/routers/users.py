from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.errors import NotFoundError
from app.schemas import ProfileUpdate, UserCreate, UserCreateWithProfile, UserUpdate
from app.services import user_service

router = APIRouter(prefix="/users", tags=["users"])

@router.post("", status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    return await user_service.create(db, data)

@router.post("/with-profile", status_code=201)
async def create_user_with_profile(data: UserCreateWithProfile, db: AsyncSession = Depends(get_db)):
    return await user_service.create_with_profile(db, data)

@router.get("")
async def list_users(
    include_relations: bool = Query(False, alias="includeRelations"),
    db: AsyncSession = Depends(get_db),
):
    return await user_service.find_all(db, include_relations)

@router.get("/by-email/{email}")
async def get_user_by_email(email: str, db: AsyncSession = Depends(get_db)):
    user = await user_service.find_by_email(db, email)
    if user is None:
        raise NotFoundError(f"User with email '{email}' not found")
    return user

@router.get("/{user_id}")
async def get_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.find_one(db, user_id)

@router.get("/{user_id}/stats")
async def get_user_stats(user_id: int, db: AsyncSession = Depends(get_db)):
    return await user_service.get_user_stats(db, user_id)

@router.patch("/{user_id}")
async def update_user(user_id: int, data: UserUpdate, db: AsyncSession = Depends(get_db)):
    return await user_service.update(db, user_id, data)

@router.patch("/{user_id}/profile")
async def update_profile(user_id: int, data: ProfileUpdate, db: AsyncSession = Depends(get_db)):
    return await user_service.update_profile(db, user_id, data)

@router.delete("/{user_id}", status_code=204)
async def delete_user(user_id: int, db: AsyncSession = Depends(get_db)):
    await user_service.remove(db, user_id)
