from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas import CommentCreate, CommentUpdate
from app.services import comment_service

router = APIRouter(prefix="/comments", tags=["comments"])

@router.get("")
async def list_comments(
    post_id: int | None = Query(None, alias="postId"),
    author_id: int | None = Query(None, alias="authorId"),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.find_all(db, post_id, author_id)

@router.get("/by-post/{post_id}")
async def list_comments_by_post(post_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.find_by_post(db, post_id)

@router.get("/by-user/{user_id}")
async def list_comments_by_user(user_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.find_by_user(db, user_id)

@router.get("/{comment_id}")
async def get_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    return await comment_service.find_one(db, comment_id)

@router.post("", status_code=201)
async def create_comment(data: CommentCreate, db: AsyncSession = Depends(get_db)):
    return await comment_service.create(db, data)

@router.patch("/{comment_id}")
async def update_comment(comment_id: int, data: CommentUpdate, db: AsyncSession = Depends(get_db)):
    return await comment_service.update(db, comment_id, data)

@router.delete("/{comment_id}", status_code=204)
async def delete_comment(comment_id: int, db: AsyncSession = Depends(get_db)):
    await comment_service.remove(db, comment_id)
