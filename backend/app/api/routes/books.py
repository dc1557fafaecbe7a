from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.auth import UserContext, get_current_user
from app.core.database import get_db
from app.core.errors import InternalError, NotFoundError
from app.core.schemas import BookCreate, BookOut, BookStatusUpdate, MessageResponse
from app.models import Book


logger = logging.getLogger(__name__)

# API 路由器：书籍相关接口
router = APIRouter()


def _to_out(book: Book) -> BookOut:
    return BookOut(
        id=book.id,
        title=book.title,
        author=book.author,
        cover_image_url=book.cover_image_url,
        status=book.status,
        rating=book.rating,
        review=book.review,
        created_at=book.created_at.isoformat() if book.created_at else None,
        user_id=book.user_id,
    )


# 获取当前用户的全部书籍（最新的在前）
@router.get("/getBooks", response_model=list[BookOut])
def list_books(
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> list[BookOut]:
    try:
        rows = (
            db.query(Book)
            .filter(Book.user_id == user.user_id)
            .order_by(Book.created_at.desc(), Book.id.desc())
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception(f"Error fetching books for user {user.user_id}")
        raise InternalError("Error fetching books") from exc
    return [_to_out(book) for book in rows]


# 新增书籍：归属用户只取自已验证的身份，不信任请求体
@router.post("/saveBook", response_model=BookOut, status_code=201)
def save_book(
    payload: BookCreate,
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> BookOut:
    book = Book(
        title=payload.title,
        author=payload.author,
        cover_image_url=payload.cover_image_url,
        status=payload.status,
        user_id=user.user_id,
    )
    try:
        db.add(book)
        db.commit()
        db.refresh(book)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Error saving book for user {user.user_id}")
        raise InternalError("Error saving book") from exc
    return _to_out(book)


# 更新阅读状态；rating / review 仅在请求体中出现时才写入
@router.put("/updateBookStatus", response_model=MessageResponse)
def update_book_status(
    payload: BookStatusUpdate,
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MessageResponse:
    values: dict = {"status": payload.status}
    if "rating" in payload.model_fields_set:
        values["rating"] = payload.rating
    if "review" in payload.model_fields_set:
        values["review"] = payload.review

    try:
        updated = (
            db.query(Book)
            .filter(Book.id == payload.id, Book.user_id == user.user_id)
            .update(values, synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Error updating book {payload.id} for user {user.user_id}")
        raise InternalError("Error updating book") from exc

    if not updated:
        raise NotFoundError("Book not found")
    return MessageResponse(message="Book updated successfully")
