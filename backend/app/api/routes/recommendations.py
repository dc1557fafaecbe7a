from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.auth import UserContext, get_current_user
from app.core.database import get_db
from app.core.errors import InternalError
from app.core.schemas import RecommendationsResponse
from app.models import Book
from app.services.llm_service import RecommendationError, recommend_books


logger = logging.getLogger(__name__)

router = APIRouter()


# 根据用户已记录的书籍向 LLM 请求推荐书目
@router.post("/recommendations", response_model=RecommendationsResponse)
def get_recommendations(
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> RecommendationsResponse:
    try:
        books = (
            db.query(Book)
            .filter(Book.user_id == user.user_id)
            .order_by(Book.created_at.asc(), Book.id.asc())
            .all()
        )
        items = recommend_books(books)
    except (SQLAlchemyError, RecommendationError) as exc:
        logger.exception(f"Error getting recommendations for user {user.user_id}")
        raise InternalError("Error getting recommendations") from exc
    return RecommendationsResponse(recommendations=items)
