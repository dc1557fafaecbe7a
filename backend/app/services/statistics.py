from __future__ import annotations

from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models import Book
from app.services.goals import get_goal


READ_STATUS = "Read"


def current_year() -> int:
    return datetime.utcnow().year


# 汇总当前用户的阅读统计：本年目标、已读数量、平均评分
def compute_stats(db: Session, user_id: str, year: int | None = None) -> dict:
    goal = get_goal(db, user_id, year or current_year())

    total_books, average_rating = (
        db.query(func.count(Book.id), func.avg(Book.rating))
        .filter(Book.user_id == user_id, Book.status == READ_STATUS)
        .one()
    )

    # AVG 忽略 NULL 评分；没有任何评分时约定返回 0.0
    return {
        "goal": goal.target if goal else None,
        "total_books": int(total_books or 0),
        "average_rating": float(average_rating) if average_rating is not None else 0.0,
    }
