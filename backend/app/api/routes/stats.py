from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.auth import UserContext, get_current_user
from app.core.database import get_db
from app.core.errors import InternalError
from app.core.schemas import StatsResponse
from app.services.statistics import compute_stats


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/getStats", response_model=StatsResponse)
def get_stats(
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> StatsResponse:
    try:
        stats = compute_stats(db, user.user_id)
    except SQLAlchemyError as exc:
        logger.exception(f"Error fetching stats for user {user.user_id}")
        raise InternalError("Error fetching stats") from exc
    return StatsResponse(**stats)
