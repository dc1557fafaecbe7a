from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.auth import UserContext, get_current_user
from app.core.database import get_db
from app.core.errors import InternalError
from app.core.schemas import GoalUpsert, MessageResponse
from app.services.goals import upsert_goal


logger = logging.getLogger(__name__)

router = APIRouter()


# 设置或更新年度阅读目标：新建返回 201，更新返回 200
@router.api_route(
    "/saveGoal",
    methods=["POST", "PUT"],
    response_model=MessageResponse,
    responses={201: {"model": MessageResponse}},
)
def save_goal(
    payload: GoalUpsert,
    user: UserContext = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> JSONResponse:
    try:
        created = upsert_goal(db, user.user_id, payload.year, payload.target)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception(f"Error saving goal {payload.year} for user {user.user_id}")
        raise InternalError("Error saving goal") from exc

    if created:
        return JSONResponse(status_code=201, content={"message": "Goal set successfully"})
    return JSONResponse(status_code=200, content={"message": "Goal updated successfully"})
