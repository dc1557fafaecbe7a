from __future__ import annotations

from typing import List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


BookStatus = Literal[
    "Want to Read",
    "Currently Reading",
    "Read",
]


# 前端使用 camelCase 字段名，后端保持 snake_case
class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookCreate(CamelModel):
    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    status: BookStatus
    cover_image_url: Optional[str] = None


class BookStatusUpdate(CamelModel):
    id: int = Field(gt=0)
    status: BookStatus
    # rating / review 未出现时保持原值，显式 null 时清空
    rating: Optional[int] = None
    review: Optional[str] = None


class BookOut(CamelModel):
    id: int
    title: str
    author: str
    cover_image_url: Optional[str] = None
    status: BookStatus
    rating: Optional[int] = None
    review: Optional[str] = None
    created_at: Optional[str] = None
    user_id: str


class GoalUpsert(CamelModel):
    year: int = Field(gt=0)
    target: int = Field(gt=0)


class MessageResponse(BaseModel):
    message: str


class StatsResponse(CamelModel):
    goal: Optional[int] = None
    total_books: int = 0
    average_rating: float = 0.0


class Recommendation(BaseModel):
    title: str
    author: str


class RecommendationsResponse(BaseModel):
    recommendations: List[Recommendation] = Field(default_factory=list)
