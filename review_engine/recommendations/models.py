from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

ReviewStatus = Literal["active", "hidden"]
TagScope = Literal["subject", "collection", "review"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Review(BaseModel):
    id: int
    collection_id: int
    author_id: int
    rating: int = Field(..., ge=1, le=5)
    content: str = ""
    images: list[str] = Field(default_factory=list)
    is_ai_generated: bool = False
    like_count: int = 0
    status: ReviewStatus = "active"
    created_at: datetime = Field(default_factory=_now)


class KeywordEntry(BaseModel):
    review_id: int
    keyword: str
    weight: float = 1.0


class Tag(BaseModel):
    id: int
    name: str
    scope: TagScope
    created_at: datetime = Field(default_factory=_now)


class Binding(BaseModel):
    owner_id: int
    tag_id: int
    weight: float = 1.0
    updated_at: datetime = Field(default_factory=_now)


class Subject(BaseModel):
    id: int
    name: str
    created_at: datetime = Field(default_factory=_now)


class Collection(BaseModel):
    id: int
    name: str
    created_at: datetime = Field(default_factory=_now)


class Interaction(BaseModel):
    id: int
    subject_id: int
    collection_id: int
    amount: float
    visit_time: datetime
    items: str = ""
    created_at: datetime = Field(default_factory=_now)


# ── Request / response schemas ───────────────────────────────────────────


class SubjectCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class CollectionCreateRequest(BaseModel):
    name: str = Field(..., min_length=1)


class ReviewCreateRequest(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    content: str = Field(default="", max_length=5000)
    images: list[str] = Field(default_factory=list)


class InteractionCreateRequest(BaseModel):
    amount: float = Field(..., ge=0)
    visit_time: datetime
    items: str = ""


class ReviewPage(BaseModel):
    content: list[Review]
    total: int
    page: int
    size: int


class RecommendationItem(BaseModel):
    review: Review
    score: float
    reason: str


class RecommendationResponse(BaseModel):
    recommendations: list[RecommendationItem]
    preference: str | None = None
    stage: str


class DraftRequest(BaseModel):
    preference: str | None = Field(
        default=None, description="Free-text taste or style hint for the draft"
    )


class DraftResponse(BaseModel):
    draft: str
