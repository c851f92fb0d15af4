from __future__ import annotations

import logging
import os

from fastapi import FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from .audit.log_store import GenerationLogPage, GenerationStats, get_log_store
from .interactions.service import record_interaction
from .llm.drafts import generate_draft
from .llm.groq_client import ExternalCallFailure
from .recommendations.data_store import NotFoundError, get_store
from .recommendations.models import (
    Binding,
    Collection,
    CollectionCreateRequest,
    DraftRequest,
    DraftResponse,
    Interaction,
    InteractionCreateRequest,
    RecommendationResponse,
    Review,
    ReviewCreateRequest,
    ReviewPage,
    Subject,
    SubjectCreateRequest,
    Tag,
)
from .recommendations.retrieval import recommend
from .reviews.service import create_review, hide_review, like_review, list_reviews
from .tags.service import (
    AssignTagsRequest,
    TagCreateRequest,
    assign_tags_to_collection,
    assign_tags_to_subject,
    create_tag,
    list_tags,
    list_tags_of_collection,
    list_tags_of_subject,
)

logging.basicConfig(
    level=getattr(logging, os.environ.get("LOG_LEVEL", "INFO").upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Review Recommendation API", version="1.0.0")


def _caller_id(x_user_id: str | None, required: bool = True) -> int | None:
    """Parse the caller's subject id from the X-User-ID header."""
    if x_user_id is None or not x_user_id.strip():
        if required:
            raise HTTPException(status_code=401, detail="Missing X-User-ID header")
        return None
    try:
        return int(x_user_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="X-User-ID must be an integer")


# ── Error mapping ────────────────────────────────────────────────────────


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc), "code": "NOT_FOUND"})


@app.exception_handler(ExternalCallFailure)
async def external_call_handler(request: Request, exc: ExternalCallFailure) -> JSONResponse:
    return JSONResponse(
        status_code=502,
        content={"detail": str(exc), "code": "GENERATION_FAILED"},
    )


# ── Public endpoints ─────────────────────────────────────────────────────


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/subjects", response_model=Subject)
def register_subject(body: SubjectCreateRequest) -> Subject:
    return get_store().add_subject(body.name)


@app.post("/collections", response_model=Collection)
def register_collection(body: CollectionCreateRequest) -> Collection:
    return get_store().add_collection(body.name)


# ── Review endpoints ─────────────────────────────────────────────────────


@app.get("/collections/{collection_id}/reviews", response_model=ReviewPage)
def reviews_of_collection(
    collection_id: int,
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
) -> ReviewPage:
    rows, total = list_reviews(collection_id, page, size)
    return ReviewPage(content=rows, total=total, page=page, size=size)


@app.post("/collections/{collection_id}/reviews", response_model=Review)
def post_review(
    collection_id: int,
    body: ReviewCreateRequest,
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> Review:
    subject_id = _caller_id(x_user_id)
    return create_review(subject_id, collection_id, body.rating, body.content, body.images)


@app.post("/reviews/{review_id}/like", response_model=Review)
def post_like(review_id: int) -> Review:
    return like_review(review_id)


@app.post("/reviews/{review_id}/hide", response_model=Review)
def post_hide(review_id: int) -> Review:
    return hide_review(review_id)


@app.get("/collections/{collection_id}/reviews/recommend", response_model=RecommendationResponse)
def recommendations(
    collection_id: int,
    preference: str | None = None,
    limit: int = 3,
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> RecommendationResponse:
    # Out-of-range limits are clamped by the engine, not rejected here.
    subject_id = _caller_id(x_user_id, required=False)
    return recommend(subject_id, collection_id, preference, limit)


@app.post("/collections/{collection_id}/reviews/ai-draft", response_model=DraftResponse)
async def ai_draft(
    collection_id: int,
    body: DraftRequest,
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> DraftResponse:
    subject_id = _caller_id(x_user_id)
    draft = await generate_draft(subject_id, collection_id, body.preference)
    return DraftResponse(draft=draft)


@app.post("/collections/{collection_id}/interactions", response_model=Interaction)
def post_interaction(
    collection_id: int,
    body: InteractionCreateRequest,
    x_user_id: str | None = Header(default=None, alias="X-User-ID"),
) -> Interaction:
    subject_id = _caller_id(x_user_id)
    return record_interaction(subject_id, collection_id, body.amount, body.visit_time, body.items)


# ── Tag endpoints ────────────────────────────────────────────────────────


@app.post("/tags", response_model=Tag)
def post_tag(body: TagCreateRequest) -> Tag:
    return create_tag(body.name, body.scope)


@app.get("/tags", response_model=list[Tag])
def get_tags(scope: str | None = None) -> list[Tag]:
    return list_tags(scope)


@app.put("/subjects/{subject_id}/tags", response_model=list[Binding])
def put_subject_tags(subject_id: int, body: AssignTagsRequest) -> list[Binding]:
    return assign_tags_to_subject(subject_id, body.tag_ids)


@app.get("/subjects/{subject_id}/tags", response_model=list[Tag])
def get_subject_tags(subject_id: int) -> list[Tag]:
    return list_tags_of_subject(subject_id)


@app.put("/collections/{collection_id}/tags", response_model=list[Binding])
def put_collection_tags(collection_id: int, body: AssignTagsRequest) -> list[Binding]:
    return assign_tags_to_collection(collection_id, body.tag_ids)


@app.get("/collections/{collection_id}/tags", response_model=list[Tag])
def get_collection_tags(collection_id: int) -> list[Tag]:
    return list_tags_of_collection(collection_id)


# ── Audit endpoints ──────────────────────────────────────────────────────


@app.get("/generation-logs", response_model=GenerationLogPage)
def generation_logs(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=10, ge=1, le=100),
    call_type: str | None = None,
    status: str | None = None,
    subject_id: int | None = None,
) -> GenerationLogPage:
    store = get_log_store()
    logger.info(
        "Listing generation logs page=%s size=%s type=%s status=%s subject=%s",
        page, size, call_type, status, subject_id,
    )
    return GenerationLogPage(
        content=store.list_records(page, size, call_type, status, subject_id),
        total=store.count(call_type, status, subject_id),
        page=page,
        size=size,
    )


@app.get("/generation-logs/stats", response_model=GenerationStats)
def generation_stats(call_type: str | None = None) -> GenerationStats:
    return get_log_store().stats(call_type)
