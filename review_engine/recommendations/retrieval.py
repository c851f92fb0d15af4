from __future__ import annotations

import logging
from typing import Sequence

from ..tags.service import format_tag_names
from .config import DEFAULT_RECOMMEND_CONFIG, RecommendConfig
from .data_store import ReviewStore, get_store
from .keywords import (
    DEFAULT_DICTIONARY,
    KeywordDictionary,
    collect_keywords,
    infer_preference,
    mentions,
)
from .models import RecommendationItem, RecommendationResponse, Review
from .reasons import build_reason

logger = logging.getLogger(__name__)

STAGE_KEYWORD_INDEX = "keyword_index"
STAGE_TEXT_MATCH = "text_match"
STAGE_POPULAR = "popular"


def clamp_limit(limit: int | None, config: RecommendConfig = DEFAULT_RECOMMEND_CONFIG) -> int:
    """Clamp any requested limit into [min_limit, max_limit]; never rejects."""
    if limit is None:
        limit = config.default_limit
    return max(config.min_limit, min(int(limit), config.max_limit))


def _recall_by_keyword_index(
    store: ReviewStore, collection_id: int, preference: str, limit: int
) -> list[Review]:
    result: list[Review] = []
    for review_id in store.lookup_keyword_index(collection_id, preference, limit):
        review = store.fetch_review_by_id(review_id)
        if review is not None and review.status == "active":
            result.append(review)
    return result[:limit]


def retrieve_candidates(
    store: ReviewStore,
    collection_id: int,
    preference: str | None,
    limit: int,
) -> tuple[str, list[Review]]:
    """
    Three-stage waterfall recall. The first stage with a non-empty result
    wins; results of different stages are never merged.
    """
    needle = preference.strip() if preference else ""

    if needle:
        hits = _recall_by_keyword_index(store, collection_id, needle, limit)
        if hits:
            return STAGE_KEYWORD_INDEX, hits

        text_hits = store.fetch_active_reviews_by_text_match(collection_id, needle, limit)
        text_hits = [r for r in text_hits if r.status == "active"][:limit]
        if text_hits:
            return STAGE_TEXT_MATCH, text_hits

    popular = store.fetch_active_reviews_by_popularity(collection_id, limit)
    return STAGE_POPULAR, [r for r in popular if r.status == "active"][:limit]


def score_review(
    review: Review,
    keywords: Sequence[str],
    config: RecommendConfig = DEFAULT_RECOMMEND_CONFIG,
) -> float:
    """``likes * 2 + rating + 5`` for every distinct keyword the text mentions."""
    score = review.like_count * config.like_weight + review.rating
    distinct = {k.lower() for k in keywords if k and k.strip()}
    hits = sum(1 for k in distinct if mentions(review.content, k))
    return score + config.keyword_bonus * hits


def rerank(
    candidates: Sequence[Review],
    keywords: Sequence[str],
    config: RecommendConfig = DEFAULT_RECOMMEND_CONFIG,
) -> list[tuple[Review, float]]:
    scored = [(review, score_review(review, keywords, config)) for review in candidates]
    # sorted() is stable, so equal scores keep recall order
    return sorted(scored, key=lambda pair: pair[1], reverse=True)


def recommend(
    subject_id: int | None,
    collection_id: int,
    preference: str | None = None,
    limit: int | None = None,
    store: ReviewStore | None = None,
    dictionary: KeywordDictionary = DEFAULT_DICTIONARY,
    config: RecommendConfig = DEFAULT_RECOMMEND_CONFIG,
) -> RecommendationResponse:
    store = store or get_store()
    safe_limit = clamp_limit(limit, config)

    subject_tags = store.fetch_tags_for_subject(subject_id) if subject_id is not None else []
    collection_tags = store.fetch_tags_for_collection(collection_id)

    effective = infer_preference(preference, subject_tags, collection_tags, dictionary)
    stage, candidates = retrieve_candidates(store, collection_id, effective, safe_limit)

    keywords = collect_keywords(effective, subject_tags, collection_tags, dictionary)
    ranked = rerank(candidates, keywords, config)[:safe_limit]

    subject_str = format_tag_names(subject_tags)
    collection_str = format_tag_names(collection_tags)
    items = [
        RecommendationItem(
            review=review,
            score=score,
            reason=build_reason(review, subject_str, collection_str, keywords),
        )
        for review, score in ranked
    ]

    logger.debug(
        "recommend collection=%s subject=%s preference=%r stage=%s results=%d",
        collection_id, subject_id, effective, stage, len(items),
    )
    return RecommendationResponse(recommendations=items, preference=effective, stage=stage)
