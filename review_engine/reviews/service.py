from __future__ import annotations

import logging

from ..recommendations.data_store import NotFoundError, ReviewStore, get_store
from ..recommendations.keywords import DEFAULT_DICTIONARY, KeywordDictionary, extract_keywords
from ..recommendations.models import Review

logger = logging.getLogger(__name__)


def create_review(
    subject_id: int,
    collection_id: int,
    rating: int,
    content: str | None,
    images: list[str] | None = None,
    store: ReviewStore | None = None,
    dictionary: KeywordDictionary = DEFAULT_DICTIONARY,
    like_count: int = 0,
) -> Review:
    """
    Store a new active review and index its keywords.

    Raises NotFoundError for an unknown subject or collection and
    ValueError for a rating outside 1-5.
    """
    store = store or get_store()
    store.require_subject(subject_id)
    store.require_collection(collection_id)
    if not 1 <= rating <= 5:
        raise ValueError(f"Rating must be between 1 and 5, got {rating}")

    review = store.insert_review(Review(
        id=0,
        collection_id=collection_id,
        author_id=subject_id,
        rating=rating,
        content=content or "",
        images=images or [],
        is_ai_generated=False,
        like_count=max(like_count, 0),
        status="active",
    ))

    keywords = extract_keywords(review.id, review.content, dictionary)
    if keywords:
        store.insert_keyword_entries(keywords)
    logger.debug(
        "Created review %s for collection %s with keywords %s",
        review.id, collection_id, [k.keyword for k in keywords],
    )
    return review


def like_review(review_id: int, store: ReviewStore | None = None) -> Review:
    store = store or get_store()
    if store.increase_like_count(review_id) == 0:
        raise NotFoundError(f"Review not found or hidden: {review_id}")
    return store.fetch_review_by_id(review_id)


def hide_review(review_id: int, store: ReviewStore | None = None) -> Review:
    store = store or get_store()
    if store.set_review_status(review_id, "hidden") == 0:
        raise NotFoundError(f"Review not found: {review_id}")
    return store.fetch_review_by_id(review_id)


def list_reviews(
    collection_id: int,
    page: int = 0,
    size: int = 10,
    store: ReviewStore | None = None,
) -> tuple[list[Review], int]:
    """Return one page of a collection's reviews, newest first, plus the total."""
    store = store or get_store()
    page = max(page, 0)
    size = max(size, 1)
    return store.list_reviews(collection_id, page * size, size), store.count_reviews(collection_id)
