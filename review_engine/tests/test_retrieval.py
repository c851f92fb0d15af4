from __future__ import annotations

import pytest

from review_engine.recommendations.retrieval import (
    STAGE_KEYWORD_INDEX,
    STAGE_POPULAR,
    STAGE_TEXT_MATCH,
    clamp_limit,
    recommend,
    rerank,
    retrieve_candidates,
    score_review,
)
from review_engine.reviews.service import create_review
from review_engine.tags.service import assign_tags_to_collection, assign_tags_to_subject


# ── Limit clamping ───────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "requested, expected",
    [(-5, 1), (0, 1), (1, 1), (3, 3), (10, 10), (11, 10), (1000, 10), (None, 3)],
)
def test_clamp_limit(requested, expected):
    assert clamp_limit(requested) == expected


def test_recommend_never_exceeds_clamped_limit(store, add_review):
    for i in range(15):
        add_review(f"review {i}", like_count=i)
    assert len(recommend(None, 10, limit=50, store=store).recommendations) == 10
    assert len(recommend(None, 10, limit=0, store=store).recommendations) == 1
    assert len(recommend(None, 10, limit=4, store=store).recommendations) == 4


# ── Recall stages ────────────────────────────────────────────────────────


def test_keyword_index_stage(store):
    spicy = create_review(1, 10, 4, "Very spicy hotpot", store=store)
    create_review(1, 10, 5, "Lovely tea", store=store)

    stage, candidates = retrieve_candidates(store, 10, "spicy", 5)

    assert stage == STAGE_KEYWORD_INDEX
    assert [r.id for r in candidates] == [spicy.id]


def test_keyword_index_is_scoped_to_collection(store):
    create_review(1, 20, 4, "spicy but elsewhere", store=store)
    stage, candidates = retrieve_candidates(store, 10, "spicy", 5)
    assert stage == STAGE_POPULAR
    assert candidates == []


def test_text_match_stage_when_index_misses(store, add_review):
    # Inserted directly, so the keyword index knows nothing about them.
    garlic = add_review("so much garlic", like_count=1)
    add_review("plain rice", like_count=9)

    stage, candidates = retrieve_candidates(store, 10, "Garlic", 5)

    assert stage == STAGE_TEXT_MATCH
    assert [r.id for r in candidates] == [garlic.id]


def test_popular_stage_without_preference(store, add_review):
    low = add_review("ok", like_count=1, rating=3)
    high = add_review("great", like_count=5, rating=3)

    stage, candidates = retrieve_candidates(store, 10, None, 5)

    assert stage == STAGE_POPULAR
    assert [r.id for r in candidates] == [high.id, low.id]


def test_popular_stage_when_nothing_matches(store, add_review):
    add_review("fine food", like_count=2)
    stage, candidates = retrieve_candidates(store, 10, "durian", 5)
    assert stage == STAGE_POPULAR
    assert len(candidates) == 1


def test_stages_are_never_merged(store, add_review):
    indexed = create_review(1, 10, 3, "spicy noodles", store=store)
    add_review("popular but bland", like_count=50)

    stage, candidates = retrieve_candidates(store, 10, "spicy", 5)

    assert stage == STAGE_KEYWORD_INDEX
    assert [r.id for r in candidates] == [indexed.id]


def test_hidden_reviews_never_recalled(store, add_review):
    indexed = create_review(1, 10, 5, "spicy and numbing", store=store)
    store.set_review_status(indexed.id, "hidden")
    add_review("spicy again", status="hidden", like_count=9)
    add_review("hidden popular", status="hidden", like_count=99)
    visible = add_review("visible", like_count=0)

    for preference in ("spicy", "numbing", None):
        _, candidates = retrieve_candidates(store, 10, preference, 10)
        assert all(r.status == "active" for r in candidates)
        assert [r.id for r in candidates] == [visible.id]


def test_popularity_order_breaks_ties_by_rating_then_recency(store, add_review):
    older = add_review("a", like_count=2, rating=4, minutes=1)
    newer = add_review("b", like_count=2, rating=4, minutes=5)
    better = add_review("c", like_count=2, rating=5, minutes=2)

    _, candidates = retrieve_candidates(store, 10, None, 10)

    assert [r.id for r in candidates] == [better.id, newer.id, older.id]


# ── Scoring & reranking ──────────────────────────────────────────────────


def test_score_formula(add_review):
    review = add_review("spicy and cheap, great value", rating=4, like_count=3)
    assert score_review(review, ()) == 3 * 2 + 4
    assert score_review(review, ("spicy", "cheap", "service")) == 3 * 2 + 4 + 5 * 2


def test_score_counts_distinct_keywords_once(add_review):
    review = add_review("spicy spicy spicy", rating=1)
    assert score_review(review, ("spicy", "SPICY")) == 1 + 5


def test_rerank_orders_by_score(add_review):
    plain = add_review("nice", rating=5, like_count=0)
    keyword = add_review("cheap eats", rating=1, like_count=0)

    ranked = rerank([plain, keyword], ("cheap",))

    assert [r.id for r, _ in ranked] == [keyword.id, plain.id]
    assert ranked[0][1] > ranked[1][1]


def test_rerank_is_stable_for_ties(add_review):
    first = add_review("x", rating=3, like_count=1)
    second = add_review("y", rating=3, like_count=1)
    third = add_review("z", rating=3, like_count=1)

    ranked = rerank([second, third, first], ())

    assert [r.id for r, _ in ranked] == [second.id, third.id, first.id]


def test_rerank_without_keywords_equals_base_score_sort(add_review):
    reviews = [
        add_review("a", rating=2, like_count=0),
        add_review("b", rating=1, like_count=3),
        add_review("c", rating=5, like_count=1),
        add_review("d", rating=1, like_count=0),
    ]
    ranked = rerank(reviews, ())
    expected = sorted(reviews, key=lambda r: r.like_count * 2 + r.rating, reverse=True)
    assert [r.id for r, _ in ranked] == [r.id for r in expected]


# ── End to end ───────────────────────────────────────────────────────────


def test_spicy_review_ranked_first(store):
    for text in ("Nice tea", "Good rice", "Quiet place", "Fast lunch"):
        review = create_review(1, 10, 3, text, store=store)
        review.like_count = 1
    spicy = create_review(2, 10, 5, "Incredibly spicy fish", store=store)
    spicy.like_count = 10

    response = recommend(None, 10, preference="spicy", limit=3, store=store)

    assert response.recommendations[0].review.id == spicy.id
    assert response.preference == "spicy"


def test_empty_preference_and_tags_fall_through_to_popular(store, add_review):
    top = add_review("crowd favourite", like_count=8)
    add_review("rarely read", like_count=0)

    response = recommend(1, 10, preference="", limit=5, store=store)

    assert response.preference is None
    assert response.stage == STAGE_POPULAR
    assert response.recommendations[0].review.id == top.id


def test_fallback_is_deterministic(store, add_review):
    for i in range(6):
        add_review(f"dish {i}", like_count=i % 3, rating=1 + i % 5)

    first = recommend(None, 10, preference="nothing-matches", limit=4, store=store)
    second = recommend(None, 10, preference="nothing-matches", limit=4, store=store)

    assert first.stage == STAGE_POPULAR
    assert [i.review.id for i in first.recommendations] == [i.review.id for i in second.recommendations]
    popular = store.fetch_active_reviews_by_popularity(10, 4)
    assert {i.review.id for i in first.recommendations} == {r.id for r in popular}


def test_inferred_preference_from_tags(store):
    tag = store.create_tag("spicy lover", "subject")
    assign_tags_to_subject(1, [tag.id], store=store)
    mild = create_review(2, 10, 5, "gentle flavours", store=store)
    mild.like_count = 4
    spicy = create_review(2, 10, 3, "spicy wontons", store=store)

    response = recommend(1, 10, limit=3, store=store)

    assert response.preference == "spicy"
    assert response.stage == STAGE_KEYWORD_INDEX
    assert [i.review.id for i in response.recommendations] == [spicy.id]
    assert "you are a 'spicy lover' type user" in response.recommendations[0].reason


def test_collection_tags_add_rerank_bonus(store):
    tag = store.create_tag("clean and tidy", "collection")
    assign_tags_to_collection(10, [tag.id], store=store)
    liked = create_review(1, 10, 3, "average meal", store=store)
    liked.like_count = 2
    clean = create_review(1, 10, 3, "very clean tables", store=store)

    response = recommend(None, 10, preference="unmatched", limit=5, store=store)

    # Inferred keywords only rerank; the explicit preference drives recall.
    assert response.stage == STAGE_POPULAR
    assert [i.review.id for i in response.recommendations] == [clean.id, liked.id]
    assert response.recommendations[0].score == 0 * 2 + 3 + 5
