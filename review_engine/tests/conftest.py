"""
Shared pytest fixtures.
"""
from datetime import datetime, timedelta, timezone

import pytest

from review_engine.audit.log_store import GenerationLogStore
from review_engine.recommendations.data_store import ReviewStore
from review_engine.recommendations.models import Review

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def store():
    s = ReviewStore()
    s.add_subject("alice", subject_id=1)
    s.add_subject("bob", subject_id=2)
    s.add_collection("Sichuan House", collection_id=10)
    s.add_collection("Quiet Tea Room", collection_id=20)
    return s


@pytest.fixture
def log_store():
    return GenerationLogStore()


@pytest.fixture
def add_review(store):
    """Insert a review directly, bypassing keyword extraction."""
    counter = {"n": 0}

    def _add(content="", rating=3, like_count=0, status="active", collection_id=10, minutes=0):
        counter["n"] += 1
        return store.insert_review(Review(
            id=0,
            collection_id=collection_id,
            author_id=1,
            rating=rating,
            content=content,
            like_count=like_count,
            status=status,
            created_at=BASE_TIME + timedelta(minutes=minutes or counter["n"]),
        ))

    return _add
