from __future__ import annotations

from typing import Sequence

from .keywords import mentions
from .models import Review

FALLBACK_REASON = "recommended based on this collection's popular items."


def first_hit(review: Review, keywords: Sequence[str]) -> str | None:
    for keyword in keywords:
        if mentions(review.content, keyword):
            return keyword
    return None


def build_reason(
    review: Review,
    subject_tags: str,
    collection_tags: str,
    keywords: Sequence[str],
) -> str:
    """
    Explain why a review was picked.

    Clauses always appear in the same order: who the user is, how the
    collection is tagged, which keyword the review mentions.
    """
    clauses: list[str] = []
    if subject_tags and subject_tags.strip():
        clauses.append(f"you are a '{subject_tags}' type user")
    if collection_tags and collection_tags.strip():
        clauses.append(f"this collection is tagged: {collection_tags}")
    hit = first_hit(review, keywords)
    if hit is not None:
        clauses.append(f"this item mentions '{hit}'")

    if not clauses:
        return FALLBACK_REASON
    return "; ".join(clauses) + "."
