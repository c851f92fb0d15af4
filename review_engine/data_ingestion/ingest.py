from __future__ import annotations

import logging
from typing import List

import pandas as pd

from ..recommendations.data_store import ReviewStore, get_store
from ..reviews.service import create_review
from .config import DEFAULT_INGESTION_CONFIG, IngestionConfig

logger = logging.getLogger(__name__)

CANONICAL_COLUMNS: List[str] = [
    "collection_id",
    "collection_name",
    "author_id",
    "rating",
    "content",
    "like_count",
]


def _normalize_rating(rating: float | int | str | None) -> int | None:
    if rating is None or (not isinstance(rating, str) and pd.isna(rating)):
        return None
    raw = str(rating).strip()
    # Handle "X/5" format (e.g. "4/5")
    if "/" in raw:
        raw = raw.split("/")[0].strip()
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None

    # Clamp to [1, 5]
    return int(max(1.0, min(5.0, round(value))))


def load_reviews_frame(path) -> pd.DataFrame:
    """Read a reviews CSV and map it onto the canonical columns."""
    df = pd.read_csv(path)

    def _first_present(columns: List[str]) -> str | None:
        for col in columns:
            if col in df.columns:
                return col
        return None

    col_collection = _first_present(["collection_id", "shop_id", "venue_id"])
    col_collection_name = _first_present(["collection_name", "shop_name", "venue_name"])
    col_author = _first_present(["author_id", "user_id", "subject_id"])
    col_rating = _first_present(["rating", "stars", "score"])
    col_content = _first_present(["content", "text", "review_text"])
    col_likes = _first_present(["like_count", "likes"])

    if col_collection is None or col_author is None or col_rating is None:
        raise ValueError(f"{path}: needs collection, author and rating columns")

    canonical = pd.DataFrame()
    canonical["collection_id"] = pd.to_numeric(df[col_collection], errors="coerce")
    canonical["collection_name"] = (
        df[col_collection_name].fillna("").astype(str) if col_collection_name else ""
    )
    canonical["author_id"] = pd.to_numeric(df[col_author], errors="coerce")
    canonical["rating"] = df[col_rating].apply(_normalize_rating)
    canonical["content"] = df[col_content].fillna("").astype(str) if col_content else ""
    if col_likes:
        canonical["like_count"] = pd.to_numeric(df[col_likes], errors="coerce").fillna(0)
    else:
        canonical["like_count"] = 0

    canonical = canonical.dropna(subset=["collection_id", "author_id", "rating"])
    canonical = canonical.astype({"collection_id": int, "author_id": int, "rating": int, "like_count": int})
    return canonical[CANONICAL_COLUMNS]


def run_ingestion(
    config: IngestionConfig = DEFAULT_INGESTION_CONFIG,
    store: ReviewStore | None = None,
) -> int:
    """
    Import every valid row of the configured CSV.

    Unknown collections and authors are registered on the fly. Returns the
    number of reviews created.
    """
    store = store or get_store()
    frame = load_reviews_frame(config.reviews_path)

    created = 0
    for row in frame.itertuples(index=False):
        collection_id, author_id = int(row.collection_id), int(row.author_id)
        if store.get_collection(collection_id) is None:
            name = str(row.collection_name) or f"collection-{collection_id}"
            store.add_collection(name, collection_id=collection_id)
        if store.get_subject(author_id) is None:
            store.add_subject(f"subject-{author_id}", subject_id=author_id)

        create_review(
            author_id,
            collection_id,
            int(row.rating),
            str(row.content),
            store=store,
            like_count=int(row.like_count),
        )
        created += 1

    logger.info("Imported %d reviews from %s", created, config.reviews_path)
    return created


if __name__ == "__main__":
    count = run_ingestion()
    print(f"Ingestion complete. Imported {count} reviews.")
