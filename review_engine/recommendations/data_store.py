"""
In-memory implementation of the storage collaborators the engine reads from.

Every public method is atomic on its own. Nothing spans several calls, so
a request that reads the store more than once may observe writes made in
between.
"""
from __future__ import annotations

import itertools
import threading
from collections import defaultdict
from datetime import datetime, timezone
from typing import Iterable, Literal

from .models import (
    Binding,
    Collection,
    Interaction,
    KeywordEntry,
    Review,
    Subject,
    Tag,
    TagScope,
)

OwnerKind = Literal["subject", "collection"]


class NotFoundError(LookupError):
    """Raised when a referenced subject, collection, review or tag is absent."""


def popularity_key(review: Review) -> tuple:
    """Sort key for "most liked, best rated, newest first"."""
    return (-review.like_count, -review.rating, -review.created_at.timestamp(), -review.id)


class ReviewStore:
    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._owner_locks: dict[tuple[str, int], threading.Lock] = {}
        self._ids = defaultdict(lambda: itertools.count(1))

        self._subjects: dict[int, Subject] = {}
        self._collections: dict[int, Collection] = {}
        self._reviews: dict[int, Review] = {}
        self._keyword_index: dict[str, list[int]] = defaultdict(list)
        self._keyword_entries: list[KeywordEntry] = []
        self._tags: dict[int, Tag] = {}
        self._bindings: dict[OwnerKind, dict[int, list[Binding]]] = {
            "subject": {},
            "collection": {},
        }
        self._interactions: list[Interaction] = []

    def _next_id(self, kind: str) -> int:
        return next(self._ids[kind])

    # ── Subjects / collections ───────────────────────────────────────────

    def add_subject(self, name: str, subject_id: int | None = None) -> Subject:
        with self._lock:
            sid = subject_id if subject_id is not None else max(self._subjects, default=0) + 1
            subject = Subject(id=sid, name=name)
            self._subjects[sid] = subject
            return subject

    def add_collection(self, name: str, collection_id: int | None = None) -> Collection:
        with self._lock:
            cid = collection_id if collection_id is not None else max(self._collections, default=0) + 1
            collection = Collection(id=cid, name=name)
            self._collections[cid] = collection
            return collection

    def get_subject(self, subject_id: int) -> Subject | None:
        return self._subjects.get(subject_id)

    def get_collection(self, collection_id: int) -> Collection | None:
        return self._collections.get(collection_id)

    def require_subject(self, subject_id: int) -> Subject:
        subject = self.get_subject(subject_id)
        if subject is None:
            raise NotFoundError(f"Subject not found: {subject_id}")
        return subject

    def require_collection(self, collection_id: int) -> Collection:
        collection = self.get_collection(collection_id)
        if collection is None:
            raise NotFoundError(f"Collection not found: {collection_id}")
        return collection

    # ── Reviews ──────────────────────────────────────────────────────────

    def insert_review(self, review: Review) -> Review:
        with self._lock:
            if review.id <= 0:
                review = review.model_copy(update={"id": self._next_id("review")})
            self._reviews[review.id] = review
            return review

    def fetch_review_by_id(self, review_id: int) -> Review | None:
        return self._reviews.get(review_id)

    def increase_like_count(self, review_id: int) -> int:
        """Return the number of rows touched, 0 when the review is missing or hidden."""
        with self._lock:
            review = self._reviews.get(review_id)
            if review is None or review.status != "active":
                return 0
            review.like_count += 1
            return 1

    def set_review_status(self, review_id: int, status: str) -> int:
        with self._lock:
            review = self._reviews.get(review_id)
            if review is None:
                return 0
            review.status = status
            return 1

    def _active_in(self, collection_id: int) -> list[Review]:
        return [
            r for r in self._reviews.values()
            if r.collection_id == collection_id and r.status == "active"
        ]

    def fetch_active_reviews_by_popularity(self, collection_id: int, limit: int) -> list[Review]:
        with self._lock:
            return sorted(self._active_in(collection_id), key=popularity_key)[:limit]

    def fetch_active_reviews_by_text_match(
        self, collection_id: int, substring: str, limit: int
    ) -> list[Review]:
        needle = substring.lower()
        with self._lock:
            matched = [r for r in self._active_in(collection_id) if needle in r.content.lower()]
            return sorted(matched, key=popularity_key)[:limit]

    def list_reviews(self, collection_id: int, offset: int, limit: int) -> list[Review]:
        with self._lock:
            rows = [r for r in self._reviews.values() if r.collection_id == collection_id]
            rows.sort(key=lambda r: (r.created_at, r.id), reverse=True)
            return rows[offset:offset + limit]

    def count_reviews(self, collection_id: int) -> int:
        with self._lock:
            return sum(1 for r in self._reviews.values() if r.collection_id == collection_id)

    # ── Keyword index ────────────────────────────────────────────────────

    def insert_keyword_entries(self, entries: Iterable[KeywordEntry]) -> int:
        with self._lock:
            count = 0
            for entry in entries:
                self._keyword_entries.append(entry)
                self._keyword_index[entry.keyword.lower()].append(entry.review_id)
                count += 1
            return count

    def lookup_keyword_index(self, collection_id: int, keyword: str, limit: int) -> list[int]:
        with self._lock:
            ids: list[int] = []
            for review_id in self._keyword_index.get(keyword.lower(), []):
                review = self._reviews.get(review_id)
                if review is None or review.collection_id != collection_id:
                    continue
                if review_id not in ids:
                    ids.append(review_id)
                if len(ids) >= limit:
                    break
            return ids

    def keywords_of_review(self, review_id: int) -> list[KeywordEntry]:
        with self._lock:
            return [e for e in self._keyword_entries if e.review_id == review_id]

    # ── Tags & bindings ──────────────────────────────────────────────────

    def create_tag(self, name: str, scope: TagScope) -> Tag:
        with self._lock:
            tag = Tag(id=self._next_id("tag"), name=name, scope=scope)
            self._tags[tag.id] = tag
            return tag

    def get_tag(self, tag_id: int) -> Tag | None:
        return self._tags.get(tag_id)

    def list_tags(self, scope: str | None = None) -> list[Tag]:
        with self._lock:
            return [t for t in self._tags.values() if scope is None or t.scope == scope]

    def _owner_lock(self, kind: OwnerKind, owner_id: int) -> threading.Lock:
        # One lock per owner ever tagged; never evicted, bounded by the owner count.
        with self._lock:
            return self._owner_locks.setdefault((kind, owner_id), threading.Lock())

    def replace_bindings(self, kind: OwnerKind, owner_id: int, tag_ids: Iterable[int]) -> list[Binding]:
        """Drop every binding of the owner, then bind ``tag_ids`` once each."""
        with self._owner_lock(kind, owner_id):
            now = datetime.now(timezone.utc)
            bindings: list[Binding] = []
            seen: set[int] = set()
            for tag_id in tag_ids:
                if tag_id in seen:
                    continue
                seen.add(tag_id)
                bindings.append(Binding(owner_id=owner_id, tag_id=tag_id, weight=1.0, updated_at=now))
            with self._lock:
                self._bindings[kind].pop(owner_id, None)
                if bindings:
                    self._bindings[kind][owner_id] = bindings
            return list(bindings)

    def bindings_of(self, kind: OwnerKind, owner_id: int) -> list[Binding]:
        with self._lock:
            return list(self._bindings[kind].get(owner_id, []))

    def tags_of(self, kind: OwnerKind, owner_id: int) -> list[Tag]:
        with self._lock:
            tags = (self._tags.get(b.tag_id) for b in self._bindings[kind].get(owner_id, []))
            return [t for t in tags if t is not None]

    def fetch_tags_for_subject(self, subject_id: int) -> list[str]:
        return [t.name for t in self.tags_of("subject", subject_id)]

    def fetch_tags_for_collection(self, collection_id: int) -> list[str]:
        return [t.name for t in self.tags_of("collection", collection_id)]

    # ── Interactions ─────────────────────────────────────────────────────

    def add_interaction(
        self,
        subject_id: int,
        collection_id: int,
        amount: float,
        visit_time: datetime,
        items: str = "",
    ) -> Interaction:
        # Stored visit_time is always UTC; naive input is read as UTC.
        if visit_time.tzinfo is None:
            visit_time = visit_time.replace(tzinfo=timezone.utc)
        else:
            visit_time = visit_time.astimezone(timezone.utc)
        with self._lock:
            interaction = Interaction(
                id=self._next_id("interaction"),
                subject_id=subject_id,
                collection_id=collection_id,
                amount=amount,
                visit_time=visit_time,
                items=items,
            )
            self._interactions.append(interaction)
            return interaction

    def fetch_latest_interaction(self, subject_id: int, collection_id: int) -> Interaction | None:
        with self._lock:
            rows = [
                i for i in self._interactions
                if i.subject_id == subject_id and i.collection_id == collection_id
            ]
            if not rows:
                return None
            return max(rows, key=lambda i: (i.visit_time, i.id))


_store: ReviewStore | None = None


def get_store() -> ReviewStore:
    """Return the process-wide store, creating it on first call."""
    global _store
    if _store is None:
        _store = ReviewStore()
    return _store


def reset_store() -> ReviewStore:
    global _store
    _store = ReviewStore()
    return _store
