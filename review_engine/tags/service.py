from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from ..recommendations.data_store import NotFoundError, ReviewStore, get_store
from ..recommendations.models import Binding, Tag, TagScope

logger = logging.getLogger(__name__)


class TagCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=64)
    scope: TagScope


class AssignTagsRequest(BaseModel):
    tag_ids: list[int] = Field(default_factory=list)


def create_tag(name: str, scope: str, store: ReviewStore | None = None) -> Tag:
    store = store or get_store()
    return store.create_tag(name.strip(), scope)


def list_tags(scope: str | None = None, store: ReviewStore | None = None) -> list[Tag]:
    store = store or get_store()
    return store.list_tags(scope)


def _check_tags(store: ReviewStore, tag_ids: list[int]) -> None:
    for tag_id in tag_ids:
        if store.get_tag(tag_id) is None:
            raise NotFoundError(f"Tag not found: {tag_id}")


def assign_tags_to_subject(
    subject_id: int, tag_ids: list[int] | None, store: ReviewStore | None = None
) -> list[Binding]:
    """Replace the subject's whole tag set; an empty list clears it."""
    store = store or get_store()
    store.require_subject(subject_id)
    tag_ids = list(tag_ids or [])
    _check_tags(store, tag_ids)
    bindings = store.replace_bindings("subject", subject_id, tag_ids)
    logger.info("Subject %s now bound to tags %s", subject_id, [b.tag_id for b in bindings])
    return bindings


def assign_tags_to_collection(
    collection_id: int, tag_ids: list[int] | None, store: ReviewStore | None = None
) -> list[Binding]:
    """Replace the collection's whole tag set; an empty list clears it."""
    store = store or get_store()
    store.require_collection(collection_id)
    tag_ids = list(tag_ids or [])
    _check_tags(store, tag_ids)
    bindings = store.replace_bindings("collection", collection_id, tag_ids)
    logger.info("Collection %s now bound to tags %s", collection_id, [b.tag_id for b in bindings])
    return bindings


def list_tags_of_subject(subject_id: int, store: ReviewStore | None = None) -> list[Tag]:
    store = store or get_store()
    return store.tags_of("subject", subject_id)


def list_tags_of_collection(collection_id: int, store: ReviewStore | None = None) -> list[Tag]:
    store = store or get_store()
    return store.tags_of("collection", collection_id)


def format_tag_names(names: list[str]) -> str:
    """Join non-blank tag names for display, e.g. ``"spicy lover, night owl"``."""
    return ", ".join(n for n in names if n and n.strip())
