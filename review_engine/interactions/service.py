from __future__ import annotations

import logging
from datetime import datetime

from ..recommendations.data_store import ReviewStore, get_store
from ..recommendations.models import Interaction

logger = logging.getLogger(__name__)


def record_interaction(
    subject_id: int,
    collection_id: int,
    amount: float,
    visit_time: datetime,
    items: str = "",
    store: ReviewStore | None = None,
) -> Interaction:
    """
    Record a visit of a subject at a collection.

    Raises NotFoundError for an unknown subject or collection. The stored
    visit_time is in UTC, with naive values read as UTC.
    """
    store = store or get_store()
    store.require_subject(subject_id)
    store.require_collection(collection_id)
    interaction = store.add_interaction(subject_id, collection_id, amount, visit_time, items)
    logger.debug(
        "Recorded interaction %s subject=%s collection=%s",
        interaction.id, subject_id, collection_id,
    )
    return interaction

