"""
Review draft generation with a mandatory audit record.

Every call appends exactly one GenerationLogRecord, whether the draft came
from the mock strategy, a successful Groq call, or a failed one. Failures
are logged and then raised to the caller.
"""
from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from ..audit.log_store import GenerationLogRecord, GenerationLogStore, get_log_store
from ..recommendations.data_store import ReviewStore, get_store
from ..recommendations.models import Interaction
from ..tags.service import format_tag_names
from .config import DEFAULT_LLM_CONFIG, LLMConfig
from .groq_client import invoke_generation

logger = logging.getLogger(__name__)

CALL_TYPE_GENERATE = "generate"
MOCK_PREFIX = "[mock response] "

Strategy = Callable[[str, LLMConfig], Awaitable[str]]


def build_draft_prompt(
    subject_id: int,
    collection_id: int,
    context: str | None,
    latest: Interaction | None,
    subject_tags: list[str],
    collection_tags: list[str],
) -> str:
    if latest is None:
        visit = "no previous visit on record"
    else:
        visit = (
            f"last visit on {latest.visit_time.isoformat()}, "
            f"spent {latest.amount:.2f}, ordered {latest.items or 'n/a'}"
        )

    lines = [
        "Write a customer review based on the following information:",
        f"- User ID: {subject_id}",
        f"- Shop ID: {collection_id}",
        f"- User preference: {context.strip() if context and context.strip() else 'none'}",
        f"- User tags: {format_tag_names(subject_tags) or 'none'}",
        f"- Shop tags: {format_tag_names(collection_tags) or 'none'}",
        f"- Visit history: {visit}",
        "Requirements: sound genuine and concise, 50 to 120 words, "
        "no exaggerated or false claims.",
    ]
    return "\n".join(lines)


def truncate(text: str | None, max_len: int) -> str | None:
    if text is None or len(text) <= max_len:
        return text
    return text[:max_len] + "..."


async def _mock_generate(prompt: str, config: LLMConfig) -> str:
    return MOCK_PREFIX + prompt


def select_strategy(config: LLMConfig) -> Strategy:
    """Pick mock or remote once, before any call is made."""
    if config.provider.lower() == "mock" or not config.resolved_api_key():
        return _mock_generate
    return invoke_generation


async def generate_draft(
    subject_id: int,
    collection_id: int,
    context: str | None = None,
    store: ReviewStore | None = None,
    log_store: GenerationLogStore | None = None,
    config: LLMConfig = DEFAULT_LLM_CONFIG,
) -> str:
    """
    Generate a review draft for a subject at a collection.

    Raises NotFoundError for an unknown subject or collection, before any
    attempt is made or audited. Raises ExternalCallFailure after the failed
    attempt has been audited.
    """
    store = store or get_store()
    log_store = log_store or get_log_store()
    store.require_subject(subject_id)
    store.require_collection(collection_id)
    start = time.perf_counter()

    latest = store.fetch_latest_interaction(subject_id, collection_id)
    subject_tags = store.fetch_tags_for_subject(subject_id)
    collection_tags = store.fetch_tags_for_collection(collection_id)
    prompt = build_draft_prompt(
        subject_id, collection_id, context, latest, subject_tags, collection_tags
    )

    strategy = select_strategy(config)
    response: str | None = None
    error: str | None = None
    status = "success"
    try:
        response = await strategy(prompt, config)
        return response
    except Exception as exc:
        status = "failure"
        error = str(exc) or exc.__class__.__name__
        logger.error(
            "generate_draft failed, subject=%s collection=%s",
            subject_id, collection_id, exc_info=True,
        )
        raise
    finally:
        log_store.append(GenerationLogRecord(
            subject_id=subject_id,
            call_type=CALL_TYPE_GENERATE,
            prompt=prompt,
            response_ref=truncate(response if status == "success" else error, config.log_truncate),
            latency_ms=int((time.perf_counter() - start) * 1000),
            status=status,
        ))
