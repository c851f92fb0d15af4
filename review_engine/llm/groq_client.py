from __future__ import annotations

import asyncio
import logging

from groq import Groq

from .config import DEFAULT_LLM_CONFIG, LLMConfig

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You write short, honest customer reviews for restaurants and shops. "
    "Reply with the review text only."
)


class ExternalCallFailure(Exception):
    """Raised when the generation call times out, errors or returns nothing usable."""


def _complete(prompt: str, config: LLMConfig) -> str:
    client = Groq(api_key=config.resolved_api_key(), timeout=config.timeout, max_retries=0)
    response = client.chat.completions.create(
        model=config.model,
        messages=[
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ],
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
    content = response.choices[0].message.content
    if not isinstance(content, str) or not content.strip():
        raise ValueError("Empty completion content")
    return content.strip()


async def invoke_generation(prompt: str, config: LLMConfig = DEFAULT_LLM_CONFIG) -> str:
    """
    Call Groq with a hard timeout.

    Any failure (timeout, API error, empty or malformed response) is raised
    as ExternalCallFailure.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(_complete, prompt, config),
            timeout=config.timeout,
        )
    except asyncio.TimeoutError as exc:
        raise ExternalCallFailure(
            f"Generation timed out after {config.timeout}s"
        ) from exc
    except Exception as exc:
        raise ExternalCallFailure(f"Generation failed: {exc}") from exc
