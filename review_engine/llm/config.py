from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class LLMConfig:
    provider: str = os.getenv("LLM_PROVIDER", "groq")  # "groq" or "mock"
    api_key: str = os.getenv("GROQ_API_KEY", "")
    model: str = os.getenv("GROQ_MODEL", "llama-3.3-70b-versatile")
    timeout: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "8.0"))
    max_tokens: int = 200
    temperature: float = 0.7
    log_truncate: int = 500

    def resolved_api_key(self) -> str:
        return (self.api_key or os.getenv("GROQ_API_KEY", "")).strip()


DEFAULT_LLM_CONFIG = LLMConfig()
