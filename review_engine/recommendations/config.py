from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class RecommendConfig:
    default_limit: int = 3
    min_limit: int = 1
    max_limit: int = 10
    like_weight: float = 2.0
    keyword_bonus: float = 5.0


DEFAULT_RECOMMEND_CONFIG = RecommendConfig()
