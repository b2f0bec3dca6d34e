"""Ranking services"""

from .relevance_ranker import (
    RelevanceRanker,
    RankingPlan,
    Ordering,
    SortKey,
    tokenize,
)

__all__ = ["RelevanceRanker", "RankingPlan", "Ordering", "SortKey", "tokenize"]
