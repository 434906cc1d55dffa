"""
Ranking Package
===============
Turns per-strategy lists into the final ordered feed.

This package implements:
- Rank-weighted strategy blending
- Diversity re-ranking by category and creator
- Final boosts and truncation
- The fallback popularity ordering

Usage:
    from feedrank.ranking import StrategyCombiner, DiversityReranker, FinalRanker

    combined = StrategyCombiner().combine(results)
    diversified = DiversityReranker().rerank(combined, factor=0.3)
    final = FinalRanker().rank(diversified, viewer, count=20)
"""

from .combiner import StrategyCombiner, rank_weight, combine_results
from .diversity import DiversityReranker
from .ranker import FinalRanker, RankingSummary, summarize
from .fallback import FallbackSelector, fallback_ranking

__all__ = [
    'StrategyCombiner',
    'rank_weight',
    'combine_results',
    'DiversityReranker',
    'FinalRanker',
    'RankingSummary',
    'summarize',
    'FallbackSelector',
    'fallback_ranking',
]
