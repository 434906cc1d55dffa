"""
Feedrank
========
Multi-signal relevance and ranking engine for short-form content feeds.

Usage:
    from feedrank import RankingEngine, ContentItem, ViewerProfile

    engine = RankingEngine()
    feed = engine.compute_recommendations(viewer, candidates)
"""

from .engine import RankingEngine, compute_recommendations, compute_search_relevance
from .models import (
    ContentItem,
    HistoryEntry,
    ViewerProfile,
    RecommendationOptions,
    RankedList,
    ScoredItem,
)

__version__ = '1.0.0'

__all__ = [
    'RankingEngine',
    'compute_recommendations',
    'compute_search_relevance',
    'ContentItem',
    'HistoryEntry',
    'ViewerProfile',
    'RecommendationOptions',
    'RankedList',
    'ScoredItem',
]
