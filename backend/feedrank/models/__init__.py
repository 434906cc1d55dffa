"""
Data Models Package
===================
Exports all data model classes for the feedrank engine.

Usage:
    from feedrank.models import ContentItem, ViewerProfile, RankedList
    from feedrank.models import QueryContext, ScoredItem, StrategyResult
"""

from .schemas import (
    # Enums
    QueryIntent,
    InteractionType,
    RankingSource,

    # Base
    BaseModel,

    # Content and viewer
    ContentItem,
    HistoryEntry,
    ViewerProfile,

    # Query
    Sentiment,
    QueryContext,

    # Scoring
    StrategyScores,
    ScoredItem,
    StrategyResult,
    RankedList,

    # Requests and events
    RecommendationOptions,
    InteractionEvent,
    EngagementRecord,
    DisengagementReport,

    # Utilities
    parse_timestamp,
    as_utc,
    utc_now,
    generate_request_id,
)

__all__ = [
    # Enums
    'QueryIntent',
    'InteractionType',
    'RankingSource',

    # Base
    'BaseModel',

    # Content and viewer
    'ContentItem',
    'HistoryEntry',
    'ViewerProfile',

    # Query
    'Sentiment',
    'QueryContext',

    # Scoring
    'StrategyScores',
    'ScoredItem',
    'StrategyResult',
    'RankedList',

    # Requests and events
    'RecommendationOptions',
    'InteractionEvent',
    'EngagementRecord',
    'DisengagementReport',

    # Utilities
    'parse_timestamp',
    'as_utc',
    'utc_now',
    'generate_request_id',
]
