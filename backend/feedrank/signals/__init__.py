"""
Signal Extraction Package
=========================
Per-strategy candidate scoring for the personalised feed and search.

Usage:
    from feedrank.signals import ScoringContext, behavioural_strategies

    context = ScoringContext.build(viewer, candidates, now=now)
    for strategy in behavioural_strategies():
        pairs = strategy.score(context, candidates, limit=40)
"""

from .strategies import (
    StrategyWeights,
    ScoringContext,
    SignalStrategy,
    ContentAffinityStrategy,
    CollaborativeProxyStrategy,
    PopularityStrategy,
    TemporalStrategy,
    QueryRelevanceStrategy,
    STRATEGY_ORDER,
    get_strategy,
    behavioural_strategies,
    resolve_history,
)

__all__ = [
    'StrategyWeights',
    'ScoringContext',
    'SignalStrategy',
    'ContentAffinityStrategy',
    'CollaborativeProxyStrategy',
    'PopularityStrategy',
    'TemporalStrategy',
    'QueryRelevanceStrategy',
    'STRATEGY_ORDER',
    'get_strategy',
    'behavioural_strategies',
    'resolve_history',
]
