"""
Ranking Pipeline Package
========================
Composable stages that turn a request into a RankedList.

Usage:
    from feedrank.pipeline import RankingPipeline, RankingContext

    ranked = RankingPipeline.for_feed().run(RankingContext(candidates=items, viewer=viewer))
"""

from .context import RankingContext, StageResult, FEED, SEARCH
from .base import RankingStage, ConditionalStage
from .stages import (
    QueryAnalysisStage,
    CandidateFilterStage,
    SignalExtractionStage,
    CombineStage,
    DiversityStage,
    FinalRankStage,
    FEED_STAGES,
    SEARCH_STAGES,
)
from .pipeline import RankingPipeline, PipelineError

__all__ = [
    'RankingContext',
    'StageResult',
    'FEED',
    'SEARCH',
    'RankingStage',
    'ConditionalStage',
    'QueryAnalysisStage',
    'CandidateFilterStage',
    'SignalExtractionStage',
    'CombineStage',
    'DiversityStage',
    'FinalRankStage',
    'FEED_STAGES',
    'SEARCH_STAGES',
    'RankingPipeline',
    'PipelineError',
]
