"""
Ranking Pipeline Module
=======================
Main pipeline class that composes and runs all stages.

Usage:
    from feedrank.pipeline import RankingPipeline, RankingContext

    pipeline = RankingPipeline.for_feed()
    context = RankingContext(candidates=items, viewer=viewer)
    ranked = pipeline.run(context)
"""

import time
from typing import Optional, List

from .context import RankingContext, FEED, SEARCH
from .base import RankingStage
from .stages import SignalExtractionStage, FEED_STAGES, SEARCH_STAGES
from ..models import RankedList
from ..signals import SignalStrategy
from ..logging_config import get_pipeline_logger


class PipelineError(RuntimeError):
    """A ranking stage failed; the caller should serve a degraded result."""

    def __init__(self, stage_name: str, message: Optional[str] = None):
        self.stage_name = stage_name
        self.message = message
        super().__init__(f"Ranking pipeline failed at stage {stage_name}: {message}")


class RankingPipeline:
    """
    Runs ranking stages in sequence over one RankingContext.

    The first failed stage aborts the run with PipelineError.
    """

    def __init__(self, stages: List[RankingStage]):
        """
        Initialize the pipeline.

        Args:
            stages: Stage instances, in execution order
        """
        self.stages = stages

    @classmethod
    def for_feed(cls, strategies: Optional[List[SignalStrategy]] = None) -> "RankingPipeline":
        """Default personalised-feed pipeline; `strategies` overrides the feed strategies."""
        return cls(_build_stages(FEED_STAGES, strategies))

    @classmethod
    def for_search(cls, strategies: Optional[List[SignalStrategy]] = None) -> "RankingPipeline":
        """Default search pipeline."""
        return cls(_build_stages(SEARCH_STAGES, strategies))

    @classmethod
    def for_mode(cls, mode: str, strategies: Optional[List[SignalStrategy]] = None) -> "RankingPipeline":
        if mode == SEARCH:
            return cls.for_search(strategies)
        if mode == FEED:
            return cls.for_feed(strategies)
        raise ValueError(f"Unknown ranking mode: {mode}")

    def run(self, context: RankingContext) -> RankedList:
        """
        Run every stage and package the result.

        Args:
            context: Context holding the request inputs

        Returns:
            RankedList built from context.ranked

        Raises:
            PipelineError: If any stage fails
        """
        start_time = time.perf_counter()

        for stage in self.stages:
            if not stage.run(context):
                failed = context.stage_results[-1]
                raise PipelineError(stage.name, failed.error_message)

        ranked = context.finalize()
        funnel = " -> ".join(
            f"{r.stage_name}={r.items_out}" for r in context.stage_results if r.items_out is not None
        )
        get_pipeline_logger(context.request_id).debug(
            f"Pipeline {context.mode} completed in "
            f"{(time.perf_counter() - start_time) * 1000:.1f}ms ({funnel})"
        )
        return ranked

    def get_stage(self, name: str) -> Optional[RankingStage]:
        """Get a stage by name."""
        for stage in self.stages:
            if stage.name == name:
                return stage
        return None

    @property
    def stage_names(self) -> List[str]:
        """Get list of all stage names in order."""
        return [stage.name for stage in self.stages]


def _build_stages(stage_classes, strategies: Optional[List[SignalStrategy]]) -> List[RankingStage]:
    stages = []
    for stage_class in stage_classes:
        if stage_class is SignalExtractionStage:
            stages.append(SignalExtractionStage(strategies))
        else:
            stages.append(stage_class())
    return stages
