"""
Pipeline Context Module
=======================
Defines the shared context that flows through all ranking stages.

The RankingContext holds:
- Input parameters (viewer, candidates, options or query, frozen time)
- Intermediate results (filtered pool, strategy results, combined items)
- Final outputs (ranked items)
- Execution metadata (timing, stage completion status)

A context lives for exactly one ranking call.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Any, List

from ..config import AppConfig, get_config
from ..models import (
    ContentItem,
    ViewerProfile,
    QueryContext,
    RecommendationOptions,
    ScoredItem,
    StrategyResult,
    RankedList,
    RankingSource,
    generate_request_id,
    utc_now,
)
from ..signals import ScoringContext

logger = logging.getLogger(__name__)

FEED = "feed"
SEARCH = "search"


@dataclass
class StageResult:
    """Result of a single pipeline stage execution."""
    stage_name: str
    success: bool
    duration_seconds: float
    error_message: Optional[str] = None
    output_summary: Optional[str] = None
    items_out: Optional[int] = None
    failed_strategies: int = 0


@dataclass
class RankingContext:
    """
    Shared context that flows through all ranking stages.

    Each stage reads what it needs and writes its outputs.

    Attributes:
        # Input parameters
        mode: "feed" or "search"
        candidates: Candidate pool exactly as supplied by the caller
        viewer: Viewer profile (required for feeds, optional for search)
        options: Feed options
        query_text: Raw search text
        now: Frozen current time shared by every stage
        config: Configuration to use for this call

        # Intermediate results
        query: Analyzed query (search only)
        pool: Candidates that passed the pre-filter
        scoring: ScoringContext handed to strategies
        strategy_results: One result per strategy, in merge order
        combined: Items after strategy combination
        diversified: Items after the diversity penalty

        # Final output
        ranked: Final ordered items

        # Execution tracking
        request_id: Unique identifier for this call
        stage_results: Timing and status for each stage
    """

    # Input parameters
    mode: str = FEED
    candidates: Any = None
    viewer: Optional[ViewerProfile] = None
    options: RecommendationOptions = field(default_factory=RecommendationOptions)
    query_text: Optional[str] = None
    now: datetime = field(default_factory=utc_now)
    config: AppConfig = field(default_factory=get_config)

    # Intermediate results
    query: Optional[QueryContext] = None
    pool: List[ContentItem] = field(default_factory=list)
    scoring: Optional[ScoringContext] = None
    strategy_results: List[StrategyResult] = field(default_factory=list)
    combined: List[ScoredItem] = field(default_factory=list)
    diversified: List[ScoredItem] = field(default_factory=list)

    # Final output
    ranked: List[ScoredItem] = field(default_factory=list)

    # Execution tracking
    request_id: str = field(default_factory=generate_request_id)
    stage_results: List[StageResult] = field(default_factory=list)

    @property
    def is_search(self) -> bool:
        return self.mode == SEARCH

    @property
    def limit(self) -> Optional[int]:
        """Output size bound: options.count for feeds, unbounded for search."""
        return None if self.is_search else self.options.count

    @property
    def total_duration_seconds(self) -> float:
        """Get total pipeline execution time."""
        return sum(r.duration_seconds for r in self.stage_results)

    @property
    def successful_stages(self) -> List[str]:
        """Get list of successfully completed stage names."""
        return [r.stage_name for r in self.stage_results if r.success]

    @property
    def failed_stages(self) -> List[str]:
        """Get list of failed stage names."""
        return [r.stage_name for r in self.stage_results if not r.success]

    @property
    def failed_strategies(self) -> List[str]:
        return [r.strategy for r in self.strategy_results if not r.ok]

    def record_stage(
        self,
        stage_name: str,
        success: bool,
        duration: float,
        error: Optional[str] = None,
        summary: Optional[str] = None,
        items_out: Optional[int] = None,
        failed_strategies: int = 0
    ) -> None:
        """Record the result of a stage execution."""
        self.stage_results.append(StageResult(
            stage_name=stage_name,
            success=success,
            duration_seconds=duration,
            error_message=error,
            output_summary=summary,
            items_out=items_out,
            failed_strategies=failed_strategies
        ))

    def finalize(self) -> RankedList:
        """Package the ranked items into a bounded, de-duplicated RankedList."""
        return RankedList.build(
            self.ranked,
            limit=self.limit,
            source=RankingSource.SEARCH if self.is_search else RankingSource.PIPELINE,
        )

    def summary(self) -> dict:
        """Execution summary for logging."""
        return {
            'request_id': self.request_id,
            'mode': self.mode,
            'pool_size': len(self.pool),
            'ranked': len(self.ranked),
            'failed_strategies': self.failed_strategies,
            'stage_items': {
                r.stage_name: r.items_out for r in self.stage_results if r.items_out is not None
            },
            'duration_ms': round(self.total_duration_seconds * 1000, 2),
        }
