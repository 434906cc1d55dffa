"""
Pipeline Stages Module
======================
Implements the individual ranking stages.

Stages:
1. QueryAnalysisStage - Analyze the search text (search only)
2. CandidateFilterStage - Pre-filter the pool and build the scoring context
3. SignalExtractionStage - Run the strategies (optionally on a thread pool)
4. CombineStage - Blend strategy lists into combined scores
5. DiversityStage - Penalize repeated categories and creators (feed only)
6. FinalRankStage - Apply boosts, sort and truncate
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime
from typing import Optional, List

from .base import RankingStage, ConditionalStage
from .context import RankingContext
from ..models import ContentItem, StrategyResult, as_utc
from ..query import QueryAnalyzer
from ..signals import ScoringContext, SignalStrategy, get_strategy, behavioural_strategies
from ..ranking import StrategyCombiner, DiversityReranker, FinalRanker
from ..logging_config import log_strategy_result

logger = logging.getLogger(__name__)


# =============================================================================
# STAGE 1: QUERY ANALYSIS
# =============================================================================

class QueryAnalysisStage(ConditionalStage):
    """
    Analyze the raw search text.

    Reads:
        - context.query_text

    Writes:
        - context.query
    """

    def __init__(self, analyzer: Optional[QueryAnalyzer] = None):
        self.analyzer = analyzer or QueryAnalyzer()

    @property
    def name(self) -> str:
        return "query_analysis"

    @property
    def description(self) -> str:
        return "Detect category, intent, difficulty and key phrases of the query"

    def should_run(self, context: RankingContext) -> bool:
        return context.is_search

    def _execute(self, context: RankingContext) -> None:
        context.query = self.analyzer.analyze(context.query_text)

    def _get_output_summary(self, context: RankingContext) -> str:
        q = context.query
        return f"category={q.category}, intent={q.intent.value}, phrases={len(q.key_phrases)}"


# =============================================================================
# STAGE 2: CANDIDATE FILTER
# =============================================================================

class CandidateFilterStage(RankingStage):
    """
    Pre-filter candidates and build the scoring context.

    Feeds keep approved, non-private items published at or before `now`,
    minus watched items when the options ask for it. Search scores the
    pool as supplied. A repeated id keeps its first occurrence. Viewing
    history is resolved against the full, unfiltered candidate list.

    Reads:
        - context.candidates, context.viewer, context.options, context.query

    Writes:
        - context.pool
        - context.scoring
    """

    output_field = "pool"

    @property
    def name(self) -> str:
        return "candidate_filter"

    @property
    def description(self) -> str:
        return "Drop unrankable candidates and resolve viewing history"

    def _execute(self, context: RankingContext) -> None:
        if context.candidates is None:
            raise ValueError("No candidate list supplied")

        candidates = list(context.candidates)
        for item in candidates:
            if not isinstance(item, ContentItem):
                raise TypeError(f"Candidate is not a ContentItem: {type(item).__name__}")

        candidates = self._first_occurrences(candidates)

        if context.is_search:
            pool = candidates
        else:
            now = as_utc(context.now)
            pool = [item for item in candidates if self._is_published(item, now)]

            if context.options.exclude_watched and context.viewer is not None:
                watched = context.viewer.watched_ids
                pool = [item for item in pool if item.id not in watched]

        context.pool = pool
        context.scoring = ScoringContext.build(
            context.viewer,
            candidates,
            now=context.now,
            query=context.query
        )

    @staticmethod
    def _first_occurrences(candidates: List[ContentItem]) -> List[ContentItem]:
        """Keep the first item for each id."""
        seen = set()
        unique = []
        for item in candidates:
            if item.id in seen:
                continue
            seen.add(item.id)
            unique.append(item)
        if len(unique) < len(candidates):
            logger.debug(f"Dropped {len(candidates) - len(unique)} duplicate candidates")
        return unique

    @staticmethod
    def _is_published(item: ContentItem, now: datetime) -> bool:
        if not item.is_approved or item.is_private or item.published_at is None:
            return False
        if not isinstance(item.published_at, datetime):
            raise TypeError(f"Item {item.id} has malformed published_at: {item.published_at!r}")
        return as_utc(item.published_at) <= now

    def _get_output_summary(self, context: RankingContext) -> str:
        return f"{len(context.pool)} rankable candidates"


# =============================================================================
# STAGE 3: SIGNAL EXTRACTION
# =============================================================================

class SignalExtractionStage(RankingStage):
    """
    Run every strategy over the filtered pool.

    A strategy that raises becomes a failed StrategyResult and contributes
    nothing; the stage itself does not fail. Results are stored in merge
    order even when strategies run in parallel.

    Reads:
        - context.pool, context.scoring, context.options

    Writes:
        - context.strategy_results
    """

    def __init__(self, strategies: Optional[List[SignalStrategy]] = None):
        self.strategies = strategies

    @property
    def name(self) -> str:
        return "signal_extraction"

    @property
    def description(self) -> str:
        return "Score candidates with each signal strategy"

    def _strategies_for(self, context: RankingContext) -> List[SignalStrategy]:
        if self.strategies is not None:
            return self.strategies
        if context.is_search:
            return [get_strategy('query_relevance', context.config)]
        return behavioural_strategies(context.options.include_popular, context.config)

    def _execute(self, context: RankingContext) -> None:
        strategies = self._strategies_for(context)
        ranking = context.config.ranking

        if context.is_search:
            limit = None
        else:
            limit = context.options.count * ranking.candidate_multiplier

        if ranking.parallel_strategies and len(strategies) > 1:
            context.strategy_results = self._extract_parallel(strategies, context, limit)
        else:
            context.strategy_results = [
                self._extract_one(strategy, context, limit) for strategy in strategies
            ]

    def _extract_one(
        self,
        strategy: SignalStrategy,
        context: RankingContext,
        limit: Optional[int]
    ) -> StrategyResult:
        try:
            scored = strategy.score(context.scoring, context.pool, limit)
        except Exception as e:
            result = StrategyResult.failure(strategy.name, e)
            log_strategy_result(
                strategy.name, 0, error=result.error,
                request_id=context.request_id, config=context.config
            )
            return result

        log_strategy_result(
            strategy.name, len(scored), request_id=context.request_id, config=context.config
        )
        return StrategyResult(strategy=strategy.name, scored=scored)

    def _extract_parallel(
        self,
        strategies: List[SignalStrategy],
        context: RankingContext,
        limit: Optional[int]
    ) -> List[StrategyResult]:
        """Run strategies on a thread pool, collecting results in submission order."""
        workers = min(context.config.ranking.max_workers, len(strategies))
        with ThreadPoolExecutor(max_workers=max(1, workers)) as executor:
            futures = [
                executor.submit(self._extract_one, strategy, context, limit)
                for strategy in strategies
            ]
            return [future.result() for future in futures]

    def _get_output_summary(self, context: RankingContext) -> str:
        parts = [f"{r.strategy}={len(r)}" for r in context.strategy_results]
        failed = context.failed_strategies
        if failed:
            parts.append(f"failed={','.join(failed)}")
        return ", ".join(parts) or "no strategies"


# =============================================================================
# STAGE 4: COMBINE
# =============================================================================

class CombineStage(RankingStage):
    """
    Blend strategy results.

    Search uses query relevance directly as the combined score.

    Reads:
        - context.strategy_results

    Writes:
        - context.combined
    """

    output_field = "combined"

    @property
    def name(self) -> str:
        return "combine"

    @property
    def description(self) -> str:
        return "Blend rank-weighted strategy lists into combined scores"

    def _execute(self, context: RankingContext) -> None:
        combiner = StrategyCombiner(config=context.config)

        if context.is_search:
            results = context.strategy_results
            context.combined = combiner.from_single(results[0]) if results else []
        else:
            context.combined = combiner.combine(context.strategy_results)

    def _get_output_summary(self, context: RankingContext) -> str:
        return f"{len(context.combined)} combined items"


# =============================================================================
# STAGE 5: DIVERSITY
# =============================================================================

class DiversityStage(ConditionalStage):
    """
    Penalize repeated categories and creators (feed only).

    Reads:
        - context.combined, context.options.diversity_factor

    Writes:
        - context.diversified
    """

    output_field = "diversified"

    @property
    def name(self) -> str:
        return "diversity"

    @property
    def description(self) -> str:
        return "Apply category and creator repetition penalties"

    def should_run(self, context: RankingContext) -> bool:
        return not context.is_search

    def _skip(self, context: RankingContext) -> None:
        context.diversified = list(context.combined)

    def _execute(self, context: RankingContext) -> None:
        reranker = DiversityReranker(context.config)
        context.diversified = reranker.rerank(context.combined, context.options.diversity_factor)

    def _get_output_summary(self, context: RankingContext) -> str:
        return f"kept {len(context.diversified)} of {len(context.combined)}"


# =============================================================================
# STAGE 6: FINAL RANK
# =============================================================================

class FinalRankStage(RankingStage):
    """
    Produce the final ordering.

    Feeds get the duration and quality boosts and are truncated to the
    requested count; search results keep their relevance order.

    Reads:
        - context.diversified, context.viewer, context.options

    Writes:
        - context.ranked
    """

    output_field = "ranked"

    @property
    def name(self) -> str:
        return "final_rank"

    @property
    def description(self) -> str:
        return "Apply secondary boosts, sort and truncate"

    def _execute(self, context: RankingContext) -> None:
        if context.is_search:
            for scored in context.diversified:
                scored.final_score = scored.combined_score
            context.ranked = list(context.diversified)
            return

        ranker = FinalRanker(context.config)
        context.ranked = ranker.rank(context.diversified, context.viewer, context.options.count)

    def _get_output_summary(self, context: RankingContext) -> str:
        return f"{len(context.ranked)} ranked items"


FEED_STAGES = (
    CandidateFilterStage,
    SignalExtractionStage,
    CombineStage,
    DiversityStage,
    FinalRankStage,
)

SEARCH_STAGES = (
    QueryAnalysisStage,
    CandidateFilterStage,
    SignalExtractionStage,
    CombineStage,
    DiversityStage,
    FinalRankStage,
)
