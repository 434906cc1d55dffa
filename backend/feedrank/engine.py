"""
Ranking Engine Module
=====================
Public entry points of the ranking engine.

The engine is a plain value: build one with a configuration and call it.
It holds no per-request state, so one instance can serve concurrent calls.

Usage:
    from feedrank.engine import RankingEngine

    engine = RankingEngine()
    feed = engine.compute_recommendations(viewer, candidates)
    hits = engine.compute_search_relevance("what is gravity", candidates)

Both ranking entry points always return a RankedList. When the pipeline
fails the feed falls back to the popularity ordering and search falls back
to a plain substring match; either way `degraded` is set on the result.
"""

from datetime import datetime
from typing import Optional, List, Dict, Any, Iterable

from .config import AppConfig, get_config
from .models import (
    ContentItem,
    ViewerProfile,
    RecommendationOptions,
    RankedList,
    RankingSource,
    ScoredItem,
    InteractionEvent,
    InteractionType,
    utc_now,
)
from .pipeline import RankingPipeline, RankingContext, PipelineError, FEED, SEARCH
from .query import generate_search_suggestions, basic_search
from .ranking import FallbackSelector, summarize
from .signals import SignalStrategy
from .signals.normalizers import as_number, days_since
from .logging_config import get_engine_logger, log_ranking_decision, log_fallback

logger = get_engine_logger("engine")

EXPLAIN_POPULAR_VIEWS = 10000
EXPLAIN_ENGAGING_RATE = 10
EXPLAIN_RECENT_DAYS = 3


class RankingEngine:
    """
    Multi-signal ranking engine.

    Operations:
    - compute_recommendations: personalised feed
    - compute_search_relevance: query relevance ranking
    - record_interaction: build an interaction event
    - explain: human-readable reasons for a recommendation
    - search_suggestions: typeahead completions
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        strategies: Optional[List[SignalStrategy]] = None
    ):
        """
        Initialize the engine.

        Args:
            config: Configuration to use. If None, uses global config.
            strategies: Feed strategies to use instead of the default four
        """
        self.config = config or get_config()
        self.strategies = strategies
        self.fallback = FallbackSelector(self.config)

    def default_options(self) -> RecommendationOptions:
        ranking = self.config.ranking
        return RecommendationOptions(
            count=ranking.default_count,
            diversity_factor=ranking.default_diversity_factor,
        )

    # =========================================================================
    # FEED
    # =========================================================================

    def compute_recommendations(
        self,
        viewer: Optional[ViewerProfile],
        candidates: Iterable[ContentItem],
        options: Optional[RecommendationOptions] = None,
        now: Optional[datetime] = None
    ) -> RankedList:
        """
        Rank candidates into a personalised feed.

        Args:
            viewer: Viewer profile; without one the fallback ordering is served
            candidates: Candidate pool
            options: Feed options (count, exclude_watched, diversity, popularity)
            now: Frozen current time (defaults to now, UTC)

        Returns:
            RankedList of at most options.count unique items
        """
        options = options or self.default_options()
        now = now or utc_now()
        candidates = _materialize(candidates)

        if viewer is None:
            return self._serve_fallback(candidates, options.count, "no viewer profile")

        context = RankingContext(
            mode=FEED,
            candidates=candidates,
            viewer=viewer,
            options=options,
            now=now,
            config=self.config,
        )

        try:
            ranked = RankingPipeline.for_feed(self.strategies).run(context)
        except PipelineError as e:
            return self._serve_fallback(candidates, options.count, str(e), context.request_id)
        except Exception as e:
            logger.exception(f"Unexpected ranking failure for request {context.request_id}")
            return self._serve_fallback(candidates, options.count, f"{type(e).__name__}: {e}",
                                        context.request_id)

        self._log_ranked("feed_ranked", context, ranked)
        return ranked

    # =========================================================================
    # SEARCH
    # =========================================================================

    def compute_search_relevance(
        self,
        query: Optional[str],
        candidates: Iterable[ContentItem],
        viewer: Optional[ViewerProfile] = None,
        now: Optional[datetime] = None
    ) -> RankedList:
        """
        Rank candidates by relevance to a query.

        Every item scoring above the relevance threshold is returned, best
        first, without truncation.

        Args:
            query: Search text
            candidates: Candidate pool
            viewer: Optional viewer profile for profile relevance
            now: Frozen current time (defaults to now, UTC)

        Returns:
            RankedList with source "search", or "basic_search" when degraded
        """
        now = now or utc_now()
        candidates = _materialize(candidates)
        context = RankingContext(
            mode=SEARCH,
            candidates=candidates,
            viewer=viewer,
            query_text=query,
            now=now,
            config=self.config,
        )

        try:
            ranked = RankingPipeline.for_search().run(context)
        except PipelineError as e:
            return self._serve_basic_search(query, candidates, str(e), context.request_id)
        except Exception as e:
            logger.exception(f"Unexpected search failure for request {context.request_id}")
            return self._serve_basic_search(query, candidates, f"{type(e).__name__}: {e}",
                                            context.request_id)

        self._log_ranked("search_ranked", context, ranked)
        return ranked

    def search_suggestions(
        self,
        partial: Optional[str],
        candidates: Iterable[ContentItem] = (),
        limit: Optional[int] = None
    ) -> List[str]:
        """Typeahead suggestions for a partial query."""
        if limit is None:
            limit = self.config.search.max_suggestions
        return generate_search_suggestions(partial, self.fallback.usable(candidates), limit)

    # =========================================================================
    # INTERACTIONS AND EXPLANATIONS
    # =========================================================================

    def record_interaction(
        self,
        viewer_id: str,
        item_id: str,
        interaction_type: Any,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None
    ) -> InteractionEvent:
        """
        Build an interaction event. Persisting it is up to the caller.

        Raises:
            ValueError: If the interaction type is unknown
        """
        try:
            kind = InteractionType(
                interaction_type.lower() if isinstance(interaction_type, str) else interaction_type
            )
        except ValueError:
            valid = ", ".join(t.value for t in InteractionType)
            raise ValueError(f"Unknown interaction type: {interaction_type!r} (expected one of {valid})") from None

        event = InteractionEvent(
            viewer_id=viewer_id,
            item_id=item_id,
            type=kind,
            timestamp=now or utc_now(),
            metadata=dict(metadata or {}),
        )
        log_ranking_decision("interaction_recorded", {
            'viewer_id': viewer_id,
            'item_id': item_id,
            'type': kind.value,
        }, config=self.config)
        return event

    def explain(
        self,
        item: ContentItem,
        viewer: Optional[ViewerProfile],
        now: Optional[datetime] = None
    ) -> str:
        """
        Human-readable reasons an item was recommended.

        Returns:
            Reasons joined with ", ", or "Recommended for you"
        """
        reasons = []

        if viewer is not None and item.category in viewer.interests:
            reasons.append(f"Matches your interest in {item.category}")

        if as_number(item.views) > EXPLAIN_POPULAR_VIEWS:
            reasons.append("Popular content")

        if as_number(item.engagement_rate) > EXPLAIN_ENGAGING_RATE:
            reasons.append("Highly engaging")

        days = days_since(item.published_at, now or utc_now())
        if days is not None and 0 <= days < EXPLAIN_RECENT_DAYS:
            reasons.append("Recently published")

        return ", ".join(reasons) if reasons else "Recommended for you"

    # =========================================================================
    # DEGRADED PATHS
    # =========================================================================

    def _serve_fallback(
        self,
        candidates: Any,
        count: Optional[int],
        reason: str,
        request_id: Optional[str] = None
    ) -> RankedList:
        ranked = self.fallback.select(candidates, count, error=reason)
        log_fallback(reason, len(ranked), request_id=request_id)
        return ranked

    def _serve_basic_search(
        self,
        query: Optional[str],
        candidates: Any,
        reason: str,
        request_id: Optional[str] = None
    ) -> RankedList:
        matches = basic_search(query, self.fallback.usable(candidates))
        ordered = sorted(matches, key=self.fallback.fallback_key, reverse=True)
        ranked = RankedList.build(
            [ScoredItem(item=item, final_score=self.fallback.fallback_key(item)) for item in ordered],
            source=RankingSource.BASIC_SEARCH,
            degraded=True,
            error=reason,
        )
        log_fallback(reason, len(ranked), request_id=request_id)
        return ranked

    def _log_ranked(self, decision: str, context: RankingContext, ranked: RankedList) -> None:
        details = context.summary()
        details['scores'] = summarize(ranked.items).to_dict()
        log_ranking_decision(decision, details, request_id=context.request_id, config=self.config)


def _materialize(candidates: Any) -> Any:
    """Read one-shot iterables once so the degraded paths see the same items."""
    if candidates is None or isinstance(candidates, (list, tuple)):
        return candidates
    try:
        return list(candidates)
    except TypeError:
        return candidates


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def compute_recommendations(
    viewer: Optional[ViewerProfile],
    candidates: Iterable[ContentItem],
    options: Optional[RecommendationOptions] = None,
    now: Optional[datetime] = None,
    config: Optional[AppConfig] = None
) -> RankedList:
    """Rank a personalised feed with a default engine."""
    return RankingEngine(config).compute_recommendations(viewer, candidates, options, now)


def compute_search_relevance(
    query: Optional[str],
    candidates: Iterable[ContentItem],
    viewer: Optional[ViewerProfile] = None,
    now: Optional[datetime] = None,
    config: Optional[AppConfig] = None
) -> RankedList:
    """Rank search results with a default engine."""
    return RankingEngine(config).compute_search_relevance(query, candidates, viewer, now)
