"""
Signal Strategies Module
========================
Independent scorers that each rank the candidate pool from one angle.

Every strategy follows the same contract: score each candidate on [0, 1],
keep scores strictly above the minimum (0.1 by default), sort descending
with ties kept in candidate order, and truncate to the requested limit.
The combiner only looks at list positions, so a strategy's absolute scale
matters only for the cut-off.

Behavioural strategies (personalised feed), in merge order:
1. ContentAffinityStrategy - declared interests, watch history, searches
2. CollaborativeProxyStrategy - popularity inside familiar categories
3. PopularityStrategy - views, like ratio, engagement, freshness
4. TemporalStrategy - time-of-day and weekday rules

Search:
5. QueryRelevanceStrategy - text match against the analyzed query

The "collaborative" strategy is a heuristic stand-in: it looks at no other
viewer's data, only at the item's popularity within the viewer's own
interest and history categories.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Optional, List, Tuple, Iterable, FrozenSet

from .normalizers import (
    clamp,
    as_number,
    days_since,
    recency_score,
    completion_ratio,
    log_view_score,
    duration_fit,
)
from ..models import ContentItem, HistoryEntry, ViewerProfile, QueryContext, utc_now
from ..query import QueryAnalyzer
from ..config import AppConfig, RankingConfig, get_config

logger = logging.getLogger(__name__)

ScoredPairs = List[Tuple[ContentItem, float]]


@dataclass
class StrategyWeights:
    """
    Blend weights for the behavioural strategies.

    The defaults (content=0.35, collaborative=0.25, popularity=0.25,
    temporal=0.15) sum to 1.0, so a blended score never leaves [0, 1] when
    every strategy ranks an item first.
    """

    content_affinity: float = 0.35
    collaborative: float = 0.25
    popularity: float = 0.25
    temporal: float = 0.15

    @classmethod
    def from_config(cls, config: RankingConfig) -> "StrategyWeights":
        """Create weights from RankingConfig; unknown names are ignored."""
        known = {k: v for k, v in config.strategy_weights.items() if k in cls.__dataclass_fields__}
        return cls(**known)

    def get(self, strategy: str) -> float:
        """Weight for a strategy name; 0.0 for strategies that are not blended."""
        if strategy not in self.__dataclass_fields__:
            return 0.0
        return getattr(self, strategy)

    def to_dict(self) -> Dict[str, float]:
        return {
            'content_affinity': self.content_affinity,
            'collaborative': self.collaborative,
            'popularity': self.popularity,
            'temporal': self.temporal,
        }


# =============================================================================
# SCORING CONTEXT
# =============================================================================

@dataclass
class ScoringContext:
    """
    Everything a strategy may read for one ranking call.

    History entries are resolved against the candidate pool once, when the
    context is built; the per-viewer aggregates below are derived from them.

    Attributes:
        now: Frozen "current time" for the whole call
        viewer: Viewer profile (None for anonymous search)
        query: Analyzed query (search only)
        history: Viewing history with category/creator/duration filled in
        category_weights: Sum of completion ratios per watched category
        watched_categories: Categories of all resolved history entries
        creator_completion: Average completion ratio per watched creator
    """

    now: datetime
    viewer: Optional[ViewerProfile] = None
    query: Optional[QueryContext] = None
    history: Tuple[HistoryEntry, ...] = ()
    category_weights: Dict[str, float] = field(default_factory=dict)
    watched_categories: FrozenSet[str] = frozenset()
    creator_completion: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        viewer: Optional[ViewerProfile],
        pool: Iterable[ContentItem] = (),
        now: Optional[datetime] = None,
        query: Optional[QueryContext] = None
    ) -> "ScoringContext":
        """
        Resolve history against the pool and precompute viewer aggregates.

        Args:
            viewer: Viewer profile or None
            pool: Items used to look up missing history details
            now: Current time (defaults to now, UTC)
            query: Analyzed query for the search path
        """
        history = resolve_history(viewer.viewing_history if viewer else (), pool)

        category_weights: Dict[str, float] = defaultdict(float)
        creator_ratios: Dict[str, List[float]] = defaultdict(list)
        for entry in history:
            ratio = completion_ratio(entry.watch_time, entry.duration_seconds, entry.completed)
            if entry.category is not None:
                category_weights[entry.category] += ratio
            if entry.creator_id is not None:
                creator_ratios[entry.creator_id].append(ratio)

        return cls(
            now=now or utc_now(),
            viewer=viewer,
            query=query,
            history=history,
            category_weights=dict(category_weights),
            watched_categories=frozenset(
                e.category for e in history if e.category is not None
            ),
            creator_completion={
                creator: sum(ratios) / len(ratios)
                for creator, ratios in creator_ratios.items()
            },
        )

    @property
    def interests(self) -> FrozenSet[str]:
        return self.viewer.interests if self.viewer else frozenset()

    @property
    def search_terms(self) -> List[str]:
        if not self.viewer:
            return []
        return [str(term).lower() for term in self.viewer.search_history]


def resolve_history(
    history: Iterable[HistoryEntry],
    pool: Iterable[ContentItem]
) -> Tuple[HistoryEntry, ...]:
    """Fill missing category, creator and duration from matching pool items."""
    by_id: Dict[str, ContentItem] = {}
    for item in pool:
        by_id.setdefault(item.id, item)

    resolved = []
    for entry in history:
        item = by_id.get(entry.item_id)
        if item is not None:
            entry = replace(
                entry,
                category=entry.category if entry.category is not None else item.category,
                creator_id=entry.creator_id if entry.creator_id is not None else item.creator_id,
                duration_seconds=(
                    entry.duration_seconds if entry.duration_seconds is not None
                    else item.duration_seconds
                ),
            )
        resolved.append(entry)
    return tuple(resolved)


# =============================================================================
# STRATEGY BASE CLASS
# =============================================================================

class SignalStrategy(ABC):
    """
    Abstract base class for signal strategies.

    Subclasses implement score_item(); score() applies the shared
    threshold, ordering and truncation rules.
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or get_config()
        self.min_score = self.config.ranking.min_strategy_score

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy name used for weights, logging and score fields."""
        pass

    @abstractmethod
    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        """Raw (unclamped) score for one candidate."""
        pass

    def score(
        self,
        context: ScoringContext,
        candidates: Iterable[ContentItem],
        limit: Optional[int] = None
    ) -> ScoredPairs:
        """
        Score, filter, sort and truncate the candidates.

        Args:
            context: Scoring context for this call
            candidates: Items to score
            limit: Maximum number of results (None = no limit)

        Returns:
            (item, score) pairs, best first, every score in (min_score, 1]
        """
        scored = []
        for item in candidates:
            value = clamp(self.score_item(item, context))
            if value > self.min_score:
                scored.append((item, value))

        # list.sort is stable: equal scores keep candidate order
        scored.sort(key=lambda pair: pair[1], reverse=True)

        if limit is not None:
            scored = scored[:max(0, limit)]
        return scored


# =============================================================================
# BEHAVIOURAL STRATEGIES
# =============================================================================

class ContentAffinityStrategy(SignalStrategy):
    """
    Similarity between an item and what the viewer says and does.

    - +0.4 when the item's category is a declared interest
    - + category preference weight * 0.3 (summed completion ratios)
    - + share of the item's tags found in past searches * 0.2
    - + average completion of the item's creator * 0.1
    """

    @property
    def name(self) -> str:
        return "content_affinity"

    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        score = 0.0

        if item.category in context.interests:
            score += 0.4

        if item.category in context.category_weights:
            score += context.category_weights[item.category] * 0.3

        terms = context.search_terms
        if terms and item.tags:
            matches = sum(
                1 for tag in item.tags
                if any(str(tag).lower() in term for term in terms)
            )
            score += matches / len(item.tags) * 0.2

        if item.creator_id is not None and item.creator_id in context.creator_completion:
            score += context.creator_completion[item.creator_id] * 0.1

        return score


class CollaborativeProxyStrategy(SignalStrategy):
    """
    Popularity re-weighted by the viewer's own categories.

    - in-interest items: views / 10000 * 0.3 + likes / 100 * 0.2
    - items in a previously watched category: engagement_rate * 0.3
    - items published less than 7 days ago: +0.2
    """

    @property
    def name(self) -> str:
        return "collaborative"

    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        score = 0.0

        if item.category in context.interests:
            score += as_number(item.views) / 10000 * 0.3
            score += as_number(item.like_count) / 100 * 0.2

        if item.category in context.watched_categories:
            score += as_number(item.engagement_rate) * 0.3

        days = days_since(item.published_at, context.now)
        if days is not None and 0 <= days < 7:
            score += 0.2

        return score


class PopularityStrategy(SignalStrategy):
    """
    Viewer-independent popularity.

    log10(views + 1) / 6 * 0.4 + likes / views * 0.3
    + engagement_rate * 0.2 + 30-day freshness * 0.2
    """

    @property
    def name(self) -> str:
        return "popularity"

    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        views = as_number(item.views)
        view_score = log_view_score(views)
        like_score = as_number(item.like_count) / max(views, 1)
        engagement_score = as_number(item.engagement_rate)
        recency_boost = recency_score(item.published_at, context.now) * 0.2

        return (
            view_score * 0.4 +
            like_score * 0.3 +
            engagement_score * 0.2 +
            recency_boost
        )


# Temporal rule table: (first hour, last hour inclusive, categories, boost)
HOURLY_RULES = (
    (9, 17, frozenset({'technology', 'business', 'coding'}), 0.3),
    (18, 22, frozenset({'art', 'music', 'cooking', 'health'}), 0.3),
)
WEEKEND_CATEGORIES = frozenset({'art', 'music', 'cooking', 'sports'})
WEEKDAY_CATEGORIES = frozenset({'education', 'science', 'technology', 'business'})
WEEKEND_BOOST = 0.2
WEEKDAY_BOOST = 0.2
LUNCH_HOURS = (12, 14)
LUNCH_MAX_DURATION = 180
LUNCH_BOOST = 0.2


class TemporalStrategy(SignalStrategy):
    """
    Time-of-day and day-of-week preferences, read from the context's `now`.

    Hours are taken from `now` as given, so callers who want local-time
    rules pass a local-time `now`.
    """

    @property
    def name(self) -> str:
        return "temporal"

    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        hour = context.now.hour
        score = 0.0

        for first, last, categories, boost in HOURLY_RULES:
            if first <= hour <= last:
                if item.category in categories:
                    score += boost
                break

        if context.now.weekday() in (5, 6):
            if item.category in WEEKEND_CATEGORIES:
                score += WEEKEND_BOOST
        elif item.category in WEEKDAY_CATEGORIES:
            score += WEEKDAY_BOOST

        if LUNCH_HOURS[0] <= hour <= LUNCH_HOURS[1]:
            if as_number(item.duration_seconds) <= LUNCH_MAX_DURATION:
                score += LUNCH_BOOST

        return score


# =============================================================================
# SEARCH STRATEGY
# =============================================================================

class QueryRelevanceStrategy(SignalStrategy):
    """
    Relevance of an item to an analyzed search query.

    Weighted text similarity over title, description and creator name,
    exact category and tag matches, optional viewer profile relevance, and
    small capped boosts for views and freshness. Capped at 1.0.
    """

    def __init__(self, config: Optional[AppConfig] = None, analyzer: Optional[QueryAnalyzer] = None):
        super().__init__(config)
        self.search = self.config.search
        self.min_score = self.search.min_relevance
        self.analyzer = analyzer or QueryAnalyzer()

    @property
    def name(self) -> str:
        return "query_relevance"

    def score(
        self,
        context: ScoringContext,
        candidates: Iterable[ContentItem],
        limit: Optional[int] = None
    ) -> ScoredPairs:
        if context.query is None:
            logger.warning("Query relevance requested without an analyzed query")
            return []
        return super().score(context, candidates, limit)

    def score_item(self, item: ContentItem, context: ScoringContext) -> float:
        query = context.query
        search = self.search
        score = 0.0

        score += self.analyzer.text_similarity(query, item.title) * search.title_weight
        score += self.analyzer.text_similarity(query, item.description) * search.description_weight

        if query.category and item.category == query.category:
            score += search.category_weight

        if item.tags:
            tags = [str(tag).lower() for tag in item.tags]
            if any(tag in phrase for tag in tags for phrase in query.key_phrases):
                score += search.tag_weight

        if item.creator_name:
            score += self.analyzer.text_similarity(query, item.creator_name) * search.creator_weight

        if context.viewer is not None:
            score += self.profile_relevance(item, context) * search.profile_weight

        score += min(as_number(item.views) / 10000, search.engagement_boost_cap)

        if item.published_at is not None:
            score += recency_score(item.published_at, context.now) * search.recency_boost_weight

        return min(score, 1.0)

    def profile_relevance(self, item: ContentItem, context: ScoringContext) -> float:
        """
        How well an item fits the viewer, independent of the query.

        0.5 for an interest match, up to 0.3 from history category
        frequency, up to 0.2 for duration fit.
        """
        relevance = 0.0

        if item.category in context.interests:
            relevance += 0.5

        frequency = sum(1 for entry in context.history if entry.category == item.category)
        relevance += min(frequency / 10, 0.3)

        preferred = context.viewer.preferred_duration if context.viewer else None
        if preferred:
            relevance += duration_fit(item.duration_seconds, preferred) * 0.2

        return relevance


# =============================================================================
# REGISTRY
# =============================================================================

# Merge order of the behavioural strategies
STRATEGY_ORDER = ('content_affinity', 'collaborative', 'popularity', 'temporal')

STRATEGY_REGISTRY = {
    'content_affinity': ContentAffinityStrategy,
    'collaborative': CollaborativeProxyStrategy,
    'popularity': PopularityStrategy,
    'temporal': TemporalStrategy,
    'query_relevance': QueryRelevanceStrategy,
}


def get_strategy(name: str, config: Optional[AppConfig] = None) -> SignalStrategy:
    """Get a signal strategy by name."""
    if name not in STRATEGY_REGISTRY:
        raise ValueError(f"Unknown signal strategy: {name}")
    return STRATEGY_REGISTRY[name](config)


def behavioural_strategies(
    include_popular: bool = True,
    config: Optional[AppConfig] = None
) -> List[SignalStrategy]:
    """Build the feed strategies in merge order."""
    return [
        get_strategy(name, config)
        for name in STRATEGY_ORDER
        if include_popular or name != 'popularity'
    ]
