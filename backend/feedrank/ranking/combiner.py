"""
Strategy Combination Module
===========================
Blends the per-strategy lists into one combined score per item.

Each strategy contributes by list position, not by raw score:

    rank_weight(position) = (N - position) / N      (position is 0-indexed)
    combined(item) = Σ_s rank_weight_s(item) * weight_s

so the first item of every list gets the strategy's full weight and the
last gets weight / N. N counts distinct ids: an id a strategy lists twice
is ranked at its first position only. A failed strategy contributes
exactly like an empty list.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..models import ContentItem, ScoredItem, StrategyResult
from ..signals import StrategyWeights
from ..signals.normalizers import clamp
from ..config import AppConfig, get_config

logger = logging.getLogger(__name__)


def rank_weight(position: int, length: int) -> float:
    """Normalized weight of a 0-indexed list position."""
    if length <= 0:
        return 0.0
    return (length - position) / length


class StrategyCombiner:
    """
    Merges StrategyResults into ScoredItems.

    Usage:
        combiner = StrategyCombiner()
        combined = combiner.combine(results)   # best first
    """

    def __init__(
        self,
        weights: Optional[StrategyWeights] = None,
        config: Optional[AppConfig] = None
    ):
        config = config or get_config()
        self.weights = weights or StrategyWeights.from_config(config.ranking)

    def combine(self, results: Iterable[StrategyResult]) -> List[ScoredItem]:
        """
        Combine strategy results.

        Args:
            results: One result per strategy, in merge order

        Returns:
            ScoredItems sorted by combined score (descending; ties keep the
            order in which items were first seen)
        """
        merged: Dict[str, ScoredItem] = {}

        for result in results:
            if not result.ok:
                logger.debug(f"Strategy {result.strategy} failed; contributing nothing")
                continue

            weight = self.weights.get(result.strategy)
            ranked = self._first_listings(result.scored)
            length = len(ranked)
            for position, item in enumerate(ranked):
                scored = merged.get(item.id)
                if scored is None:
                    scored = ScoredItem(item=item)
                    merged[item.id] = scored
                scored.strategy_scores.add(result.strategy, rank_weight(position, length) * weight)

        for scored in merged.values():
            scored.combined_score = clamp(scored.strategy_scores.total())

        return sorted(merged.values(), key=lambda s: s.combined_score, reverse=True)

    @staticmethod
    def _first_listings(scored) -> List[ContentItem]:
        # An id listed twice by one strategy is ranked at its first position only
        seen = set()
        items = []
        for item, _ in scored:
            if item.id not in seen:
                seen.add(item.id)
                items.append(item)
        return items

    def from_single(self, result: StrategyResult) -> List[ScoredItem]:
        """
        Use one strategy's scores directly as combined scores.

        Used by the search path, where query relevance is the only signal.
        Order is preserved from the result.
        """
        if not result.ok:
            return []

        combined = []
        seen = set()
        for item, score in result.scored:
            if item.id in seen:
                continue
            seen.add(item.id)
            scored = ScoredItem(item=item, combined_score=clamp(score))
            scored.strategy_scores.add(result.strategy, score)
            combined.append(scored)
        return combined


def combine_results(
    results: Iterable[StrategyResult],
    weights: Optional[StrategyWeights] = None
) -> List[ScoredItem]:
    """Convenience function to combine strategy results."""
    return StrategyCombiner(weights=weights).combine(results)
