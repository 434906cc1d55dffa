"""
Diversity Re-ranking Module
===========================
Penalizes repeated categories and creators so one topic cannot flood a feed.

Items are visited best first with running counts of the categories and
creators already kept:

    penalty  = category_count * 0.1 + creator_count * 0.05
    adjusted = combined - penalty * factor

An item is kept only when adjusted > 0.1, and only kept items increment
the counts. Scores can only go down here.
"""

import logging
from collections import Counter
from typing import List, Optional

from ..models import ScoredItem
from ..config import AppConfig, get_config

logger = logging.getLogger(__name__)


class DiversityReranker:
    """
    Single-pass diversity penalty.

    Usage:
        reranker = DiversityReranker()
        diversified = reranker.rerank(combined, factor=0.3)
    """

    def __init__(self, config: Optional[AppConfig] = None):
        ranking = (config or get_config()).ranking
        self.category_penalty = ranking.category_penalty
        self.creator_penalty = ranking.creator_penalty
        self.min_adjusted_score = ranking.min_adjusted_score

    def rerank(self, items: List[ScoredItem], factor: float) -> List[ScoredItem]:
        """
        Apply the diversity penalty.

        Args:
            items: Combined items, best first
            factor: Penalty strength; 0 disables the stage

        Returns:
            Kept items with adjusted_score set, sorted descending
        """
        if factor < 0:
            logger.warning(f"Negative diversity factor {factor} treated as 0")
            factor = 0.0

        if factor == 0:
            for scored in items:
                scored.adjusted_score = scored.combined_score
            return list(items)

        category_counts: Counter = Counter()
        creator_counts: Counter = Counter()
        kept = []

        for scored in items:
            category = scored.item.category
            creator = scored.item.creator_id

            penalty = (
                (category_counts[category] if category is not None else 0) * self.category_penalty
                + (creator_counts[creator] if creator is not None else 0) * self.creator_penalty
            )
            adjusted = scored.combined_score - penalty * factor

            if adjusted > self.min_adjusted_score:
                scored.adjusted_score = adjusted
                kept.append(scored)
                if category is not None:
                    category_counts[category] += 1
                if creator is not None:
                    creator_counts[creator] += 1

        dropped = len(items) - len(kept)
        if dropped:
            logger.debug(f"Diversity filter dropped {dropped} of {len(items)} items")

        return sorted(kept, key=lambda s: s.adjusted_score, reverse=True)
