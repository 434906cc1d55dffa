"""
Fallback Ranking Module
=======================
Ordering served whenever the full pipeline cannot produce a ranking.

Keeps approved, non-private items and sorts them by

    engagement_rate + views / 10000

descending. The selector is stateless and never raises: bad metric values
count as 0 and items whose ids cannot be compared are skipped.
"""

import logging
from typing import Any, Iterable, List, Optional

from ..models import ContentItem, ScoredItem, RankedList, RankingSource
from ..signals.normalizers import as_number
from ..config import AppConfig, get_config

logger = logging.getLogger(__name__)


class FallbackSelector:
    """
    Popularity ordering with no viewer signals.

    Usage:
        selector = FallbackSelector()
        ranked = selector.select(candidates, count=20)
    """

    def __init__(self, config: Optional[AppConfig] = None):
        self.view_divisor = (config or get_config()).ranking.fallback_view_divisor

    def fallback_key(self, item: ContentItem) -> float:
        """engagement_rate + views / divisor, with non-numeric values as 0."""
        return (
            as_number(getattr(item, 'engagement_rate', 0))
            + as_number(getattr(item, 'views', 0)) / self.view_divisor
        )

    def usable(self, candidates: Any) -> List[ContentItem]:
        """ContentItems with hashable ids, in input order."""
        if candidates is None:
            return []
        try:
            pool = list(candidates)
        except TypeError:
            logger.warning(f"Fallback received non-iterable candidates: {type(candidates).__name__}")
            return []

        kept = []
        for item in pool:
            if not isinstance(item, ContentItem):
                continue
            try:
                hash(item.id)
            except TypeError:
                continue
            kept.append(item)
        return kept

    def eligible(self, candidates: Any) -> List[ContentItem]:
        """Approved, non-private items with usable ids, in input order."""
        return [item for item in self.usable(candidates) if item.is_approved and not item.is_private]

    def order(self, candidates: Any) -> List[ContentItem]:
        """Eligible items sorted by the fallback key (stable)."""
        return sorted(self.eligible(candidates), key=self.fallback_key, reverse=True)

    def select(
        self,
        candidates: Any,
        count: Optional[int] = None,
        error: Optional[str] = None
    ) -> RankedList:
        """
        Build the fallback RankedList.

        Args:
            candidates: Candidate items (anything; invalid entries are skipped)
            count: Maximum number of items (None = all)
            error: Reason the fallback was needed, carried on the result

        Returns:
            RankedList with source "fallback" and degraded=True
        """
        scored = [
            ScoredItem(item=item, final_score=self.fallback_key(item))
            for item in self.order(candidates)
        ]
        return RankedList.build(
            scored,
            limit=count,
            source=RankingSource.FALLBACK,
            degraded=True,
            error=error
        )


def fallback_ranking(candidates: Iterable[ContentItem], count: Optional[int] = None) -> RankedList:
    """Convenience function for the fallback ordering."""
    return FallbackSelector().select(candidates, count)
