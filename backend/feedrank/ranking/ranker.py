"""
Final Ranking Module
====================
Applies the secondary boosts and produces the final ordering.

Boosts:
- Duration fit: max(0, 1 - |duration - preferred| / preferred) * 0.1,
  only when the viewer has a preferred duration
- Quality: +0.1 when views > 1000 and engagement_rate > 5

Also provides ranking statistics for logging and the CLI.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from ..models import ScoredItem, ViewerProfile
from ..signals.normalizers import as_number, duration_fit
from ..config import AppConfig, get_config

logger = logging.getLogger(__name__)


@dataclass
class RankingSummary:
    """Statistics over the final scores of a ranking."""
    total_count: int
    score_range: Tuple[float, float]  # (min, max)
    score_mean: float
    score_std: float

    def to_dict(self) -> dict:
        return {
            'total_count': self.total_count,
            'score_range': list(self.score_range),
            'score_mean': self.score_mean,
            'score_std': self.score_std,
        }


class FinalRanker:
    """
    Boosts, re-sorts and truncates the diversified items.

    Usage:
        ranker = FinalRanker()
        final = ranker.rank(diversified, viewer, count=20)
    """

    def __init__(self, config: Optional[AppConfig] = None):
        ranking = (config or get_config()).ranking
        self.duration_boost = ranking.duration_boost
        self.quality_boost = ranking.quality_boost
        self.quality_min_views = ranking.quality_min_views
        self.quality_min_engagement = ranking.quality_min_engagement

    def rank(
        self,
        items: List[ScoredItem],
        viewer: Optional[ViewerProfile],
        count: Optional[int] = None
    ) -> List[ScoredItem]:
        """
        Compute final scores and return the top `count` items.

        Args:
            items: Diversified items
            viewer: Viewer profile (for the duration preference)
            count: Maximum number of items (None = all)

        Returns:
            Items sorted by final score, best first
        """
        preferred = viewer.preferred_duration if viewer else None

        for scored in items:
            base = scored.adjusted_score if scored.adjusted_score is not None else scored.combined_score
            scored.final_score = base + self.boost(scored, preferred)

        ranked = sorted(items, key=lambda s: s.final_score, reverse=True)

        if count is not None:
            ranked = ranked[:max(0, count)]
        return ranked

    def boost(self, scored: ScoredItem, preferred: Optional[float]) -> float:
        """Total secondary boost for one item."""
        item = scored.item
        boost = 0.0

        if preferred:
            boost += duration_fit(item.duration_seconds, preferred) * self.duration_boost

        if (as_number(item.views) > self.quality_min_views
                and as_number(item.engagement_rate) > self.quality_min_engagement):
            boost += self.quality_boost

        return boost


def summarize(items: List[ScoredItem]) -> RankingSummary:
    """
    Get ranking statistics.

    Args:
        items: Ranked items

    Returns:
        RankingSummary over each item's latest score
    """
    if not items:
        return RankingSummary(
            total_count=0,
            score_range=(0.0, 0.0),
            score_mean=0.0,
            score_std=0.0
        )

    scores = np.array([s.ranking_score for s in items], dtype=float)

    return RankingSummary(
        total_count=len(items),
        score_range=(float(scores.min()), float(scores.max())),
        score_mean=float(scores.mean()),
        score_std=float(scores.std())
    )
