"""
Engagement Service Module
=========================
Engagement analytics over caller-supplied engagement records.

This service handles:
- Per-record engagement scoring (0-100)
- Category preference weights from recent engagement
- Session disengagement detection
- Engagement prediction for a candidate item

Nothing here reads or writes storage; callers pass the records in.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from ..models import ContentItem, EngagementRecord, DisengagementReport, as_utc
from ..signals.normalizers import as_number, clamp

logger = logging.getLogger(__name__)

# Prior used for viewers without any engagement records
DEFAULT_PREFERENCES = {
    'education': 0.3,
    'science': 0.2,
    'math': 0.15,
    'coding': 0.15,
    'other': 0.2,
}

PREFERENCE_WINDOW = 50
SESSION_WINDOW = 5
MIN_SESSION_RECORDS = 3

ENTERTAINING_CATEGORIES = frozenset({'art', 'music', 'sports', 'cooking'})


class EngagementService:
    """
    Scores engagement and detects when a viewer is losing interest.

    Usage:
        service = EngagementService()
        score = service.calculate_engagement_score(record)
        report = service.detect_disengagement(records, session_id="s1")
    """

    def calculate_engagement_score(self, record: EngagementRecord) -> float:
        """
        Engagement score for one record, clamped to [0, 100].

        completion% * 0.4, +15 like, +20 comment, +25 share,
        + min(replays * 3, 10); -5 for more than 3 pauses, -10 for more
        than 5 seeks, -15 for a skip before 30% of the duration.
        """
        score = record.completion_rate * 0.4

        if record.liked:
            score += 15
        if record.commented:
            score += 20
        if record.shared:
            score += 25

        score += min(as_number(record.replays) * 3, 10)

        if as_number(record.pause_count) > 3:
            score -= 5
        if as_number(record.seek_count) > 5:
            score -= 10
        if record.skipped_at is not None and record.skipped_at < record.total_duration * 0.3:
            score -= 15

        return clamp(score, 0.0, 100.0)

    def category_preferences(self, records: Iterable[EngagementRecord]) -> Dict[str, float]:
        """
        Category weights from the most recent records.

        Average engagement score per category over the last 50 records,
        normalized to sum to 1. Records without a category count as
        "other". Viewers with no records get DEFAULT_PREFERENCES.
        """
        recent = _most_recent(records, PREFERENCE_WINDOW)
        if not recent:
            return dict(DEFAULT_PREFERENCES)

        totals: Dict[str, float] = defaultdict(float)
        counts: Dict[str, int] = defaultdict(int)
        for record in recent:
            category = record.category or 'other'
            totals[category] += self.calculate_engagement_score(record)
            counts[category] += 1

        averages = {category: totals[category] / counts[category] for category in totals}
        total = sum(averages.values())

        if total <= 0:
            # every record scored 0: split evenly
            share = 1.0 / len(averages)
            return {category: share for category in averages}

        return {category: value / total for category, value in averages.items()}

    def detect_disengagement(
        self,
        records: Iterable[EngagementRecord],
        session_id: Optional[str]
    ) -> DisengagementReport:
        """
        Check the latest records of a session for signs of lost interest.

        Looks at the 5 most recent records of the session and needs at
        least 3. Severity adds up:
            +40 average completion < 20% (else +20 when < 40%)
            +30 skip rate > 0.6
            +20 average engagement < 30
            +10 average gap between records under 10 seconds
        The viewer is disengaging when severity exceeds 30.
        """
        session = [r for r in records if r.session_id == session_id]
        recent = _most_recent(session, SESSION_WINDOW)

        if len(recent) < MIN_SESSION_RECORDS:
            return DisengagementReport(is_disengaging=False, severity=0, reason=None)

        count = len(recent)
        avg_completion = sum(r.completion_rate for r in recent) / count
        avg_engagement = sum(self.calculate_engagement_score(r) for r in recent) / count
        skip_rate = sum(1 for r in recent if r.skipped_at is not None) / count

        newest, oldest = recent[0], recent[-1]
        span = (as_utc(newest.created_at) - as_utc(oldest.created_at)).total_seconds()
        avg_gap = span / (count - 1)

        severity = 0
        reasons: List[str] = []

        if avg_completion < 20:
            severity += 40
            reasons.append("very-low-completion")
        elif avg_completion < 40:
            severity += 20
            reasons.append("low-completion")

        if skip_rate > 0.6:
            severity += 30
            reasons.append("excessive-skipping")

        if avg_engagement < 30:
            severity += 20
            reasons.append("low-engagement")

        if 0 < avg_gap < 10:
            severity += 10
            reasons.append("rapid-scrolling")

        report = DisengagementReport(
            is_disengaging=severity > 30,
            severity=min(100, severity),
            reason=",".join(reasons) if reasons else None,
            metrics={
                'avg_completion_rate': avg_completion,
                'avg_engagement': avg_engagement,
                'skip_rate': skip_rate,
                'avg_time_between_items': avg_gap,
            },
        )

        if report.is_disengaging:
            logger.info(f"Session {session_id} is disengaging (severity: {report.severity})")
        return report

    def predict_engagement(
        self,
        item: ContentItem,
        preferences: Dict[str, float],
        disengagement: Optional[DisengagementReport] = None
    ) -> float:
        """
        Predicted engagement (0-100) of a viewer with an item.

        Base 50, + category preference * 30 (0.1 for unknown categories),
        up to +10 each from views and likes. A disengaging viewer gets +20
        for entertaining categories and +15 for items under three minutes.
        """
        score = 50.0
        score += preferences.get(item.category, 0.1) * 30
        score += min(as_number(item.views) / 1000 * 5, 10)
        score += min(as_number(item.like_count) / 10 * 5, 10)

        if disengagement is not None and disengagement.is_disengaging:
            if item.category in ENTERTAINING_CATEGORIES:
                score += 20
            if as_number(item.duration_seconds) < 180:
                score += 15

        return min(100.0, score)


def _most_recent(records: Iterable[EngagementRecord], limit: int) -> List[EngagementRecord]:
    """Newest first, at most `limit` records."""
    ordered = sorted(records, key=lambda r: as_utc(r.created_at), reverse=True)
    return ordered[:limit]
