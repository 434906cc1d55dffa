"""
Ranking Tests
=============
Tests for strategy combination, diversity re-ranking, final boosts and the
fallback ordering.
"""

import os
import sys

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from feedrank.ranking import (
    StrategyCombiner,
    DiversityReranker,
    FinalRanker,
    FallbackSelector,
    rank_weight,
    summarize,
    combine_results,
    fallback_ranking,
)
from feedrank.signals import StrategyWeights
from feedrank.models import (
    ContentItem,
    ViewerProfile,
    ScoredItem,
    StrategyResult,
    RankingSource,
)
from feedrank.config import AppConfig


# =============================================================================
# TEST FIXTURES
# =============================================================================

def create_test_item(item_id: str, category: str = None, **kwargs) -> ContentItem:
    return ContentItem(id=item_id, category=category, **kwargs)


def create_result(strategy: str, items) -> StrategyResult:
    """A successful strategy result in the given order."""
    return StrategyResult(strategy=strategy, scored=[(item, 0.5) for item in items])


def create_scored(item_id: str, score: float, category: str = None, creator_id: str = None) -> ScoredItem:
    return ScoredItem(
        item=create_test_item(item_id, category, creator_id=creator_id),
        combined_score=score,
    )


# =============================================================================
# COMBINER TESTS
# =============================================================================

def test_rank_weight():
    """Test normalized position weights."""
    assert rank_weight(0, 4) == 1.0
    assert rank_weight(3, 4) == 0.25
    assert rank_weight(0, 0) == 0.0

    print("[PASS] rank_weight test passed")


def test_combine_rank_weighted():
    """Test that list positions, not raw scores, are blended."""
    a, b = create_test_item("a"), create_test_item("b")
    combiner = StrategyCombiner(config=AppConfig())

    combined = combiner.combine([
        create_result("content_affinity", [a, b]),
        create_result("popularity", [b]),
    ])

    # a: 1.0 * 0.35; b: 0.5 * 0.35 + 1.0 * 0.25
    assert [s.item_id for s in combined] == ["b", "a"]
    assert abs(combined[0].combined_score - 0.425) < 0.001
    assert abs(combined[1].combined_score - 0.35) < 0.001
    assert abs(combined[0].strategy_scores.popularity - 0.25) < 0.001
    assert abs(combined[0].strategy_scores.content_affinity - 0.175) < 0.001

    print("[PASS] Rank-weighted combine test passed")


def test_combine_failed_strategy_is_empty():
    """Test that a failed strategy contributes exactly like an empty list."""
    a, b = create_test_item("a"), create_test_item("b")
    combiner = StrategyCombiner(config=AppConfig())
    base = [create_result("popularity", [a, b])]

    with_failure = combiner.combine(base + [StrategyResult.failure("temporal", RuntimeError("down"))])
    with_empty = combiner.combine(base + [StrategyResult(strategy="temporal")])

    assert [s.item_id for s in with_failure] == [s.item_id for s in with_empty]
    assert [s.combined_score for s in with_failure] == [s.combined_score for s in with_empty]

    print("[PASS] Failed strategy combine test passed")


def test_combine_scores_in_unit_interval():
    """Test that an item first in every list scores exactly 1.0."""
    a = create_test_item("a")
    combiner = StrategyCombiner(config=AppConfig())
    combined = combiner.combine([
        create_result(name, [a])
        for name in ("content_affinity", "collaborative", "popularity", "temporal")
    ])

    assert abs(combined[0].combined_score - 1.0) < 0.001

    print("[PASS] Unit interval combine test passed")


def test_combine_ties_keep_first_seen_order():
    """Test stable ordering of equal combined scores."""
    a, b = create_test_item("a"), create_test_item("b")
    combiner = StrategyCombiner(weights=StrategyWeights(), config=AppConfig())
    combined = combiner.combine([
        create_result("collaborative", [a]),
        create_result("popularity", [b]),
    ])

    assert [s.item_id for s in combined] == ["a", "b"]

    print("[PASS] Tie order test passed")


def test_combine_repeated_listing_counts_once():
    """Test that an id listed twice by one strategy gets one contribution."""
    a, b = create_test_item("a"), create_test_item("b")
    combiner = StrategyCombiner(config=AppConfig())

    repeated = combiner.combine([
        create_result("content_affinity", [b, a, b]),
        create_result("collaborative", [b, a, b]),
    ])
    single = combiner.combine([
        create_result("content_affinity", [b, a]),
        create_result("collaborative", [b, a]),
    ])

    assert [s.item_id for s in repeated] == [s.item_id for s in single] == ["b", "a"]
    assert [s.combined_score for s in repeated] == [s.combined_score for s in single]
    for scored in repeated:
        assert scored.strategy_scores.content_affinity <= 0.35
        assert scored.strategy_scores.collaborative <= 0.25

    searched = combiner.from_single(
        StrategyResult(strategy="query_relevance", scored=[(a, 0.8), (b, 0.4), (a, 0.2)])
    )
    assert [s.item_id for s in searched] == ["a", "b"]
    assert searched[0].combined_score == 0.8

    print("[PASS] Repeated listing combine test passed")


def test_from_single():
    """Test search combination keeps relevance scores as-is."""
    a, b = create_test_item("a"), create_test_item("b")
    combiner = StrategyCombiner(config=AppConfig())
    combined = combiner.from_single(
        StrategyResult(strategy="query_relevance", scored=[(a, 0.8), (b, 0.4)])
    )

    assert [s.combined_score for s in combined] == [0.8, 0.4]
    assert combined[0].strategy_scores.query_relevance == 0.8
    assert combiner.from_single(StrategyResult.failure("query_relevance", ValueError())) == []

    print("[PASS] from_single test passed")


# =============================================================================
# DIVERSITY TESTS
# =============================================================================

def test_diversity_same_category():
    """Test the running category penalty with factor 1.0."""
    items = [create_scored(f"m{i}", 0.5, "math", creator_id=f"c{i}") for i in range(10)]
    diversified = DiversityReranker(AppConfig()).rerank(items, factor=1.0)

    adjusted = [s.adjusted_score for s in diversified]
    assert len(adjusted) == 4
    for actual, expected in zip(adjusted, [0.5, 0.4, 0.3, 0.2]):
        assert abs(actual - expected) < 0.001

    print("[PASS] Same-category diversity test passed")


def test_diversity_creator_penalty():
    """Test the creator penalty and that other categories are untouched."""
    items = [
        create_scored("a", 0.9, "art", creator_id="c1"),
        create_scored("b", 0.8, "music", creator_id="c1"),
        create_scored("c", 0.7, "science", creator_id="c2"),
    ]
    diversified = DiversityReranker(AppConfig()).rerank(items, factor=1.0)

    by_id = {s.item_id: s.adjusted_score for s in diversified}
    assert abs(by_id["a"] - 0.9) < 0.001
    assert abs(by_id["b"] - 0.75) < 0.001
    assert abs(by_id["c"] - 0.7) < 0.001

    print("[PASS] Creator penalty test passed")


def test_diversity_disabled_and_negative():
    """Test that factor 0 (and a negative factor) changes nothing."""
    for factor in (0, -1.0):
        items = [create_scored(f"m{i}", 0.5, "math") for i in range(6)]
        diversified = DiversityReranker(AppConfig()).rerank(items, factor=factor)

        assert len(diversified) == 6
        assert all(s.adjusted_score == 0.5 for s in diversified)

    print("[PASS] Disabled diversity test passed")


def test_diversity_missing_category_not_counted():
    """Test that items without a category or creator are not penalized."""
    items = [create_scored(f"x{i}", 0.5) for i in range(5)]
    diversified = DiversityReranker(AppConfig()).rerank(items, factor=1.0)

    assert len(diversified) == 5
    assert all(s.adjusted_score == 0.5 for s in diversified)

    print("[PASS] Missing category test passed")


def test_diversity_scores_only_decrease():
    """Test that adjusted scores never exceed combined scores."""
    items = [create_scored(f"i{i}", 0.9 - i * 0.05, "art" if i % 2 else "music", "c1") for i in range(8)]
    diversified = DiversityReranker(AppConfig()).rerank(items, factor=0.3)

    for scored in diversified:
        assert scored.adjusted_score <= scored.combined_score
        assert scored.adjusted_score > 0.1
    scores = [s.adjusted_score for s in diversified]
    assert scores == sorted(scores, reverse=True)

    print("[PASS] Monotone diversity test passed")


# =============================================================================
# FINAL RANKER TESTS
# =============================================================================

def test_final_boosts():
    """Test duration-fit and quality boosts."""
    ranker = FinalRanker(AppConfig())
    viewer = ViewerProfile(preferred_duration=60)

    fits = ScoredItem(item=create_test_item("fit", duration_seconds=60), combined_score=0.5)
    fits.adjusted_score = 0.5
    quality = ScoredItem(
        item=create_test_item("q", duration_seconds=600, views=2000, engagement_rate=6),
        combined_score=0.5,
    )
    quality.adjusted_score = 0.45
    plain = ScoredItem(item=create_test_item("p", duration_seconds=600), combined_score=0.52)
    plain.adjusted_score = 0.52

    ranked = ranker.rank([plain, quality, fits], viewer, count=2)

    assert [s.item_id for s in ranked] == ["fit", "q"]
    assert abs(ranked[0].final_score - 0.6) < 0.001
    assert abs(ranked[1].final_score - 0.55) < 0.001

    print("[PASS] Final boosts test passed")


def test_final_rank_without_viewer():
    """Test that no viewer means no duration boost."""
    ranker = FinalRanker(AppConfig())
    scored = ScoredItem(item=create_test_item("a", duration_seconds=60), combined_score=0.4)

    ranked = ranker.rank([scored], None)
    assert abs(ranked[0].final_score - 0.4) < 0.001
    assert ranker.rank([scored], None, count=0) == []

    print("[PASS] Final rank without viewer test passed")


def test_summarize():
    """Test ranking statistics."""
    items = [
        ScoredItem(item=create_test_item("a"), final_score=1.0),
        ScoredItem(item=create_test_item("b"), final_score=0.5),
    ]
    summary = summarize(items)

    assert summary.total_count == 2
    assert summary.score_range == (0.5, 1.0)
    assert abs(summary.score_mean - 0.75) < 0.001
    assert summarize([]).total_count == 0
    assert summary.to_dict()['score_range'] == [0.5, 1.0]

    print("[PASS] Summary test passed")


# =============================================================================
# FALLBACK TESTS
# =============================================================================

def test_fallback_ordering():
    """Test engagement + views / 10000 ordering and eligibility."""
    candidates = [
        create_test_item("low", views=100, engagement_rate=0.1),
        create_test_item("high", views=50000, engagement_rate=2.0),
        create_test_item("mid", views=10000, engagement_rate=1.5),
        create_test_item("private", views=10 ** 7, is_private=True),
        create_test_item("pending", views=10 ** 7, status="pending"),
        {"id": "raw-dict", "views": 10 ** 9},
    ]
    ranked = FallbackSelector(AppConfig()).select(candidates, count=10, error="test")

    assert ranked.ids == ["high", "mid", "low"]
    assert ranked.source == RankingSource.FALLBACK
    assert ranked.degraded is True
    assert ranked.error == "test"
    assert abs(ranked[0].final_score - 7.0) < 0.001

    print("[PASS] Fallback ordering test passed")


def test_fallback_truncates_and_tolerates_bad_input():
    """Test truncation and that unusable input gives an empty list."""
    selector = FallbackSelector(AppConfig())
    candidates = [create_test_item(f"v{i}", views=i * 100) for i in range(5)]

    assert selector.select(candidates, count=2).ids == ["v4", "v3"]
    assert len(selector.select(None, count=5)) == 0
    assert len(selector.select(42, count=5)) == 0
    assert len(selector.select([create_test_item(["unhashable"])], count=5)) == 0

    bad_metrics = create_test_item("bad", views="many", engagement_rate=None)
    assert selector.fallback_key(bad_metrics) == 0.0

    print("[PASS] Fallback robustness test passed")


def test_convenience_functions():
    """Test the module-level helpers."""
    a, b = create_test_item("a"), create_test_item("b")
    combined = combine_results(
        [create_result("popularity", [a, b])],
        weights=StrategyWeights(popularity=1.0),
    )
    assert [s.combined_score for s in combined] == [1.0, 0.5]

    ranked = fallback_ranking(
        [create_test_item("x", views=100), create_test_item("y", views=20000)], count=1
    )
    assert ranked.ids == ["y"]

    print("[PASS] Convenience functions test passed")


def run_all_tests():
    """Run all ranking tests."""
    print("\n" + "="*60)
    print("RANKING TESTS")
    print("="*60 + "\n")

    print("\n--- Combiner Tests ---")
    test_rank_weight()
    test_combine_rank_weighted()
    test_combine_failed_strategy_is_empty()
    test_combine_scores_in_unit_interval()
    test_combine_ties_keep_first_seen_order()
    test_combine_repeated_listing_counts_once()
    test_from_single()

    print("\n--- Diversity Tests ---")
    test_diversity_same_category()
    test_diversity_creator_penalty()
    test_diversity_disabled_and_negative()
    test_diversity_missing_category_not_counted()
    test_diversity_scores_only_decrease()

    print("\n--- Final Ranker Tests ---")
    test_final_boosts()
    test_final_rank_without_viewer()
    test_summarize()

    print("\n--- Fallback Tests ---")
    test_fallback_ordering()
    test_fallback_truncates_and_tolerates_bad_input()
    test_convenience_functions()

    print("\n" + "="*60)
    print("ALL RANKING TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
