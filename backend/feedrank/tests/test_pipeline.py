"""
Pipeline Tests
==============
Verifies that the ranking pipeline architecture works correctly.
"""

import os
import sys
from datetime import datetime, timedelta, timezone

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from feedrank.pipeline import (
    RankingContext,
    StageResult,
    RankingStage,
    ConditionalStage,
    CandidateFilterStage,
    SignalExtractionStage,
    DiversityStage,
    RankingPipeline,
    PipelineError,
    FEED,
    SEARCH,
)
from feedrank.signals import SignalStrategy, PopularityStrategy
from feedrank.models import (
    ContentItem,
    HistoryEntry,
    ViewerProfile,
    RecommendationOptions,
    RankingSource,
)
from feedrank.config import AppConfig


NOW = datetime(2024, 1, 17, 10, 0, tzinfo=timezone.utc)


# =============================================================================
# MOCK DATA
# =============================================================================

def create_test_item(item_id: str, category: str = "science", days_old: float = 1, **kwargs) -> ContentItem:
    return ContentItem(
        id=item_id,
        category=category,
        published_at=NOW - timedelta(days=days_old),
        **kwargs
    )


def create_test_viewer(watched=()) -> ViewerProfile:
    return ViewerProfile(
        viewer_id="u1",
        interests=frozenset({"science"}),
        viewing_history=tuple(HistoryEntry(item_id=i, completed=True) for i in watched),
    )


def create_context(candidates, mode=FEED, **kwargs) -> RankingContext:
    return RankingContext(
        mode=mode,
        candidates=candidates,
        now=NOW,
        config=AppConfig(),
        **kwargs
    )


class ExplodingStrategy(SignalStrategy):
    """Strategy that always raises."""

    @property
    def name(self) -> str:
        return "temporal"

    def score_item(self, item, context):
        raise RuntimeError("strategy backend down")


# =============================================================================
# CONTEXT TESTS
# =============================================================================

def test_context_tracking():
    """Test stage result recording."""
    context = create_context([])

    context.record_stage("stage_a", success=True, duration=0.5)
    context.record_stage("stage_b", success=False, duration=0.25, error="boom")

    assert context.successful_stages == ["stage_a"]
    assert context.failed_stages == ["stage_b"]
    assert abs(context.total_duration_seconds - 0.75) < 0.001
    assert isinstance(context.stage_results[0], StageResult)

    summary = context.summary()
    assert summary['mode'] == FEED
    assert summary['request_id'] == context.request_id

    print("[PASS] Context tracking test passed")


def test_context_limit():
    """Test the output bound per mode."""
    feed = create_context([], options=RecommendationOptions(count=7))
    search = create_context([], mode=SEARCH)

    assert feed.limit == 7
    assert search.limit is None
    assert search.is_search is True

    print("[PASS] Context limit test passed")


# =============================================================================
# STAGE TESTS
# =============================================================================

def test_stage_base_class():
    """Test that stage failures are recorded and not raised."""

    class BrokenStage(RankingStage):
        @property
        def name(self):
            return "broken"

        @property
        def description(self):
            return "Always fails"

        def _execute(self, context):
            raise KeyError("missing")

    context = create_context([])
    assert BrokenStage().run(context) is False
    assert context.failed_stages == ["broken"]
    assert "KeyError" in context.stage_results[0].error_message

    print("[PASS] Stage base class test passed")


def test_conditional_stage_skip():
    """Test that a skipped conditional stage is recorded as successful."""

    class NeverStage(ConditionalStage):
        @property
        def name(self):
            return "never"

        @property
        def description(self):
            return "Never runs"

        def should_run(self, context):
            return False

        def _execute(self, context):
            raise AssertionError("should not run")

    context = create_context([])
    assert NeverStage().run(context) is True
    assert context.stage_results[0].output_summary == "skipped (condition not met)"

    print("[PASS] Conditional stage test passed")


def test_candidate_filter_feed():
    """Test feed pre-filtering."""
    candidates = [
        create_test_item("ok"),
        create_test_item("watched"),
        create_test_item("future", days_old=-1),
        create_test_item("private", is_private=True),
        create_test_item("pending", status="pending"),
        ContentItem(id="unpublished", category="science"),
    ]
    context = create_context(candidates, viewer=create_test_viewer(watched=["watched"]))

    assert CandidateFilterStage().run(context) is True
    assert [item.id for item in context.pool] == ["ok"]

    keep = create_context(
        candidates,
        viewer=create_test_viewer(watched=["watched"]),
        options=RecommendationOptions(exclude_watched=False),
    )
    CandidateFilterStage().run(keep)
    assert [item.id for item in keep.pool] == ["ok", "watched"]

    print("[PASS] Feed candidate filter test passed")


def test_candidate_filter_resolves_history_from_full_list():
    """Test that filtered-out watched items still inform history."""
    watched = create_test_item("watched", category="art", creator_id="c9", duration_seconds=100)
    context = create_context(
        [watched, create_test_item("ok")],
        viewer=create_test_viewer(watched=["watched"]),
    )
    CandidateFilterStage().run(context)

    assert [item.id for item in context.pool] == ["ok"]
    assert context.scoring.history[0].category == "art"
    assert context.scoring.category_weights == {"art": 1.0}

    print("[PASS] History resolution test passed")


def test_candidate_filter_search_keeps_pool():
    """Test that search scores the pool as supplied."""
    candidates = [
        create_test_item("future", days_old=-1),
        ContentItem(id="unpublished"),
    ]
    context = create_context(candidates, mode=SEARCH)
    CandidateFilterStage().run(context)

    assert [item.id for item in context.pool] == ["future", "unpublished"]

    print("[PASS] Search candidate filter test passed")


def test_candidate_filter_drops_repeated_ids():
    """Test that the first item for each id is kept."""
    first = create_test_item("B", category="art")
    candidates = [first, create_test_item("A"), create_test_item("B", category="music")]

    for mode in (FEED, SEARCH):
        context = create_context(candidates, mode=mode, viewer=create_test_viewer())
        assert CandidateFilterStage().run(context) is True
        assert [item.id for item in context.pool] == ["B", "A"]
        assert context.pool[0] is first

    print("[PASS] Repeated candidate filter test passed")


def test_candidate_filter_rejects_bad_input():
    """Test the inputs that fail the filter stage."""
    assert CandidateFilterStage().run(create_context(None)) is False
    assert CandidateFilterStage().run(create_context([{"id": "x"}])) is False

    malformed = ContentItem(id="m", published_at="yesterday")
    context = create_context([malformed])
    assert CandidateFilterStage().run(context) is False
    assert "TypeError" in context.stage_results[0].error_message

    print("[PASS] Bad input filter test passed")


def test_signal_extraction_isolates_failures():
    """Test that a raising strategy becomes a failed result."""
    config = AppConfig()
    context = create_context([create_test_item("a", views=5000)], viewer=create_test_viewer())
    CandidateFilterStage().run(context)

    stage = SignalExtractionStage([PopularityStrategy(config), ExplodingStrategy(config)])
    assert stage.run(context) is True

    assert [r.strategy for r in context.strategy_results] == ["popularity", "temporal"]
    assert context.strategy_results[0].ok is True
    assert context.failed_strategies == ["temporal"]
    assert "strategy backend down" in context.strategy_results[1].error

    print("[PASS] Strategy failure isolation test passed")


def test_signal_extraction_parallel_keeps_order():
    """Test that parallel extraction stores results in merge order."""
    candidates = [create_test_item(f"v{i}", views=i * 1000) for i in range(6)]

    serial = create_context(candidates, viewer=create_test_viewer())
    parallel = create_context(candidates, viewer=create_test_viewer())
    parallel.config.ranking.parallel_strategies = True

    for context in (serial, parallel):
        CandidateFilterStage().run(context)
        SignalExtractionStage().run(context)

    assert [r.strategy for r in parallel.strategy_results] == [
        "content_affinity", "collaborative", "popularity", "temporal"
    ]
    for a, b in zip(serial.strategy_results, parallel.strategy_results):
        assert [(i.id, s) for i, s in a.scored] == [(i.id, s) for i, s in b.scored]

    print("[PASS] Parallel extraction test passed")


def test_diversity_stage_skipped_for_search():
    """Test that search passes combined items through unchanged."""
    context = create_context([], mode=SEARCH)
    context.combined = ["placeholder"]

    assert DiversityStage().run(context) is True
    assert context.diversified == ["placeholder"]

    print("[PASS] Diversity skip test passed")


# =============================================================================
# PIPELINE TESTS
# =============================================================================

def test_pipeline_stage_order():
    """Test the default stage lists."""
    assert RankingPipeline.for_feed().stage_names == [
        "candidate_filter", "signal_extraction", "combine", "diversity", "final_rank"
    ]
    assert RankingPipeline.for_search().stage_names[0] == "query_analysis"
    assert RankingPipeline.for_mode(SEARCH).stage_names == RankingPipeline.for_search().stage_names

    try:
        RankingPipeline.for_mode("carousel")
        assert False, "Expected ValueError"
    except ValueError:
        pass

    print("[PASS] Stage order test passed")


def test_get_stage():
    """Test stage lookup by name."""
    pipeline = RankingPipeline.for_feed()
    assert isinstance(pipeline.get_stage("candidate_filter"), CandidateFilterStage)
    assert pipeline.get_stage("nonexistent") is None

    print("[PASS] get_stage test passed")


def test_feed_pipeline_run():
    """Test a full feed run."""
    candidates = [
        create_test_item("sci", views=20000, like_count=300),
        create_test_item("art", category="art", views=10),
        create_test_item("math", category="math", views=500),
    ]
    context = create_context(candidates, viewer=create_test_viewer(), options=RecommendationOptions(count=2))
    ranked = RankingPipeline.for_feed().run(context)

    assert ranked.source == RankingSource.PIPELINE
    assert ranked.degraded is False
    assert len(ranked) <= 2
    assert ranked.ids[0] == "sci"
    assert [s.rank for s in ranked] == list(range(1, len(ranked) + 1))
    assert context.failed_stages == []

    print("[PASS] Feed pipeline run test passed")


def test_search_pipeline_run():
    """Test a full search run."""
    candidates = [
        ContentItem(id="g", category="science", title="Gravity Explained"),
        ContentItem(id="p", category="cooking", title="Pasta night"),
    ]
    context = create_context(candidates, mode=SEARCH, query_text="what is gravity")
    ranked = RankingPipeline.for_search().run(context)

    assert ranked.source == RankingSource.SEARCH
    assert ranked.ids == ["g"]
    assert context.query.category == "science"
    assert ranked[0].final_score == ranked[0].combined_score

    print("[PASS] Search pipeline run test passed")


def test_stage_results_track_items_and_failed_strategies():
    """Test per-stage item counts and the running failed-strategy count."""
    config = AppConfig()
    candidates = [
        create_test_item("sci", views=20000),
        create_test_item("sci", views=5),
        create_test_item("future", days_old=-1),
        create_test_item("art", category="art", views=800),
    ]
    context = create_context(candidates, viewer=create_test_viewer())
    pipeline = RankingPipeline.for_feed([PopularityStrategy(config), ExplodingStrategy(config)])
    ranked = pipeline.run(context)

    results = dict((r.stage_name, r) for r in context.stage_results)
    assert results["candidate_filter"].items_out == 2
    assert results["candidate_filter"].failed_strategies == 0
    assert results["signal_extraction"].items_out is None
    assert results["signal_extraction"].failed_strategies == 1
    assert results["combine"].items_out == len(context.combined)
    assert results["final_rank"].items_out == len(ranked)
    assert results["final_rank"].failed_strategies == 1

    summary = context.summary()
    assert summary['failed_strategies'] == ["temporal"]
    assert summary['stage_items']["candidate_filter"] == 2
    assert "signal_extraction" not in summary['stage_items']

    print("[PASS] Stage tracking test passed")


def test_pipeline_raises_on_stage_failure():
    """Test that the first failed stage aborts the run."""
    context = create_context(None, viewer=create_test_viewer())

    try:
        RankingPipeline.for_feed().run(context)
        assert False, "Expected PipelineError"
    except PipelineError as e:
        assert e.stage_name == "candidate_filter"
        assert "No candidate list" in str(e)

    # Later stages never ran
    assert [r.stage_name for r in context.stage_results] == ["candidate_filter"]

    print("[PASS] Pipeline failure test passed")


def run_all_tests():
    """Run all pipeline tests."""
    print("\n" + "="*60)
    print("PIPELINE TESTS")
    print("="*60 + "\n")

    test_context_tracking()
    test_context_limit()
    test_stage_base_class()
    test_conditional_stage_skip()
    test_candidate_filter_feed()
    test_candidate_filter_resolves_history_from_full_list()
    test_candidate_filter_search_keeps_pool()
    test_candidate_filter_drops_repeated_ids()
    test_candidate_filter_rejects_bad_input()
    test_signal_extraction_isolates_failures()
    test_signal_extraction_parallel_keeps_order()
    test_diversity_stage_skipped_for_search()
    test_pipeline_stage_order()
    test_get_stage()
    test_feed_pipeline_run()
    test_search_pipeline_run()
    test_stage_results_track_items_and_failed_strategies()
    test_pipeline_raises_on_stage_failure()

    print("\n" + "="*60)
    print("ALL PIPELINE TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
