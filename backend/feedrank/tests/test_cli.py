"""
CLI Tests
=========
Runs the offline ranking script against temporary datasets.
"""

import os
import sys
import json
import tempfile

# Add parent and scripts directories to path for imports
BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.dirname(__file__)))
sys.path.insert(0, BACKEND_DIR)
sys.path.insert(0, os.path.join(BACKEND_DIR, 'scripts'))

from run_ranking import load_dataset, run_ranking_cli
from feedrank.config import AppConfig, get_config, reset_config


DATASET = {
    "viewer": {
        "interests": ["science"],
        "viewing_history": [{"item_id": "h1", "completed": True, "category": "science"}],
    },
    "candidates": [
        {"id": "A", "category": "science", "title": "Gravity Explained", "views": 50000,
         "like_count": 200, "published_at": "2024-01-15T10:00:00Z"},
        {"id": "B", "category": "art", "title": "Watercolor basics", "views": 5,
         "published_at": "2024-01-16T10:00:00Z"},
    ],
    "now": "2024-01-17T10:00:00Z",
}


def write_json(directory: str, name: str, data) -> str:
    path = os.path.join(directory, name)
    with open(path, 'w') as f:
        json.dump(data, f)
    return path


def test_load_dataset():
    """Test dataset parsing."""
    with tempfile.TemporaryDirectory() as tmpdir:
        viewer, candidates, now = load_dataset(write_json(tmpdir, "data.json", DATASET))

    assert viewer.interests == frozenset({"science"})
    assert [item.id for item in candidates] == ["A", "B"]
    assert now.year == 2024 and now.hour == 10

    print("[PASS] Load dataset test passed")


def test_feed_and_search_runs():
    """Test that feed and search runs exit cleanly."""
    with tempfile.TemporaryDirectory() as tmpdir:
        dataset = write_json(tmpdir, "data.json", DATASET)
        config_path = os.path.join(tmpdir, "config.json")
        AppConfig().save(config_path)

        assert run_ranking_cli(dataset, config_path=config_path) == 0
        assert run_ranking_cli(dataset, count=1, diversity=0, config_path=config_path, as_json=True) == 0
        assert run_ranking_cli(dataset, query="what is gravity", config_path=config_path) == 0
    reset_config()

    print("[PASS] CLI run test passed")


def test_config_presets():
    """Test that a preset becomes the active configuration."""
    with tempfile.TemporaryDirectory() as tmpdir:
        dataset = write_json(tmpdir, "data.json", DATASET)

        assert run_ranking_cli(dataset, preset="development", as_json=True) == 0
        assert get_config().logging.log_scores is True

        assert run_ranking_cli(dataset, query="gravity", preset="production") == 0
        assert get_config().ranking.parallel_strategies is True
        assert get_config().logging.log_scores is False

        assert run_ranking_cli(dataset, preset="staging") == 1
    reset_config()

    print("[PASS] CLI preset test passed")


def test_bad_inputs():
    """Test missing and malformed datasets."""
    assert run_ranking_cli("/nonexistent/data.json") == 1

    with tempfile.TemporaryDirectory() as tmpdir:
        bad = write_json(tmpdir, "bad.json", {"candidates": [{"title": "no id"}]})
        config_path = os.path.join(tmpdir, "config.json")
        AppConfig().save(config_path)

        assert run_ranking_cli(bad, config_path=config_path) == 1
    reset_config()

    print("[PASS] CLI bad input test passed")


def run_all_tests():
    """Run all CLI tests."""
    print("\n" + "="*60)
    print("CLI TESTS")
    print("="*60 + "\n")

    test_load_dataset()
    test_feed_and_search_runs()
    test_config_presets()
    test_bad_inputs()

    print("\n" + "="*60)
    print("ALL CLI TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
