"""
Configuration System Tests
==========================
Verifies that the configuration management system works correctly.
"""

import os
import sys
import tempfile

# Add parent to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from feedrank.config import (
    AppConfig,
    RankingConfig,
    get_config,
    set_config,
    reset_config,
    apply_environment_overrides,
    get_development_config,
    get_production_config,
)


def test_default_config():
    """Test that default configuration is created correctly."""
    reset_config()
    config = get_config()

    assert config is not None
    assert config.ranking.strategy_weights == {
        "content_affinity": 0.35,
        "collaborative": 0.25,
        "popularity": 0.25,
        "temporal": 0.15,
    }
    assert config.ranking.category_penalty == 0.1
    assert config.ranking.creator_penalty == 0.05
    assert config.ranking.default_count == 20
    assert config.search.title_weight == 0.4
    assert config.flask.port == 5000

    print("[PASS] Default configuration test passed")


def test_default_weights_sum_to_one():
    """Test that the blend weights keep combined scores in [0, 1]."""
    weights = AppConfig().ranking.strategy_weights
    assert abs(sum(weights.values()) - 1.0) < 0.001

    print("[PASS] Weight sum test passed")


def test_config_singleton():
    """Test that get_config returns the same instance."""
    reset_config()
    config1 = get_config()
    config2 = get_config()

    assert config1 is config2
    print("[PASS] Singleton test passed")


def test_config_serialization():
    """Test configuration save and load."""
    config = AppConfig()
    config.logging.run_name = "test_run"
    config.ranking.strategy_weights["temporal"] = 0.05

    with tempfile.NamedTemporaryFile(mode='w', suffix='.json', delete=False) as f:
        temp_path = f.name

    try:
        config.save(temp_path)
        loaded_config = AppConfig.load(temp_path)

        assert loaded_config.logging.run_name == "test_run"
        assert loaded_config.ranking.strategy_weights["temporal"] == 0.05
        assert loaded_config.search.min_relevance == config.search.min_relevance
        assert loaded_config.paths.base_dir == config.paths.base_dir

        print("[PASS] Serialization test passed")
    finally:
        os.unlink(temp_path)


def test_environment_overrides():
    """Test environment variable overrides."""
    overrides = {
        "FEEDRANK_RANKING_CATEGORY_PENALTY": "0.2",
        "FEEDRANK_RANKING_PARALLEL_STRATEGIES": "true",
        "FEEDRANK_WEIGHT_TEMPORAL": "0.1",
        "FEEDRANK_LOGGING_RUN_NAME": "env_run",
        "PORT": "8080",
    }
    os.environ.update(overrides)

    try:
        config = apply_environment_overrides(AppConfig())

        assert config.ranking.category_penalty == 0.2
        assert config.ranking.parallel_strategies is True
        assert config.ranking.strategy_weights["temporal"] == 0.1
        assert config.logging.run_name == "env_run"
        assert config.flask.port == 8080

        print("[PASS] Environment override test passed")
    finally:
        for key in overrides:
            del os.environ[key]


def test_bad_environment_override_is_ignored():
    """Test that an unparseable override leaves the default in place."""
    os.environ["FEEDRANK_RANKING_MAX_WORKERS"] = "many"
    os.environ["FEEDRANK_WEIGHT_UNKNOWN"] = "0.5"

    try:
        config = apply_environment_overrides(AppConfig())
        assert config.ranking.max_workers == 4
        assert "unknown" not in config.ranking.strategy_weights

        print("[PASS] Bad override test passed")
    finally:
        del os.environ["FEEDRANK_RANKING_MAX_WORKERS"]
        del os.environ["FEEDRANK_WEIGHT_UNKNOWN"]


def test_validate_rejects_negative_weight():
    """Test that validation catches unusable ranking settings."""
    ranking = RankingConfig()
    ranking.strategy_weights["popularity"] = -0.1

    try:
        ranking.validate()
        assert False, "Expected ValueError"
    except ValueError as e:
        assert "popularity" in str(e)

    config = AppConfig()
    config.ranking.candidate_multiplier = 0
    try:
        set_config(config)
        assert False, "Expected ValueError"
    except ValueError:
        pass
    finally:
        reset_config()

    print("[PASS] Validation test passed")


def test_presets():
    """Test development and production presets."""
    dev = get_development_config()
    assert dev.flask.debug is True
    assert dev.logging.log_level == "DEBUG"

    prod = get_production_config()
    assert prod.flask.debug is False
    assert prod.ranking.parallel_strategies is True

    print("[PASS] Preset test passed")


def test_config_to_dict():
    """Test configuration dictionary export."""
    config = AppConfig()
    config_dict = config.to_dict()

    assert isinstance(config_dict, dict)
    assert 'ranking' in config_dict
    assert 'search' in config_dict
    assert config_dict['ranking']['min_strategy_score'] == 0.1
    assert isinstance(config_dict['paths']['base_dir'], str)

    print("[PASS] Config to_dict test passed")


def run_all_tests():
    """Run all configuration tests."""
    print("\n" + "="*60)
    print("CONFIGURATION SYSTEM TESTS")
    print("="*60 + "\n")

    test_default_config()
    test_default_weights_sum_to_one()
    test_config_singleton()
    test_config_serialization()
    test_environment_overrides()
    test_bad_environment_override_is_ignored()
    test_validate_rejects_negative_weight()
    test_presets()
    test_config_to_dict()

    print("\n" + "="*60)
    print("ALL CONFIGURATION TESTS PASSED")
    print("="*60 + "\n")


if __name__ == "__main__":
    run_all_tests()
