"""
Configuration Management Module
===============================
Centralized configuration system for the feedrank ranking engine.

This module provides:
- Type-safe configuration via dataclasses
- Environment variable overrides
- JSON save/load for reproducible ranking runs
- Default values with documentation

Usage:
    from feedrank.config import get_config
    config = get_config()

    # Access configuration
    weights = config.ranking.strategy_weights
    factor = config.ranking.default_diversity_factor

To pin a tuned configuration, save it once and load it at startup:
    config = load_config_file("configs/production.json")
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional
import os
import json
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# CONFIGURATION DATACLASSES
# =============================================================================

@dataclass
class PathConfig:
    """Configuration for file system paths (only used for log files)."""

    base_dir: Path = field(default_factory=lambda: Path(__file__).parent)
    logs_dir: str = "logs"

    @property
    def logs(self) -> Path:
        return self.base_dir / self.logs_dir

    def ensure_directories(self) -> None:
        """Create the log directory if it doesn't exist."""
        self.logs.mkdir(parents=True, exist_ok=True)


@dataclass
class RankingConfig:
    """
    Configuration for the personalised feed ranking.

    STRATEGY WEIGHTS (content=0.35, collaborative=0.25, popularity=0.25,
    temporal=0.15) are hand-tuned and sum to 1.0 so a combined score stays
    in [0, 1]. Each strategy's rank-weighted list position is multiplied by
    its weight and summed per item.

    DIVERSITY: every earlier kept item in the same category costs 0.1 and
    every earlier kept item by the same creator costs 0.05, scaled by the
    caller's diversity factor.
    """

    strategy_weights: Dict[str, float] = field(default_factory=lambda: {
        "content_affinity": 0.35,
        "collaborative": 0.25,
        "popularity": 0.25,
        "temporal": 0.15,
    })

    # Extractors drop anything at or below this local score
    min_strategy_score: float = 0.1

    # Each extractor returns up to count * candidate_multiplier items
    candidate_multiplier: int = 2

    # Request defaults
    default_count: int = 20
    default_diversity_factor: float = 0.3

    # Diversity penalties
    category_penalty: float = 0.1
    creator_penalty: float = 0.05
    min_adjusted_score: float = 0.1

    # Final ranking boosts
    duration_boost: float = 0.1
    quality_boost: float = 0.1
    quality_min_views: int = 1000
    quality_min_engagement: float = 5.0

    # Fallback ordering: engagement_rate + views / fallback_view_divisor
    fallback_view_divisor: float = 10000.0

    # Run extractors on a thread pool (merge order stays fixed)
    parallel_strategies: bool = False
    max_workers: int = 4

    def validate(self) -> None:
        """Raise ValueError for settings the ranking cannot work with."""
        for name, weight in self.strategy_weights.items():
            if weight < 0:
                raise ValueError(f"Strategy weight for {name} must be >= 0, got {weight}")
        if self.category_penalty < 0 or self.creator_penalty < 0:
            raise ValueError("Diversity penalties must be >= 0")
        if self.candidate_multiplier < 1:
            raise ValueError("candidate_multiplier must be >= 1")
        if self.fallback_view_divisor <= 0:
            raise ValueError("fallback_view_divisor must be > 0")


@dataclass
class SearchConfig:
    """
    Configuration for query relevance scoring.

    Field weights follow the order of importance of where a match appears:
    title, description, category, tags, creator name. Viewer profile
    relevance adds at most 0.15 and popularity/recency add small capped
    boosts so they only reorder near-ties.
    """

    title_weight: float = 0.4
    description_weight: float = 0.25
    category_weight: float = 0.2
    tag_weight: float = 0.1
    creator_weight: float = 0.05
    profile_weight: float = 0.15

    engagement_boost_cap: float = 0.1
    recency_boost_weight: float = 0.05

    # Minimum relevance for a search hit
    min_relevance: float = 0.1

    max_suggestions: int = 8


@dataclass
class FlaskConfig:
    """Configuration for the Flask API server."""

    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False

    secret_key: str = field(default_factory=lambda: os.getenv("FLASK_SECRET_KEY", "dev-secret-key"))

    cors_origins: list = field(default_factory=lambda: ["*"])

    # Upper bound on candidates accepted per request
    max_candidates: int = 5000


@dataclass
class LoggingConfig:
    """Configuration for engine logging."""

    run_name: str = "default"
    log_level: str = "INFO"

    # JSON-lines log files under paths.logs; off by default
    log_to_file: bool = False

    log_scores: bool = False
    log_decisions: bool = True


@dataclass
class AppConfig:
    """
    Master configuration class that aggregates all configuration sections.

    This is the main configuration object used throughout the application.
    """

    paths: PathConfig = field(default_factory=PathConfig)
    ranking: RankingConfig = field(default_factory=RankingConfig)
    search: SearchConfig = field(default_factory=SearchConfig)
    flask: FlaskConfig = field(default_factory=FlaskConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> dict:
        """Convert configuration to dictionary for serialization."""
        def convert(obj):
            if hasattr(obj, '__dataclass_fields__'):
                return {k: convert(v) for k, v in obj.__dict__.items()}
            elif isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj
        return convert(self)

    def save(self, filepath: str) -> None:
        """Save configuration to JSON file."""
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {filepath}")

    @classmethod
    def from_dict(cls, data: dict) -> "AppConfig":
        """Create configuration from dictionary."""
        paths_data = dict(data.get('paths', {}))
        if 'base_dir' in paths_data and isinstance(paths_data['base_dir'], str):
            paths_data['base_dir'] = Path(paths_data['base_dir'])

        return cls(
            paths=PathConfig(**paths_data),
            ranking=RankingConfig(**data.get('ranking', {})),
            search=SearchConfig(**data.get('search', {})),
            flask=FlaskConfig(**data.get('flask', {})),
            logging=LoggingConfig(**data.get('logging', {})),
        )

    @classmethod
    def load(cls, filepath: str) -> "AppConfig":
        """Load configuration from JSON file."""
        with open(filepath, 'r') as f:
            data = json.load(f)
        logger.info(f"Configuration loaded from {filepath}")
        return cls.from_dict(data)


# =============================================================================
# GLOBAL CONFIGURATION
# =============================================================================

_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get the global application configuration.

    Creates a default configuration on first access.

    Returns:
        The global AppConfig instance
    """
    global _config
    if _config is None:
        _config = AppConfig()
        logger.info("Initialized default application configuration")
    return _config


def set_config(config: AppConfig) -> None:
    """
    Set the global application configuration.

    Args:
        config: The AppConfig instance to use globally
    """
    global _config
    config.ranking.validate()
    _config = config
    logger.info(f"Set global configuration (run: {config.logging.run_name})")


def reset_config() -> None:
    """Reset the global configuration to None (forces reload on next get_config)."""
    global _config
    _config = None
    logger.info("Reset global configuration")


def load_config_file(filepath: str) -> AppConfig:
    """
    Load a configuration file and set it as global.

    Args:
        filepath: Path to the configuration JSON file

    Returns:
        The loaded AppConfig instance
    """
    config = AppConfig.load(filepath)
    set_config(config)
    return config


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDES
# =============================================================================

def apply_environment_overrides(config: AppConfig) -> AppConfig:
    """
    Apply environment variable overrides to configuration.

    Environment variables follow the pattern:
    FEEDRANK_{SECTION}_{KEY}

    Examples:
        FEEDRANK_RANKING_CATEGORY_PENALTY=0.2
        FEEDRANK_FLASK_PORT=8080
        FEEDRANK_LOGGING_LOG_LEVEL=DEBUG

    Strategy weights use the weight name as key:
        FEEDRANK_WEIGHT_TEMPORAL=0.1

    Also supports common simplified environment variables:
        PORT=8080 (maps to flask.port)
        LOG_LEVEL=DEBUG (maps to logging.log_level)

    Args:
        config: Base configuration to override

    Returns:
        Configuration with environment overrides applied
    """
    if os.getenv("PORT"):
        try:
            config.flask.port = int(os.getenv("PORT"))
            logger.info(f"Environment override: flask.port = {config.flask.port}")
        except ValueError:
            logger.warning(f"Ignoring non-integer PORT={os.getenv('PORT')}")

    if os.getenv("LOG_LEVEL"):
        config.logging.log_level = os.getenv("LOG_LEVEL").upper()
        logger.info(f"Environment override: logging.log_level = {config.logging.log_level}")

    prefix = "FEEDRANK_"

    section_map = {
        'ranking': 'ranking',
        'search': 'search',
        'flask': 'flask',
        'logging': 'logging',
    }

    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue

        parts = key[len(prefix):].lower().split('_', 1)
        if len(parts) != 2:
            continue

        section, attr = parts

        if section == 'weight':
            if attr not in config.ranking.strategy_weights:
                logger.warning(f"Unknown strategy in {key}")
                continue
            try:
                config.ranking.strategy_weights[attr] = float(value)
                logger.info(f"Environment override: ranking.strategy_weights[{attr}] = {value}")
            except ValueError as e:
                logger.warning(f"Failed to apply environment override {key}: {e}")
            continue

        if section not in section_map:
            continue

        section_config = getattr(config, section_map[section], None)
        if section_config is None or not hasattr(section_config, attr):
            continue

        current_value = getattr(section_config, attr)
        try:
            if isinstance(current_value, bool):
                typed_value = value.lower() in ('true', '1', 'yes')
            elif isinstance(current_value, int):
                typed_value = int(value)
            elif isinstance(current_value, float):
                typed_value = float(value)
            elif isinstance(current_value, str):
                typed_value = value
            else:
                logger.warning(f"Environment override not supported for {section}.{attr}")
                continue

            setattr(section_config, attr, typed_value)
            logger.info(f"Environment override: {section}.{attr} = {typed_value}")

        except (ValueError, TypeError) as e:
            logger.warning(f"Failed to apply environment override {key}: {e}")

    return config


# =============================================================================
# PRESET CONFIGURATIONS
# =============================================================================

def get_development_config() -> AppConfig:
    """Get configuration for local development."""
    config = AppConfig()
    config.flask.debug = True
    config.logging.log_level = "DEBUG"
    config.logging.log_scores = True
    return config


def get_production_config() -> AppConfig:
    """Get configuration for production serving."""
    config = AppConfig()
    config.flask.debug = False
    config.logging.log_level = "INFO"
    config.logging.log_scores = False
    config.ranking.parallel_strategies = True
    return config
