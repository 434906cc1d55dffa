#!/usr/bin/env python3
"""
Run Ranking Script
==================
Command-line interface for ranking a candidate dataset offline.

The dataset is a JSON file of the form:
    {
        "viewer": {"interests": ["science"], "viewing_history": [...]},
        "candidates": [{"id": "v1", "category": "science", ...}],
        "now": "2024-01-15T10:30:00Z"
    }

Usage:
    python scripts/run_ranking.py --dataset data.json
    python scripts/run_ranking.py --dataset data.json --search "what is gravity"
    python scripts/run_ranking.py --dataset data.json --count 10 --diversity 0.5 --json
    python scripts/run_ranking.py --dataset data.json --preset development
"""

import argparse
import sys
import json
from pathlib import Path

from dotenv import load_dotenv

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from feedrank.config import (
    get_config,
    set_config,
    load_config_file,
    apply_environment_overrides,
    get_development_config,
    get_production_config,
)
from feedrank.engine import RankingEngine
from feedrank.models import ContentItem, ViewerProfile, RecommendationOptions, parse_timestamp
from feedrank.logging_config import get_engine_logger

logger = get_engine_logger("cli", log_to_file=False)

PRESETS = {
    'development': get_development_config,
    'production': get_production_config,
}


def main():
    load_dotenv()

    parser = argparse.ArgumentParser(
        description="Rank a candidate dataset with the feedrank engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Personalised feed for the dataset's viewer
    python scripts/run_ranking.py --dataset data.json

    # Search instead of feed
    python scripts/run_ranking.py --dataset data.json --search "python tutorial"

    # Run with a saved configuration, print JSON
    python scripts/run_ranking.py --dataset data.json --config tuned.json --json

    # Verbose development settings (debug logging, per-strategy scores)
    python scripts/run_ranking.py --dataset data.json --preset development
        """
    )

    parser.add_argument(
        '--dataset', '-d',
        type=str,
        required=True,
        help='Path to the JSON dataset (viewer, candidates, now)'
    )

    parser.add_argument(
        '--search', '-s',
        type=str,
        metavar='QUERY',
        default=None,
        help='Rank by relevance to QUERY instead of building a feed'
    )

    parser.add_argument(
        '--count', '-n',
        type=int,
        default=None,
        help='Number of feed items (default from config)'
    )

    parser.add_argument(
        '--diversity',
        type=float,
        default=None,
        help='Diversity factor for the feed (0 disables)'
    )

    parser.add_argument(
        '--include-watched',
        action='store_true',
        help='Keep items already in the viewing history'
    )

    parser.add_argument(
        '--config', '-c',
        type=str,
        metavar='FILE',
        help='Load configuration from a JSON file'
    )

    parser.add_argument(
        '--preset',
        choices=sorted(PRESETS),
        default=None,
        help='Start from a configuration preset (ignored with --config)'
    )

    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the ranked list as JSON'
    )

    args = parser.parse_args()

    return run_ranking_cli(
        dataset_path=args.dataset,
        query=args.search,
        count=args.count,
        diversity=args.diversity,
        include_watched=args.include_watched,
        config_path=args.config,
        preset=args.preset,
        as_json=args.json
    )


def load_dataset(dataset_path: str):
    """Load viewer, candidates and the frozen time from a dataset file."""
    with open(dataset_path, 'r') as f:
        data = json.load(f)

    viewer = ViewerProfile.from_dict(data['viewer']) if data.get('viewer') else None
    candidates = [ContentItem.from_dict(entry) for entry in data.get('candidates', [])]
    now = parse_timestamp(data.get('now'))
    return viewer, candidates, now


def run_ranking_cli(
    dataset_path: str,
    query: str = None,
    count: int = None,
    diversity: float = None,
    include_watched: bool = False,
    config_path: str = None,
    as_json: bool = False,
    preset: str = None
) -> int:
    """Rank the dataset and display results."""

    if not Path(dataset_path).exists():
        print(f"Error: Dataset file not found: {dataset_path}")
        return 1

    if config_path:
        config = load_config_file(config_path)
    elif preset is not None:
        if preset not in PRESETS:
            print(f"Error: Unknown preset: {preset} (expected one of {', '.join(sorted(PRESETS))})")
            return 1
        config = apply_environment_overrides(PRESETS[preset]())
        set_config(config)
    else:
        config = get_config()
        apply_environment_overrides(config)

    logger.debug(f"Ranking {dataset_path} with run name {config.logging.run_name}")

    try:
        viewer, candidates, now = load_dataset(dataset_path)
    except (KeyError, TypeError, ValueError) as e:
        print(f"Error: Invalid dataset: {e}")
        return 1

    engine = RankingEngine(config)

    if query is not None:
        ranked = engine.compute_search_relevance(query, candidates, viewer, now)
        title = f"SEARCH: {query}"
    else:
        defaults = engine.default_options()
        options = RecommendationOptions(
            count=count if count is not None else defaults.count,
            exclude_watched=not include_watched,
            diversity_factor=diversity if diversity is not None else defaults.diversity_factor,
        )
        ranked = engine.compute_recommendations(viewer, candidates, options, now)
        title = "PERSONALISED FEED"

    if as_json:
        print(json.dumps(ranked.to_dict(), indent=2))
        return 0

    print("=" * 60)
    print(title)
    print("=" * 60)
    print(f"Candidates: {len(candidates)}")
    print(f"Source: {ranked.source.value}{' (degraded)' if ranked.degraded else ''}")
    if ranked.error:
        print(f"Error: {ranked.error}")
    print("=" * 60)
    print()

    if not ranked.items:
        print("No items ranked.")
        return 0

    for scored in ranked:
        item = scored.item
        label = item.title or item.category or ''
        print(f"  {scored.rank:>3}. {item.id:<20} {scored.ranking_score:8.4f}  {label}")

    print()
    return 0


if __name__ == '__main__':
    sys.exit(main())
