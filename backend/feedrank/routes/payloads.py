"""
Request payload parsing shared by the API blueprints.

Every helper raises ValueError for malformed input; the blueprints turn
that into a 400 response.
"""

from typing import Any, Dict, List, Optional

from flask import current_app

from ..models import (
    ContentItem,
    ViewerProfile,
    RecommendationOptions,
    EngagementRecord,
    parse_timestamp,
)


def require_json(data: Any) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _build(model, entry: Any, label: str):
    if not isinstance(entry, dict):
        raise ValueError(f"{label} must be a JSON object")
    try:
        return model.from_dict(entry)
    except (TypeError, ValueError, AttributeError) as e:
        raise ValueError(f"Invalid {label}: {e}") from None


def parse_item(entry: Any) -> ContentItem:
    return _build(ContentItem, entry, "item")


def parse_candidates(entries: Any) -> List[ContentItem]:
    """Parse the candidate list, enforcing the configured size limit."""
    if entries is None:
        raise ValueError("No candidates provided")
    if not isinstance(entries, list):
        raise ValueError("candidates must be a list")

    limit = current_app.app_config.flask.max_candidates
    if len(entries) > limit:
        raise ValueError(f"Too many candidates: {len(entries)} (maximum {limit})")

    return [_build(ContentItem, entry, "candidate") for entry in entries]


def parse_viewer(entry: Any) -> Optional[ViewerProfile]:
    if entry is None:
        return None
    return _build(ViewerProfile, entry, "viewer")


def parse_options(entry: Any) -> Optional[RecommendationOptions]:
    if entry is None:
        return None
    options = _build(RecommendationOptions, entry, "options")
    if not isinstance(options.count, int) or isinstance(options.count, bool) or options.count < 0:
        raise ValueError("options.count must be a non-negative integer")
    if not isinstance(options.diversity_factor, (int, float)) or options.diversity_factor < 0:
        raise ValueError("options.diversity_factor must be a non-negative number")
    return options


def parse_now(value: Any):
    if value is None:
        return None
    try:
        return parse_timestamp(value)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid timestamp: {e}") from None


def parse_records(entries: Any) -> List[EngagementRecord]:
    if not isinstance(entries, list):
        raise ValueError("records must be a list")
    return [_build(EngagementRecord, entry, "engagement record") for entry in entries]
