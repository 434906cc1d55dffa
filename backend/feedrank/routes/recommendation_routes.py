"""
Recommendation Routes Module
============================
REST API endpoints for the personalised feed.

Endpoints:
- POST /api/recommendations/feed          - Rank candidates for a viewer
- POST /api/recommendations/explain       - Explain why an item is recommended
- POST /api/recommendations/interactions  - Capture a viewer interaction

The caller supplies every item and the viewer profile; nothing is fetched
or stored here.
"""

from flask import Blueprint, request, jsonify, current_app

from .payloads import (
    require_json,
    parse_item,
    parse_candidates,
    parse_viewer,
    parse_options,
    parse_now,
)
from ..logging_config import get_engine_logger

# Configure logging
logger = get_engine_logger("routes.recommendations", log_to_file=False)

# Create blueprint
recommendation_bp = Blueprint('recommendations', __name__)


@recommendation_bp.route('/feed', methods=['POST'])
def personalised_feed():
    """
    Rank candidates into a personalised feed.

    Request JSON:
        {
            "viewer": {"interests": ["science"], "viewing_history": [...]},
            "candidates": [{"id": "v1", "category": "science", ...}],
            "options": {"count": 20, "diversity_factor": 0.3},   # Optional
            "now": "2024-01-15T10:30:00Z"                        # Optional
        }

    Response JSON:
        {
            "success": true,
            "items": [...],
            "source": "pipeline",
            "degraded": false,
            "count": 20
        }
    """
    try:
        data = require_json(request.get_json(silent=True))
        candidates = parse_candidates(data.get('candidates'))
        viewer = parse_viewer(data.get('viewer'))
        options = parse_options(data.get('options'))
        now = parse_now(data.get('now'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        ranked = current_app.engine.compute_recommendations(viewer, candidates, options, now)
        return jsonify({'success': True, **ranked.to_dict()}), 200
    except Exception as e:
        logger.exception(f"Feed ranking error: {e}")
        return jsonify({'error': f'Feed ranking error: {str(e)}'}), 500


@recommendation_bp.route('/explain', methods=['POST'])
def explain_recommendation():
    """
    Explain why an item would be recommended to a viewer.

    Request JSON:
        {
            "item": {"id": "v1", "category": "science", "views": 20000, ...},
            "viewer": {"interests": ["science"]},    # Optional
            "now": "2024-01-15T10:30:00Z"            # Optional
        }

    Response JSON:
        {"item_id": "v1", "explanation": "Matches your interest in science, Popular content"}
    """
    try:
        data = require_json(request.get_json(silent=True))
        item = parse_item(data.get('item'))
        viewer = parse_viewer(data.get('viewer'))
        now = parse_now(data.get('now'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        explanation = current_app.engine.explain(item, viewer, now)
        return jsonify({'item_id': item.id, 'explanation': explanation}), 200
    except Exception as e:
        logger.exception(f"Explanation error: {e}")
        return jsonify({'error': str(e)}), 500


@recommendation_bp.route('/interactions', methods=['POST'])
def record_interaction():
    """
    Capture a viewer interaction and echo the event.

    Request JSON:
        {
            "viewer_id": "u1",
            "item_id": "v1",
            "type": "like",                  # view, like, complete, skip, share
            "metadata": {"watch_time": 12}   # Optional
        }
    """
    try:
        data = require_json(request.get_json(silent=True))
        viewer_id = data.get('viewer_id')
        item_id = data.get('item_id')
        if not viewer_id or not item_id:
            raise ValueError("viewer_id and item_id are required")

        metadata = data.get('metadata') or {}
        if not isinstance(metadata, dict):
            raise ValueError("metadata must be a JSON object")

        event = current_app.engine.record_interaction(
            viewer_id, item_id, data.get('type'), metadata, parse_now(data.get('now'))
        )
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'success': True, 'interaction': event.to_dict()}), 200
