"""
Search Routes Module
====================
REST API endpoints for query relevance ranking.

Endpoints:
- POST /api/search              - Rank candidates against a query
- POST /api/search/suggestions  - Typeahead suggestions
"""

from flask import Blueprint, request, jsonify, current_app

from .payloads import require_json, parse_candidates, parse_viewer, parse_now
from ..logging_config import get_engine_logger

# Configure logging
logger = get_engine_logger("routes.search", log_to_file=False)

# Create blueprint
search_bp = Blueprint('search', __name__)


@search_bp.route('', methods=['POST'])
def search():
    """
    Rank candidates by relevance to a query.

    Request JSON:
        {
            "query": "what is gravity",
            "candidates": [...],
            "viewer": {...},                 # Optional
            "now": "2024-01-15T10:30:00Z"    # Optional
        }

    Response JSON:
        {
            "success": true,
            "query": "what is gravity",
            "items": [...],
            "source": "search",
            "degraded": false,
            "count": 3
        }
    """
    try:
        data = require_json(request.get_json(silent=True))
        query = data.get('query')
        if not isinstance(query, str) or not query.strip():
            raise ValueError("No query provided")
        candidates = parse_candidates(data.get('candidates'))
        viewer = parse_viewer(data.get('viewer'))
        now = parse_now(data.get('now'))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        ranked = current_app.engine.compute_search_relevance(query, candidates, viewer, now)
        return jsonify({'success': True, 'query': query, **ranked.to_dict()}), 200
    except Exception as e:
        logger.exception(f"Search error: {e}")
        return jsonify({'error': f'Search error: {str(e)}'}), 500


@search_bp.route('/suggestions', methods=['POST'])
def suggestions():
    """
    Suggest completions for a partial query.

    Request JSON:
        {
            "partial": "phys",
            "candidates": [...],   # Optional, titles may be suggested
            "limit": 8             # Optional
        }

    Response JSON:
        {"suggestions": ["physics tutorial", "learn physics", ...]}
    """
    try:
        data = require_json(request.get_json(silent=True))
        partial = data.get('partial', '')
        if not isinstance(partial, str):
            raise ValueError("partial must be a string")
        candidates = parse_candidates(data.get('candidates', []))
        limit = data.get('limit')
        if limit is not None and (not isinstance(limit, int) or isinstance(limit, bool) or limit < 0):
            raise ValueError("limit must be a non-negative integer")
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'suggestions': current_app.engine.search_suggestions(partial, candidates, limit)
    }), 200
