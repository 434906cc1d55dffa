"""
Engagement Routes Module
========================
REST API endpoints for engagement analytics.

Endpoints:
- POST /api/engagement/score          - Engagement score of one record
- POST /api/engagement/preferences    - Category preferences from records
- POST /api/engagement/disengagement  - Session disengagement check
- POST /api/engagement/predict        - Predicted engagement with an item
"""

from flask import Blueprint, request, jsonify

from .payloads import require_json, parse_item, parse_records
from ..models import EngagementRecord
from ..services import EngagementService
from ..logging_config import get_engine_logger

# Configure logging
logger = get_engine_logger("routes.engagement", log_to_file=False)

# Create blueprint
engagement_bp = Blueprint('engagement', __name__)

engagement_service = EngagementService()


@engagement_bp.route('/score', methods=['POST'])
def engagement_score():
    """
    Score one engagement record.

    Request JSON:
        {"record": {"item_id": "v1", "watch_time": 30, "total_duration": 60, "liked": true}}

    Response JSON:
        {"item_id": "v1", "engagement_score": 35.0, "completion_rate": 50.0}
    """
    try:
        data = require_json(request.get_json(silent=True))
        record = data.get('record')
        if not isinstance(record, dict):
            raise ValueError("record must be a JSON object")
        try:
            record = EngagementRecord.from_dict(record)
        except TypeError as e:
            raise ValueError(f"Invalid engagement record: {e}") from None
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({
        'item_id': record.item_id,
        'engagement_score': engagement_service.calculate_engagement_score(record),
        'completion_rate': record.completion_rate,
    }), 200


@engagement_bp.route('/preferences', methods=['POST'])
def category_preferences():
    """
    Category preference weights from recent engagement.

    Request JSON:
        {"records": [...]}

    Response JSON:
        {"preferences": {"science": 0.6, "art": 0.4}}
    """
    try:
        data = require_json(request.get_json(silent=True))
        records = parse_records(data.get('records', []))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    return jsonify({'preferences': engagement_service.category_preferences(records)}), 200


@engagement_bp.route('/disengagement', methods=['POST'])
def disengagement():
    """
    Check whether a viewer is losing interest in a session.

    Request JSON:
        {"session_id": "s1", "records": [...]}

    Response JSON:
        {"is_disengaging": true, "severity": 60, "reason": "...", "metrics": {...}}
    """
    try:
        data = require_json(request.get_json(silent=True))
        session_id = data.get('session_id')
        if not session_id:
            raise ValueError("No session_id provided")
        records = parse_records(data.get('records', []))
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        report = engagement_service.detect_disengagement(records, session_id)
        return jsonify(report.to_dict()), 200
    except Exception as e:
        logger.exception(f"Disengagement check error: {e}")
        return jsonify({'error': str(e)}), 500


@engagement_bp.route('/predict', methods=['POST'])
def predict_engagement():
    """
    Predict how a viewer will engage with an item.

    Preferences are derived from the records; when a session_id is given the
    session is also checked for disengagement.

    Request JSON:
        {
            "item": {"id": "v1", "category": "science", "views": 2000, ...},
            "records": [...],        # Optional
            "session_id": "s1"       # Optional
        }

    Response JSON:
        {"item_id": "v1", "predicted_engagement": 80.0, "disengaging": false}
    """
    try:
        data = require_json(request.get_json(silent=True))
        item = parse_item(data.get('item'))
        records = parse_records(data.get('records', []))
        session_id = data.get('session_id')
    except ValueError as e:
        return jsonify({'error': str(e)}), 400

    try:
        preferences = engagement_service.category_preferences(records)
        report = None
        if session_id:
            report = engagement_service.detect_disengagement(records, session_id)

        return jsonify({
            'item_id': item.id,
            'predicted_engagement': engagement_service.predict_engagement(item, preferences, report),
            'disengaging': bool(report and report.is_disengaging),
        }), 200
    except Exception as e:
        logger.exception(f"Engagement prediction error: {e}")
        return jsonify({'error': str(e)}), 500
