"""
Feedrank - Ranking Engine API
=============================
Main application entry point that configures Flask and registers blueprints.

Route Organization:
- /health                    -> Health check
- /api/recommendations/*     -> Personalised feed, explanations, interactions
- /api/search*               -> Query relevance ranking and suggestions
- /api/engagement/*          -> Engagement analytics
"""

from flask import Flask, jsonify
from dotenv import load_dotenv
from flask_cors import CORS

# Import blueprints
from feedrank.routes import recommendation_bp, search_bp, engagement_bp

# Import configuration system
from feedrank.config import get_config, apply_environment_overrides

# Import engine and logging system
from feedrank.engine import RankingEngine
from feedrank.logging_config import get_engine_logger

# Load environment variables
load_dotenv()

# Configure logging
logger = get_engine_logger("app", log_to_file=False)

VERSION = '1.0.0'


def create_app(config_override=None):
    """
    Application factory function.

    Creates and configures the Flask application with:
    - CORS support
    - Blueprint registration
    - A shared RankingEngine

    Args:
        config_override: Optional AppConfig instance to use instead of global config

    Returns:
        Configured Flask application instance
    """
    if config_override is None:
        app_config = get_config()
        apply_environment_overrides(app_config)
    else:
        app_config = config_override

    app = Flask(__name__)
    CORS(app, origins=app_config.flask.cors_origins)

    # Store config and engine in app for access in routes
    app.app_config = app_config
    app.engine = RankingEngine(app_config)
    app.config['SECRET_KEY'] = app_config.flask.secret_key

    # ==========================================================================
    # REGISTER BLUEPRINTS
    # ==========================================================================

    app.register_blueprint(recommendation_bp, url_prefix='/api/recommendations')
    app.register_blueprint(search_bp, url_prefix='/api/search')
    app.register_blueprint(engagement_bp, url_prefix='/api/engagement')

    if app_config.logging.log_to_file:
        app_config.paths.ensure_directories()

    logger.info(
        "Initialized Flask app",
        extra={
            'run_name': app_config.logging.run_name,
            'parallel_strategies': app_config.ranking.parallel_strategies,
            'max_candidates': app_config.flask.max_candidates,
        }
    )

    # ==========================================================================
    # CORE ROUTES
    # ==========================================================================

    @app.route('/health', methods=['GET'])
    def health_check():
        """Health check endpoint for monitoring."""
        return {
            'status': 'healthy',
            'run_name': app_config.logging.run_name,
            'version': VERSION
        }, 200

    # ==========================================================================
    # ERROR HANDLERS
    # ==========================================================================

    @app.errorhandler(404)
    def not_found(error):
        """Handle 404 errors."""
        return jsonify({'error': 'Resource not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        """Handle 405 errors."""
        return jsonify({'error': 'Method not allowed'}), 405

    @app.errorhandler(500)
    def internal_error(error):
        """Handle 500 errors."""
        logger.error(f"Internal server error: {error}")
        return jsonify({'error': 'Internal server error'}), 500

    return app


if __name__ == '__main__':
    app = create_app()
    flask_config = app.app_config.flask
    app.run(
        debug=flask_config.debug,
        host=flask_config.host,
        port=flask_config.port
    )
