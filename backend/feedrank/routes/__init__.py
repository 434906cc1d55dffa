"""
API Routes Package
==================
Flask blueprints for the ranking engine.
"""

from .recommendation_routes import recommendation_bp
from .search_routes import search_bp
from .engagement_routes import engagement_bp

__all__ = [
    'recommendation_bp',
    'search_bp',
    'engagement_bp',
]
