"""
Services Package
================
Analytics that sit next to the ranking engine.
"""

from .engagement_service import EngagementService, DEFAULT_PREFERENCES

__all__ = [
    'EngagementService',
    'DEFAULT_PREFERENCES',
]
