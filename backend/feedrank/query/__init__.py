"""
Query Understanding Package
===========================
Analyzes search queries and produces typeahead suggestions.

Usage:
    from feedrank.query import QueryAnalyzer

    analyzer = QueryAnalyzer()
    context = analyzer.analyze("what is gravity")
"""

from .analyzer import (
    QueryAnalyzer,
    analyze_query,
    CATEGORY_KEYWORDS,
    INTENT_PATTERNS,
    DIFFICULTY_LEVELS,
)
from .suggestions import generate_search_suggestions, basic_search

__all__ = [
    'QueryAnalyzer',
    'analyze_query',
    'CATEGORY_KEYWORDS',
    'INTENT_PATTERNS',
    'DIFFICULTY_LEVELS',
    'generate_search_suggestions',
    'basic_search',
]
