"""
Search helpers: typeahead suggestions and the plain substring search used
when relevance scoring is unavailable.
"""

import logging
from typing import List, Iterable, Optional

from .analyzer import CATEGORY_KEYWORDS, keyword_spellings
from ..models import ContentItem

logger = logging.getLogger(__name__)

# Titles longer than this are not offered as suggestions
MAX_TITLE_WORDS = 6


def generate_search_suggestions(
    partial: Optional[str],
    candidates: Iterable[ContentItem] = (),
    limit: int = 8
) -> List[str]:
    """
    Suggest completions for a partially typed query.

    Sources, in order: category keywords that start with (or appear in) the
    partial text, intent templates for partials longer than two characters,
    then short candidate titles containing the partial. Duplicates keep
    their first position.

    Args:
        partial: Text typed so far
        candidates: Items whose titles may be suggested
        limit: Maximum number of suggestions

    Returns:
        Up to `limit` suggestion strings
    """
    normalized = (partial or "").lower().strip()
    if not normalized or limit <= 0:
        return []

    # dict keeps insertion order and drops repeats
    suggestions = {}

    for keywords in CATEGORY_KEYWORDS.values():
        for keyword in (k for entry in keywords for k in keyword_spellings(entry)):
            if keyword.startswith(normalized) or keyword in normalized:
                suggestions[f"{keyword} tutorial"] = None
                suggestions[f"learn {keyword}"] = None
                suggestions[f"{keyword} explained"] = None

    if len(normalized) > 2:
        suggestions[f"how to {normalized}"] = None
        suggestions[f"what is {normalized}"] = None
        suggestions[f"{normalized} tutorial"] = None
        suggestions[f"{normalized} explained"] = None

    for item in candidates:
        title = str(item.title or "")
        if normalized in title.lower() and len(title.split()) <= MAX_TITLE_WORDS:
            suggestions[title] = None

    return list(suggestions)[:limit]


def basic_search(query: Optional[str], candidates: Iterable[ContentItem]) -> List[ContentItem]:
    """
    Case-insensitive substring match on title, description and creator name.

    Returns matches in input order; an empty query matches nothing.
    """
    normalized = (query or "").lower().strip()
    if not normalized:
        return []

    matches = []
    for item in candidates:
        haystacks = (item.title, item.description, item.creator_name)
        if any(normalized in str(text or "").lower() for text in haystacks):
            matches.append(item)

    logger.debug(f"Basic search for '{normalized}' matched {len(matches)} items")
    return matches
