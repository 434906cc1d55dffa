"""
Query Analysis Module
=====================
Turns a free-text search query into a structured QueryContext.

Signals extracted:
- Normalized text, word tokens and Porter stems
- Topic category (keyword coverage per category)
- Learning intent (tutorial, concept, example, ...)
- Difficulty level
- Question detection
- Lexicon sentiment
- Key phrases (filtered words plus bigrams and trigrams)

Everything is rule-table driven and deterministic; analyze() never raises.
"""

import re
import logging
from typing import Optional, List, Dict, Tuple, Union

from nltk.stem import PorterStemmer

from ..models import QueryContext, QueryIntent, Sentiment

logger = logging.getLogger(__name__)


# =============================================================================
# RULE TABLES
# =============================================================================

# Category keywords. A category is detected from the share of its keywords
# that appear in the query, so list lengths matter. A tuple entry is a single
# keyword with several spellings.
CATEGORY_KEYWORDS: Dict[str, Tuple[Union[str, Tuple[str, ...]], ...]] = {
    'science': (
        ('physics', 'gravity'), 'chemistry', 'biology', 'astronomy', 'geology',
        'science', 'experiment', 'research', 'discovery',
    ),
    'mathematics': (
        'math', 'algebra', 'geometry', 'calculus', 'statistics',
        'numbers', 'equation', 'formula', 'theorem',
    ),
    'technology': (
        'programming', 'coding', 'computer', 'software', 'algorithm',
        'data', 'tech', 'digital', 'ai', 'machine learning',
    ),
    'language': (
        'language', 'grammar', 'vocabulary', 'writing', 'literature',
        'reading', 'communication', 'linguistics',
    ),
    'history': (
        'history', 'historical', 'ancient', 'civilization', 'war',
        'culture', 'timeline', 'event', 'period',
    ),
    'art': (
        'art', 'drawing', 'painting', 'design', 'creative',
        'visual', 'aesthetic', 'artistic', 'craft',
    ),
    'music': (
        'music', 'instrument', 'melody', 'rhythm', 'composition',
        'song', 'audio', 'sound', 'musical',
    ),
    'business': (
        'business', 'entrepreneurship', 'marketing', 'finance',
        'economics', 'strategy', 'management', 'leadership',
    ),
    'health': (
        'health', 'fitness', 'nutrition', 'medical', 'wellness',
        'exercise', 'diet', 'mental health', 'psychology',
    ),
    'cooking': (
        'cooking', 'recipe', 'food', 'cuisine', 'ingredient',
        'kitchen', 'baking', 'chef', 'culinary',
    ),
}

# Checked in order; the first group with any match wins
INTENT_PATTERNS: Tuple[Tuple[QueryIntent, Tuple[str, ...]], ...] = (
    (QueryIntent.TUTORIAL, (
        'how to', 'tutorial', 'guide', 'step by step', 'learn', 'teach',
        'explain', 'show me',
    )),
    (QueryIntent.CONCEPT, (
        'what is', 'define', 'meaning', 'concept', 'theory', 'principle', 'idea',
    )),
    (QueryIntent.EXAMPLE, (
        'example', 'sample', 'case study', 'demonstration', 'illustration',
        'instance',
    )),
    (QueryIntent.COMPARISON, (
        'vs', 'versus', 'compare', 'difference', 'similar', 'contrast', 'better',
    )),
    (QueryIntent.PROBLEM_SOLVING, (
        'solve', 'solution', 'fix', 'troubleshoot', 'debug', 'resolve', 'answer',
    )),
)

DIFFICULTY_LEVELS: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ('beginner', (
        'beginner', 'basic', 'intro', 'fundamentals', 'simple', 'easy', 'starter',
    )),
    ('intermediate', (
        'intermediate', 'advanced beginner', 'next level', 'beyond basics',
    )),
    ('advanced', (
        'advanced', 'expert', 'professional', 'complex', 'deep dive', 'mastery',
    )),
)

QUESTION_WORDS = {'what', 'how', 'why', 'when', 'where', 'who', 'which'}

STOP_WORDS = {
    'the', 'a', 'an', 'and', 'or', 'but', 'in', 'on', 'at', 'to', 'for',
    'of', 'with', 'by',
}

POSITIVE_WORDS = {
    'good', 'great', 'excellent', 'amazing', 'awesome', 'love', 'like', 'best',
}

NEGATIVE_WORDS = {
    'bad', 'terrible', 'awful', 'hate', 'worst', 'horrible', 'dislike',
}

# Minimum keyword coverage for a category to be detected
CATEGORY_THRESHOLD = 0.1


def keyword_spellings(keyword: Union[str, Tuple[str, ...]]) -> Tuple[str, ...]:
    """All spellings of a lexicon entry."""
    return (keyword,) if isinstance(keyword, str) else tuple(keyword)


def _keyword_pattern(keyword: Union[str, Tuple[str, ...]]) -> "re.Pattern":
    # A tuple is one keyword slot that any of its spellings fills
    return re.compile(r'\b(?:' + '|'.join(re.escape(k) for k in keyword_spellings(keyword)) + r')\b')


class QueryAnalyzer:
    """
    Rule-based analyzer for search queries.

    Keywords are matched on word boundaries, so "art" does not fire on
    "start" and "ai" does not fire on "explain".
    """

    def __init__(self):
        self.word_pattern = re.compile(r'\w+')
        self.stemmer = PorterStemmer()

        self._category_patterns = {
            category: [_keyword_pattern(k) for k in keywords]
            for category, keywords in CATEGORY_KEYWORDS.items()
        }
        self._intent_patterns = [
            (intent, [_keyword_pattern(p) for p in patterns])
            for intent, patterns in INTENT_PATTERNS
        ]
        self._difficulty_patterns = [
            (level, [_keyword_pattern(p) for p in indicators])
            for level, indicators in DIFFICULTY_LEVELS
        ]

    def analyze(self, text: Optional[str]) -> QueryContext:
        """
        Analyze a query.

        Args:
            text: Raw query text (None is treated as empty)

        Returns:
            QueryContext describing the query
        """
        raw = text if isinstance(text, str) else ("" if text is None else str(text))
        normalized = raw.lower().strip()
        tokens = self.tokenize(normalized)

        return QueryContext(
            raw=raw,
            normalized=normalized,
            tokens=tokens,
            stemmed=self.stem(tokens),
            category=self.detect_category(normalized),
            intent=self.detect_intent(normalized),
            difficulty=self.detect_difficulty(normalized),
            is_question=self.is_question(normalized, tokens),
            sentiment=self.analyze_sentiment(tokens),
            key_phrases=self.extract_key_phrases(tokens),
        )

    def tokenize(self, text: str) -> List[str]:
        return self.word_pattern.findall(text.lower())

    def stem(self, tokens: List[str]) -> List[str]:
        return [self.stemmer.stem(token) for token in tokens]

    def detect_category(self, normalized: str) -> Optional[str]:
        """Best keyword coverage strictly above the threshold; ties keep the earlier category."""
        best_category = None
        best_score = 0.0

        for category, patterns in self._category_patterns.items():
            matched = sum(1 for p in patterns if p.search(normalized))
            score = matched / len(patterns)
            if score > best_score:
                best_score = score
                best_category = category

        return best_category if best_score > CATEGORY_THRESHOLD else None

    def detect_intent(self, normalized: str) -> QueryIntent:
        for intent, patterns in self._intent_patterns:
            if any(p.search(normalized) for p in patterns):
                return intent
        return QueryIntent.GENERAL

    def detect_difficulty(self, normalized: str) -> Optional[str]:
        for level, patterns in self._difficulty_patterns:
            if any(p.search(normalized) for p in patterns):
                return level
        return None

    def is_question(self, normalized: str, tokens: List[str]) -> bool:
        if normalized.endswith('?'):
            return True
        return bool(tokens) and tokens[0] in QUESTION_WORDS

    def analyze_sentiment(self, tokens: List[str]) -> Sentiment:
        score = 0
        for token in tokens:
            if token in POSITIVE_WORDS:
                score += 1
            if token in NEGATIVE_WORDS:
                score -= 1

        if score > 0:
            polarity = "positive"
        elif score < 0:
            polarity = "negative"
        else:
            polarity = "neutral"
        return Sentiment(score=score, polarity=polarity)

    def extract_key_phrases(self, tokens: List[str]) -> List[str]:
        """
        Filtered words followed by their contiguous bigrams and trigrams.

        Words shorter than three characters and stop words are dropped
        before n-grams are built.
        """
        words = [t for t in tokens if len(t) > 2 and t not in STOP_WORDS]

        phrases = []
        for i in range(len(words) - 1):
            phrases.append(f"{words[i]} {words[i + 1]}")
            if i < len(words) - 2:
                phrases.append(f"{words[i]} {words[i + 1]} {words[i + 2]}")

        return words + phrases

    def text_similarity(self, context: QueryContext, text: Optional[str]) -> float:
        """
        Similarity of a piece of item text to the analyzed query.

        +0.3 per key phrase found in the text, plus token overlap * 0.4
        and stem overlap * 0.3, capped at 1.0.
        """
        if not text:
            return 0.0

        normalized = str(text).lower()
        similarity = 0.0

        for phrase in context.key_phrases:
            if phrase in normalized:
                similarity += 0.3

        text_tokens = self.tokenize(normalized)
        if context.tokens:
            token_set = set(text_tokens)
            overlap = sum(1 for t in context.tokens if t in token_set)
            similarity += overlap / len(context.tokens) * 0.4

        if context.stemmed:
            stem_set = set(self.stem(text_tokens))
            stem_overlap = sum(1 for s in context.stemmed if s in stem_set)
            similarity += stem_overlap / len(context.stemmed) * 0.3

        return min(similarity, 1.0)


def analyze_query(text: Optional[str]) -> QueryContext:
    """
    Convenience function to analyze a query.

    Args:
        text: Raw query text

    Returns:
        QueryContext
    """
    return QueryAnalyzer().analyze(text)
