"""
Data Models and Schemas Module
==============================
Defines structured data representations for every ranking stage.

This module provides:
- Type-safe dataclasses for all data entities
- Serialization/deserialization methods
- The explicit per-strategy score record used by the combiner
- The bounded, de-duplicated RankedList returned to callers

Inputs (ContentItem, HistoryEntry, ViewerProfile) are frozen: no stage can
mutate what the caller handed in. Everything here lives for one ranking call.

Usage:
    from feedrank.models import ContentItem, ViewerProfile, RankedList

    item = ContentItem.from_dict({"id": "v1", "category": "science", ...})
    viewer = ViewerProfile.from_dict({"interests": ["science"], ...})
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, List, Dict, Any, Tuple, FrozenSet, Iterable, Iterator
import json
import uuid


# =============================================================================
# ENUMS
# =============================================================================

class QueryIntent(str, Enum):
    """What the viewer wants to get out of a search."""
    TUTORIAL = "tutorial"
    CONCEPT = "concept"
    EXAMPLE = "example"
    COMPARISON = "comparison"
    PROBLEM_SOLVING = "problem_solving"
    GENERAL = "general"


class InteractionType(str, Enum):
    """Viewer interactions the engine can capture."""
    VIEW = "view"
    LIKE = "like"
    COMPLETE = "complete"
    SKIP = "skip"
    SHARE = "share"


class RankingSource(str, Enum):
    """Which path produced a RankedList."""
    PIPELINE = "pipeline"
    SEARCH = "search"
    FALLBACK = "fallback"
    BASIC_SEARCH = "basic_search"


# =============================================================================
# HELPERS
# =============================================================================

def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (a trailing 'Z' is accepted) into a datetime."""
    if value is None or isinstance(value, datetime):
        return value
    text = str(value).strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    return datetime.fromisoformat(text)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _known_fields(cls, data: Dict[str, Any]) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in data.items() if k in names}


# =============================================================================
# BASE CLASS
# =============================================================================

class BaseModel:
    """Mixin for all data models with common serialization methods."""

    def to_dict(self) -> Dict[str, Any]:
        """Convert model to dictionary, handling nested objects."""
        def convert(obj):
            if isinstance(obj, BaseModel):
                return obj.to_dict()
            elif isinstance(obj, Enum):
                return obj.value
            elif isinstance(obj, datetime):
                return obj.isoformat()
            elif isinstance(obj, (set, frozenset)):
                return sorted(convert(item) for item in obj)
            elif isinstance(obj, (list, tuple)):
                return [convert(item) for item in obj]
            elif isinstance(obj, dict):
                return {k: convert(v) for k, v in obj.items()}
            return obj

        return {k: convert(v) for k, v in asdict(self).items()}

    def to_json(self, indent: int = 2) -> str:
        """Convert model to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BaseModel":
        """Create model from dictionary. Override in subclasses for nested objects."""
        return cls(**_known_fields(cls, data))

    @classmethod
    def from_json(cls, json_str: str) -> "BaseModel":
        """Create model from JSON string."""
        return cls.from_dict(json.loads(json_str))


# =============================================================================
# CONTENT
# =============================================================================

@dataclass(frozen=True)
class ContentItem(BaseModel):
    """
    A rankable piece of content.

    Attributes:
        id: Unique item identifier
        category: Content category (e.g., "science")
        tags: Free-form tags
        creator_id: Identifier of the creator
        published_at: Publication time (None = not yet published)
        duration_seconds: Length in seconds
        views: View count
        like_count: Number of likes
        engagement_rate: Precomputed external engagement metric
        status: Moderation status; only "approved" items are rankable
        is_private: Private items are never ranked
        title: Title used by search
        description: Description used by search
        creator_name: Creator display name used by search
    """
    id: str
    category: Optional[str] = None
    tags: FrozenSet[str] = frozenset()
    creator_id: Optional[str] = None
    published_at: Optional[datetime] = None
    duration_seconds: float = 0.0
    views: int = 0
    like_count: int = 0
    engagement_rate: float = 0.0
    status: str = "approved"
    is_private: bool = False
    title: str = ""
    description: str = ""
    creator_name: str = ""

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentItem":
        data = _known_fields(cls, data)
        if 'tags' in data:
            data['tags'] = frozenset(data['tags'] or ())
        if 'published_at' in data:
            data['published_at'] = parse_timestamp(data['published_at'])
        return cls(**data)


@dataclass(frozen=True)
class HistoryEntry(BaseModel):
    """
    One item in a viewer's watch history.

    category, creator_id and duration_seconds are optional denormalised
    copies; when missing they are looked up in the candidate pool.
    """
    item_id: str
    watch_time: float = 0.0
    completed: bool = False
    category: Optional[str] = None
    creator_id: Optional[str] = None
    duration_seconds: Optional[float] = None


@dataclass(frozen=True)
class ViewerProfile(BaseModel):
    """
    Everything the engine knows about the viewer for one request.

    Attributes:
        viewer_id: Viewer identifier (informational)
        interests: Declared interest categories
        viewing_history: Watch history, most relevant order as supplied
        search_history: Past search strings, in order
        preferred_duration: Preferred item length in seconds
    """
    viewer_id: Optional[str] = None
    interests: FrozenSet[str] = frozenset()
    viewing_history: Tuple[HistoryEntry, ...] = ()
    search_history: Tuple[str, ...] = ()
    preferred_duration: Optional[float] = None

    @property
    def watched_ids(self) -> FrozenSet[str]:
        return frozenset(entry.item_id for entry in self.viewing_history)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ViewerProfile":
        data = _known_fields(cls, data)
        if 'interests' in data:
            data['interests'] = frozenset(data['interests'] or ())
        if 'viewing_history' in data:
            data['viewing_history'] = tuple(
                h if isinstance(h, HistoryEntry) else HistoryEntry.from_dict(h)
                for h in data['viewing_history'] or ()
            )
        if 'search_history' in data:
            data['search_history'] = tuple(data['search_history'] or ())
        return cls(**data)


# =============================================================================
# QUERY
# =============================================================================

@dataclass
class Sentiment(BaseModel):
    """Signed lexicon score of a query."""
    score: int = 0
    polarity: str = "neutral"


@dataclass
class QueryContext(BaseModel):
    """
    Structured view of a search query.

    Attributes:
        raw: Text as typed
        normalized: Lower-cased, trimmed text
        tokens: Word tokens of the normalized text
        stemmed: Porter stems of tokens
        category: Detected category or None
        intent: Detected intent
        difficulty: Detected difficulty or None
        is_question: Whether the text reads as a question
        sentiment: Lexicon sentiment
        key_phrases: Unigrams, then bigrams/trigrams of the filtered words
    """
    raw: str
    normalized: str = ""
    tokens: List[str] = field(default_factory=list)
    stemmed: List[str] = field(default_factory=list)
    category: Optional[str] = None
    intent: QueryIntent = QueryIntent.GENERAL
    difficulty: Optional[str] = None
    is_question: bool = False
    sentiment: Sentiment = field(default_factory=Sentiment)
    key_phrases: List[str] = field(default_factory=list)


# =============================================================================
# SCORING
# =============================================================================

@dataclass
class StrategyScores(BaseModel):
    """
    Contribution of each strategy to an item's combined score.

    A strategy that did not return the item contributes 0.0.
    """
    content_affinity: float = 0.0
    collaborative: float = 0.0
    popularity: float = 0.0
    temporal: float = 0.0
    query_relevance: float = 0.0

    def get(self, strategy: str) -> float:
        return getattr(self, strategy)

    def add(self, strategy: str, value: float) -> None:
        setattr(self, strategy, getattr(self, strategy) + value)

    def total(self) -> float:
        return (
            self.content_affinity + self.collaborative + self.popularity
            + self.temporal + self.query_relevance
        )


@dataclass
class ScoredItem(BaseModel):
    """
    A candidate with its scores at each ranking stage.

    Attributes:
        item: The content item
        strategy_scores: Per-strategy contributions
        combined_score: Weighted sum of contributions, in [0, 1]
        adjusted_score: Score after the diversity penalty
        final_score: Score after secondary boosts (or the fallback key)
        rank: 1-based position in the returned list
    """
    item: ContentItem
    strategy_scores: StrategyScores = field(default_factory=StrategyScores)
    combined_score: float = 0.0
    adjusted_score: Optional[float] = None
    final_score: Optional[float] = None
    rank: Optional[int] = None

    @property
    def item_id(self) -> str:
        return self.item.id

    @property
    def ranking_score(self) -> float:
        """Score of the latest stage that touched this item."""
        if self.final_score is not None:
            return self.final_score
        if self.adjusted_score is not None:
            return self.adjusted_score
        return self.combined_score

    def to_dict(self) -> Dict[str, Any]:
        return {
            'item': self.item.to_dict(),
            'strategy_scores': self.strategy_scores.to_dict(),
            'combined_score': self.combined_score,
            'adjusted_score': self.adjusted_score,
            'final_score': self.final_score,
            'rank': self.rank,
        }


@dataclass
class StrategyResult:
    """
    Outcome of one signal extractor.

    A failed extractor carries its error and an empty list, so the combiner
    treats it exactly like a strategy that matched nothing.
    """
    strategy: str
    scored: List[Tuple[ContentItem, float]] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __len__(self) -> int:
        return len(self.scored)

    @classmethod
    def failure(cls, strategy: str, error: BaseException) -> "StrategyResult":
        return cls(strategy=strategy, scored=[], error=f"{type(error).__name__}: {error}")


@dataclass
class RankedList(BaseModel):
    """
    Ordered, size-bounded list of scored items with unique item ids.

    Build instances with RankedList.build() so the bound and uniqueness
    always hold.
    """
    items: List[ScoredItem] = field(default_factory=list)
    source: RankingSource = RankingSource.PIPELINE
    degraded: bool = False
    error: Optional[str] = None

    @classmethod
    def build(
        cls,
        items: Iterable[ScoredItem],
        limit: Optional[int] = None,
        source: RankingSource = RankingSource.PIPELINE,
        degraded: bool = False,
        error: Optional[str] = None
    ) -> "RankedList":
        """De-duplicate by item id (first occurrence wins), truncate, assign ranks."""
        if limit is not None and limit <= 0:
            return cls(items=[], source=source, degraded=degraded, error=error)

        kept: List[ScoredItem] = []
        seen = set()
        for scored in items:
            if scored.item_id in seen:
                continue
            seen.add(scored.item_id)
            kept.append(scored)
            if limit is not None and len(kept) >= limit:
                break

        for rank, scored in enumerate(kept, 1):
            scored.rank = rank

        return cls(items=kept, source=source, degraded=degraded, error=error)

    def __len__(self) -> int:
        return len(self.items)

    def __iter__(self) -> Iterator[ScoredItem]:
        return iter(self.items)

    def __getitem__(self, index: int) -> ScoredItem:
        return self.items[index]

    @property
    def ids(self) -> List[str]:
        return [scored.item_id for scored in self.items]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'items': [scored.to_dict() for scored in self.items],
            'source': self.source.value,
            'degraded': self.degraded,
            'error': self.error,
            'count': len(self.items),
        }


# =============================================================================
# REQUESTS AND EVENTS
# =============================================================================

@dataclass
class RecommendationOptions(BaseModel):
    """
    Options for a feed request.

    Attributes:
        count: Maximum number of items returned
        exclude_watched: Drop items already in the viewing history
        diversity_factor: Strength of the diversity penalty (0 disables)
        include_popular: Run the popularity strategy
    """
    count: int = 20
    exclude_watched: bool = True
    diversity_factor: float = 0.3
    include_popular: bool = True


@dataclass
class InteractionEvent(BaseModel):
    """A captured viewer interaction; persisting it is the caller's job."""
    viewer_id: str
    item_id: str
    type: InteractionType
    timestamp: datetime = field(default_factory=utc_now)
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class EngagementRecord(BaseModel):
    """
    Detailed engagement with one item in one session.

    Attributes:
        item_id: Item watched
        session_id: Viewing session
        category: Item category
        watch_time: Seconds watched
        total_duration: Item length in seconds
        liked/commented/shared: Interaction flags
        replays: Number of replays
        pause_count: Number of pauses
        seek_count: Number of seeks
        skipped_at: Playback second at which the viewer skipped, if any
        created_at: When the record was captured
    """
    item_id: str
    session_id: Optional[str] = None
    category: Optional[str] = None
    watch_time: float = 0.0
    total_duration: float = 0.0
    liked: bool = False
    commented: bool = False
    shared: bool = False
    replays: int = 0
    pause_count: int = 0
    seek_count: int = 0
    skipped_at: Optional[float] = None
    created_at: datetime = field(default_factory=utc_now)

    @property
    def completion_rate(self) -> float:
        """Percentage of the item watched."""
        if not self.total_duration:
            return 0.0
        return self.watch_time / self.total_duration * 100

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngagementRecord":
        data = _known_fields(cls, data)
        if data.get('created_at') is not None:
            data['created_at'] = parse_timestamp(data['created_at'])
        else:
            data.pop('created_at', None)
        return cls(**data)


@dataclass
class DisengagementReport(BaseModel):
    """Whether a viewer appears to be losing interest in a session."""
    is_disengaging: bool = False
    severity: int = 0
    reason: Optional[str] = None
    metrics: Dict[str, float] = field(default_factory=dict)


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def generate_request_id() -> str:
    """Generate a short unique identifier for one ranking call."""
    return uuid.uuid4().hex[:12]
