"""
Domain models - Core business entities
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union


class RecommendationKind(str, Enum):
    """Recommendation list variants"""
    POSTS = "posts"
    HASHTAGS = "hashtags"
    ACCOUNTS = "accounts"

    @classmethod
    def parse(cls, value: str) -> "RecommendationKind":
        """Parse a kind, accepting ``users`` as an alias for accounts"""
        normalized = (value or "").strip().lower()
        if normalized == "users":
            return cls.ACCOUNTS
        return cls(normalized)


class FallbackState(str, Enum):
    """Stages a recommendation request moves through"""
    PERSONALIZED = "personalized"
    POPULARITY_FALLBACK = "popularity_fallback"
    DONE = "done"


@dataclass(frozen=True)
class InteractionRecord:
    """One liked post, denormalized with the post's tags, media flag and author"""
    id: int
    user_id: int
    item_id: int
    item_hashtags: Tuple[str, ...]
    item_has_media: bool
    item_author_id: int
    occurred_at: datetime


@dataclass(frozen=True)
class PreferenceProfile:
    """Per-request summary of a user's likes"""
    preferred_hashtags: Tuple[str, ...] = ()
    media_affinity: float = 0.5
    sample_size: int = 0

    @classmethod
    def neutral(cls) -> "PreferenceProfile":
        """Profile for a user with no history"""
        return cls()


@dataclass(frozen=True)
class UserSummary:
    """Public account fields shown next to recommendations"""
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    followers_count: int = 0


@dataclass(frozen=True)
class CandidatePost:
    """A post eligible for recommendation"""
    id: int
    author_id: int
    hashtags: FrozenSet[str]
    has_media: bool
    created_at: datetime
    likes_count: int = 0
    reposts_count: int = 0
    replies_count: int = 0
    content: Optional[str] = None
    media_urls: Tuple[str, ...] = ()
    repost_of_id: Optional[int] = None
    author: Optional[UserSummary] = None
    reposted_from: Optional[UserSummary] = None
    kind: str = field(default="post", init=False)


@dataclass(frozen=True)
class CandidateAccount:
    """An account eligible for a follow suggestion"""
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    followers_count: int = 0
    kind: str = field(default="account", init=False)

    @classmethod
    def from_summary(cls, summary: UserSummary) -> "CandidateAccount":
        return cls(
            id=summary.id,
            username=summary.username,
            display_name=summary.display_name,
            avatar_url=summary.avatar_url,
            is_verified=summary.is_verified,
            followers_count=summary.followers_count,
        )


@dataclass(frozen=True)
class HashtagTrendEntry:
    """A hashtag seen in the trending window"""
    name: str
    recent_count: int
    user_affinity_boost: int = 0
    kind: str = field(default="hashtag", init=False)

    @property
    def id(self) -> str:
        return self.name


Candidate = Union[CandidatePost, CandidateAccount, HashtagTrendEntry]


@dataclass(frozen=True)
class ScoredCandidate:
    """A candidate with its score and the preferences it matched"""
    candidate: Candidate
    score: float
    matched_hashtags: FrozenSet[str] = frozenset()
    breakdown: Dict[str, float] = field(default_factory=dict, compare=False, hash=False)

    @property
    def id(self):
        return self.candidate.id

    @property
    def kind(self) -> str:
        return self.candidate.kind


@dataclass
class RecommendationResult:
    """Output of a single recommend call"""
    kind: RecommendationKind
    strategy: FallbackState
    items: List[ScoredCandidate]
    profile: PreferenceProfile
    liked_post_ids: Optional[List[int]] = None
    reposted_post_ids: Optional[List[int]] = None


@dataclass(frozen=True)
class PeerCandidate:
    """An account together with the hashtag sets of the posts it liked"""
    account: CandidateAccount
    liked_hashtag_sets: Tuple[FrozenSet[str], ...] = ()
