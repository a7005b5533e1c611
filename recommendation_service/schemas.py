"""
Pydantic schemas for Recommendation Service
"""
from pydantic import BaseModel, Field
from typing import Annotated, Dict, List, Literal, Optional, Union
from datetime import datetime

from .domain.models import (
    CandidateAccount,
    CandidatePost,
    HashtagTrendEntry,
    RecommendationResult,
    ScoredCandidate,
    UserSummary,
)


# User schema (from auth service)
class User(BaseModel):
    """User model from auth service"""
    id: int
    username: Optional[str] = None
    email: Optional[str] = None


class UserSummaryResponse(BaseModel):
    """Public account summary"""
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    followers_count: int = 0

    @classmethod
    def from_domain(cls, summary: Optional[UserSummary]) -> Optional["UserSummaryResponse"]:
        if summary is None:
            return None
        return cls(
            id=summary.id,
            username=summary.username,
            display_name=summary.display_name,
            avatar_url=summary.avatar_url,
            is_verified=summary.is_verified,
            followers_count=summary.followers_count,
        )


class PostRecommendation(BaseModel):
    """Recommended post"""
    kind: Literal["post"] = "post"
    id: int
    author_id: int
    content: Optional[str] = None
    hashtags: List[str] = []
    media_urls: List[str] = []
    has_media: bool = False
    likes_count: int = 0
    reposts_count: int = 0
    replies_count: int = 0
    repost_of_id: Optional[int] = None
    created_at: datetime
    author: Optional[UserSummaryResponse] = None
    reposted_from: Optional[UserSummaryResponse] = None
    score: float
    matched_hashtags: List[str] = []
    score_breakdown: Dict[str, float] = {}


class HashtagRecommendation(BaseModel):
    """Recommended trending hashtag"""
    kind: Literal["hashtag"] = "hashtag"
    name: str
    recent_count: int
    user_affinity_boost: int = 0
    score: float
    matched_hashtags: List[str] = []


class AccountRecommendation(BaseModel):
    """Recommended account to follow"""
    kind: Literal["account"] = "account"
    id: int
    username: str
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_verified: bool = False
    followers_count: int = 0
    score: float
    matched_hashtags: List[str] = []


RecommendationItem = Annotated[
    Union[PostRecommendation, HashtagRecommendation, AccountRecommendation],
    Field(discriminator="kind"),
]


class ProfileSummary(BaseModel):
    """The preference profile used to rank the response"""
    top_hashtags: List[str] = []
    media_affinity: float = 0.5
    sample_size: int = 0


class RecommendationResponse(BaseModel):
    """Recommendation response"""
    kind: str
    strategy: str
    items: List[RecommendationItem]
    profile_summary: ProfileSummary
    liked_post_ids: Optional[List[int]] = None
    reposted_post_ids: Optional[List[int]] = None

    @classmethod
    def from_result(cls, result: RecommendationResult) -> "RecommendationResponse":
        return cls(
            kind=result.kind.value,
            strategy=result.strategy.value,
            items=[to_item(scored) for scored in result.items],
            profile_summary=ProfileSummary(
                top_hashtags=list(result.profile.preferred_hashtags),
                media_affinity=result.profile.media_affinity,
                sample_size=result.profile.sample_size,
            ),
            liked_post_ids=result.liked_post_ids,
            reposted_post_ids=result.reposted_post_ids,
        )


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    service: str
    version: str


def to_item(scored: ScoredCandidate):
    """Convert a scored candidate to its response model"""
    candidate = scored.candidate
    matched = sorted(scored.matched_hashtags)

    if isinstance(candidate, CandidatePost):
        return PostRecommendation(
            id=candidate.id,
            author_id=candidate.author_id,
            content=candidate.content,
            hashtags=sorted(candidate.hashtags),
            media_urls=list(candidate.media_urls),
            has_media=candidate.has_media,
            likes_count=candidate.likes_count,
            reposts_count=candidate.reposts_count,
            replies_count=candidate.replies_count,
            repost_of_id=candidate.repost_of_id,
            created_at=candidate.created_at,
            author=UserSummaryResponse.from_domain(candidate.author),
            reposted_from=UserSummaryResponse.from_domain(candidate.reposted_from),
            score=scored.score,
            matched_hashtags=matched,
            score_breakdown=dict(scored.breakdown),
        )

    if isinstance(candidate, HashtagTrendEntry):
        return HashtagRecommendation(
            name=candidate.name,
            recent_count=candidate.recent_count,
            user_affinity_boost=candidate.user_affinity_boost,
            score=scored.score,
            matched_hashtags=matched,
        )

    if isinstance(candidate, CandidateAccount):
        return AccountRecommendation(
            id=candidate.id,
            username=candidate.username,
            display_name=candidate.display_name,
            avatar_url=candidate.avatar_url,
            is_verified=candidate.is_verified,
            followers_count=candidate.followers_count,
            score=scored.score,
            matched_hashtags=matched,
        )

    raise TypeError(f"Unsupported candidate type: {type(candidate).__name__}")
