"""
ScoringEngine - transparent additive scoring of candidates

Post score is the plain sum of six independent terms:
  social      +5 when the author is followed
  hashtag     +3 per candidate hashtag in the user's preferred hashtags
  media       +2 media post for a media-leaning user,
              +1 text post for a text-leaning user, never negative
  recency     +2 under one day old, +1 under seven days
  engagement  0.1 x (likes + 2 x reposts + 3 x replies), capped at 5
  base        +1 so every candidate scores above zero

Trending hashtags use recent_count, tripled for tags the user has liked.
Accounts score one point per liked post hashtag shared with the user.
"""
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from ..domain.models import (
    CandidatePost,
    HashtagTrendEntry,
    PeerCandidate,
    PreferenceProfile,
    ScoredCandidate,
)
from ..exceptions import MalformedCandidate

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringWeights:
    """Weights for the additive post score"""

    follow_boost: float = 5.0
    hashtag_match: float = 3.0
    media_match: float = 2.0
    text_match: float = 1.0
    fresh_boost: float = 2.0
    recent_boost: float = 1.0
    fresh_days: int = 1
    recent_days: int = 7
    like_weight: int = 1
    repost_weight: int = 2
    reply_weight: int = 3
    engagement_rate: float = 0.1
    engagement_cap: float = 5.0
    base: float = 1.0
    # Trending tags the user liked score recent_count * (1 + multiplier)
    trend_affinity_multiplier: int = 2


DEFAULT_WEIGHTS = ScoringWeights()


def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class ScoringEngine:
    """Scores candidates against a preference profile"""

    def __init__(self, weights: ScoringWeights = DEFAULT_WEIGHTS):
        self.weights = weights

    # =========================================================================
    # Post terms
    # =========================================================================

    def social_term(self, post: CandidatePost, following_ids: Set[int]) -> float:
        return self.weights.follow_boost if post.author_id in following_ids else 0.0

    def hashtag_term(
        self,
        post: CandidatePost,
        profile: PreferenceProfile
    ) -> Tuple[float, FrozenSet[str]]:
        matched = post.hashtags & frozenset(profile.preferred_hashtags)
        return self.weights.hashtag_match * len(matched), matched

    def media_term(self, post: CandidatePost, profile: PreferenceProfile) -> float:
        if post.has_media and profile.media_affinity > 0.5:
            return self.weights.media_match
        if not post.has_media and profile.media_affinity < 0.5:
            return self.weights.text_match
        return 0.0

    def recency_term(self, post: CandidatePost, now: datetime) -> float:
        age_days = (as_utc(now) - as_utc(post.created_at)) // timedelta(days=1)
        if age_days < self.weights.fresh_days:
            return self.weights.fresh_boost
        if age_days < self.weights.recent_days:
            return self.weights.recent_boost
        return 0.0

    def engagement_term(self, post: CandidatePost) -> float:
        weighted = (
            post.likes_count * self.weights.like_weight
            + post.reposts_count * self.weights.repost_weight
            + post.replies_count * self.weights.reply_weight
        )
        return min(weighted * self.weights.engagement_rate, self.weights.engagement_cap)

    # =========================================================================
    # Scoring
    # =========================================================================

    def score(
        self,
        candidate: CandidatePost,
        profile: PreferenceProfile,
        following_ids: Set[int],
        now: datetime
    ) -> ScoredCandidate:
        """Score one post; raises MalformedCandidate if it cannot be scored"""
        if candidate.created_at is None or candidate.author_id is None:
            raise MalformedCandidate(f"Post {candidate.id} cannot be scored")

        hashtag_score, matched = self.hashtag_term(candidate, profile)
        breakdown: Dict[str, float] = {
            "social": self.social_term(candidate, following_ids),
            "hashtag": hashtag_score,
            "media": self.media_term(candidate, profile),
            "recency": self.recency_term(candidate, now),
            "engagement": self.engagement_term(candidate),
            "base": self.weights.base,
        }

        return ScoredCandidate(
            candidate=candidate,
            score=sum(breakdown.values()),
            matched_hashtags=matched,
            breakdown=breakdown,
        )

    def score_all(
        self,
        candidates: Iterable[CandidatePost],
        profile: PreferenceProfile,
        following_ids: Set[int],
        now: datetime
    ) -> List[ScoredCandidate]:
        """Score every post, dropping the ones that cannot be scored"""
        scored = []
        for candidate in candidates:
            try:
                scored.append(self.score(candidate, profile, following_ids, now))
            except MalformedCandidate as e:
                logger.warning(f"Dropping unscorable post {getattr(candidate, 'id', None)}: {e}")
        return scored

    def score_hashtag(
        self,
        entry: HashtagTrendEntry,
        liked_hashtags: FrozenSet[str]
    ) -> ScoredCandidate:
        """Score a trending hashtag, boosting tags the user has liked"""
        personal = entry.name in liked_hashtags
        boost = entry.recent_count * self.weights.trend_affinity_multiplier if personal else 0
        entry = replace(entry, user_affinity_boost=boost)

        return ScoredCandidate(
            candidate=entry,
            score=float(entry.recent_count + boost),
            matched_hashtags=frozenset({entry.name}) if personal else frozenset(),
            breakdown={"recent": float(entry.recent_count), "affinity": float(boost)},
        )

    def score_account(
        self,
        peer: PeerCandidate,
        user_hashtags: FrozenSet[str]
    ) -> ScoredCandidate:
        """Score a peer account by hashtag overlap across its liked posts"""
        overlap = 0
        matched: Set[str] = set()
        for tags in peer.liked_hashtag_sets:
            shared = tags & user_hashtags
            overlap += len(shared)
            matched |= shared

        return ScoredCandidate(
            candidate=peer.account,
            score=float(overlap),
            matched_hashtags=frozenset(matched),
            breakdown={"overlap": float(overlap)},
        )
