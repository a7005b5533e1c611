"""
Application services - Business logic layer

RecommendationService wires the engine together:
  InteractionHistoryReader -> PreferenceProfileBuilder -> CandidateGenerator
  -> ScoringEngine -> RankingAggregator -> FallbackSelector
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Set, Union

from ..config import settings
from ..domain.models import (
    FallbackState,
    PreferenceProfile,
    RecommendationKind,
    RecommendationResult,
)
from ..domain.repositories import IRecommendationStore
from .candidates import CandidateGenerator
from .context import RequestCache, bounded_read, gather_reads
from .fallback import FallbackSelector
from .history import InteractionHistoryReader
from .profile import PreferenceProfileBuilder
from .ranking import RankingAggregator
from .scoring import ScoringEngine

logger = logging.getLogger(__name__)


class RecommendationService:
    """Recommendation service - personalized posts, hashtags and accounts"""

    def __init__(
        self,
        store: IRecommendationStore,
        reader: Optional[InteractionHistoryReader] = None,
        builder: Optional[PreferenceProfileBuilder] = None,
        generator: Optional[CandidateGenerator] = None,
        scorer: Optional[ScoringEngine] = None,
        ranker: Optional[RankingAggregator] = None,
        fallback: Optional[FallbackSelector] = None,
        max_limit: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.store = store
        self.timeout = timeout if timeout is not None else settings.STORE_READ_TIMEOUT
        self.reader = reader or InteractionHistoryReader(store, timeout=self.timeout)
        self.builder = builder or PreferenceProfileBuilder()
        self.generator = generator or CandidateGenerator(store, timeout=self.timeout)
        self.scorer = scorer or ScoringEngine()
        self.ranker = ranker or RankingAggregator()
        self.fallback = fallback or FallbackSelector(self.generator)
        self.max_limit = max_limit or settings.MAX_LIMIT

    def clamp_limit(self, limit: Optional[int]) -> int:
        """Validate a requested size and clamp it to the hard ceiling"""
        if limit is None:
            limit = settings.DEFAULT_LIMIT
        if limit < 1:
            raise ValueError("limit must be a positive integer")
        return min(limit, self.max_limit)

    async def recommend(
        self,
        user_id: int,
        kind: Union[RecommendationKind, str] = RecommendationKind.POSTS,
        limit: Optional[int] = None,
        now: Optional[datetime] = None
    ) -> RecommendationResult:
        """
        Get a ranked recommendation list for a user

        Args:
            user_id: Requesting user
            kind: posts, hashtags or accounts (``users`` is accepted)
            limit: Number of items (clamped to MAX_LIMIT)
            now: Reference time for recency and trending windows

        Returns:
            RecommendationResult with items and the profile used

        Raises:
            DataUnavailable: If the store is unreachable or a read times out
            ValueError: If kind or limit is invalid
        """
        if not isinstance(kind, RecommendationKind):
            kind = RecommendationKind.parse(kind)
        limit = self.clamp_limit(limit)
        now = now or datetime.now(timezone.utc)

        exists, interactions, following_ids = await gather_reads(
            bounded_read(self.store.user_exists(user_id), self.timeout, "account read"),
            self.reader.recent_interactions(user_id),
            self.reader.following_ids(user_id),
        )

        if not exists:
            logger.info(f"Unknown user {user_id}, returning no {kind.value}")
            return RecommendationResult(
                kind=kind,
                strategy=FallbackState.DONE,
                items=[],
                profile=PreferenceProfile.neutral(),
            )

        profile = self.builder.build(interactions)
        cache = RequestCache(self.store, self.timeout)

        if kind == RecommendationKind.POSTS:
            result = await self._recommend_posts(user_id, profile, following_ids, limit, now, cache)
        elif kind == RecommendationKind.HASHTAGS:
            result = await self._recommend_hashtags(user_id, profile, following_ids, limit, now)
        else:
            result = await self._recommend_accounts(user_id, profile, following_ids, limit, cache)

        logger.info(
            f"Recommended {len(result.items)} {kind.value} for user {user_id} "
            f"({result.strategy.value}, {profile.sample_size} likes sampled)"
        )
        return result

    async def _recommend_posts(
        self,
        user_id: int,
        profile: PreferenceProfile,
        following_ids: Set[int],
        limit: int,
        now: datetime,
        cache: RequestCache
    ) -> RecommendationResult:
        candidates, liked_post_ids, reposted_post_ids = await gather_reads(
            self.generator.posts(
                user_id,
                following_ids,
                limit,
                preferred_hashtags=profile.preferred_hashtags,
                cache=cache,
            ),
            self.reader.liked_post_ids(user_id),
            self.reader.reposted_post_ids(user_id),
        )

        scored = self.scorer.score_all(candidates, profile, following_ids, now)
        ranked = self.ranker.rank(scored, limit)
        items, strategy = await self.fallback.select(
            RecommendationKind.POSTS, ranked, user_id, following_ids, limit
        )

        return RecommendationResult(
            kind=RecommendationKind.POSTS,
            strategy=strategy,
            items=items,
            profile=profile,
            liked_post_ids=liked_post_ids,
            reposted_post_ids=reposted_post_ids,
        )

    async def _recommend_hashtags(
        self,
        user_id: int,
        profile: PreferenceProfile,
        following_ids: Set[int],
        limit: int,
        now: datetime
    ) -> RecommendationResult:
        entries, liked_hashtags = await self.generator.hashtags(user_id, now)

        scored = [self.scorer.score_hashtag(entry, liked_hashtags) for entry in entries]
        ranked = self.ranker.rank(scored, limit)
        items, strategy = await self.fallback.select(
            RecommendationKind.HASHTAGS, ranked, user_id, following_ids, limit
        )

        return RecommendationResult(
            kind=RecommendationKind.HASHTAGS,
            strategy=strategy,
            items=items,
            profile=profile,
        )

    async def _recommend_accounts(
        self,
        user_id: int,
        profile: PreferenceProfile,
        following_ids: Set[int],
        limit: int,
        cache: RequestCache
    ) -> RecommendationResult:
        user_hashtags = await self.generator.liked_hashtags(user_id)
        peers = await self.generator.accounts(user_id, following_ids, user_hashtags, cache=cache)

        scored = [self.scorer.score_account(peer, user_hashtags) for peer in peers]
        scored = [item for item in scored if item.score > 0]
        ranked = self.ranker.rank(scored, limit)
        items, strategy = await self.fallback.select(
            RecommendationKind.ACCOUNTS, ranked, user_id, following_ids, limit
        )

        return RecommendationResult(
            kind=RecommendationKind.ACCOUNTS,
            strategy=strategy,
            items=items,
            profile=profile,
        )
