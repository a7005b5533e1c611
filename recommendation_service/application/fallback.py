"""
FallbackSelector - popularity fallback when personalization comes up empty

Each kind moves PERSONALIZED -> POPULARITY_FALLBACK -> DONE. Only accounts
have a popularity stage, and it replaces the personalized list outright;
the two orderings are never mixed in one response. Posts and hashtags
return whatever personalization produced, even if that is nothing.
"""
import logging
from typing import List, Set, Tuple

from ..domain.models import FallbackState, RecommendationKind, ScoredCandidate
from .candidates import CandidateGenerator

logger = logging.getLogger(__name__)


class FallbackSelector:
    """Decides whether a personalized list stands or is replaced"""

    def __init__(self, generator: CandidateGenerator):
        self.generator = generator

    def needs_fallback(self, kind: RecommendationKind, ranked: List[ScoredCandidate]) -> bool:
        return kind == RecommendationKind.ACCOUNTS and not ranked

    async def select(
        self,
        kind: RecommendationKind,
        ranked: List[ScoredCandidate],
        user_id: int,
        following_ids: Set[int],
        limit: int
    ) -> Tuple[List[ScoredCandidate], FallbackState]:
        """
        Return the final items and the stage that produced them
        """
        if not self.needs_fallback(kind, ranked):
            return ranked, FallbackState.PERSONALIZED

        logger.info(f"No personalized {kind.value} for user {user_id}, using popularity ranking")
        accounts = await self.generator.popular_accounts(user_id, following_ids, limit)

        # Keep the store's followers_count DESC, id ASC order as-is
        items = [
            ScoredCandidate(
                candidate=account,
                score=float(account.followers_count),
                breakdown={"followers": float(account.followers_count)},
            )
            for account in accounts
        ]
        return items, FallbackState.POPULARITY_FALLBACK
