"""
RankingAggregator - total ordering and truncation of scored candidates
"""
from typing import List, Sequence

from ..domain.models import ScoredCandidate


def ranking_key(item: ScoredCandidate):
    """Score descending, then candidate id ascending"""
    return (-item.score, item.id)


class RankingAggregator:
    """Sorts scored candidates into their final order"""

    def rank(self, scored: Sequence[ScoredCandidate], limit: int) -> List[ScoredCandidate]:
        """
        Return the top ``limit`` candidates as a new list

        The input sequence is left untouched.
        """
        if limit <= 0:
            return []
        return sorted(scored, key=ranking_key)[:limit]
