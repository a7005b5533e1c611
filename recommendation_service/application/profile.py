"""
PreferenceProfileBuilder - reduces like history into a preference profile
"""
from typing import Dict, Iterable, Optional, Sequence

from ..config import settings
from ..domain.models import InteractionRecord, PreferenceProfile


def normalize_hashtag(tag: str) -> str:
    """Hashtags compare case-insensitively and without a leading '#'"""
    return tag.strip().lstrip("#").lower()


def normalize_hashtags(tags: Optional[Iterable[str]]) -> frozenset:
    if not tags:
        return frozenset()
    return frozenset(t for t in (normalize_hashtag(tag) for tag in tags if tag) if t)


class PreferenceProfileBuilder:
    """Pure reducer from interactions to a PreferenceProfile"""

    def __init__(self, top_n: Optional[int] = None):
        self.top_n = top_n or settings.TOP_HASHTAGS_LIMIT

    def build(self, interactions: Sequence[InteractionRecord]) -> PreferenceProfile:
        """
        Build a profile from interactions ordered newest first

        Hashtags are ranked by frequency; ties keep first-seen order.
        With no interactions the media affinity stays at the neutral 0.5.
        """
        if not interactions:
            return PreferenceProfile.neutral()

        counts: Dict[str, int] = {}
        first_seen: Dict[str, int] = {}
        media_count = 0

        for interaction in interactions:
            # A tag counts once per liked post, whatever its spelling
            names = dict.fromkeys(normalize_hashtag(tag) for tag in interaction.item_hashtags)
            for name in names:
                if not name:
                    continue
                if name not in counts:
                    counts[name] = 0
                    first_seen[name] = len(first_seen)
                counts[name] += 1
            if interaction.item_has_media:
                media_count += 1

        ranked = sorted(counts, key=lambda name: (-counts[name], first_seen[name]))

        return PreferenceProfile(
            preferred_hashtags=tuple(ranked[:self.top_n]),
            media_affinity=media_count / len(interactions),
            sample_size=len(interactions),
        )
