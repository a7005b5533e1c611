"""
InteractionHistoryReader - bounded reads of a user's likes and follows
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from ..config import settings
from ..domain.models import InteractionRecord
from ..domain.repositories import IRecommendationStore
from ..exceptions import MalformedCandidate
from .context import bounded_read
from .profile import normalize_hashtag

logger = logging.getLogger(__name__)


def parse_interaction(row: Dict[str, Any]) -> InteractionRecord:
    """Build an InteractionRecord from a like row"""
    for key in ("id", "user_id", "post_id", "created_at"):
        if row.get(key) is None:
            raise MalformedCandidate(f"Like row missing {key}: {row!r}")

    return InteractionRecord(
        id=row["id"],
        user_id=row["user_id"],
        item_id=row["post_id"],
        item_hashtags=tuple(dict.fromkeys(
            name for name in map(normalize_hashtag, filter(None, row.get("hashtags") or ())) if name
        )),
        item_has_media=bool(row.get("media_urls")),
        item_author_id=row.get("author_id"),
        occurred_at=row["created_at"],
    )


def _recency_key(record: InteractionRecord):
    occurred_at: datetime = record.occurred_at
    return (-occurred_at.timestamp(), record.id)


class InteractionHistoryReader:
    """Reads the positive-interaction history that profiles are built from"""

    def __init__(
        self,
        store: IRecommendationStore,
        default_limit: Optional[int] = None,
        viewer_state_limit: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.store = store
        self.default_limit = default_limit or settings.PROFILE_HISTORY_LIMIT
        self.viewer_state_limit = viewer_state_limit or settings.VIEWER_STATE_LIMIT
        self.timeout = timeout if timeout is not None else settings.STORE_READ_TIMEOUT

    async def recent_interactions(
        self,
        user_id: int,
        limit: Optional[int] = None
    ) -> List[InteractionRecord]:
        """
        Get the user's most recent likes, newest first

        Unknown users simply have no likes. Ties on time are broken by
        like id ascending.
        """
        limit = limit or self.default_limit
        rows = await bounded_read(
            self.store.get_recent_likes(user_id, limit),
            self.timeout,
            "interaction history read"
        )

        records = []
        for row in rows:
            try:
                records.append(parse_interaction(row))
            except MalformedCandidate as e:
                logger.warning(f"Skipping like row for user {user_id}: {e.message}")

        records.sort(key=_recency_key)
        return records[:limit]

    async def following_ids(self, user_id: int) -> Set[int]:
        """Get the set of accounts the user follows"""
        following = await bounded_read(
            self.store.get_following_ids(user_id),
            self.timeout,
            "follow set read"
        )
        return set(following)

    async def liked_post_ids(self, user_id: int) -> List[int]:
        """Get IDs of posts the user liked, for rendering like state"""
        return await bounded_read(
            self.store.get_liked_post_ids(user_id, self.viewer_state_limit),
            self.timeout,
            "liked post read"
        )

    async def reposted_post_ids(self, user_id: int) -> List[int]:
        """Get IDs of posts the user reposted, for rendering repost state"""
        return await bounded_read(
            self.store.get_reposted_post_ids(user_id, self.viewer_state_limit),
            self.timeout,
            "reposted post read"
        )
