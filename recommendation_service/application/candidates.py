"""
CandidateGenerator - builds the unscored pools for each recommendation kind
"""
import logging
from collections import Counter
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, List, Optional, Sequence, Set, Tuple

from ..config import settings
from ..domain.models import (
    CandidateAccount,
    CandidatePost,
    HashtagTrendEntry,
    PeerCandidate,
)
from ..domain.repositories import IRecommendationStore
from ..exceptions import MalformedCandidate
from .context import RequestCache, bounded_read, gather_reads, parse_user_summary
from .profile import normalize_hashtag, normalize_hashtags

logger = logging.getLogger(__name__)


def parse_post(row: Dict[str, Any]) -> CandidatePost:
    """Build a CandidatePost from a post row"""
    for key in ("id", "user_id", "created_at"):
        if row.get(key) is None:
            raise MalformedCandidate(f"Post row missing {key}: {row!r}")

    media_urls = tuple(row.get("media_urls") or ())
    return CandidatePost(
        id=row["id"],
        author_id=row["user_id"],
        hashtags=normalize_hashtags(row.get("hashtags")),
        has_media=bool(media_urls),
        created_at=row["created_at"],
        likes_count=int(row.get("likes_count") or 0),
        reposts_count=int(row.get("reposts_count") or 0),
        replies_count=int(row.get("replies_count") or 0),
        content=row.get("content"),
        media_urls=media_urls,
        repost_of_id=row.get("repost_of_id"),
    )


class CandidateGenerator:
    """Produces eligible posts, trending hashtags and peer accounts"""

    def __init__(
        self,
        store: IRecommendationStore,
        pool_multiplier: Optional[int] = None,
        trending_window_days: Optional[int] = None,
        trending_sample_size: Optional[int] = None,
        peer_sample_size: Optional[int] = None,
        affinity_window: Optional[int] = None,
        timeout: Optional[float] = None
    ):
        self.store = store
        self.pool_multiplier = pool_multiplier or settings.POST_POOL_MULTIPLIER
        self.trending_window_days = trending_window_days or settings.TRENDING_WINDOW_DAYS
        self.trending_sample_size = trending_sample_size or settings.TRENDING_SAMPLE_SIZE
        self.peer_sample_size = peer_sample_size or settings.PEER_LIKES_SAMPLE_SIZE
        self.affinity_window = affinity_window or settings.HASHTAG_AFFINITY_WINDOW
        self.timeout = timeout if timeout is not None else settings.STORE_READ_TIMEOUT

    # =========================================================================
    # Posts
    # =========================================================================

    async def posts(
        self,
        user_id: int,
        following_ids: Set[int],
        limit: int,
        preferred_hashtags: Sequence[str] = (),
        cache: Optional[RequestCache] = None
    ) -> List[CandidatePost]:
        """
        Get recent posts by other users, over-fetched for re-ranking

        With preferred hashtags the pool is filled first with posts sharing
        one of them, then topped up with other recent posts, followed
        authors first.
        """
        cache = cache or RequestCache(self.store, self.timeout)
        pool_size = limit * self.pool_multiplier

        if preferred_hashtags:
            rows = await bounded_read(
                self.store.get_recent_posts(user_id, pool_size, hashtags=list(preferred_hashtags)),
                self.timeout,
                "post pool read"
            )
            if len(rows) < pool_size:
                rows = rows + await self._top_up(user_id, following_ids, rows, pool_size)
        else:
            rows = await bounded_read(
                self.store.get_recent_posts(user_id, pool_size),
                self.timeout,
                "post pool read"
            )

        posts = []
        for row in rows:
            try:
                post = parse_post(row)
            except MalformedCandidate as e:
                logger.warning(f"Skipping post row: {e.message}")
                continue
            if post.author_id == user_id:
                continue
            posts.append(post)

        return await self._attach_authors(posts, cache)

    async def _top_up(
        self,
        user_id: int,
        following_ids: Set[int],
        rows: List[Dict[str, Any]],
        pool_size: int
    ) -> List[Dict[str, Any]]:
        seen = {row.get("id") for row in rows}
        recent = await bounded_read(
            self.store.get_recent_posts(user_id, pool_size),
            self.timeout,
            "post pool read"
        )
        extra = [row for row in recent if row.get("id") not in seen]
        extra.sort(key=lambda row: row.get("user_id") not in following_ids)
        return extra[:pool_size - len(rows)]

    async def _attach_authors(
        self,
        posts: List[CandidatePost],
        cache: RequestCache
    ) -> List[CandidatePost]:
        """Hydrate authors and repost origins; posts without an author are dropped"""
        if not posts:
            return []

        repost_ids = [post.repost_of_id for post in posts if post.repost_of_id is not None]
        origin_authors: Dict[int, int] = {}
        if repost_ids:
            origin_authors = await bounded_read(
                self.store.get_post_authors(repost_ids),
                self.timeout,
                "repost origin read"
            )

        user_ids = [post.author_id for post in posts] + list(origin_authors.values())
        users = await cache.get_users(user_ids)

        hydrated = []
        for post in posts:
            author = users.get(post.author_id)
            if author is None:
                logger.warning(f"Dropping post {post.id}: author {post.author_id} not found")
                continue

            reposted_from = None
            if post.repost_of_id is not None:
                origin_author_id = origin_authors.get(post.repost_of_id)
                reposted_from = users.get(origin_author_id) if origin_author_id is not None else None

            hydrated.append(replace(post, author=author, reposted_from=reposted_from))

        return hydrated

    # =========================================================================
    # Hashtags
    # =========================================================================

    async def liked_hashtags(self, user_id: int) -> FrozenSet[str]:
        """Get the normalized hashtags of posts the user liked"""
        rows = await bounded_read(
            self.store.get_recent_likes(user_id, self.affinity_window),
            self.timeout,
            "liked hashtag read"
        )
        tags: Set[str] = set()
        for row in rows:
            tags |= normalize_hashtags(row.get("hashtags"))
        return frozenset(tags)

    async def hashtags(
        self,
        user_id: int,
        now: datetime
    ) -> Tuple[List[HashtagTrendEntry], FrozenSet[str]]:
        """
        Count hashtag use over the trending window

        Returns the trend entries (alphabetical, boost not yet applied) and
        the user's liked-hashtag set.
        """
        since = now - timedelta(days=self.trending_window_days)
        hashtag_lists, affinity = await gather_reads(
            bounded_read(
                self.store.get_recent_hashtag_lists(since, self.trending_sample_size),
                self.timeout,
                "trending hashtag read"
            ),
            self.liked_hashtags(user_id),
        )

        counts: Counter = Counter()
        for tags in hashtag_lists:
            for tag in tags or ():
                name = normalize_hashtag(tag) if tag else ""
                if name:
                    counts[name] += 1

        entries = [
            HashtagTrendEntry(name=name, recent_count=count)
            for name, count in sorted(counts.items())
        ]
        return entries, affinity

    # =========================================================================
    # Accounts
    # =========================================================================

    async def accounts(
        self,
        user_id: int,
        following_ids: Set[int],
        user_hashtags: FrozenSet[str],
        cache: Optional[RequestCache] = None
    ) -> List[PeerCandidate]:
        """
        Get accounts whose recent likes share hashtags with the user's likes

        The requester and accounts already followed are never returned.
        """
        if not user_hashtags:
            return []

        cache = cache or RequestCache(self.store, self.timeout)
        excluded = set(following_ids) | {user_id}
        rows = await bounded_read(
            self.store.get_peer_likes(sorted(excluded), self.peer_sample_size),
            self.timeout,
            "peer like read"
        )

        liked_sets: Dict[int, List[FrozenSet[str]]] = {}
        for row in rows:
            peer_id = row.get("user_id")
            if peer_id is None or peer_id in excluded:
                continue
            liked_sets.setdefault(peer_id, []).append(normalize_hashtags(row.get("hashtags")))

        overlapping = [
            peer_id for peer_id, tag_sets in liked_sets.items()
            if any(tags & user_hashtags for tags in tag_sets)
        ]
        if not overlapping:
            return []

        users = await cache.get_users(overlapping)
        peers = []
        for peer_id in overlapping:
            summary = users.get(peer_id)
            if summary is None:
                logger.warning(f"Dropping account {peer_id}: lookup missed")
                continue
            peers.append(PeerCandidate(
                account=CandidateAccount.from_summary(summary),
                liked_hashtag_sets=tuple(liked_sets[peer_id]),
            ))
        return peers

    async def popular_accounts(
        self,
        user_id: int,
        following_ids: Set[int],
        limit: int
    ) -> List[CandidateAccount]:
        """Get the most followed accounts the user does not already follow"""
        excluded = set(following_ids) | {user_id}
        rows = await bounded_read(
            self.store.get_popular_users(sorted(excluded), limit),
            self.timeout,
            "popular account read"
        )

        accounts = []
        for row in rows:
            if row.get("id") in excluded:
                continue
            try:
                summary = parse_user_summary(row)
            except MalformedCandidate as e:
                logger.warning(f"Skipping account row: {e.message}")
                continue
            accounts.append(CandidateAccount.from_summary(summary))
        return accounts[:limit]
