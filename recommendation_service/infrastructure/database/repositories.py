"""
Repository implementations - Data access layer
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set

from ...database import Database
from ...domain.repositories import IRecommendationStore

USER_COLUMNS = "id, username, display_name, avatar_url, is_verified, followers_count"


class PostgresRecommendationStore(IRecommendationStore):
    """Recommendation store implementation using PostgreSQL"""

    def __init__(self, db: Database):
        self.db = db

    async def user_exists(self, user_id: int) -> bool:
        """Check if an active account exists"""
        row = await self.db.fetch_one(
            "SELECT id FROM users WHERE id = $1",
            user_id
        )
        return row is not None

    async def get_recent_likes(self, user_id: int, limit: int) -> List[Dict[str, Any]]:
        """Get the user's most recent likes joined with the liked post"""
        return await self.db.fetch_all(
            """
            SELECT l.id, l.user_id, l.post_id, l.created_at,
                   p.hashtags, p.media_urls, p.user_id AS author_id
            FROM likes l
            JOIN posts p ON p.id = l.post_id
            WHERE l.user_id = $1
            ORDER BY l.created_at DESC, l.id ASC
            LIMIT $2
            """,
            user_id,
            limit
        )

    async def get_following_ids(self, user_id: int) -> Set[int]:
        """Get IDs of accounts the user follows"""
        rows = await self.db.fetch_all(
            "SELECT following_id FROM follows WHERE follower_id = $1",
            user_id
        )
        return {row["following_id"] for row in rows}

    async def get_recent_posts(
        self,
        exclude_user_id: int,
        limit: int,
        hashtags: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """Get recent posts not authored by the requester"""
        if hashtags:
            return await self.db.fetch_all(
                """
                SELECT p.id, p.user_id, p.content, p.hashtags, p.media_urls,
                       p.likes_count, p.reposts_count, p.replies_count,
                       p.repost_of_id, p.created_at
                FROM posts p
                WHERE p.user_id <> $1
                AND EXISTS (
                    SELECT 1 FROM unnest(p.hashtags) AS tag
                    WHERE LOWER(tag) = ANY($3::text[])
                )
                ORDER BY p.created_at DESC, p.id ASC
                LIMIT $2
                """,
                exclude_user_id,
                limit,
                [tag.lower() for tag in hashtags]
            )

        return await self.db.fetch_all(
            """
            SELECT p.id, p.user_id, p.content, p.hashtags, p.media_urls,
                   p.likes_count, p.reposts_count, p.replies_count,
                   p.repost_of_id, p.created_at
            FROM posts p
            WHERE p.user_id <> $1
            ORDER BY p.created_at DESC, p.id ASC
            LIMIT $2
            """,
            exclude_user_id,
            limit
        )

    async def get_recent_hashtag_lists(self, since: datetime, limit: int) -> List[List[str]]:
        """Get the hashtag arrays of recently created posts"""
        rows = await self.db.fetch_all(
            """
            SELECT hashtags
            FROM posts
            WHERE hashtags IS NOT NULL
            AND created_at >= $1
            ORDER BY created_at DESC, id ASC
            LIMIT $2
            """,
            since,
            limit
        )
        return [list(row["hashtags"]) for row in rows]

    async def get_peer_likes(
        self,
        exclude_user_ids: Iterable[int],
        limit: int
    ) -> List[Dict[str, Any]]:
        """Get recent likes by users outside the excluded set"""
        return await self.db.fetch_all(
            """
            SELECT l.user_id, p.hashtags
            FROM likes l
            JOIN posts p ON p.id = l.post_id
            WHERE l.user_id <> ALL($1::bigint[])
            ORDER BY l.created_at DESC, l.id ASC
            LIMIT $2
            """,
            list(exclude_user_ids),
            limit
        )

    async def get_users(self, user_ids: Iterable[int]) -> List[Dict[str, Any]]:
        """Get account rows by ID"""
        ids = list(user_ids)
        if not ids:
            return []
        return await self.db.fetch_all(
            f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE id = ANY($1::bigint[])
            ORDER BY id ASC
            """,
            ids
        )

    async def get_popular_users(
        self,
        exclude_user_ids: Iterable[int],
        limit: int
    ) -> List[Dict[str, Any]]:
        """Get the most followed accounts"""
        return await self.db.fetch_all(
            f"""
            SELECT {USER_COLUMNS}
            FROM users
            WHERE id <> ALL($1::bigint[])
            ORDER BY followers_count DESC, id ASC
            LIMIT $2
            """,
            list(exclude_user_ids),
            limit
        )

    async def get_post_authors(self, post_ids: Iterable[int]) -> Dict[int, int]:
        """Map post ID to author ID"""
        ids = list(post_ids)
        if not ids:
            return {}
        rows = await self.db.fetch_all(
            "SELECT id, user_id FROM posts WHERE id = ANY($1::bigint[])",
            ids
        )
        return {row["id"]: row["user_id"] for row in rows}

    async def get_liked_post_ids(self, user_id: int, limit: int) -> List[int]:
        """Get IDs of posts the user liked"""
        rows = await self.db.fetch_all(
            """
            SELECT post_id
            FROM likes
            WHERE user_id = $1
            ORDER BY created_at DESC, id ASC
            LIMIT $2
            """,
            user_id,
            limit
        )
        return [row["post_id"] for row in rows]

    async def get_reposted_post_ids(self, user_id: int, limit: int) -> List[int]:
        """Get IDs of posts the user reposted"""
        rows = await self.db.fetch_all(
            """
            SELECT repost_of_id
            FROM posts
            WHERE user_id = $1 AND repost_of_id IS NOT NULL
            ORDER BY created_at DESC, id ASC
            LIMIT $2
            """,
            user_id,
            limit
        )
        return [row["repost_of_id"] for row in rows]
