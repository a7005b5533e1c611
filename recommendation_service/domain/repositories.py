"""
Repository interfaces - Define contracts for data access

The recommendation engine only reads. Implementations raise
``DataUnavailable`` when the store cannot be reached.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Set


class IRecommendationStore(ABC):
    """Read-only query surface over likes, follows, posts and accounts"""

    @abstractmethod
    async def user_exists(self, user_id: int) -> bool:
        """Check if an active account exists"""
        pass

    @abstractmethod
    async def get_recent_likes(self, user_id: int, limit: int) -> List[Dict[str, Any]]:
        """
        Get the user's most recent likes joined with the liked post

        Row keys: id, user_id, post_id, created_at, hashtags, media_urls,
        author_id. Newest first, like id ascending on ties.
        """
        pass

    @abstractmethod
    async def get_following_ids(self, user_id: int) -> Set[int]:
        """Get IDs of accounts the user follows"""
        pass

    @abstractmethod
    async def get_recent_posts(
        self,
        exclude_user_id: int,
        limit: int,
        hashtags: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """
        Get recent posts not authored by ``exclude_user_id``

        When ``hashtags`` is given, only posts sharing at least one of them
        (case-insensitive) are returned. Newest first, id ascending on ties.
        """
        pass

    @abstractmethod
    async def get_recent_hashtag_lists(self, since: datetime, limit: int) -> List[List[str]]:
        """Get the hashtag arrays of posts created at or after ``since``"""
        pass

    @abstractmethod
    async def get_peer_likes(
        self,
        exclude_user_ids: Iterable[int],
        limit: int
    ) -> List[Dict[str, Any]]:
        """
        Get recent likes by other users

        Row keys: user_id, hashtags.
        """
        pass

    @abstractmethod
    async def get_users(self, user_ids: Iterable[int]) -> List[Dict[str, Any]]:
        """Get account rows for the given IDs (missing IDs are omitted)"""
        pass

    @abstractmethod
    async def get_popular_users(
        self,
        exclude_user_ids: Iterable[int],
        limit: int
    ) -> List[Dict[str, Any]]:
        """Get accounts ordered by followers_count DESC, id ASC"""
        pass

    @abstractmethod
    async def get_post_authors(self, post_ids: Iterable[int]) -> Dict[int, int]:
        """Map post ID to author ID"""
        pass

    @abstractmethod
    async def get_liked_post_ids(self, user_id: int, limit: int) -> List[int]:
        """Get IDs of posts the user liked, newest first"""
        pass

    @abstractmethod
    async def get_reposted_post_ids(self, user_id: int, limit: int) -> List[int]:
        """Get IDs of posts the user reposted, newest first"""
        pass
