"""
Per-request helpers: bounded store reads and a request-scoped lookup cache
"""
import asyncio
import logging
from typing import Any, Awaitable, Dict, Iterable, List, Optional

from ..config import settings
from ..domain.models import UserSummary
from ..domain.repositories import IRecommendationStore
from ..exceptions import DataUnavailable, MalformedCandidate

logger = logging.getLogger(__name__)


async def bounded_read(awaitable: Awaitable, timeout: float, what: str = "store read"):
    """Await a store read, surfacing a timeout as DataUnavailable"""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"{what} timed out after {timeout}s")
        raise DataUnavailable(f"{what} timed out") from e


async def gather_reads(*awaitables: Awaitable) -> List[Any]:
    """
    Run independent reads concurrently

    If one read fails, or the caller is cancelled, the reads still in
    flight are cancelled before the error propagates.
    """
    tasks = [asyncio.ensure_future(aw) for aw in awaitables]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


def parse_user_summary(row: Dict[str, Any]) -> UserSummary:
    """Build a UserSummary from an account row"""
    if row.get("id") is None or not row.get("username"):
        raise MalformedCandidate(f"Account row missing id or username: {row!r}")
    return UserSummary(
        id=row["id"],
        username=row["username"],
        display_name=row.get("display_name"),
        avatar_url=row.get("avatar_url"),
        is_verified=bool(row.get("is_verified") or False),
        followers_count=int(row.get("followers_count") or 0),
    )


class RequestCache:
    """
    Memoizes account lookups for the lifetime of one request

    Created fresh by each recommend call and passed down explicitly.
    """

    def __init__(self, store: IRecommendationStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout if timeout is not None else settings.STORE_READ_TIMEOUT
        self._users: Dict[int, Optional[UserSummary]] = {}

    async def get_users(self, user_ids: Iterable[int]) -> Dict[int, UserSummary]:
        """Resolve account summaries, reading only IDs not seen before"""
        wanted = list(dict.fromkeys(user_ids))
        missing = [user_id for user_id in wanted if user_id not in self._users]

        if missing:
            rows = await bounded_read(
                self.store.get_users(missing), self.timeout, "account lookup"
            )
            for user_id in missing:
                self._users[user_id] = None
            for row in rows:
                try:
                    summary = parse_user_summary(row)
                except MalformedCandidate as e:
                    logger.warning(f"Skipping account row: {e.message}")
                    continue
                self._users[summary.id] = summary

        return {
            user_id: self._users[user_id]
            for user_id in wanted
            if self._users.get(user_id) is not None
        }
