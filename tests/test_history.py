from datetime import timedelta

import pytest

from recommendation_service.application.history import InteractionHistoryReader
from recommendation_service.exceptions import DataUnavailable

from fakes import FakeStore, build_social_graph, make_like, make_post, make_user


@pytest.mark.asyncio
async def test_returns_most_recent_first_with_enrichment():
    reader = InteractionHistoryReader(build_social_graph())

    records = await reader.recent_interactions(1)

    assert [r.item_id for r in records] == [10, 11, 12]
    first = records[0]
    assert first.item_hashtags == ("climate", "policy")
    assert first.item_has_media is True
    assert first.item_author_id == 2


@pytest.mark.asyncio
async def test_ties_on_time_break_by_like_id():
    store = FakeStore(
        users=[make_user(1, "alice")],
        posts=[make_post(10, 2), make_post(11, 2)],
        likes=[
            make_like(7, 1, 11, timedelta(hours=1)),
            make_like(3, 1, 10, timedelta(hours=1)),
        ],
    )

    records = await InteractionHistoryReader(store).recent_interactions(1)

    assert [r.id for r in records] == [3, 7]


@pytest.mark.asyncio
async def test_respects_limit():
    reader = InteractionHistoryReader(build_social_graph())

    records = await reader.recent_interactions(1, limit=2)

    assert [r.item_id for r in records] == [10, 11]


@pytest.mark.asyncio
async def test_unknown_user_has_empty_history():
    reader = InteractionHistoryReader(build_social_graph())

    assert await reader.recent_interactions(999) == []
    assert await reader.following_ids(999) == set()


@pytest.mark.asyncio
async def test_following_ids():
    reader = InteractionHistoryReader(build_social_graph())

    assert await reader.following_ids(1) == {2}


@pytest.mark.asyncio
async def test_malformed_like_rows_are_skipped():
    store = build_social_graph()
    original = store.get_recent_likes

    async def with_broken_row(user_id, limit):
        rows = await original(user_id, limit)
        return rows + [{"id": 999, "user_id": 1, "post_id": None, "created_at": None}]

    store.get_recent_likes = with_broken_row

    records = await InteractionHistoryReader(store).recent_interactions(1)

    assert [r.item_id for r in records] == [10, 11, 12]


@pytest.mark.asyncio
async def test_slow_read_surfaces_data_unavailable():
    store = build_social_graph()
    store.delay_on["get_recent_likes"] = 1.0

    with pytest.raises(DataUnavailable):
        await InteractionHistoryReader(store, timeout=0.01).recent_interactions(1)


@pytest.mark.asyncio
async def test_store_failure_propagates():
    store = build_social_graph()
    store.fail_on.add("get_following_ids")

    with pytest.raises(DataUnavailable):
        await InteractionHistoryReader(store).following_ids(1)


@pytest.mark.asyncio
async def test_viewer_state():
    store = build_social_graph()
    store.posts[30] = make_post(30, 1, repost_of_id=21)
    reader = InteractionHistoryReader(store)

    assert await reader.liked_post_ids(1) == [10, 11, 12]
    assert await reader.reposted_post_ids(1) == [21]


@pytest.mark.asyncio
async def test_hashtags_are_normalized_and_deduplicated_per_like():
    store = FakeStore(
        users=[make_user(1, "alice"), make_user(2, "bob")],
        posts=[make_post(10, 2, ["Rust", "rust", "#RUST", "Go"])],
        likes=[make_like(1, 1, 10, timedelta(hours=1))],
    )

    records = await InteractionHistoryReader(store).recent_interactions(1)

    assert records[0].item_hashtags == ("rust", "go")
