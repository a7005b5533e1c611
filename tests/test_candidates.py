from datetime import timedelta

import pytest

from recommendation_service.application.candidates import CandidateGenerator
from recommendation_service.application.context import RequestCache
from recommendation_service.exceptions import DataUnavailable

from fakes import NOW, FakeStore, build_social_graph, make_post, make_user


@pytest.mark.asyncio
async def test_posts_exclude_own_posts():
    generator = CandidateGenerator(build_social_graph())

    posts = await generator.posts(1, {2}, 20)

    assert posts
    assert all(post.author_id != 1 for post in posts)


@pytest.mark.asyncio
async def test_posts_over_fetch_twice_the_limit():
    store = FakeStore(
        users=[make_user(1, "alice"), make_user(2, "bob")],
        posts=[make_post(i, 2, age=timedelta(minutes=i)) for i in range(1, 20)],
    )

    posts = await CandidateGenerator(store).posts(1, set(), 3)

    assert [post.id for post in posts] == [1, 2, 3, 4, 5, 6]


@pytest.mark.asyncio
async def test_posts_prefer_matching_hashtags_then_top_up():
    generator = CandidateGenerator(build_social_graph())

    posts = await generator.posts(1, {2}, 20, preferred_hashtags=("policy", "climate", "music"))

    # Matching posts first (newest first), then the rest of the recent pool
    assert [post.id for post in posts] == [20, 10, 21, 11, 12, 24, 23, 25]


@pytest.mark.asyncio
async def test_top_up_puts_followed_authors_first():
    store = FakeStore(
        users=[make_user(1, "alice"), make_user(2, "bob"), make_user(3, "carol")],
        posts=[
            make_post(1, 2, ["policy"], age=timedelta(hours=5)),
            make_post(2, 3, age=timedelta(hours=1)),
            make_post(3, 2, age=timedelta(hours=2)),
        ],
    )

    posts = await CandidateGenerator(store).posts(1, {2}, 1, preferred_hashtags=("policy",))

    assert [post.id for post in posts] == [1, 3]


@pytest.mark.asyncio
async def test_posts_are_hydrated_with_authors_and_repost_origin():
    store = build_social_graph()
    store.posts[30] = make_post(30, 6, age=timedelta(minutes=5), repost_of_id=21)

    posts = await CandidateGenerator(store).posts(1, {2}, 20)
    by_id = {post.id: post for post in posts}

    assert by_id[30].author.username == "frank"
    assert by_id[30].reposted_from.username == "carol"
    assert by_id[20].reposted_from is None


@pytest.mark.asyncio
async def test_posts_without_author_are_dropped():
    store = build_social_graph()
    store.posts[31] = make_post(31, 404, age=timedelta(minutes=5))

    posts = await CandidateGenerator(store).posts(1, set(), 20)

    assert 31 not in {post.id for post in posts}


@pytest.mark.asyncio
async def test_malformed_post_rows_are_dropped():
    store = build_social_graph()
    store.posts[32] = make_post(32, 3, age=timedelta(minutes=5))
    original = store.get_recent_posts

    async def with_broken_row(exclude_user_id, limit, hashtags=None):
        rows = await original(exclude_user_id, limit, hashtags)
        return [dict(row, created_at=None) if row["id"] == 32 else row for row in rows]

    store.get_recent_posts = with_broken_row

    posts = await CandidateGenerator(store).posts(1, set(), 20)

    assert 32 not in {post.id for post in posts}
    assert posts


@pytest.mark.asyncio
async def test_request_cache_avoids_repeat_lookups():
    store = build_social_graph()
    cache = RequestCache(store)

    await cache.get_users([2, 3])
    await cache.get_users([3, 2])
    await cache.get_users([3, 404])
    await cache.get_users([404])

    assert store.calls.count("get_users") == 2


@pytest.mark.asyncio
async def test_hashtags_count_recent_window_only():
    generator = CandidateGenerator(build_social_graph())

    entries, liked = await generator.hashtags(1, NOW)
    counts = {entry.name: entry.recent_count for entry in entries}

    assert counts == {"climate": 1, "policy": 4, "music": 2, "travel": 2, "food": 1}
    assert liked == frozenset({"climate", "policy", "music"})
    assert all(entry.user_affinity_boost == 0 for entry in entries)


@pytest.mark.asyncio
async def test_accounts_share_hashtags_and_skip_followed():
    generator = CandidateGenerator(build_social_graph())

    peers = await generator.accounts(1, {2}, frozenset({"climate", "policy", "music"}))

    assert sorted(peer.account.id for peer in peers) == [3, 4, 6]


@pytest.mark.asyncio
async def test_accounts_without_user_hashtags_skip_the_store():
    store = build_social_graph()

    peers = await CandidateGenerator(store).accounts(7, {5}, frozenset())

    assert peers == []
    assert "get_peer_likes" not in store.calls


@pytest.mark.asyncio
async def test_popular_accounts_exclude_self_and_followed():
    generator = CandidateGenerator(build_social_graph())

    accounts = await generator.popular_accounts(7, {5}, 5)

    assert [account.id for account in accounts] == [3, 6, 2, 4, 1]


@pytest.mark.asyncio
async def test_store_outage_is_not_an_empty_pool():
    store = build_social_graph()
    store.fail_on.add("get_recent_posts")

    with pytest.raises(DataUnavailable):
        await CandidateGenerator(store).posts(1, set(), 20)
