from recommendation_service.application.ranking import RankingAggregator
from recommendation_service.domain.models import CandidateAccount, HashtagTrendEntry, ScoredCandidate


def scored(candidate_id, score):
    return ScoredCandidate(candidate=CandidateAccount(id=candidate_id, username=f"u{candidate_id}"), score=score)


def test_sorts_by_score_descending():
    ranked = RankingAggregator().rank([scored(1, 1.0), scored(2, 3.0), scored(3, 2.0)], 10)

    assert [item.id for item in ranked] == [2, 3, 1]


def test_ties_break_by_ascending_id():
    ranked = RankingAggregator().rank([scored(9, 7.0), scored(3, 7.0), scored(5, 7.0), scored(1, 8.0)], 10)

    assert [item.id for item in ranked] == [1, 3, 5, 9]


def test_truncates_to_limit():
    pool = [scored(i, float(i)) for i in range(1, 30)]

    ranked = RankingAggregator().rank(pool, 5)

    assert [item.id for item in ranked] == [29, 28, 27, 26, 25]


def test_does_not_mutate_input():
    pool = [scored(1, 1.0), scored(2, 2.0)]
    snapshot = list(pool)

    ranked = RankingAggregator().rank(pool, 1)

    assert pool == snapshot
    assert ranked is not pool


def test_hashtag_ties_break_by_name():
    pool = [
        ScoredCandidate(candidate=HashtagTrendEntry(name=name, recent_count=2), score=2.0)
        for name in ("zebra", "apple", "mango")
    ]

    ranked = RankingAggregator().rank(pool, 10)

    assert [item.id for item in ranked] == ["apple", "mango", "zebra"]


def test_non_positive_limit_returns_nothing():
    assert RankingAggregator().rank([scored(1, 1.0)], 0) == []
