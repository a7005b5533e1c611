import pytest
from fastapi.testclient import TestClient
from jose import jwt

from recommendation_service.application.services import RecommendationService
from recommendation_service.config import settings
from recommendation_service.dependencies import get_recommendation_service
from recommendation_service.main import app

from fakes import build_social_graph


def token_for(user_id):
    return jwt.encode({"sub": str(user_id)}, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def auth_headers(user_id=1):
    return {"Authorization": f"Bearer {token_for(user_id)}"}


@pytest.fixture
def store():
    return build_social_graph()


@pytest.fixture
def client(store):
    app.dependency_overrides[get_recommendation_service] = lambda: RecommendationService(store)
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_post_recommendations(client):
    response = client.get("/api/v1/recommendations", params={"kind": "posts", "limit": 20}, headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "posts"
    assert body["strategy"] == "personalized"
    assert body["profile_summary"]["top_hashtags"] == ["policy", "climate", "music"]
    assert body["liked_post_ids"] == [10, 11, 12]

    items = body["items"]
    assert {item["id"] for item in items} == {10, 11, 12, 20, 21, 23, 24, 25}
    assert all(item["kind"] == "post" for item in items)
    assert all(item["author"]["id"] == item["author_id"] for item in items)
    scores = [item["score"] for item in items]
    assert scores == sorted(scores, reverse=True)
    for item in items:
        assert item["score"] == pytest.approx(sum(item["score_breakdown"].values()))


def test_hashtag_recommendations(client):
    response = client.get("/api/v1/recommendations", params={"kind": "hashtags"}, headers=auth_headers())

    assert response.status_code == 200
    items = response.json()["items"]
    assert all(item["kind"] == "hashtag" for item in items)
    assert response.json()["liked_post_ids"] is None


def test_users_alias(client):
    response = client.get("/api/v1/recommendations", params={"kind": "users"}, headers=auth_headers())

    assert response.status_code == 200
    body = response.json()
    assert body["kind"] == "accounts"
    assert [item["id"] for item in body["items"]] == [4, 6, 3]
    assert body["items"][0]["matched_hashtags"] == ["music", "policy"]


def test_cold_start_reports_fallback(client):
    response = client.get("/api/v1/recommendations", params={"kind": "accounts", "limit": 5}, headers=auth_headers(7))

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "popularity_fallback"
    assert [item["id"] for item in body["items"]] == [3, 6, 2, 4, 1]


def test_invalid_kind(client):
    response = client.get("/api/v1/recommendations", params={"kind": "videos"}, headers=auth_headers())

    assert response.status_code == 400


def test_invalid_limit(client):
    response = client.get("/api/v1/recommendations", params={"limit": 0}, headers=auth_headers())

    assert response.status_code == 422


def test_missing_token(client):
    response = client.get("/api/v1/recommendations")

    assert response.status_code in (401, 403)


def test_bad_token(client):
    response = client.get("/api/v1/recommendations", headers={"Authorization": "Bearer not-a-jwt"})

    assert response.status_code == 401


def test_store_outage_returns_503(client, store):
    store.fail_on.add("user_exists")

    response = client.get("/api/v1/recommendations", headers=auth_headers())

    assert response.status_code == 503
    assert response.json()["code"] == -50300
