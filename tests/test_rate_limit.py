"""Tests for rate limiting and security headers middleware."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from artledger.main import app
from artledger.middleware.rate_limit import _find_matching_rule


def _set_mock_redis(mock_redis):
    """Assign a mock Redis instance to app.state and return the previous value."""
    previous = getattr(app.state, "redis", None)
    app.state.redis = mock_redis
    return previous


def _restore_redis(previous):
    """Restore app.state.redis to its previous value."""
    if previous is None:
        try:
            del app.state.redis
        except AttributeError:
            pass
    else:
        app.state.redis = previous


def _mock_redis_with_count(count: int):
    mock_pipe = MagicMock()
    # Pipeline results: [zremrangebyscore, zadd, zcard, expire]
    mock_pipe.execute = AsyncMock(return_value=[0, True, count, True])
    mock_redis = AsyncMock()
    mock_redis.pipeline = MagicMock(return_value=mock_pipe)
    return mock_redis


@pytest.mark.asyncio
async def test_security_headers(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Referrer-Policy"] == "no-referrer"
    assert "frame-ancestors 'none'" in response.headers["Content-Security-Policy"]
    assert response.headers["Cross-Origin-Resource-Policy"] == "same-origin"
    assert "Cache-Control" not in response.headers


@pytest.mark.asyncio
async def test_auth_and_download_responses_are_not_cacheable(client):
    auth = await client.get("/api/auth/me")
    download = await client.get("/api/artworks/1/download")

    assert auth.headers["Cache-Control"] == "private, no-store"
    assert download.headers["Cache-Control"] == "private, no-store"


@pytest.mark.asyncio
async def test_image_routes_allow_cross_origin_embedding(client):
    response = await client.get("/api/placeholder/10/10/fff/000")
    assert response.headers["Cross-Origin-Resource-Policy"] == "cross-origin"


@pytest.mark.asyncio
async def test_health_not_rate_limited(client):
    previous = _set_mock_redis(_mock_redis_with_count(1))
    try:
        response = await client.get("/health")
    finally:
        _restore_redis(previous)

    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


def test_rules_match_purchase_paths_by_pattern():
    assert _find_matching_rule("/api/artworks/12/purchase", "POST")["name"] == "purchase"
    assert _find_matching_rule("/api/artworks/12/purchase", "GET") is None
    assert _find_matching_rule("/api/artworks/marketplace", "GET") is None
    assert _find_matching_rule("/api/auth/login", "POST")["name"] == "login"


@pytest.mark.asyncio
async def test_rate_limit_headers(client):
    previous = _set_mock_redis(_mock_redis_with_count(1))
    try:
        response = await client.post(
            "/api/auth/login", json={"email": "x@example.com", "password": "Nope1234"}
        )
    finally:
        _restore_redis(previous)

    assert response.status_code == 401
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.headers["X-RateLimit-Remaining"] == "9"
    assert "X-RateLimit-Reset" in response.headers


@pytest.mark.asyncio
async def test_rate_limit_exceeded(client):
    previous = _set_mock_redis(_mock_redis_with_count(11))
    try:
        response = await client.post(
            "/api/auth/login", json={"email": "x@example.com", "password": "Nope1234"}
        )
    finally:
        _restore_redis(previous)

    assert response.status_code == 429
    assert response.headers["Retry-After"] == "900"
    assert "message" in response.json()


@pytest.mark.asyncio
async def test_rate_limit_skipped_on_redis_error(client):
    """When Redis is unavailable the request should still go through (fail-open)."""
    mock_redis = AsyncMock()
    mock_redis.pipeline = MagicMock(side_effect=ConnectionError("Redis down"))

    previous = _set_mock_redis(mock_redis)
    try:
        response = await client.post(
            "/api/auth/login", json={"email": "x@example.com", "password": "Nope1234"}
        )
    finally:
        _restore_redis(previous)

    assert response.status_code == 401
    assert "X-RateLimit-Limit" not in response.headers
