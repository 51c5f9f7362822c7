import asyncio

from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from streaks.core.middleware import ContributionsRateLimitMiddleware
from streaks.main import create_app


def test_contributions_endpoint_rate_limited_after_threshold(monkeypatch) -> None:
    """Rate limiter blocks repeated requests to /contributions routes."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "60")
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("AUTO_REFRESH_ENABLED", "false")
    app = create_app()

    headers = {"X-Forwarded-For": "203.0.113.10"}
    with TestClient(app) as client:
        first = client.get("/contributions/me", headers=headers)
        second = client.get("/contributions/me", headers=headers)
        other_client = client.get(
            "/contributions/me", headers={"X-Forwarded-For": "203.0.113.11"}
        )

    assert first.status_code == 401
    assert second.status_code == 429
    assert second.headers["Retry-After"]
    assert other_client.status_code == 401


def test_non_contributions_routes_not_rate_limited(monkeypatch) -> None:
    """Rate limiter does not affect routes outside /contributions."""

    monkeypatch.setenv("RATE_LIMIT_PER_MINUTE", "1")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_SECONDS", "60")
    monkeypatch.setenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("AUTO_REFRESH_ENABLED", "false")
    app = create_app()

    with TestClient(app) as client:
        first = client.get("/health/live")
        second = client.get("/health/live")
        settings_response = client.get("/settings")

    assert first.status_code == 200
    assert second.status_code == 200
    assert settings_response.status_code == 200


def contributions_request(client_ip: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/contributions/octocat",
            "query_string": b"",
            "headers": [(b"x-forwarded-for", client_ip.encode("ascii"))],
        }
    )


def test_idle_clients_are_dropped_after_window(monkeypatch) -> None:
    """Rate limiter forgets clients whose requests are all outside the window."""

    clock = [1000.0]
    monkeypatch.setattr("streaks.core.middleware.monotonic", lambda: clock[0])
    middleware = ContributionsRateLimitMiddleware(
        app=None, requests_per_window=5, window_seconds=60
    )

    async def call_next(request: Request) -> Response:
        return Response("ok")

    async def send(client_ip: str) -> Response:
        return await middleware.dispatch(contributions_request(client_ip), call_next)

    asyncio.run(send("203.0.113.10"))
    asyncio.run(send("203.0.113.11"))
    assert set(middleware._client_buckets) == {"203.0.113.10", "203.0.113.11"}

    clock[0] += 61
    response = asyncio.run(send("203.0.113.12"))

    assert response.status_code == 200
    assert set(middleware._client_buckets) == {"203.0.113.12"}
