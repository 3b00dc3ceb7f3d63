from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from task_api.errors import RateLimitExceeded
from task_api.main import create_app
from task_api.rate_limit import FixedWindowRateLimiter, NoopRateLimiter, build_rate_limiters
from task_api.service import get_task_service

from .conftest import OWNER, task_payload


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


class TestFixedWindow:
    def test_blocks_after_max_then_resets(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(2, 60, clock=clock)
        limiter.check("a")
        limiter.check("a")
        with pytest.raises(RateLimitExceeded) as exc_info:
            limiter.check("a")
        assert exc_info.value.retry_after == 60
        # other callers are counted separately
        limiter.check("b")

        clock.now += 60
        limiter.check("a")

    def test_expired_windows_are_evicted(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(5, 1, clock=clock)
        for i in range(1000):
            limiter.check(f"caller-{i}")
            clock.now += 10
        assert len(limiter._windows) == 1

    def test_live_windows_survive_a_sweep(self):
        clock = FakeClock()
        limiter = FixedWindowRateLimiter(1, 60, clock=clock)
        limiter.check("a")
        clock.now += 30
        limiter.check("b")
        clock.now += 40
        # "a" expired and is dropped; "b" is still inside its window
        limiter.check("c")
        assert set(limiter._windows) == {"b", "c"}
        with pytest.raises(RateLimitExceeded):
            limiter.check("b")

    def test_build_disabled(self, settings):
        limiters = build_rate_limiters(settings)
        assert all(isinstance(l, NoopRateLimiter) for l in limiters.values())


class TestRateLimitedApp:
    def test_summarize_has_its_own_limit(self, settings, service):
        app = create_app(replace(settings, rate_limit_enabled=True, rate_limit_api_max=50, rate_limit_ai_max=1))
        app.dependency_overrides[get_task_service] = lambda: service
        client = TestClient(app)
        client.headers["X-User-Id"] = OWNER

        task = client.post("/api/tasks/", json=task_payload()).json()
        assert client.post(f"/api/tasks/{task['id']}/summarize").status_code == 200
        res = client.post(f"/api/tasks/{task['id']}/summarize")
        assert res.status_code == 429
        assert res.json()["error"] == "RateLimitExceeded"
        assert "Retry-After" in res.headers
        # General routes are unaffected
        assert client.get(f"/api/tasks/{task['id']}").status_code == 200

    def test_api_limit(self, settings, service):
        app = create_app(replace(settings, rate_limit_enabled=True, rate_limit_api_max=2))
        app.dependency_overrides[get_task_service] = lambda: service
        client = TestClient(app)
        client.headers["X-User-Id"] = OWNER
        assert client.get("/api/tasks/").status_code == 200
        assert client.get("/api/tasks/").status_code == 200
        assert client.get("/api/tasks/").status_code == 429

    def test_limit_follows_authenticated_owner(self, settings, service):
        app = create_app(
            replace(
                settings,
                rate_limit_enabled=True,
                rate_limit_api_max=2,
                enable_basic_auth=True,
                basic_auth_username="alice",
                basic_auth_password="s3cret",
            )
        )
        app.dependency_overrides[get_task_service] = lambda: service
        client = TestClient(app)
        codes = [
            client.get("/api/tasks/", auth=("alice", "s3cret"), headers={"X-User-Id": f"other-{i}"}).status_code
            for i in range(3)
        ]
        assert codes == [200, 200, 429]
