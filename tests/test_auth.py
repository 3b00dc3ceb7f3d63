from dataclasses import replace

from fastapi.testclient import TestClient

from task_api.main import create_app
from task_api.service import get_task_service

from .conftest import task_payload


def basic_client(settings, service, **overrides):
    app = create_app(
        replace(
            settings,
            enable_basic_auth=True,
            basic_auth_username="alice",
            basic_auth_password="s3cret",
            **overrides,
        )
    )
    app.dependency_overrides[get_task_service] = lambda: service
    return TestClient(app)


class TestBasicAuthMode:
    def test_username_is_owner(self, settings, service):
        client = basic_client(settings, service)
        res = client.post("/api/tasks/", json=task_payload(), auth=("alice", "s3cret"))
        assert res.status_code == 201
        assert res.json()["ownerId"] == "alice"

    def test_bad_credentials(self, settings, service):
        client = basic_client(settings, service)
        res = client.get("/api/tasks/", auth=("alice", "wrong"))
        assert res.status_code == 401
        assert res.headers["WWW-Authenticate"] == "Basic"
        assert res.json() == {"error": "Unauthorized", "message": "Invalid authentication credentials"}

    def test_missing_credentials(self, settings, service):
        client = basic_client(settings, service)
        # The owner header is not trusted in basic mode
        res = client.get("/api/tasks/", headers={"X-User-Id": "alice"})
        assert res.status_code == 401


class TestHeaderMode:
    def test_custom_owner_header(self, settings, service):
        app = create_app(replace(settings, owner_header="X-Auth-Subject"))
        app.dependency_overrides[get_task_service] = lambda: service
        client = TestClient(app)
        res = client.post("/api/tasks/", json=task_payload(), headers={"X-Auth-Subject": "carol"})
        assert res.status_code == 201
        assert res.json()["ownerId"] == "carol"
        assert client.get("/api/tasks/").status_code == 401
