"""
Tests for the HTTP API

Drive the FastAPI app end to end over in-memory storage.
"""

from fastapi.testclient import TestClient

from pr_reviewer.main import create_app
from pr_reviewer.storage import create_memory_storage


class TestServiceEndpoints:
    """Tests for root, health and readiness endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "PR Reviewer"

    def test_health(self, client):
        """Test the health check."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        """Test readiness over the memory backend."""
        response = client.get("/ready")

        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_request_id_is_echoed(self, client):
        """Test that a caller-provided request id comes back."""
        response = client.get("/health", headers={"X-Request-ID": "req-42"})

        assert response.headers["X-Request-ID"] == "req-42"

    def test_request_id_is_generated(self, client):
        response = client.get("/health")

        assert response.headers["X-Request-ID"]


class TestTeamEndpoints:
    """Tests for /team endpoints."""

    def test_get_team(self, client):
        """Test fetching the team created by the fixture."""
        response = client.get("/team/get", params={"team_name": "backend"})

        assert response.status_code == 200
        body = response.json()
        assert body["team_name"] == "backend"
        assert len(body["members"]) == 4

    def test_add_existing_team(self, client, backend_team):
        """Test that a duplicate team is a 400 TEAM_EXISTS."""
        response = client.post("/team/add", json=backend_team.model_dump())

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "TEAM_EXISTS"

    def test_unknown_team(self, client):
        response = client.get("/team/get", params={"team_name": "nobody"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_add_team_response(self, client):
        """Test the created team is echoed under "team"."""
        payload = {
            "team_name": "frontend",
            "members": [{"user_id": "f1", "username": "Fay", "is_active": True}],
        }

        response = client.post("/team/add", json=payload)

        assert response.status_code == 201
        assert response.json()["team"]["members"][0]["user_id"] == "f1"


class TestUserEndpoints:
    """Tests for /users endpoints."""

    def test_set_is_active(self, client):
        """Test deactivating a user."""
        response = client.post(
            "/users/setIsActive",
            json={"user_id": "u2", "is_active": False}
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["user_id"] == "u2"
        assert user["team_name"] == "backend"
        assert user["is_active"] is False

    def test_set_is_active_unknown(self, client):
        response = client.post(
            "/users/setIsActive",
            json={"user_id": "ghost", "is_active": False}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "USER_NOT_FOUND"

    def test_get_review(self, client, sample_pr_payload):
        """Test that a reviewer sees the PR in their listing."""
        client.post("/pullRequest/create", json=sample_pr_payload)

        response = client.get("/users/getReview", params={"user_id": "u2"})

        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == "u2"
        assert body["pull_requests"] == [{
            "pull_request_id": "pr-1001",
            "pull_request_name": "Add search",
            "author_id": "u1",
            "status": "OPEN",
        }]


class TestPullRequestEndpoints:
    """Tests for /pullRequest endpoints."""

    def test_create(self, client, sample_pr_payload):
        """Test creation returns 201 with two reviewers and camelCase times."""
        response = client.post("/pullRequest/create", json=sample_pr_payload)

        assert response.status_code == 201
        pr = response.json()["pr"]
        assert pr["status"] == "OPEN"
        assert sorted(pr["assigned_reviewers"]) == ["u2", "u3"]
        assert pr["createdAt"] is not None
        assert pr["mergedAt"] is None

    def test_create_duplicate(self, client, sample_pr_payload):
        client.post("/pullRequest/create", json=sample_pr_payload)

        response = client.post("/pullRequest/create", json=sample_pr_payload)

        assert response.status_code == 409
        assert response.json() == {
            "error": {"code": "PR_EXISTS", "message": "PR id already exists"}
        }

    def test_create_unknown_author(self, client, sample_pr_payload):
        """Test that an invalid author is reported as NOT_FOUND."""
        sample_pr_payload["author_id"] = "ghost"

        response = client.post("/pullRequest/create", json=sample_pr_payload)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_create_invalid_body(self, client):
        """Test that a missing field is a 400 INVALID_REQUEST."""
        response = client.post("/pullRequest/create", json={"pull_request_id": "x"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert "author_id" in error["message"]

    def test_merge_twice(self, client, sample_pr_payload):
        """Test that merge is idempotent over HTTP."""
        client.post("/pullRequest/create", json=sample_pr_payload)

        first = client.post("/pullRequest/merge", json={"pull_request_id": "pr-1001"})
        second = client.post("/pullRequest/merge", json={"pull_request_id": "pr-1001"})

        assert first.status_code == 200
        assert second.status_code == 200
        assert first.json()["pr"]["status"] == "MERGED"
        assert second.json()["pr"]["mergedAt"] == first.json()["pr"]["mergedAt"]

    def test_merge_unknown(self, client):
        response = client.post("/pullRequest/merge", json={"pull_request_id": "nope"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"

    def test_reassign_without_candidates(self, client, sample_pr_payload):
        """Test that the reviewer is removed and replaced_by is empty."""
        client.post("/pullRequest/create", json=sample_pr_payload)

        response = client.post(
            "/pullRequest/reassign",
            json={"pull_request_id": "pr-1001", "old_user_id": "u2"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["replaced_by"] == ""
        assert body["pr"]["assigned_reviewers"] == ["u3"]

    def test_reassign_with_candidate(self, client, sample_pr_payload):
        """Test that a reactivated teammate becomes the replacement."""
        client.post("/pullRequest/create", json=sample_pr_payload)
        client.post("/users/setIsActive", json={"user_id": "u4", "is_active": True})

        response = client.post(
            "/pullRequest/reassign",
            json={"pull_request_id": "pr-1001", "old_user_id": "u3"}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["replaced_by"] == "u4"
        assert sorted(body["pr"]["assigned_reviewers"]) == ["u2", "u4"]

    def test_reassign_merged(self, client, sample_pr_payload):
        client.post("/pullRequest/create", json=sample_pr_payload)
        client.post("/pullRequest/merge", json={"pull_request_id": "pr-1001"})

        response = client.post(
            "/pullRequest/reassign",
            json={"pull_request_id": "pr-1001", "old_user_id": "u2"}
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "PR_MERGED"

    def test_reassign_not_assigned(self, client, sample_pr_payload):
        """Test that an unassigned user is a 404 NOT_ASSIGNED."""
        client.post("/pullRequest/create", json=sample_pr_payload)

        response = client.post(
            "/pullRequest/reassign",
            json={"pull_request_id": "pr-1001", "old_user_id": "u4"}
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_ASSIGNED"


class TestFailures:
    """Tests for unexpected failures."""

    def test_storage_failure_is_masked(self, settings, backend_team):
        """Test that a storage failure becomes a generic 500."""
        storage = create_memory_storage()

        async def broken(*args, **kwargs):
            raise RuntimeError("disk on fire")

        storage.users.user_exists_and_has_team = broken
        app = create_app(settings=settings, storage=storage)

        with TestClient(app, raise_server_exceptions=False) as client:
            client.post("/team/add", json=backend_team.model_dump())
            response = client.post(
                "/pullRequest/create",
                json={"pull_request_id": "p", "pull_request_name": "n", "author_id": "u1"}
            )

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_ERROR"
        assert "disk on fire" not in response.text
