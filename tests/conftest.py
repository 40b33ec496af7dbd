"""
Test Configuration

Pytest configuration and fixtures for the test suite.
"""

import random
from typing import Generator

import pytest
from fastapi.testclient import TestClient

from pr_reviewer.config import Settings
from pr_reviewer.main import create_app
from pr_reviewer.models import Team, TeamMember, User
from pr_reviewer.services import CandidateSelector, PRService, TeamService, UserService
from pr_reviewer.storage import Storage, create_memory_storage


@pytest.fixture
def settings() -> Settings:
    """Settings for an in-memory service."""
    return Settings(
        storage_backend="memory",
        log_json_format=False,
        log_level="DEBUG",
        operation_timeout=2.0,
    )


@pytest.fixture
def backend_team() -> Team:
    """
    Team "backend": u1 is the usual author, u4 is inactive.
    """
    return Team(
        team_name="backend",
        members=[
            TeamMember(user_id="u1", username="Alice", is_active=True),
            TeamMember(user_id="u2", username="Bob", is_active=True),
            TeamMember(user_id="u3", username="Carol", is_active=True),
            TeamMember(user_id="u4", username="Dave", is_active=False),
        ],
    )


@pytest.fixture
async def storage(backend_team: Team) -> Storage:
    """In-memory storage seeded with the backend team and a teamless user."""
    store = create_memory_storage()
    await store.teams.create_team(backend_team.team_name)
    await store.users.upsert_users(backend_team.to_users())
    await store.users.upsert_users([User(user_id="loner", username="Lone", team_name=None)])
    return store


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def selector(storage: Storage, rng: random.Random) -> CandidateSelector:
    return CandidateSelector(storage.users, rng=rng)


@pytest.fixture
def pr_service(storage: Storage, selector: CandidateSelector) -> PRService:
    return PRService(storage.users, storage.prs, selector, operation_timeout=2.0)


@pytest.fixture
def team_service(storage: Storage) -> TeamService:
    return TeamService(storage.teams, storage.users)


@pytest.fixture
def user_service(storage: Storage) -> UserService:
    return UserService(storage.users, storage.prs)


@pytest.fixture
def client(settings: Settings, backend_team: Team) -> Generator[TestClient, None, None]:
    """Test client over a fresh in-memory app, with the backend team created."""
    app = create_app(settings=settings, storage=create_memory_storage())
    with TestClient(app) as test_client:
        response = test_client.post("/team/add", json=backend_team.model_dump())
        assert response.status_code == 201
        yield test_client


@pytest.fixture
def sample_pr_payload() -> dict:
    """Body of POST /pullRequest/create."""
    return {
        "pull_request_id": "pr-1001",
        "pull_request_name": "Add search",
        "author_id": "u1",
    }
