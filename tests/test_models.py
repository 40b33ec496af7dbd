"""
Tests for Data Models

Tests for the Pydantic models used in the application.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from pr_reviewer.models import (
    CreatePRRequest,
    PRStatus,
    PullRequest,
    PullRequestResponse,
    ReassignRequest,
    Team,
    TeamMember,
)


class TestDomainModels:
    """Tests for team, user and pull request models."""

    def test_team_to_users(self):
        """Test that members become users attached to the team."""
        team = Team(
            team_name="backend",
            members=[
                TeamMember(user_id="u1", username="Alice"),
                TeamMember(user_id="u2", username="Bob", is_active=False),
            ],
        )

        users = team.to_users()

        assert [u.user_id for u in users] == ["u1", "u2"]
        assert all(u.team_name == "backend" for u in users)
        assert users[1].is_active is False

    def test_team_member_requires_id(self):
        """Test that an empty user id is rejected."""
        with pytest.raises(ValidationError):
            TeamMember(user_id="", username="Alice")

    def test_pull_request_defaults(self):
        """Test a freshly built pull request."""
        pr = PullRequest(pull_request_id="pr1", pull_request_name="x", author_id="u1")

        assert pr.status == PRStatus.OPEN
        assert pr.assigned_reviewers == []
        assert pr.is_merged is False

    def test_pull_request_aliases(self):
        """Test that timestamps accept and dump the camelCase names."""
        now = datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        pr = PullRequest(
            pull_request_id="pr1",
            pull_request_name="x",
            author_id="u1",
            status=PRStatus.MERGED,
            createdAt=now,
            merged_at=now,
        )

        dumped = pr.model_dump(by_alias=True)

        assert pr.is_merged is True
        assert dumped["createdAt"] == now
        assert dumped["mergedAt"] == now
        assert "created_at" not in dumped


class TestRequestModels:
    """Tests for request bodies."""

    def test_create_request(self):
        body = CreatePRRequest(pull_request_id="pr1", pull_request_name="x", author_id="u1")

        assert body.author_id == "u1"

    def test_create_request_missing_field(self):
        """Test that the author is required."""
        with pytest.raises(ValidationError):
            CreatePRRequest(pull_request_id="pr1", pull_request_name="x")

    def test_reassign_request_rejects_empty(self):
        with pytest.raises(ValidationError):
            ReassignRequest(pull_request_id="pr1", old_user_id="")


class TestResponseModels:
    """Tests for response envelopes."""

    def test_pull_request_response_json(self):
        """Test the JSON shape of a created pull request."""
        pr = PullRequest(
            pull_request_id="pr1",
            pull_request_name="x",
            author_id="u1",
            assigned_reviewers=["u2"],
        )

        body = PullRequestResponse(pr=pr).model_dump(mode="json", by_alias=True)

        assert body["pr"]["status"] == "OPEN"
        assert body["pr"]["assigned_reviewers"] == ["u2"]
        assert body["pr"]["mergedAt"] is None
