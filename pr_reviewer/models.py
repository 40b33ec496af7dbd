"""
Data Models Module

This module defines all Pydantic models used throughout the application.
Strong typing ensures data integrity and provides clear contracts between components.

Design Decisions:
- Domain models are plain Pydantic models shared by services and storage
- Request/response models mirror the public JSON API field names
- Clear separation between domain models and HTTP models
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================

class PRStatus(str, Enum):
    """Pull request lifecycle states. MERGED is terminal."""
    OPEN = "OPEN"
    MERGED = "MERGED"


# =============================================================================
# Domain Models
# =============================================================================

class User(BaseModel):
    """
    A user known to the directory.

    Attributes:
        user_id: Unique identifier
        username: Display name
        team_name: Team the user belongs to; None means the user is ineligible
            to author or review
        is_active: Inactive users are never picked as reviewers
    """
    user_id: str
    username: str
    team_name: Optional[str] = None
    is_active: bool = True


class TeamMember(BaseModel):
    """A team member as listed under a team."""
    user_id: str = Field(min_length=1)
    username: str = Field(min_length=1)
    is_active: bool = True


class Team(BaseModel):
    """A team with its members."""
    team_name: str = Field(min_length=1)
    members: List[TeamMember] = []

    def to_users(self) -> List[User]:
        """Expand members into users attached to this team."""
        return [
            User(
                user_id=member.user_id,
                username=member.username,
                team_name=self.team_name,
                is_active=member.is_active,
            )
            for member in self.members
        ]


class PullRequest(BaseModel):
    """
    A pull request with its assigned reviewers.

    ``assigned_reviewers`` is stored and returned as a sequence but its order
    carries no meaning.
    """
    model_config = ConfigDict(populate_by_name=True)

    pull_request_id: str
    pull_request_name: str
    author_id: str
    status: PRStatus = PRStatus.OPEN
    assigned_reviewers: List[str] = []
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    merged_at: Optional[datetime] = Field(default=None, alias="mergedAt")

    @property
    def is_merged(self) -> bool:
        return self.status == PRStatus.MERGED


class PullRequestShort(BaseModel):
    """Pull request summary used in review listings."""
    pull_request_id: str
    pull_request_name: str
    author_id: str
    status: PRStatus


# =============================================================================
# Request Models
# =============================================================================

class SetIsActiveRequest(BaseModel):
    user_id: str = Field(min_length=1)
    is_active: bool = True


class CreatePRRequest(BaseModel):
    pull_request_id: str = Field(min_length=1)
    pull_request_name: str = Field(min_length=1)
    author_id: str = Field(min_length=1)


class MergePRRequest(BaseModel):
    pull_request_id: str = Field(min_length=1)


class ReassignRequest(BaseModel):
    pull_request_id: str = Field(min_length=1)
    old_user_id: str = Field(min_length=1)


# =============================================================================
# Response Models
# =============================================================================

class ErrorDetail(BaseModel):
    code: str
    message: str


class ErrorResponse(BaseModel):
    """Body of every non-2xx response."""
    error: ErrorDetail


class TeamResponse(BaseModel):
    team: Team


class UserResponse(BaseModel):
    user: User


class PullRequestResponse(BaseModel):
    pr: PullRequest


class ReassignResponse(BaseModel):
    pr: PullRequest
    replaced_by: str = Field(description="New reviewer id, empty when none was available")


class UserReviewsResponse(BaseModel):
    user_id: str
    pull_requests: List[PullRequestShort] = []
