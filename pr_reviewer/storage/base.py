"""
Storage Ports

Abstract interfaces the services depend on. Any backend implementing them
(the SQLAlchemy adapter, the in-memory adapter, a test stub) can be plugged
into the services.

Design Decisions:
- Reviewer mutations that must be atomic with a status check go through a
  ``PRTransaction`` obtained from ``PRStorage.transaction()``
- ``get_pr_for_update`` holds an exclusive lock on the PR row until the
  transaction ends, so a concurrent merge cannot slip between the status
  guard and the reviewer mutation
- Reads needed while a transaction is open go through the transaction
  itself, so one reassignment holds a single connection
"""

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import Iterable, List, Optional, Sequence

from pr_reviewer.models import PullRequest, PullRequestShort, User


class UserStorage(ABC):
    """User directory reads and writes."""

    @abstractmethod
    async def user_exists_and_has_team(self, user_id: str) -> bool:
        """True if the user exists and belongs to a team."""

    @abstractmethod
    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        """Active users in the author's team, minus ``exclude_ids``."""

    @abstractmethod
    async def upsert_users(self, users: Sequence[User]) -> None:
        """Insert users or overwrite name, team and activity of existing ones."""

    @abstractmethod
    async def set_is_active(self, user_id: str, is_active: bool) -> User:
        """Update the activity flag. Raises RecordNotFoundError."""

    @abstractmethod
    async def get_users_by_team(self, team_name: str) -> List[User]:
        """Members of a team."""


class TeamStorage(ABC):
    """Team registry."""

    @abstractmethod
    async def create_team(self, team_name: str) -> None:
        """Register a team. Raises RecordExistsError."""

    @abstractmethod
    async def team_exists(self, team_name: str) -> bool:
        """True if the team is registered."""


class PRTransaction(ABC):
    """Operations available inside a single PR transaction."""

    @abstractmethod
    async def get_pr_for_update(self, pr_id: str) -> PullRequest:
        """Lock and return the PR with reviewers. Raises RecordNotFoundError."""

    @abstractmethod
    async def remove_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        """Detach a reviewer. Raises ReviewerNotAssignedError if nothing was removed."""

    @abstractmethod
    async def add_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        """Attach a reviewer."""

    @abstractmethod
    async def get_pr(self, pr_id: str) -> PullRequest:
        """Read the PR with reviewers as seen by this transaction."""

    @abstractmethod
    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        """Same as UserStorage.get_active_teammate_ids, on this transaction's connection."""


class PRStorage(ABC):
    """Pull request persistence."""

    @abstractmethod
    async def create_pr(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        """Insert an OPEN PR without reviewers. Raises RecordExistsError."""

    @abstractmethod
    async def assign_reviewers(self, pr_id: str, reviewer_ids: Sequence[str]) -> None:
        """Attach reviewers in one batch. No-op for an empty sequence."""

    @abstractmethod
    async def set_merged(self, pr_id: str) -> PullRequest:
        """Mark merged, keeping an existing merge time. Raises RecordNotFoundError."""

    @abstractmethod
    async def get_pr(self, pr_id: str) -> Optional[PullRequest]:
        """The PR with reviewers, or None."""

    @abstractmethod
    async def get_prs_reviewed_by(self, user_id: str) -> List[PullRequestShort]:
        """PRs the user is currently assigned to."""

    @abstractmethod
    def transaction(self) -> AbstractAsyncContextManager[PRTransaction]:
        """
        Open a transaction.

        Commits when the block exits normally and rolls back when it raises
        (including on cancellation).
        """


class Storage:
    """Bundle of ports handed to the application at startup."""

    def __init__(
        self,
        users: UserStorage,
        teams: TeamStorage,
        prs: PRStorage
    ):
        self.users = users
        self.teams = teams
        self.prs = prs

    async def ping(self) -> None:
        """Check the backend is reachable."""

    async def close(self) -> None:
        """Release backend resources."""
