"""
In-Memory Storage Adapter

Implements the storage ports on plain dictionaries. Used for local runs
(``STORAGE_BACKEND=memory``) and for deterministic service tests.

Design Decisions:
- One asyncio.Lock serializes every write, which is stricter than the row
  locks of the database adapter but gives the same guarantees
- Transactions buffer reviewer changes for the PRs they touch and apply
  them only on commit, so an exception or cancellation inside the block
  leaves nothing behind
"""

import asyncio
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncIterator, Dict, Iterable, List, Optional, Sequence, Set

from pr_reviewer.models import PRStatus, PullRequest, PullRequestShort, User
from pr_reviewer.storage.base import (
    PRStorage,
    PRTransaction,
    Storage,
    TeamStorage,
    UserStorage,
)
from pr_reviewer.storage.errors import (
    RecordExistsError,
    RecordNotFoundError,
    ReviewerNotAssignedError,
)


@dataclass
class MemoryState:
    """Everything the in-memory backend stores."""
    teams: Set[str] = field(default_factory=set)
    users: Dict[str, User] = field(default_factory=dict)
    prs: Dict[str, PullRequest] = field(default_factory=dict)
    # pr id -> reviewer ids, in assignment order
    reviewers: Dict[str, List[str]] = field(default_factory=dict)

    def read_pr(self, pr_id: str) -> Optional[PullRequest]:
        pr = self.prs.get(pr_id)
        if pr is None:
            return None
        return pr.model_copy(
            update={"assigned_reviewers": list(self.reviewers.get(pr_id, []))}
        )


def _active_teammate_ids(
    state: MemoryState,
    author_id: str,
    exclude_ids: Iterable[str]
) -> List[str]:
    author = state.users.get(author_id)
    if author is None or author.team_name is None:
        return []
    excluded = set(exclude_ids)
    return [
        user.user_id
        for user in state.users.values()
        if user.team_name == author.team_name
        and user.is_active
        and user.user_id not in excluded
    ]


class _MemoryBackend:
    """Shared state plus the lock guarding it."""

    def __init__(self):
        self.state = MemoryState()
        self.lock = asyncio.Lock()


class MemoryUserStorage(UserStorage):

    def __init__(self, backend: _MemoryBackend):
        self._backend = backend

    async def user_exists_and_has_team(self, user_id: str) -> bool:
        user = self._backend.state.users.get(user_id)
        return user is not None and user.team_name is not None

    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        return _active_teammate_ids(self._backend.state, author_id, exclude_ids)

    async def upsert_users(self, users: Sequence[User]) -> None:
        async with self._backend.lock:
            for user in users:
                self._backend.state.users[user.user_id] = user.model_copy()

    async def set_is_active(self, user_id: str, is_active: bool) -> User:
        async with self._backend.lock:
            users = self._backend.state.users
            if user_id not in users:
                raise RecordNotFoundError(f"user {user_id} not found")
            users[user_id] = users[user_id].model_copy(update={"is_active": is_active})
            return users[user_id].model_copy()

    async def get_users_by_team(self, team_name: str) -> List[User]:
        return [
            user.model_copy()
            for user in self._backend.state.users.values()
            if user.team_name == team_name
        ]


class MemoryTeamStorage(TeamStorage):

    def __init__(self, backend: _MemoryBackend):
        self._backend = backend

    async def create_team(self, team_name: str) -> None:
        async with self._backend.lock:
            if team_name in self._backend.state.teams:
                raise RecordExistsError(f"team {team_name} already exists")
            self._backend.state.teams.add(team_name)

    async def team_exists(self, team_name: str) -> bool:
        return team_name in self._backend.state.teams


class MemoryPRTransaction(PRTransaction):
    """
    Buffers reviewer changes until ``commit``.

    Only the reviewer lists of PRs touched in the block are copied; the
    shared state is not modified before commit.
    """

    def __init__(self, state: MemoryState):
        self._state = state
        self._reviewers: Dict[str, List[str]] = {}

    def _reviewers_of(self, pr_id: str) -> List[str]:
        if pr_id not in self._reviewers:
            self._reviewers[pr_id] = list(self._state.reviewers.get(pr_id, []))
        return self._reviewers[pr_id]

    async def get_pr_for_update(self, pr_id: str) -> PullRequest:
        pr = self._state.prs.get(pr_id)
        if pr is None:
            raise RecordNotFoundError(f"pull request {pr_id} not found")
        return pr.model_copy(update={"assigned_reviewers": list(self._reviewers_of(pr_id))})

    async def remove_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        reviewers = self._reviewers_of(pr_id)
        if reviewer_id not in reviewers:
            raise ReviewerNotAssignedError(
                f"{reviewer_id} is not a reviewer of {pr_id}"
            )
        reviewers.remove(reviewer_id)

    async def add_reviewer(self, pr_id: str, reviewer_id: str) -> None:
        reviewers = self._reviewers_of(pr_id)
        if reviewer_id in reviewers:
            raise RecordExistsError(f"{reviewer_id} already reviews {pr_id}")
        reviewers.append(reviewer_id)

    async def get_pr(self, pr_id: str) -> PullRequest:
        return await self.get_pr_for_update(pr_id)

    async def get_active_teammate_ids(
        self,
        author_id: str,
        exclude_ids: Iterable[str]
    ) -> List[str]:
        return _active_teammate_ids(self._state, author_id, exclude_ids)

    def commit(self) -> None:
        self._state.reviewers.update(self._reviewers)


class MemoryPRStorage(PRStorage):

    def __init__(self, backend: _MemoryBackend):
        self._backend = backend

    async def create_pr(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        async with self._backend.lock:
            state = self._backend.state
            if pr_id in state.prs:
                raise RecordExistsError(f"pull request {pr_id} already exists")
            if author_id not in state.users:
                raise RecordNotFoundError(f"author {author_id} not found")
            state.prs[pr_id] = PullRequest(
                pull_request_id=pr_id,
                pull_request_name=pr_name,
                author_id=author_id,
                status=PRStatus.OPEN,
                created_at=datetime.now(timezone.utc),
            )
            state.reviewers[pr_id] = []
            return state.read_pr(pr_id)

    async def assign_reviewers(self, pr_id: str, reviewer_ids: Sequence[str]) -> None:
        if not reviewer_ids:
            return
        async with self.transaction() as tx:
            for reviewer_id in reviewer_ids:
                await tx.add_reviewer(pr_id, reviewer_id)

    async def set_merged(self, pr_id: str) -> PullRequest:
        async with self._backend.lock:
            state = self._backend.state
            pr = state.prs.get(pr_id)
            if pr is None:
                raise RecordNotFoundError(f"pull request {pr_id} not found")
            state.prs[pr_id] = pr.model_copy(update={
                "status": PRStatus.MERGED,
                "merged_at": pr.merged_at or datetime.now(timezone.utc),
            })
            return state.read_pr(pr_id)

    async def get_pr(self, pr_id: str) -> Optional[PullRequest]:
        return self._backend.state.read_pr(pr_id)

    async def get_prs_reviewed_by(self, user_id: str) -> List[PullRequestShort]:
        state = self._backend.state
        return [
            PullRequestShort(
                pull_request_id=pr.pull_request_id,
                pull_request_name=pr.pull_request_name,
                author_id=pr.author_id,
                status=pr.status,
            )
            for pr in state.prs.values()
            if user_id in state.reviewers.get(pr.pull_request_id, [])
        ]

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MemoryPRTransaction]:
        async with self._backend.lock:
            tx = MemoryPRTransaction(self._backend.state)
            yield tx
            tx.commit()


def create_memory_storage() -> Storage:
    """Build a Storage bundle sharing one in-memory backend."""
    backend = _MemoryBackend()
    return Storage(
        users=MemoryUserStorage(backend),
        teams=MemoryTeamStorage(backend),
        prs=MemoryPRStorage(backend),
    )
