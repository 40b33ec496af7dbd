"""
Pull Request Lifecycle Service

This module owns the pull request state machine (OPEN -> MERGED) and the
reviewer assignment rules.

Design Decisions:
- Storage is reached only through the ports in ``pr_reviewer.storage.base``
- Creation commits the PR row before reviewers are attached; a failure in
  between is reported as an internal error and not compensated
- Reassignment runs status guard, removal and addition in one transaction
  holding the PR row lock
- Every operation runs under a deadline (see ``operation_deadline``)
"""

from typing import Optional, Tuple

from pr_reviewer.errors import ErrorCode, ServiceError
from pr_reviewer.logging_config import get_logger
from pr_reviewer.models import PullRequest
from pr_reviewer.services.deadline import operation_deadline
from pr_reviewer.services.selector import CandidateSelector
from pr_reviewer.storage.base import PRStorage, UserStorage
from pr_reviewer.storage.errors import (
    RecordExistsError,
    RecordNotFoundError,
    ReviewerNotAssignedError,
    StorageError,
)

FIRST_ASSIGN_LIMIT = 2
REASSIGN_LIMIT = 1

DEFAULT_OPERATION_TIMEOUT = 4.0


class PRService:
    """
    Creates pull requests, merges them and reassigns reviewers.

    Usage:
        service = PRService(user_storage, pr_storage, CandidateSelector(user_storage))
        pr = await service.create_pr("pr-1", "Add search", "u1")
        pr, replaced_by = await service.reassign_reviewer("pr-1", pr.assigned_reviewers[0])
    """

    def __init__(
        self,
        user_storage: UserStorage,
        pr_storage: PRStorage,
        selector: CandidateSelector,
        logger=None,
        operation_timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT
    ):
        self._users = user_storage
        self._prs = pr_storage
        self._selector = selector
        self._logger = logger or get_logger(__name__)
        self._timeout = operation_timeout

    async def create_pr(self, pr_id: str, pr_name: str, author_id: str) -> PullRequest:
        """
        Create an OPEN pull request and assign up to two reviewers.

        Args:
            pr_id: Caller-assigned unique identifier
            pr_name: Title of the pull request
            author_id: Author, who must exist and belong to a team

        Returns:
            The created pull request with its reviewers

        Raises:
            ServiceError: AUTHOR_INVALID, PR_EXISTS or INTERNAL
        """
        log = self._logger.bind(
            op="service.pr.create_pr",
            pr_id=pr_id,
            pr_name=pr_name,
            author_id=author_id
        )

        async with operation_deadline(self._timeout, log):
            try:
                author_ok = await self._users.user_exists_and_has_team(author_id)
            except StorageError as e:
                log.error("Failed to check author", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

            if not author_ok:
                log.debug("Author not found or has no team")
                raise ServiceError(ErrorCode.AUTHOR_INVALID)

            try:
                pr = await self._prs.create_pr(pr_id, pr_name, author_id)
            except RecordExistsError as e:
                log.debug("Pull request already exists")
                raise ServiceError(ErrorCode.PR_EXISTS, cause=e) from e
            except StorageError as e:
                log.error("Failed to create pull request", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

            try:
                reviewers = await self._selector.select(
                    author_id,
                    exclude_ids={author_id},
                    limit=FIRST_ASSIGN_LIMIT
                )
                await self._prs.assign_reviewers(pr_id, reviewers)
            except StorageError as e:
                # the PR row is already committed and stays without reviewers
                log.error(
                    "Failed to assign reviewers",
                    error=str(e),
                    error_type=type(e).__name__
                )
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.info("Pull request created", reviewers=reviewers)

        return pr.model_copy(update={"assigned_reviewers": list(reviewers)})

    async def set_merged(self, pr_id: str) -> PullRequest:
        """
        Mark a pull request as merged.

        Idempotent: merging again keeps the original merge time.

        Raises:
            ServiceError: PR_NOT_FOUND or INTERNAL
        """
        log = self._logger.bind(op="service.pr.set_merged", pr_id=pr_id)

        async with operation_deadline(self._timeout, log):
            try:
                pr = await self._prs.set_merged(pr_id)
            except RecordNotFoundError as e:
                log.debug("Pull request not found")
                raise ServiceError(ErrorCode.PR_NOT_FOUND, cause=e) from e
            except StorageError as e:
                log.error("Failed to merge pull request", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.info("Pull request merged", merged_at=pr.merged_at)
        return pr

    async def reassign_reviewer(
        self,
        pr_id: str,
        old_reviewer_id: str
    ) -> Tuple[PullRequest, str]:
        """
        Replace an assigned reviewer with a random active teammate of the author.

        When nobody is available the old reviewer is only removed and the
        returned replacement id is an empty string.

        Args:
            pr_id: Pull request to change
            old_reviewer_id: Reviewer to take off the pull request

        Returns:
            Tuple of (updated pull request, new reviewer id or "")

        Raises:
            ServiceError: PR_NOT_FOUND, PR_MERGED, REVIEWER_NOT_ASSIGNED or INTERNAL
        """
        log = self._logger.bind(
            op="service.pr.reassign_reviewer",
            pr_id=pr_id,
            old_reviewer_id=old_reviewer_id
        )

        async with operation_deadline(self._timeout, log):
            try:
                async with self._prs.transaction() as tx:
                    try:
                        pr = await tx.get_pr_for_update(pr_id)
                    except RecordNotFoundError as e:
                        log.debug("Pull request not found")
                        raise ServiceError(ErrorCode.PR_NOT_FOUND, cause=e) from e

                    if pr.is_merged:
                        log.debug("Pull request already merged")
                        raise ServiceError(ErrorCode.PR_MERGED)

                    try:
                        await tx.remove_reviewer(pr_id, old_reviewer_id)
                    except ReviewerNotAssignedError as e:
                        log.debug("Reviewer not assigned to this pull request")
                        raise ServiceError(ErrorCode.REVIEWER_NOT_ASSIGNED, cause=e) from e

                    candidates = await self._selector.select(
                        pr.author_id,
                        exclude_ids={pr.author_id, old_reviewer_id, *pr.assigned_reviewers},
                        limit=REASSIGN_LIMIT,
                        source=tx
                    )
                    new_reviewer_id = candidates[0] if candidates else ""

                    if new_reviewer_id:
                        await tx.add_reviewer(pr_id, new_reviewer_id)

                    updated = await tx.get_pr(pr_id)
            except StorageError as e:
                log.error("Failed to reassign reviewer", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.info(
            "Reviewer reassigned",
            new_reviewer_id=new_reviewer_id or None,
            reviewers=updated.assigned_reviewers
        )

        return updated, new_reviewer_id

