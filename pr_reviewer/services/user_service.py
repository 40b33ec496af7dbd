"""
User Directory Service

Toggles user activity and lists the pull requests a user reviews.
"""

from typing import List, Optional

from pr_reviewer.errors import ErrorCode, ServiceError
from pr_reviewer.logging_config import get_logger
from pr_reviewer.models import PullRequestShort, User
from pr_reviewer.services.deadline import operation_deadline
from pr_reviewer.services.pr_service import DEFAULT_OPERATION_TIMEOUT
from pr_reviewer.storage.base import PRStorage, UserStorage
from pr_reviewer.storage.errors import RecordNotFoundError, StorageError


class UserService:

    def __init__(
        self,
        user_storage: UserStorage,
        pr_storage: PRStorage,
        logger=None,
        operation_timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT
    ):
        self._users = user_storage
        self._prs = pr_storage
        self._logger = logger or get_logger(__name__)
        self._timeout = operation_timeout

    async def set_is_active(self, user_id: str, is_active: bool) -> User:
        """
        Activate or deactivate a user.

        Inactive users stay on the pull requests they already review but are
        no longer picked as candidates.

        Raises:
            ServiceError: USER_NOT_FOUND or INTERNAL
        """
        log = self._logger.bind(op="service.user.set_is_active", user_id=user_id)

        async with operation_deadline(self._timeout, log):
            try:
                user = await self._users.set_is_active(user_id, is_active)
            except RecordNotFoundError as e:
                log.debug("User not found")
                raise ServiceError(ErrorCode.USER_NOT_FOUND, cause=e) from e
            except StorageError as e:
                log.error("Failed to set is_active", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.info("User activity updated", is_active=is_active)
        return user

    async def get_reviews(self, user_id: str) -> List[PullRequestShort]:
        """Pull requests the user is currently assigned to review."""
        log = self._logger.bind(op="service.user.get_reviews", user_id=user_id)

        async with operation_deadline(self._timeout, log):
            try:
                prs = await self._prs.get_prs_reviewed_by(user_id)
            except StorageError as e:
                log.error("Failed to list reviews", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.debug("Listed reviews", count=len(prs))
        return prs
