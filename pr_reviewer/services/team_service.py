"""
Team Directory Service

Creates teams together with their members and reads them back.
"""

from typing import Optional

from pr_reviewer.errors import ErrorCode, ServiceError
from pr_reviewer.logging_config import get_logger
from pr_reviewer.models import Team, TeamMember
from pr_reviewer.services.deadline import operation_deadline
from pr_reviewer.services.pr_service import DEFAULT_OPERATION_TIMEOUT
from pr_reviewer.storage.base import TeamStorage, UserStorage
from pr_reviewer.storage.errors import RecordExistsError, StorageError


class TeamService:
    """
    Usage:
        service = TeamService(team_storage, user_storage)
        await service.create_team(Team(team_name="backend", members=[...]))
    """

    def __init__(
        self,
        team_storage: TeamStorage,
        user_storage: UserStorage,
        logger=None,
        operation_timeout: Optional[float] = DEFAULT_OPERATION_TIMEOUT
    ):
        self._teams = team_storage
        self._users = user_storage
        self._logger = logger or get_logger(__name__)
        self._timeout = operation_timeout

    async def create_team(self, team: Team) -> Team:
        """
        Register a team and upsert its members.

        Existing users listed as members are moved into this team and get the
        given name and activity flag.

        Raises:
            ServiceError: TEAM_EXISTS or INTERNAL
        """
        log = self._logger.bind(op="service.team.create_team", team_name=team.team_name)

        async with operation_deadline(self._timeout, log):
            try:
                await self._teams.create_team(team.team_name)
            except RecordExistsError as e:
                log.debug("Team already exists")
                raise ServiceError(ErrorCode.TEAM_EXISTS, cause=e) from e
            except StorageError as e:
                log.error("Failed to create team", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

            try:
                await self._users.upsert_users(team.to_users())
            except StorageError as e:
                log.error("Failed to upsert team members", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        log.info("Team created", members=len(team.members))
        return team

    async def get_team(self, team_name: str) -> Team:
        """
        Fetch a team with its members.

        Raises:
            ServiceError: TEAM_NOT_FOUND or INTERNAL
        """
        log = self._logger.bind(op="service.team.get_team", team_name=team_name)

        async with operation_deadline(self._timeout, log):
            try:
                exists = await self._teams.team_exists(team_name)
                if not exists:
                    log.debug("Team not found")
                    raise ServiceError(ErrorCode.TEAM_NOT_FOUND)
                users = await self._users.get_users_by_team(team_name)
            except StorageError as e:
                log.error("Failed to read team", error=str(e), error_type=type(e).__name__)
                raise ServiceError(ErrorCode.INTERNAL, cause=e) from e

        return Team(
            team_name=team_name,
            members=[
                TeamMember(
                    user_id=user.user_id,
                    username=user.username,
                    is_active=user.is_active,
                )
                for user in users
            ],
        )
