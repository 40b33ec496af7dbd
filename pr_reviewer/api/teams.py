"""Team Endpoints"""

from fastapi import APIRouter, Depends, Query, status

from pr_reviewer.api.dependencies import get_team_service
from pr_reviewer.models import Team, TeamResponse
from pr_reviewer.services import TeamService

router = APIRouter(prefix="/team", tags=["teams"])


@router.post("/add", status_code=status.HTTP_201_CREATED, response_model=TeamResponse)
async def add_team(
    body: Team,
    service: TeamService = Depends(get_team_service)
) -> TeamResponse:
    """Create a team; members are created or updated."""
    team = await service.create_team(body)
    return TeamResponse(team=team)


@router.get("/get", response_model=Team)
async def get_team(
    team_name: str = Query(min_length=1),
    service: TeamService = Depends(get_team_service)
) -> Team:
    """Fetch a team with its members."""
    return await service.get_team(team_name)
