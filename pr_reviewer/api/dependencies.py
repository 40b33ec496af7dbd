"""FastAPI dependencies resolving the services built at startup."""

from fastapi import Request

from pr_reviewer.services import PRService, TeamService, UserService


def get_pr_service(request: Request) -> PRService:
    return request.app.state.pr_service


def get_team_service(request: Request) -> TeamService:
    return request.app.state.team_service


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service
