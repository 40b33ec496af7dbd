"""
API Package

This package contains the HTTP layer:
- pull_requests, teams, users: FastAPI routers
- errors: error envelope and exception handlers
- dependencies: service lookup for route handlers
"""

from pr_reviewer.api.errors import register_exception_handlers
from pr_reviewer.api.pull_requests import router as pull_requests_router
from pr_reviewer.api.teams import router as teams_router
from pr_reviewer.api.users import router as users_router

routers = [teams_router, users_router, pull_requests_router]

__all__ = ["register_exception_handlers", "routers"]
