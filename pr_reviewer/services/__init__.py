"""
Services Package

This package contains the business logic of the reviewer assignment service:
- selector: random reviewer candidate selection
- pr_service: pull request lifecycle (create, merge, reassign)
- team_service: team directory
- user_service: user directory
"""

from pr_reviewer.services.pr_service import PRService
from pr_reviewer.services.selector import CandidateSelector
from pr_reviewer.services.team_service import TeamService
from pr_reviewer.services.user_service import UserService

__all__ = [
    "CandidateSelector",
    "PRService",
    "TeamService",
    "UserService",
]
