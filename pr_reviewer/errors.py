"""
Service Error Taxonomy

Every public service operation either returns a value or raises exactly one
``ServiceError``. The error carries a stable ``ErrorCode`` (what went wrong),
the ``ErrorKind`` it belongs to (how callers should treat it) and, optionally,
the underlying cause.

Design Decisions:
- Closed enumerations instead of module-level sentinel exceptions
- Messages are generic and safe to show to callers; internal detail stays
  on ``cause`` and in the logs
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Broad failure classes."""
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    INTERNAL = "internal"


class ErrorCode(str, Enum):
    """Stable error codes raised by the services."""
    AUTHOR_INVALID = "AUTHOR_INVALID"
    PR_EXISTS = "PR_EXISTS"
    PR_NOT_FOUND = "PR_NOT_FOUND"
    PR_MERGED = "PR_MERGED"
    REVIEWER_NOT_ASSIGNED = "REVIEWER_NOT_ASSIGNED"
    TEAM_EXISTS = "TEAM_EXISTS"
    TEAM_NOT_FOUND = "TEAM_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INTERNAL = "INTERNAL"


ERROR_KINDS = {
    ErrorCode.AUTHOR_INVALID: ErrorKind.VALIDATION,
    ErrorCode.PR_EXISTS: ErrorKind.CONFLICT,
    ErrorCode.PR_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.PR_MERGED: ErrorKind.CONFLICT,
    ErrorCode.REVIEWER_NOT_ASSIGNED: ErrorKind.NOT_FOUND,
    ErrorCode.TEAM_EXISTS: ErrorKind.CONFLICT,
    ErrorCode.TEAM_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.USER_NOT_FOUND: ErrorKind.NOT_FOUND,
    ErrorCode.INTERNAL: ErrorKind.INTERNAL,
}

DEFAULT_MESSAGES = {
    ErrorCode.AUTHOR_INVALID: "author not found or has no team",
    ErrorCode.PR_EXISTS: "pull request already exists",
    ErrorCode.PR_NOT_FOUND: "pull request not found",
    ErrorCode.PR_MERGED: "pull request is already merged",
    ErrorCode.REVIEWER_NOT_ASSIGNED: "reviewer is not assigned to this pull request",
    ErrorCode.TEAM_EXISTS: "team already exists",
    ErrorCode.TEAM_NOT_FOUND: "team not found",
    ErrorCode.USER_NOT_FOUND: "user not found",
    ErrorCode.INTERNAL: "internal error",
}


class ServiceError(Exception):
    """
    Typed failure raised by the service layer.

    Usage:
        try:
            await pr_service.set_merged("pr-1")
        except ServiceError as e:
            if e.kind is ErrorKind.NOT_FOUND:
                ...
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None
    ):
        self.code = code
        self.message = message or DEFAULT_MESSAGES[code]
        self.cause = cause
        super().__init__(self.message)

    @property
    def kind(self) -> ErrorKind:
        return ERROR_KINDS[self.code]

    def __repr__(self) -> str:
        return f"ServiceError(code={self.code.value}, kind={self.kind.value})"

