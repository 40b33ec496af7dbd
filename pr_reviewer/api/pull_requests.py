"""
Pull Request Endpoints

Thin HTTP layer over PRService: bind the body, call the service, wrap the
result. Errors are rendered by the handlers in ``pr_reviewer.api.errors``.
"""

from fastapi import APIRouter, Depends, status

from pr_reviewer.api.dependencies import get_pr_service
from pr_reviewer.models import (
    CreatePRRequest,
    MergePRRequest,
    PullRequestResponse,
    ReassignRequest,
    ReassignResponse,
)
from pr_reviewer.services import PRService

router = APIRouter(prefix="/pullRequest", tags=["pull-requests"])


@router.post(
    "/create",
    status_code=status.HTTP_201_CREATED,
    response_model=PullRequestResponse
)
async def create_pull_request(
    body: CreatePRRequest,
    service: PRService = Depends(get_pr_service)
) -> PullRequestResponse:
    """Create a pull request and assign up to two reviewers from the author's team."""
    pr = await service.create_pr(
        body.pull_request_id,
        body.pull_request_name,
        body.author_id
    )
    return PullRequestResponse(pr=pr)


@router.post("/merge", response_model=PullRequestResponse)
async def merge_pull_request(
    body: MergePRRequest,
    service: PRService = Depends(get_pr_service)
) -> PullRequestResponse:
    """Mark a pull request as merged (idempotent)."""
    pr = await service.set_merged(body.pull_request_id)
    return PullRequestResponse(pr=pr)


@router.post("/reassign", response_model=ReassignResponse)
async def reassign_reviewer(
    body: ReassignRequest,
    service: PRService = Depends(get_pr_service)
) -> ReassignResponse:
    """Replace one reviewer with another active member of the author's team."""
    pr, replaced_by = await service.reassign_reviewer(
        body.pull_request_id,
        body.old_user_id
    )
    return ReassignResponse(pr=pr, replaced_by=replaced_by)
