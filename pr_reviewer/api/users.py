"""User Endpoints"""

from fastapi import APIRouter, Depends, Query

from pr_reviewer.api.dependencies import get_user_service
from pr_reviewer.models import SetIsActiveRequest, UserResponse, UserReviewsResponse
from pr_reviewer.services import UserService

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/setIsActive", response_model=UserResponse)
async def set_is_active(
    body: SetIsActiveRequest,
    service: UserService = Depends(get_user_service)
) -> UserResponse:
    """Activate or deactivate a user."""
    user = await service.set_is_active(body.user_id, body.is_active)
    return UserResponse(user=user)


@router.get("/getReview", response_model=UserReviewsResponse)
async def get_review(
    user_id: str = Query(min_length=1),
    service: UserService = Depends(get_user_service)
) -> UserReviewsResponse:
    """List pull requests the user is assigned to review."""
    prs = await service.get_reviews(user_id)
    return UserReviewsResponse(user_id=user_id, pull_requests=prs)
