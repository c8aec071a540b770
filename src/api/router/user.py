"""User profile, onboarding and referral dashboard router."""

from fastapi import APIRouter, Depends, Query

from src.api.controller.account.account_controller import AccountController
from src.api.models.request_models import ProfileRequestDTO
from src.core.dependencies import get_account_controller
from src.core.service.account.models import ReferralStats, User

router = APIRouter(
    prefix="/user",
    tags=["user"],
    responses={
        404: {"description": "User not found"},
        500: {"description": "Internal Server Error"}
    }
)


@router.get("", response_model=User, summary="Get user profile")
async def get_user(
    email: str = Query(..., description="User email"),
    controller: AccountController = Depends(get_account_controller)
) -> User:
    return await controller.get_user(email)


@router.post(
    "",
    response_model=User,
    summary="Create or update user profile",
    description="Onboarding is marked completed once firstname, lastname, primary city and a role are present"
)
async def save_user(
    request: ProfileRequestDTO,
    controller: AccountController = Depends(get_account_controller)
) -> User:
    return await controller.save_user(request)


@router.post("/onboarding", response_model=User, summary="Complete onboarding")
async def complete_onboarding(
    request: ProfileRequestDTO,
    controller: AccountController = Depends(get_account_controller)
) -> User:
    """Mark onboarding completed for an existing user and apply the submitted fields."""
    return await controller.complete_onboarding(request)


@router.get("/referrals", response_model=ReferralStats, summary="Get referral statistics")
async def get_referral_stats(
    email: str = Query(..., description="User email"),
    controller: AccountController = Depends(get_account_controller)
) -> ReferralStats:
    """Direct invites with their join date, plus the user's current points and winwin balance."""
    return await controller.get_referral_stats(email)
