"""
Registration router - the two entry points of the referral core.
"""

from fastapi import APIRouter, Depends

from src.api.controller.account.account_controller import AccountController
from src.api.controller.account.dto.output_dto import ReferralResponseDto, SignupResponseDto
from src.api.models.request_models import SignupCompleteRequestDTO, SignupRequestDTO
from src.core.dependencies import get_account_controller

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    responses={
        400: {"description": "Bad Request"},
        422: {"description": "Validation Error"},
        429: {"description": "Too Many Requests"},
        500: {"description": "Internal Server Error"}
    }
)


@router.post(
    "/signup",
    response_model=SignupResponseDto,
    summary="Register a user",
    description="Create or update a user by email and attribute the referral token, if any"
)
async def signup(
    request: SignupRequestDTO,
    controller: AccountController = Depends(get_account_controller)
) -> SignupResponseDto:
    """
    Register a user.

    Args:
        request: SignupRequestDTO containing:
            - email: User email (required)
            - referralId: Referral token (user id, external id, wallet address or email)
            - dynamicId: External auth identifier to store on the user

    Returns:
        SignupResponseDto with the user id and, when a token was sent, the referral outcome
    """
    return await controller.signup(request)


@router.post(
    "/signup/complete",
    response_model=ReferralResponseDto,
    summary="Attribute referral after onboarding",
    description="Attribute the client-persisted referral token once onboarding is completed",
    responses={404: {"description": "User not found"}}
)
async def complete_signup(
    request: SignupCompleteRequestDTO,
    controller: AccountController = Depends(get_account_controller)
) -> ReferralResponseDto:
    """
    Attribute a referral for a user who finished onboarding.

    Unknown referrers and already processed referrals are successful no-ops.
    """
    return await controller.complete_signup(request)
