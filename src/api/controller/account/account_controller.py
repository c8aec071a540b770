"""Account controller: maps account service results onto HTTP semantics."""

from src.api.controller.account.dto.output_dto import ReferralResponseDto, SignupResponseDto
from src.api.models.request_models import ProfileRequestDTO, SignupCompleteRequestDTO, SignupRequestDTO
from src.core.exceptions.base import AccountNotFoundError, OnboardingIncompleteError, StoreError
from src.core.exceptions.handler import ServiceError, ServiceErrorCode
from src.core.logger.logger import logger
from src.core.service.account.account_service import AccountService
from src.core.service.account.models import ReferralStats, User


def _database_error(e: StoreError) -> ServiceError:
    return ServiceError(
        code=ServiceErrorCode.DATABASE_ERROR,
        message="Database operation failed. Please try again.",
        status_code=503,
        context=e.to_dict()
    )


def _not_found(e: AccountNotFoundError) -> ServiceError:
    return ServiceError(
        code=ServiceErrorCode.USER_NOT_FOUND,
        message="User not found",
        status_code=404,
        context={"email": e.email}
    )


class AccountController:
    """Controller for registration, onboarding and profile operations."""

    def __init__(self, account_service: AccountService):
        self.account_service = account_service

    async def signup(self, request: SignupRequestDTO) -> SignupResponseDto:
        """
        Register (or update) a user and attribute the referral they arrived with.

        The referral part never fails the registration: its own status is
        reported in the ``referral`` field.
        """
        logger.info(
            "Signup called",
            extra={"email": request.email, "has_referral": bool(request.referralId), "has_dynamic_id": bool(request.dynamicId)}
        )
        try:
            user, result = await self.account_service.register(
                request.email,
                referral_token=request.referralId,
                dynamic_id=request.dynamicId
            )
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except StoreError as e:
            raise _database_error(e)

        return SignupResponseDto(
            success=True,
            userId=user.id,
            referral=ReferralResponseDto.from_result(result) if result else None
        )

    async def complete_signup(self, request: SignupCompleteRequestDTO) -> ReferralResponseDto:
        """Attribute a referral after onboarding; infrastructure failure is a 500."""
        logger.info("Onboarding referral called", extra={"email": request.email})
        try:
            result = await self.account_service.complete_signup_referral(request.email, request.referralId)
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except AccountNotFoundError as e:
            raise _not_found(e)
        except OnboardingIncompleteError as e:
            raise ServiceError(
                code=ServiceErrorCode.ONBOARDING_INCOMPLETE,
                message="User has not completed onboarding",
                status_code=400,
                context={"email": e.email}
            )
        except StoreError as e:
            raise _database_error(e)

        if not result.success:
            raise ServiceError(
                code=ServiceErrorCode.INTERNAL_ERROR,
                message=result.error or "Error processing invite",
                status_code=500,
                context={"email": request.email}
            )

        return ReferralResponseDto.from_result(result)

    async def get_user(self, email: str) -> User:
        try:
            return await self.account_service.get_profile(email)
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except AccountNotFoundError as e:
            raise _not_found(e)
        except StoreError as e:
            raise _database_error(e)

    async def save_user(self, request: ProfileRequestDTO) -> User:
        try:
            return await self.account_service.save_profile(request.email, request.to_profile())
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except StoreError as e:
            raise _database_error(e)

    async def complete_onboarding(self, request: ProfileRequestDTO) -> User:
        try:
            return await self.account_service.complete_onboarding(request.email, request.to_profile())
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except AccountNotFoundError as e:
            raise _not_found(e)
        except StoreError as e:
            raise _database_error(e)

    async def get_referral_stats(self, email: str) -> ReferralStats:
        try:
            return await self.account_service.get_referral_stats(email)
        except ValueError as e:
            raise ServiceError(ServiceErrorCode.MISSING_FIELD, str(e), status_code=400)
        except AccountNotFoundError as e:
            raise _not_found(e)
        except StoreError as e:
            raise _database_error(e)
