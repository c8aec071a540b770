"""
FastAPI dependency injection functions.
Request-scoped repositories share the one session FastAPI caches per request.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.infra.config.settings import get_settings
from src.infra.database import get_async_session
from src.infra.repository.user_repository import UserRepository
from src.infra.repository.invite_repository import InviteRepository
from src.core.service.account.stores import AccountStore
from src.core.service.referral.stores import InviteStore
from src.core.service.referral.referral_service import ReferralService
from src.core.service.account.account_service import AccountService
from src.api.controller.account.account_controller import AccountController


async def get_user_repository(session: AsyncSession = Depends(get_async_session)) -> AccountStore:
    """Get user repository with SQLAlchemy session dependency."""
    return UserRepository(session)


async def get_invite_repository(session: AsyncSession = Depends(get_async_session)) -> InviteStore:
    """Get invite repository with SQLAlchemy session dependency."""
    return InviteRepository(session)


async def get_referral_service(
    user_repository: AccountStore = Depends(get_user_repository),
    invite_repository: InviteStore = Depends(get_invite_repository)
) -> ReferralService:
    """Get the shared referral core bound to this request's stores."""
    return ReferralService(
        user_repository,
        invite_repository,
        level_rewards=get_settings().REFERRAL_LEVEL_REWARDS
    )


async def get_account_service(
    user_repository: AccountStore = Depends(get_user_repository),
    invite_repository: InviteStore = Depends(get_invite_repository),
    referral_service: ReferralService = Depends(get_referral_service)
) -> AccountService:
    """Get account service wired to the referral core."""
    return AccountService(user_repository, invite_repository, referral_service)


async def get_account_controller(
    account_service: AccountService = Depends(get_account_service)
) -> AccountController:
    """Get account controller."""
    return AccountController(account_service)
