"""Account flows: registration, onboarding and the referral trigger points."""

from typing import Optional, Tuple

from src.core.exceptions.base import AccountNotFoundError, OnboardingIncompleteError
from src.core.logger.logger import get_logger
from src.core.service.account.models import InvitedUser, ProfileData, ReferralStats, User
from src.core.service.account.stores import AccountStore
from src.core.service.referral.models import ReferralResult
from src.core.service.referral.referral_service import ReferralService
from src.core.service.referral.stores import InviteStore

logger = get_logger(__name__)


def normalize_email(email: Optional[str]) -> str:
    """Trim the email and reject blank values."""
    email = (email or "").strip()
    if not email:
        raise ValueError("Email is required")
    return email


class AccountService:
    """Service for registration, profile and onboarding operations."""

    def __init__(
        self,
        account_store: AccountStore,
        invite_store: InviteStore,
        referral_service: Optional[ReferralService] = None
    ):
        self.account_store = account_store
        self.invite_store = invite_store
        self.referral_service = referral_service or ReferralService(account_store, invite_store)

    async def register(
        self,
        email: str,
        referral_token: Optional[str] = None,
        dynamic_id: Optional[str] = None
    ) -> Tuple[User, Optional[ReferralResult]]:
        """
        Create or update the user, then attribute the referral if a token came along.

        Returns:
            (user, referral result or None when no token was supplied)
        """
        email = normalize_email(email)
        user = await self.account_store.upsert_registration(email, dynamic_id or None)

        if not referral_token or not referral_token.strip():
            logger.debug("No referral token supplied at registration", extra={"user_id": str(user.id)})
            return user, None

        result = await self.referral_service.process_referral(user, referral_token)
        logger.info(
            "Registration referral processed",
            extra={"user_id": str(user.id), "outcome": result.outcome, "referral_success": result.success}
        )
        return user, result

    async def complete_signup_referral(self, email: str, referral_token: str) -> ReferralResult:
        """
        Attribute a referral once the user has finished onboarding.

        Raises:
            ValueError: email or token missing
            AccountNotFoundError: no user with this email
            OnboardingIncompleteError: onboarding not finished yet
        """
        email = normalize_email(email)
        if not referral_token or not referral_token.strip():
            raise ValueError("ReferralId is required")

        user = await self.account_store.get_by_email(email)
        if user is None:
            raise AccountNotFoundError(email)
        if not user.onboarding_completed:
            raise OnboardingIncompleteError(email)

        result = await self.referral_service.process_referral(user, referral_token)
        logger.info(
            "Onboarding referral processed",
            extra={"user_id": str(user.id), "outcome": result.outcome, "referral_success": result.success}
        )
        return result

    async def get_profile(self, email: str) -> User:
        email = normalize_email(email)
        user = await self.account_store.get_by_email(email)
        if user is None:
            raise AccountNotFoundError(email)
        return user

    async def save_profile(self, email: str, profile: ProfileData) -> User:
        """Upsert the profile; onboarding counts as done once the essential fields are present."""
        email = normalize_email(email)
        return await self.account_store.save_profile(email, profile, profile.is_onboarding_complete())

    async def complete_onboarding(self, email: str, profile: ProfileData) -> User:
        email = normalize_email(email)
        user = await self.account_store.complete_onboarding(email, profile)
        if user is None:
            raise AccountNotFoundError(email)
        return user

    async def get_referral_stats(self, email: str) -> ReferralStats:
        user = await self.get_profile(email)

        invites = await self.invite_store.list_invited_by(user.id)
        invited_users = {
            u.id: u for u in await self.account_store.get_by_ids([i.invited_id for i in invites])
        }

        invited = [
            InvitedUser(
                id=invite.invited_id,
                email=invited_users[invite.invited_id].email,
                name=invited_users[invite.invited_id].name,
                joined_at=invite.created_at
            )
            for invite in invites
            if invite.invited_id in invited_users
        ]

        return ReferralStats(
            user_id=user.id,
            invite_count=len(invites),
            invited=invited,
            points=user.points,
            winwin_balance=user.winwin_balance
        )
