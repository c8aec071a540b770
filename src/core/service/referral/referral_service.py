"""Referral ledger and tiered reward propagation."""

from typing import List, Optional, Sequence
from uuid import UUID

from src.core.exceptions.base import StoreError
from src.core.logger.logger import get_logger
from src.core.service.account.models import User
from src.core.service.referral.identity_resolver import IdentityResolver, mask_token
from src.core.service.referral.models import ReferralOutcome, ReferralResult, RewardCredit
from src.core.service.referral.stores import InviteStore, UserStore
from src.infra.config.settings import get_settings

logger = get_logger(__name__)

MAX_REWARD_LEVELS = 3
GENERIC_FAILURE_MESSAGE = "Referral could not be processed"


class ReferralService:
    """
    Attributes a referral exactly once and credits up to three ancestors.

    Both registration and onboarding completion go through ``process_referral``
    so they attribute identically for the same (new user, token) pair.
    """

    def __init__(
        self,
        user_store: UserStore,
        invite_store: InviteStore,
        level_rewards: Optional[Sequence[int]] = None
    ):
        if level_rewards is None:
            level_rewards = get_settings().REFERRAL_LEVEL_REWARDS
        if not 1 <= len(level_rewards) <= MAX_REWARD_LEVELS:
            raise ValueError(f"Referral rewards must cover 1 to {MAX_REWARD_LEVELS} levels")

        self.user_store = user_store
        self.invite_store = invite_store
        self.level_rewards = tuple(level_rewards)
        self.resolver = IdentityResolver(user_store)

    async def process_referral(self, new_user: User, referral_token: Optional[str]) -> ReferralResult:
        """
        Resolve the token and attribute the referral to whoever it names.

        Args:
            new_user: The user being referred
            referral_token: Raw token (user id, external id, wallet address or email)

        Returns:
            ReferralResult; success is False only when a store failure
            happened before the referral edge was recorded
        """
        try:
            referrer = await self.resolver.resolve(referral_token)
        except StoreError as e:
            logger.error(
                "Referrer lookup failed",
                extra={"new_user_id": str(new_user.id), "token": mask_token(referral_token), "error": str(e)}
            )
            return self._failed()

        if referrer is None:
            return ReferralResult(success=True, outcome=ReferralOutcome.NOT_FOUND)

        return await self.attribute(new_user, referrer)

    async def attribute(self, new_user: User, referrer: User) -> ReferralResult:
        """Record the referrer -> new_user edge once, then propagate rewards."""
        log_context = {"new_user_id": str(new_user.id), "referrer_id": str(referrer.id)}

        if referrer.id == new_user.id:
            logger.info("Ignoring self-referral", extra=log_context)
            return ReferralResult(
                success=True, outcome=ReferralOutcome.SELF_REFERRAL, referrer_id=referrer.id
            )

        try:
            if await self._would_close_cycle(new_user.id, referrer.id):
                logger.warning("Ignoring referral that would close a cycle", extra=log_context)
                return ReferralResult(
                    success=True, outcome=ReferralOutcome.CYCLE, referrer_id=referrer.id
                )

            created = await self.invite_store.create_if_absent(referrer.id, new_user.id)
        except StoreError as e:
            logger.error("Failed to record referral", extra={**log_context, "error": str(e)})
            return self._failed(referrer.id)

        if not created:
            logger.info("Referral already processed", extra=log_context)
            return ReferralResult(
                success=True, outcome=ReferralOutcome.DUPLICATE, referrer_id=referrer.id
            )

        logger.info("Referral recorded", extra=log_context)
        credits = await self._propagate(referrer.id)

        return ReferralResult(
            success=True,
            outcome=ReferralOutcome.ATTRIBUTED,
            referrer_id=referrer.id,
            credits=credits
        )

    async def _would_close_cycle(self, new_user_id: UUID, referrer_id: UUID) -> bool:
        # Only ancestors inside the reward window could be credited for their own referral
        ancestor = referrer_id
        seen = {referrer_id}
        for _ in range(len(self.level_rewards) - 1):
            ancestor = await self.invite_store.find_inviter_of(ancestor)
            if ancestor is None or ancestor in seen:
                return False
            if ancestor == new_user_id:
                return True
            seen.add(ancestor)
        return False

    async def _propagate(self, referrer_id: UUID) -> List[RewardCredit]:
        """
        Walk up from the direct referrer, crediting each level's reward.

        Missing ancestor records are skipped; a store failure stops the walk but
        keeps whatever was already credited.
        """
        credits: List[RewardCredit] = []
        ancestor: Optional[UUID] = referrer_id

        try:
            for level, amount in enumerate(self.level_rewards, start=1):
                if level > 1:
                    ancestor = await self.invite_store.find_inviter_of(ancestor)
                    if ancestor is None:
                        break

                updated = await self.user_store.increment_rewards(ancestor, amount)
                credits.append(
                    RewardCredit(level=level, user_id=ancestor, amount=amount, applied=updated is not None)
                )

                if updated is None:
                    logger.warning(
                        "Skipping reward for missing ancestor",
                        extra={"reward_level": level, "user_id": str(ancestor), "amount": amount}
                    )
                else:
                    logger.info(
                        "Referral reward credited",
                        extra={
                            "reward_level": level,
                            "user_id": str(ancestor),
                            "amount": amount,
                            "points": updated.points,
                            "winwin_balance": updated.winwin_balance
                        }
                    )
        except StoreError as e:
            logger.error(
                "Reward propagation halted",
                extra={
                    "referrer_id": str(referrer_id),
                    "levels_processed": len(credits),
                    "error": str(e)
                }
            )

        return credits

    @staticmethod
    def _failed(referrer_id: Optional[UUID] = None) -> ReferralResult:
        return ReferralResult(
            success=False,
            outcome=ReferralOutcome.FAILED,
            error=GENERIC_FAILURE_MESSAGE,
            referrer_id=referrer_id
        )
