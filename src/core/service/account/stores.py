"""Storage interface for account operations around the referral core."""

from abc import abstractmethod
from typing import List, Optional, Sequence
from uuid import UUID

from src.core.service.account.models import ProfileData, User
from src.core.service.referral.stores import UserStore


class AccountStore(UserStore):
    """User store with the registration and profile writes used by the API"""

    @abstractmethod
    async def upsert_registration(self, email: str, dynamic_id: Optional[str] = None) -> User:
        """Create the user if absent; set ``dynamic_id`` when supplied."""
        pass

    @abstractmethod
    async def save_profile(self, email: str, profile: ProfileData, onboarding_completed: bool) -> User:
        """Upsert the profile fields of the user with this email."""
        pass

    @abstractmethod
    async def complete_onboarding(self, email: str, profile: ProfileData) -> Optional[User]:
        """Mark onboarding done for an existing user; None when the user is unknown."""
        pass

    @abstractmethod
    async def get_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        pass
