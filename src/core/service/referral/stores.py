"""
Storage interfaces consumed by the referral core.

The SQLAlchemy repositories in ``src.infra.repository`` implement these; the core
only ever talks to the abstract types so it can run against any backing store.
Implementations raise ``StoreError`` for technical failures and return ``None`` /
``False`` for domain misses.
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from uuid import UUID

from src.core.service.account.models import User
from src.core.service.referral.models import Invite


class UserStore(ABC):
    """User lookups and atomic reward counters"""

    @abstractmethod
    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        """Lookup by external auth identifier (UUID-shaped ids and wallet addresses)"""
        pass

    @abstractmethod
    async def get_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def increment_rewards(self, user_id: UUID, amount: int) -> Optional[User]:
        """
        Atomically add ``amount`` to both ``points`` and ``winwin_balance``.

        Returns:
            The updated user, or None when no such user exists
        """
        pass


class InviteStore(ABC):
    """Referral edges"""

    @abstractmethod
    async def create_if_absent(self, inviter_id: UUID, invited_id: UUID) -> bool:
        """
        Record the edge unless the (inviter, invited) pair already exists.

        Returns:
            True if a new edge was written, False if it already existed
        """
        pass

    @abstractmethod
    async def find_by_pair(self, inviter_id: UUID, invited_id: UUID) -> Optional[Invite]:
        pass

    @abstractmethod
    async def find_inviter_of(self, invited_id: UUID) -> Optional[UUID]:
        """Return who referred ``invited_id`` (earliest edge wins), if anyone"""
        pass

    @abstractmethod
    async def list_invited_by(self, inviter_id: UUID) -> List[Invite]:
        pass
