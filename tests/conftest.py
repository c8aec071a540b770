"""
Shared fixtures: in-memory stores standing in for PostgreSQL.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from src.app import create_app
from src.core.dependencies import get_invite_repository, get_user_repository
from src.core.service.account.models import ProfileData, User
from src.core.service.account.stores import AccountStore
from src.core.service.referral.models import Invite
from src.core.service.referral.referral_service import ReferralService
from src.core.service.referral.stores import InviteStore
from src.infra.config.settings import Settings


class InMemoryAccountStore(AccountStore):
    """Dict backed user store; every read returns a copy like a real database would."""

    def __init__(self):
        self.users: Dict[UUID, User] = {}

    def add_user(self, email: str, dynamic_id: Optional[str] = None, **fields) -> User:
        user = User(
            id=fields.pop("id", None) or uuid.uuid4(),
            email=email,
            dynamic_id=dynamic_id,
            created_at=datetime.now(timezone.utc),
            **fields
        )
        self.users[user.id] = user
        return user.model_copy()

    def delete_user(self, user_id: UUID) -> None:
        del self.users[user_id]

    def counters(self, user_id: UUID) -> tuple:
        user = self.users[user_id]
        return user.points, user.winwin_balance

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        user = self.users.get(user_id)
        return user.model_copy() if user else None

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        for user in self.users.values():
            if user.dynamic_id == external_id:
                return user.model_copy()
        return None

    async def get_by_email(self, email: str) -> Optional[User]:
        for user in self.users.values():
            if user.email == email:
                return user.model_copy()
        return None

    async def get_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        return [self.users[i].model_copy() for i in user_ids if i in self.users]

    async def increment_rewards(self, user_id: UUID, amount: int) -> Optional[User]:
        user = self.users.get(user_id)
        if user is None:
            return None
        user.points += amount
        user.winwin_balance += amount
        return user.model_copy()

    async def upsert_registration(self, email: str, dynamic_id: Optional[str] = None) -> User:
        for user in self.users.values():
            if user.email == email:
                if dynamic_id:
                    user.dynamic_id = dynamic_id
                return user.model_copy()
        return self.add_user(email, dynamic_id=dynamic_id)

    async def save_profile(self, email: str, profile: ProfileData, onboarding_completed: bool) -> User:
        user = await self.get_by_email(email) or await self.upsert_registration(email)
        stored = self.users[user.id]
        for field, value in profile.model_dump(exclude_unset=True).items():
            setattr(stored, field, value)
        if stored.firstname and stored.lastname:
            stored.name = f"{stored.firstname} {stored.lastname}"
        stored.onboarding_completed = onboarding_completed
        return stored.model_copy()

    async def complete_onboarding(self, email: str, profile: ProfileData) -> Optional[User]:
        if await self.get_by_email(email) is None:
            return None
        return await self.save_profile(email, profile, True)


class InMemoryInviteStore(InviteStore):
    """List backed edge store enforcing the (inviter, invited) uniqueness."""

    def __init__(self):
        self.invites: List[Invite] = []
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def add_edge(self, inviter_id: UUID, invited_id: UUID) -> Invite:
        self._clock += timedelta(seconds=1)
        invite = Invite(id=uuid.uuid4(), inviter_id=inviter_id, invited_id=invited_id, created_at=self._clock)
        self.invites.append(invite)
        return invite

    def edges_between(self, inviter_id: UUID, invited_id: UUID) -> List[Invite]:
        return [i for i in self.invites if i.inviter_id == inviter_id and i.invited_id == invited_id]

    async def create_if_absent(self, inviter_id: UUID, invited_id: UUID) -> bool:
        if self.edges_between(inviter_id, invited_id):
            return False
        self.add_edge(inviter_id, invited_id)
        return True

    async def find_by_pair(self, inviter_id: UUID, invited_id: UUID) -> Optional[Invite]:
        edges = self.edges_between(inviter_id, invited_id)
        return edges[0] if edges else None

    async def find_inviter_of(self, invited_id: UUID) -> Optional[UUID]:
        for invite in sorted(self.invites, key=lambda i: i.created_at):
            if invite.invited_id == invited_id:
                return invite.inviter_id
        return None

    async def list_invited_by(self, inviter_id: UUID) -> List[Invite]:
        edges = [i for i in self.invites if i.inviter_id == inviter_id]
        return sorted(edges, key=lambda i: i.created_at, reverse=True)


@pytest.fixture
def account_store() -> InMemoryAccountStore:
    return InMemoryAccountStore()


@pytest.fixture
def invite_store() -> InMemoryInviteStore:
    return InMemoryInviteStore()


@pytest.fixture
def referral_service(account_store, invite_store) -> ReferralService:
    return ReferralService(account_store, invite_store, level_rewards=[100, 20, 10])


@pytest.fixture
def build_chain(account_store, invite_store):
    """
    Create users linked oldest first: build_chain("a", "b", "c") means a referred b, b referred c.
    Returns the users in the same order.
    """
    def _build(*names: str) -> List[User]:
        users = [account_store.add_user(f"{name}@winwin.test") for name in names]
        for inviter, invited in zip(users, users[1:]):
            invite_store.add_edge(inviter.id, invited.id)
        return users
    return _build


@pytest.fixture
def client(account_store, invite_store) -> TestClient:
    """Test client whose repositories are the in-memory stores (no database needed)"""
    app = create_app(settings=Settings(RATE_LIMIT_SIGNUP=1000, RATE_LIMIT_DEFAULT=1000))
    app.dependency_overrides[get_user_repository] = lambda: account_store
    app.dependency_overrides[get_invite_repository] = lambda: invite_store
    return TestClient(app)
