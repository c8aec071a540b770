"""Repository tests against a mocked AsyncSession."""

import uuid
from datetime import datetime, timezone

import pytest
from unittest.mock import AsyncMock, MagicMock
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import IntegrityError, OperationalError

from src.core.exceptions.base import StoreError
from src.core.service.account.models import ProfileData
from src.infra.models import InviteModel, UserModel
from src.infra.repository.invite_repository import InviteRepository
from src.infra.repository.user_repository import UserRepository


def make_user_model(email="alice@winwin.test", **fields) -> UserModel:
    defaults = dict(
        id=uuid.uuid4(),
        email=email,
        secondary_cities=[],
        roles=[],
        onboarding_completed=False,
        onboarding_step=1,
        status="ACTIVE",
        points=0,
        winwin_balance=0,
        goodwill_points=0,
        collab_points=0,
        created_at=datetime.now(timezone.utc),
    )
    defaults.update(fields)
    return UserModel(**defaults)


def result_with(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    result.scalars.return_value.all.return_value = value if isinstance(value, list) else []
    return result


@pytest.fixture
def session():
    session = AsyncMock()
    session.add = MagicMock()
    return session


def db_error():
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


@pytest.mark.asyncio
class TestInviteRepository:
    """Edge writes and ancestor lookups."""

    async def test_create_if_absent_created(self, session):
        session.execute.return_value = result_with(uuid.uuid4())
        repo = InviteRepository(session)

        assert await repo.create_if_absent(uuid.uuid4(), uuid.uuid4()) is True
        session.commit.assert_awaited_once()

    async def test_create_if_absent_existing(self, session):
        session.execute.return_value = result_with(None)
        repo = InviteRepository(session)

        assert await repo.create_if_absent(uuid.uuid4(), uuid.uuid4()) is False

    async def test_create_if_absent_uses_on_conflict(self, session):
        session.execute.return_value = result_with(None)
        repo = InviteRepository(session)

        await repo.create_if_absent(uuid.uuid4(), uuid.uuid4())

        stmt = session.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "ON CONFLICT ON CONSTRAINT uq_invites_inviter_invited DO NOTHING" in sql
        assert "RETURNING" in sql

    async def test_create_if_absent_store_error(self, session):
        session.execute.side_effect = db_error()
        repo = InviteRepository(session)

        with pytest.raises(StoreError) as exc_info:
            await repo.create_if_absent(uuid.uuid4(), uuid.uuid4())

        assert exc_info.value.operation == "create_if_absent"
        session.rollback.assert_awaited_once()

    async def test_find_inviter_of(self, session):
        inviter_id = uuid.uuid4()
        session.execute.return_value = result_with(inviter_id)
        repo = InviteRepository(session)

        assert await repo.find_inviter_of(uuid.uuid4()) == inviter_id

    async def test_list_invited_by(self, session):
        inviter_id = uuid.uuid4()
        models = [
            InviteModel(id=uuid.uuid4(), inviter_id=inviter_id, invited_id=uuid.uuid4(),
                        created_at=datetime.now(timezone.utc))
            for _ in range(2)
        ]
        session.execute.return_value = result_with(models)
        repo = InviteRepository(session)

        invites = await repo.list_invited_by(inviter_id)

        assert [i.invited_id for i in invites] == [m.invited_id for m in models]


@pytest.mark.asyncio
class TestUserRepository:
    """Lookups, atomic counters and registration upsert."""

    async def test_get_by_id_missing(self, session):
        session.get.return_value = None
        repo = UserRepository(session)

        assert await repo.get_by_id(uuid.uuid4()) is None

    async def test_get_by_email(self, session):
        model = make_user_model()
        session.execute.return_value = result_with(model)
        repo = UserRepository(session)

        user = await repo.get_by_email("alice@winwin.test")

        assert user.id == model.id
        assert user.secondary_cities == []

    async def test_increment_rewards(self, session):
        model = make_user_model(points=120, winwin_balance=120)
        session.execute.return_value = result_with(model)
        repo = UserRepository(session)

        user = await repo.increment_rewards(model.id, 100)

        assert user.points == 120
        session.commit.assert_awaited_once()
        sql = str(session.execute.await_args.args[0].compile(dialect=postgresql.dialect()))
        assert "users.points +" in sql
        assert "RETURNING" in sql

    async def test_increment_rewards_missing_user(self, session):
        session.execute.return_value = result_with(None)
        repo = UserRepository(session)

        assert await repo.increment_rewards(uuid.uuid4(), 100) is None

    async def test_increment_rewards_store_error(self, session):
        session.execute.side_effect = db_error()
        repo = UserRepository(session)

        with pytest.raises(StoreError):
            await repo.increment_rewards(uuid.uuid4(), 100)
        session.rollback.assert_awaited_once()

    async def test_upsert_registration_creates(self, session):
        session.execute.return_value = result_with(None)

        async def assign_defaults(model):
            model.id = uuid.uuid4()
            model.onboarding_completed = False
            model.onboarding_step = 1
            model.status = "ACTIVE"
            model.points = model.winwin_balance = model.goodwill_points = model.collab_points = 0

        session.refresh.side_effect = assign_defaults
        repo = UserRepository(session)

        user = await repo.upsert_registration("bob@winwin.test", "dyn-1")

        assert user.email == "bob@winwin.test"
        assert user.dynamic_id == "dyn-1"
        session.add.assert_called_once()
        session.commit.assert_awaited_once()

    async def test_upsert_registration_updates_dynamic_id(self, session):
        model = make_user_model(dynamic_id="old")
        session.execute.return_value = result_with(model)
        repo = UserRepository(session)

        user = await repo.upsert_registration("alice@winwin.test", "new")

        assert user.dynamic_id == "new"
        session.add.assert_not_called()

    async def test_upsert_registration_race(self, session):
        """A concurrent insert of the same email wins; the winner is re-read."""
        winner = make_user_model(email="bob@winwin.test")
        session.execute.side_effect = [result_with(None), result_with(winner)]
        session.commit.side_effect = IntegrityError("INSERT", {}, Exception("duplicate key"))
        repo = UserRepository(session)

        user = await repo.upsert_registration("bob@winwin.test")

        assert user.id == winner.id
        session.rollback.assert_awaited_once()

    async def test_save_profile_sets_name(self, session):
        model = make_user_model(firstname=None, lastname=None)
        session.execute.return_value = result_with(model)
        repo = UserRepository(session)

        user = await repo.save_profile(
            "alice@winwin.test",
            ProfileData(firstname="Alice", lastname="Smith"),
            onboarding_completed=False
        )

        assert user.name == "Alice Smith"
        assert user.onboarding_completed is False

    async def test_complete_onboarding_unknown(self, session):
        session.execute.return_value = result_with(None)
        repo = UserRepository(session)

        assert await repo.complete_onboarding("ghost@winwin.test", ProfileData()) is None
        session.commit.assert_not_awaited()


def test_invites_schema_has_no_user_foreign_keys():
    """Edges outlive deleted users, so the upline walk continues past a missing ancestor."""
    from sqlalchemy.schema import CreateTable

    ddl = str(CreateTable(InviteModel.__table__).compile(dialect=postgresql.dialect()))

    assert InviteModel.__table__.foreign_keys == set()
    assert "REFERENCES" not in ddl
    assert "CASCADE" not in ddl
    assert "CONSTRAINT uq_invites_inviter_invited UNIQUE (inviter_id, invited_id)" in ddl


@pytest.mark.asyncio
class TestInviteRepositoryPairLookup:
    """find_by_pair maps the stored edge or reports a miss."""

    async def test_find_by_pair(self, session):
        inviter_id, invited_id = uuid.uuid4(), uuid.uuid4()
        model = InviteModel(id=uuid.uuid4(), inviter_id=inviter_id, invited_id=invited_id,
                            created_at=datetime.now(timezone.utc))
        session.execute.return_value = result_with(model)
        repo = InviteRepository(session)

        invite = await repo.find_by_pair(inviter_id, invited_id)

        assert invite.id == model.id
        assert (invite.inviter_id, invite.invited_id) == (inviter_id, invited_id)

    async def test_find_by_pair_missing(self, session):
        session.execute.return_value = result_with(None)
        repo = InviteRepository(session)

        assert await repo.find_by_pair(uuid.uuid4(), uuid.uuid4()) is None

    async def test_find_by_pair_store_error(self, session):
        session.execute.side_effect = db_error()
        repo = InviteRepository(session)

        with pytest.raises(StoreError) as exc_info:
            await repo.find_by_pair(uuid.uuid4(), uuid.uuid4())

        assert exc_info.value.operation == "find_by_pair"
        session.rollback.assert_awaited_once()
