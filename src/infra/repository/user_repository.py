"""
User repository using SQLAlchemy ORM
"""

from datetime import datetime, timezone
from typing import List, Optional, Sequence
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from src.core.exceptions.base import StoreError
from src.core.service.account.models import ProfileData, User
from src.core.service.account.stores import AccountStore
from src.infra.models import UserModel
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class UserRepository(AccountStore):
    """Repository for user database operations using SQLAlchemy ORM"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _model_to_entity(self, model: UserModel) -> User:
        """Convert SQLAlchemy model to Pydantic entity"""
        return User(
            id=model.id,
            email=model.email,
            dynamic_id=model.dynamic_id,
            twitter_username=model.twitter_username,
            firstname=model.firstname,
            lastname=model.lastname,
            name=model.name,
            primary_city=model.primary_city,
            secondary_cities=model.secondary_cities or [],
            roles=model.roles or [],
            bio=model.bio,
            short_bio=model.short_bio,
            profile_image=model.profile_image,
            onboarding_completed=model.onboarding_completed,
            onboarding_step=model.onboarding_step,
            status=model.status,
            points=model.points,
            winwin_balance=model.winwin_balance,
            goodwill_points=model.goodwill_points,
            collab_points=model.collab_points,
            created_at=model.created_at,
            updated_at=model.updated_at
        )

    async def _fail(self, operation: str, error: SQLAlchemyError, **context) -> StoreError:
        await self.session.rollback()
        logger.error(
            f"User repository operation failed: {operation}",
            extra={**context, "error": str(error)}
        )
        return StoreError(operation, str(error), context)

    async def _get_model_by_email(self, email: str) -> Optional[UserModel]:
        stmt = select(UserModel).where(UserModel.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        try:
            model = await self.session.get(UserModel, user_id)
            return self._model_to_entity(model) if model else None
        except SQLAlchemyError as e:
            raise await self._fail("get_by_id", e, user_id=str(user_id))

    async def get_by_external_id(self, external_id: str) -> Optional[User]:
        try:
            stmt = (
                select(UserModel)
                .where(UserModel.dynamic_id == external_id)
                .order_by(UserModel.created_at)
                .limit(1)
            )
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()
            return self._model_to_entity(model) if model else None
        except SQLAlchemyError as e:
            raise await self._fail("get_by_external_id", e, external_id=external_id)

    async def get_by_email(self, email: str) -> Optional[User]:
        try:
            model = await self._get_model_by_email(email)
            return self._model_to_entity(model) if model else None
        except SQLAlchemyError as e:
            raise await self._fail("get_by_email", e, email=email)

    async def get_by_ids(self, user_ids: Sequence[UUID]) -> List[User]:
        if not user_ids:
            return []
        try:
            stmt = select(UserModel).where(UserModel.id.in_(list(user_ids)))
            result = await self.session.execute(stmt)
            return [self._model_to_entity(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise await self._fail("get_by_ids", e, count=len(user_ids))

    async def increment_rewards(self, user_id: UUID, amount: int) -> Optional[User]:
        """
        Add ``amount`` to points and winwin balance in a single UPDATE.

        Args:
            user_id: User to credit
            amount: Reward amount

        Returns:
            Updated user, or None if the user no longer exists
        """
        try:
            stmt = (
                update(UserModel)
                .where(UserModel.id == user_id)
                .values(
                    points=UserModel.points + amount,
                    winwin_balance=UserModel.winwin_balance + amount,
                    updated_at=datetime.now(timezone.utc)
                )
                .returning(UserModel)
                .execution_options(populate_existing=True, synchronize_session=False)
            )
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()
            user = self._model_to_entity(model) if model else None
            await self.session.commit()
            return user
        except SQLAlchemyError as e:
            raise await self._fail("increment_rewards", e, user_id=str(user_id), amount=amount)

    async def upsert_registration(self, email: str, dynamic_id: Optional[str] = None) -> User:
        """
        Get existing user or create new one, keyed by email

        Args:
            email: User email
            dynamic_id: External auth identifier to store, if any

        Returns:
            User entity
        """
        try:
            model = await self._get_model_by_email(email)

            if model is None:
                model = UserModel(email=email, dynamic_id=dynamic_id, secondary_cities=[], roles=[])
                self.session.add(model)
                await self.session.commit()
                await self.session.refresh(model)
                logger.info(
                    "New user created in database",
                    extra={"email": email, "user_id": str(model.id), "dynamic_id": dynamic_id}
                )
            elif dynamic_id and model.dynamic_id != dynamic_id:
                model.dynamic_id = dynamic_id
                await self.session.commit()
                await self.session.refresh(model)
                logger.info(
                    "User dynamic id updated",
                    extra={"email": email, "user_id": str(model.id), "dynamic_id": dynamic_id}
                )

            return self._model_to_entity(model)

        except IntegrityError as e:
            await self.session.rollback()
            logger.warning(
                f"User already exists (race condition): {e}",
                extra={"email": email}
            )
            try:
                model = await self._get_model_by_email(email)
            except SQLAlchemyError as lookup_error:
                raise await self._fail("upsert_registration", lookup_error, email=email)
            if model is None:
                raise StoreError("upsert_registration", "User vanished after unique violation", {"email": email})
            return self._model_to_entity(model)

        except SQLAlchemyError as e:
            raise await self._fail("upsert_registration", e, email=email)

    def _apply_profile(self, model: UserModel, profile: ProfileData) -> None:
        for field, value in profile.model_dump(exclude_unset=True).items():
            setattr(model, field, value)
        if model.firstname and model.lastname:
            model.name = f"{model.firstname} {model.lastname}"

    async def save_profile(self, email: str, profile: ProfileData, onboarding_completed: bool) -> User:
        try:
            model = await self._get_model_by_email(email)
            if model is None:
                model = UserModel(email=email, secondary_cities=[], roles=[])
                self.session.add(model)

            self._apply_profile(model, profile)
            model.onboarding_completed = onboarding_completed
            await self.session.commit()
            await self.session.refresh(model)

            logger.info(
                "User profile saved",
                extra={"email": email, "user_id": str(model.id), "onboarding_completed": onboarding_completed}
            )
            return self._model_to_entity(model)
        except SQLAlchemyError as e:
            raise await self._fail("save_profile", e, email=email)

    async def complete_onboarding(self, email: str, profile: ProfileData) -> Optional[User]:
        try:
            model = await self._get_model_by_email(email)
            if model is None:
                return None

            self._apply_profile(model, profile)
            model.onboarding_completed = True
            await self.session.commit()
            await self.session.refresh(model)

            logger.info("Onboarding completed", extra={"email": email, "user_id": str(model.id)})
            return self._model_to_entity(model)
        except SQLAlchemyError as e:
            raise await self._fail("complete_onboarding", e, email=email)
