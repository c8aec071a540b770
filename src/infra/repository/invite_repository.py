"""
Invite (referral edge) repository using SQLAlchemy ORM
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from src.core.exceptions.base import StoreError
from src.core.service.referral.models import Invite
from src.core.service.referral.stores import InviteStore
from src.infra.models import InviteModel
from src.core.logger.logger import get_logger

logger = get_logger(__name__)


class InviteRepository(InviteStore):
    """Repository for referral edges"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _model_to_entity(self, model: InviteModel) -> Invite:
        return Invite(
            id=model.id,
            inviter_id=model.inviter_id,
            invited_id=model.invited_id,
            created_at=model.created_at
        )

    async def _fail(self, operation: str, error: SQLAlchemyError, **context) -> StoreError:
        await self.session.rollback()
        logger.error(
            f"Invite repository operation failed: {operation}",
            extra={**context, "error": str(error)}
        )
        return StoreError(operation, str(error), context)

    async def create_if_absent(self, inviter_id: UUID, invited_id: UUID) -> bool:
        """
        Insert the edge, relying on the (inviter_id, invited_id) unique constraint

        Args:
            inviter_id: Referring user
            invited_id: Referred user

        Returns:
            True if the edge was created, False if it already existed
        """
        try:
            stmt = (
                insert(InviteModel)
                .values(inviter_id=inviter_id, invited_id=invited_id)
                .on_conflict_do_nothing(constraint="uq_invites_inviter_invited")
                .returning(InviteModel.id)
            )
            result = await self.session.execute(stmt)
            created_id = result.scalar_one_or_none()
            await self.session.commit()
        except SQLAlchemyError as e:
            raise await self._fail(
                "create_if_absent", e, inviter_id=str(inviter_id), invited_id=str(invited_id)
            )

        if created_id is not None:
            logger.debug(
                "Invite edge created",
                extra={"invite_id": str(created_id), "inviter_id": str(inviter_id), "invited_id": str(invited_id)}
            )
        return created_id is not None

    async def find_by_pair(self, inviter_id: UUID, invited_id: UUID) -> Optional[Invite]:
        try:
            stmt = select(InviteModel).where(
                InviteModel.inviter_id == inviter_id,
                InviteModel.invited_id == invited_id
            )
            result = await self.session.execute(stmt)
            model = result.scalar_one_or_none()
            return self._model_to_entity(model) if model else None
        except SQLAlchemyError as e:
            raise await self._fail(
                "find_by_pair", e, inviter_id=str(inviter_id), invited_id=str(invited_id)
            )

    async def find_inviter_of(self, invited_id: UUID) -> Optional[UUID]:
        try:
            stmt = (
                select(InviteModel.inviter_id)
                .where(InviteModel.invited_id == invited_id)
                .order_by(InviteModel.created_at, InviteModel.id)
                .limit(1)
            )
            result = await self.session.execute(stmt)
            return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise await self._fail("find_inviter_of", e, invited_id=str(invited_id))

    async def list_invited_by(self, inviter_id: UUID) -> List[Invite]:
        try:
            stmt = (
                select(InviteModel)
                .where(InviteModel.inviter_id == inviter_id)
                .order_by(InviteModel.created_at.desc())
            )
            result = await self.session.execute(stmt)
            return [self._model_to_entity(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            raise await self._fail("list_invited_by", e, inviter_id=str(inviter_id))
