"""
SQLAlchemy ORM models for database tables
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Boolean, Text, JSON, Index, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import uuid

Base = declarative_base()


class UserModel(Base):
    """SQLAlchemy ORM model for users table"""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(320), nullable=False)
    # External auth identifier; wallet addresses are stored here as well
    dynamic_id = Column(String(255), nullable=True)
    twitter_username = Column(String(255), nullable=True)

    firstname = Column(String(255), nullable=True)
    lastname = Column(String(255), nullable=True)
    name = Column(String(511), nullable=True)
    primary_city = Column(String(255), nullable=True)
    secondary_cities = Column(JSON, nullable=False, default=list)
    roles = Column(JSON, nullable=False, default=list)
    bio = Column(Text, nullable=True)
    short_bio = Column(String(500), nullable=True)
    profile_image = Column(String(2048), nullable=True)

    onboarding_completed = Column(Boolean, default=False, nullable=False)
    onboarding_step = Column(Integer, default=1, nullable=False)
    status = Column(String(20), default='ACTIVE', nullable=False)

    points = Column(Integer, default=0, nullable=False)
    winwin_balance = Column(Integer, default=0, nullable=False)
    goodwill_points = Column(Integer, default=0, nullable=False)
    collab_points = Column(Integer, default=0, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    __table_args__ = (
        Index('idx_users_email', 'email', unique=True),
        Index('idx_users_dynamic_id', 'dynamic_id'),
    )

    def __repr__(self):
        return f"<User(email='{self.email}', points={self.points}, winwin_balance={self.winwin_balance})>"


class InviteModel(Base):
    """SQLAlchemy ORM model for invites table (one row per referral edge)"""

    __tablename__ = "invites"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    # No foreign keys: edges are immutable and outlive deleted users
    inviter_id = Column(UUID(as_uuid=True), nullable=False)
    invited_id = Column(UUID(as_uuid=True), nullable=False)
    created_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        default=lambda: datetime.now(timezone.utc),
        nullable=False
    )

    __table_args__ = (
        UniqueConstraint('inviter_id', 'invited_id', name='uq_invites_inviter_invited'),
        Index('idx_invites_inviter', 'inviter_id'),
        Index('idx_invites_invited', 'invited_id'),
    )

    def __repr__(self):
        return f"<Invite(inviter_id='{self.inviter_id}', invited_id='{self.invited_id}')>"
