"""Models for the referral core."""

from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class Invite(BaseModel):
    """A single "inviter referred invited" fact."""
    id: Optional[UUID] = None
    inviter_id: UUID
    invited_id: UUID
    created_at: Optional[datetime] = None


class ReferralOutcome(str, Enum):
    """How a referral attempt ended."""
    ATTRIBUTED = "attributed"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"
    SELF_REFERRAL = "self_referral"
    CYCLE = "cycle"
    FAILED = "failed"


class RewardCredit(BaseModel):
    """Reward issued (or skipped) for one ancestor level."""
    level: int = Field(..., ge=1)
    user_id: UUID
    amount: int
    applied: bool  # False when the ancestor record no longer exists


class ReferralResult(BaseModel):
    """Outcome of a referral attempt; success covers every no-op outcome."""
    success: bool
    outcome: ReferralOutcome
    error: Optional[str] = None
    referrer_id: Optional[UUID] = None
    credits: List[RewardCredit] = Field(default_factory=list)

    class Config:
        use_enum_values = True
