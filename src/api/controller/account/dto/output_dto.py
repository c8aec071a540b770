"""
Output DTOs for account and referral API endpoints.
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID

from src.core.service.referral.models import ReferralResult, RewardCredit


class ReferralResponseDto(BaseModel):
    """DTO for the outcome of a referral attempt."""

    success: bool = Field(..., description="False only when the referral failed before being recorded")
    outcome: str = Field(..., description="attributed, not_found, duplicate, self_referral, cycle or failed")
    message: Optional[str] = Field(None, description="Human readable status")
    error: Optional[str] = Field(None, description="Generic error message on failure")
    credits: List[RewardCredit] = Field(default_factory=list, description="Rewards issued per level")

    @classmethod
    def from_result(cls, result: ReferralResult) -> "ReferralResponseDto":
        messages = {
            "attributed": "Referral processed",
            "not_found": "Referrer not found",
            "duplicate": "Referral already processed",
            "self_referral": "Self-referral ignored",
            "cycle": "Referral ignored",
        }
        return cls(
            success=result.success,
            outcome=result.outcome,
            message=messages.get(result.outcome),
            error=result.error,
            credits=result.credits
        )


class SignupResponseDto(BaseModel):
    """DTO for registration response."""

    success: bool = Field(True, description="Registration status")
    userId: UUID = Field(..., description="Id of the created or updated user")
    referral: Optional[ReferralResponseDto] = Field(None, description="Present when a referral token was sent")
