"""
Account entities shared by the referral core and the profile endpoints
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class User(BaseModel):
    """Platform member as seen by the services"""
    id: UUID
    email: str
    dynamic_id: Optional[str] = None
    twitter_username: Optional[str] = None

    firstname: Optional[str] = None
    lastname: Optional[str] = None
    name: Optional[str] = None
    primary_city: Optional[str] = None
    secondary_cities: List[str] = Field(default_factory=list)
    roles: List[str] = Field(default_factory=list)
    bio: Optional[str] = None
    short_bio: Optional[str] = None
    profile_image: Optional[str] = None

    onboarding_completed: bool = False
    onboarding_step: int = 1
    status: str = "ACTIVE"

    points: int = 0
    winwin_balance: int = 0
    goodwill_points: int = 0
    collab_points: int = 0

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProfileData(BaseModel):
    """Editable profile fields; unset fields are left untouched"""
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    primary_city: Optional[str] = None
    secondary_cities: Optional[List[str]] = None
    roles: Optional[List[str]] = None
    bio: Optional[str] = None
    short_bio: Optional[str] = None
    profile_image: Optional[str] = None
    onboarding_step: Optional[int] = Field(default=None, ge=1)

    def is_onboarding_complete(self) -> bool:
        """Essential fields required before onboarding counts as completed"""
        return bool(self.firstname and self.lastname and self.primary_city and self.roles)


class InvitedUser(BaseModel):
    """Direct referral shown on the referrals dashboard"""
    id: UUID
    email: str
    name: Optional[str] = None
    joined_at: datetime


class ReferralStats(BaseModel):
    """Referral summary for one user"""
    user_id: UUID
    invite_count: int = 0
    invited: List[InvitedUser] = Field(default_factory=list)
    points: int = 0
    winwin_balance: int = 0
