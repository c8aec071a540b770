"""
Request DTOs for API endpoints.
"""

from pydantic import AfterValidator, BaseModel, Field, field_validator
from typing import Annotated, List, Optional

from src.core.service.account.models import ProfileData


def _require_email(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Email is required")
    return v.strip()


RequiredEmail = Annotated[str, AfterValidator(_require_email)]


class SignupRequestDTO(BaseModel):
    """Request model for registration (optionally carrying a referral token)."""

    email: RequiredEmail = Field(..., max_length=320, description="Email of the registering user")
    referralId: Optional[str] = Field(
        None,
        max_length=320,
        description="Referral token: user id, external auth id, wallet address or email"
    )
    dynamicId: Optional[str] = Field(None, max_length=255, description="External auth identifier")


class SignupCompleteRequestDTO(BaseModel):
    """Request model for referral attribution after onboarding."""

    email: RequiredEmail = Field(..., max_length=320, description="Email of the onboarded user")
    referralId: str = Field(..., max_length=320, description="Referral token persisted by the client")

    @field_validator("referralId")
    @classmethod
    def validate_referral_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("ReferralId is required")
        return v.strip()


class ProfileRequestDTO(BaseModel):
    """Request model for profile upsert and onboarding completion."""

    email: RequiredEmail = Field(..., max_length=320)
    firstname: Optional[str] = Field(None, max_length=255)
    lastname: Optional[str] = Field(None, max_length=255)
    primary_city: Optional[str] = Field(None, max_length=255)
    secondary_city: Optional[List[str]] = None
    roles: Optional[List[str]] = None
    bio: Optional[str] = None
    short_bio: Optional[str] = Field(None, max_length=500)
    profile_image: Optional[str] = Field(None, max_length=2048)
    onboarding_step: Optional[int] = Field(None, ge=1)

    def to_profile(self) -> ProfileData:
        """Only the fields the client actually sent are carried over."""
        data = self.model_dump(exclude_unset=True, exclude={"email"})
        if "secondary_city" in data:
            data["secondary_cities"] = data.pop("secondary_city")
        return ProfileData(**data)
