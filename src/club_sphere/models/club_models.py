"""
# Club Models

Request models and status enums for users, clubs and memberships.

Stored documents keep the camelCase field names the web client sends
(`clubName`, `managerEmail`, `membershipFee`, ...), so these models use the same
names rather than snake_case aliases.

## Lifecycles

- **User**: created with `role="member"`; only an admin can change a role.
- **Club**: created with `status="pending"`; moved to `approved`/`rejected` through the
  status patch.
- **Membership**: never created directly, only by a confirmed checkout
  (see `club_sphere.services.checkout_service`).
"""

from enum import Enum
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class UserRole(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"


class ClubStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class MembershipStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


PRIVILEGED_ROLE = UserRole.ADMIN


class CreateUserRequest(BaseModel):
    """
    Body of `POST /users`.

    Any additional profile fields the client sends (e.g. `photoURL`) are stored as-is.
    `role` and `createdAt` are always assigned by the server.
    """

    model_config = ConfigDict(extra="allow")

    email: str = Field(..., min_length=3, description="Unique user email")
    name: Optional[str] = Field(None, description="Display name")
    photoURL: Optional[str] = Field(None, description="Avatar URL")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("email must contain '@'")
        return v


class UpdateRoleRequest(BaseModel):
    role: UserRole = Field(..., description="New role")


class CreateClubRequest(BaseModel):
    """Body of `POST /clubs`. `status` is forced to `pending` regardless of input."""

    model_config = ConfigDict(extra="allow")

    clubName: str = Field(..., min_length=1, description="Club name")
    description: Optional[str] = Field(None, description="Short description")
    category: Optional[str] = Field(None, description="Club category")
    location: Optional[str] = Field(None, description="Where the club meets")
    bannerImage: Optional[str] = Field(None, description="Banner image URL")
    membershipFee: float = Field(
        0, ge=0, allow_inf_nan=False, description="Membership fee in whole currency units"
    )
    managerEmail: str = Field(..., description="Email of the managing user")


class UpdateClubRequest(BaseModel):
    """Body of `PATCH /clubs/{id}`. Only fields present in the body are written."""

    clubName: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    location: Optional[str] = None
    bannerImage: Optional[str] = None
    membershipFee: Optional[float] = Field(None, ge=0, allow_inf_nan=False)


class UpdateClubStatusRequest(BaseModel):
    status: ClubStatus = Field(..., description="New club status")


class CheckoutSessionRequest(BaseModel):
    """
    Body of `POST /payment-checkout-session`.

    The web client posts the club document it is showing, so the club id arrives as
    `_id`; `clubId` is accepted as well. `clubName` and `membershipFee` are accepted
    for compatibility but ignored: the charge is computed from the stored club.
    """

    clubId: str = Field(..., validation_alias=AliasChoices("clubId", "_id"), description="Club being joined")
    clubName: Optional[str] = Field(None, description="Ignored, the stored club name is used")
    membershipFee: Optional[float] = Field(
        None, ge=0, allow_inf_nan=False, description="Ignored, the stored club fee is charged"
    )
    email: str = Field(..., min_length=1, description="Buyer email")
