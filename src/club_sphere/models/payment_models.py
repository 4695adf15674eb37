"""
Payment Models.

Pydantic models for the membership checkout flow and the normalized view of a
hosted checkout session returned by the payment gateway.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PaymentType(str, Enum):
    MEMBERSHIP = "membership"


class PaymentStatus(str, Enum):
    PAID = "paid"


class SessionState(str, Enum):
    """Lifecycle of a hosted checkout session as seen by this service."""

    CREATED = "created"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class CheckoutSessionResponse(BaseModel):
    url: str = Field(..., description="Hosted checkout page to redirect the buyer to")
    sessionId: str = Field(..., description="Gateway session identifier")


class SessionStatusResponse(BaseModel):
    status: str = Field(..., description="Gateway display status of the session")
    clubName: Optional[str] = Field(None, description="Club name carried in the session metadata")
    amount: float = Field(..., description="Amount charged in whole currency units")


class GatewaySession(BaseModel):
    """
    Gateway-agnostic snapshot of a checkout session.

    `payment_id` is the idempotency key for the local side effects of a confirmed
    session. `club_id` and `club_name` come from opaque session metadata and are not
    validated.
    """

    session_id: str
    url: Optional[str] = None
    status: str
    state: SessionState
    payment_id: Optional[str] = None
    customer_email: Optional[str] = None
    club_id: Optional[str] = None
    club_name: Optional[str] = None
    amount_total: int = Field(0, description="Amount in minor units")

    @property
    def is_paid(self) -> bool:
        return self.state == SessionState.PAID
