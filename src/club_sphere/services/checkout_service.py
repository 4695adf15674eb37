"""
# Checkout Service

Drives the membership purchase through the payment gateway's hosted checkout.

## Flow

1. `create_session()` loads the club, converts its stored fee to minor units and asks
   the gateway for a hosted checkout carrying `clubId`/`clubName` as metadata. The
   price never comes from the buyer. Nothing is written locally.
2. The buyer pays on the gateway's page and is redirected back to the site.
3. The site polls `confirm_session()`. Once the gateway reports the session as paid,
   one `memberships` document and one `payments` document are written, both keyed
   by the gateway payment id.

## Idempotency

Confirmation may run any number of times (page refreshes, concurrent polls). Both
collections carry a unique index on `paymentId`; the membership is inserted first
and a duplicate key means an earlier confirmation already recorded the purchase,
so nothing else is written. If the payment record cannot be written for any other
reason, cancellation included, the membership is removed again so a later
confirmation can retry the pair.
"""

import math
from typing import Any, Dict

from pymongo.errors import DuplicateKeyError

from club_sphere.errors import NotFound, ValidationError
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import MembershipStatus
from club_sphere.models.identifiers import ClubId, PaymentRef
from club_sphere.models.payment_models import (
    CheckoutSessionResponse,
    GatewaySession,
    PaymentStatus,
    PaymentType,
    SessionStatusResponse,
)
from club_sphere.services.entity_stores import ClubStore, MembershipStore, PaymentStore, utcnow
from club_sphere.services.payment_gateway import PaymentGateway

logger = get_logger(prefix="[CHECKOUT]")

SUCCESS_PATH = "/dashboard/payment-success"


def to_minor_units(fee: Any) -> int:
    """
    Whole currency units to minor units, dropping any fractional part of the fee first.

    Raises:
        ValidationError: if the fee is not a finite, non-negative number.
    """
    try:
        value = float(fee)
    except (TypeError, ValueError) as e:
        raise ValidationError("Invalid membership fee") from e
    if not math.isfinite(value) or value < 0:
        raise ValidationError("Invalid membership fee")
    return int(value) * 100


class CheckoutOrchestrator:
    def __init__(
        self,
        gateway: PaymentGateway,
        clubs: ClubStore,
        memberships: MembershipStore,
        payments: PaymentStore,
        site_domain: str,
        currency: str = "USD",
    ):
        self.gateway = gateway
        self.clubs = clubs
        self.memberships = memberships
        self.payments = payments
        self.site_domain = site_domain.rstrip("/")
        self.currency = currency

    async def create_session(self, club_id: ClubId, buyer_email: str) -> CheckoutSessionResponse:
        """
        Start a hosted checkout for the stored club's membership fee.

        Raises:
            NotFound: if the club does not exist.
        """
        club = await self.clubs.get(club_id)
        if club is None:
            raise NotFound("Club not found")

        club_name = club.get("clubName")
        amount = to_minor_units(club.get("membershipFee", 0))
        session = await self.gateway.create_session(
            amount=amount,
            currency=self.currency,
            description=club_name,
            customer_email=buyer_email,
            notes={"clubId": club_id.value, "clubName": club_name},
            callback_url=f"{self.site_domain}{SUCCESS_PATH}",
        )
        logger.info(f"Checkout session {session.session_id} started for club {club_id} by {buyer_email}")
        return CheckoutSessionResponse(url=session.url, sessionId=session.session_id)

    async def confirm_session(self, session_id: str) -> SessionStatusResponse:
        """
        Look up a session and, if paid, record the membership and payment once.

        The response is the same whether or not this call wrote anything.
        """
        session = await self.gateway.retrieve_session(session_id)
        if session.is_paid:
            await self.record_paid_session(session)

        return SessionStatusResponse(
            status=session.status,
            clubName=session.club_name,
            amount=session.amount_total / 100,
        )

    async def record_paid_session(self, session: GatewaySession) -> bool:
        """
        Insert the membership/payment pair for a paid session.

        Returns:
            bool: `True` if this call wrote the records, `False` if they already existed.
        """
        payment_ref = PaymentRef(session.payment_id or session.session_id)

        if await self.memberships.get_by_payment(payment_ref):
            logger.debug(f"Payment {payment_ref} already recorded")
            return False

        joined_at = utcnow()
        membership: Dict[str, Any] = {
            "userEmail": session.customer_email,
            "clubId": session.club_id,
            "status": MembershipStatus.ACTIVE.value,
            "paymentStatus": PaymentStatus.PAID.value,
            "paymentId": payment_ref.value,
            "joinedAt": joined_at,
        }
        try:
            membership_id = await self.memberships.insert(membership)
        except DuplicateKeyError:
            logger.info(f"Payment {payment_ref} recorded by a concurrent confirmation")
            return False

        payment = {
            "userEmail": session.customer_email,
            "amount": session.amount_total / 100,
            "type": PaymentType.MEMBERSHIP.value,
            "status": PaymentStatus.PAID.value,
            "clubId": session.club_id,
            "clubName": session.club_name,
            "paymentId": payment_ref.value,
            "createdAt": joined_at,
        }
        try:
            await self.payments.insert(payment)
        except DuplicateKeyError:
            logger.warning(f"Payment record for {payment_ref} already existed without its membership")
        except BaseException:
            logger.error(f"Failed to record payment {payment_ref}, rolling back membership", exc_info=True)
            await self.memberships.delete(membership_id)
            raise

        logger.info(f"Recorded membership {membership_id} for {session.customer_email} in club {session.club_id}")
        return True
