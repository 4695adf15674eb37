"""
Razorpay Payment Gateway.

Thin adapter over the Razorpay SDK's **payment links**, which provide a hosted
checkout page. The SDK is synchronous, so each call runs in a worker thread.

Mapping onto the checkout lifecycle:

| Payment link status | `SessionState` |
|---------------------|----------------|
| `created`, `partially_paid` | `PENDING` |
| `paid` | `PAID` |
| `expired` | `EXPIRED` |
| `cancelled` | `FAILED` |

Gateway failures are never retried here; they are logged and re-raised as
`ExternalServiceError`.
"""

import asyncio
from typing import Any, Dict, Optional

import razorpay

from club_sphere.errors import ExternalServiceError
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.payment_models import GatewaySession, SessionState

logger = get_logger(prefix="[RAZORPAY_GATEWAY]")

LINK_STATES = {
    "created": SessionState.PENDING,
    "partially_paid": SessionState.PENDING,
    "paid": SessionState.PAID,
    "expired": SessionState.EXPIRED,
    "cancelled": SessionState.FAILED,
}


def session_from_link(link: Dict[str, Any]) -> GatewaySession:
    """Normalize a Razorpay payment link entity."""
    notes = link.get("notes") or {}
    customer = link.get("customer") or {}
    payments = link.get("payments") or []
    captured = [p for p in payments if p.get("status") == "captured"] or payments
    payment_id = captured[0].get("payment_id") if captured else None

    status = link.get("status", "created")
    state = LINK_STATES.get(status, SessionState.PENDING)
    if state == SessionState.PAID and not payment_id:
        payment_id = link.get("id")

    return GatewaySession(
        session_id=link["id"],
        url=link.get("short_url"),
        status=status,
        state=state,
        payment_id=payment_id,
        customer_email=customer.get("email"),
        club_id=notes.get("clubId"),
        club_name=notes.get("clubName"),
        amount_total=int(link.get("amount_paid") or link.get("amount") or 0),
    )


class PaymentGateway:
    """Razorpay payment-link client."""

    def __init__(self, key_id: str, key_secret: str, client: Optional[razorpay.Client] = None):
        self.client = client or razorpay.Client(auth=(key_id, key_secret))

    async def create_session(
        self,
        *,
        amount: int,
        currency: str,
        description: str,
        customer_email: str,
        notes: Dict[str, str],
        callback_url: str,
    ) -> GatewaySession:
        """
        Create a hosted checkout (payment link).

        Args:
            amount: Charge in minor currency units.
        """
        data = {
            "amount": amount,
            "currency": currency,
            "accept_partial": False,
            "description": description,
            "customer": {"email": customer_email},
            "notify": {"email": False, "sms": False},
            "reminder_enable": False,
            "notes": notes,
            "callback_url": callback_url,
            "callback_method": "get",
        }
        try:
            link = await asyncio.to_thread(self.client.payment_link.create, data)
        except Exception as e:
            logger.error(f"Failed to create payment link: {e}", exc_info=True)
            raise ExternalServiceError("Payment gateway error") from e

        logger.info(f"Created payment link {link.get('id')} for {customer_email}, amount: {amount} {currency}")
        return session_from_link(link)

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        try:
            link = await asyncio.to_thread(self.client.payment_link.fetch, session_id)
        except Exception as e:
            logger.error(f"Failed to fetch payment link {session_id}: {e}", exc_info=True)
            raise ExternalServiceError("Payment gateway error") from e
        return session_from_link(link)
