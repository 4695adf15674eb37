"""
Payment API Routes.

Membership checkout and the views built from its side effects.

**Flow:**
1. The client posts the club id to `/payment-checkout-session` and redirects the
   buyer to the returned URL. The amount is always the stored club fee.
2. After paying, the buyer lands on the site's success page, which polls
   `/session-status?session_id=...`.
3. The first poll that sees the session paid records the membership and payment;
   later polls return the same body without writing.
"""

from fastapi import APIRouter, Depends, Query

from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import CheckoutSessionRequest
from club_sphere.models.identifiers import ClubId
from club_sphere.models.payment_models import CheckoutSessionResponse, SessionStatusResponse
from club_sphere.routes.dependencies import get_checkout, get_stores, get_views, require_admin, require_principal
from club_sphere.services.access_gates import Principal
from club_sphere.services.checkout_service import CheckoutOrchestrator
from club_sphere.services.entity_stores import EntityStores
from club_sphere.services.view_composer import ViewComposer
from club_sphere.utils.serialization import to_public

router = APIRouter(tags=["Payments"])
logger = get_logger(prefix="[PAYMENT_ROUTES]")


@router.post(
    "/payment-checkout-session",
    response_model=CheckoutSessionResponse,
    summary="Start membership checkout",
    responses={404: {"description": "Club not found"}, 502: {"description": "Payment gateway error"}},
)
async def create_checkout_session(
    request: CheckoutSessionRequest, checkout: CheckoutOrchestrator = Depends(get_checkout)
):
    return await checkout.create_session(
        club_id=ClubId.parse(request.clubId),
        buyer_email=request.email,
    )


@router.get(
    "/session-status",
    response_model=SessionStatusResponse,
    summary="Confirm a checkout session",
    responses={502: {"description": "Payment gateway error"}},
)
async def get_session_status(
    session_id: str = Query(..., min_length=1), checkout: CheckoutOrchestrator = Depends(get_checkout)
):
    return await checkout.confirm_session(session_id)


@router.get("/my-clubs", summary="Clubs the user is an active member of")
async def get_my_clubs(email: str = Query(...), views: ViewComposer = Depends(get_views)):
    return to_public(await views.my_clubs(email))


@router.get("/payments", summary="All payment records (admin)")
async def list_payments(principal: Principal = Depends(require_admin), stores: EntityStores = Depends(get_stores)):
    return to_public(await stores.payments.list_all())


@router.get("/my-payments", summary="Payment records of the caller")
async def list_my_payments(
    principal: Principal = Depends(require_principal), stores: EntityStores = Depends(get_stores)
):
    return to_public(await stores.payments.list_for_user(principal.email))
