"""
# Route Dependencies

FastAPI dependencies that resolve collaborators from `app.state` and run the
access pipeline.

Everything is looked up from the application the request belongs to, never from
module globals, so tests can build an app around in-memory doubles:

```python
app = create_app(settings, db_manager=fake_manager, identity_verifier=stub, payment_gateway=stub)
```

## Guards

- `require_principal`: identity gate only.
- `require_admin`: identity gate, then role gate.

Membership and club-manager checks need a club id that is only known inside the
handler, so services run them (see `club_sphere.services.event_service`).
"""

from typing import Optional

from fastapi import Depends, Header, Request

from club_sphere.config import Settings
from club_sphere.database.manager import DatabaseManager
from club_sphere.services.access_gates import AccessPipeline, IdentityGate, Principal, RoleGate
from club_sphere.services.checkout_service import CheckoutOrchestrator
from club_sphere.services.entity_stores import EntityStores
from club_sphere.services.event_service import EventService
from club_sphere.services.view_composer import ViewComposer


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_db_manager(request: Request) -> DatabaseManager:
    return request.app.state.db_manager


def get_stores(db_manager: DatabaseManager = Depends(get_db_manager)) -> EntityStores:
    return EntityStores.from_manager(db_manager)


def get_views(stores: EntityStores = Depends(get_stores)) -> ViewComposer:
    return ViewComposer(stores)


def get_event_service(
    stores: EntityStores = Depends(get_stores), views: ViewComposer = Depends(get_views)
) -> EventService:
    return EventService(stores, views)


def get_checkout(
    request: Request,
    stores: EntityStores = Depends(get_stores),
    settings: Settings = Depends(get_settings),
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        gateway=request.app.state.payment_gateway,
        clubs=stores.clubs,
        memberships=stores.memberships,
        payments=stores.payments,
        site_domain=settings.SITE_DOMAIN,
        currency=settings.PAYMENT_CURRENCY,
    )


async def require_principal(request: Request, authorization: Optional[str] = Header(None)) -> Principal:
    """Identity gate. 401 without a bearer token, 403 if the token is rejected."""
    pipeline = AccessPipeline(IdentityGate(request.app.state.identity_verifier))
    return await pipeline.admit(authorization)


async def require_admin(
    request: Request,
    authorization: Optional[str] = Header(None),
    stores: EntityStores = Depends(get_stores),
) -> Principal:
    """Identity gate followed by the role gate."""
    pipeline = AccessPipeline(
        IdentityGate(request.app.state.identity_verifier),
        [RoleGate(stores.users).check],
    )
    return await pipeline.admit(authorization)
