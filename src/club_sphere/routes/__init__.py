"""HTTP routers, one per resource group."""

from club_sphere.routes.clubs import router as clubs_router
from club_sphere.routes.events import router as events_router
from club_sphere.routes.payments import router as payments_router
from club_sphere.routes.users import router as users_router

__all__ = ["clubs_router", "events_router", "payments_router", "users_router"]
