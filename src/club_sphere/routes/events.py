"""
# Event Routes

Event management, registration lifecycle and event listings.

## Endpoints

### Public
- `GET /upcoming/events` - events dated today or later, earliest first
- `GET /events?email=` - events of a manager's approved clubs
- `GET /events/{eventId}` - event with its club name

### Signed in
- `POST /events` - create (club manager)
- `PATCH /events/{eventId}` / `DELETE /events/{eventId}` - club manager
- `POST /events/{eventId}/register` - club members
- `PATCH /events/{eventId}/cancel` - own registration
- `GET /events/{eventId}/registrations` - club members
- `GET /clubs/{clubId}/events` - club members
- `GET /clubs/{clubId}/registrations` - club manager
- `GET /my-events` - own registrations
"""

from fastapi import APIRouter, Depends, Query, status

from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.event_models import CreateEventRequest, UpdateEventRequest
from club_sphere.models.identifiers import ClubId, EventId
from club_sphere.routes.dependencies import get_event_service, get_views, require_principal
from club_sphere.services.access_gates import Principal
from club_sphere.services.event_service import EventService
from club_sphere.services.view_composer import ViewComposer
from club_sphere.utils.serialization import to_public

router = APIRouter(tags=["Events"])
logger = get_logger(prefix="[EVENT_ROUTES]")


@router.get("/upcoming/events", summary="Upcoming events")
async def list_upcoming_events(views: ViewComposer = Depends(get_views)):
    return to_public(await views.upcoming_events())


@router.get("/events", summary="Events of a manager's approved clubs")
async def list_manager_events(email: str = Query(..., min_length=1), views: ViewComposer = Depends(get_views)):
    return to_public(await views.events_with_club(email))


@router.post("/events", status_code=status.HTTP_201_CREATED, summary="Create event")
async def create_event(
    request: CreateEventRequest,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return await events.create_event(principal, request)


@router.get("/events/{event_id}", summary="Event details", responses={404: {"description": "Event not found"}})
async def get_event(event_id: str, views: ViewComposer = Depends(get_views)):
    return to_public(await views.event_detail(EventId.parse(event_id)))


@router.patch("/events/{event_id}", summary="Update event")
async def update_event(
    event_id: str,
    request: UpdateEventRequest,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return await events.update_event(principal, EventId.parse(event_id), request)


@router.delete("/events/{event_id}", summary="Delete event")
async def delete_event(
    event_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return await events.delete_event(principal, EventId.parse(event_id))


@router.post(
    "/events/{event_id}/register",
    status_code=status.HTTP_201_CREATED,
    summary="Register for an event",
    responses={403: {"description": "Not a member of the club"}, 409: {"description": "Already registered"}},
)
async def register_for_event(
    event_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return await events.register(principal, EventId.parse(event_id))


@router.patch("/events/{event_id}/cancel", summary="Cancel own registration")
async def cancel_registration(
    event_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return await events.cancel(principal, EventId.parse(event_id))


@router.get("/events/{event_id}/registrations", summary="Registrants of an event")
async def list_event_registrations(
    event_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return to_public(await events.event_registrations(principal, EventId.parse(event_id)))


@router.get("/clubs/{club_id}/events", summary="Events of a club")
async def list_club_events(
    club_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return to_public(await events.club_events(principal, ClubId.parse(club_id)))


@router.get("/clubs/{club_id}/registrations", summary="Registrations across a club's events")
async def list_club_registrations(
    club_id: str,
    principal: Principal = Depends(require_principal),
    events: EventService = Depends(get_event_service),
):
    return to_public(await events.club_registrations(principal, ClubId.parse(club_id)))


@router.get("/my-events", summary="Events the caller is registered for")
async def list_my_events(
    principal: Principal = Depends(require_principal), views: ViewComposer = Depends(get_views)
):
    return to_public(await views.my_events(principal.email))
