"""
# Event Service

Event management and the event registration lifecycle.

## Access rules

- Creating, updating and deleting an event requires the caller to manage the
  event's club.
- Listing a club's events, listing an event's registrants and registering for an
  event require an active membership in the club (`MembershipGate`).
- Cancelling only ever touches the caller's own registration.

## Registrations

A registration is created with `status="registered"` and cancelled by switching the
status to `"cancelled"`; registrations are never deleted. A unique partial index
allows one live registration per `(eventId, userEmail)`, so a duplicate insert is
reported as `Conflict` even when two requests race.

Paid events (`isPaid=True`) are registered without a payment step; `paymentId` is
stored as `None`.
"""

from typing import Any, Dict, List

from pymongo.errors import DuplicateKeyError

from club_sphere.errors import Conflict, NotFound
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.event_models import CreateEventRequest, RegistrationStatus, UpdateEventRequest
from club_sphere.models.identifiers import ClubId, EventId, RegistrationId
from club_sphere.services.access_gates import MembershipGate, Principal, ensure_club_manager
from club_sphere.services.entity_stores import EntityStores, utcnow
from club_sphere.services.view_composer import ViewComposer

logger = get_logger(prefix="[EVENTS]")


class EventService:
    def __init__(self, stores: EntityStores, views: ViewComposer):
        self.stores = stores
        self.views = views
        self.membership_gate = MembershipGate(stores.memberships)

    async def _get_event(self, event_id: EventId) -> Dict[str, Any]:
        event = await self.stores.events.get(event_id)
        if event is None:
            raise NotFound("Event not found")
        return event

    async def _get_club(self, club_id: ClubId) -> Dict[str, Any]:
        club = await self.stores.clubs.get(club_id)
        if club is None:
            raise NotFound("Club not found")
        return club

    async def _managed_event(self, principal: Principal, event_id: EventId) -> Dict[str, Any]:
        event = await self._get_event(event_id)
        club = await self._get_club(ClubId.parse(event.get("clubId")))
        ensure_club_manager(principal, club)
        return event

    async def create_event(self, principal: Principal, request: CreateEventRequest) -> Dict[str, Any]:
        club_id = ClubId.parse(request.clubId)
        club = await self._get_club(club_id)
        ensure_club_manager(principal, club)

        result = await self.stores.events.create({**request.model_dump(), "clubId": club_id.value})
        logger.info(f"Event {result['insertedId']} created for club {club_id} by {principal.email}")
        return result

    async def update_event(
        self, principal: Principal, event_id: EventId, request: UpdateEventRequest
    ) -> Dict[str, Any]:
        await self._managed_event(principal, event_id)
        return await self.stores.events.update_fields(event_id, request.model_dump(exclude_unset=True))

    async def delete_event(self, principal: Principal, event_id: EventId) -> Dict[str, Any]:
        await self._managed_event(principal, event_id)
        result = await self.stores.events.delete(event_id)
        logger.info(f"Event {event_id} deleted by {principal.email}")
        return result

    async def club_events(self, principal: Principal, club_id: ClubId) -> List[Dict[str, Any]]:
        (await self.membership_gate.check(principal, club_id)).unwrap()
        return await self.views.club_events(club_id)

    async def event_registrations(self, principal: Principal, event_id: EventId) -> List[Dict[str, Any]]:
        event = await self._get_event(event_id)
        (await self.membership_gate.check(principal, ClubId.maybe(event.get("clubId")))).unwrap()
        return await self.views.event_registrations(event_id, event=event)

    async def club_registrations(self, principal: Principal, club_id: ClubId) -> List[Dict[str, Any]]:
        club = await self._get_club(club_id)
        ensure_club_manager(principal, club)
        return await self.views.club_registrations(club_id)

    async def register(self, principal: Principal, event_id: EventId) -> Dict[str, Any]:
        """
        Register the caller for an event.

        Raises:
            NotFound: The event does not exist.
            Forbidden: The caller has no active membership in the event's club.
            Conflict: The caller already holds a live registration, or the event is full.
        """
        event = await self._get_event(event_id)
        club_id = ClubId.maybe(event.get("clubId"))
        (await self.membership_gate.check(principal, club_id)).unwrap()

        if await self.stores.registrations.get_live(event_id, principal.email):
            raise Conflict("Already registered for this event")

        max_attendees = event.get("maxAttendees")
        if max_attendees and await self.stores.registrations.count_live(event_id) >= max_attendees:
            raise Conflict("Event is full")

        registration = {
            "eventId": event_id.value,
            "clubId": club_id.value,
            "userEmail": principal.email,
            "status": RegistrationStatus.REGISTERED.value,
            "paymentId": None,
            "registeredAt": utcnow(),
        }
        try:
            registration_id = await self.stores.registrations.insert(registration)
        except DuplicateKeyError as e:
            raise Conflict("Already registered for this event") from e

        logger.info(f"{principal.email} registered for event {event_id}")
        return {"acknowledged": True, "insertedId": registration_id.value}

    async def cancel(self, principal: Principal, event_id: EventId) -> Dict[str, Any]:
        """
        Cancel the caller's live registration.

        Raises:
            NotFound: The caller holds no live registration for the event.
        """
        registration = await self.stores.registrations.get_live(event_id, principal.email)
        if registration is None:
            raise NotFound("Registration not found")
        result = await self.stores.registrations.cancel(RegistrationId.of(registration["_id"]))
        logger.info(f"{principal.email} cancelled registration for event {event_id}")
        return result
