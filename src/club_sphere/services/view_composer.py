"""
# View Composer

Builds the denormalized read views the web client renders. Stores hold only
reference identifiers (`managerEmail`, `clubId`, `eventId`, `userEmail`), so every
view fetches the referenced documents in one batched query per hop and joins them in
memory on typed identifiers.

## Views

| Method | Joins | Missing links |
|--------|-------|---------------|
| `club_detail` | club → manager user | club absent: `NotFound`; manager absent: `organizer=None` (or `NotFound` with `require_organizer=True`) |
| `club_members` | managed clubs → memberships | club listed with `members=[]` |
| `club_roster` | approved managed clubs → memberships → users | club listed with one placeholder row (or `[]` with `placeholder_for_empty=False`) |
| `my_clubs` | active memberships → clubs | membership dropped |
| `club_events` | club → events | empty list |
| `events_with_club` | approved managed clubs → events | event dropped |
| `event_detail` | event → club | event absent: `NotFound`; club absent: `clubName=None` |
| `upcoming_events` | events dated today or later → clubs | `clubName=None` |
| `my_events` | live registrations → events → clubs | registration dropped when its event is gone |
| `event_registrations` | event → live registrations → users | event absent: `NotFound`; user absent: `userName=None` |
| `club_registrations` | club → registrations → events, users | club absent: `NotFound`; registration dropped when its event is gone |

All views are read-only.
"""

from collections import defaultdict
from datetime import date
from typing import Any, Dict, List, Optional

from club_sphere.errors import NotFound
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import ClubStatus
from club_sphere.models.identifiers import ClubId, EventId
from club_sphere.services.entity_stores import EntityStores

logger = get_logger(prefix="[VIEW_COMPOSER]")

ORGANIZER_HIDDEN_FIELDS = frozenset({"photoURL", "_id", "role", "createdAt"})
CLUB_DETAIL_HIDDEN_FIELDS = frozenset({"updatedAt"})
EVENT_FIELDS = (
    "_id",
    "clubId",
    "title",
    "description",
    "eventDate",
    "location",
    "isPaid",
    "eventFee",
    "maxAttendees",
    "createdAt",
)
ROSTER_PLACEHOLDER = {"name": None, "membershipId": None, "email": None, "status": None, "joinDate": None}


def _project_event(event: Dict[str, Any], club: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    view = {name: event.get(name) for name in EVENT_FIELDS}
    view["clubName"] = club.get("clubName") if club else None
    return view


class ViewComposer:
    def __init__(self, stores: EntityStores):
        self.stores = stores

    async def club_detail(self, club_id: ClubId, require_organizer: bool = False) -> Dict[str, Any]:
        """
        Club document plus its manager's public profile under `organizer`.

        The organizer's photo, id, role and creation time are removed, as is the
        club's `updatedAt`.

        Args:
            club_id: Club to show.
            require_organizer: When `True`, a club whose `managerEmail` matches no user
                is reported as `NotFound`, mirroring an inner join. By default the club
                is returned with `organizer=None`.

        Raises:
            NotFound: If the club does not exist (or, with `require_organizer`, has no
                matching manager).
        """
        club = await self.stores.clubs.get(club_id)
        if club is None:
            raise NotFound("Club not found")

        view = {k: v for k, v in club.items() if k not in CLUB_DETAIL_HIDDEN_FIELDS}

        manager_email = club.get("managerEmail")
        organizer = await self.stores.users.get_by_email(manager_email) if manager_email else None
        if organizer is None:
            if require_organizer:
                raise NotFound("Club not found")
            logger.warning(f"Club {club_id} has no matching organizer for {manager_email!r}")
            view["organizer"] = None
        else:
            view["organizer"] = {k: v for k, v in organizer.items() if k not in ORGANIZER_HIDDEN_FIELDS}
        return view

    async def club_members(self, manager_email: str) -> List[Dict[str, Any]]:
        """Every club managed by `manager_email` with all of its memberships attached."""
        clubs = await self.stores.clubs.list_managed_by(manager_email)
        memberships = await self.stores.memberships.list_for_clubs(ClubId.of(c["_id"]) for c in clubs)

        by_club = defaultdict(list)
        for membership in memberships:
            by_club[ClubId.of(membership.get("clubId"))].append(membership)

        return [{**club, "members": by_club.get(ClubId.of(club["_id"]), [])} for club in clubs]

    async def club_roster(self, manager_email: str, placeholder_for_empty: bool = True) -> List[Dict[str, Any]]:
        """
        Approved clubs managed by `manager_email`, each with a member roster.

        Each roster row is `{name, membershipId, email, status, joinDate}`. A membership
        whose user document is missing still produces a row, with `name=None`.

        Args:
            placeholder_for_empty: A club without memberships gets a single all-`None`
                row when `True`, or an empty roster when `False`.
        """
        clubs = await self.stores.clubs.list_managed_by(manager_email, ClubStatus.APPROVED.value)
        memberships = await self.stores.memberships.list_for_clubs(ClubId.of(c["_id"]) for c in clubs)
        users = await self.stores.users.get_many_by_email(m.get("userEmail") for m in memberships)

        by_club = defaultdict(list)
        for membership in memberships:
            user = users.get(membership.get("userEmail"))
            by_club[ClubId.of(membership.get("clubId"))].append(
                {
                    "name": user.get("name") if user else None,
                    "membershipId": str(membership["_id"]),
                    "email": membership.get("userEmail"),
                    "status": membership.get("status"),
                    "joinDate": membership.get("joinedAt"),
                }
            )

        roster = []
        for club in clubs:
            members = by_club.get(ClubId.of(club["_id"]))
            if not members:
                members = [dict(ROSTER_PLACEHOLDER)] if placeholder_for_empty else []
            roster.append({"_id": club["_id"], "clubName": club.get("clubName"), "members": members})
        return roster

    async def my_clubs(self, user_email: str) -> List[Dict[str, Any]]:
        """Clubs the user actively belongs to, with membership details inline."""
        memberships = await self.stores.memberships.list_active_for_user(user_email)
        clubs = await self.stores.clubs.get_many(ClubId.of(m.get("clubId")) for m in memberships)

        views = []
        for membership in memberships:
            club = clubs.get(ClubId.of(membership.get("clubId")))
            if club is None:
                logger.debug(f"Skipping membership {membership.get('_id')} with dangling club reference")
                continue
            views.append(
                {
                    **club,
                    "membershipStatus": membership.get("status"),
                    "joinedAt": membership.get("joinedAt"),
                    "paymentId": membership.get("paymentId"),
                }
            )
        return views

    async def club_events(self, club_id: ClubId) -> List[Dict[str, Any]]:
        return await self.stores.events.list_for_club(club_id)

    async def events_with_club(self, manager_email: str) -> List[Dict[str, Any]]:
        """Events of the approved clubs managed by `manager_email`, flattened with `clubName`."""
        clubs = await self.stores.clubs.list_managed_by(manager_email, ClubStatus.APPROVED.value)
        clubs_by_id = {ClubId.of(c["_id"]): c for c in clubs}
        events = await self.stores.events.list_for_clubs(clubs_by_id.keys())

        views = []
        for event in events:
            club = clubs_by_id.get(ClubId.of(event.get("clubId")))
            if club is None:
                continue
            views.append(_project_event(event, club))
        return views

    async def event_detail(self, event_id: EventId) -> Dict[str, Any]:
        event = await self.stores.events.get(event_id)
        if event is None:
            raise NotFound("Event not found")
        club_id = ClubId.maybe(event.get("clubId"))
        club = (await self.stores.clubs.get_many([club_id])).get(club_id) if club_id else None
        return {**event, "clubName": club.get("clubName") if club else None}

    async def upcoming_events(self, today: Optional[date] = None) -> List[Dict[str, Any]]:
        """
        Events whose `eventDate` is on or after today, earliest first.

        The comparison is lexical on the stored string against today's ISO date
        (`"2026-10-18"`), so `"2026-10-18T09:00"` counts as today.
        """
        today_iso = (today or date.today()).isoformat()
        events = await self.stores.events.list_on_or_after(today_iso)
        clubs = await self.stores.clubs.get_many(ClubId.of(e.get("clubId")) for e in events)

        views = [
            {**event, "clubName": (clubs.get(ClubId.of(event.get("clubId"))) or {}).get("clubName")}
            for event in events
            if str(event.get("eventDate", "")) >= today_iso
        ]
        views.sort(key=lambda e: str(e.get("eventDate", "")))
        return views

    async def my_events(self, user_email: str) -> List[Dict[str, Any]]:
        """Live registrations of the user joined to their event and club."""
        registrations = await self.stores.registrations.list_live_for_user(user_email)
        events = await self.stores.events.get_many(EventId.of(r.get("eventId")) for r in registrations)
        clubs = await self.stores.clubs.get_many(ClubId.of(e.get("clubId")) for e in events.values())

        views = []
        for registration in registrations:
            event = events.get(EventId.of(registration.get("eventId")))
            if event is None:
                continue
            club = clubs.get(ClubId.of(event.get("clubId")))
            views.append(
                {
                    "_id": registration["_id"],
                    "eventId": registration.get("eventId"),
                    "clubId": event.get("clubId"),
                    "status": registration.get("status"),
                    "registeredAt": registration.get("registeredAt"),
                    "title": event.get("title"),
                    "eventDate": event.get("eventDate"),
                    "location": event.get("location"),
                    "isPaid": event.get("isPaid"),
                    "eventFee": event.get("eventFee"),
                    "clubName": club.get("clubName") if club else None,
                }
            )
        return views

    async def event_registrations(
        self, event_id: EventId, event: Optional[Dict[str, Any]] = None
    ) -> List[Dict[str, Any]]:
        """
        Live registrants of an event with their user names.

        Raises:
            NotFound: If the event does not exist.
        """
        if event is None:
            event = await self.stores.events.get(event_id)
        if event is None:
            raise NotFound("Event not found")

        registrations = await self.stores.registrations.list_live_for_event(event_id)
        users = await self.stores.users.get_many_by_email(r.get("userEmail") for r in registrations)

        views = []
        for registration in registrations:
            user = users.get(registration.get("userEmail"))
            views.append(
                {
                    "_id": registration["_id"],
                    "eventId": registration.get("eventId"),
                    "userEmail": registration.get("userEmail"),
                    "userName": user.get("name") if user else None,
                    "photoURL": user.get("photoURL") if user else None,
                    "status": registration.get("status"),
                    "registeredAt": registration.get("registeredAt"),
                }
            )
        return views

    async def club_registrations(self, club_id: ClubId) -> List[Dict[str, Any]]:
        """
        Every registration (live and cancelled) for the club's events.

        Raises:
            NotFound: If the club does not exist.
        """
        club = await self.stores.clubs.get(club_id)
        if club is None:
            raise NotFound("Club not found")

        registrations = await self.stores.registrations.list_for_club(club_id)
        events = await self.stores.events.get_many(EventId.of(r.get("eventId")) for r in registrations)
        users = await self.stores.users.get_many_by_email(r.get("userEmail") for r in registrations)

        views = []
        for registration in registrations:
            event = events.get(EventId.of(registration.get("eventId")))
            if event is None:
                continue
            user = users.get(registration.get("userEmail"))
            views.append(
                {
                    "_id": registration["_id"],
                    "eventId": registration.get("eventId"),
                    "eventTitle": event.get("title"),
                    "eventDate": event.get("eventDate"),
                    "userEmail": registration.get("userEmail"),
                    "userName": user.get("name") if user else None,
                    "status": registration.get("status"),
                    "registeredAt": registration.get("registeredAt"),
                    "clubName": club.get("clubName"),
                }
            )
        return views
