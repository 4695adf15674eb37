"""
# Entity Stores

One narrow store per collection. Stores are the only code that builds MongoDB
queries; everything above them speaks in typed identifiers
(`club_sphere.models.identifiers`) and plain documents.

Reference fields (`clubId`, `eventId`) are written and queried as strings, the
documents they point at are keyed by `ObjectId`. Stores convert at this boundary so
callers never compare the two representations directly.

```python
stores = EntityStores.from_manager(db_manager)
club = await stores.clubs.get(ClubId.parse(raw_id))
members = await stores.memberships.list_for_clubs([ClubId.of(club["_id"])])
```
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.errors import DuplicateKeyError

from club_sphere.database.manager import (
    CLUBS,
    EVENT_REGISTRATIONS,
    EVENTS,
    MEMBERSHIPS,
    PAYMENTS,
    USERS,
    DatabaseManager,
)
from club_sphere.errors import Conflict, ValidationError
from club_sphere.models.club_models import ClubStatus, MembershipStatus, UserRole
from club_sphere.models.event_models import RegistrationStatus
from club_sphere.models.identifiers import ClubId, EventId, MembershipId, PaymentRef, RegistrationId, UserId


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def insert_result(result) -> Dict[str, Any]:
    return {"acknowledged": result.acknowledged, "insertedId": str(result.inserted_id)}


def update_result(result) -> Dict[str, Any]:
    return {
        "acknowledged": result.acknowledged,
        "matchedCount": result.matched_count,
        "modifiedCount": result.modified_count,
    }


class _Store:
    def __init__(self, collection):
        self.collection = collection

    async def _find(self, query: Dict[str, Any], sort=None) -> List[Dict[str, Any]]:
        cursor = self.collection.find(query)
        if sort:
            cursor = cursor.sort(sort)
        return await cursor.to_list(length=None)

    async def _get(self, entity_id) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"_id": entity_id.as_object_id()})

    async def _get_many(self, ids: Iterable, id_type) -> Dict[Any, Dict[str, Any]]:
        """Fetch documents by id, keyed by typed id. Malformed ids are skipped."""
        object_ids = []
        for entity_id in ids:
            try:
                object_ids.append(entity_id.as_object_id())
            except ValidationError:
                continue
        if not object_ids:
            return {}
        docs = await self._find({"_id": {"$in": object_ids}})
        return {id_type.of(doc["_id"]): doc for doc in docs}


class UserStore(_Store):
    async def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"email": email})

    async def get_many_by_email(self, emails: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        unique = sorted({e for e in emails if e})
        if not unique:
            return {}
        docs = await self._find({"email": {"$in": unique}})
        return {doc["email"]: doc for doc in docs}

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self._find({})

    async def create(self, user: Dict[str, Any]) -> str:
        """
        Insert a new user with the default role.

        Raises:
            Conflict: if a user with this email already exists.
        """
        if await self.get_by_email(user["email"]):
            raise Conflict("User already exists")
        doc = {**user, "role": UserRole.MEMBER.value, "createdAt": utcnow()}
        try:
            result = await self.collection.insert_one(doc)
        except DuplicateKeyError as e:
            raise Conflict("User already exists") from e
        return str(result.inserted_id)

    async def set_role(self, user_id: UserId, role: UserRole) -> Dict[str, Any]:
        result = await self.collection.update_one({"_id": user_id.as_object_id()}, {"$set": {"role": role.value}})
        return update_result(result)


class ClubStore(_Store):
    async def get(self, club_id: ClubId) -> Optional[Dict[str, Any]]:
        return await self._get(club_id)

    async def get_many(self, club_ids: Iterable[ClubId]) -> Dict[ClubId, Dict[str, Any]]:
        return await self._get_many(club_ids, ClubId)

    async def list_by_status(self, status: Optional[str] = None) -> List[Dict[str, Any]]:
        query = {"status": status} if status else {}
        return await self._find(query, sort=[("createdAt", DESCENDING)])

    async def list_by_manager(
        self, manager_email: Optional[str] = None, status: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        query: Dict[str, Any] = {}
        if manager_email:
            query["managerEmail"] = manager_email
        if status:
            query["status"] = status
        return await self._find(query)

    async def list_managed_by(self, manager_email: str, status: Optional[str] = None) -> List[Dict[str, Any]]:
        """Clubs whose `managerEmail` equals `manager_email`. A blank email matches nothing."""
        if not manager_email:
            return []
        query: Dict[str, Any] = {"managerEmail": manager_email}
        if status:
            query["status"] = status
        return await self._find(query)

    async def create(self, club: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**club, "status": ClubStatus.PENDING.value, "createdAt": utcnow()}
        return insert_result(await self.collection.insert_one(doc))

    async def update_fields(self, club_id: ClubId, fields: Dict[str, Any]) -> Dict[str, Any]:
        update = {**fields, "updatedAt": utcnow()}
        result = await self.collection.update_one({"_id": club_id.as_object_id()}, {"$set": update})
        return update_result(result)

    async def set_status(self, club_id: ClubId, status: ClubStatus) -> Dict[str, Any]:
        result = await self.collection.update_one(
            {"_id": club_id.as_object_id()}, {"$set": {"status": status.value}}
        )
        return update_result(result)


class MembershipStore(_Store):
    async def get_active(self, club_id: ClubId, user_email: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(
            {"clubId": club_id.value, "userEmail": user_email, "status": MembershipStatus.ACTIVE.value}
        )

    async def get_by_payment(self, payment_ref: PaymentRef) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one({"paymentId": payment_ref.value})

    async def list_for_clubs(self, club_ids: Iterable[ClubId]) -> List[Dict[str, Any]]:
        values = sorted({c.value for c in club_ids})
        if not values:
            return []
        return await self._find({"clubId": {"$in": values}})

    async def list_active_for_user(self, user_email: str) -> List[Dict[str, Any]]:
        return await self._find({"userEmail": user_email, "status": MembershipStatus.ACTIVE.value})

    async def insert(self, membership: Dict[str, Any]) -> MembershipId:
        """Insert as-is. `DuplicateKeyError` propagates to the caller."""
        result = await self.collection.insert_one(membership)
        return MembershipId.of(result.inserted_id)

    async def delete(self, membership_id: MembershipId) -> None:
        await self.collection.delete_one({"_id": membership_id.as_object_id()})


class EventStore(_Store):
    async def get(self, event_id: EventId) -> Optional[Dict[str, Any]]:
        return await self._get(event_id)

    async def get_many(self, event_ids: Iterable[EventId]) -> Dict[EventId, Dict[str, Any]]:
        return await self._get_many(event_ids, EventId)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self._find({})

    async def list_for_club(self, club_id: ClubId) -> List[Dict[str, Any]]:
        return await self._find({"clubId": club_id.value}, sort=[("eventDate", DESCENDING)])

    async def list_for_clubs(self, club_ids: Iterable[ClubId]) -> List[Dict[str, Any]]:
        values = sorted({c.value for c in club_ids})
        if not values:
            return []
        return await self._find({"clubId": {"$in": values}}, sort=[("eventDate", ASCENDING)])

    async def list_on_or_after(self, iso_date: str) -> List[Dict[str, Any]]:
        return await self._find({"eventDate": {"$gte": iso_date}}, sort=[("eventDate", ASCENDING)])

    async def create(self, event: Dict[str, Any]) -> Dict[str, Any]:
        doc = {**event, "clubId": str(event["clubId"]), "createdAt": utcnow()}
        return insert_result(await self.collection.insert_one(doc))

    async def update_fields(self, event_id: EventId, fields: Dict[str, Any]) -> Dict[str, Any]:
        update = {**fields, "updatedAt": utcnow()}
        result = await self.collection.update_one({"_id": event_id.as_object_id()}, {"$set": update})
        return update_result(result)

    async def delete(self, event_id: EventId) -> Dict[str, Any]:
        result = await self.collection.delete_one({"_id": event_id.as_object_id()})
        return {"acknowledged": result.acknowledged, "deletedCount": result.deleted_count}


class RegistrationStore(_Store):
    async def get_live(self, event_id: EventId, user_email: str) -> Optional[Dict[str, Any]]:
        return await self.collection.find_one(
            {"eventId": event_id.value, "userEmail": user_email, "status": RegistrationStatus.REGISTERED.value}
        )

    async def insert(self, registration: Dict[str, Any]) -> RegistrationId:
        """Insert as-is. `DuplicateKeyError` propagates to the caller."""
        result = await self.collection.insert_one(registration)
        return RegistrationId.of(result.inserted_id)

    async def cancel(self, registration_id: RegistrationId) -> Dict[str, Any]:
        result = await self.collection.update_one(
            {"_id": registration_id.as_object_id()},
            {"$set": {"status": RegistrationStatus.CANCELLED.value, "cancelledAt": utcnow()}},
        )
        return update_result(result)

    async def count_live(self, event_id: EventId) -> int:
        return await self.collection.count_documents(
            {"eventId": event_id.value, "status": RegistrationStatus.REGISTERED.value}
        )

    async def list_live_for_user(self, user_email: str) -> List[Dict[str, Any]]:
        return await self._find(
            {"userEmail": user_email, "status": RegistrationStatus.REGISTERED.value},
            sort=[("registeredAt", DESCENDING)],
        )

    async def list_live_for_event(self, event_id: EventId) -> List[Dict[str, Any]]:
        return await self._find(
            {"eventId": event_id.value, "status": RegistrationStatus.REGISTERED.value},
            sort=[("registeredAt", ASCENDING)],
        )

    async def list_for_club(self, club_id: ClubId) -> List[Dict[str, Any]]:
        return await self._find({"clubId": club_id.value}, sort=[("registeredAt", DESCENDING)])


class PaymentStore(_Store):
    async def insert(self, payment: Dict[str, Any]) -> str:
        """Insert as-is. `DuplicateKeyError` propagates to the caller."""
        result = await self.collection.insert_one(payment)
        return str(result.inserted_id)

    async def list_all(self) -> List[Dict[str, Any]]:
        return await self._find({}, sort=[("createdAt", DESCENDING)])

    async def list_for_user(self, user_email: str) -> List[Dict[str, Any]]:
        return await self._find({"userEmail": user_email}, sort=[("createdAt", DESCENDING)])


@dataclass
class EntityStores:
    users: UserStore
    clubs: ClubStore
    memberships: MembershipStore
    events: EventStore
    registrations: RegistrationStore
    payments: PaymentStore

    @classmethod
    def from_manager(cls, db_manager: DatabaseManager) -> "EntityStores":
        return cls(
            users=UserStore(db_manager.get_collection(USERS)),
            clubs=ClubStore(db_manager.get_collection(CLUBS)),
            memberships=MembershipStore(db_manager.get_collection(MEMBERSHIPS)),
            events=EventStore(db_manager.get_collection(EVENTS)),
            registrations=RegistrationStore(db_manager.get_collection(EVENT_REGISTRATIONS)),
            payments=PaymentStore(db_manager.get_collection(PAYMENTS)),
        )
