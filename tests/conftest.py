"""
Shared fixtures.

MongoDB is replaced by a small in-memory double that speaks the subset of the Motor
API the stores use. Every operation yields to the event loop once, so concurrent
coroutines interleave the way they would against a real server, and unique indexes
created through `DatabaseManager.create_indexes()` raise `DuplicateKeyError`.
"""

import asyncio
import copy
from types import SimpleNamespace
from typing import Any, Dict, List

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from pymongo.errors import DuplicateKeyError

from club_sphere.config import Settings
from club_sphere.database.manager import DatabaseManager
from club_sphere.errors import ExternalServiceError, InvalidCredential
from club_sphere.main import create_app
from club_sphere.models.payment_models import GatewaySession, SessionState
from club_sphere.services.entity_stores import EntityStores
from club_sphere.services.identity_service import VerifiedIdentity
from club_sphere.services.view_composer import ViewComposer

_MISSING = object()


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        value = doc.get(key, _MISSING)
        if isinstance(condition, dict) and any(k.startswith("$") for k in condition):
            for op, operand in condition.items():
                if op == "$in":
                    if value is _MISSING or value not in operand:
                        return False
                elif op == "$ne":
                    if value is not _MISSING and value == operand:
                        return False
                elif op == "$gte":
                    if value is _MISSING or value is None or value < operand:
                        return False
                else:
                    raise NotImplementedError(op)
        elif value is _MISSING or value != condition:
            return False
    return True


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self.docs = docs

    def sort(self, spec, direction=None):
        if isinstance(spec, str):
            spec = [(spec, direction or 1)]
        for key, order in reversed(list(spec)):
            self.docs.sort(key=lambda d: (d.get(key) is None, d.get(key)), reverse=order < 0)
        return self

    async def to_list(self, length=None):
        await asyncio.sleep(0)
        return self.docs if length is None else self.docs[:length]


class FakeCollection:
    def __init__(self, name: str):
        self.name = name
        self.docs: List[Dict[str, Any]] = []
        self.indexes: List[Dict[str, Any]] = []

    async def create_index(self, keys, **options):
        fields = [keys] if isinstance(keys, str) else [k for k, _ in keys]
        self.indexes.append({"fields": fields, **options})
        return "_".join(fields)

    def _violates_unique(self, doc: Dict[str, Any]) -> bool:
        for index in self.indexes:
            if not index.get("unique"):
                continue
            fields = index["fields"]
            partial = index.get("partialFilterExpression")
            if partial and not _matches(doc, partial):
                continue
            if index.get("sparse") and any(f not in doc for f in fields):
                continue
            key = tuple(doc.get(f) for f in fields)
            for other in self.docs:
                if partial and not _matches(other, partial):
                    continue
                if index.get("sparse") and any(f not in other for f in fields):
                    continue
                if tuple(other.get(f) for f in fields) == key:
                    return True
        return False

    def find(self, query=None):
        query = query or {}
        return FakeCursor([copy.deepcopy(d) for d in self.docs if _matches(d, query)])

    async def find_one(self, query=None):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query or {}):
                return copy.deepcopy(doc)
        return None

    async def insert_one(self, doc):
        await asyncio.sleep(0)
        stored = copy.deepcopy(doc)
        stored.setdefault("_id", ObjectId())
        if self._violates_unique(stored):
            raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name}", code=11000)
        self.docs.append(stored)
        return SimpleNamespace(acknowledged=True, inserted_id=stored["_id"])

    async def update_one(self, query, update):
        await asyncio.sleep(0)
        for doc in self.docs:
            if _matches(doc, query):
                before = copy.deepcopy(doc)
                doc.update(update.get("$set", {}))
                return SimpleNamespace(acknowledged=True, matched_count=1, modified_count=int(before != doc))
        return SimpleNamespace(acknowledged=True, matched_count=0, modified_count=0)

    async def delete_one(self, query):
        await asyncio.sleep(0)
        for i, doc in enumerate(self.docs):
            if _matches(doc, query):
                del self.docs[i]
                return SimpleNamespace(acknowledged=True, deleted_count=1)
        return SimpleNamespace(acknowledged=True, deleted_count=0)

    async def count_documents(self, query):
        await asyncio.sleep(0)
        return sum(1 for d in self.docs if _matches(d, query))


class FakeDatabase:
    name = "club_sphere_test"

    def __init__(self):
        self.collections: Dict[str, FakeCollection] = {}

    def __getitem__(self, name: str) -> FakeCollection:
        if name not in self.collections:
            self.collections[name] = FakeCollection(name)
        return self.collections[name]

    async def command(self, name):
        return {"ok": 1}


class StubIdentityVerifier:
    """Accepts `token-<email>` bearer tokens."""

    async def verify(self, token: str) -> VerifiedIdentity:
        if not token.startswith("token-"):
            raise InvalidCredential()
        email = token[len("token-"):]
        return VerifiedIdentity(email=email, uid=f"uid-{email}")


class FakePaymentGateway:
    def __init__(self):
        self.sessions: Dict[str, GatewaySession] = {}
        self.created: List[Dict[str, Any]] = []

    async def create_session(self, *, amount, currency, description, customer_email, notes, callback_url):
        session_id = f"plink_{len(self.sessions) + 1}"
        self.created.append(
            {
                "amount": amount,
                "currency": currency,
                "description": description,
                "customer_email": customer_email,
                "notes": notes,
                "callback_url": callback_url,
            }
        )
        session = GatewaySession(
            session_id=session_id,
            url=f"https://rzp.example/{session_id}",
            status="created",
            state=SessionState.PENDING,
            customer_email=customer_email,
            club_id=notes.get("clubId"),
            club_name=notes.get("clubName"),
            amount_total=amount,
        )
        self.sessions[session_id] = session
        return session

    def mark_paid(self, session_id: str, payment_id: str = "pay_001"):
        self.sessions[session_id] = self.sessions[session_id].model_copy(
            update={"status": "paid", "state": SessionState.PAID, "payment_id": payment_id}
        )

    async def retrieve_session(self, session_id: str) -> GatewaySession:
        if session_id not in self.sessions:
            raise ExternalServiceError("Payment gateway error")
        return self.sessions[session_id]


def auth(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer token-{email}"}


@pytest.fixture
def settings():
    return Settings(
        METRICS_ENABLED=False,
        FIREBASE_PROJECT_ID="club-sphere-test",
        SITE_DOMAIN="https://clubs.example/",
        PAYMENT_CURRENCY="USD",
    )


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
async def db_manager(settings, fake_db):
    manager = DatabaseManager(settings, database=fake_db)
    await manager.connect()
    await manager.create_indexes()
    return manager


@pytest.fixture
def stores(db_manager):
    return EntityStores.from_manager(db_manager)


@pytest.fixture
def views(stores):
    return ViewComposer(stores)


@pytest.fixture
def gateway():
    return FakePaymentGateway()


@pytest.fixture
def app(settings, db_manager, gateway):
    return create_app(
        settings,
        db_manager=db_manager,
        identity_verifier=StubIdentityVerifier(),
        payment_gateway=gateway,
    )


@pytest.fixture
async def client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client


async def add_user(fake_db, email, role="member", name=None):
    result = await fake_db["users"].insert_one(
        {"email": email, "name": name or email.split("@")[0], "role": role, "photoURL": f"https://img/{email}"}
    )
    return result.inserted_id


async def add_club(fake_db, manager_email, status="approved", club_name="Chess Club", **extra):
    result = await fake_db["clubs"].insert_one(
        {"clubName": club_name, "managerEmail": manager_email, "status": status, "membershipFee": 25, **extra}
    )
    return result.inserted_id


async def add_membership(fake_db, club_id, email, status="active", payment_id=None):
    result = await fake_db["memberships"].insert_one(
        {
            "clubId": str(club_id),
            "userEmail": email,
            "status": status,
            "paymentId": payment_id or f"pay_{ObjectId()}",
        }
    )
    return result.inserted_id


async def add_event(fake_db, club_id, event_date="2026-11-02", title="Open Night", **extra):
    result = await fake_db["events"].insert_one(
        {"clubId": str(club_id), "title": title, "eventDate": event_date, "isPaid": False, **extra}
    )
    return result.inserted_id
