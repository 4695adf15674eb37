"""HTTP-level tests against the assembled application."""

import pytest
from bson import ObjectId
from httpx import ASGITransport, AsyncClient

from club_sphere.database.manager import DatabaseManager
from club_sphere.main import create_app
from conftest import FakePaymentGateway, StubIdentityVerifier, add_club, add_event, add_membership, add_user, auth


@pytest.mark.asyncio
async def test_root_and_health(client):
    root = await client.get("/")
    assert root.status_code == 200
    assert root.text == "club-sphere server available"

    health = await client.get("/health")
    assert health.status_code == 200
    assert health.json() == {"status": "healthy", "database": True}


@pytest.mark.asyncio
async def test_create_user_always_member(client, fake_db):
    response = await client.post(
        "/users", json={"email": "ana@example.com", "name": "Ana", "role": "admin", "photoURL": "https://img/a"}
    )
    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User created"

    [user] = fake_db["users"].docs
    assert str(user["_id"]) == body["userId"]
    assert user["role"] == "member"
    assert user["photoURL"] == "https://img/a"

    duplicate = await client.post("/users", json={"email": "ana@example.com"})
    assert duplicate.status_code == 409
    assert duplicate.json() == {"message": "User already exists"}


@pytest.mark.asyncio
async def test_invalid_body_is_bad_request(client):
    response = await client.post("/users", json={"name": "No Email"})
    assert response.status_code == 400
    assert response.json()["message"] == "Invalid request"


@pytest.mark.asyncio
async def test_identity_and_role_gates(client, fake_db):
    await add_user(fake_db, "admin@example.com", role="admin")
    await add_user(fake_db, "ana@example.com")

    missing = await client.get("/users")
    assert missing.status_code == 401
    assert missing.json() == {"message": "unauthorized access"}

    bad = await client.get("/users", headers={"Authorization": "Bearer forged"})
    assert bad.status_code == 403
    assert bad.json() == {"message": "Invalid or expired token."}

    member = await client.get("/users", headers=auth("ana@example.com"))
    assert member.status_code == 403
    assert member.json() == {"message": "forbidden access"}

    admin = await client.get("/users", headers=auth("admin@example.com"))
    assert admin.status_code == 200
    assert {u["email"] for u in admin.json()} == {"admin@example.com", "ana@example.com"}
    assert all(isinstance(u["_id"], str) for u in admin.json())


@pytest.mark.asyncio
async def test_admin_changes_role(client, fake_db):
    await add_user(fake_db, "admin@example.com", role="admin")
    ana_id = await add_user(fake_db, "ana@example.com")

    response = await client.patch(f"/users/{ana_id}/role", json={"role": "admin"}, headers=auth("admin@example.com"))
    assert response.status_code == 200
    assert response.json()["modifiedCount"] == 1

    own = await client.get("/users/ana@example.com/role", headers=auth("ana@example.com"))
    assert own.json()["role"] == "admin"

    missing = await client.patch(
        f"/users/{ObjectId()}/role", json={"role": "member"}, headers=auth("admin@example.com")
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_user_profile_is_self_only(client, fake_db):
    await add_user(fake_db, "ana@example.com")
    response = await client.get("/users/ana@example.com/role", headers=auth("bo@example.com"))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_club_is_pending(client):
    response = await client.post(
        "/clubs",
        json={"clubName": "Chess Club", "managerEmail": "boss@example.com", "membershipFee": 25, "status": "approved"},
    )
    assert response.status_code == 200
    assert response.json()["acknowledged"] is True

    pending = await client.get("/clubs", params={"status": "pending"})
    [club] = pending.json()
    assert club["_id"] == response.json()["insertedId"]
    assert club["status"] == "pending"

    assert (await client.get("/clubs", params={"status": "approved"})).json() == []


@pytest.mark.asyncio
async def test_club_status_and_update(client, fake_db):
    club_id = await add_club(fake_db, "boss@example.com", status="pending")

    approved = await client.patch(f"/clubs/{club_id}/status", json={"status": "approved"})
    assert approved.status_code == 200
    assert fake_db["clubs"].docs[0]["status"] == "approved"

    invalid = await client.patch(f"/clubs/{club_id}/status", json={"status": "archived"})
    assert invalid.status_code == 400

    updated = await client.patch(f"/clubs/{club_id}", json={"location": "Library"})
    assert updated.json()["matchedCount"] == 1
    assert fake_db["clubs"].docs[0]["location"] == "Library"
    assert fake_db["clubs"].docs[0]["clubName"] == "Chess Club"

    missing = await client.patch(f"/clubs/{ObjectId()}", json={"location": "Nowhere"})
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_club_details_errors(client):
    missing = await client.get(f"/clubs/{ObjectId()}/details")
    assert missing.status_code == 404
    assert missing.json() == {"message": "Club not found"}

    malformed = await client.get("/clubs/not-an-id/details")
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_roster_and_members_views(client, fake_db):
    await add_user(fake_db, "ana@example.com", name="Ana")
    club_id = await add_club(fake_db, "boss@example.com")
    await add_membership(fake_db, club_id, "ana@example.com")

    [roster] = (await client.get("/clubs/boss@example.com/members")).json()
    assert roster["_id"] == str(club_id)
    assert roster["members"][0]["name"] == "Ana"

    [club] = (await client.get("/clubs/members", params={"email": "boss@example.com"})).json()
    assert club["members"][0]["userEmail"] == "ana@example.com"


@pytest.mark.asyncio
async def test_manager_views_reject_blank_email(client, fake_db):
    club_id = await add_club(fake_db, "boss@example.com")
    await add_membership(fake_db, club_id, "ana@example.com")
    await add_event(fake_db, club_id)

    members = await client.get("/clubs/members", params={"email": ""})
    assert members.status_code == 400

    events = await client.get("/events", params={"email": ""})
    assert events.status_code == 400


@pytest.mark.asyncio
async def test_checkout_flow(client, fake_db, gateway):
    club_id = await add_club(fake_db, "boss@example.com")

    started = await client.post(
        "/payment-checkout-session",
        json={"_id": str(club_id), "clubName": "Chess Club", "membershipFee": 25, "email": "ana@example.com"},
    )
    assert started.status_code == 200
    session_id = started.json()["sessionId"]
    assert started.json()["url"].endswith(session_id)
    assert gateway.created[0]["amount"] == 2500
    assert gateway.created[0]["callback_url"] == "https://clubs.example/dashboard/payment-success"

    gateway.mark_paid(session_id, "pay_777")
    for _ in range(2):
        status = await client.get("/session-status", params={"session_id": session_id})
        assert status.json() == {"status": "paid", "clubName": "Chess Club", "amount": 25.0}

    assert len(fake_db["memberships"].docs) == 1
    assert len(fake_db["payments"].docs) == 1

    [mine] = (await client.get("/my-clubs", params={"email": "ana@example.com"})).json()
    assert mine["clubName"] == "Chess Club"
    assert mine["paymentId"] == "pay_777"

    [payment] = (await client.get("/my-payments", headers=auth("ana@example.com"))).json()
    assert payment["amount"] == 25


@pytest.mark.asyncio
async def test_checkout_ignores_client_supplied_price(client, fake_db, gateway):
    club_id = await add_club(fake_db, "boss@example.com", club_name="Yacht Club", membershipFee=100)

    started = await client.post(
        "/payment-checkout-session",
        json={"_id": str(club_id), "clubName": "Cheap Club", "membershipFee": 1, "email": "ana@example.com"},
    )

    assert started.status_code == 200
    assert gateway.created[0]["amount"] == 10000
    assert gateway.created[0]["notes"]["clubName"] == "Yacht Club"


@pytest.mark.asyncio
async def test_checkout_for_missing_or_malformed_club(client, gateway):
    missing = await client.post(
        "/payment-checkout-session", json={"clubId": str(ObjectId()), "email": "ana@example.com"}
    )
    assert missing.status_code == 404
    assert missing.json() == {"message": "Club not found"}

    malformed = await client.post("/payment-checkout-session", json={"clubId": "nope", "email": "ana@example.com"})
    assert malformed.status_code == 400
    assert gateway.created == []


@pytest.mark.asyncio
async def test_non_finite_fees_are_bad_requests(client, fake_db):
    headers = {"Content-Type": "application/json"}

    club = await client.post(
        "/clubs",
        content='{"clubName": "X", "managerEmail": "boss@example.com", "membershipFee": 1e400}',
        headers=headers,
    )
    assert club.status_code == 400
    assert fake_db["clubs"].docs == []

    club_id = await add_club(fake_db, "boss@example.com")
    checkout = await client.post(
        "/payment-checkout-session",
        content=f'{{"clubId": "{club_id}", "email": "ana@example.com", "membershipFee": 1e400}}',
        headers=headers,
    )
    assert checkout.status_code == 400


@pytest.mark.asyncio
async def test_session_status_gateway_failure(client):
    response = await client.get("/session-status", params={"session_id": "plink_unknown"})
    assert response.status_code == 502
    assert response.json() == {"message": "Payment gateway error"}


@pytest.mark.asyncio
async def test_payments_listing_is_admin_only(client, fake_db):
    await add_user(fake_db, "ana@example.com")
    response = await client.get("/payments", headers=auth("ana@example.com"))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_event_registration_over_http(client, fake_db):
    club_id = await add_club(fake_db, "boss@example.com")
    await add_membership(fake_db, club_id, "ana@example.com")
    event_id = await add_event(fake_db, club_id)

    outsider = await client.post(f"/events/{event_id}/register", headers=auth("stranger@example.com"))
    assert outsider.status_code == 403
    assert outsider.json() == {"message": "You must be a member of this club"}
    assert fake_db["eventRegistrations"].docs == []

    first = await client.post(f"/events/{event_id}/register", headers=auth("ana@example.com"))
    assert first.status_code == 201

    again = await client.post(f"/events/{event_id}/register", headers=auth("ana@example.com"))
    assert again.status_code == 409

    [mine] = (await client.get("/my-events", headers=auth("ana@example.com"))).json()
    assert mine["eventId"] == str(event_id)

    cancelled = await client.patch(f"/events/{event_id}/cancel", headers=auth("ana@example.com"))
    assert cancelled.status_code == 200
    assert (await client.get("/my-events", headers=auth("ana@example.com"))).json() == []


@pytest.mark.asyncio
async def test_event_management_over_http(client, fake_db):
    club_id = await add_club(fake_db, "boss@example.com")
    body = {"clubId": str(club_id), "title": "Blitz", "eventDate": "2026-11-20"}

    forbidden = await client.post("/events", json=body, headers=auth("ana@example.com"))
    assert forbidden.status_code == 403

    created = await client.post("/events", json=body, headers=auth("boss@example.com"))
    assert created.status_code == 201
    event_id = created.json()["insertedId"]

    detail = await client.get(f"/events/{event_id}")
    assert detail.json()["clubName"] == "Chess Club"

    [listed] = (await client.get("/events", params={"email": "boss@example.com"})).json()
    assert listed["title"] == "Blitz"

    bad_date = await client.patch(f"/events/{event_id}", json={"eventDate": "soon"}, headers=auth("boss@example.com"))
    assert bad_date.status_code == 400

    deleted = await client.delete(f"/events/{event_id}", headers=auth("boss@example.com"))
    assert deleted.json()["deletedCount"] == 1


@pytest.mark.asyncio
async def test_unexpected_failure_is_generic_server_error(settings):
    disconnected = DatabaseManager(settings)
    app = create_app(
        settings,
        db_manager=disconnected,
        identity_verifier=StubIdentityVerifier(),
        payment_gateway=FakePaymentGateway(),
    )
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        response = await http_client.get("/clubs")

    assert response.status_code == 500
    assert response.json() == {"message": "Server error"}


@pytest.mark.asyncio
async def test_lifespan_prepares_injected_database(settings, fake_db, gateway):
    verifier = StubIdentityVerifier()
    app = create_app(
        settings,
        db_manager=DatabaseManager(settings, database=fake_db),
        identity_verifier=verifier,
        payment_gateway=gateway,
    )

    async with app.router.lifespan_context(app):
        assert app.state.identity_verifier is verifier
        assert app.state.payment_gateway is gateway
        indexed = {name: [i["fields"] for i in c.indexes] for name, c in fake_db.collections.items()}

    assert ["paymentId"] in indexed["memberships"]
    assert ["eventId", "userEmail"] in indexed["eventRegistrations"]
    assert ["email"] in indexed["users"]


@pytest.mark.asyncio
async def test_clubs_by_creator(client, fake_db):
    await add_club(fake_db, "boss@example.com", club_name="Chess Club")
    await add_club(fake_db, "boss@example.com", status="pending", club_name="Go Club")
    await add_club(fake_db, "other@example.com", club_name="Elsewhere")

    mine = await client.get("/clubs/by-creator", params={"email": "boss@example.com"})
    assert {c["clubName"] for c in mine.json()} == {"Chess Club", "Go Club"}

    approved = await client.get("/clubs/by-creator", params={"email": "boss@example.com", "status": "approved"})
    assert [c["clubName"] for c in approved.json()] == ["Chess Club"]
