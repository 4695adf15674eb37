"""
Index definitions.

The unique indexes here are what make the write paths safe under concurrency:

- `memberships.paymentId` / `payments.paymentId`: a confirmed checkout inserts both
  records straight away; a duplicate key means another request already did, and
  is treated as the idempotent outcome.
- `eventRegistrations (eventId, userEmail)` with a partial filter on
  `status == "registered"`: at most one live registration per user and event, while
  any number of cancelled ones may remain.
- `users.email`: one user document per email.
"""

from pymongo import ASCENDING, DESCENDING

COLLECTION_INDEXES = {
    "users": [
        ("email", {"unique": True, "name": "email_unique"}),
    ],
    "clubs": [
        ("managerEmail", {}),
        ("status", {}),
        ([("createdAt", DESCENDING)], {}),
    ],
    "memberships": [
        ("paymentId", {"unique": True, "sparse": True, "name": "paymentId_unique"}),
        ([("clubId", ASCENDING), ("userEmail", ASCENDING), ("status", ASCENDING)], {}),
    ],
    "events": [
        ("clubId", {}),
        ("eventDate", {}),
    ],
    "eventRegistrations": [
        (
            [("eventId", ASCENDING), ("userEmail", ASCENDING)],
            {
                "unique": True,
                "partialFilterExpression": {"status": "registered"},
                "name": "live_registration_unique",
            },
        ),
        ("clubId", {}),
    ],
    "payments": [
        ("paymentId", {"unique": True, "sparse": True, "name": "paymentId_unique"}),
        ("userEmail", {}),
    ],
}
