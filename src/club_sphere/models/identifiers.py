"""
Typed entity identifiers.

Reference fields such as `Event.clubId` or `Membership.clubId` are stored as plain
strings, while the referenced documents are keyed by a native `ObjectId`. Wrapping
both sides in the same identifier type gives joins one well-defined equality:

```python
ClubId.of(club["_id"]) == ClubId.of(event["clubId"])   # ObjectId vs str, same value
ClubId.of(x) == EventId.of(x)                           # False, different entity kinds
```

`parse()` is the strict constructor used for request input; it rejects anything that
is not a valid 24-character hex `ObjectId`.
"""

from dataclasses import dataclass
from typing import Any, Optional

from bson import ObjectId
from bson.errors import InvalidId

from club_sphere.errors import ValidationError


@dataclass(frozen=True)
class EntityId:
    """Value-typed identifier; equal only to ids of the same kind with the same value."""

    value: str

    kind = "entity"

    @classmethod
    def of(cls, raw: Any) -> "EntityId":
        """Wrap a stored value (`ObjectId` or string) without validating it."""
        if isinstance(raw, cls):
            return raw
        return cls(str(raw).strip())

    @classmethod
    def maybe(cls, raw: Any) -> Optional["EntityId"]:
        if raw is None or raw == "":
            return None
        return cls.of(raw)

    @classmethod
    def parse(cls, raw: Any) -> "EntityId":
        """
        Validate request input.

        Raises:
            ValidationError: If `raw` is not a well-formed object id.
        """
        candidate = cls.of(raw)
        try:
            ObjectId(candidate.value)
        except (InvalidId, TypeError) as e:
            raise ValidationError(f"Invalid {cls.kind} id: {raw!r}") from e
        return candidate

    def as_object_id(self) -> ObjectId:
        try:
            return ObjectId(self.value)
        except (InvalidId, TypeError) as e:
            raise ValidationError(f"Invalid {self.kind} id: {self.value!r}") from e

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class UserId(EntityId):
    kind = "user"


@dataclass(frozen=True)
class ClubId(EntityId):
    kind = "club"


@dataclass(frozen=True)
class MembershipId(EntityId):
    kind = "membership"


@dataclass(frozen=True)
class EventId(EntityId):
    kind = "event"


@dataclass(frozen=True)
class RegistrationId(EntityId):
    kind = "registration"


@dataclass(frozen=True)
class PaymentRef:
    """Gateway payment identifier, the idempotency key of a confirmed checkout."""

    value: str

    def __str__(self) -> str:
        return self.value
