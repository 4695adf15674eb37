"""
# Access Gates

Pre-handler checks that admit or reject a request.

| Gate | Needs | Rejects with |
|------|-------|--------------|
| `IdentityGate` | `Authorization: Bearer <token>` | `Unauthenticated` (no header/token), `InvalidCredential` |
| `RoleGate` | a verified `Principal` | `Forbidden` (unknown user or role is not admin) |
| `MembershipGate` | a `Principal` and a `ClubId` | `Forbidden` (no active membership) |

Gates never raise. Each returns a `GateOutcome` carrying either the principal for
the next stage or the error that stopped the chain, and `AccessPipeline` runs them
in order, stopping at the first failure:

```python
pipeline = AccessPipeline(IdentityGate(verifier), [RoleGate(stores.users).check])
principal = await pipeline.admit(request.headers.get("authorization"))
```

The principal is built per request and passed explicitly; nothing is cached between
requests.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence

from club_sphere.errors import ClubSphereError, Forbidden, Unauthenticated
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import PRIVILEGED_ROLE
from club_sphere.models.identifiers import ClubId
from club_sphere.services.entity_stores import MembershipStore, UserStore
from club_sphere.services.identity_service import IdentityVerifier

logger = get_logger(prefix="[ACCESS_GATES]")


@dataclass(frozen=True)
class Principal:
    """The authenticated identity behind a request."""

    email: str
    uid: Optional[str] = None
    user: Optional[Dict[str, Any]] = field(default=None, compare=False)


@dataclass(frozen=True)
class GateOutcome:
    principal: Optional[Principal] = None
    error: Optional[ClubSphereError] = None

    @property
    def admitted(self) -> bool:
        return self.error is None and self.principal is not None

    @classmethod
    def admit(cls, principal: Principal) -> "GateOutcome":
        return cls(principal=principal)

    @classmethod
    def reject(cls, error: ClubSphereError) -> "GateOutcome":
        return cls(error=error)

    def unwrap(self) -> Principal:
        if self.error is not None:
            raise self.error
        return self.principal


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    """Second whitespace-separated part of the header, as in `Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) < 2:
        return None
    return parts[1] or None


class IdentityGate:
    def __init__(self, verifier: IdentityVerifier):
        self.verifier = verifier

    async def check(self, authorization: Optional[str]) -> GateOutcome:
        token = bearer_token(authorization)
        if token is None:
            logger.warning("Rejected request without bearer credential")
            return GateOutcome.reject(Unauthenticated())
        try:
            identity = await self.verifier.verify(token)
        except ClubSphereError as e:
            logger.warning(f"Rejected credential: {e.message}")
            return GateOutcome.reject(e)
        return GateOutcome.admit(Principal(email=identity.email, uid=identity.uid))


class RoleGate:
    """Admits principals whose stored user document has the privileged role."""

    def __init__(self, users: UserStore):
        self.users = users

    async def check(self, principal: Principal) -> GateOutcome:
        user = await self.users.get_by_email(principal.email)
        if not user or user.get("role") != PRIVILEGED_ROLE.value:
            logger.warning(f"Role gate rejected {principal.email}")
            return GateOutcome.reject(Forbidden())
        return GateOutcome.admit(Principal(email=principal.email, uid=principal.uid, user=user))


class MembershipGate:
    """Admits principals holding an active membership in the target club."""

    def __init__(self, memberships: MembershipStore):
        self.memberships = memberships

    async def check(self, principal: Principal, club_id: Optional[ClubId]) -> GateOutcome:
        if club_id is None:
            return GateOutcome.reject(Forbidden("You must be a member of this club"))
        membership = await self.memberships.get_active(club_id, principal.email)
        if membership is None:
            logger.warning(f"Membership gate rejected {principal.email} for club {club_id}")
            return GateOutcome.reject(Forbidden("You must be a member of this club"))
        return GateOutcome.admit(principal)


Stage = Callable[[Principal], Awaitable[GateOutcome]]


class AccessPipeline:
    """Identity check followed by an ordered list of capability checks."""

    def __init__(self, identity_gate: IdentityGate, stages: Sequence[Stage] = ()):
        self.identity_gate = identity_gate
        self.stages = list(stages)

    async def run(self, authorization: Optional[str]) -> GateOutcome:
        outcome = await self.identity_gate.check(authorization)
        for stage in self.stages:
            if not outcome.admitted:
                break
            outcome = await stage(outcome.principal)
        return outcome

    async def admit(self, authorization: Optional[str]) -> Principal:
        """Run the pipeline and return the principal, raising the first gate error."""
        return (await self.run(authorization)).unwrap()


def ensure_club_manager(principal: Principal, club: Dict[str, Any]) -> None:
    """
    Raises:
        Forbidden: If the principal does not manage `club`.
    """
    if club.get("managerEmail") != principal.email:
        logger.warning(f"{principal.email} is not the manager of club {club.get('_id')}")
        raise Forbidden("Only the club manager can do this")
