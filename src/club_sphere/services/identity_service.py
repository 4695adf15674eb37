"""
# Identity Service

Verifies Firebase ID tokens presented by the web client.

Firebase ID tokens are RS256 JWTs signed with rotating Google keys. Verification:

1. Read `kid` from the unverified header.
2. Look the key up in Google's published x509 certificates (fetched with **httpx** and
   cached process-wide until the response's `Cache-Control: max-age` runs out).
3. Decode with **python-jose**, enforcing signature, expiry, audience (the project id)
   and issuer (`https://securetoken.google.com/<project id>`).
4. Require a non-empty `sub` and an `email` claim; the email becomes the principal.

Failures surface as:

- `InvalidCredential`: the token is malformed, expired, for another project, signed
  with an unknown key, or carries no email.
- `ExternalServiceError`: the certificate endpoint could not be reached.
"""

import asyncio
import re
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
from jose import ExpiredSignatureError, JWTError, jwt

from club_sphere.errors import ExternalServiceError, InvalidCredential
from club_sphere.managers.logging_manager import get_logger

logger = get_logger(prefix="[IDENTITY]")

GOOGLE_CERTS_URL = "https://www.googleapis.com/robot/v1/metadata/x509/securetoken@system.gserviceaccount.com"
ISSUER_PREFIX = "https://securetoken.google.com/"
DEFAULT_CERT_TTL_SECONDS = 3600
MAX_AGE_PATTERN = re.compile(r"max-age=(\d+)")


@dataclass(frozen=True)
class VerifiedIdentity:
    email: str
    uid: str
    claims: Dict[str, Any] = field(default_factory=dict, compare=False)


class IdentityVerifier:
    """
    Firebase ID-token verifier.

    One instance is created per application (see `club_sphere.main.lifespan`) and the
    signing certificates are shared across requests. Verified identities are never
    cached; every request is verified on its own.
    """

    def __init__(
        self,
        project_id: Optional[str],
        http_client: Optional[httpx.AsyncClient] = None,
        certs_url: str = GOOGLE_CERTS_URL,
    ):
        self.project_id = project_id
        self.certs_url = certs_url
        self._http_client = http_client
        self._owns_client = http_client is None
        self._certs: Dict[str, str] = {}
        self._certs_expire_at = 0.0
        self._lock = asyncio.Lock()

    async def verify(self, token: str) -> VerifiedIdentity:
        if not self.project_id:
            logger.error("Identity verification requested but no project id is configured")
            raise ExternalServiceError("Identity provider is not configured")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise InvalidCredential() from e

        kid = header.get("kid")
        if header.get("alg") != "RS256" or not kid:
            raise InvalidCredential()

        certs = await self._get_certs()
        cert = certs.get(kid)
        if cert is None:
            logger.warning(f"ID token signed with unknown key id {kid}")
            raise InvalidCredential()

        try:
            claims = jwt.decode(
                token,
                cert,
                algorithms=["RS256"],
                audience=self.project_id,
                issuer=f"{ISSUER_PREFIX}{self.project_id}",
                options={"verify_at_hash": False},
            )
        except ExpiredSignatureError as e:
            raise InvalidCredential("Invalid or expired token.") from e
        except JWTError as e:
            logger.warning(f"ID token rejected: {e}")
            raise InvalidCredential() from e

        uid = claims.get("sub")
        email = claims.get("email")
        if not uid or not email:
            raise InvalidCredential()
        return VerifiedIdentity(email=email, uid=uid, claims=claims)

    async def _get_certs(self) -> Dict[str, str]:
        if self._certs and time.monotonic() < self._certs_expire_at:
            return self._certs

        async with self._lock:
            if self._certs and time.monotonic() < self._certs_expire_at:
                return self._certs

            client = self._client()
            try:
                response = await client.get(self.certs_url)
                response.raise_for_status()
                certs = response.json()
            except (httpx.HTTPError, ValueError) as e:
                logger.error(f"Failed to fetch identity signing certificates: {e}")
                raise ExternalServiceError("Identity provider unavailable") from e

            ttl = DEFAULT_CERT_TTL_SECONDS
            match = MAX_AGE_PATTERN.search(response.headers.get("cache-control", ""))
            if match:
                ttl = int(match.group(1))

            self._certs = certs
            self._certs_expire_at = time.monotonic() + ttl
            logger.info(f"Loaded {len(certs)} identity signing certificates (ttl {ttl}s)")
            return self._certs

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=10.0)
        return self._http_client

    async def aclose(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
