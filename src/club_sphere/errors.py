"""
Domain errors.

Every failure a handler can report maps to one of these classes. The application
turns them into `{"message": ...}` JSON responses with the class' status code (see
`club_sphere.main`), so routes and services raise them instead of building HTTP
responses themselves.
"""

from typing import Optional

from fastapi import status


class ClubSphereError(Exception):
    """Base class for errors that carry a user-visible message and an HTTP status."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message: str = "Server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class Unauthenticated(ClubSphereError):
    """No credential was presented."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "unauthorized access"


class InvalidCredential(ClubSphereError):
    """The identity verifier rejected the credential."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Invalid or expired token."


class Forbidden(ClubSphereError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "forbidden access"


class NotFound(ClubSphereError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(ClubSphereError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Already exists"


class ValidationError(ClubSphereError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class ExternalServiceError(ClubSphereError):
    """An identity, payment or storage collaborator failed."""

    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failure"
