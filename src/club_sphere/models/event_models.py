"""
# Event Models

Request models for club events and event registrations.

`eventDate` is kept as an ISO `YYYY-MM-DD` string: the upcoming-events listing
compares it lexically against today's date string, and storing it as text keeps
that comparison exact.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_validator

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")


class RegistrationStatus(str, Enum):
    REGISTERED = "registered"
    CANCELLED = "cancelled"


def _validate_event_date(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    if not ISO_DATE_PATTERN.match(v):
        raise ValueError("eventDate must start with an ISO date (YYYY-MM-DD)")
    return v


class CreateEventRequest(BaseModel):
    clubId: str = Field(..., description="Owning club id")
    title: str = Field(..., min_length=1, description="Event title")
    description: Optional[str] = Field(None, description="Event details")
    eventDate: str = Field(..., description="ISO date, e.g. 2026-11-02")
    location: Optional[str] = Field(None, description="Venue")
    isPaid: bool = Field(False, description="Whether attendance carries a fee")
    eventFee: float = Field(0, ge=0, allow_inf_nan=False, description="Fee in whole currency units")
    maxAttendees: Optional[int] = Field(None, gt=0, description="Capacity")

    @field_validator("eventDate")
    @classmethod
    def check_event_date(cls, v: Optional[str]) -> Optional[str]:
        return _validate_event_date(v)


class UpdateEventRequest(BaseModel):
    """Body of `PATCH /events/{id}`. Only fields present in the body are written."""

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    eventDate: Optional[str] = None
    location: Optional[str] = None
    isPaid: Optional[bool] = None
    eventFee: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    maxAttendees: Optional[int] = Field(None, gt=0)

    @field_validator("eventDate")
    @classmethod
    def check_event_date(cls, v: Optional[str]) -> Optional[str]:
        return _validate_event_date(v)
