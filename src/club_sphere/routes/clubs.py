"""
# Club Routes

REST endpoints for club profiles and the manager-facing member views.

## Endpoints

- `GET /clubs` - list clubs, optional `status` filter, newest first
- `GET /clubs/by-creator` - clubs by `email` (manager) and/or `status`
- `GET /clubs/{id}/details` - club with its organizer's public profile
- `POST /clubs` - create a club (always `pending`)
- `PATCH /clubs/{id}` - update profile fields
- `PATCH /clubs/{id}/status` - approve / reject
- `GET /clubs/members?email=` - managed clubs with their memberships
- `GET /clubs/{email}/members` - roster of the manager's approved clubs
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from club_sphere.errors import NotFound
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import CreateClubRequest, UpdateClubRequest, UpdateClubStatusRequest
from club_sphere.models.identifiers import ClubId
from club_sphere.routes.dependencies import get_stores, get_views
from club_sphere.services.entity_stores import EntityStores
from club_sphere.services.view_composer import ViewComposer
from club_sphere.utils.serialization import to_public

router = APIRouter(tags=["Clubs"])
logger = get_logger(prefix="[CLUB_ROUTES]")


@router.get("/clubs", summary="List clubs")
async def list_clubs(status: Optional[str] = None, stores: EntityStores = Depends(get_stores)):
    return to_public(await stores.clubs.list_by_status(status))


@router.get("/clubs/by-creator", summary="List clubs by manager email and/or status")
async def list_clubs_by_creator(
    email: Optional[str] = None,
    status: Optional[str] = None,
    stores: EntityStores = Depends(get_stores),
):
    return to_public(await stores.clubs.list_by_manager(email, status))


@router.get("/clubs/members", summary="Managed clubs with their memberships")
async def list_club_members(email: str = Query(..., min_length=1), views: ViewComposer = Depends(get_views)):
    return to_public(await views.club_members(email))


@router.get("/clubs/{email}/members", summary="Member roster of a manager's approved clubs")
async def get_club_roster(email: str, views: ViewComposer = Depends(get_views)):
    return to_public(await views.club_roster(email))


@router.get(
    "/clubs/{club_id}/details",
    summary="Club details with organizer",
    responses={404: {"description": "Club not found"}},
)
async def get_club_details(club_id: str, views: ViewComposer = Depends(get_views)):
    return to_public(await views.club_detail(ClubId.parse(club_id)))


@router.post("/clubs", summary="Create club")
async def create_club(request: CreateClubRequest, stores: EntityStores = Depends(get_stores)):
    club = request.model_dump(exclude_none=True)
    club.pop("status", None)
    result = await stores.clubs.create(club)
    logger.info(f"Club {result['insertedId']} created by {request.managerEmail}")
    return result


@router.patch("/clubs/{club_id}", summary="Update club profile")
async def update_club(club_id: str, request: UpdateClubRequest, stores: EntityStores = Depends(get_stores)):
    result = await stores.clubs.update_fields(ClubId.parse(club_id), request.model_dump(exclude_unset=True))
    if not result["matchedCount"]:
        raise NotFound("Club not found")
    return result


@router.patch("/clubs/{club_id}/status", summary="Set club status")
async def update_club_status(
    club_id: str, request: UpdateClubStatusRequest, stores: EntityStores = Depends(get_stores)
):
    result = await stores.clubs.set_status(ClubId.parse(club_id), request.status)
    if not result["matchedCount"]:
        raise NotFound("Club not found")
    logger.info(f"Club {club_id} status set to {request.status.value}")
    return result
