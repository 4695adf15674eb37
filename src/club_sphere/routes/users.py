"""
User API Routes.

- `POST /users` registers a profile after the client signs in with the identity
  provider. New users always get `role="member"`.
- `GET /users/{email}/role` lets a signed-in user read their own profile.
- `GET /users` and `PATCH /users/{id}/role` are admin only.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from club_sphere.errors import Forbidden, NotFound
from club_sphere.managers.logging_manager import get_logger
from club_sphere.models.club_models import CreateUserRequest, UpdateRoleRequest
from club_sphere.models.identifiers import UserId
from club_sphere.routes.dependencies import get_stores, require_admin, require_principal
from club_sphere.services.access_gates import Principal
from club_sphere.services.entity_stores import EntityStores
from club_sphere.utils.serialization import to_public

router = APIRouter(tags=["Users"])
logger = get_logger(prefix="[USER_ROUTES]")


@router.get(
    "/users/{email}/role",
    summary="Get own user profile and role",
    responses={403: {"description": "Email does not belong to the caller"}},
)
async def get_user_role(
    email: str,
    principal: Principal = Depends(require_principal),
    stores: EntityStores = Depends(get_stores),
):
    if principal.email != email:
        raise Forbidden()
    return to_public(await stores.users.get_by_email(email))


@router.patch("/users/{user_id}/role", summary="Change a user's role (admin)")
async def update_user_role(
    user_id: str,
    request: UpdateRoleRequest,
    principal: Principal = Depends(require_admin),
    stores: EntityStores = Depends(get_stores),
):
    result = await stores.users.set_role(UserId.parse(user_id), request.role)
    if not result["matchedCount"]:
        raise NotFound("User not found")
    logger.info(f"{principal.email} set role of user {user_id} to {request.role.value}")
    return result


@router.get("/users", summary="List all users (admin)")
async def list_users(
    principal: Principal = Depends(require_admin),
    stores: EntityStores = Depends(get_stores),
):
    return to_public(await stores.users.list_all())


@router.post(
    "/users",
    status_code=status.HTTP_201_CREATED,
    summary="Create user profile",
    responses={409: {"description": "User already exists"}},
)
async def create_user(request: CreateUserRequest, stores: EntityStores = Depends(get_stores)) -> Dict[str, Any]:
    user = request.model_dump(exclude_none=True)
    user.pop("role", None)
    user.pop("createdAt", None)
    user_id = await stores.users.create(user)
    logger.info(f"Created user {request.email}")
    return {"message": "User created", "userId": user_id}
