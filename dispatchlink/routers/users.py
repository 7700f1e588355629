from typing import Annotated, Any, List

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user, get_registry
from dispatchlink.db.session import get_db
from dispatchlink.models import User
from dispatchlink.schemas import Location, RoleAssignment, User as UserSchema, UserWithStatus
from dispatchlink.crud.user import get_user_or_404, get_users, update_user_assignment, update_user_location
from dispatchlink.services.connection_registry import ConnectionRegistry

router = APIRouter()


def with_status(user: User, registry: ConnectionRegistry) -> UserWithStatus:
    return UserWithStatus(**UserSchema.model_validate(user).model_dump(), online=registry.is_online(user.id))


@router.get("/users/me", response_model=UserSchema)
async def read_user_me(
    current_user: User = Depends(get_current_user),
) -> Any:
    """
    Get current user.
    """
    return current_user


@router.get("/users", response_model=List[UserWithStatus])
async def read_users(
    skip: int = 0,
    limit: int = 100,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Retrieve users with their online status.
    Online users come first; each group is sorted by username.
    """
    users = [with_status(user, registry) for user in await get_users(db, skip=skip, limit=limit)]
    online = sorted((u for u in users if u.online), key=lambda u: u.username)
    offline = sorted((u for u in users if not u.online), key=lambda u: u.username)
    return online + offline


@router.get("/users/{user_id}", response_model=UserWithStatus)
async def read_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Get a specific user by id.
    """
    user = await get_user_or_404(db, id=user_id)
    return with_status(user, registry)


@router.get("/users/{user_id}/location", response_model=Location)
async def read_user_location(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Get a user's last known location.
    """
    user = await get_user_or_404(db, id=user_id)
    return Location(latitude=user.previous_latitude, longitude=user.previous_longitude)


@router.put("/users/{user_id}/location", response_model=Location)
async def update_location(
    user_id: int,
    location_in: Location,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Update a user's last known location.
    """
    user = await get_user_or_404(db, id=user_id)
    user = await update_user_location(db, db_obj=user, location=location_in)
    return Location(latitude=user.previous_latitude, longitude=user.previous_longitude)


@router.put("/users/{user_id}/assignment", response_model=UserSchema)
async def update_assignment(
    user_id: int,
    assignment_in: Annotated[RoleAssignment, Body(discriminator="role")],
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Assign a car (Police) or truck (Fire) and city to a responder.
    """
    user = await get_user_or_404(db, id=user_id)
    return await update_user_assignment(db, db_obj=user, assignment=assignment_in)
