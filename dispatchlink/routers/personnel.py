from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user
from dispatchlink.core.errors import UserNotFoundError
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.models import User
from dispatchlink.schemas import AvailablePersonnel, User as UserSchema, VehicleRelease
from dispatchlink.crud.user import get_available_personnel, get_user_by_username, release_vehicle

logger = get_logger("dispatchlink.personnel")

router = APIRouter()


@router.get("/personnel/available", response_model=List[AvailablePersonnel])
async def read_available_personnel(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Police officers and firefighters who are not assigned to a city yet.
    """
    return [
        AvailablePersonnel(id=user.id, name=user.username, assigned_city=user.assigned_city)
        for user in await get_available_personnel(db)
    ]


@router.put("/personnel/{username}/vehicle/release", response_model=UserSchema)
async def release_personnel_vehicle(
    username: str,
    release_in: VehicleRelease,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    user = await get_user_by_username(db, username=username)
    if not user:
        raise UserNotFoundError(username)

    user = await release_vehicle(db, db_obj=user, vehicle_name=release_in.vehicle_name)
    logger.info(f"{release_in.vehicle_name} released by {username}")
    return user
