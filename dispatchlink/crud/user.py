from datetime import datetime
from typing import List, Optional, Union

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, InvalidStateError, NotFoundError
from dispatchlink.core.security import get_password_hash, verify_password
from dispatchlink.models import User, UserRole
from dispatchlink.schemas import FireAssignment, Location, PoliceAssignment, UserCreate

RESPONDER_VEHICLE_FIELDS = {
    UserRole.POLICE: "assigned_car",
    UserRole.FIRE: "assigned_truck",
}


async def get_user(db: AsyncSession, id: int) -> Optional[User]:
    """
    Get a user by ID.
    """
    result = await db.execute(select(User).filter(User.id == id))
    return result.scalars().first()


async def get_user_or_404(db: AsyncSession, id: int) -> User:
    user = await get_user(db, id=id)
    if not user:
        raise NotFoundError(f"User with ID {id} not found")
    return user


async def get_user_by_username(db: AsyncSession, username: str) -> Optional[User]:
    """
    Get a user by username.
    """
    result = await db.execute(select(User).filter(User.username == username))
    return result.scalars().first()


async def get_users(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[User]:
    """
    Get multiple users with pagination.
    """
    result = await db.execute(select(User).order_by(User.id).offset(skip).limit(limit))
    return result.scalars().all()


async def get_users_by_role(db: AsyncSession, role: UserRole) -> List[User]:
    """
    Get every user holding a role, ordered by ID.
    """
    result = await db.execute(select(User).filter(User.role == role).order_by(User.id))
    return result.scalars().all()


async def create_user(db: AsyncSession, obj_in: UserCreate) -> User:
    """
    Create a new user. Usernames are unique.
    """
    if await get_user_by_username(db, username=obj_in.username):
        raise AlreadyExistsError(f'User "{obj_in.username}" already exists')

    db_obj = User(
        username=obj_in.username,
        hashed_password=get_password_hash(obj_in.password),
        role=obj_in.role or UserRole.CITIZEN,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def update_user_location(db: AsyncSession, db_obj: User, location: Location) -> User:
    db_obj.previous_latitude = location.latitude
    db_obj.previous_longitude = location.longitude
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def update_user_assignment(
    db: AsyncSession, db_obj: User, assignment: Union[PoliceAssignment, FireAssignment]
) -> User:
    """
    Apply a vehicle/city assignment. The assignment's role tag must match the user's role.
    """
    if db_obj.role != assignment.role:
        raise InvalidStateError(
            f"{assignment.role} assignment is not allowed for user with role {db_obj.role.value}"
        )

    update_data = assignment.model_dump(exclude={"role"}, exclude_unset=True)
    for field in update_data:
        setattr(db_obj, field, update_data[field])
    db_obj.assigned_vehicle_timestamp = datetime.utcnow()

    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def get_available_personnel(db: AsyncSession) -> List[User]:
    """
    Police and Fire users not yet assigned to a city, ordered by username.
    """
    result = await db.execute(
        select(User)
        .filter(User.role.in_(list(RESPONDER_VEHICLE_FIELDS)), User.assigned_city.is_(None))
        .order_by(User.username)
    )
    return result.scalars().all()


async def release_vehicle(db: AsyncSession, db_obj: User, vehicle_name: str) -> User:
    """
    Release the car or truck a responder currently holds.
    """
    field = RESPONDER_VEHICLE_FIELDS.get(UserRole(db_obj.role))
    if field is None:
        raise InvalidStateError(f"User {db_obj.username} is not a police officer or firefighter")
    if getattr(db_obj, field) != vehicle_name:
        raise InvalidStateError(f"Vehicle {vehicle_name} is not assigned to {db_obj.username}")

    setattr(db_obj, field, None)
    db_obj.assigned_vehicle_timestamp = None

    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def authenticate_user(db: AsyncSession, username: str, password: str) -> Optional[User]:
    """
    Authenticate a user by username and password.
    """
    user = await get_user_by_username(db, username=username)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user
