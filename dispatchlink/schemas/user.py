from typing import List, Literal, Optional, Union
from datetime import datetime
import re

from pydantic import BaseModel, Field, field_validator

from dispatchlink.models.user import UserRole


# Shared properties
class UserBase(BaseModel):
    username: str
    role: UserRole = UserRole.CITIZEN


# Properties to receive on user creation
class UserCreate(UserBase):
    username: str = Field(..., min_length=3, max_length=64)
    password: str = Field(..., min_length=4)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        if not re.match(r"^[A-Za-z0-9_.-]+$", v):
            raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")
        return v


# Properties to return to client
class User(UserBase):
    id: int
    is_active: bool
    assigned_city: Optional[str] = None
    assigned_car: Optional[str] = None
    assigned_truck: Optional[str] = None
    assigned_vehicle_timestamp: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserWithStatus(User):
    online: bool


class Location(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)


# Role-specific assignments; the role tag selects which fields are valid
class PoliceAssignment(BaseModel):
    role: Literal["Police"]
    assigned_car: Optional[str] = None
    assigned_city: Optional[str] = None


class FireAssignment(BaseModel):
    role: Literal["Fire"]
    assigned_truck: Optional[str] = None
    assigned_city: Optional[str] = None


RoleAssignment = Union[PoliceAssignment, FireAssignment]


class AvailablePersonnel(BaseModel):
    id: int
    name: str
    assigned_city: Optional[str] = None


class VehicleRelease(BaseModel):
    vehicle_name: str = Field(..., min_length=1)


# Token response
class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: int
    role: UserRole


class LogoutRequest(BaseModel):
    username: str
    role: UserRole


class LogoutResponse(BaseModel):
    message: str
    username: str
    was_online: bool
    transferred_incidents: List[str] = []
    new_commander: Optional[str] = None
    released_vehicles: List[str] = []
