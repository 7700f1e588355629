from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime

from dispatchlink.models.incident import IncidentPriority, IncidentState, IncidentType, VehicleType


class IncidentVehicleBase(BaseModel):
    type: VehicleType
    name: str = Field(..., min_length=1, max_length=128)
    usernames: List[str] = []


# Properties to receive when assigning a vehicle
class IncidentVehicleCreate(IncidentVehicleBase):
    pass


class IncidentVehicle(IncidentVehicleBase):
    class Config:
        from_attributes = True


# Shared properties
class IncidentBase(BaseModel):
    address: Optional[str] = None
    type: IncidentType = IncidentType.UNSET
    priority: IncidentPriority = IncidentPriority.IMMEDIATE


# Properties to receive on incident creation
class IncidentCreate(IncidentBase):
    caller: str = Field(..., min_length=1, max_length=64)
    incident_id: Optional[str] = Field(None, min_length=1, max_length=128)
    incident_state: IncidentState = IncidentState.WAITING
    owner: Optional[str] = None
    commander: Optional[str] = None


# Properties to receive on incident update
class IncidentUpdate(BaseModel):
    address: Optional[str] = None
    type: Optional[IncidentType] = None
    priority: Optional[IncidentPriority] = None
    incident_state: Optional[IncidentState] = None
    owner: Optional[str] = None


class CommanderTransfer(BaseModel):
    commander: str = Field(..., min_length=1)


class ChatGroupLink(BaseModel):
    channel_id: int


# Properties to return to client
class Incident(IncidentBase):
    id: int
    incident_id: str
    caller: str
    open_date: datetime
    close_date: Optional[datetime] = None
    incident_state: IncidentState
    owner: str
    commander: str
    incident_call_group: Optional[int] = None
    vehicles: List[IncidentVehicle] = []

    class Config:
        from_attributes = True
