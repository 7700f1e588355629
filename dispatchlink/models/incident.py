from sqlalchemy import Column, String, Integer, Enum, ForeignKey, DateTime, JSON
import enum
from sqlalchemy.orm import relationship
from datetime import datetime

from dispatchlink.db.base_class import Base
from dispatchlink.models.user import enum_values


class IncidentState(str, enum.Enum):
    WAITING = "Waiting"
    TRIAGE = "Triage"
    ASSIGNED = "Assigned"
    CLOSED = "Closed"


class IncidentType(str, enum.Enum):
    FIRE = "Fire"
    MEDICAL = "Medical"
    POLICE = "Police"
    UNSET = "Unset"


class IncidentPriority(str, enum.Enum):
    IMMEDIATE = "E"
    URGENT = "1"
    COULD_WAIT = "2"
    DISMISSED = "3"


class VehicleType(str, enum.Enum):
    CAR = "Car"
    TRUCK = "Truck"


class Incident(Base):
    id = Column(Integer, primary_key=True, index=True)
    incident_id = Column(String(128), unique=True, index=True, nullable=False)
    caller = Column(String(64), index=True, nullable=False)
    open_date = Column(DateTime, default=datetime.utcnow, nullable=False)
    close_date = Column(DateTime, nullable=True)

    incident_state = Column(
        Enum(IncidentState, values_callable=enum_values, name="incidentstate"),
        default=IncidentState.WAITING,
        index=True,
        nullable=False,
    )
    owner = Column(String(64), nullable=False)
    # Username of the responsible dispatcher or responder
    commander = Column(String(64), index=True, nullable=False)

    address = Column(String(255), nullable=True)
    type = Column(
        Enum(IncidentType, values_callable=enum_values, name="incidenttype"),
        default=IncidentType.UNSET,
        nullable=False,
    )
    priority = Column(
        Enum(IncidentPriority, values_callable=enum_values, name="incidentpriority"),
        default=IncidentPriority.IMMEDIATE,
        nullable=False,
    )

    incident_call_group = Column(Integer, ForeignKey("channel.id"), nullable=True)

    vehicles = relationship(
        "IncidentVehicle",
        back_populates="incident",
        cascade="all, delete-orphan",
        order_by="IncidentVehicle.id",
        lazy="selectin",
    )


class IncidentVehicle(Base):
    id = Column(Integer, primary_key=True, index=True)
    incident_pk = Column(Integer, ForeignKey("incident.id"), nullable=False)
    type = Column(Enum(VehicleType, values_callable=enum_values, name="vehicletype"), nullable=False)
    name = Column(String(128), nullable=False)
    usernames = Column(JSON, default=list, nullable=False)

    incident = relationship("Incident", back_populates="vehicles")
