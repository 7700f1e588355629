from sqlalchemy import Column, DateTime, Enum, Integer, String
import enum
import uuid

from dispatchlink.db.base_class import Base
from dispatchlink.models.user import enum_values


class ERBedStatus(str, enum.Enum):
    READY = "ready"
    REQUESTED = "requested"
    IN_USE = "in_use"
    DISCHARGED = "discharged"


def new_bed_id() -> str:
    return uuid.uuid4().hex


class ERBed(Base):
    id = Column(Integer, primary_key=True, index=True)
    bed_id = Column(String(64), unique=True, index=True, default=new_bed_id, nullable=False)
    hospital_id = Column(String(64), index=True, nullable=False)
    patient_id = Column(String(64), index=True, nullable=True)
    status = Column(
        Enum(ERBedStatus, values_callable=enum_values, name="erbedstatus"),
        default=ERBedStatus.READY,
        nullable=False,
    )
    requested_by = Column(String(64), nullable=True)

    requested_at = Column(DateTime, nullable=True)
    occupied_at = Column(DateTime, nullable=True)
    discharged_at = Column(DateTime, nullable=True)
    ready_at = Column(DateTime, nullable=True)
