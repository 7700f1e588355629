from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, JSON, String
import enum
import uuid
from datetime import datetime

from dispatchlink.db.base_class import Base
from dispatchlink.models.user import enum_values


class PatientLocation(str, enum.Enum):
    ER = "er"
    ROAD = "road"


class ERPriority(str, enum.Enum):
    IMMEDIATE = "e"
    URGENT = "1"
    COULD_WAIT = "2"
    DISMISSED = "3"
    DEAD = "4"


class ERCategory(str, enum.Enum):
    TO_ER = "to_er"
    AT_ER = "at_er"
    OTHERS = "others"


class PatientERStatus(str, enum.Enum):
    REQUESTING = "requesting"
    READY = "ready"
    IN_USE = "in_use"
    DISCHARGED = "discharged"


def new_patient_id() -> str:
    return uuid.uuid4().hex


class Patient(Base):
    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(64), unique=True, index=True, default=new_patient_id, nullable=False)
    # The citizen account this patient record belongs to, if any
    user_id = Column(Integer, ForeignKey("user.id"), nullable=True)
    name = Column(String(255), nullable=True)
    name_lower = Column(String(255), index=True, nullable=True)
    sex = Column(String(32), nullable=True)
    dob = Column(String(32), nullable=True)


class PatientStatus(Base):
    """
    One version of a patient's medical metadata. Rows are never updated;
    every change appends a new row and the newest timestamp wins.
    """

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(String(64), ForeignKey("patient.patient_id"), index=True, nullable=False)
    timestamp = Column(DateTime, default=datetime.utcnow, index=True, nullable=False)
    is_visit_log = Column(Boolean, default=False, nullable=False)

    loc = Column(
        Enum(PatientLocation, values_callable=enum_values, name="patientlocation"),
        default=PatientLocation.ROAD,
        nullable=False,
    )
    incident_id = Column(String(128), nullable=True)
    hospital_id = Column(String(64), nullable=True)
    nurse_id = Column(Integer, nullable=True)
    responder_id = Column(Integer, nullable=True)

    er_priority = Column(
        Enum(ERPriority, values_callable=enum_values, name="erpriority"),
        default=ERPriority.IMMEDIATE,
        nullable=False,
    )
    er_status = Column(
        Enum(PatientERStatus, values_callable=enum_values, name="patienterstatus"),
        default=PatientERStatus.REQUESTING,
        nullable=False,
    )
    er_category = Column(
        Enum(ERCategory, values_callable=enum_values, name="ercategory"),
        default=ERCategory.OTHERS,
        nullable=False,
    )

    age = Column(Integer, nullable=True)
    conscious = Column(String(8), nullable=True)
    breathing = Column(String(8), nullable=True)
    chief_complaint = Column(String(255), nullable=True)
    condition = Column(String(64), nullable=True)
    drugs = Column(JSON, nullable=True)
    allergies = Column(JSON, nullable=True)
