from typing import List, Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from dispatchlink.models.patient import ERCategory, ERPriority, PatientERStatus, PatientLocation


CONDITIONS = (
    "Allergy",
    "Asthma",
    "Bleeding",
    "Broken bone",
    "Burn",
    "Choking",
    "Concussion",
    "Covid-19",
    "Heart Attack",
    "Heat Stroke",
    "Hypothermia",
    "Poisoning",
    "Seizure",
    "Shock",
    "Strain",
    "Sprain",
    "Stroke",
    "Others",
    "",
)


# Shared properties
class PatientBase(BaseModel):
    user_id: Optional[int] = None
    name: Optional[str] = Field(None, max_length=255)
    sex: Optional[str] = Field(None, max_length=32)
    dob: Optional[str] = Field(None, max_length=32)


# Properties to receive on patient creation
class PatientCreate(PatientBase):
    patient_id: Optional[str] = Field(None, min_length=1, max_length=64)


class Patient(PatientBase):
    patient_id: str

    class Config:
        from_attributes = True


# Every field is optional; only the ones sent overwrite the previous version
class PatientStatusUpdate(BaseModel):
    loc: Optional[PatientLocation] = None
    incident_id: Optional[str] = None
    hospital_id: Optional[str] = None
    nurse_id: Optional[int] = None
    responder_id: Optional[int] = None
    er_priority: Optional[ERPriority] = None
    er_status: Optional[PatientERStatus] = None
    er_category: Optional[ERCategory] = None
    age: Optional[int] = Field(None, ge=0, le=150)
    conscious: Optional[Literal["yes", "no"]] = None
    breathing: Optional[Literal["yes", "no"]] = None
    chief_complaint: Optional[str] = Field(None, max_length=255)
    condition: Optional[str] = None
    drugs: Optional[List[str]] = None
    allergies: Optional[List[str]] = None

    @field_validator("condition")
    @classmethod
    def validate_condition(cls, v):
        if v is not None and v not in CONDITIONS:
            raise ValueError(f"Unknown condition {v!r}")
        return v


class PatientStatus(BaseModel):
    patient_id: str
    timestamp: datetime
    is_visit_log: bool
    loc: PatientLocation
    incident_id: Optional[str] = None
    hospital_id: Optional[str] = None
    nurse_id: Optional[int] = None
    responder_id: Optional[int] = None
    er_priority: ERPriority
    er_status: PatientERStatus
    er_category: ERCategory
    age: Optional[int] = None
    conscious: Optional[str] = None
    breathing: Optional[str] = None
    chief_complaint: Optional[str] = None
    condition: Optional[str] = None
    drugs: Optional[List[str]] = None
    allergies: Optional[List[str]] = None

    class Config:
        from_attributes = True


class ExpandedPatient(Patient):
    latest_status: Optional[PatientStatus] = None


class AssignedPatients(BaseModel):
    assigned: List[ExpandedPatient] = []
    unassigned: List[ExpandedPatient] = []
