from typing import List, Optional
from datetime import datetime

from pydantic import BaseModel, Field

from dispatchlink.models.er_bed import ERBedStatus


class HospitalBase(BaseModel):
    hospital_name: str = Field(..., min_length=1, max_length=255)
    hospital_address: Optional[str] = None
    hospital_description: Optional[str] = None
    city_id: Optional[str] = None
    capacity: int = Field(0, ge=0)


class HospitalCreate(HospitalBase):
    hospital_id: Optional[str] = Field(None, min_length=1, max_length=64)


class Hospital(HospitalBase):
    id: int
    hospital_id: str
    total_number_er_beds: int

    class Config:
        from_attributes = True


class ERBed(BaseModel):
    bed_id: str
    hospital_id: str
    patient_id: Optional[str] = None
    status: ERBedStatus
    requested_by: Optional[str] = None
    requested_at: Optional[datetime] = None
    occupied_at: Optional[datetime] = None
    discharged_at: Optional[datetime] = None
    ready_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BedRequest(BaseModel):
    hospital_id: str
    patient_id: str
    requested_by: Optional[str] = None


class BedStatusUpdate(BaseModel):
    status: ERBedStatus


class AvailableBeds(BaseModel):
    available_beds: int


class BedPatient(BaseModel):
    patient_id: str
    bed_id: str


class PatientsByCategory(BaseModel):
    requesting: List[BedPatient] = []
    ready: List[BedPatient] = []
    in_use: List[BedPatient] = Field([], serialization_alias="inUse")
    discharged: List[BedPatient] = []
