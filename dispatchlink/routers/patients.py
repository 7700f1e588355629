from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.models import User
from dispatchlink.schemas import (
    AssignedPatients,
    ExpandedPatient,
    Patient,
    PatientBase,
    PatientCreate,
    PatientStatus,
    PatientStatusUpdate,
)
from dispatchlink.crud.patient import (
    create_patient,
    create_visit_log,
    get_assigned_patients,
    get_patient_or_404,
    get_patient_status,
    get_patients_with_metadata,
    get_visit_logs,
    update_metadata,
    update_patient,
)

logger = get_logger("dispatchlink.patients")

router = APIRouter()


@router.post("/patients", response_model=Patient, status_code=status.HTTP_201_CREATED)
async def register_patient(
    patient_in: PatientCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    patient = await create_patient(db, obj_in=patient_in)
    logger.info(f"Patient {patient.patient_id} created by {current_user.username}")
    return patient


@router.get("/patients", response_model=List[ExpandedPatient])
async def read_patients(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Every patient together with their latest metadata.
    """
    return await get_patients_with_metadata(db)


@router.get("/patients/assigned", response_model=AssignedPatients)
async def read_assigned_patients(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Patients split by whether their latest metadata names a hospital.
    """
    return await get_assigned_patients(db)


@router.get("/patients/{patient_id}", response_model=Patient)
async def read_patient(
    patient_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await get_patient_or_404(db, patient_id=patient_id)


@router.put("/patients/{patient_id}", response_model=Patient)
async def update_patient_details(
    patient_id: str,
    patient_in: PatientBase,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    patient = await get_patient_or_404(db, patient_id=patient_id)
    return await update_patient(db, db_obj=patient, obj_in=patient_in)


@router.get("/patients/{patient_id}/status", response_model=PatientStatus)
async def read_patient_status(
    patient_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await get_patient_status(db, patient_id=patient_id)


@router.put("/patients/{patient_id}/status", response_model=PatientStatus)
async def update_patient_status(
    patient_id: str,
    status_in: PatientStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Record a new metadata version. Fields left out keep their previous value.
    """
    return await update_metadata(db, patient_id=patient_id, obj_in=status_in)


@router.post(
    "/patients/{patient_id}/visitlogs",
    response_model=PatientStatus,
    status_code=status.HTTP_201_CREATED,
)
async def add_visit_log(
    patient_id: str,
    status_in: PatientStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    visit_log = await create_visit_log(db, patient_id=patient_id, obj_in=status_in)
    logger.info(f"Visit log added for patient {patient_id} by {current_user.username}")
    return visit_log


@router.get("/patients/{patient_id}/visitlogs", response_model=List[PatientStatus])
async def read_visit_logs(
    patient_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await get_visit_logs(db, patient_id=patient_id)
