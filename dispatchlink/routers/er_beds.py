from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user, get_registry
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.models import User, UserRole
from dispatchlink.schemas import AvailableBeds, BedRequest, BedStatusUpdate, ERBed, PatientsByCategory
from dispatchlink.crud.er_bed import (
    count_available_beds,
    create_bed,
    get_bed_or_404,
    get_hospital_beds,
    get_patients_by_category,
    request_bed,
    update_bed_status,
)
from dispatchlink.crud.hospital import get_hospital_or_404
from dispatchlink.services.connection_registry import ConnectionRegistry

logger = get_logger("dispatchlink.erbeds")

router = APIRouter()


@router.post("/erbed/hospital/{hospital_id}", response_model=ERBed, status_code=status.HTTP_201_CREATED)
async def add_bed(
    hospital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Add an ER bed to a hospital.
    """
    return await create_bed(db, hospital_id=hospital_id)


@router.get("/erbed/hospital/{hospital_id}", response_model=List[ERBed])
async def read_beds(
    hospital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await get_hospital_or_404(db, hospital_id=hospital_id)
    return await get_hospital_beds(db, hospital_id=hospital_id)


@router.get("/erbed/hospital/{hospital_id}/available", response_model=AvailableBeds)
async def read_available_beds(
    hospital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    await get_hospital_or_404(db, hospital_id=hospital_id)
    return AvailableBeds(available_beds=await count_available_beds(db, hospital_id=hospital_id))


@router.get("/erbed/hospital/{hospital_id}/patients", response_model=PatientsByCategory)
async def read_patients_by_category(
    hospital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Patients holding beds at a hospital, grouped by bed status.
    """
    await get_hospital_or_404(db, hospital_id=hospital_id)
    return await get_patients_by_category(db, hospital_id=hospital_id)


@router.post("/erbed/request", response_model=ERBed)
async def request_er_bed(
    request_in: BedRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
) -> Any:
    """
    Reserve a READY bed for a patient and alert the nurses.
    """
    if request_in.requested_by is None:
        request_in.requested_by = str(current_user.id)
    bed = await request_bed(db, obj_in=request_in)
    logger.info(f"Bed {bed.bed_id} requested for patient {bed.patient_id} at {bed.hospital_id}")

    await registry.broadcast_to_role(
        UserRole.NURSE,
        "incoming-nurse-alert",
        {
            "hospitalId": bed.hospital_id,
            "bedId": bed.bed_id,
            "patientId": bed.patient_id,
            "requestedBy": bed.requested_by,
        },
    )
    return bed


@router.put("/erbed/{bed_id}/status", response_model=ERBed)
async def update_status(
    bed_id: str,
    status_in: BedStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Move a bed to the next status of its cycle.
    """
    bed = await get_bed_or_404(db, bed_id=bed_id)
    bed = await update_bed_status(db, db_obj=bed, status=status_in.status)
    logger.info(f"Bed {bed_id} is now {bed.status.value}")
    return bed
