from datetime import datetime
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, InvalidStateError, NotFoundError
from dispatchlink.crud.hospital import get_hospital_or_404
from dispatchlink.crud.patient import build_status, get_latest_status, get_patient_or_404
from dispatchlink.models import ERBed, ERBedStatus, PatientERStatus
from dispatchlink.schemas import BedPatient, BedRequest, PatientsByCategory
from dispatchlink.services.er_beds import transition

# Bed statuses mirrored onto the patient's metadata
PATIENT_ER_STATUS = {
    ERBedStatus.REQUESTED: PatientERStatus.REQUESTING,
    ERBedStatus.IN_USE: PatientERStatus.IN_USE,
    ERBedStatus.DISCHARGED: PatientERStatus.DISCHARGED,
}


async def get_bed(db: AsyncSession, bed_id: str) -> Optional[ERBed]:
    result = await db.execute(select(ERBed).filter(ERBed.bed_id == bed_id))
    return result.scalars().first()


async def get_bed_or_404(db: AsyncSession, bed_id: str) -> ERBed:
    bed = await get_bed(db, bed_id=bed_id)
    if not bed:
        raise NotFoundError(f"ER bed {bed_id} not found")
    return bed


async def get_hospital_beds(db: AsyncSession, hospital_id: str) -> List[ERBed]:
    result = await db.execute(
        select(ERBed).filter(ERBed.hospital_id == hospital_id).order_by(ERBed.id)
    )
    return result.scalars().all()


async def count_available_beds(db: AsyncSession, hospital_id: str) -> int:
    result = await db.execute(
        select(func.count(ERBed.id)).filter(
            ERBed.hospital_id == hospital_id, ERBed.status == ERBedStatus.READY
        )
    )
    return result.scalar_one()


async def create_bed(db: AsyncSession, hospital_id: str) -> ERBed:
    """
    Add a READY bed to a hospital and bump its ER bed total.
    """
    hospital = await get_hospital_or_404(db, hospital_id=hospital_id)

    db_obj = ERBed(hospital_id=hospital_id, status=ERBedStatus.READY, ready_at=datetime.utcnow())
    hospital.total_number_er_beds = (hospital.total_number_er_beds or 0) + 1
    db.add(db_obj)
    db.add(hospital)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def request_bed(db: AsyncSession, obj_in: BedRequest) -> ERBed:
    """
    Reserve the first READY bed of a hospital for an existing patient.
    The patient's metadata gains a version naming the hospital.
    """
    await get_hospital_or_404(db, hospital_id=obj_in.hospital_id)
    await get_patient_or_404(db, patient_id=obj_in.patient_id)

    result = await db.execute(
        select(ERBed).filter(
            ERBed.patient_id == obj_in.patient_id,
            ERBed.status.in_([ERBedStatus.REQUESTED, ERBedStatus.IN_USE]),
        )
    )
    if result.scalars().first():
        raise AlreadyExistsError(f"Patient {obj_in.patient_id} already has an ER bed")

    result = await db.execute(
        select(ERBed)
        .filter(ERBed.hospital_id == obj_in.hospital_id, ERBed.status == ERBedStatus.READY)
        .order_by(ERBed.id)
    )
    bed = result.scalars().first()
    if not bed:
        raise InvalidStateError(f"No ER bed available at hospital {obj_in.hospital_id}")

    transition(bed, ERBedStatus.REQUESTED)
    bed.patient_id = obj_in.patient_id
    bed.requested_by = obj_in.requested_by
    db.add(bed)
    await _record_patient_status(db, bed, hospital_id=obj_in.hospital_id)
    await db.commit()
    await db.refresh(bed)
    return bed


async def update_bed_status(db: AsyncSession, db_obj: ERBed, status: ERBedStatus) -> ERBed:
    transition(db_obj, status)
    db.add(db_obj)
    await _record_patient_status(db, db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def get_patients_by_category(db: AsyncSession, hospital_id: str) -> PatientsByCategory:
    """
    Group the patients holding beds at a hospital by bed status.
    """
    categories = PatientsByCategory()
    buckets = {
        ERBedStatus.REQUESTED: categories.requesting,
        ERBedStatus.READY: categories.ready,
        ERBedStatus.IN_USE: categories.in_use,
        ERBedStatus.DISCHARGED: categories.discharged,
    }
    for bed in await get_hospital_beds(db, hospital_id=hospital_id):
        if bed.patient_id:
            buckets[ERBedStatus(bed.status)].append(BedPatient(patient_id=bed.patient_id, bed_id=bed.bed_id))
    return categories


async def _record_patient_status(db: AsyncSession, bed: ERBed, **fields) -> None:
    status = PATIENT_ER_STATUS.get(ERBedStatus(bed.status))
    if not bed.patient_id or status is None:
        return
    latest = await get_latest_status(db, patient_id=bed.patient_id)
    db.add(build_status(bed.patient_id, latest, dict(fields, er_status=status)))
