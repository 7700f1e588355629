from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, NotFoundError
from dispatchlink.crud.user import get_user_or_404
from dispatchlink.models import Patient, PatientStatus
from dispatchlink.schemas import (
    AssignedPatients,
    ExpandedPatient,
    Patient as PatientSchema,
    PatientBase,
    PatientCreate,
    PatientStatus as PatientStatusSchema,
    PatientStatusUpdate,
)

# Metadata fields carried from one version to the next
STATUS_FIELDS = tuple(PatientStatusUpdate.model_fields)
# Columns that fall back to their default rather than NULL
REQUIRED_STATUS_FIELDS = ("loc", "er_priority", "er_status", "er_category")


async def get_patient(db: AsyncSession, patient_id: str) -> Optional[Patient]:
    result = await db.execute(select(Patient).filter(Patient.patient_id == patient_id))
    return result.scalars().first()


async def get_patient_or_404(db: AsyncSession, patient_id: str) -> Patient:
    patient = await get_patient(db, patient_id=patient_id)
    if not patient:
        raise NotFoundError(f"Patient with ID {patient_id} not found")
    return patient


async def get_patients(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Patient]:
    result = await db.execute(select(Patient).order_by(Patient.id).offset(skip).limit(limit))
    return result.scalars().all()


async def create_patient(db: AsyncSession, obj_in: PatientCreate) -> Patient:
    if obj_in.patient_id and await get_patient(db, patient_id=obj_in.patient_id):
        raise AlreadyExistsError(f"Patient {obj_in.patient_id} already exists")
    if obj_in.user_id is not None:
        await get_user_or_404(db, id=obj_in.user_id)

    db_obj = Patient(
        user_id=obj_in.user_id,
        name=obj_in.name,
        name_lower=(obj_in.name or "").lower(),
        sex=obj_in.sex,
        dob=obj_in.dob,
    )
    if obj_in.patient_id:
        db_obj.patient_id = obj_in.patient_id
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def update_patient(db: AsyncSession, db_obj: Patient, obj_in: PatientBase) -> Patient:
    update_data = obj_in.model_dump(exclude_unset=True)
    if update_data.get("user_id") is not None:
        await get_user_or_404(db, id=update_data["user_id"])

    for field, value in update_data.items():
        setattr(db_obj, field, value)
    if "name" in update_data:
        db_obj.name_lower = (db_obj.name or "").lower()

    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def get_latest_status(db: AsyncSession, patient_id: str) -> Optional[PatientStatus]:
    result = await db.execute(
        select(PatientStatus)
        .filter(PatientStatus.patient_id == patient_id)
        .order_by(PatientStatus.timestamp.desc(), PatientStatus.id.desc())
    )
    return result.scalars().first()


async def get_patient_status(db: AsyncSession, patient_id: str) -> PatientStatus:
    await get_patient_or_404(db, patient_id=patient_id)
    status = await get_latest_status(db, patient_id=patient_id)
    if not status:
        raise NotFoundError(f"No metadata found for patient {patient_id}")
    return status


def build_status(
    patient_id: str,
    latest: Optional[PatientStatus],
    fields: Dict[str, Any],
    is_visit_log: bool = False,
    now: Optional[datetime] = None,
) -> PatientStatus:
    """
    Build the next metadata version: the latest version's values
    overlaid with the given fields, stamped with a fresh timestamp.
    """
    values = {name: getattr(latest, name) for name in STATUS_FIELDS} if latest else {}
    values.update(fields)
    for name in REQUIRED_STATUS_FIELDS:
        if values.get(name) is None:
            values.pop(name, None)

    return PatientStatus(
        patient_id=patient_id,
        timestamp=now or datetime.utcnow(),
        is_visit_log=is_visit_log,
        **values,
    )


async def update_metadata(
    db: AsyncSession, patient_id: str, obj_in: PatientStatusUpdate, is_visit_log: bool = False
) -> PatientStatus:
    """
    Append a new metadata version for a patient.
    """
    await get_patient_or_404(db, patient_id=patient_id)
    latest = await get_latest_status(db, patient_id=patient_id)

    db_obj = build_status(
        patient_id, latest, obj_in.model_dump(exclude_unset=True), is_visit_log=is_visit_log
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj


async def create_visit_log(db: AsyncSession, patient_id: str, obj_in: PatientStatusUpdate) -> PatientStatus:
    return await update_metadata(db, patient_id=patient_id, obj_in=obj_in, is_visit_log=True)


async def get_visit_logs(db: AsyncSession, patient_id: str) -> List[PatientStatus]:
    await get_patient_or_404(db, patient_id=patient_id)
    result = await db.execute(
        select(PatientStatus)
        .filter(PatientStatus.patient_id == patient_id, PatientStatus.is_visit_log.is_(True))
        .order_by(PatientStatus.timestamp, PatientStatus.id)
    )
    return result.scalars().all()


async def get_patients_with_metadata(db: AsyncSession) -> List[ExpandedPatient]:
    """
    Join every patient with its latest metadata version, if any.
    """
    result = await db.execute(
        select(PatientStatus).order_by(PatientStatus.timestamp, PatientStatus.id)
    )
    latest: Dict[str, PatientStatus] = {}
    for status in result.scalars().all():
        latest[status.patient_id] = status

    patients = await get_patients(db, limit=None)
    expanded = []
    for patient in patients:
        status = latest.get(patient.patient_id)
        expanded.append(
            ExpandedPatient(
                **PatientSchema.model_validate(patient).model_dump(),
                latest_status=PatientStatusSchema.model_validate(status) if status else None,
            )
        )
    return expanded


async def get_assigned_patients(db: AsyncSession) -> AssignedPatients:
    """
    Split patients by whether their latest metadata names a hospital.
    """
    grouped = AssignedPatients()
    for patient in await get_patients_with_metadata(db):
        if patient.latest_status and patient.latest_status.hospital_id:
            grouped.assigned.append(patient)
        else:
            grouped.unassigned.append(patient)
    return grouped
