from typing import List, Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.core.errors import AlreadyExistsError, NotFoundError
from dispatchlink.models import Hospital
from dispatchlink.schemas import HospitalCreate


async def get_hospital(db: AsyncSession, hospital_id: str) -> Optional[Hospital]:
    result = await db.execute(select(Hospital).filter(Hospital.hospital_id == hospital_id))
    return result.scalars().first()


async def get_hospital_or_404(db: AsyncSession, hospital_id: str) -> Hospital:
    hospital = await get_hospital(db, hospital_id=hospital_id)
    if not hospital:
        raise NotFoundError(f"Hospital {hospital_id} not found")
    return hospital


async def get_hospitals(db: AsyncSession, skip: int = 0, limit: int = 100) -> List[Hospital]:
    result = await db.execute(
        select(Hospital).order_by(Hospital.hospital_name).offset(skip).limit(limit)
    )
    return result.scalars().all()


async def create_hospital(db: AsyncSession, obj_in: HospitalCreate) -> Hospital:
    hospital_id = obj_in.hospital_id or uuid.uuid4().hex
    if await get_hospital(db, hospital_id=hospital_id):
        raise AlreadyExistsError(f"Hospital {hospital_id} already exists")

    db_obj = Hospital(
        hospital_id=hospital_id,
        hospital_name=obj_in.hospital_name,
        hospital_address=obj_in.hospital_address,
        hospital_description=obj_in.hospital_description,
        city_id=obj_in.city_id,
        capacity=obj_in.capacity,
        total_number_er_beds=0,
    )
    db.add(db_obj)
    await db.commit()
    await db.refresh(db_obj)
    return db_obj
