from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_current_user
from dispatchlink.db.session import get_db
from dispatchlink.models import User
from dispatchlink.schemas import Hospital, HospitalCreate
from dispatchlink.crud.hospital import create_hospital, get_hospital_or_404, get_hospitals

router = APIRouter()


@router.post("/hospitals", response_model=Hospital, status_code=status.HTTP_201_CREATED)
async def register_hospital(
    hospital_in: HospitalCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await create_hospital(db, obj_in=hospital_in)


@router.get("/hospitals", response_model=List[Hospital])
async def read_hospitals(
    skip: int = 0,
    limit: int = 100,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await get_hospitals(db, skip=skip, limit=limit)


@router.get("/hospitals/{hospital_id}", response_model=Hospital)
async def read_hospital(
    hospital_id: str,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Any:
    return await get_hospital_or_404(db, hospital_id=hospital_id)
