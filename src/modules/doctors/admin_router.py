"""Admin doctor profile management."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import require_admin
from src.modules.doctors.schemas import DoctorCreate, DoctorPublic, DoctorUpdate
from src.modules.doctors.service import DoctorService
from src.modules.users.models import User
from src.shared.schemas import ResponseEnvelope

router = APIRouter(prefix="/api/v1/admin/doctors", tags=["admin-doctors"])


@router.post("", response_model=DoctorPublic, status_code=status.HTTP_201_CREATED)
async def create_doctor(
    payload: DoctorCreate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DoctorPublic:
    return await DoctorService(db).create_doctor(payload)


@router.put("/{doctor_id}", response_model=DoctorPublic)
async def update_doctor(
    doctor_id: str,
    payload: DoctorUpdate,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> DoctorPublic:
    return await DoctorService(db).update_doctor(doctor_id, payload)


@router.delete("/{doctor_id}", response_model=ResponseEnvelope[None])
async def delete_doctor(
    doctor_id: str,
    _: User = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> ResponseEnvelope[None]:
    await DoctorService(db).delete_doctor(doctor_id)
    return ResponseEnvelope[None](message="Doctor deleted successfully")
