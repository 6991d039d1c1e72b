"""Public doctor directory routes."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import require_staff
from src.modules.doctors.schemas import (
    AvailabilityUpdate,
    DepartmentPublic,
    DoctorFilters,
    DoctorPublic,
    DoctorUpdate,
)
from src.modules.doctors.service import DoctorService
from src.modules.users.models import User
from src.shared.pagination import PageParams, page_params
from src.shared.schemas import Page

router = APIRouter(prefix="/api/v1/doctors", tags=["doctors"])
departments_router = APIRouter(prefix="/api/v1/departments", tags=["departments"])


def get_service(db: AsyncSession = Depends(get_db)) -> DoctorService:
    return DoctorService(db)


def get_filters(
    department_id: str | None = Query(None, alias="department"),
    specialization: str | None = Query(None),
    available: bool | None = Query(None),
    min_rating: float | None = Query(None, alias="minRating", ge=0, le=5),
    search: str | None = Query(None),
) -> DoctorFilters:
    return DoctorFilters(
        department_id=department_id,
        specialization=specialization,
        available=available,
        min_rating=min_rating,
        search=search,
    )


@router.get("", response_model=Page[DoctorPublic])
async def list_doctors(
    filters: DoctorFilters = Depends(get_filters),
    params: PageParams = Depends(page_params),
    service: DoctorService = Depends(get_service),
) -> Page[DoctorPublic]:
    doctors, total = await service.list_doctors(filters, params)
    items = [DoctorPublic.model_validate(doctor) for doctor in doctors]
    return Page[DoctorPublic].build(items, total, params.page, params.limit)


@router.get("/me", response_model=DoctorPublic)
async def get_my_profile(
    current_user: User = Depends(require_staff),
    service: DoctorService = Depends(get_service),
) -> DoctorPublic:
    return await service.get_own_profile(current_user)


@router.get("/department/{department_id}", response_model=list[DoctorPublic])
async def doctors_in_department(
    department_id: str,
    service: DoctorService = Depends(get_service),
) -> list[DoctorPublic]:
    return await service.find_doctors_by_department(department_id)


@router.get("/{doctor_id}", response_model=DoctorPublic)
async def get_doctor(
    doctor_id: str,
    service: DoctorService = Depends(get_service),
) -> DoctorPublic:
    return await service.get_doctor(doctor_id)


@router.put("/{doctor_id}", response_model=DoctorPublic)
async def update_profile(
    doctor_id: str,
    payload: DoctorUpdate,
    current_user: User = Depends(require_staff),
    service: DoctorService = Depends(get_service),
) -> DoctorPublic:
    return await service.update_doctor(doctor_id, payload, current_user)


@router.put("/{doctor_id}/availability", response_model=DoctorPublic)
async def update_availability(
    doctor_id: str,
    payload: AvailabilityUpdate,
    current_user: User = Depends(require_staff),
    service: DoctorService = Depends(get_service),
) -> DoctorPublic:
    return await service.update_availability(doctor_id, payload, current_user)


@departments_router.get("", response_model=list[DepartmentPublic])
async def list_departments(service: DoctorService = Depends(get_service)) -> list[DepartmentPublic]:
    return await service.list_departments()
