"""Appointments API routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import get_current_user, require_admin, require_patient, require_staff
from src.core.exceptions import InvalidInputError
from src.modules.appointments.schemas import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentPublic,
    AppointmentStats,
    AppointmentUpdate,
    CancelRequest,
    StatusUpdate,
)
from src.modules.appointments.service import AppointmentService
from src.modules.users.models import User
from src.shared.enums import AppointmentStatus, AppointmentType
from src.shared.pagination import PageParams, page_params
from src.shared.schemas import Page, ResponseEnvelope

router = APIRouter(prefix="/api/v1/appointments", tags=["appointments"])
admin_router = APIRouter(prefix="/api/v1/admin/appointments", tags=["admin-appointments"])


def get_service(db: AsyncSession = Depends(get_db)) -> AppointmentService:
    return AppointmentService(db)


def get_filters(
    status_value: AppointmentStatus | None = Query(None, alias="status"),
    type_value: AppointmentType | None = Query(None, alias="type"),
    on_date: date | None = Query(None, alias="date"),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
) -> AppointmentFilters:
    try:
        return AppointmentFilters(
            status=status_value,
            type=type_value,
            on_date=on_date,
            start_date=start_date,
            end_date=end_date,
        )
    except ValidationError as exc:
        raise InvalidInputError("start_date must not be after end_date") from exc


@router.get("", response_model=Page[AppointmentPublic])
async def list_appointments(
    filters: AppointmentFilters = Depends(get_filters),
    params: PageParams = Depends(page_params),
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> Page[AppointmentPublic]:
    listing = await service.list_appointments(current_user, filters, params)
    items = [
        AppointmentPublic.model_validate(item).model_copy(update={"has_reviewed": listing.has_reviewed(item)})
        for item in listing.items
    ]
    return Page[AppointmentPublic].build(items, listing.total, params.page, params.limit)


@router.post("", response_model=AppointmentPublic, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    payload: AppointmentCreate,
    current_user: User = Depends(require_patient),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.create_appointment(payload, current_user)


@router.get("/{appointment_id}", response_model=AppointmentPublic)
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.get_appointment(appointment_id, current_user)


@router.put("/{appointment_id}", response_model=AppointmentPublic)
async def update_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.update_appointment(appointment_id, payload, current_user)


@router.put("/{appointment_id}/status", response_model=AppointmentPublic)
async def update_appointment_status(
    appointment_id: str,
    payload: StatusUpdate,
    current_user: User = Depends(require_staff),
    service: AppointmentService = Depends(get_service),
) -> AppointmentPublic:
    return await service.update_status(appointment_id, payload, current_user)


@router.put("/{appointment_id}/cancel", response_model=ResponseEnvelope[AppointmentPublic])
async def cancel_appointment(
    appointment_id: str,
    payload: CancelRequest | None = None,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_service),
) -> ResponseEnvelope[AppointmentPublic]:
    reason = payload.reason if payload else None
    appointment = await service.cancel_appointment(appointment_id, current_user, reason)
    return ResponseEnvelope[AppointmentPublic](
        data=AppointmentPublic.model_validate(appointment),
        message="Appointment cancelled successfully",
    )


@admin_router.get("/stats", response_model=AppointmentStats)
async def appointment_stats(
    _: User = Depends(require_admin),
    service: AppointmentService = Depends(get_service),
) -> AppointmentStats:
    return await service.get_stats()
