"""Schedule routes."""

from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.modules.schedule.schemas import AvailabilityResult
from src.modules.schedule.service import get_available_slots

router = APIRouter(prefix="/api/v1/schedule", tags=["schedule"])


@router.get("/availability", response_model=AvailabilityResult)
async def availability(
    doctor_id: str = Query(...),
    date_value: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_db),
) -> AvailabilityResult:
    return await get_available_slots(doctor_id, date_value, db)
