"""Review routes."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.database import get_db
from src.core.deps import get_current_user, require_patient
from src.modules.reviews.schemas import ReviewCreate, ReviewPublic, ReviewUpdate
from src.modules.reviews.service import ReviewService
from src.modules.users.models import User
from src.shared.pagination import PageParams, page_params
from src.shared.schemas import Page, ResponseEnvelope

router = APIRouter(prefix="/api/v1/reviews", tags=["reviews"])


def get_service(db: AsyncSession = Depends(get_db)) -> ReviewService:
    return ReviewService(db)


@router.get("/doctor/{doctor_id}", response_model=Page[ReviewPublic])
async def doctor_reviews(
    doctor_id: str,
    params: PageParams = Depends(page_params),
    service: ReviewService = Depends(get_service),
) -> Page[ReviewPublic]:
    reviews, total = await service.list_doctor_reviews(doctor_id, params)
    items = [ReviewPublic.model_validate(review).anonymized() for review in reviews]
    return Page[ReviewPublic].build(items, total, params.page, params.limit)


@router.post("", response_model=ReviewPublic, status_code=status.HTTP_201_CREATED)
async def create_review(
    payload: ReviewCreate,
    current_user: User = Depends(require_patient),
    service: ReviewService = Depends(get_service),
) -> ReviewPublic:
    return await service.create_review(payload, current_user)


@router.put("/{review_id}", response_model=ReviewPublic)
async def update_review(
    review_id: str,
    payload: ReviewUpdate,
    current_user: User = Depends(require_patient),
    service: ReviewService = Depends(get_service),
) -> ReviewPublic:
    return await service.update_review(review_id, payload, current_user)


@router.delete("/{review_id}", response_model=ResponseEnvelope[None])
async def delete_review(
    review_id: str,
    current_user: User = Depends(get_current_user),
    service: ReviewService = Depends(get_service),
) -> ResponseEnvelope[None]:
    await service.delete_review(review_id, current_user)
    return ResponseEnvelope[None](message="Review deleted successfully")
