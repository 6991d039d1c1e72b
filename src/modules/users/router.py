"""User routes."""

from fastapi import APIRouter, Depends

from src.core.deps import get_current_user
from src.modules.users.models import User
from src.modules.users.schemas import UserPublic

router = APIRouter(prefix="/api/v1/users", tags=["users"])


@router.get("/me", response_model=UserPublic)
async def read_me(current_user: User = Depends(get_current_user)) -> UserPublic:
    return current_user
