"""Page/limit query handling shared by list endpoints."""

from dataclasses import dataclass

from fastapi import Query

from src.core.config import settings


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = 10

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def page_params(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
) -> PageParams:
    """FastAPI dependency clamping the requested page size."""
    size = limit or settings.default_page_size
    return PageParams(page=page, limit=min(size, settings.max_page_size))
