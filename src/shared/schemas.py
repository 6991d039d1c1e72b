"""Common Pydantic schemas."""

from math import ceil
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ResponseEnvelope(BaseModel, Generic[T]):
    """Standard API envelope."""

    success: bool = True
    data: T | None = None
    message: str | None = None


class Page(BaseModel, Generic[T]):
    """One page of a listing, numbered from 1."""

    items: list[T]
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, items: list[T], total: int, page: int, limit: int) -> "Page[T]":
        return cls(items=items, total=total, page=page, limit=limit, total_pages=ceil(total / limit) if limit else 0)
