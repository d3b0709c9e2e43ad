from typing import Generic, TypeVar, Optional
from pydantic import BaseModel


T = TypeVar("T")


class PaginationMeta(BaseModel):
    page: int
    page_size: int
    total: int
    total_pages: int

    @classmethod
    def build(cls, page: int, page_size: int, total: int) -> "PaginationMeta":
        return cls(
            page=page,
            page_size=page_size,
            total=total,
            total_pages=(total + page_size - 1) // page_size,
        )


class DataResponse(BaseModel, Generic[T]):
    data: T
    meta: Optional[PaginationMeta] = None


class MessageResponse(BaseModel):
    message: str
