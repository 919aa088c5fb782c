"""
Response envelope shared by every endpoint: ``{success, message, data}``.
"""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from settings import settings

DataT = TypeVar("DataT")


class CamelModel(BaseModel):
    """Serializes with camelCase keys; accepts either camelCase or snake_case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Envelope(CamelModel, Generic[DataT]):
    success: bool = True
    message: str
    data: DataT | None = None


class Pagination(CamelModel):
    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        total_pages = math.ceil(total / limit) if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            limit=limit,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )


class PageRequest(CamelModel):
    page: int = Field(1, ge=1)
    limit: int = Field(settings.sync.default_page_size, ge=1, le=settings.sync.max_page_size)
