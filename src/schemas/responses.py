"""Shared error envelope and pagination schemas."""

import math

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """A single field-level or contextual error detail."""

    field: str | None = None
    message: str


class ErrorBody(BaseModel):
    """Structured error body returned inside every error response."""

    code: str
    message: str
    details: list[ErrorDetail] = []
    request_id: str = Field(alias="requestId")

    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(BaseModel):
    """Top-level error envelope."""

    error: ErrorBody


class PageMeta(BaseModel):
    """Page-number pagination counters."""

    current_page: int = Field(alias="currentPage")
    page_size: int = Field(alias="pageSize")
    total_count: int = Field(alias="totalCount")
    total_pages: int = Field(alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def build(cls, page: int, page_size: int, total_count: int) -> "PageMeta":
        return cls(
            current_page=page,
            page_size=page_size,
            total_count=total_count,
            total_pages=math.ceil(total_count / page_size) if page_size else 0,
        )


ERROR_RESPONSES = {
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}
