from __future__ import annotations

from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Base for request/response bodies: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(APIModel):
    total: int
    page: int
    limit: int
    total_pages: int


class SuccessResponse(APIModel, Generic[T]):
    status: Literal["success"] = "success"
    data: T


class ListResponse(APIModel, Generic[T]):
    status: Literal["success"] = "success"
    results: int
    data: list[T]


class PaginatedResponse(ListResponse[T], Generic[T]):
    pagination: Pagination


class MessageResponse(APIModel):
    status: Literal["success"] = "success"
    message: str


class ErrorResponse(APIModel):
    status: Literal["fail", "error"]
    message: str
    errors: list[dict] | None = None


__all__ = [
    "APIModel",
    "ErrorResponse",
    "ListResponse",
    "MessageResponse",
    "PaginatedResponse",
    "Pagination",
    "SuccessResponse",
]
