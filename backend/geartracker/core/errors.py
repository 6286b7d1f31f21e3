"""Domain exceptions raised by the service layer.

Each error carries the HTTP status it maps to and a message that is safe to
show to API clients. Driver-level detail is logged where the error is raised
and never attached to the message.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from fastapi import status


@dataclass(eq=False)
class DomainError(Exception):
    message: str
    details: dict[str, Any] | None = None

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Resource is absent or owned by another organization."""

    status_code = status.HTTP_404_NOT_FOUND


class InvalidInputError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamFailureError(DomainError):
    """The database or the blob store failed while serving the request."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


class InternalError(DomainError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


__all__ = [
    "ConflictError",
    "DomainError",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
    "UpstreamFailureError",
]
