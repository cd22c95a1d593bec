# backend/formadb/errors.py
"""
Typed business errors raised by the service layer.

Routers translate these into HTTP responses via `to_http_exception`;
services never build user-facing HTTP payloads themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from fastapi import HTTPException, status


@dataclass(eq=False)
class TrainingError(Exception):
    detail: str
    payload: Optional[Any] = field(default=None)

    code = "training_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __str__(self) -> str:
        return self.detail


class NotFound(TrainingError):
    code = "not_found"
    http_status = status.HTTP_404_NOT_FOUND


class InvalidArgument(TrainingError):
    code = "invalid_argument"
    http_status = status.HTTP_400_BAD_REQUEST


class Conflict(TrainingError):
    code = "conflict"
    http_status = status.HTTP_409_CONFLICT


class AlreadyExists(TrainingError):
    """`payload` holds the existing record so clients can treat a retry as success."""

    code = "already_exists"
    http_status = status.HTTP_409_CONFLICT


class CapacityExceeded(TrainingError):
    code = "capacity_exceeded"
    http_status = status.HTTP_409_CONFLICT


class NotEnrolled(TrainingError):
    code = "not_enrolled"
    http_status = status.HTTP_400_BAD_REQUEST


class AccessDenied(TrainingError):
    code = "access_denied"
    http_status = status.HTTP_403_FORBIDDEN


def to_http_exception(exc: TrainingError, *, data: Any = None) -> HTTPException:
    """
    Map a typed error onto an HTTPException.

    `data` is the serialised form of `exc.payload`; ORM objects are not JSON
    safe, so routers serialise them with the matching read schema first.
    """
    detail: dict = {"code": exc.code, "message": exc.detail}
    if data is not None:
        detail["data"] = data
    elif isinstance(exc.payload, (dict, list, str, int)):
        detail["data"] = exc.payload
    return HTTPException(status_code=exc.http_status, detail=detail)
