"""Wire models shared by the REST routers."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope every successful response is wrapped in."""

    success: bool = True
    data: Optional[T] = None
    message: str = ""
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def respond(data: T, message: str = "") -> ApiResponse[T]:
    return ApiResponse(data=data, message=message)


__all__ = ["ApiResponse", "respond"]
