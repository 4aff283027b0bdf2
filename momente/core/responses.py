from typing import Any, Generic, TypeVar

from fastapi import status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    """Envelope for every error body the API returns."""

    success: bool
    message: str = ""
    error: str | None = None
    data: T | None = None
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR


def send_error(
    message: str = "Error",
    data: Any = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    error: str | None = None,
) -> APIResponse:
    return APIResponse(
        success=False, message=message, error=error, data=data, status_code=status_code
    )


def create_json_response(
    content: Any, status_code: int = status.HTTP_200_OK, headers: dict | None = None
) -> JSONResponse:
    return JSONResponse(content=content, status_code=status_code, headers=headers)
