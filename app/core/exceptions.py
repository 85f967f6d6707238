from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        data: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        # Extra payload for the caller (e.g. import counts on a rejected file)
        self.data = data


class ValidationError(ServiceError):
    """Input the caller can correct: missing school, unsupported file, missing fields."""

    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST, data)


class NotFoundError(ServiceError):
    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND, data)


class ConflictError(ServiceError):
    def __init__(self, message: str, data: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT, data)


class PayloadTooLargeError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 413)


def to_http_exception(e: ServiceError) -> HTTPException:
    """Map a service error to an HTTP response. Server errors get a generic message."""
    if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return HTTPException(status_code=e.status_code, detail="Internal server error")
    if e.data:
        return HTTPException(status_code=e.status_code, detail={"message": e.message, "data": e.data})
    return HTTPException(status_code=e.status_code, detail=e.message)
