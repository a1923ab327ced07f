"""
Error Translation

Maps service exceptions to HTTP errors for the routers.
"""

from fastapi import HTTPException

from photo_service.exceptions import (
    AccessDeniedError,
    AssetNotFoundError,
    CollaboratorError,
    DuplicateReportError,
    InvalidTransitionError,
    PhotoServiceError,
    UploadValidationError,
)

_STATUS_CODES = {
    UploadValidationError: 400,
    InvalidTransitionError: 400,
    AccessDeniedError: 403,
    AssetNotFoundError: 404,
    DuplicateReportError: 409,
    CollaboratorError: 503,
}


def to_http(exc: PhotoServiceError) -> HTTPException:
    """HTTPException for a service error (500 for anything unmapped)."""
    for exc_type, status_code in _STATUS_CODES.items():
        if isinstance(exc, exc_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=500, detail="Internal error")
