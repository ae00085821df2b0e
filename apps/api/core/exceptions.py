"""
API error types.

Routers raise these; main.py renders them as
``{"detail": <message>, "code": <error_code>}`` with the matching status.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class APIException(HTTPException):
    """HTTPException carrying a machine-readable ``error_code``."""

    status_code_default = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code_default = "ERROR"

    def __init__(
        self,
        detail: Any,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=detail,
            headers=headers,
        )
        self.error_code = error_code or self.error_code_default


class NotFoundError(APIException):
    """No row with that id (or email / name)."""

    status_code_default = status.HTTP_404_NOT_FOUND
    error_code_default = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class ValidationError(APIException):
    """Request data the schemas cannot catch (multipart forms)."""

    status_code_default = status.HTTP_400_BAD_REQUEST
    error_code_default = "VALIDATION_ERROR"

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(
            detail,
            error_code=f"VALIDATION_ERROR_{field.upper()}" if field else None,
        )


class ForbiddenError(APIException):
    """Caller's role may not perform the operation."""

    status_code_default = status.HTTP_403_FORBIDDEN
    error_code_default = "FORBIDDEN"

    def __init__(self, detail: str = "Admin role required."):
        super().__init__(detail)


class PayloadTooLargeError(APIException):
    """Uploaded badge exceeds BADGE_MAX_FILE_BYTES."""

    status_code_default = status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
    error_code_default = "PAYLOAD_TOO_LARGE"

    def __init__(self, detail: str = "Badge file too large."):
        super().__init__(detail)
