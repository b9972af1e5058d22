"""Error taxonomy shared by the service layer, the API and the client."""
from typing import Dict, List, Optional

from fastapi import status


class KanflowError(Exception):
    """Base class for every error the board core raises on purpose."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Request failed"

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, object]:
        return {"detail": self.detail}


class NotFoundError(KanflowError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class UnauthorizedError(KanflowError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Not authenticated"


class ConflictError(KanflowError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "The sibling group changed since it was read"


class ValidationError(KanflowError):
    """User-correctable input problem, reported per field."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    default_detail = "Validation failed"

    def __init__(self, detail: Optional[str] = None, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(detail)
        self.errors = errors or []

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(message, errors=[{"field": field, "message": message}])

    def to_dict(self) -> Dict[str, object]:
        return {"detail": self.detail, "errors": self.errors}


ERRORS_BY_STATUS = {
    error.status_code: error
    for error in (NotFoundError, UnauthorizedError, ConflictError, ValidationError)
}
