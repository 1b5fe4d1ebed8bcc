from typing import Optional
from fastapi import HTTPException, status
from sqlalchemy.exc import DBAPIError, OperationalError

class BaseAppException(HTTPException):
    """Application error carrying a stable code and whether a retry can succeed"""
    error_code = "internal_error"
    retryable = False

    def __init__(self, status_code: int, detail: str, error_code: Optional[str] = None, retryable: Optional[bool] = None):
        super().__init__(status_code=status_code, detail=detail)
        if error_code is not None:
            self.error_code = error_code
        if retryable is not None:
            self.retryable = retryable

    def to_dict(self) -> dict:
        return {
            "detail": self.detail,
            "error_code": self.error_code,
            "retryable": self.retryable,
        }

class ValidationError(BaseAppException):
    error_code = "validation_error"

    def __init__(self, detail: str = "Validation error"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

class NotFoundError(BaseAppException):
    error_code = "not_found"

    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)

class ConflictError(BaseAppException):
    error_code = "conflict"

    def __init__(self, detail: str = "Resource conflict"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class InsufficientStockError(BaseAppException):
    error_code = "insufficient_stock"

    def __init__(self, detail: str = "Insufficient stock on hand"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class InsufficientAvailableError(BaseAppException):
    error_code = "insufficient_available"

    def __init__(self, detail: str = "Insufficient available stock"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class InvalidTransitionError(BaseAppException):
    error_code = "invalid_transition"

    def __init__(self, detail: str = "Status transition not allowed"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)

class OverReceiptError(BaseAppException):
    error_code = "over_receipt"

    def __init__(self, detail: str = "Received quantity exceeds ordered quantity"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)

class DuplicateReferenceError(BaseAppException):
    """Movement reference already applied; callers treat this as a no-op"""
    error_code = "duplicate_reference"
    retryable = True

    def __init__(self, detail: str = "Movement reference already applied"):
        super().__init__(status_code=status.HTTP_200_OK, detail=detail)

class PermissionDeniedError(BaseAppException):
    error_code = "permission_denied"

    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)

class ConcurrencyError(BaseAppException):
    error_code = "concurrency_conflict"
    retryable = True

    def __init__(self, detail: str = "Resource is busy, retry the request"):
        super().__init__(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=detail)

class ServiceError(BaseAppException):
    error_code = "internal_error"

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


_TRANSIENT_MARKERS = ("deadlock", "lock timeout", "could not obtain lock", "database is locked", "could not serialize")

def is_transient_db_error(exc: Exception) -> bool:
    """Lock contention and dropped connections are worth a client retry"""
    if isinstance(exc, DBAPIError) and exc.connection_invalidated:
        return True
    if isinstance(exc, OperationalError):
        message = str(exc.orig if exc.orig is not None else exc).lower()
        return any(marker in message for marker in _TRANSIENT_MARKERS)
    return False

def wrap_unexpected(exc: Exception, detail: str) -> BaseAppException:
    """Translate a non-application exception into the error raised to callers"""
    if is_transient_db_error(exc):
        return ConcurrencyError(f"{detail}: resource is busy, retry the request")
    return ServiceError(detail)
