from typing import Awaitable, Callable, Optional

from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Malformed input: bad email, empty name, invalid time, and so on."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class UnauthenticatedError(ServiceError):
    def __init__(self, message: str = "Could not validate credentials") -> None:
        super().__init__(message, status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(ServiceError):
    def __init__(self, message: str = "Insufficient permissions") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class NotFoundError(ServiceError):
    def __init__(self, message: str = "Not found") -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """Uniqueness or state-machine violation. Reported as 400 to clients."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)
        self.field = field


class DependencyFailedError(ServiceError):
    """A downstream system (media service, tenant provisioning) failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


class TenantProvisionFailed(DependencyFailedError):
    pass


class RequestCancelledError(ServiceError):
    # nginx's "client closed request"
    def __init__(self, message: str = "Request cancelled") -> None:
        super().__init__(message, 499)


class InternalError(ServiceError):
    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)


CancelCheck = Optional[Callable[[], Awaitable[bool]]]


async def ensure_not_cancelled(is_cancelled: CancelCheck) -> None:
    """Raise RequestCancelledError once the caller reports the request as gone."""
    if is_cancelled is not None and await is_cancelled():
        raise RequestCancelledError()
