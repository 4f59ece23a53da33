from fastapi import status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed input that fails a domain rule."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_400_BAD_REQUEST)


class NotFoundError(ServiceError):
    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_404_NOT_FOUND)


class ConflictError(ServiceError):
    """Unique key collision: duplicate payment reference, fee structure, reversal."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_409_CONFLICT)


class AuthorizationError(ServiceError):
    def __init__(self, message: str = "Not allowed") -> None:
        super().__init__(message, status.HTTP_403_FORBIDDEN)


class GatewayError(ServiceError):
    """Outbound payment gateway call failed after all attempts."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status.HTTP_502_BAD_GATEWAY)


class LedgerImmutableError(ServiceError):
    """Raised when something tries to update or delete a posted ledger row."""

    def __init__(self, message: str = "Ledger entries cannot be edited or deleted. Create a reversal instead.") -> None:
        super().__init__(message, status.HTTP_500_INTERNAL_SERVER_ERROR)
