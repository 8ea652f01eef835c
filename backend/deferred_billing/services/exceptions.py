"""
Deferred Billing Domain Exceptions

All exceptions raised by the service layer. Routers translate them to HTTP.
"""


class DeferredBillingError(Exception):
    """Base exception for service-layer errors"""
    pass


class NotFoundError(DeferredBillingError):
    """Raised when a property or user does not exist"""
    pass


class ConflictError(DeferredBillingError):
    """Raised when re-deciding a property that already has a terminal status"""
    pass


class ProviderError(DeferredBillingError):
    """Raised when the billing provider rejects a call or cannot be reached"""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class StorageError(DeferredBillingError):
    """Raised when claiming, saving or reading selections fails in the database"""
    pass
