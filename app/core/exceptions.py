"""Custom exception types for domain and API layers."""


class AppError(Exception):
    """Base app exception."""


class NotFoundError(AppError):
    """Requested record does not exist."""


class IntegrationError(AppError):
    """External integration call failure."""


class BillingRunInProgress(AppError):
    """A billing lifecycle run is already executing in this process."""


class DatabaseError(AppError):
    """Datastore read or write failure."""
