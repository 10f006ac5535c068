class AppError(Exception):
    """Base app error."""


class ValidationError(AppError):
    pass


class AuthorizationError(AppError):
    pass


class StorageError(AppError):
    """Persistent surface unavailable or write rejected."""


class StorageQuotaError(StorageError):
    pass


class InvalidBackupError(AppError):
    pass
