from .models import Bill, Dataset, Item, Stats, StockEntry, StockEntryPatch, User
from .errors import (
    AppError,
    AuthorizationError,
    InvalidBackupError,
    StorageError,
    StorageQuotaError,
    ValidationError,
)

__all__ = [
    "Bill",
    "Dataset",
    "Item",
    "Stats",
    "StockEntry",
    "StockEntryPatch",
    "User",
    "AppError",
    "AuthorizationError",
    "InvalidBackupError",
    "StorageError",
    "StorageQuotaError",
    "ValidationError",
]
