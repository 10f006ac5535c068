from .auth_service import AuthService
from .autosave_service import AutosaveService
from .backup_service import BackupService
from .export_service import ExportService
from .operations_service import OperationsService
from .record_service import RecordService
from .reporting_service import ReportingService
from .search_service import SearchFilters, SearchService

__all__ = [
    "AuthService",
    "AutosaveService",
    "BackupService",
    "ExportService",
    "OperationsService",
    "RecordService",
    "ReportingService",
    "SearchFilters",
    "SearchService",
]
