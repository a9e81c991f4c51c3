"""Office Library - core package

This package contains:
- Entities (book.py, employee.py, loan_record.py)
- JSON file storage and repositories (storage.py, repositories.py)
- Catalog and employee services (catalog.py, employees.py)
- Loan lifecycle engine and batch coordinator (loans.py, batch.py)
- Wiring facade (library.py), HTTP API (api.py) and CLI (cli.py)
"""
from .book import Book, BookStatus
from .employee import Employee
from .errors import (
    BatchFailure,
    BatchItemFailure,
    ConflictError,
    ErrorCode,
    LibraryError,
    NotFoundError,
    StorageFailure,
    ValidationFailure,
)
from .library import Library
from .loan_record import LoanRecord, LoanStatus
from .loans import LOAN_PERIOD_DAYS, MAX_LOANS_PER_EMPLOYEE, LoanLifecycleEngine
from .batch import BatchCoordinator, BatchResult
from .validators import is_valid_email, is_valid_isbn, normalize_identifier

__all__ = [
    "Book",
    "BookStatus",
    "Employee",
    "LoanRecord",
    "LoanStatus",
    "Library",
    "LoanLifecycleEngine",
    "BatchCoordinator",
    "BatchResult",
    "LOAN_PERIOD_DAYS",
    "MAX_LOANS_PER_EMPLOYEE",
    "ErrorCode",
    "LibraryError",
    "NotFoundError",
    "ConflictError",
    "ValidationFailure",
    "StorageFailure",
    "BatchFailure",
    "BatchItemFailure",
    "normalize_identifier",
    "is_valid_isbn",
    "is_valid_email",
]
