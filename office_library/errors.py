"""Typed errors raised by the library services.

Every failure a caller can see is a :class:`LibraryError` carrying an
:class:`ErrorCode`, a message meant for direct display and a ``context``
dict with the ids involved. The families mirror how callers react:

- :class:`NotFoundError` - an entity lookup failed.
- :class:`ConflictError` - a business rule refused the operation.
- :class:`ValidationFailure` - malformed input, rejected before any write.
- :class:`StorageFailure` - the JSON files could not be read or written.
- :class:`BatchFailure` - one or more items of a batch failed; the items
  that succeeded stay committed and travel with the error.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
    from .loan_record import LoanRecord


class ErrorCode(str, Enum):
    BOOK_NOT_FOUND = "BookNotFound"
    EMPLOYEE_NOT_FOUND = "EmployeeNotFound"
    LOAN_NOT_FOUND = "LoanNotFound"
    BOOK_ALREADY_BORROWED = "BookAlreadyBorrowed"
    BOOK_NOT_BORROWED = "BookNotBorrowed"
    LOAN_LIMIT_EXCEEDED = "LoanLimitExceeded"
    DUPLICATE_IDENTIFIER = "DuplicateIdentifier"
    BOOK_CURRENTLY_BORROWED = "BookCurrentlyBorrowed"
    EMPLOYEE_HAS_ACTIVE_LOANS = "EmployeeHasActiveLoans"
    LOAN_ALREADY_RETURNED = "LoanAlreadyReturned"
    VALIDATION_FAILURE = "ValidationFailure"
    STORAGE_FAILURE = "StorageFailure"
    BATCH_FAILURE = "BatchFailure"


class LibraryError(Exception):
    code: ErrorCode = ErrorCode.VALIDATION_FAILURE

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context: Dict[str, Any] = context

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "message": self.message, "context": dict(self.context)}


# ------------------------- Not found ------------------------- #
class NotFoundError(LibraryError, LookupError):
    pass


class BookNotFound(NotFoundError):
    code = ErrorCode.BOOK_NOT_FOUND

    def __init__(self, book_id: Optional[str] = None, isbn: Optional[str] = None) -> None:
        if isbn is not None:
            super().__init__(f"No book is registered with ISBN {isbn}.", isbn=isbn)
        else:
            super().__init__(f"Book {book_id} not found.", book_id=book_id)


class EmployeeNotFound(NotFoundError):
    code = ErrorCode.EMPLOYEE_NOT_FOUND

    def __init__(self, employee_id: Optional[str] = None, barcode: Optional[str] = None) -> None:
        if barcode is not None:
            super().__init__(f"No employee matches barcode {barcode}.", barcode=barcode)
        else:
            super().__init__(f"Employee {employee_id} not found.", employee_id=employee_id)


class LoanNotFound(NotFoundError):
    code = ErrorCode.LOAN_NOT_FOUND

    def __init__(self, loan_id: str) -> None:
        super().__init__(f"Loan record {loan_id} not found.", loan_id=loan_id)


# ------------------------- Conflicts ------------------------- #
class ConflictError(LibraryError):
    pass


class BookAlreadyBorrowed(ConflictError):
    code = ErrorCode.BOOK_ALREADY_BORROWED

    def __init__(self, book_id: str, employee_id: str, borrower_id: Optional[str]) -> None:
        if borrower_id == employee_id:
            message = "You have already borrowed this book."
        else:
            message = "This book is already on loan."
        super().__init__(message, book_id=book_id, employee_id=employee_id, borrower_id=borrower_id)


class BookNotBorrowed(ConflictError):
    code = ErrorCode.BOOK_NOT_BORROWED

    def __init__(self, book_id: str) -> None:
        super().__init__("This book is not on loan.", book_id=book_id)


class LoanLimitExceeded(ConflictError):
    code = ErrorCode.LOAN_LIMIT_EXCEEDED

    def __init__(self, employee_id: str, active: int, limit: int, requested: int = 1) -> None:
        if requested == 1:
            message = f"Loan limit reached ({limit} books)."
        else:
            message = (
                f"Loan limit of {limit} books would be exceeded "
                f"(currently {active}, requested {requested})."
            )
        super().__init__(
            message, employee_id=employee_id, active=active, limit=limit, requested=requested
        )


class DuplicateIdentifier(ConflictError):
    code = ErrorCode.DUPLICATE_IDENTIFIER

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"{field} {value} is already registered.", field=field, value=value)


class BookCurrentlyBorrowed(ConflictError):
    code = ErrorCode.BOOK_CURRENTLY_BORROWED

    def __init__(self, book_id: str) -> None:
        super().__init__("A book that is on loan cannot be deleted.", book_id=book_id)


class EmployeeHasActiveLoans(ConflictError):
    code = ErrorCode.EMPLOYEE_HAS_ACTIVE_LOANS

    def __init__(self, employee_id: str, active: int) -> None:
        super().__init__(
            "An employee with books on loan cannot be deleted.",
            employee_id=employee_id,
            active=active,
        )


class LoanAlreadyReturned(ConflictError):
    code = ErrorCode.LOAN_ALREADY_RETURNED

    def __init__(self, loan_id: str) -> None:
        super().__init__("A returned loan cannot be extended.", loan_id=loan_id)


# ------------------------- Validation / storage ------------------------- #
class ValidationFailure(LibraryError, ValueError):
    code = ErrorCode.VALIDATION_FAILURE

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message, field=field)


class StorageFailure(LibraryError):
    code = ErrorCode.STORAGE_FAILURE

    def __init__(self, message: str, path: Optional[str] = None) -> None:
        super().__init__(message, path=path)


# ------------------------- Batch ------------------------- #
@dataclass(frozen=True)
class BatchItemFailure:
    isbn: str
    code: ErrorCode
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return {"isbn": self.isbn, "code": self.code.value, "message": self.message}


class BatchFailure(LibraryError):
    code = ErrorCode.BATCH_FAILURE

    def __init__(
        self,
        operation: str,
        failures: List[BatchItemFailure],
        successes: List["LoanRecord"],
    ) -> None:
        details = "\n".join(f"{f.isbn}: {f.message}" for f in failures)
        super().__init__(
            f"Some books could not be processed ({operation}):\n{details}",
            operation=operation,
            failed=len(failures),
            succeeded=len(successes),
        )
        self.failures = list(failures)
        self.successes = list(successes)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["failures"] = [f.to_dict() for f in self.failures]
        payload["successes"] = [loan.to_dict() for loan in self.successes]
        return payload
