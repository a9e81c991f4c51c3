"""Loan lifecycle: borrowing, returning and extending loans.

Each borrow or return touches two collections, a loan record and the book
it refers to. The engine keeps them consistent:

- a book is ``borrowed`` exactly when one ``active`` loan exists for it and
  its ``current_borrower_id`` names that loan's employee;
- an employee never holds more than ``max_loans_per_employee`` active loans;
- a loan record only ever moves ``active -> returned``.

Every operation validates and writes while holding the shared write lock,
re-reading state from the repositories each time. If the second of the two
writes fails the first one is undone before the error propagates.
"""
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, timedelta, timezone
from threading import RLock
from typing import Callable, List, Optional

from .book import BookStatus
from .errors import (
    BookAlreadyBorrowed,
    BookNotBorrowed,
    BookNotFound,
    EmployeeNotFound,
    LoanAlreadyReturned,
    LoanLimitExceeded,
    LoanNotFound,
    StorageFailure,
    ValidationFailure,
)
from .loan_record import LoanRecord, LoanStatus
from .repositories import BookRepository, EmployeeRepository, LoanRepository
from .timeutil import utcnow
from .validators import ISBNValidator

logger = logging.getLogger(__name__)

LOAN_PERIOD_DAYS = 14
MAX_LOANS_PER_EMPLOYEE = 10


class LoanLifecycleEngine:
    def __init__(
        self,
        loans: LoanRepository,
        books: BookRepository,
        employees: EmployeeRepository,
        lock: Optional[RLock] = None,
        clock: Callable[[], datetime] = utcnow,
        loan_period_days: int = LOAN_PERIOD_DAYS,
        max_loans_per_employee: int = MAX_LOANS_PER_EMPLOYEE,
    ) -> None:
        self.loans = loans
        self.books = books
        self.employees = employees
        self.lock = lock or RLock()
        self.clock = clock
        self.loan_period_days = loan_period_days
        self.max_loans_per_employee = max_loans_per_employee

    # ------------------------- Borrow / return ------------------------- #
    def borrow_book(self, book_id: str, employee_id: str) -> LoanRecord:
        with self.lock:
            book = self.books.find_by_id(book_id)
            if not book:
                raise BookNotFound(book_id=book_id)
            if not self.employees.find_by_id(employee_id):
                raise EmployeeNotFound(employee_id=employee_id)
            if book.status == BookStatus.BORROWED:
                raise BookAlreadyBorrowed(book_id, employee_id, book.current_borrower_id)
            existing = self.loans.find_active_by_book_id(book_id)
            if existing:
                # Book row says available but a loan is still open.
                raise BookAlreadyBorrowed(book_id, employee_id, existing.employee_id)

            active = self.loans.find_active_by_employee_id(employee_id)
            if len(active) >= self.max_loans_per_employee:
                raise LoanLimitExceeded(employee_id, len(active), self.max_loans_per_employee)

            borrowed_at = self.clock()
            loan = LoanRecord(
                id=str(uuid.uuid4()),
                book_id=book_id,
                employee_id=employee_id,
                borrowed_at=borrowed_at,
                due_date=borrowed_at + timedelta(days=self.loan_period_days),
                status=LoanStatus.ACTIVE,
            )
            self.loans.save(loan)
            try:
                self.books.update(
                    book_id, status=BookStatus.BORROWED, current_borrower_id=employee_id
                )
            except StorageFailure:
                self._compensate("borrow", loan.id, lambda: self.loans.delete(loan.id))
                raise

        logger.info("Book %s borrowed by %s (loan %s)", book_id, employee_id, loan.id)
        return loan

    def return_book(self, book_id: str) -> LoanRecord:
        with self.lock:
            if not self.books.find_by_id(book_id):
                raise BookNotFound(book_id=book_id)
            active = self.loans.find_active_by_book_id(book_id)
            if not active:
                raise BookNotBorrowed(book_id)

            returned = self.loans.update(
                active.id, status=LoanStatus.RETURNED, returned_at=self.clock()
            )
            try:
                self.books.update(book_id, status=BookStatus.AVAILABLE, current_borrower_id=None)
            except StorageFailure:
                self._compensate(
                    "return",
                    active.id,
                    lambda: self.loans.update(active.id, status=LoanStatus.ACTIVE, returned_at=None),
                )
                raise

        logger.info("Book %s returned (loan %s)", book_id, returned.id)
        return returned

    def borrow_book_by_isbn(self, isbn: str, employee_id: str) -> LoanRecord:
        with self.lock:
            book = self._resolve_isbn(isbn)
            return self.borrow_book(book.id, employee_id)

    def return_book_by_isbn(self, isbn: str) -> LoanRecord:
        with self.lock:
            book = self._resolve_isbn(isbn)
            return self.return_book(book.id)

    def borrow_book_by_barcode(self, isbn: str, barcode: str) -> LoanRecord:
        """Scanner path: book by ISBN barcode, employee by member barcode."""
        with self.lock:
            employee = self.resolve_barcode(barcode)
            return self.borrow_book_by_isbn(isbn, employee.id)

    # ------------------------- Due dates ------------------------- #
    def extend_loan(
        self,
        loan_id: str,
        days: Optional[int] = None,
        due_date: Optional[datetime] = None,
    ) -> LoanRecord:
        """Move the due date by ``days`` (may be negative) or set it to ``due_date``."""
        if (days is None) == (due_date is None):
            raise ValidationFailure("Give either a number of days or an explicit due date.")
        if days is not None and (isinstance(days, bool) or not isinstance(days, int)):
            raise ValidationFailure("Days must be a whole number.", field="days")

        with self.lock:
            loan = self.loans.find_by_id(loan_id)
            if not loan:
                raise LoanNotFound(loan_id)
            if loan.status == LoanStatus.RETURNED:
                raise LoanAlreadyReturned(loan_id)

            if days is not None:
                try:
                    new_due = loan.due_date + timedelta(days=days)
                except OverflowError:
                    raise ValidationFailure("Due date out of range.", field="days") from None
            else:
                new_due = _as_due_datetime(due_date, loan.due_date)
            updated = self.loans.update(loan_id, due_date=new_due)

        logger.info("Loan %s due date moved to %s", loan_id, new_due.isoformat())
        return updated

    # ------------------------- Queries ------------------------- #
    def get_active_loans(self) -> List[LoanRecord]:
        return self.loans.find_active_loans()

    def get_loan_history(
        self, book_id: Optional[str] = None, employee_id: Optional[str] = None
    ) -> List[LoanRecord]:
        if book_id and employee_id:
            return [l for l in self.loans.find_by_book_id(book_id) if l.employee_id == employee_id]
        if book_id:
            return self.loans.find_by_book_id(book_id)
        if employee_id:
            return self.loans.find_by_employee_id(employee_id)
        return self.loans.find_all()

    def get_employee_active_loans(self, employee_id: str) -> List[LoanRecord]:
        if not self.employees.find_by_id(employee_id):
            raise EmployeeNotFound(employee_id=employee_id)
        return self.loans.find_active_by_employee_id(employee_id)

    def get_employee_active_loan_count(self, employee_id: str) -> int:
        return len(self.get_employee_active_loans(employee_id))

    def get_overdue_loans(self, now: Optional[datetime] = None) -> List[LoanRecord]:
        now = now or self.clock()
        return [l for l in self.loans.find_active_loans() if l.is_overdue(now)]

    # ------------------------- Helpers ------------------------- #
    def resolve_barcode(self, barcode: str):
        employee = self.employees.find_by_barcode(barcode.strip())
        if not employee:
            raise EmployeeNotFound(barcode=barcode)
        return employee

    def _resolve_isbn(self, isbn: str):
        norm = ISBNValidator.normalize_identifier(isbn)
        book = self.books.find_by_isbn(norm)
        if not book:
            raise BookNotFound(isbn=norm or (isbn or ""))
        return book

    def _compensate(self, operation: str, loan_id: str, undo: Callable[[], object]) -> None:
        try:
            undo()
        except StorageFailure as exc:
            logger.error(
                "Could not roll back %s of loan %s after a storage failure: %s",
                operation, loan_id, exc,
            )
        else:
            logger.warning("Rolled back %s of loan %s after a storage failure", operation, loan_id)


def _as_due_datetime(value, current_due: datetime) -> datetime:
    # A bare date keeps the current due time of day.
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime.combine(value, current_due.timetz())
    raise ValidationFailure("Due date must be a date or datetime.", field="due_date")
