"""Multi-book borrow/return for the scanner workflow.

Items are processed one at a time in the order given. A failing item does
not stop the batch and successful items are never rolled back; the caller
gets both lists back and re-queries state to recover.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from .errors import BatchFailure, BatchItemFailure, LibraryError, LoanLimitExceeded
from .loan_record import LoanRecord
from .loans import LoanLifecycleEngine

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    operation: str
    successes: List[LoanRecord] = field(default_factory=list)
    failures: List[BatchItemFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> List[LoanRecord]:
        if self.failures:
            raise BatchFailure(self.operation, self.failures, self.successes)
        return self.successes


class BatchCoordinator:
    """Applies engine operations per item. Never writes to a repository itself."""

    def __init__(self, engine: LoanLifecycleEngine) -> None:
        self.engine = engine

    def process_borrow(self, barcode: str, isbns: List[str]) -> BatchResult:
        with self.engine.lock:
            employee = self.engine.resolve_barcode(barcode)
            # Checked once up front so a batch never runs partway past the cap.
            active = len(self.engine.loans.find_active_by_employee_id(employee.id))
            limit = self.engine.max_loans_per_employee
            if active + len(isbns) > limit:
                raise LoanLimitExceeded(employee.id, active, limit, requested=len(isbns))
            return self._run(
                "borrow", isbns, lambda isbn: self.engine.borrow_book_by_isbn(isbn, employee.id)
            )

    def process_return(self, isbns: List[str]) -> BatchResult:
        with self.engine.lock:
            return self._run("return", isbns, self.engine.return_book_by_isbn)

    def borrow_multiple(self, barcode: str, isbns: List[str]) -> List[LoanRecord]:
        return self.process_borrow(barcode, isbns).raise_for_failures()

    def return_multiple(self, isbns: List[str]) -> List[LoanRecord]:
        return self.process_return(isbns).raise_for_failures()

    def _run(
        self, operation: str, isbns: List[str], action: Callable[[str], LoanRecord]
    ) -> BatchResult:
        result = BatchResult(operation)
        for isbn in isbns:
            try:
                result.successes.append(action(isbn))
            except LibraryError as exc:
                logger.warning("Batch %s failed for %s: %s", operation, isbn, exc.message)
                result.failures.append(BatchItemFailure(isbn, exc.code, exc.message))
        if result.failures:
            logger.warning(
                "Batch %s finished with %d of %d items failed",
                operation, len(result.failures), len(isbns),
            )
        return result
