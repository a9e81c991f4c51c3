from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from threading import RLock
from typing import Callable, Optional, Union

from .batch import BatchCoordinator
from .catalog import BookService
from .config import Settings
from .employees import EmployeeService
from .loans import LOAN_PERIOD_DAYS, MAX_LOANS_PER_EMPLOYEE, LoanLifecycleEngine
from .repositories import BookRepository, EmployeeRepository, LoanRepository
from .timeutil import utcnow

logger = logging.getLogger(__name__)

BOOKS_FILE = "books.json"
EMPLOYEES_FILE = "employees.json"
LOANS_FILE = "loans.json"


class Library:
    """Wires the repositories and services for one data directory.

    All mutating services share one re-entrant lock, so borrow/return
    sequences stay atomic when the HTTP layer serves requests from threads.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        *,
        loan_period_days: int = LOAN_PERIOD_DAYS,
        max_loans_per_employee: int = MAX_LOANS_PER_EMPLOYEE,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.data_dir = Path(data_dir)
        clock = clock or utcnow
        self.lock = RLock()

        self.book_repository = BookRepository(self.data_dir / BOOKS_FILE)
        self.employee_repository = EmployeeRepository(self.data_dir / EMPLOYEES_FILE)
        self.loan_repository = LoanRepository(self.data_dir / LOANS_FILE)

        self.books = BookService(
            self.book_repository, self.loan_repository, self.employee_repository, self.lock, clock
        )
        self.employees = EmployeeService(
            self.employee_repository, self.loan_repository, self.lock, clock
        )
        self.loans = LoanLifecycleEngine(
            self.loan_repository,
            self.book_repository,
            self.employee_repository,
            lock=self.lock,
            clock=clock,
            loan_period_days=loan_period_days,
            max_loans_per_employee=max_loans_per_employee,
        )
        self.batch = BatchCoordinator(self.loans)

    @classmethod
    def from_settings(cls, settings: Settings, data_dir: Optional[Union[str, Path]] = None) -> "Library":
        return cls(
            data_dir or settings.data_dir,
            loan_period_days=settings.loan_period_days,
            max_loans_per_employee=settings.max_loans_per_employee,
        )

    def initialize(self, seed: bool = False) -> bool:
        """Create missing data files; optionally seed sample data into a fresh store.

        Returns True if sample data was written.
        """
        created_books = self.book_repository.store.ensure_exists()
        created_employees = self.employee_repository.store.ensure_exists()
        created_loans = self.loan_repository.store.ensure_exists()
        if created_books or created_employees or created_loans:
            logger.info("Initialized data files in %s", self.data_dir)
        if seed and created_books and created_employees:
            from .seed import seed_sample_data

            seed_sample_data(self)
            return True
        return False
