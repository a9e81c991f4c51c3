from __future__ import annotations

import logging
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from .employee import Employee
from .errors import DuplicateIdentifier, EmployeeHasActiveLoans, EmployeeNotFound, ValidationFailure
from .repositories import EmployeeRepository, LoanRepository
from .timeutil import utcnow
from .validators import EmailValidator, TextValidator

logger = logging.getLogger(__name__)


class EmployeeService:
    def __init__(
        self,
        employees: EmployeeRepository,
        loans: LoanRepository,
        lock: Optional[RLock] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.employees = employees
        self.loans = loans
        self.lock = lock or RLock()
        self.clock = clock

    def add_employee(self, employee_id: str, name: str, email: str) -> Employee:
        """Register an employee under a caller-supplied id; the id doubles as barcode."""
        if (
            TextValidator.is_blank(employee_id)
            or TextValidator.is_blank(name)
            or TextValidator.is_blank(email)
        ):
            raise ValidationFailure("Employee id, name and email are required.")
        if not EmailValidator.is_valid_email(email):
            raise ValidationFailure(f"Invalid email address: {email}", field="email")

        employee_id = employee_id.strip()
        email = EmailValidator.normalize_email(email)
        with self.lock:
            if self.employees.find_by_id(employee_id):
                raise DuplicateIdentifier("Employee id", employee_id)
            if self.employees.find_by_email(email):
                raise DuplicateIdentifier("Email", email)
            employee = Employee(
                id=employee_id,
                name=name.strip(),
                email=email,
                barcode=employee_id,
                registered_at=self.clock(),
            )
            self.employees.save(employee)
        logger.info("Registered employee %s", employee.id)
        return employee

    def update_employee(
        self, employee_id: str, *, name: Optional[str] = None, email: Optional[str] = None
    ) -> Employee:
        with self.lock:
            existing = self.employees.find_by_id(employee_id)
            if not existing:
                raise EmployeeNotFound(employee_id=employee_id)

            changes: Dict[str, Any] = {}
            if name is not None:
                if TextValidator.is_blank(name):
                    raise ValidationFailure("Name cannot be empty.", field="name")
                changes["name"] = name.strip()
            if email is not None:
                if not EmailValidator.is_valid_email(email):
                    raise ValidationFailure(f"Invalid email address: {email}", field="email")
                norm = EmailValidator.normalize_email(email)
                if norm != existing.email:
                    other = self.employees.find_by_email(norm)
                    if other and other.id != employee_id:
                        raise DuplicateIdentifier("Email", norm)
                    changes["email"] = norm

            if not changes:
                return existing
            return self.employees.update(employee_id, **changes)

    def delete_employee(self, employee_id: str) -> None:
        with self.lock:
            if not self.employees.find_by_id(employee_id):
                raise EmployeeNotFound(employee_id=employee_id)
            active = self.loans.find_active_by_employee_id(employee_id)
            if active:
                raise EmployeeHasActiveLoans(employee_id, len(active))
            self.employees.delete(employee_id)
        logger.info("Deleted employee %s", employee_id)

    def get_all_employees(self) -> List[Employee]:
        return self.employees.find_all()

    def get_employee_by_id(self, employee_id: str) -> Employee:
        employee = self.employees.find_by_id(employee_id)
        if not employee:
            raise EmployeeNotFound(employee_id=employee_id)
        return employee

    def get_employee_by_barcode(self, barcode: str) -> Employee:
        employee = self.employees.find_by_barcode(barcode.strip())
        if not employee:
            raise EmployeeNotFound(barcode=barcode)
        return employee

    def get_employee_active_loan_count(self, employee_id: str) -> int:
        self.get_employee_by_id(employee_id)
        return len(self.loans.find_active_by_employee_id(employee_id))
