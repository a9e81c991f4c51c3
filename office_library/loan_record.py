from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .timeutil import from_iso, to_iso, utcnow


class LoanStatus(str, Enum):
    ACTIVE = "active"
    RETURNED = "returned"


@dataclass
class LoanRecord:
    """One borrowing of one book by one employee.

    ``ACTIVE -> RETURNED`` is the only transition; a returned record is kept
    as history and never reopened. ``due_date`` may move while active.
    """

    id: str
    book_id: str
    employee_id: str
    borrowed_at: datetime
    due_date: datetime
    status: LoanStatus = LoanStatus.ACTIVE
    returned_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE

    def is_overdue(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.is_active and now > self.due_date

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "book_id": self.book_id,
            "employee_id": self.employee_id,
            "borrowed_at": to_iso(self.borrowed_at),
            "due_date": to_iso(self.due_date),
            "returned_at": to_iso(self.returned_at),
            "status": self.status.value,
        }

    @staticmethod
    def from_dict(data: dict) -> "LoanRecord":
        return LoanRecord(
            id=data["id"],
            book_id=data["book_id"],
            employee_id=data["employee_id"],
            borrowed_at=from_iso(data["borrowed_at"]),
            due_date=from_iso(data["due_date"]),
            returned_at=from_iso(data.get("returned_at")),
            status=LoanStatus(data.get("status", LoanStatus.ACTIVE.value)),
        )
