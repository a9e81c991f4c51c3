from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, List, Optional, Union

from .book import Book, BookStatus
from .employee import Employee
from .errors import BookNotFound, EmployeeNotFound, LoanNotFound, NotFoundError
from .loan_record import LoanRecord, LoanStatus
from .storage import JsonFileStore


class JsonRepository:
    """CRUD over one JSON file. Nothing is cached between calls."""

    entity_type: Any = None
    not_found: Callable[[str], NotFoundError]

    def __init__(self, store: Union[JsonFileStore, str, Path]) -> None:
        self.store = store if isinstance(store, JsonFileStore) else JsonFileStore(store)

    def find_all(self) -> list:
        return [self.entity_type.from_dict(row) for row in self.store.read()]

    def find_by_id(self, entity_id: str):
        return next((e for e in self.find_all() if e.id == entity_id), None)

    def save(self, entity):
        rows = self.store.read()
        rows.append(entity.to_dict())
        self.store.write(rows)
        return entity

    def update(self, entity_id: str, **changes):
        """Merge ``changes`` into the stored entity and return the result."""
        rows = self.store.read()
        for index, row in enumerate(rows):
            if row.get("id") == entity_id:
                updated = replace(self.entity_type.from_dict(row), **changes)
                rows[index] = updated.to_dict()
                self.store.write(rows)
                return updated
        raise self.not_found(entity_id)

    def delete(self, entity_id: str) -> bool:
        rows = self.store.read()
        remaining = [row for row in rows if row.get("id") != entity_id]
        if len(remaining) == len(rows):
            return False
        self.store.write(remaining)
        return True


class BookRepository(JsonRepository):
    entity_type = Book
    not_found = staticmethod(lambda book_id: BookNotFound(book_id=book_id))

    def find_by_isbn(self, isbn: str) -> Optional[Book]:
        return next((b for b in self.find_all() if b.isbn == isbn), None)

    def find_by_title(self, title: str) -> List[Book]:
        t = title.lower()
        return [b for b in self.find_all() if t in b.title.lower()]

    def find_by_author(self, author: str) -> List[Book]:
        a = author.lower()
        return [b for b in self.find_all() if a in b.author.lower()]

    def find_by_status(self, status: BookStatus) -> List[Book]:
        return [b for b in self.find_all() if b.status == status]

    def find_available(self) -> List[Book]:
        return self.find_by_status(BookStatus.AVAILABLE)


class EmployeeRepository(JsonRepository):
    entity_type = Employee
    not_found = staticmethod(lambda employee_id: EmployeeNotFound(employee_id=employee_id))

    def find_by_email(self, email: str) -> Optional[Employee]:
        return next((e for e in self.find_all() if e.email == email), None)

    def find_by_barcode(self, barcode: str) -> Optional[Employee]:
        return next((e for e in self.find_all() if e.barcode == barcode), None)


class LoanRepository(JsonRepository):
    entity_type = LoanRecord
    not_found = staticmethod(LoanNotFound)

    def find_active_loans(self) -> List[LoanRecord]:
        return [l for l in self.find_all() if l.status == LoanStatus.ACTIVE]

    def find_by_book_id(self, book_id: str) -> List[LoanRecord]:
        return [l for l in self.find_all() if l.book_id == book_id]

    def find_by_employee_id(self, employee_id: str) -> List[LoanRecord]:
        return [l for l in self.find_all() if l.employee_id == employee_id]

    def find_active_by_employee_id(self, employee_id: str) -> List[LoanRecord]:
        return [
            l
            for l in self.find_all()
            if l.employee_id == employee_id and l.status == LoanStatus.ACTIVE
        ]

    def find_active_by_book_id(self, book_id: str) -> Optional[LoanRecord]:
        return next(
            (l for l in self.find_all() if l.book_id == book_id and l.status == LoanStatus.ACTIVE),
            None,
        )
