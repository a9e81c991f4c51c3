from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict

if TYPE_CHECKING:  # pragma: no cover
    from .library import Library

logger = logging.getLogger(__name__)

SAMPLE_BOOKS = [
    ("The Art of Readable Code", "Dustin Boswell, Trevor Foucher", "9784873115658"),
    ("97 Things Every Programmer Should Know", "Kevlin Henney", "9784873114798"),
    ("Refactoring (2nd Edition)", "Martin Fowler", "9784274224546"),
    ("Clean Code", "Robert C. Martin", "9784048930598"),
    ("Programming TypeScript", "Boris Cherny", "9784873119045"),
]

SAMPLE_EMPLOYEES = [
    ("EMP001", "Taro Yamada", "yamada@company.com"),
    ("EMP002", "Hanako Sato", "sato@company.com"),
    ("EMP003", "Ichiro Tanaka", "tanaka@company.com"),
]


def seed_sample_data(library: "Library") -> Dict[str, int]:
    """Register the sample books and employees that are not present yet."""
    added_books = 0
    for title, author, isbn in SAMPLE_BOOKS:
        if library.book_repository.find_by_isbn(isbn):
            continue
        library.books.add_book(title, author, isbn)
        added_books += 1

    added_employees = 0
    for employee_id, name, email in SAMPLE_EMPLOYEES:
        if library.employee_repository.find_by_id(employee_id):
            continue
        library.employees.add_employee(employee_id, name, email)
        added_employees += 1

    logger.info("Seeded %d sample books and %d sample employees", added_books, added_employees)
    return {"books": added_books, "employees": added_employees}
