from __future__ import annotations

import logging
import uuid
from datetime import datetime
from threading import RLock
from typing import Any, Callable, Dict, List, Optional

from .book import Book, BookStatus
from .errors import BookCurrentlyBorrowed, BookNotFound, DuplicateIdentifier, ValidationFailure
from .repositories import BookRepository, EmployeeRepository, LoanRepository
from .timeutil import utcnow
from .validators import ISBNValidator, TextValidator

logger = logging.getLogger(__name__)


class BookService:
    """Registers, edits and looks up books. Loan state is owned by the loan engine."""

    def __init__(
        self,
        books: BookRepository,
        loans: LoanRepository,
        employees: EmployeeRepository,
        lock: Optional[RLock] = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.books = books
        self.loans = loans
        self.employees = employees
        self.lock = lock or RLock()
        self.clock = clock

    # ------------------------- Core operations ------------------------- #
    def add_book(
        self, title: str, author: str, isbn: str, cover_image_url: Optional[str] = None
    ) -> Book:
        if TextValidator.is_blank(title) or TextValidator.is_blank(author) or TextValidator.is_blank(isbn):
            raise ValidationFailure("Title, author and ISBN are required.")
        norm = ISBNValidator.normalize_identifier(isbn)
        if not ISBNValidator.is_valid_isbn(norm):
            raise ValidationFailure(f"Invalid ISBN: {isbn}", field="isbn")

        with self.lock:
            if self.books.find_by_isbn(norm):
                raise DuplicateIdentifier("ISBN", norm)
            book = Book(
                id=str(uuid.uuid4()),
                title=title.strip(),
                author=author.strip(),
                isbn=norm,
                cover_image_url=cover_image_url or None,
                registered_at=self.clock(),
                status=BookStatus.AVAILABLE,
            )
            self.books.save(book)
        logger.info("Registered book %s (ISBN %s)", book.id, book.isbn)
        return book

    def update_book(
        self,
        book_id: str,
        *,
        title: Optional[str] = None,
        author: Optional[str] = None,
        isbn: Optional[str] = None,
        cover_image_url: Optional[str] = None,
    ) -> Book:
        """Edit descriptive fields. Status and borrower are never touched here."""
        with self.lock:
            existing = self.books.find_by_id(book_id)
            if not existing:
                raise BookNotFound(book_id=book_id)

            changes: Dict[str, Any] = {}
            if title is not None:
                if TextValidator.is_blank(title):
                    raise ValidationFailure("Title cannot be empty.", field="title")
                changes["title"] = title.strip()
            if author is not None:
                if TextValidator.is_blank(author):
                    raise ValidationFailure("Author cannot be empty.", field="author")
                changes["author"] = author.strip()
            if isbn is not None:
                norm = ISBNValidator.normalize_identifier(isbn)
                if norm != existing.isbn:
                    if not ISBNValidator.is_valid_isbn(norm):
                        raise ValidationFailure(f"Invalid ISBN: {isbn}", field="isbn")
                    other = self.books.find_by_isbn(norm)
                    if other and other.id != book_id:
                        raise DuplicateIdentifier("ISBN", norm)
                    changes["isbn"] = norm
            if cover_image_url is not None:
                changes["cover_image_url"] = cover_image_url or None

            if not changes:
                return existing
            return self.books.update(book_id, **changes)

    def delete_book(self, book_id: str) -> None:
        with self.lock:
            book = self.books.find_by_id(book_id)
            if not book:
                raise BookNotFound(book_id=book_id)
            if book.status == BookStatus.BORROWED or self.loans.find_active_by_book_id(book_id):
                raise BookCurrentlyBorrowed(book_id)
            self.books.delete(book_id)
        logger.info("Deleted book %s", book_id)

    # ------------------------- Lookups ------------------------- #
    def get_all_books(self) -> List[Book]:
        return self.books.find_all()

    def search_books(self, query: Optional[str]) -> List[Book]:
        """Case-insensitive match on title or author; blank query returns everything."""
        if TextValidator.is_blank(query):
            return self.get_all_books()
        q = query.strip()
        merged: Dict[str, Book] = {}
        for book in self.books.find_by_title(q) + self.books.find_by_author(q):
            merged.setdefault(book.id, book)
        return list(merged.values())

    def get_available_books(self) -> List[Book]:
        return self.books.find_available()

    def get_book_by_id(self, book_id: str) -> Book:
        book = self.books.find_by_id(book_id)
        if not book:
            raise BookNotFound(book_id=book_id)
        return book

    def get_book_by_isbn(self, isbn: str) -> Book:
        norm = ISBNValidator.normalize_identifier(isbn)
        book = self.books.find_by_isbn(norm)
        if not book:
            raise BookNotFound(isbn=norm)
        return book

    def get_statistics(self) -> Dict[str, Any]:
        books = self.books.find_all()
        active = self.loans.find_active_loans()
        now = self.clock()
        borrowed = sum(1 for b in books if b.status == BookStatus.BORROWED)
        return {
            "total_books": len(books),
            "available_books": len(books) - borrowed,
            "borrowed_books": borrowed,
            "unique_authors": len({b.author for b in books}),
            "total_employees": len(self.employees.find_all()),
            "active_loans": len(active),
            "overdue_loans": sum(1 for l in active if l.is_overdue(now)),
        }
