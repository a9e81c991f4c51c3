from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional

from .timeutil import from_iso, to_iso


class BookStatus(str, Enum):
    AVAILABLE = "available"
    BORROWED = "borrowed"


@dataclass
class Book:
    """A single physical book in the office library."""

    id: str
    title: str
    author: str
    isbn: str
    registered_at: datetime
    status: BookStatus = BookStatus.AVAILABLE
    cover_image_url: Optional[str] = None
    current_borrower_id: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} by {self.author} (ISBN: {self.isbn})"

    @property
    def is_available(self) -> bool:
        return self.status == BookStatus.AVAILABLE

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "isbn": self.isbn,
            "cover_image_url": self.cover_image_url,
            "registered_at": to_iso(self.registered_at),
            "status": self.status.value,
            "current_borrower_id": self.current_borrower_id,
        }

    @staticmethod
    def from_dict(data: dict) -> "Book":
        return Book(
            id=data["id"],
            title=data["title"],
            author=data["author"],
            isbn=data["isbn"],
            cover_image_url=data.get("cover_image_url"),
            registered_at=from_iso(data["registered_at"]),
            status=BookStatus(data.get("status", BookStatus.AVAILABLE.value)),
            current_borrower_id=data.get("current_borrower_id"),
        )
