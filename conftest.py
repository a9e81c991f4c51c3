from datetime import datetime, timedelta, timezone

import pytest

from office_library.library import Library
from office_library.ui_helpers import OUTPUT_MODE_ENV

BOOK_ISBNS = [
    "9780306406157",
    "9780441172719",
    "9780132350884",
    "9780590353427",
    "9780134685991",
    "9781491950357",
    "9780596007126",
    "9781449355739",
    "9780262033848",
    "9780201633610",
    "9780201616224",
    "9780135957059",
    "9781593279288",
    "9780321125217",
    "9780137081073",
    "9780131103627",
]


class FakeClock:
    """Settable clock so due dates and overdue checks are deterministic."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 4, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture(autouse=True)
def _reset_output_mode(monkeypatch):
    # The CLI stores the output mode in the environment; keep tests isolated.
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def lib(data_dir, clock):
    library = Library(data_dir, clock=clock)
    library.initialize()
    return library


def add_books(library, count, start=0):
    """Register ``count`` books with distinct valid ISBNs."""
    return [
        library.books.add_book(f"Book {i}", f"Author {i % 3}", BOOK_ISBNS[i])
        for i in range(start, start + count)
    ]


def add_employee(library, employee_id="EMP001", name="Taro Yamada", email=None):
    return library.employees.add_employee(
        employee_id, name, email or f"{employee_id.lower()}@company.com"
    )
