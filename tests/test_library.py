import json

from office_library.config import Settings
from office_library.library import Library
from office_library.seed import SAMPLE_BOOKS, SAMPLE_EMPLOYEES, seed_sample_data


def test_initialize_creates_empty_files(data_dir):
    lib = Library(data_dir)
    assert lib.initialize() is False
    for name in ("books.json", "employees.json", "loans.json"):
        assert json.loads((data_dir / name).read_text(encoding="utf-8")) == []


def test_initialize_seeds_fresh_store_only(data_dir):
    lib = Library(data_dir)
    assert lib.initialize(seed=True) is True
    assert len(lib.books.get_all_books()) == len(SAMPLE_BOOKS)
    assert len(lib.employees.get_all_employees()) == len(SAMPLE_EMPLOYEES)

    lib.books.delete_book(lib.books.get_all_books()[0].id)
    assert Library(data_dir).initialize(seed=True) is False
    assert len(lib.books.get_all_books()) == len(SAMPLE_BOOKS) - 1


def test_seed_skips_existing_entries(lib):
    lib.employees.add_employee("EMP001", "Taro Yamada", "yamada@company.com")
    counts = seed_sample_data(lib)
    assert counts == {"books": len(SAMPLE_BOOKS), "employees": len(SAMPLE_EMPLOYEES) - 1}
    assert seed_sample_data(lib) == {"books": 0, "employees": 0}


def test_sample_data_can_be_borrowed(data_dir):
    lib = Library(data_dir)
    lib.initialize(seed=True)
    loan = lib.loans.borrow_book_by_barcode("9784873115658", "EMP001")
    assert lib.books.get_book_by_id(loan.book_id).title == "The Art of Readable Code"


def test_from_settings_uses_configured_limits(tmp_path):
    settings = Settings(data_dir=str(tmp_path / "store"), loan_period_days=7, max_loans_per_employee=2)
    lib = Library.from_settings(settings)
    assert lib.data_dir == tmp_path / "store"
    assert lib.loans.loan_period_days == 7
    assert lib.loans.max_loans_per_employee == 2

    override = Library.from_settings(settings, data_dir=tmp_path / "other")
    assert override.data_dir == tmp_path / "other"


def test_services_share_one_lock(lib):
    assert lib.books.lock is lib.lock
    assert lib.employees.lock is lib.lock
    assert lib.loans.lock is lib.lock
    assert lib.batch.engine is lib.loans
