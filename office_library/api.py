import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Security
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from pydantic import BaseModel, Field

from .config import settings
from .errors import (
    BatchFailure,
    ConflictError,
    LibraryError,
    NotFoundError,
    StorageFailure,
    ValidationFailure,
)
from .library import Library

logger = logging.getLogger(__name__)


# --- Models ---
class BookModel(BaseModel):
    id: str
    title: str
    author: str
    isbn: str
    cover_image_url: Optional[str] = None
    registered_at: datetime
    status: str
    current_borrower_id: Optional[str] = None


class BookCreateModel(BaseModel):
    title: str
    author: str
    isbn: str
    cover_image_url: Optional[str] = None


class BookUpdateModel(BaseModel):
    title: Optional[str] = None
    author: Optional[str] = None
    isbn: Optional[str] = None
    cover_image_url: Optional[str] = None


class EmployeeModel(BaseModel):
    id: str
    name: str
    email: str
    barcode: str
    registered_at: datetime


class EmployeeCreateModel(BaseModel):
    id: str = Field(description="Externally assigned employee id, also used as barcode")
    name: str
    email: str


class EmployeeUpdateModel(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None


class LoanModel(BaseModel):
    id: str
    book_id: str
    employee_id: str
    borrowed_at: datetime
    due_date: datetime
    returned_at: Optional[datetime] = None
    status: str


class BorrowRequest(BaseModel):
    book_id: str
    employee_id: str


class BorrowByISBNRequest(BaseModel):
    isbn: str
    employee_id: str


class BorrowByBarcodeRequest(BaseModel):
    isbn: str
    barcode: str


class ReturnRequest(BaseModel):
    book_id: str


class ReturnByISBNRequest(BaseModel):
    isbn: str


class BorrowMultipleRequest(BaseModel):
    barcode: str
    isbns: List[str]


class ReturnMultipleRequest(BaseModel):
    isbns: List[str]


class ExtendLoanRequest(BaseModel):
    days: Optional[int] = Field(default=None, description="Signed number of days to move the due date")
    due_date: Optional[datetime] = Field(default=None, description="Explicit new due date")


class ActiveLoanCountModel(BaseModel):
    employee_id: str
    active_loans: int


class StatsModel(BaseModel):
    total_books: int
    available_books: int
    borrowed_books: int
    unique_authors: int
    total_employees: int
    active_loans: int
    overdue_loans: int


# --- Error mapping ---
def _status_for(exc: LibraryError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (ConflictError, BatchFailure)):
        return 409
    if isinstance(exc, ValidationFailure):
        return 422
    if isinstance(exc, StorageFailure):
        return 503
    return 400


def _book(book) -> BookModel:
    return BookModel(**book.to_dict())


def _employee(employee) -> EmployeeModel:
    return EmployeeModel(**employee.to_dict())


def _loan(loan) -> LoanModel:
    return LoanModel(**loan.to_dict())


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key")


def get_api_key(request: Request, api_key: str = Security(api_key_header)) -> str:
    """Dependency validating the API key for mutating endpoints."""
    if api_key == request.app.state.api_key:
        return api_key
    raise HTTPException(status_code=403, detail="Could not validate credentials")


def get_library(request: Request) -> Library:
    return request.app.state.library


def create_app(library: Optional[Library] = None, api_key: Optional[str] = None) -> FastAPI:
    """Build the HTTP command interface around an explicitly supplied ``Library``."""
    if library is None:
        logging.basicConfig(level=settings.log_level)
        library = Library.from_settings(settings)
        library.initialize(seed=settings.seed_sample_data)

    app = FastAPI(title=f"{settings.app_name} API", version=settings.app_version)
    app.state.library = library
    app.state.api_key = api_key or settings.api_key

    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(LibraryError)
    async def library_error_handler(request: Request, exc: LibraryError):
        status = _status_for(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=status, content=exc.to_dict())

    # --- Health ---
    @app.get("/health")
    def health(lib: Library = Depends(get_library)) -> Dict[str, Any]:
        storage_ok = True
        try:
            lib.book_repository.find_all()
        except StorageFailure:
            storage_ok = False
        return {
            "status": "healthy" if storage_ok else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "storage": storage_ok,
        }

    @app.get("/stats", response_model=StatsModel)
    def get_stats(lib: Library = Depends(get_library)):
        return StatsModel(**lib.books.get_statistics())

    # --- Books ---
    @app.get("/books", response_model=List[BookModel])
    def list_books(
        q: Optional[str] = Query(None, description="Title or author search"),
        lib: Library = Depends(get_library),
    ):
        return [_book(b) for b in lib.books.search_books(q)]

    @app.get("/books/available", response_model=List[BookModel])
    def list_available_books(lib: Library = Depends(get_library)):
        return [_book(b) for b in lib.books.get_available_books()]

    @app.get("/books/isbn/{isbn}", response_model=BookModel)
    def get_book_by_isbn(isbn: str, lib: Library = Depends(get_library)):
        return _book(lib.books.get_book_by_isbn(isbn))

    @app.get("/books/{book_id}", response_model=BookModel)
    def get_book(book_id: str, lib: Library = Depends(get_library)):
        return _book(lib.books.get_book_by_id(book_id))

    @app.post("/books", response_model=BookModel, status_code=201, dependencies=[Depends(get_api_key)])
    def add_book(payload: BookCreateModel, lib: Library = Depends(get_library)):
        book = lib.books.add_book(payload.title, payload.author, payload.isbn, payload.cover_image_url)
        return _book(book)

    @app.put("/books/{book_id}", response_model=BookModel, dependencies=[Depends(get_api_key)])
    def update_book(book_id: str, payload: BookUpdateModel, lib: Library = Depends(get_library)):
        return _book(lib.books.update_book(book_id, **payload.model_dump(exclude_unset=True)))

    @app.delete("/books/{book_id}", dependencies=[Depends(get_api_key)])
    def delete_book(book_id: str, lib: Library = Depends(get_library)):
        lib.books.delete_book(book_id)
        return {"deleted": book_id}

    # --- Employees ---
    @app.get("/employees", response_model=List[EmployeeModel])
    def list_employees(lib: Library = Depends(get_library)):
        return [_employee(e) for e in lib.employees.get_all_employees()]

    @app.get("/employees/barcode/{barcode}", response_model=EmployeeModel)
    def get_employee_by_barcode(barcode: str, lib: Library = Depends(get_library)):
        return _employee(lib.employees.get_employee_by_barcode(barcode))

    @app.get("/employees/{employee_id}", response_model=EmployeeModel)
    def get_employee(employee_id: str, lib: Library = Depends(get_library)):
        return _employee(lib.employees.get_employee_by_id(employee_id))

    @app.get("/employees/{employee_id}/active-loans", response_model=List[LoanModel])
    def get_employee_active_loans(employee_id: str, lib: Library = Depends(get_library)):
        return [_loan(l) for l in lib.loans.get_employee_active_loans(employee_id)]

    @app.get("/employees/{employee_id}/active-loan-count", response_model=ActiveLoanCountModel)
    def get_employee_active_loan_count(employee_id: str, lib: Library = Depends(get_library)):
        count = lib.loans.get_employee_active_loan_count(employee_id)
        return ActiveLoanCountModel(employee_id=employee_id, active_loans=count)

    @app.post("/employees", response_model=EmployeeModel, status_code=201, dependencies=[Depends(get_api_key)])
    def add_employee(payload: EmployeeCreateModel, lib: Library = Depends(get_library)):
        return _employee(lib.employees.add_employee(payload.id, payload.name, payload.email))

    @app.put("/employees/{employee_id}", response_model=EmployeeModel, dependencies=[Depends(get_api_key)])
    def update_employee(employee_id: str, payload: EmployeeUpdateModel, lib: Library = Depends(get_library)):
        return _employee(lib.employees.update_employee(employee_id, **payload.model_dump(exclude_unset=True)))

    @app.delete("/employees/{employee_id}", dependencies=[Depends(get_api_key)])
    def delete_employee(employee_id: str, lib: Library = Depends(get_library)):
        lib.employees.delete_employee(employee_id)
        return {"deleted": employee_id}

    # --- Loans ---
    @app.get("/loans/active", response_model=List[LoanModel])
    def list_active_loans(lib: Library = Depends(get_library)):
        return [_loan(l) for l in lib.loans.get_active_loans()]

    @app.get("/loans/overdue", response_model=List[LoanModel])
    def list_overdue_loans(lib: Library = Depends(get_library)):
        return [_loan(l) for l in lib.loans.get_overdue_loans()]

    @app.get("/loans/history", response_model=List[LoanModel])
    def loan_history(
        book_id: Optional[str] = Query(None),
        employee_id: Optional[str] = Query(None),
        lib: Library = Depends(get_library),
    ):
        return [_loan(l) for l in lib.loans.get_loan_history(book_id, employee_id)]

    @app.post("/loans/borrow", response_model=LoanModel, status_code=201, dependencies=[Depends(get_api_key)])
    def borrow(payload: BorrowRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.borrow_book(payload.book_id, payload.employee_id))

    @app.post("/loans/borrow-by-isbn", response_model=LoanModel, status_code=201, dependencies=[Depends(get_api_key)])
    def borrow_by_isbn(payload: BorrowByISBNRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.borrow_book_by_isbn(payload.isbn, payload.employee_id))

    @app.post("/loans/borrow-by-barcode", response_model=LoanModel, status_code=201, dependencies=[Depends(get_api_key)])
    def borrow_by_barcode(payload: BorrowByBarcodeRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.borrow_book_by_barcode(payload.isbn, payload.barcode))

    @app.post("/loans/borrow-multiple", response_model=List[LoanModel], status_code=201, dependencies=[Depends(get_api_key)])
    def borrow_multiple(payload: BorrowMultipleRequest, lib: Library = Depends(get_library)):
        return [_loan(l) for l in lib.batch.borrow_multiple(payload.barcode, payload.isbns)]

    @app.post("/loans/return", response_model=LoanModel, dependencies=[Depends(get_api_key)])
    def return_book(payload: ReturnRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.return_book(payload.book_id))

    @app.post("/loans/return-by-isbn", response_model=LoanModel, dependencies=[Depends(get_api_key)])
    def return_by_isbn(payload: ReturnByISBNRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.return_book_by_isbn(payload.isbn))

    @app.post("/loans/return-multiple", response_model=List[LoanModel], dependencies=[Depends(get_api_key)])
    def return_multiple(payload: ReturnMultipleRequest, lib: Library = Depends(get_library)):
        return [_loan(l) for l in lib.batch.return_multiple(payload.isbns)]

    @app.post("/loans/{loan_id}/extend", response_model=LoanModel, dependencies=[Depends(get_api_key)])
    def extend_loan(loan_id: str, payload: ExtendLoanRequest, lib: Library = Depends(get_library)):
        return _loan(lib.loans.extend_loan(loan_id, days=payload.days, due_date=payload.due_date))

    return app
