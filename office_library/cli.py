import logging
import os
import subprocess
import sys
from datetime import datetime
from functools import wraps
from typing import List, Optional

import typer

from .config import settings
from .errors import BatchFailure, LibraryError
from .library import Library
from .seed import seed_sample_data
from .ui_helpers import (
    isbn_list,
    print_batch_failure,
    print_books,
    print_employees,
    print_error,
    print_loan,
    print_loans,
    print_message,
    print_stats,
    set_output_mode,
)

app = typer.Typer(help="Office library CLI")


def handle_library_errors(func):
    """Print library errors for the user and exit with status 1."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except BatchFailure as exc:
            print_batch_failure(exc)
            raise typer.Exit(code=1)
        except LibraryError as exc:
            print_error(exc)
            raise typer.Exit(code=1)
    return wrapper


@app.callback()
def _global_options(
    ctx: typer.Context,
    output: Optional[str] = typer.Option(
        None, "--output", "-o", help="Output format: plain | json | rich (default: plain)"
    ),
    data_dir: Optional[str] = typer.Option(
        None, "--data-dir", help="Directory holding books.json, employees.json and loans.json"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log library activity to stderr"),
):
    """Global options (output mode, data location)."""
    if output:
        set_output_mode(output)
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)
    ctx.obj = Library.from_settings(settings, data_dir=data_dir)


# --- Books ---
@app.command("list")
@handle_library_errors
def cli_list(ctx: typer.Context):
    """List all books."""
    print_books(ctx.obj.books.get_all_books())


@app.command("add")
@handle_library_errors
def cli_add(
    ctx: typer.Context,
    title: str,
    author: str,
    isbn: str,
    cover_url: Optional[str] = typer.Option(None, "--cover-url", help="Cover image URL"),
):
    """Register a book."""
    book = ctx.obj.books.add_book(title, author, isbn, cover_url)
    print_message(f"Successfully added: {book.title} by {book.author}", book.to_dict())


@app.command("remove")
@handle_library_errors
def cli_remove(ctx: typer.Context, book_id: str):
    """Delete a book by id. Books on loan cannot be deleted."""
    ctx.obj.books.delete_book(book_id)
    print_message(f"Book {book_id} has been removed.", {"deleted": book_id})


@app.command("find")
@handle_library_errors
def cli_find(ctx: typer.Context, isbn: str):
    """Find a book by ISBN and show its details."""
    book = ctx.obj.books.get_book_by_isbn(isbn)
    print_message(
        "\n".join([
            "Book Found",
            f"ID: {book.id}",
            f"Title: {book.title}",
            f"Author: {book.author}",
            f"ISBN: {book.isbn}",
            f"Status: {book.status.value}",
        ]),
        book.to_dict(),
    )


@app.command("search")
@handle_library_errors
def cli_search(ctx: typer.Context, query: str):
    """Search books by title or author."""
    print_books(ctx.obj.books.search_books(query))


@app.command("stats")
@handle_library_errors
def cli_stats(ctx: typer.Context):
    """Show library statistics."""
    print_stats(ctx.obj.books.get_statistics())


# --- Employees ---
@app.command("employees")
@handle_library_errors
def cli_employees(ctx: typer.Context):
    """List all employees."""
    print_employees(ctx.obj.employees.get_all_employees())


@app.command("add-employee")
@handle_library_errors
def cli_add_employee(ctx: typer.Context, employee_id: str, name: str, email: str):
    """Register an employee; the id is also the member barcode."""
    employee = ctx.obj.employees.add_employee(employee_id, name, email)
    print_message(f"Successfully added employee: {employee.id} ({employee.name})", employee.to_dict())


@app.command("remove-employee")
@handle_library_errors
def cli_remove_employee(ctx: typer.Context, employee_id: str):
    """Delete an employee with no books on loan."""
    ctx.obj.employees.delete_employee(employee_id)
    print_message(f"Employee {employee_id} has been removed.", {"deleted": employee_id})


# --- Loans ---
@app.command("borrow")
@handle_library_errors
def cli_borrow(ctx: typer.Context, isbn: str, barcode: str):
    """Borrow a book: scan the book's ISBN and the employee barcode."""
    loan = ctx.obj.loans.borrow_book_by_barcode(isbn, barcode)
    print_loan(loan, "Borrowed")


@app.command("return")
@handle_library_errors
def cli_return(ctx: typer.Context, isbn: str):
    """Return a book by ISBN."""
    loan = ctx.obj.loans.return_book_by_isbn(isbn)
    print_loan(loan, "Returned")


@app.command("borrow-batch")
@handle_library_errors
def cli_borrow_batch(ctx: typer.Context, barcode: str, isbns: List[str]):
    """Borrow several books for one employee."""
    loans = ctx.obj.batch.borrow_multiple(barcode, isbn_list(isbns))
    print_loans(loans, title="Borrowed")


@app.command("return-batch")
@handle_library_errors
def cli_return_batch(ctx: typer.Context, isbns: List[str]):
    """Return several books."""
    loans = ctx.obj.batch.return_multiple(isbn_list(isbns))
    print_loans(loans, title="Returned")


@app.command("active-loans")
@handle_library_errors
def cli_active_loans(ctx: typer.Context):
    """List loans that have not been returned."""
    print_loans(ctx.obj.loans.get_active_loans(), title="Active Loans")


@app.command("history")
@handle_library_errors
def cli_history(
    ctx: typer.Context,
    book_id: Optional[str] = typer.Option(None, "--book-id"),
    employee_id: Optional[str] = typer.Option(None, "--employee-id"),
):
    """Show loan history, optionally filtered by book and/or employee."""
    print_loans(ctx.obj.loans.get_loan_history(book_id, employee_id), title="Loan History")


@app.command("extend")
@handle_library_errors
def cli_extend(
    ctx: typer.Context,
    loan_id: str,
    days: Optional[int] = typer.Option(None, "--days", help="Days to add (negative to shorten)"),
    due_date: Optional[datetime] = typer.Option(
        None, "--due-date", formats=["%Y-%m-%d"], help="Explicit due date (YYYY-MM-DD)"
    ),
):
    """Change the due date of an active loan."""
    loan = ctx.obj.loans.extend_loan(loan_id, days=days, due_date=due_date.date() if due_date else None)
    print_loan(loan, "Due date updated")


# --- Maintenance ---
@app.command("seed")
@handle_library_errors
def cli_seed(ctx: typer.Context):
    """Load the sample books and employees."""
    counts = seed_sample_data(ctx.obj)
    print_message(
        f"Seeded {counts['books']} book(s) and {counts['employees']} employee(s).", counts
    )


@app.command("serve")
def cli_serve(
    ctx: typer.Context,
    host: str = typer.Option(settings.api_host, "--host"),
    port: int = typer.Option(settings.api_port, "--port"),
    reload: bool = typer.Option(False, "--reload"),
):
    """Start the HTTP API with uvicorn."""
    env = dict(os.environ, LIBRARY_DATA_DIR=str(ctx.obj.data_dir))
    cmd = [
        sys.executable, "-m", "uvicorn", "office_library.api:create_app", "--factory",
        "--host", host, "--port", str(port),
    ]
    if reload:
        cmd.append("--reload")
    print(f"Starting API on http://{host}:{port}")
    subprocess.run(cmd, env=env)


if __name__ == "__main__":
    app()
