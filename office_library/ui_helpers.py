import json
import os
from typing import Any, Dict, List, Optional, Sequence

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .errors import BatchFailure, LibraryError

# Environment variable controlling CLI output mode.
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIBRARY_CLI_OUTPUT"

_console = Console()


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


def _fmt_date(value: Optional[str]) -> str:
    return value[:10] if value else "-"


def print_books(books: Sequence[Any]) -> None:
    """Print books according to the current output mode.
    - plain: 'ISBN - Title by Author [status]' lines, or 'No books in library.'
    - json: JSON array of book objects
    - rich: Rich table
    """
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([b.to_dict() for b in books], ensure_ascii=False))
        return
    if not books:
        print("No books in library.")
        return
    if mode == "rich":
        table = Table(title="📚 Books", show_lines=True, header_style="bold cyan")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Title", style="white")
        table.add_column("Author", style="white")
        table.add_column("Status", style="green")
        table.add_column("Borrower", style="yellow")
        for b in books:
            table.add_row(b.isbn, b.title, b.author, b.status.value, b.current_borrower_id or "")
        _console.print(table)
    else:
        for b in books:
            print(f"{b.isbn} - {b.title} by {b.author} [{b.status.value}]")


def print_employees(employees: Sequence[Any]) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([e.to_dict() for e in employees], ensure_ascii=False))
        return
    if not employees:
        print("No employees registered.")
        return
    if mode == "rich":
        table = Table(title="👥 Employees", header_style="bold cyan")
        table.add_column("ID / Barcode", style="magenta", no_wrap=True)
        table.add_column("Name")
        table.add_column("Email")
        for e in employees:
            table.add_row(e.id, e.name, e.email)
        _console.print(table)
    else:
        for e in employees:
            print(f"{e.id} - {e.name} <{e.email}>")


def print_loans(loans: Sequence[Any], title: str = "Loans") -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps([l.to_dict() for l in loans], ensure_ascii=False))
        return
    if not loans:
        print("No loans found.")
        return
    if mode == "rich":
        table = Table(title=f"📖 {title}", header_style="bold cyan")
        table.add_column("Loan", style="dim", no_wrap=True)
        table.add_column("Book")
        table.add_column("Employee", style="magenta")
        table.add_column("Borrowed")
        table.add_column("Due")
        table.add_column("Returned")
        table.add_column("Status", style="green")
        for l in loans:
            d = l.to_dict()
            table.add_row(
                d["id"], d["book_id"], d["employee_id"], _fmt_date(d["borrowed_at"]),
                _fmt_date(d["due_date"]), _fmt_date(d["returned_at"]), d["status"],
            )
        _console.print(table)
    else:
        for l in loans:
            d = l.to_dict()
            print(
                f"{d['id']} book={d['book_id']} employee={d['employee_id']} "
                f"due={_fmt_date(d['due_date'])} status={d['status']}"
            )


def print_loan(loan: Any, heading: str) -> None:
    mode = get_output_mode()
    d = loan.to_dict()
    if mode == "json":
        print(json.dumps(d, ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Loan:[/] {d['id']}\n[bold]Book:[/] {d['book_id']}\n"
            f"[bold]Employee:[/] {d['employee_id']}\n[bold]Due:[/] {_fmt_date(d['due_date'])}"
        )
        _console.print(Panel.fit(content, title=heading, border_style="green"))
    else:
        print(heading)
        print(f"Loan: {d['id']}")
        print(f"Due: {_fmt_date(d['due_date'])}")


def print_stats(stats: Dict[str, Any]) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(stats, ensure_ascii=False))
        return
    labels = [
        ("total_books", "Total Books"),
        ("available_books", "Available"),
        ("borrowed_books", "Borrowed"),
        ("unique_authors", "Unique Authors"),
        ("total_employees", "Employees"),
        ("active_loans", "Active Loans"),
        ("overdue_loans", "Overdue Loans"),
    ]
    if mode == "rich":
        content = "\n".join(f"[bold]{label}:[/] {stats.get(key, 0)}" for key, label in labels)
        _console.print(Panel.fit(content, title="📊 Stats", border_style="blue"))
    else:
        for key, label in labels:
            print(f"{label}: {stats.get(key, 0)}")


def print_batch_failure(exc: BatchFailure) -> None:
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps(exc.to_dict(), ensure_ascii=False))
        return
    if mode == "rich":
        _console.print(Panel.fit(
            f"[green]{len(exc.successes)} succeeded[/]\n[red]{len(exc.failures)} failed[/]",
            title="📚 Batch Results",
            border_style="yellow",
        ))
        for f in exc.failures:
            _console.print(f"❌ [red]Failed[/]: {f.isbn} - {f.message}")
        return
    for loan in exc.successes:
        print(f"✓ {loan.book_id} (loan {loan.id})")
    for f in exc.failures:
        print(f"✗ {f.isbn}: {f.message}")
    print(f"Batch finished: {len(exc.successes)} succeeded, {len(exc.failures)} failed")


def print_error(exc: LibraryError) -> None:
    if get_output_mode() == "json":
        print(json.dumps(exc.to_dict(), ensure_ascii=False))
    else:
        print(f"Error: {exc.message}")


def print_message(message: str, payload: Optional[Dict[str, Any]] = None) -> None:
    if get_output_mode() == "json":
        print(json.dumps(payload if payload is not None else {"message": message}, ensure_ascii=False))
    else:
        print(message)


def isbn_list(values: List[str]) -> List[str]:
    """Accept space- or comma-separated ISBNs from the command line."""
    out: List[str] = []
    for v in values:
        out.extend(part.strip() for part in v.split(",") if part.strip())
    return out
