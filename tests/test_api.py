import pytest
from fastapi.testclient import TestClient

from conftest import add_books, add_employee
from office_library.api import create_app

API_KEY = "test-key"
HEADERS = {"X-API-Key": API_KEY}


@pytest.fixture
def client(lib):
    return TestClient(create_app(lib, api_key=API_KEY))


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["storage"] is True


def test_get_books_empty(client):
    response = client.get("/books")
    assert response.status_code == 200
    assert response.json() == []


def test_add_book_with_valid_api_key(client):
    payload = {"title": "Readable Code", "author": "D.B.", "isbn": "978-4-87311-565-8"}
    response = client.post("/books", headers=HEADERS, json=payload)
    assert response.status_code == 201
    assert response.json()["isbn"] == "9784873115658"
    assert response.json()["status"] == "available"


def test_add_book_with_invalid_api_key(client):
    payload = {"title": "T", "author": "A", "isbn": "9780306406157"}
    response = client.post("/books", headers={"X-API-Key": "invalid-key"}, json=payload)
    assert response.status_code == 403
    assert client.get("/books").json() == []


def test_add_book_without_api_key(client):
    response = client.post("/books", json={"title": "T", "author": "A", "isbn": "9780306406157"})
    assert response.status_code in (401, 403)


def test_add_book_invalid_isbn_is_422(client):
    payload = {"title": "T", "author": "A", "isbn": "9780306406158"}
    response = client.post("/books", headers=HEADERS, json=payload)
    assert response.status_code == 422
    assert response.json()["code"] == "ValidationFailure"


def test_duplicate_isbn_is_409(client, lib):
    add_books(lib, 1)
    payload = {"title": "T", "author": "A", "isbn": "9780306406157"}
    response = client.post("/books", headers=HEADERS, json=payload)
    assert response.status_code == 409
    assert response.json()["code"] == "DuplicateIdentifier"


def test_book_lookups(client, lib):
    a, b = add_books(lib, 2)
    assert client.get(f"/books/{a.id}").json()["title"] == a.title
    assert client.get(f"/books/isbn/{b.isbn}").json()["id"] == b.id
    assert len(client.get("/books", params={"q": "book 1"}).json()) == 1

    response = client.get("/books/missing")
    assert response.status_code == 404
    assert response.json() == {
        "code": "BookNotFound",
        "message": "Book missing not found.",
        "context": {"book_id": "missing"},
    }


def test_update_and_delete_book(client, lib):
    (book,) = add_books(lib, 1)
    response = client.put(f"/books/{book.id}", headers=HEADERS, json={"title": "Renamed"})
    assert response.status_code == 200
    assert response.json()["title"] == "Renamed"
    assert response.json()["author"] == book.author

    response = client.delete(f"/books/{book.id}", headers=HEADERS)
    assert response.json() == {"deleted": book.id}
    assert client.get(f"/books/{book.id}").status_code == 404


def test_employee_endpoints(client, lib):
    response = client.post(
        "/employees", headers=HEADERS, json={"id": "EMP001", "name": "Yamada", "email": "Yamada@x.com"}
    )
    assert response.status_code == 201
    assert response.json()["barcode"] == "EMP001"
    assert response.json()["email"] == "yamada@x.com"

    assert client.get("/employees/barcode/EMP001").json()["name"] == "Yamada"
    assert client.get("/employees/EMP404").status_code == 404

    response = client.put("/employees/EMP001", headers=HEADERS, json={"name": "Taro"})
    assert response.json()["name"] == "Taro"

    assert client.get("/employees/EMP001/active-loan-count").json() == {
        "employee_id": "EMP001",
        "active_loans": 0,
    }
    assert client.delete("/employees/EMP001", headers=HEADERS).json() == {"deleted": "EMP001"}


def test_borrow_return_flow(client, lib):
    (book,) = add_books(lib, 1)
    add_employee(lib)

    response = client.post(
        "/loans/borrow-by-barcode", headers=HEADERS, json={"isbn": book.isbn, "barcode": "EMP001"}
    )
    assert response.status_code == 201
    loan = response.json()
    assert loan["status"] == "active"

    response = client.post("/loans/borrow", headers=HEADERS, json={"book_id": book.id, "employee_id": "EMP001"})
    assert response.status_code == 409
    assert response.json()["code"] == "BookAlreadyBorrowed"

    assert [l["id"] for l in client.get("/loans/active").json()] == [loan["id"]]
    assert len(client.get("/employees/EMP001/active-loans").json()) == 1

    response = client.delete(f"/books/{book.id}", headers=HEADERS)
    assert response.status_code == 409
    assert response.json()["code"] == "BookCurrentlyBorrowed"

    response = client.post("/loans/return-by-isbn", headers=HEADERS, json={"isbn": book.isbn})
    assert response.status_code == 200
    assert response.json()["status"] == "returned"
    assert response.json()["returned_at"] is not None

    response = client.post("/loans/return", headers=HEADERS, json={"book_id": book.id})
    assert response.status_code == 409
    assert response.json()["code"] == "BookNotBorrowed"

    history = client.get("/loans/history", params={"book_id": book.id}).json()
    assert len(history) == 1


def test_borrow_unknown_employee_is_404(client, lib):
    (book,) = add_books(lib, 1)
    response = client.post("/loans/borrow-by-isbn", headers=HEADERS, json={"isbn": book.isbn, "employee_id": "EMP404"})
    assert response.status_code == 404
    assert response.json()["code"] == "EmployeeNotFound"


def test_borrow_multiple_partial_failure(client, lib):
    a, c = add_books(lib, 2)
    add_employee(lib, "EMP002")
    response = client.post(
        "/loans/borrow-multiple",
        headers=HEADERS,
        json={"barcode": "EMP002", "isbns": [a.isbn, "isbnB-invalid", c.isbn]},
    )
    assert response.status_code == 409
    body = response.json()
    assert body["code"] == "BatchFailure"
    assert [(f["isbn"], f["code"]) for f in body["failures"]] == [("isbnB-invalid", "BookNotFound")]
    assert [s["book_id"] for s in body["successes"]] == [a.id, c.id]


def test_borrow_and_return_multiple(client, lib):
    books = add_books(lib, 2)
    add_employee(lib)
    isbns = [b.isbn for b in books]
    response = client.post("/loans/borrow-multiple", headers=HEADERS, json={"barcode": "EMP001", "isbns": isbns})
    assert response.status_code == 201
    assert len(response.json()) == 2

    response = client.post("/loans/return-multiple", headers=HEADERS, json={"isbns": isbns})
    assert response.status_code == 200
    assert {l["status"] for l in response.json()} == {"returned"}


def test_extend_loan_endpoint(client, lib):
    (book,) = add_books(lib, 1)
    add_employee(lib)
    loan = lib.loans.borrow_book(book.id, "EMP001")

    response = client.post(f"/loans/{loan.id}/extend", headers=HEADERS, json={"days": 7})
    assert response.status_code == 200
    assert response.json()["due_date"].startswith("2024-04-22")

    response = client.post(f"/loans/{loan.id}/extend", headers=HEADERS, json={})
    assert response.status_code == 422
    assert response.json()["code"] == "ValidationFailure"

    response = client.post(f"/loans/{loan.id}/extend", headers=HEADERS, json={"days": 10**7})
    assert response.status_code == 422
    assert response.json()["message"] == "Due date out of range."

    lib.loans.return_book(book.id)
    response = client.post(f"/loans/{loan.id}/extend", headers=HEADERS, json={"days": 1})
    assert response.status_code == 409
    assert response.json()["code"] == "LoanAlreadyReturned"

    response = client.post("/loans/missing/extend", headers=HEADERS, json={"days": 1})
    assert response.status_code == 404


def test_overdue_and_stats(client, lib, clock):
    (book,) = add_books(lib, 1)
    add_employee(lib)
    lib.loans.borrow_book(book.id, "EMP001")
    assert client.get("/loans/overdue").json() == []

    clock.advance(days=15)
    assert len(client.get("/loans/overdue").json()) == 1
    stats = client.get("/stats").json()
    assert stats["borrowed_books"] == 1
    assert stats["overdue_loans"] == 1


def test_storage_failure_is_503(client, lib, data_dir):
    (data_dir / "books.json").write_text("{broken", encoding="utf-8")
    response = client.get("/books")
    assert response.status_code == 503
    assert response.json()["code"] == "StorageFailure"
    assert client.get("/health").json()["status"] == "degraded"
