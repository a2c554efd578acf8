"""In-memory stand-in for the library API, served to the client through httpx.ASGITransport."""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel


class BookIn(BaseModel):
    title: str
    author: str
    isbn: str
    stock: int


class DarBajaIn(BaseModel):
    motivo: str


class LoanIn(BaseModel):
    bookId: int
    studentName: str
    loanDate: date


class FakeStore:
    def __init__(self) -> None:
        self.books: Dict[int, Dict[str, Any]] = {}
        self.loans: Dict[int, Dict[str, Any]] = {}
        self._next_book = 1
        self._next_loan = 1

    def add_book(self, title: str, author: str = "Autor", isbn: str = "000", stock: int = 1) -> Dict[str, Any]:
        book = {
            "id": self._next_book,
            "title": title,
            "author": author,
            "isbn": isbn,
            "stock": stock,
            "createdAt": datetime(2024, 1, 1).isoformat(),
        }
        self.books[book["id"]] = book
        self._next_book += 1
        return book

    def add_loan(self, book_id: int, student_name: str, loan_date: str = "2024-05-01",
                 status: str = "Active") -> Dict[str, Any]:
        loan = {
            "id": self._next_loan,
            "bookId": book_id,
            "studentName": student_name,
            "loanDate": f"{loan_date}T00:00:00",
            "returnDate": None if status == "Active" else f"{loan_date}T00:00:00",
            "status": status,
            "createdAt": datetime(2024, 1, 1).isoformat(),
        }
        self.loans[loan["id"]] = loan
        self._next_loan += 1
        return loan


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse({"message": message}, status_code=status_code)


def create_fake_api() -> FastAPI:
    app = FastAPI()
    store = FakeStore()
    calls: List[tuple] = []
    app.state.store = store
    app.state.calls = calls

    @app.middleware("http")
    async def record_calls(request: Request, call_next):
        calls.append((request.method, request.url.path))
        return await call_next(request)

    router = APIRouter(prefix="/api")

    def find_book(book_id: int) -> Optional[Dict[str, Any]]:
        return store.books.get(book_id)

    # ------------------------------ books ------------------------------ #
    @router.get("/books")
    async def list_books():
        return list(store.books.values())

    @router.get("/books/{book_id}")
    async def get_book(book_id: int):
        book = find_book(book_id)
        return book if book else _error(404, f"Libro con ID {book_id} no encontrado")

    @router.get("/books/{book_id}/details")
    async def book_details(book_id: int):
        book = find_book(book_id)
        if not book:
            return _error(404, f"Libro con ID {book_id} no encontrado")
        return {"book": book, "canDarBaja": book["stock"] > 0}

    @router.post("/books", status_code=201)
    async def create_book(payload: BookIn):
        if any(b["isbn"] == payload.isbn for b in store.books.values()):
            return _error(400, f"Ya existe un libro con el ISBN {payload.isbn}")
        return store.add_book(**payload.model_dump())

    @router.put("/books/{book_id}")
    async def update_book(book_id: int, payload: BookIn):
        book = find_book(book_id)
        if not book:
            return _error(404, f"Libro con ID {book_id} no encontrado")
        book.update(payload.model_dump())
        return book

    @router.delete("/books/{book_id}")
    async def delete_book(book_id: int):
        if not find_book(book_id):
            return _error(404, f"Libro con ID {book_id} no encontrado")
        if any(l["bookId"] == book_id and l["status"] == "Active" for l in store.loans.values()):
            return _error(400, "No se puede eliminar un libro con préstamos activos")
        del store.books[book_id]
        return Response(status_code=204)

    @router.post("/books/{book_id}/darbaja")
    async def dar_baja(book_id: int, payload: DarBajaIn):
        book = find_book(book_id)
        if not book:
            return _error(404, f"Libro con ID {book_id} no encontrado")
        if book["stock"] <= 0:
            return _error(400, "No se puede dar de baja un libro sin stock disponible")
        book["stock"] -= 1
        return {"success": True, "message": "Libro dado de baja correctamente", "bookId": book_id}

    # ------------------------------ loans ------------------------------ #
    @router.get("/loans")
    async def list_loans():
        return list(store.loans.values())

    @router.get("/loans/status/{status}")
    async def loans_by_status(status: str):
        return [l for l in store.loans.values() if l["status"] == status]

    @router.get("/loans/{loan_id}")
    async def get_loan(loan_id: int):
        loan = store.loans.get(loan_id)
        return loan if loan else _error(404, f"Préstamo con ID {loan_id} no encontrado")

    @router.post("/loans", status_code=201)
    async def create_loan(payload: LoanIn):
        book = find_book(payload.bookId)
        if not book:
            return _error(404, f"Libro con ID {payload.bookId} no encontrado")
        if book["stock"] <= 0:
            return _error(400, "No hay stock disponible para este libro")
        book["stock"] -= 1
        return store.add_loan(payload.bookId, payload.studentName, payload.loanDate.isoformat())

    @router.post("/loans/{loan_id}/return")
    async def return_loan(loan_id: int):
        loan = store.loans.get(loan_id)
        if not loan:
            return _error(404, f"Préstamo con ID {loan_id} no encontrado")
        if loan["status"] != "Active":
            return _error(400, "El préstamo ya fue devuelto")
        loan["status"] = "Returned"
        loan["returnDate"] = datetime(2024, 6, 1).isoformat()
        book = find_book(loan["bookId"])
        if book:
            book["stock"] += 1
        return loan

    app.include_router(router)
    return app
