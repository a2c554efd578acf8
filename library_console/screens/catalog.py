"""Catalog screen: book list, create/edit form and the retire (dar de baja) form.

State lives in an immutable :class:`CatalogState`; the module-level functions are
pure transitions and :class:`CatalogController` sequences them around API calls.
"""

import logging
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

from library_console.models import Book, BookDetails
from library_console.screens.base import Confirm, ScreenController
from library_console.screens.messages import Message, Scheduler
from library_console.services.book_service import BookService
from library_console.services.http_client import ApiError
from library_console.validators import FormValidationError, validate_book_form, validate_retire_reason

logger = logging.getLogger(__name__)

STOCK_ZERO_RETIRE = "No se puede dar de baja un libro con stock 0"
DELETE_PROMPT = "El libro se eliminará al confirmar. ¿Está seguro de confirmar esta acción?"


class CatalogPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    FORM_OPEN = "form-open"
    RETIRE_FORM_OPEN = "retire-form-open"
    SUBMITTING = "submitting"


@dataclass(frozen=True)
class BookForm:
    title: str = ""
    author: str = ""
    isbn: str = ""
    stock: int = 0

    @classmethod
    def from_book(cls, book: Book) -> "BookForm":
        return cls(title=book.title, author=book.author, isbn=book.isbn, stock=book.stock)


@dataclass(frozen=True)
class CatalogState:
    books: Tuple[Book, ...] = ()
    loading: bool = False
    show_form: bool = False
    editing: Optional[Book] = None
    form: BookForm = BookForm()
    show_retire_form: bool = False
    retire_target: Optional[Book] = None
    reason: str = ""
    submitting: bool = False
    message: Optional[Message] = None

    @property
    def phase(self) -> CatalogPhase:
        if self.loading:
            return CatalogPhase.LOADING
        if self.submitting:
            return CatalogPhase.SUBMITTING
        if self.show_retire_form:
            return CatalogPhase.RETIRE_FORM_OPEN
        if self.show_form:
            return CatalogPhase.FORM_OPEN
        return CatalogPhase.IDLE


# ----------------------------- Transitions ----------------------------- #

def start_loading(state: CatalogState) -> CatalogState:
    return replace(state, loading=True)


def books_loaded(state: CatalogState, books: Iterable[Book]) -> CatalogState:
    return replace(state, books=tuple(books), loading=False)


def load_failed(state: CatalogState) -> CatalogState:
    return replace(state, loading=False)


def open_create_form(state: CatalogState) -> CatalogState:
    return replace(state, show_form=True, editing=None, form=BookForm())


def open_edit_form(state: CatalogState, book: Book) -> CatalogState:
    return replace(state, show_form=True, editing=book, form=BookForm.from_book(book))


def edit_form(state: CatalogState, **fields) -> CatalogState:
    return replace(state, form=replace(state.form, **fields))


def close_form(state: CatalogState) -> CatalogState:
    return replace(state, show_form=False, editing=None, form=BookForm())


def open_retire_form(state: CatalogState, book: Book) -> CatalogState:
    return replace(state, show_retire_form=True, retire_target=book, reason="")


def edit_reason(state: CatalogState, reason: str) -> CatalogState:
    return replace(state, reason=reason)


def close_retire_form(state: CatalogState) -> CatalogState:
    return replace(state, show_retire_form=False, retire_target=None, reason="")


def begin_submit(state: CatalogState) -> CatalogState:
    return replace(state, submitting=True)


def end_submit(state: CatalogState) -> CatalogState:
    return replace(state, submitting=False)


def retirable(book: Book) -> bool:
    return book.stock > 0


class CatalogController(ScreenController[CatalogState]):
    """Drives the catalog screen against :class:`BookService`."""

    def __init__(self, books: BookService, confirm: Optional[Confirm] = None,
                 scheduler: Optional[Scheduler] = None, dismiss_after: Optional[float] = None) -> None:
        super().__init__(CatalogState(), confirm=confirm, scheduler=scheduler, dismiss_after=dismiss_after)
        self.books = books

    async def mount(self) -> None:
        await self.load_books()

    async def load_books(self) -> None:
        self.state = start_loading(self.state)
        try:
            books = await self.books.list()
        except ApiError as e:
            self.state = load_failed(self.state)
            if e.is_connectivity:
                self._error(f"API NO CORRE EN EL URL {e.base_url}")
            else:
                self._error(f"Book Error: {e.message}")
            return
        self.state = books_loaded(self.state, books)

    # ----------------------- Create / edit form ----------------------- #
    def open_create_form(self) -> None:
        self.state = open_create_form(self.state)

    def open_edit_form(self, book: Book) -> None:
        self.state = open_edit_form(self.state, book)

    def edit_form(self, **fields) -> None:
        self.state = edit_form(self.state, **fields)

    def cancel_form(self) -> None:
        self.state = close_form(self.state)

    async def submit(self) -> bool:
        """Create or update the book in the form. Returns True on success."""
        if self.state.submitting:
            logger.info("Ignoring book submit while another one is in flight")
            return False
        try:
            draft = validate_book_form(asdict(self.state.form))
        except FormValidationError as e:
            self._error(e.message)
            return False

        editing = self.state.editing
        self.state = begin_submit(self.state)
        try:
            if editing is not None:
                await self.books.update(editing.id, draft)
            else:
                await self.books.create(draft)
        except ApiError as e:
            self.state = end_submit(self.state)
            if e.is_connectivity:
                self._error("No se puede conectar con la API.")
            else:
                self._error(e.message)
            return False

        self.state = close_form(end_submit(self.state))
        self._success("Libro actualizado" if editing is not None else "Libro creado")
        await self._reload()
        return True

    # ------------------------------ Delete ------------------------------ #
    async def delete(self, book_id: int) -> bool:
        if not await self._ask(DELETE_PROMPT):
            return False
        try:
            await self.books.delete(book_id)
        except ApiError as e:
            self._error(e.server_message or "Error al eliminar el libro")
            return False
        self._success("Libro eliminado")
        await self._reload()
        return True

    # ---------------------------- Dar de baja ---------------------------- #
    def request_retire(self, book: Book) -> bool:
        if not retirable(book):
            logger.info("Retire blocked for book %s: no stock", book.id)
            self._error(STOCK_ZERO_RETIRE)
            return False
        self.state = open_retire_form(self.state, book)
        return True

    def edit_reason(self, reason: str) -> None:
        self.state = edit_reason(self.state, reason)

    def cancel_retire(self) -> None:
        self.state = close_retire_form(self.state)

    async def submit_retire(self) -> bool:
        book = self.state.retire_target
        if book is None or self.state.submitting:
            return False
        if not retirable(book):
            self._error(STOCK_ZERO_RETIRE)
            return False
        try:
            request = validate_retire_reason(self.state.reason)
        except FormValidationError as e:
            self._error(e.message)
            return False

        self.state = begin_submit(self.state)
        try:
            result = await self.books.retire(book.id, request)
        except ApiError as e:
            self.state = end_submit(self.state)
            self._error(e.server_message or "Error al dar de baja el libro")
            return False

        self.state = close_retire_form(end_submit(self.state))
        self._success(result.message or "Libro dado de baja")
        await self._reload()
        return True

    # ------------------------------ Details ------------------------------ #
    async def show_details(self, book_id: int) -> Optional[BookDetails]:
        try:
            return await self.books.get_details(book_id)
        except ApiError as e:
            self._error(e.message)
            return None

    def find_book(self, book_id: int) -> Optional[Book]:
        return next((b for b in self.state.books if b.id == book_id), None)

    async def _reload(self) -> None:
        # A failed reload reports its own error and replaces the success message
        await self.load_books()
