import asyncio
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from library_console.models import Book, Loan, LoanStatus, LoanView, missing_book_title
from library_console.screens.base import Confirm, ScreenController
from library_console.screens.messages import Message, Scheduler
from library_console.services.book_service import BookService
from library_console.services.http_client import ApiError
from library_console.services.loan_service import LoanService
from library_console.validators import FormValidationError, validate_loan_form

logger = logging.getLogger(__name__)

NO_STOCK_HINT = "No hay libros disponibles con stock"
RETURN_PROMPT = "¿Seguro de devolver este préstamo?"


class LoansPhase(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    FORM_OPEN = "form-open"
    SUBMITTING = "submitting"


def _today() -> str:
    return date.today().isoformat()


@dataclass(frozen=True)
class LoanForm:
    book_id: int = 0
    student_name: str = ""
    loan_date: str = field(default_factory=_today)


@dataclass(frozen=True)
class LoansState:
    loans: Tuple[LoanView, ...] = ()
    books: Tuple[Book, ...] = ()
    loading: bool = False
    show_form: bool = False
    form: LoanForm = field(default_factory=LoanForm)
    submitting: bool = False
    message: Optional[Message] = None

    @property
    def phase(self) -> LoansPhase:
        if self.loading:
            return LoansPhase.LOADING
        if self.submitting:
            return LoansPhase.SUBMITTING
        if self.show_form:
            return LoansPhase.FORM_OPEN
        return LoansPhase.IDLE

    @property
    def available_books(self) -> Tuple[Book, ...]:
        return tuple(b for b in self.books if b.stock > 0)

    @property
    def can_submit(self) -> bool:
        return bool(self.available_books) and not self.submitting

    @property
    def no_stock_hint(self) -> Optional[str]:
        return None if self.available_books else NO_STOCK_HINT


def join_book_titles(loans: Iterable[Loan], books: Iterable[Book]) -> Tuple[LoanView, ...]:
    """Attach each loan's book title; unknown books get a placeholder with the raw id."""
    titles = {b.id: b.title for b in books}
    return tuple(
        LoanView(loan=loan, book_title=titles.get(loan.book_id, missing_book_title(loan.book_id)))
        for loan in loans
    )


# ----------------------------- Transitions ----------------------------- #

def start_loading(state: LoansState) -> LoansState:
    return replace(state, loading=True)


def data_loaded(state: LoansState, loans: Iterable[Loan], books: Iterable[Book]) -> LoansState:
    books = tuple(books)
    return replace(state, loans=join_book_titles(loans, books), books=books, loading=False)


def load_failed(state: LoansState) -> LoansState:
    return replace(state, loading=False)


def open_form(state: LoansState) -> LoansState:
    return replace(state, show_form=True)


def edit_form(state: LoansState, **fields) -> LoansState:
    return replace(state, form=replace(state.form, **fields))


def close_form(state: LoansState) -> LoansState:
    return replace(state, show_form=False, form=LoanForm())


def begin_submit(state: LoansState) -> LoansState:
    return replace(state, submitting=True)


def end_submit(state: LoansState) -> LoansState:
    return replace(state, submitting=False)


class LoansController(ScreenController[LoansState]):
    """Drives the loans screen: active loans, the new-loan form and returns."""

    def __init__(self, loans: LoanService, books: BookService, confirm: Optional[Confirm] = None,
                 scheduler: Optional[Scheduler] = None, dismiss_after: Optional[float] = None) -> None:
        super().__init__(LoansState(), confirm=confirm, scheduler=scheduler, dismiss_after=dismiss_after)
        self.loans = loans
        self.books = books

    async def mount(self) -> None:
        await self.load_data()

    async def load_data(self) -> None:
        self.state = start_loading(self.state)
        try:
            loans, books = await asyncio.gather(
                self.loans.list_by_status(LoanStatus.ACTIVE.value),
                self.books.list(),
            )
        except ApiError as e:
            self.state = load_failed(self.state)
            self._error(f"Error al cargar los datos: {e.server_message or e.message}")
            return
        self.state = data_loaded(self.state, loans, books)

    # ------------------------------ Form ------------------------------ #
    def open_form(self) -> None:
        self.state = open_form(self.state)

    def edit_form(self, **fields) -> None:
        self.state = edit_form(self.state, **fields)

    def cancel_form(self) -> None:
        self.state = close_form(self.state)

    def find_book(self, book_id: int) -> Optional[Book]:
        return next((b for b in self.state.books if b.id == book_id), None)

    async def submit(self) -> bool:
        if self.state.submitting:
            logger.info("Ignoring loan submit while another one is in flight")
            return False

        # Re-check against the loaded books; the list may be stale
        selected = self.find_book(self.state.form.book_id)
        if selected is None:
            self._error("Seleccione un libro")
            return False
        if selected.stock <= 0:
            logger.info("Loan blocked for book %s: no stock", selected.id)
            self._error("Libro sin stock")
            return False
        try:
            draft = validate_loan_form(asdict(self.state.form))
        except FormValidationError as e:
            self._error(e.message)
            return False

        self.state = begin_submit(self.state)
        try:
            await self.loans.create(draft)
        except ApiError as e:
            self.state = end_submit(self.state)
            text = e.server_message or "Error al registrar el préstamo"
            if "stock" in text.lower():
                self._error("El libro no tiene stock")
            else:
                self._error(text)
            return False

        self.state = close_form(end_submit(self.state))
        self._success("Préstamo registrado")
        await self.load_data()
        return True

    # ----------------------------- Return ----------------------------- #
    def find_loan(self, loan_id: int) -> Optional[Loan]:
        return next((v.loan for v in self.state.loans if v.loan.id == loan_id), None)

    async def return_loan(self, loan_id: int) -> bool:
        loan = self.find_loan(loan_id)
        if loan is None or not loan.is_active:
            self._error("Solo se pueden devolver préstamos activos")
            return False
        if not await self._ask(RETURN_PROMPT):
            return False
        try:
            await self.loans.return_loan(loan_id)
        except ApiError as e:
            self._error(e.server_message or "Error al devolver el préstamo")
            return False
        self._success("Préstamo devuelto")
        await self.load_data()
        return True

    # -------------------------- Extra lookups -------------------------- #
    async def show_loan(self, loan_id: int) -> Optional[LoanView]:
        try:
            loan = await self.loans.get_by_id(loan_id)
        except ApiError as e:
            self._error(e.message)
            return None
        return join_book_titles([loan], self.state.books)[0]

    async def list_all(self, status: Optional[str] = None) -> List[LoanView]:
        """All loans (or those with ``status``), joined against the loaded books."""
        try:
            if status:
                loans = await self.loans.list_by_status(status)
            else:
                loans = await self.loans.list()
        except ApiError as e:
            self._error(e.message)
            return []
        return list(join_book_titles(loans, self.state.books))
