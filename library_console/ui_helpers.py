import os
import json
from typing import Iterable, Optional, Sequence
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from library_console.models import Book, BookDetails, LoanStatus, LoanView
from library_console.screens.messages import Message, MessageKind

# Environment variable to control CLI output mode
# Allowed values: 'plain' (default), 'json', 'rich'
OUTPUT_MODE_ENV = "LIB_CLI_OUTPUT"

EMPTY_BOOKS = "No hay libros registrados"
EMPTY_LOANS = "No hay préstamos activos"

_console = Console()

_MESSAGE_STYLES = {
    MessageKind.SUCCESS: ("green", "✅"),
    MessageKind.ERROR: ("red", "❌"),
    MessageKind.INFO: ("blue", "ℹ️"),
}


def set_output_mode(mode: str) -> None:
    mode = (mode or "").lower().strip()
    if mode in {"plain", "json", "rich"}:
        os.environ[OUTPUT_MODE_ENV] = mode


def get_output_mode() -> str:
    return os.environ.get(OUTPUT_MODE_ENV, "plain").lower()


_STATUS_LABELS = {
    LoanStatus.ACTIVE.value: "Activo",
    LoanStatus.RETURNED.value: "Devuelto",
}


def loan_status_label(status: str) -> str:
    # Unknown statuses are shown as sent by the API
    return _STATUS_LABELS.get(status, status)


def print_message(message: Optional[Message]) -> None:
    if message is None:
        return
    mode = get_output_mode()
    if mode == "json":
        print(json.dumps({"kind": message.kind.value, "text": message.text}, ensure_ascii=False))
    elif mode == "rich":
        color, icon = _MESSAGE_STYLES[message.kind]
        _console.print(f"[{color}]{icon} {escape(message.text)}[/]")
    else:
        print(message.text)


def print_books(books: Sequence[Book]) -> None:
    """Print the catalog in the current output mode.
    - plain: '#id Title - Author (ISBN) stock N' lines
    - json: JSON array in API field names
    - rich: Rich table
    """
    mode = get_output_mode()

    if not books:
        print(EMPTY_BOOKS)
        return

    if mode == "json":
        print(json.dumps([b.model_dump(by_alias=True) for b in books], ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📚 Libros", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Título", style="white")
        table.add_column("Autor", style="white")
        table.add_column("ISBN", style="magenta", no_wrap=True)
        table.add_column("Stock Disponible", justify="right")
        for b in books:
            stock_style = "green" if b.stock > 0 else "red"
            table.add_row(str(b.id), escape(b.title), escape(b.author), escape(b.isbn),
                          f"[{stock_style}]{b.stock}[/]")
        _console.print(table)
    else:
        for b in books:
            print(f"#{b.id} {b.title} - {b.author} ({b.isbn}) stock {b.stock}")


def print_loans(loans: Iterable[LoanView], empty_text: str = EMPTY_LOANS) -> None:
    mode = get_output_mode()
    loans = list(loans)

    if not loans:
        print(empty_text)
        return

    if mode == "json":
        payload = []
        for view in loans:
            item = view.loan.model_dump(by_alias=True)
            item["bookTitle"] = view.book_title
            payload.append(item)
        print(json.dumps(payload, ensure_ascii=False))
    elif mode == "rich":
        table = Table(title="📖 Préstamos", show_lines=True, header_style="bold cyan")
        table.add_column("ID", style="dim", no_wrap=True)
        table.add_column("Nombre del Libro", style="white")
        table.add_column("Nombre del Estudiante", style="white")
        table.add_column("Fecha de Préstamo", no_wrap=True)
        table.add_column("Estado")
        for view in loans:
            loan = view.loan
            status_style = "yellow" if loan.is_active else "green"
            table.add_row(str(loan.id), escape(view.book_title), escape(loan.student_name),
                          loan.loan_date[:10], f"[{status_style}]{loan_status_label(loan.status)}[/]")
        _console.print(table)
    else:
        for view in loans:
            loan = view.loan
            print(f"#{loan.id} {view.book_title} - {loan.student_name} "
                  f"{loan.loan_date[:10]} {loan_status_label(loan.status)}")


def print_book_details(details: BookDetails) -> None:
    mode = get_output_mode()
    book = details.book

    if mode == "json":
        print(json.dumps(details.model_dump(by_alias=True), ensure_ascii=False))
    elif mode == "rich":
        content = (
            f"[bold]Título:[/] {escape(book.title)}\n"
            f"[bold]Autor:[/] {escape(book.author)}\n"
            f"[bold]ISBN:[/] {escape(book.isbn)}\n"
            f"[bold]Stock disponible:[/] {book.stock}\n"
            f"[bold]Se puede dar de baja:[/] {'Sí' if details.can_dar_baja else 'No'}"
        )
        _console.print(Panel.fit(content, title=f"📚 Libro #{book.id}", border_style="blue"))
    else:
        print(f"Título: {book.title}")
        print(f"Autor: {book.author}")
        print(f"ISBN: {book.isbn}")
        print(f"Stock: {book.stock}")
        print(f"Se puede dar de baja: {'Sí' if details.can_dar_baja else 'No'}")
