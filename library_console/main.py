import asyncio
import logging
import sys
from typing import Awaitable, Callable, Optional, TypeVar

import typer
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from library_console.config import settings
from library_console.screens.base import always_confirm
from library_console.screens.catalog import CatalogController
from library_console.screens.loans import LoansController
from library_console.screens.messages import Message, MessageKind
from library_console.services.book_service import BookService
from library_console.services.http_client import ApiClient
from library_console.services.loan_service import LoanService
from library_console.ui_helpers import (
    print_book_details,
    print_books,
    print_loans,
    print_message,
    set_output_mode,
)

APP_NAME = f"{settings.app_name} - Consola de Gestión v{settings.app_version}"

console = Console()

T = TypeVar("T")


def make_api_client() -> ApiClient:
    """Build the API client used by every command (patched in tests)."""
    return ApiClient()


def _run(flow: Callable[[ApiClient], Awaitable[T]]) -> T:
    async def runner() -> T:
        async with make_api_client() as api:
            return await flow(api)
    return asyncio.run(runner())


async def _ask_confirm(prompt: str) -> bool:
    return await asyncio.to_thread(Confirm.ask, prompt, default=False)


def _confirmer(yes: bool):
    if yes or not settings.confirm_deletions:
        return always_confirm
    return _ask_confirm


def _finish(message: Optional[Message]) -> None:
    """Print the screen's status message; error messages end the command with exit code 1."""
    print_message(message)
    if message is not None and message.is_error:
        raise typer.Exit(code=1)


# --- Typer CLI application ---
app = typer.Typer(help="Consola de gestión de la biblioteca")
books_app = typer.Typer(help="Gestión de libros")
loans_app = typer.Typer(help="Gestión de préstamos")
app.add_typer(books_app, name="books")
app.add_typer(loans_app, name="loans")


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Formato de salida: plain | json | rich (por defecto: plain)",
    )
):
    """Global options for the CLI (output mode, logging)."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if output:
        set_output_mode(output)


# ------------------------------ books ------------------------------ #

@books_app.command("list")
def books_list():
    """Listar todos los libros."""
    async def flow(api: ApiClient) -> CatalogController:
        screen = CatalogController(BookService(api))
        await screen.mount()
        return screen

    screen = _run(flow)
    _finish(screen.message)
    print_books(screen.state.books)


@books_app.command("show")
def books_show(book_id: int = typer.Argument(..., help="ID del libro")):
    """Mostrar el detalle de un libro."""
    async def flow(api: ApiClient):
        screen = CatalogController(BookService(api))
        return screen, await screen.show_details(book_id)

    screen, details = _run(flow)
    _finish(screen.message)
    print_book_details(details)


@books_app.command("add")
def books_add(
    title: str = typer.Option(..., "--title", "-t", help="Título"),
    author: str = typer.Option(..., "--author", "-a", help="Autor"),
    isbn: str = typer.Option(..., "--isbn", "-i", help="ISBN"),
    stock: int = typer.Option(0, "--stock", "-s", help="Stock disponible"),
):
    """Crear un libro."""
    async def flow(api: ApiClient) -> CatalogController:
        screen = CatalogController(BookService(api))
        screen.open_create_form()
        screen.edit_form(title=title, author=author, isbn=isbn, stock=stock)
        await screen.submit()
        return screen

    screen = _run(flow)
    _finish(screen.message)
    print_books(screen.state.books)


@books_app.command("edit")
def books_edit(
    book_id: int = typer.Argument(..., help="ID del libro"),
    title: Optional[str] = typer.Option(None, "--title", "-t"),
    author: Optional[str] = typer.Option(None, "--author", "-a"),
    isbn: Optional[str] = typer.Option(None, "--isbn", "-i"),
    stock: Optional[int] = typer.Option(None, "--stock", "-s"),
):
    """Editar un libro (los campos omitidos conservan su valor)."""
    changes = {k: v for k, v in dict(title=title, author=author, isbn=isbn, stock=stock).items() if v is not None}

    async def flow(api: ApiClient) -> CatalogController:
        screen = CatalogController(BookService(api))
        await screen.mount()
        book = screen.find_book(book_id)
        if book is None:
            if screen.message is None:
                screen.show_message(MessageKind.ERROR, f"Libro {book_id} no encontrado")
            return screen
        screen.open_edit_form(book)
        screen.edit_form(**changes)
        await screen.submit()
        return screen

    screen = _run(flow)
    _finish(screen.message)
    print_books(screen.state.books)


@books_app.command("delete")
def books_delete(
    book_id: int = typer.Argument(..., help="ID del libro"),
    yes: bool = typer.Option(False, "--yes", "-y", help="No pedir confirmación"),
):
    """Eliminar un libro."""
    async def flow(api: ApiClient) -> CatalogController:
        screen = CatalogController(BookService(api), confirm=_confirmer(yes))
        await screen.delete(book_id)
        return screen

    screen = _run(flow)
    if screen.message is None:
        print("Eliminación cancelada.")
        return
    _finish(screen.message)
    print_books(screen.state.books)


@books_app.command("retire")
def books_retire(
    book_id: int = typer.Argument(..., help="ID del libro"),
    reason: str = typer.Option(..., "--reason", "-r", help="Motivo de la baja"),
):
    """Dar de baja un libro (solo con stock disponible)."""
    async def flow(api: ApiClient) -> CatalogController:
        screen = CatalogController(BookService(api))
        await screen.mount()
        book = screen.find_book(book_id)
        if book is None:
            if screen.message is None:
                screen.show_message(MessageKind.ERROR, f"Libro {book_id} no encontrado")
            return screen
        if screen.request_retire(book):
            screen.edit_reason(reason)
            await screen.submit_retire()
        return screen

    screen = _run(flow)
    _finish(screen.message)
    print_books(screen.state.books)


# ------------------------------ loans ------------------------------ #

@loans_app.command("list")
def loans_list(
    all_loans: bool = typer.Option(False, "--all", help="Incluir préstamos devueltos"),
    status: Optional[str] = typer.Option(None, "--status", help="Filtrar por estado (Active, Returned)"),
):
    """Listar préstamos (por defecto, los activos)."""
    async def flow(api: ApiClient):
        screen = LoansController(LoanService(api), BookService(api))
        await screen.mount()
        if screen.message is not None or not (all_loans or status):
            return screen, list(screen.state.loans)
        return screen, await screen.list_all(status)

    screen, loans = _run(flow)
    _finish(screen.message)
    print_loans(loans, empty_text="No hay préstamos registrados" if (all_loans or status) else "No hay préstamos activos")


@loans_app.command("show")
def loans_show(loan_id: int = typer.Argument(..., help="ID del préstamo")):
    """Mostrar un préstamo."""
    async def flow(api: ApiClient):
        screen = LoansController(LoanService(api), BookService(api))
        await screen.mount()
        if screen.message is not None:
            return screen, None
        return screen, await screen.show_loan(loan_id)

    screen, view = _run(flow)
    _finish(screen.message)
    print_loans([view])


@loans_app.command("add")
def loans_add(
    book_id: int = typer.Option(..., "--book-id", "-b", help="ID del libro"),
    student: str = typer.Option(..., "--student", "-s", help="Nombre del estudiante"),
    loan_date: Optional[str] = typer.Option(None, "--date", "-d", help="Fecha de préstamo (AAAA-MM-DD, por defecto hoy)"),
):
    """Registrar un préstamo."""
    async def flow(api: ApiClient) -> LoansController:
        screen = LoansController(LoanService(api), BookService(api))
        await screen.mount()
        if screen.message is not None:
            return screen
        if not screen.state.can_submit:
            screen.show_message(MessageKind.ERROR, screen.state.no_stock_hint)
            return screen
        screen.open_form()
        screen.edit_form(book_id=book_id, student_name=student)
        if loan_date:
            screen.edit_form(loan_date=loan_date)
        await screen.submit()
        return screen

    screen = _run(flow)
    _finish(screen.message)
    print_loans(screen.state.loans)


@loans_app.command("return")
def loans_return(
    loan_id: int = typer.Argument(..., help="ID del préstamo"),
    yes: bool = typer.Option(False, "--yes", "-y", help="No pedir confirmación"),
):
    """Devolver un préstamo activo."""
    async def flow(api: ApiClient) -> LoansController:
        screen = LoansController(LoanService(api), BookService(api), confirm=_confirmer(yes))
        await screen.mount()
        if screen.message is None:
            await screen.return_loan(loan_id)
        return screen

    screen = _run(flow)
    if screen.message is None:
        print("Devolución cancelada.")
        return
    _finish(screen.message)
    print_loans(screen.state.loans)


@app.command("menu")
def cli_menu():
    """Abrir el menú interactivo."""
    set_output_mode("rich")
    asyncio.run(run_menu())


# --------------------------- Interactive menu --------------------------- #

async def _prompt(text: str, **kwargs) -> str:
    # Prompts run in a worker thread so the message timers keep firing
    return await asyncio.to_thread(Prompt.ask, text, **kwargs)


async def _int_prompt(text: str, **kwargs) -> int:
    return await asyncio.to_thread(IntPrompt.ask, text, **kwargs)


def _render_header(title: str, message: Optional[Message]) -> None:
    console.clear()
    console.print(Panel.fit(f"[bold]{title}[/]", border_style="cyan", box=box.HEAVY))
    print_message(message)


def _render_actions(actions) -> None:
    table = Table.grid(padding=(0, 2))
    table.add_column(justify="right", style="bold cyan", width=4)
    table.add_column(justify="left", style="white")
    for key, label in actions:
        table.add_row(f"[reverse]{key}[/]", label)
    console.print(table)


async def _pause() -> None:
    await _prompt("Pulse Enter para continuar", default="", show_default=False)


async def _book_form(screen: CatalogController) -> None:
    form = screen.state.form
    console.print(f"[bold]{'Editar Libro' if screen.state.editing else 'Nuevo Libro'}[/]")
    title = await _prompt("Título *", default=form.title, show_default=bool(form.title))
    author = await _prompt("Autor *", default=form.author, show_default=bool(form.author))
    isbn = await _prompt("ISBN *", default=form.isbn, show_default=bool(form.isbn))
    stock = await _int_prompt("Stock *", default=form.stock)
    screen.edit_form(title=title, author=author, isbn=isbn, stock=stock)
    if await asyncio.to_thread(Confirm.ask, "¿Actualizar?" if screen.state.editing else "¿Crear?", default=True):
        await screen.submit()
    else:
        screen.cancel_form()


async def _retire_form(screen: CatalogController) -> None:
    book = screen.state.retire_target
    console.print("[bold]Dar de Baja Libro[/]")
    console.print(f"[bold]Libro:[/] {escape(book.title)} - {escape(book.author)}")
    console.print(f"[bold]Stock disponible:[/] {book.stock}")
    screen.edit_reason(await _prompt("Motivo de la baja *", default=screen.state.reason,
                                     show_default=bool(screen.state.reason)))
    if await asyncio.to_thread(Confirm.ask, "¿Confirmar dar de baja?", default=True):
        await screen.submit_retire()
    else:
        screen.cancel_retire()


async def catalog_screen(screen: CatalogController) -> None:
    await screen.mount()
    actions = [
        ("n", "➕ Nuevo libro"),
        ("e", "✏️  Editar"),
        ("b", "📉 Dar de baja"),
        ("d", "🗑️  Eliminar"),
        ("v", "🔎 Ver detalle"),
        ("r", "🔄 Recargar"),
        ("0", "⬅️  Volver"),
    ]
    while True:
        _render_header("Gestión de Libros", screen.message)
        if screen.state.loading:
            console.print("[dim]Cargando...[/]")
        else:
            print_books(screen.state.books)

        # Open forms stay on screen until submitted or cancelled
        if screen.state.show_retire_form:
            await _retire_form(screen)
            continue
        if screen.state.show_form:
            await _book_form(screen)
            continue

        _render_actions(actions)
        choice = await _prompt("Acción", choices=[k for k, _ in actions], default="r")

        if choice == "0":
            return
        if choice == "r":
            await screen.load_books()
        elif choice == "n":
            screen.open_create_form()
        elif choice in ("e", "b", "d", "v"):
            book_id = await _int_prompt("ID del libro")
            book = screen.find_book(book_id)
            if book is None:
                screen.show_message(MessageKind.ERROR, f"Libro {book_id} no encontrado")
            elif choice == "e":
                screen.open_edit_form(book)
            elif choice == "b":
                screen.request_retire(book)
            elif choice == "d":
                await screen.delete(book.id)
            else:
                details = await screen.show_details(book.id)
                if details is not None:
                    print_book_details(details)
                    await _pause()


async def _loan_form(screen: LoansController) -> None:
    console.print("[bold]Nuevo Préstamo[/]")
    if not screen.state.can_submit:
        console.print(f"[red]{screen.state.no_stock_hint}[/]")
        screen.cancel_form()
        await _pause()
        return
    for book in screen.state.available_books:
        console.print(f"  [cyan]{book.id}[/] {escape(book.title)} - {escape(book.author)} (Stock: {book.stock})")
    form = screen.state.form
    book_id = await _int_prompt("Libro *", default=form.book_id or None, show_default=bool(form.book_id))
    student = await _prompt("Nombre del estudiante *", default=form.student_name,
                            show_default=bool(form.student_name))
    loan_date = await _prompt("Fecha de préstamo *", default=form.loan_date)
    screen.edit_form(book_id=book_id, student_name=student, loan_date=loan_date)
    if await asyncio.to_thread(Confirm.ask, "¿Registrar préstamo?", default=True):
        await screen.submit()
    else:
        screen.cancel_form()


async def loans_screen(screen: LoansController) -> None:
    await screen.mount()
    actions = [
        ("n", "➕ Nuevo préstamo"),
        ("d", "↩️  Devolver"),
        ("r", "🔄 Recargar"),
        ("0", "⬅️  Volver"),
    ]
    while True:
        _render_header("Gestión de Préstamos", screen.message)
        if screen.state.loading:
            console.print("[dim]Cargando...[/]")
        else:
            print_loans(screen.state.loans)

        if screen.state.show_form:
            await _loan_form(screen)
            continue

        _render_actions(actions)
        choice = await _prompt("Acción", choices=[k for k, _ in actions], default="r")

        if choice == "0":
            return
        if choice == "r":
            await screen.load_data()
        elif choice == "n":
            screen.open_form()
        elif choice == "d":
            await screen.return_loan(await _int_prompt("ID del préstamo"))


async def run_menu() -> None:
    """Simple interactive menu for both screens."""
    async with make_api_client() as api:
        books = BookService(api)
        catalog = CatalogController(books, confirm=_ask_confirm)
        loans = LoansController(LoanService(api), books, confirm=_ask_confirm)

        menu_items = [
            ("1", "Libros", "📚"),
            ("2", "Préstamos", "📖"),
            ("0", "Salir", "🚪"),
        ]
        while True:
            console.clear()
            table = Table.grid(padding=(0, 2))
            table.add_column(justify="right", style="bold cyan", width=4)
            table.add_column(justify="left", style="white")
            for key, label, icon in menu_items:
                table.add_row(f"[reverse]{key}[/]", f"{icon} {label}")
            console.print(Panel(table, title=APP_NAME, border_style="cyan", box=box.HEAVY, padding=(1, 2)))

            choice = await _prompt("Seleccione una opción", choices=["1", "2", "0"], default="1")
            if choice == "1":
                await catalog_screen(catalog)
            elif choice == "2":
                await loans_screen(loans)
            else:
                console.print("[green]¡Hasta luego![/]")
                break


def main() -> None:
    app(args=sys.argv[1:] or ["menu"])


if __name__ == "__main__":
    main()
