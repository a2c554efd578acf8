from typing import Any, Dict

from pydantic import ValidationError

from library_console.models import BookDraft, LoanDraft, RetireRequest

FIELD_LABELS = {
    "title": "Título",
    "author": "Autor",
    "isbn": "ISBN",
    "stock": "Stock",
    "book_id": "Libro",
    "bookId": "Libro",
    "student_name": "Nombre del estudiante",
    "studentName": "Nombre del estudiante",
    "loan_date": "Fecha de préstamo",
    "loanDate": "Fecha de préstamo",
    "motivo": "Motivo de la baja",
}


class FormValidationError(ValueError):
    """Raised when form values are rejected before anything is sent to the API."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


def describe_validation_error(exc: ValidationError) -> FormValidationError:
    """Collapse a pydantic error into the first problem, worded for the user."""
    error = exc.errors()[0]
    loc = error.get("loc") or ("",)
    field = str(loc[0])
    label = FIELD_LABELS.get(field, field)
    ctx = error.get("ctx") or {}
    kind = error.get("type", "")

    if kind in ("missing", "string_too_short"):
        text = f"{label} es obligatorio"
    elif kind == "string_too_long":
        text = f"{label} admite como máximo {ctx.get('max_length')} caracteres"
    elif kind == "greater_than_equal":
        text = f"{label} no puede ser menor que {ctx.get('ge')}"
    elif kind == "greater_than":
        text = f"{label} debe ser mayor que {ctx.get('gt')}"
    elif kind.startswith(("int_", "date_")):
        text = f"{label} no tiene un valor válido"
    else:
        text = f"{label}: {error.get('msg')}"
    return FormValidationError(text, field=field)


def validate_book_form(values: Dict[str, Any]) -> BookDraft:
    try:
        return BookDraft.model_validate(values)
    except ValidationError as e:
        raise describe_validation_error(e) from e


def validate_loan_form(values: Dict[str, Any]) -> LoanDraft:
    try:
        return LoanDraft.model_validate(values)
    except ValidationError as e:
        raise describe_validation_error(e) from e


def validate_retire_reason(reason: str) -> RetireRequest:
    if not (reason or "").strip():
        raise FormValidationError("Debe indicar el motivo de la baja", field="motivo")
    try:
        return RetireRequest(motivo=reason)
    except ValidationError as e:
        raise describe_validation_error(e) from e
