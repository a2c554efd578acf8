"""API records and request payloads exchanged with the library API.

The API speaks camelCase JSON; attributes here are snake_case and the aliases
take care of the wire names in both directions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LoanStatus(str, Enum):
    ACTIVE = "Active"
    RETURNED = "Returned"


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class Book(ApiModel):
    id: int
    title: str
    author: str
    isbn: str
    stock: int = 0
    created_at: Optional[str] = None


class BookDetails(ApiModel):
    book: Book
    can_dar_baja: bool = False


class Loan(ApiModel):
    id: int
    book_id: int
    student_name: str
    loan_date: str
    return_date: Optional[str] = None
    status: str = LoanStatus.ACTIVE.value
    created_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self.status == LoanStatus.ACTIVE.value


class RetireResult(ApiModel):
    success: bool = True
    message: Optional[str] = None
    book_id: Optional[int] = None


# --------------------------- Request payloads --------------------------- #

class DraftModel(ApiModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class BookDraft(DraftModel):
    title: str = Field(min_length=1, max_length=200)
    author: str = Field(min_length=1, max_length=150)
    isbn: str = Field(min_length=1, max_length=20)
    stock: int = Field(ge=0)


class LoanDraft(DraftModel):
    book_id: int = Field(gt=0)
    student_name: str = Field(min_length=1, max_length=150)
    loan_date: date


class RetireRequest(DraftModel):
    motivo: str = Field(min_length=1, max_length=500)


@dataclass(frozen=True)
class LoanView:
    """A loan together with the title of its book, for display only."""

    loan: Loan
    book_title: str


def missing_book_title(book_id: int) -> str:
    return f"Libro ID: {book_id}"
