"""Screen controllers: catalog (books) and loans."""

from library_console.screens.catalog import CatalogController, CatalogState
from library_console.screens.loans import LoansController, LoansState
from library_console.screens.messages import Message, MessageKind

__all__ = [
    "CatalogController",
    "CatalogState",
    "LoansController",
    "LoansState",
    "Message",
    "MessageKind",
]
