"""Library Console - Services Package

This package contains the modules that talk to the library API:
- HTTP client with normalized errors
- Book (catalog) service
- Loan service
"""

from library_console.services.book_service import BookService
from library_console.services.http_client import ApiClient, ApiError, ErrorKind
from library_console.services.loan_service import LoanService

__all__ = ["ApiClient", "ApiError", "ErrorKind", "BookService", "LoanService"]
